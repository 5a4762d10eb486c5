# main.py
import argparse
import json
import os
import sys

from cache import CacheGeometry, CacheManager, ConfigError
from tracefile import TraceFormatError, read_trace, run_trace
from visualize import plot_counters

DEFAULT_CONFIG = "config.json"

# env var -> (geometry field, config.json key)
ENV_KEYS = {
    "TAG_LEN": ("tag_len", "tag_len"),
    "INDEX_LEN": ("index_len", "index_len"),
    "OFFSET_LEN": ("offset_len", "offset_len"),
    "SET_SIZE": ("set_capacity", "set_size"),
}


def load_config(path=DEFAULT_CONFIG, required=False):
    if not os.path.exists(path) and not required:
        return {}
    try:
        with open(path, "r") as f:
            cfg = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"{path}: top level must be a JSON object, got {type(cfg).__name__}")
    return cfg


def env_get(name, default, environ=None):
    environ = os.environ if environ is None else environ
    try:
        return int(environ[name])
    except (KeyError, ValueError):
        return default


def resolve_geometry(cfg=None, environ=None):
    """
    Defaults, then the "cache" section of the config file, then
    TAG_LEN / INDEX_LEN / OFFSET_LEN / SET_SIZE from the environment.
    """
    cache_cfg = (cfg or {}).get("cache", {})
    if not isinstance(cache_cfg, dict):
        raise ConfigError(f"\"cache\" must be a JSON object, got {cache_cfg!r}")
    defaults = CacheGeometry()
    values = {}
    for env_name, (field, cfg_key) in ENV_KEYS.items():
        value = cache_cfg.get(cfg_key, getattr(defaults, field))
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(f"cache.{cfg_key} must be an integer, got {value!r}")
        values[field] = env_get(env_name, value, environ)
    return CacheGeometry(**values).validate()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Simulate a set-associative LRU cache over a memory trace.")
    parser.add_argument("trace", help="trace file, one '<L|S> <hex-address>, <length>' access per line")
    parser.add_argument("--config", default=None, help=f"JSON config file (default: {DEFAULT_CONFIG} if present)")
    parser.add_argument("--plot", default=None, help="save a hit/miss/swap bar chart to this path")
    parser.add_argument("--json", action="store_true", help="print full statistics as JSON")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    try:
        if args.config:
            cfg = load_config(args.config, required=True)
        else:
            cfg = load_config(DEFAULT_CONFIG)
        manager = CacheManager.from_geometry(resolve_geometry(cfg))
        run_trace(manager, read_trace(args.trace))
    except (ConfigError, TraceFormatError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(manager.stats(), indent=2))
    else:
        print(f"hit: {manager.hit}")
        print(f"miss: {manager.miss}")
        print(f"swap: {manager.swap}")

    if args.plot:
        plot_counters(manager.stats(), args.plot)
        print("Plot saved to", args.plot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
