import json

import pytest

import main
from cache import CacheGeometry, ConfigError

GEOMETRY_VARS = ("TAG_LEN", "INDEX_LEN", "OFFSET_LEN", "SET_SIZE")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in GEOMETRY_VARS:
        monkeypatch.delenv(name, raising=False)
    # keep the repository's config.json out of the way
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def write_trace(tmp_path, *lines):
    path = tmp_path / "input.trace"
    path.write_text("\n".join(lines) + "\n")
    return str(path)


def test_defaults():
    assert main.resolve_geometry({}, environ={}) == CacheGeometry(35, 6, 6, 8)


def test_config_file_overrides_defaults():
    cfg = {"cache": {"tag_len": 20, "set_size": 2}}
    assert main.resolve_geometry(cfg, environ={}) == CacheGeometry(20, 6, 6, 2)


def test_environment_overrides_config_file():
    cfg = {"cache": {"tag_len": 20, "index_len": 4}}
    env = {"TAG_LEN": "2", "OFFSET_LEN": "2", "SET_SIZE": "1"}
    assert main.resolve_geometry(cfg, environ=env) == CacheGeometry(2, 4, 2, 1)


def test_unparsable_environment_value_is_ignored():
    env = {"INDEX_LEN": "lots", "SET_SIZE": "4"}
    assert main.resolve_geometry({}, environ=env) == CacheGeometry(35, 6, 6, 4)


def test_non_integer_config_value():
    with pytest.raises(ConfigError):
        main.resolve_geometry({"cache": {"index_len": "6"}}, environ={})


def test_resolved_geometry_is_validated():
    with pytest.raises(ConfigError):
        main.resolve_geometry({}, environ={"TAG_LEN": "60"})


def test_load_config(tmp_path):
    path = tmp_path / "c.json"
    path.write_text(json.dumps({"cache": {"set_size": 4}}))
    assert main.load_config(str(path)) == {"cache": {"set_size": 4}}
    assert main.load_config(str(tmp_path / "missing.json")) == {}
    with pytest.raises(OSError):
        main.load_config(str(tmp_path / "missing.json"), required=True)


def test_load_config_bad_json(tmp_path):
    path = tmp_path / "c.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        main.load_config(str(path))


def test_cli_prints_counters(clean_env, tmp_path, capsys):
    clean_env.setenv("TAG_LEN", "2")
    clean_env.setenv("INDEX_LEN", "1")
    clean_env.setenv("OFFSET_LEN", "2")
    clean_env.setenv("SET_SIZE", "1")
    trace = write_trace(tmp_path, "L 0, 4", "S 0, 4", "L 4, 4", "L 10, 4")
    assert main.main([trace]) == 0
    assert capsys.readouterr().out == "hit: 1\nmiss: 4\nswap: 2\n"


def test_cli_json_output(clean_env, tmp_path, capsys):
    trace = write_trace(tmp_path, "L 0, 8", "L 0, 8", "L 40, 24")
    assert main.main([trace, "--json"]) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["hit"] == 2
    assert stats["miss"] == 1
    assert stats["set_capacity"] == 8


def test_cli_config_flag(clean_env, tmp_path, capsys):
    cfg = tmp_path / "small.json"
    cfg.write_text(json.dumps({"cache": {"tag_len": 2, "index_len": 1, "offset_len": 2, "set_size": 1}}))
    trace = write_trace(tmp_path, "L 0, 4", "L 8, 4")
    assert main.main([trace, "--config", str(cfg)]) == 0
    assert capsys.readouterr().out == "hit: 0\nmiss: 2\nswap: 1\n"


def test_cli_missing_config_file(clean_env, tmp_path, capsys):
    trace = write_trace(tmp_path, "L 0, 4")
    assert main.main([trace, "--config", str(tmp_path / "nope.json")]) == 1
    assert capsys.readouterr().err.startswith("error:")


def test_cli_malformed_trace(clean_env, tmp_path, capsys):
    trace = write_trace(tmp_path, "L 0, 4", "X 0, 4")
    assert main.main([trace]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "line 2" in captured.err


def test_cli_missing_trace_file(clean_env, tmp_path, capsys):
    assert main.main([str(tmp_path / "missing.trace")]) == 1
    assert "error:" in capsys.readouterr().err


def test_cli_bad_geometry(clean_env, tmp_path, capsys):
    clean_env.setenv("TAG_LEN", "64")
    trace = write_trace(tmp_path, "L 0, 4")
    assert main.main([trace]) == 1
    assert "address length > 64" in capsys.readouterr().err


def test_cli_requires_trace_argument(clean_env):
    with pytest.raises(SystemExit) as excinfo:
        main.main([])
    assert excinfo.value.code == 2


def test_cli_plot(clean_env, tmp_path, capsys):
    trace = write_trace(tmp_path, "L 0, 4", "L 0, 4")
    out = tmp_path / "plots" / "counters.png"
    assert main.main([trace, "--plot", str(out)]) == 0
    assert out.exists()
    assert "Plot saved to" in capsys.readouterr().out


@pytest.mark.parametrize("content", ["[1]", "3", "null"])
def test_config_top_level_must_be_an_object(tmp_path, content):
    path = tmp_path / "c.json"
    path.write_text(content)
    with pytest.raises(ConfigError, match="JSON object"):
        main.load_config(str(path))


def test_cache_section_must_be_an_object():
    with pytest.raises(ConfigError, match="JSON object"):
        main.resolve_geometry({"cache": None}, environ={})
    with pytest.raises(ConfigError, match="JSON object"):
        main.resolve_geometry({"cache": [35, 6, 6, 8]}, environ={})


@pytest.mark.parametrize("content", ["[1]", '{"cache": null}'])
def test_cli_config_with_wrong_shape(clean_env, tmp_path, capsys, content):
    cfg = tmp_path / "bad.json"
    cfg.write_text(content)
    trace = write_trace(tmp_path, "L 0, 4")
    assert main.main([trace, "--config", str(cfg)]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("error:")


def test_cli_trace_with_invalid_utf8(clean_env, tmp_path, capsys):
    trace = tmp_path / "binary.trace"
    trace.write_bytes(b"L 0, 4\n\xff\xfe\n")
    assert main.main([str(trace)]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "line 2" in captured.err
    assert "invalid UTF-8" in captured.err
