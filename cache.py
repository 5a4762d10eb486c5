# cache.py
import enum
from dataclasses import dataclass

ADDRESS_BITS = 64
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1


class ConfigError(ValueError):
    pass


class AccessKind(enum.Enum):
    LOAD = "L"
    STORE = "S"


@dataclass(frozen=True)
class CacheGeometry:
    """
    Bit widths of the address fields plus the number of ways per set.
    Defaults model an 8-way, 64-set, 64-byte-line L1 data cache.
    """
    tag_len: int = 35
    index_len: int = 6
    offset_len: int = 6
    set_capacity: int = 8

    def validate(self):
        for name in ("tag_len", "index_len", "offset_len"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.tag_len + self.index_len + self.offset_len > ADDRESS_BITS:
            raise ConfigError("address length > 64 is not supported")
        if self.set_capacity < 1:
            raise ConfigError(f"set_capacity must be >= 1, got {self.set_capacity}")
        return self

    @property
    def set_count(self):
        return 1 << self.index_len

    @property
    def line_size(self):
        return 1 << self.offset_len


class SetStore:
    """
    Set-associative tag store with LRU replacement.
    Each set is a dict mapping tag -> timestamp of its last access.
    The timestamp source is `current`, bumped once per lookup.
    """

    def __init__(self, set_count, set_capacity):
        self.sets = [{} for _ in range(set_count)]
        self._set_capacity = set_capacity
        self.current = 0

    @property
    def set_count(self):
        return len(self.sets)

    @property
    def set_capacity(self):
        return self._set_capacity

    def test_and_store(self, set_index, tag):
        """
        Look up `tag` in set `set_index`, inserting it on a miss.
        Returns (hit, evicted).
        """
        s = self.sets[set_index]
        if tag in s:
            hit, evicted = True, False
            s[tag] = self.current
        else:
            hit = False
            assert len(s) <= self._set_capacity
            if len(s) == self._set_capacity:
                evicted = True
                del s[self._oldest(s)]
            else:
                evicted = False
            s[tag] = self.current
        self.current += 1
        return hit, evicted

    def _oldest(self, s):
        # strict < keeps the first of equal timestamps
        oldest = self.current
        oldest_tag = None
        for tag, latest in s.items():
            if latest < oldest:
                oldest = latest
                oldest_tag = tag
        return oldest_tag

    def resident(self, set_index):
        return list(self.sets[set_index])

    def used_lines(self):
        return sum(len(s) for s in self.sets)


class CacheManager:
    """
    Drives a SetStore from byte-addressed accesses.

    An access of `length` bytes at `address` touches every cache line it
    overlaps; each line is one SetStore lookup and is counted as a hit or a
    miss, plus a swap when the lookup evicted a resident line.
    Address bits beyond tag_len + index_len + offset_len are dropped, so
    addresses that differ only in those bits alias to the same line.
    """

    def __init__(self, tag_len=35, index_len=6, offset_len=6, set_capacity=8):
        self.geometry = CacheGeometry(tag_len, index_len, offset_len, set_capacity).validate()
        self.tag_len = tag_len
        self.index_len = index_len
        self.offset_len = offset_len
        self.cache = SetStore(self.geometry.set_count, set_capacity)

        self.hit = 0
        self.miss = 0
        self.swap = 0

    @classmethod
    def from_geometry(cls, geometry: CacheGeometry):
        return cls(geometry.tag_len, geometry.index_len, geometry.offset_len, geometry.set_capacity)

    def decompose(self, address):
        offset = address & ((1 << self.offset_len) - 1)
        index = (address >> self.offset_len) & ((1 << self.index_len) - 1)
        tag = (address >> (self.offset_len + self.index_len)) & ((1 << self.tag_len) - 1)
        return tag, index, offset

    def access(self, kind: AccessKind, address: int, length: int):
        # stores have no separate handling yet and take the load path
        if kind is AccessKind.STORE:
            self.store(address, length)
        else:
            self.load(address, length)

    def store(self, address: int, length: int):
        self.load(address, length)

    def load(self, address: int, length: int):
        while True:
            tag, index, _ = self.decompose(address)

            hit, swap = self.cache.test_and_store(index, tag)
            if hit:
                self.hit += 1
            else:
                self.miss += 1
            if swap:
                self.swap += 1

            # computed from the masked tag; wraps like a u64
            next_block = ((((tag << self.index_len) | index) + 1) << self.offset_len) & ADDRESS_MASK
            covered = (next_block - address) & ADDRESS_MASK
            if length <= covered:
                return
            length -= covered
            address = next_block

    def stats(self):
        accesses = self.hit + self.miss
        return {
            "tag_len": self.tag_len,
            "index_len": self.index_len,
            "offset_len": self.offset_len,
            "set_capacity": self.cache.set_capacity,
            "num_sets": self.cache.set_count,
            "line_size": self.geometry.line_size,
            "hit": self.hit,
            "miss": self.miss,
            "swap": self.swap,
            "accesses": accesses,
            "hit_rate": (self.hit / accesses) if accesses else 0,
            "used_lines": self.cache.used_lines(),
        }
