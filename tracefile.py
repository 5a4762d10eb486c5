# tracefile.py
import re
from collections import namedtuple

from cache import ADDRESS_MASK, AccessKind

TraceRecord = namedtuple("TraceRecord", ["kind", "address", "length"])

LINE_RE = re.compile(r"(?P<action>[LS]) (?P<address>[0-9a-f]+), (?P<length>\d+)")


class TraceFormatError(ValueError):
    def __init__(self, lineno, line, reason="malformed trace line"):
        super().__init__(f"line {lineno}: {reason}: {line!r}")
        self.lineno = lineno
        self.line = line


def parse_line(line, lineno=1):
    """
    Parse one trace line of the form `<L|S> <hex-address>, <length>`.
    The pattern may appear anywhere in the line (lackey-style traces
    indent data accesses with a space).
    """
    match = LINE_RE.search(line)
    if not match:
        raise TraceFormatError(lineno, line)
    address = int(match.group("address"), 16)
    if address > ADDRESS_MASK:
        raise TraceFormatError(lineno, line, "address wider than 64 bits")
    length = int(match.group("length"))
    return TraceRecord(AccessKind(match.group("action")), address, length)


def iter_records(lines):
    for lineno, line in enumerate(lines, start=1):
        yield parse_line(line, lineno)


def read_trace(path):
    with open(path, "rb") as f:
        raw = f.read()
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        lineno = raw.count(b"\n", 0, e.start) + 1
        line = raw.splitlines()[lineno - 1].decode("utf-8", errors="replace")
        raise TraceFormatError(lineno, line, "invalid UTF-8") from e
    return list(iter_records(content.splitlines()))


def run_trace(manager, records):
    """
    Feed every record into `manager` in order. Returns the number of
    records processed.
    """
    count = 0
    for rec in records:
        manager.access(rec.kind, rec.address, rec.length)
        count += 1
    return count
