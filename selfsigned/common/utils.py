# selfsigned/common/utils.py
import hashlib
import ipaddress
import re
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple


_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def now_utc() -> datetime:
    """Current UTC time truncated to whole seconds (X.509 time precision)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def sha256_hex(data: bytes) -> str:
    """Return lowercase hex digest of SHA-256 for `data`."""
    return hashlib.sha256(data).hexdigest()


def hex_tail(value: int, width: int = 4) -> str:
    """Last `width` hex digits of a non-negative int, uppercased and zero-padded."""
    if value < 0:
        raise ValueError("value must be non-negative")
    return format(value, "0{}X".format(width))[-width:]


def split_hosts(hosts: Iterable[str]) -> Tuple[List, List[str]]:
    """
    Split a host list into (ip_addresses, dns_names).

    Literal IPv4/IPv6 addresses go to the first list, everything else to the
    second. Input order is kept inside each list. Scoped IPv6 literals
    ("fe80::1%eth0") are not addresses here.
    """
    ips, names = [], []
    for host in hosts:
        try:
            ip = ipaddress.ip_address(host)
        except ValueError:
            names.append(host)
            continue
        if getattr(ip, "scope_id", None):
            names.append(host)
        else:
            ips.append(ip)
    return ips, names


def parse_duration(text: str) -> Optional[float]:
    """
    Parse a Go style duration ("300ms", "1.5s", "1m30s") into seconds.
    Returns None when `text` is not a valid duration.
    """
    if not text:
        return None
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0
    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            return None
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0:
        return None
    return sign * total


def rfc3339_nano(ns: Optional[int] = None, tz=None) -> str:
    """
    Format a time in nanoseconds since the epoch like Go's RFC3339Nano:
    up to nine fractional digits with trailing zeros dropped, "Z" for UTC.
    Defaults to now in the local timezone.
    """
    if ns is None:
        ns = time.time_ns()
    seconds, nanos = divmod(ns, 1_000_000_000)
    dt = datetime.fromtimestamp(seconds, tz=tz or timezone.utc)
    if tz is None:
        dt = dt.astimezone()
    frac = f"{nanos:09d}".rstrip("0")
    text = dt.strftime("%Y-%m-%dT%H:%M:%S") + ("." + frac if frac else "")
    offset = dt.utcoffset()
    if not offset:
        return text + "Z"
    offset = dt.strftime("%z")
    return f"{text}{offset[:3]}:{offset[3:5]}"
