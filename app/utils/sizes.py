import re

BYTES_PER_MB = 1024 * 1024
BYTES_PER_GB = 1024 * BYTES_PER_MB

_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": BYTES_PER_MB,
    "GB": BYTES_PER_GB,
    "TB": 1024 * BYTES_PER_GB,
}

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?B)?\s*$", re.IGNORECASE)


def bytes_to_mb(size_bytes: int) -> float:
    return size_bytes / BYTES_PER_MB


def bytes_to_gb(size_bytes: int) -> float:
    return size_bytes / BYTES_PER_GB


def format_size_mb(size_bytes: int) -> str:
    return f"{bytes_to_mb(size_bytes):.2f} MB"


def parse_size(value: str) -> int:
    """Parse a legacy display size such as "586.051 MB" or "1.2 GB" into bytes.

    A bare number is read as megabytes, which is how sizes were stored
    before they became integer byte counts.
    """
    match = _SIZE_RE.match(value or "")
    if not match:
        raise ValueError(f"Unrecognised file size: {value!r}")
    number, unit = match.groups()
    multiplier = _UNITS[(unit or "MB").upper()]
    return int(round(float(number) * multiplier))
