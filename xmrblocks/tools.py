"""General helpers: amount formatting, time utilities, text decoding and paths."""

from __future__ import annotations

import enum
import logging
import os
import re
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Pattern, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ATOMIC_UNITS_PER_XMR = 1e12
PATH_SEPARATOR = "/"
SECOND_BLOCK_TIMESTAMP = 1397818193
DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_BAD_CHARS = r"[^a-zA-Z0-9+/=]"

_TIME_BUFFER_LENGTH = 60
_UNKNOWN_TIMESTAMP_LIMIT = 1234567890
_SECONDS_PER_YEAR = 31536000
_SECONDS_PER_DAY = 86400
_SECONDS_PER_HOUR = 3600
_SECONDS_PER_MINUTE = 60
_METRIC_PREFIXES = "kMGT"

_URL_PIECE = re.compile(r"%(.{0,2})|\+|[^%+]+", re.DOTALL)
_LEADING_HEX = re.compile(r"[0-9A-Fa-f]{1,2}")


class NetworkType(enum.Enum):
    """The network a blockchain belongs to."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    STAGENET = "stagenet"


def xmr_amount(value: int) -> float:
    """Convert atomic units to XMR."""
    return float(value) / ATOMIC_UNITS_PER_XMR


def xmr_amount_to_str(
    amount: int,
    fmt: str = "{:0.12f}",
    zero_to_question_mark: bool = True,
) -> str:
    """Format an amount of atomic units as XMR; zero becomes '?' unless disabled."""
    if not zero_to_question_mark or amount > 0:
        return fmt.format(xmr_amount(amount))
    return "?"


def remove_trailing_path_separator(path: str | os.PathLike[str]) -> str:
    """Drop a single trailing path separator, if there is one."""
    text = os.fspath(path)
    if text.endswith(PATH_SEPARATOR):
        return text[:-1]
    return text


def timestamp_to_str_gm(timestamp: int, fmt: str = DEFAULT_TIME_FORMAT) -> str:
    """Format a unix timestamp in UTC; output that does not fit 60 characters is empty."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    text = moment.strftime(fmt)
    if len(text) >= _TIME_BUFFER_LENGTH:
        return ""
    return text


def get_human_readable_timestamp(ts: int) -> str:
    """Format a timestamp in UTC with a 12-hour clock, or '<unknown>' if implausibly old."""
    if ts < _UNKNOWN_TIMESTAMP_LIMIT:
        return "<unknown>"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %I:%M:%S")


def timestamp_difference(t1: int, t2: int) -> tuple[int, int, int, int, int]:
    """Split the absolute difference of two timestamps into years, days, hours, minutes, seconds."""
    remaining = abs(t1 - t2)
    parts = []
    for unit in (_SECONDS_PER_YEAR, _SECONDS_PER_DAY, _SECONDS_PER_HOUR, _SECONDS_PER_MINUTE):
        count, remaining = divmod(remaining, unit)
        parts.append(count)
    parts.append(remaining)
    return tuple(parts)  # type: ignore[return-value]


def read_file(filename: str | os.PathLike[str]) -> str:
    """Return the whole content of a text file."""
    path = Path(filename)
    if not path.exists():
        raise FileNotFoundError(f"File does not exist: {path}")
    return path.read_text()


def timestamps_time_scale(
    timestamps: Iterable[int],
    time_n: int,
    resolution: int = 80,
    time0: int = SECOND_BLOCK_TIMESTAMP,
) -> tuple[str, float]:
    """Plot timestamps on a text axis of the given resolution; return the axis and its scale."""
    axis = ["_"] * resolution
    interval_length = time_n - time0
    scale = interval_length / resolution if resolution else float("inf")

    for timestamp in timestamps:
        if timestamp < time0 or timestamp > time_n:
            logger.debug("Timestamp %d out of range", timestamp)
            continue
        place = int((timestamp - time0) / interval_length * (resolution - 1))
        if place + 1 < resolution:
            axis[place + 1] = "*"

    return "".join(axis), scale


def url_decode(text: str) -> str:
    """Decode percent escapes and '+' in form data; raise ValueError on malformed escapes."""
    out = bytearray()
    for match in _URL_PIECE.finditer(text):
        piece = match.group(0)
        if piece == "+":
            out += b" "
        elif piece.startswith("%"):
            digits = match.group(1)
            if len(digits) < 2:
                raise ValueError(f"Truncated percent escape in {text!r}")
            hex_match = _LEADING_HEX.match(digits)
            if hex_match is None:
                raise ValueError(f"Invalid percent escape %{digits} in {text!r}")
            out.append(int(hex_match.group(0), 16))
        else:
            out += piece.encode("utf-8")
    return out.decode("utf-8", errors="replace")


def parse_post_data(body: str) -> dict[str, str]:
    """Parse url-encoded form data into a dict; stop at the first item without '='."""
    try:
        decoded = url_decode(body)
    except ValueError:
        return {}

    fields: dict[str, str] = {}
    for item in decoded.split("&"):
        key, sep, value = item.partition("=")
        if not sep:
            break
        fields[key] = value
    return dict(sorted(fields.items()))


def _printable_byte(byte: int) -> str:
    if 0x20 <= byte < 0x7F:
        return chr(byte)
    if byte < 8:
        return f"\\{byte:03o}"
    signed = byte - 256 if byte >= 0x80 else byte
    return "0x" + format(signed & 0xFFFFFFFF, "x")


def make_printable(data: str | bytes) -> str:
    """Replace non-printable characters with escape sequences."""
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return "".join(_printable_byte(byte) for byte in raw)


def calc_median(values: Iterable[T]) -> T:
    """Return the upper median of values without modifying them."""
    data = sorted(values)
    if not data:
        raise ValueError("median of an empty sequence")
    return data[len(data) // 2]


def chunks(seq: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most size items; an empty sequence yields one empty slice."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    yield seq[:size]
    for start in range(size, len(seq), size):
        yield seq[start:start + size]


def remove_bad_chars(text: str, pattern: str | Pattern[str] = DEFAULT_BAD_CHARS) -> str:
    """Remove every character of text matching the pattern."""
    return re.sub(pattern, "", text)


def get_metric_prefix(value: int) -> tuple[float, str]:
    """Scale a value to a metric prefix (k, M, G, T); no prefix leaves it unscaled."""
    if value < 1000:
        return float(value), ""
    scaled = int(value)
    for prefix in _METRIC_PREFIXES:
        if scaled < 1_000_000:
            return scaled / 1000, prefix
        scaled //= 1000
    return float(value), ""


def make_difficulty(low: int, high: int) -> int:
    """Combine the low and high 64-bit words of a difficulty."""
    return (high << 64) + low


def pause_execution(seconds: int, text: str = "now") -> None:
    """Sleep for a number of seconds, printing a dot for each one."""
    sys.stdout.write(f"\nPausing {text} for {seconds} seconds: ")
    sys.stdout.flush()
    for _ in range(seconds):
        sys.stdout.write(".")
        sys.stdout.flush()
        time.sleep(1)
    sys.stdout.write("\n")
    sys.stdout.flush()


def _default_data_dir() -> str:
    return str(Path.home() / ".bitmonero")


def get_default_lmdb_folder(
    nettype: NetworkType = NetworkType.MAINNET,
    data_dir: str | os.PathLike[str] | None = None,
) -> str:
    """Return the default lmdb folder of the blockchain for a network."""
    base = os.fspath(data_dir) if data_dir is not None else _default_data_dir()
    if nettype is NetworkType.TESTNET:
        base += "/testnet"
    elif nettype is NetworkType.STAGENET:
        base += "/stagenet"
    return base + "/lmdb"


def get_blockchain_path(
    bc_path: str | os.PathLike[str] | None = None,
    nettype: NetworkType = NetworkType.MAINNET,
    data_dir: str | os.PathLike[str] | None = None,
) -> str:
    """Resolve the blockchain folder, falling back to the default; it must be a directory."""
    path = os.fspath(bc_path) if bc_path is not None else get_default_lmdb_folder(nettype, data_dir)
    if not os.path.isdir(path):
        raise NotADirectoryError(f'Given path "{path}" is not a folder or does not exist')
    return remove_trailing_path_separator(path)