"""
naming_engine.py - Output file names for retrieved versions.

Two naming paths are supported:

* the legacy layout, which appends (or, with infix naming, inserts before the
  extension) a delimiter and a version string, and
* a small printf-like format language for Git version records:

    %f   original file name         %p   name before the last "."
    %s   name from the last "."     %d   the active delimiter
    %Nn  sequence number, N digits  %Nh  first N hash characters
    %Nt  timestamp, N of 6 fields   %rt  raw epoch timestamp
    %%   a literal "%"

Any other "%" sequence is copied through unchanged.

Usage:
    options = build_naming_options(infix=True, delimiter="__")
    target_name("foo.txt", "1.05", options)  # 'foo__1.05.txt'
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from vcs_errors import UsageError

DEFAULT_DELIMITER = ","
WINDOWS_DELIMITER = "__"
HASH_ABBREVIATIONS = (8, 11)

# Year, month, day, hour, minute, second; joined as YYYY-MM-DD-hhmmss
_TIME_FIELDS = ("%Y", "-%m", "-%d", "-%H", "%M", "%S")

_DIRECTIVE_RE = re.compile(
    r"%(?:(?P<percent>%)|(?P<raw>rt)|(?P<width>\d*)(?P<code>[nth])|(?P<plain>[fpsd]))"
)


@dataclass(frozen=True)
class VersionRecord:
    """A single historical commit of a file, numbered oldest first."""
    number: int
    hash: str
    timestamp: int
    filename: str
    path: Optional[str] = None  # repository path of the file in this commit


@dataclass(frozen=True)
class NamingOptions:
    """Immutable naming configuration, built once per invocation."""
    delimiter: str = DEFAULT_DELIMITER
    infix: bool = False
    padding: int = 0
    format: Optional[str] = None
    utc: bool = False
    raw_time: bool = False
    by_number: bool = False
    by_time: bool = False
    by_hash: bool = False
    hash_length: Optional[int] = None


def build_naming_options(
    delimiter: Optional[str] = None,
    infix: bool = False,
    padding: int = 0,
    format: Optional[str] = None,
    windows: bool = False,
    hash_abbrev: Optional[int] = None,
    utc: bool = False,
    raw_time: bool = False,
    by_number: bool = False,
    by_time: bool = False,
    by_hash: bool = False,
    hash_length: Optional[int] = None,
) -> NamingOptions:
    """
    Build and validate the naming options for one invocation.

    `windows` is shorthand for delimiter "__" with infix naming. `hash_abbrev`
    (8 or 11) expands to a concrete format string chosen by the final infix
    setting.

    Raises:
        UsageError: For negative padding, a non-positive hash length, a format
            string combined with a hash abbreviation, an invalid directive
            width, or UTC requested together with raw timestamps.
    """
    if windows:
        delimiter = WINDOWS_DELIMITER
        infix = True
    if delimiter is None:
        delimiter = DEFAULT_DELIMITER

    if padding < 0:
        raise UsageError(f"Padding must not be negative: {padding}")
    if hash_length is not None and hash_length <= 0:
        raise UsageError(f"Hash length must be positive: {hash_length}")

    if hash_abbrev is not None:
        if hash_abbrev not in HASH_ABBREVIATIONS:
            raise UsageError(f"Unsupported hash abbreviation: {hash_abbrev}")
        if format is not None:
            raise UsageError(f"-hash{hash_abbrev} cannot be combined with -format '{format}'")
        if infix:
            format = f"%p%d%{hash_abbrev}h%s"
        else:
            format = f"%f%d%{hash_abbrev}h"

    if format is not None:
        directives = parse_format(format)
        if utc and any(code == "rt" for code, _, _ in directives):
            raise UsageError(f"-utc cannot be used with a raw timestamp (%rt) in '{format}'")

    if utc and raw_time:
        raise UsageError("-utc cannot be combined with -raw timestamps")

    return NamingOptions(
        delimiter=delimiter,
        infix=infix,
        padding=padding,
        format=format,
        utc=utc,
        raw_time=raw_time,
        by_number=by_number,
        by_time=by_time,
        by_hash=by_hash,
        hash_length=hash_length,
    )


# ============================================================================
# LEGACY LAYOUT
# ============================================================================

def split_name(filename: str) -> Tuple[str, str]:
    """
    Split a file name at the last "." of its final component into
    (prefix, suffix).

    This departs from a plain last-"." split: dots in directory components
    never start the suffix, so "src.d/Makefile" yields ("src.d/Makefile", "")
    rather than ("src", ".d/Makefile"). The suffix keeps the dot, and a name
    without a dot in its final component yields (filename, "").
    """
    base_start = max(filename.rfind("/"), filename.rfind("\\")) + 1
    dot = filename.rfind(".", base_start)
    if dot < 0:
        return filename, ""
    return filename[:dot], filename[dot:]


def pad_revision(revision: str, width: int) -> str:
    """Zero-pad the final dot-separated numeric group of a revision."""
    if width <= 0:
        return revision
    head, dot, tail = revision.rpartition(".")
    if not tail.isdigit():
        return revision
    return f"{head}{dot}{tail.zfill(width)}"


def target_name(filename: str, version: str, options: NamingOptions = NamingOptions()) -> str:
    """
    Legacy output name: `file<delim><version>`, or with infix naming
    `prefix<delim><version>suffix`.
    """
    if options.infix:
        prefix, suffix = split_name(filename)
        return f"{prefix}{options.delimiter}{version}{suffix}"
    return f"{filename}{options.delimiter}{version}"


# ============================================================================
# FORMAT STRINGS
# ============================================================================

def format_timestamp(timestamp: int, fields: int = 6, utc: bool = False) -> str:
    """
    Render an epoch timestamp as YYYY-MM-DD-hhmmss, keeping the first
    `fields` of the six components.
    """
    if not 1 <= fields <= len(_TIME_FIELDS):
        raise UsageError(f"Timestamp field count must be between 1 and 6: {fields}")
    if utc:
        moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    else:
        moment = datetime.fromtimestamp(timestamp)
    return moment.strftime("".join(_TIME_FIELDS[:fields]))


def parse_format(fmt: str) -> List[Tuple[str, Optional[int], str]]:
    """
    Tokenize a format string left to right.

    Returns:
        A list of (code, width, text) tuples. `code` is "" for literal text,
        otherwise one of "f", "p", "s", "d", "n", "t", "h", "rt" or "%".
        `width` is the numeric prefix, or None when absent.

    Raises:
        UsageError: For `%0h` or a `%Nt` width outside 1..6.
    """
    tokens = []
    position = 0
    for match in _DIRECTIVE_RE.finditer(fmt):
        if match.start() > position:
            tokens.append(("", None, fmt[position:match.start()]))
        position = match.end()

        if match.group("percent"):
            tokens.append(("%", None, match.group(0)))
        elif match.group("raw"):
            tokens.append(("rt", None, match.group(0)))
        elif match.group("plain"):
            tokens.append((match.group("plain"), None, match.group(0)))
        else:
            code = match.group("code")
            width = int(match.group("width")) if match.group("width") else None
            if code == "t" and width is not None and not 1 <= width <= len(_TIME_FIELDS):
                raise UsageError(f"Invalid timestamp width in '{match.group(0)}' (format '{fmt}')")
            if code == "h" and width == 0:
                raise UsageError(f"Invalid hash width in '{match.group(0)}' (format '{fmt}')")
            tokens.append((code, width, match.group(0)))

    if position < len(fmt):
        tokens.append(("", None, fmt[position:]))
    return tokens


def render(fmt: str, record: VersionRecord, options: NamingOptions = NamingOptions()) -> str:
    """Expand a format string for one version record."""
    prefix, suffix = split_name(record.filename)
    parts = []
    for code, width, text in parse_format(fmt):
        if code == "":
            parts.append(text)
        elif code == "%":
            parts.append("%")
        elif code == "f":
            parts.append(record.filename)
        elif code == "p":
            parts.append(prefix)
        elif code == "s":
            parts.append(suffix)
        elif code == "d":
            parts.append(options.delimiter)
        elif code == "n":
            parts.append(str(record.number).zfill(width or 0))
        elif code == "rt":
            parts.append(str(record.timestamp))
        elif code == "t":
            parts.append(format_timestamp(record.timestamp, width or 6, options.utc))
        elif code == "h":
            parts.append(record.hash[:width] if width else record.hash)
    return "".join(parts)
