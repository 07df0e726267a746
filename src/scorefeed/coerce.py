"""
Coercion helpers for arbitrarily-shaped provider JSON

Handles:
- Pulling finite numbers out of strings, numbers and partial numerics
- Pulling display text out of locale objects, arrays and nested blocks
- Dot-path lookups and ordered extractor chains for field synonyms
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence, Union

Number = Union[int, float]

# Locale keys seen across scoreboard feeds, in preference order
LOCALE_KEYS = ("default", "en", "en_US", "en-us", "english", "text", "name")

_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def as_number_or_null(value: Any) -> Optional[Number]:
    """Return a finite number parsed from value, or None"""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            return int(value) if value.is_integer() else value
        return value

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return int(text)
    except ValueError:
        pass

    try:
        parsed = float(text)
        if math.isfinite(parsed):
            return int(parsed) if parsed.is_integer() else parsed
    except ValueError:
        pass

    match = _LEADING_INT.match(text)
    if match:
        return int(match.group(1))
    return None


def text_value(value: Any) -> str:
    """Extract the first non-empty display string from value.

    Strings are stripped, numbers stringified, arrays scanned in order and
    objects checked for the preferred locale keys before a depth-first scan
    over their remaining values.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)

    if isinstance(value, (list, tuple)):
        for item in value:
            text = text_value(item)
            if text:
                return text
        return ""

    if isinstance(value, dict):
        for key in LOCALE_KEYS:
            if key in value:
                text = text_value(value[key])
                if text:
                    return text
        for key, item in value.items():
            if key in LOCALE_KEYS:
                continue
            text = text_value(item)
            if text:
                return text
        return ""

    return str(value)


def first_string(*values: Any) -> str:
    """First value whose stripped string form is non-empty"""
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp or date into an aware UTC datetime"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def first_date(*values: Any) -> Optional[datetime]:
    """First value that parses as a timestamp"""
    for value in values:
        if not value:
            continue
        parsed = parse_datetime(value)
        if parsed is not None:
            return parsed
    return None


def to_utc_iso(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def extract_value_by_path(data: Any, path: str) -> Any:
    """Extract value from nested data using dot notation path (``a.b[0].c``)"""
    if not path or data is None:
        return data

    current = data
    for part in path.split("."):
        if current is None:
            return None

        if "[" in part and part.endswith("]"):
            key, index_str = part[:-1].split("[", 1)
            if key:
                if not isinstance(current, dict) or key not in current:
                    return None
                current = current[key]
            if not isinstance(current, list):
                return None
            try:
                index = int(index_str)
            except ValueError:
                return None
            if not 0 <= index < len(current):
                return None
            current = current[index]
        elif isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return None

    return current


Extractor = Union[str, Callable[[Any], Any]]


def first_value(data: Any, extractors: Iterable[Extractor],
                coerce: Callable[[Any], Any] = lambda v: v) -> Any:
    """Run extractors in order and return the first coerced non-None value.

    An extractor is either a dot path understood by ``extract_value_by_path``
    or a callable taking ``data``.
    """
    for extractor in extractors:
        if callable(extractor):
            raw = extractor(data)
        else:
            raw = extract_value_by_path(data, extractor)
        if raw is None:
            continue
        value = coerce(raw)
        if value is not None and value != "":
            return value
    return None


def first_number(data: Any, paths: Sequence[Extractor]) -> Optional[Number]:
    """First path that parses to a finite number; absence is None, never 0"""
    return first_value(data, paths, as_number_or_null)


def first_text(data: Any, paths: Sequence[Extractor]) -> str:
    return first_value(data, paths, text_value) or ""


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list:
    return value if isinstance(value, list) else []
