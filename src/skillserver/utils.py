"""Small parsing helpers shared by the resolver and the schedule source adapter."""

import re
from collections.abc import Iterable, Mapping

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(value: object) -> int | None:
    """Read an integer the lenient way chatbot params and library rows need.

    Accepts ints, integral floats and strings with a leading integer
    ("2", " 5 ", "2학년"). Everything else, including booleans, is None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def first_field(raw: object, names: Iterable[str]) -> object | None:
    """Return the first present, non-None field among aliases.

    Works on mappings (key lookup) and plain objects (attribute lookup).
    """
    for name in names:
        if isinstance(raw, Mapping):
            value = raw.get(name)
        else:
            value = getattr(raw, name, None)
        if value is not None:
            return value
    return None
