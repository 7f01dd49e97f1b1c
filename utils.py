"""
Small helpers for request payloads and ids.
"""
import copy
import re
from typing import Any, Iterable

MONGO_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(MONGO_ID_PATTERN.match(value))


def copy_object(obj: Any) -> Any:
    return copy.deepcopy(obj)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def delete_invalid_properties(data: dict, blacklist: Iterable[str] = ()) -> dict:
    """Strip blacklisted keys and empty values from `data` in place.

    Strings are trimmed and blank list entries dropped. Numbers, zero
    included, are left alone.
    """
    blacklist = set(blacklist)
    for key in list(data.keys()):
        value = data[key]
        if key in blacklist or _is_blank(value):
            del data[key]
            continue
        if isinstance(value, str):
            data[key] = value.strip()
        elif isinstance(value, list):
            data[key] = [item.strip() if isinstance(item, str) else item
                         for item in value if not _is_blank(item)]
    return data
