"""
Storage keys and blob schema for key-value backends.

Keys are only ever built here:
    <prefix>_categories
    <prefix>_matrix_<year>

Blobs are JSON objects {"version": 1, "data": ...}. A bare array or
object (the unversioned legacy format) reads as version 0 and is written
back as version 1 on the next save.
"""

import json
import re
from typing import Any, Optional

from income_matrix.core.errors import AdapterError, ErrorCode

SCHEMA_VERSION = 1
LEGACY_VERSION = 0
SUPPORTED_VERSIONS = (LEGACY_VERSION, SCHEMA_VERSION)

DEFAULT_KEY_PREFIX = "finance_income"

_CATEGORIES_SUFFIX = "categories"
_MATRIX_SUFFIX = "matrix"


def categories_key(prefix: str = DEFAULT_KEY_PREFIX) -> str:
    return f"{prefix}_{_CATEGORIES_SUFFIX}"


def matrix_key_prefix(prefix: str = DEFAULT_KEY_PREFIX) -> str:
    return f"{prefix}_{_MATRIX_SUFFIX}_"


def matrix_key(year: int, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    if isinstance(year, bool) or not isinstance(year, int):
        raise TypeError(f"year must be an int, got {year!r}")
    return f"{matrix_key_prefix(prefix)}{year}"


def parse_matrix_key(key: str, prefix: str = DEFAULT_KEY_PREFIX) -> Optional[int]:
    """Year encoded in a matrix key, or None if key is not a matrix key."""
    match = re.fullmatch(re.escape(matrix_key_prefix(prefix)) + r"(-?\d+)", key)
    if not match:
        return None
    return int(match.group(1))


def encode_blob(data: Any) -> str:
    return json.dumps({"version": SCHEMA_VERSION, "data": data}, ensure_ascii=False)


def decode_blob(raw: str, expected: type) -> tuple[int, Any]:
    """
    Decode a stored blob.

    Args:
        raw: Serialized blob
        expected: list or dict, the shape "data" must have

    Returns:
        (version, data)

    Raises:
        AdapterError: On malformed JSON, unknown versions or wrong shapes
    """
    code = ErrorCode.LOAD_MATRIX_FAILED if expected is dict else ErrorCode.LOAD_CATEGORIES_FAILED
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise AdapterError("Stored data is not valid JSON", code=code, cause=e)

    if isinstance(payload, dict) and "version" in payload and "data" in payload:
        version, data = payload["version"], payload["data"]
    else:
        version, data = LEGACY_VERSION, payload

    if version not in SUPPORTED_VERSIONS:
        raise AdapterError(f"Unsupported stored schema version: {version!r}", code=code)
    if not isinstance(data, expected):
        raise AdapterError(
            f"Stored data has the wrong shape: expected {expected.__name__}",
            code=code,
        )
    return version, data
