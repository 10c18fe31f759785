"""Parsing helpers for JSON returned by language-model oracles.

Oracles answer with JSON that may be wrapped in a markdown code block,
surrounded by prose, wrapped in an object, and keyed with inconsistent
casing (``Trust_Score``, ``trustScore``, ``trust_score``). These helpers turn
such output into plain records with one canonical key per field, so nothing
downstream ever looks at the oracle's own spelling.
"""

import json
import re
from typing import Any, Mapping, Optional

from factcheck_system.errors import OracleInvalidResponse


_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_ARRAY = re.compile(r"\[[\s\S]*\]")
_OBJECT = re.compile(r"\{[\s\S]*\}")
_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Keys an oracle sometimes wraps its result array in
_WRAPPER_KEYS = ("results", "items", "sentences", "claims", "data")


def canonical_key(key: str) -> str:
    """Lowercase a key and drop everything but letters and digits."""
    return _NON_ALNUM.sub("", str(key).lower())


def extract_json_records(response_text: str) -> list[dict]:
    """
    Extract a list of JSON objects from an oracle response.

    Handles raw JSON, JSON in a markdown code block, JSON with surrounding
    text, a single object, and an object wrapping the result array.

    Args:
        response_text: Raw response text.

    Returns:
        List of dict records (non-dict items are discarded).

    Raises:
        OracleInvalidResponse: If no JSON array or object can be parsed.
    """
    if response_text is None or not str(response_text).strip():
        raise OracleInvalidResponse("Empty oracle response", raw=response_text)

    text = str(response_text).strip()

    fence = _FENCE.search(text)
    if fence:
        text = fence.group(1).strip()

    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError:
        parsed = _parse_embedded(text, response_text)

    if isinstance(parsed, dict):
        for key in _WRAPPER_KEYS:
            value = parsed.get(key)
            if isinstance(value, list) and all(isinstance(item, dict) for item in value):
                parsed = value
                break
        else:
            parsed = [parsed]

    if not isinstance(parsed, list):
        raise OracleInvalidResponse(
            f"Expected JSON array or object, got {type(parsed).__name__}",
            raw=response_text,
        )

    return [item for item in parsed if isinstance(item, dict)]


def _parse_embedded(text: str, raw: str) -> Any:
    for pattern in (_ARRAY, _OBJECT):
        match = pattern.search(text)
        if not match:
            continue
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            continue
    raise OracleInvalidResponse("Oracle response is not valid JSON", raw=raw)


def normalize_record(record: Mapping[str, Any], aliases: Mapping[str, str]) -> dict:
    """
    Map a record's keys onto canonical field names.

    Args:
        record: Raw oracle record.
        aliases: Canonicalized key -> field name. Keys not listed are dropped.

    Returns:
        Dict keyed by field name. When several raw keys map to the same field,
        the first one wins.
    """
    normalized: dict = {}
    for key, value in record.items():
        field_name = aliases.get(canonical_key(key))
        if field_name is not None and field_name not in normalized:
            normalized[field_name] = value
    return normalized


def coerce_bool(value: Any) -> bool:
    """Interpret JSON booleans that arrive as strings or numbers."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def coerce_index(value: Any) -> Optional[int]:
    """Parse an echoed record id, returning None when it is not an integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None
