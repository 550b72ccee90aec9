"""
camelCase response shaping.
Uses Pydantic's alias_generators so response keys match the request schema aliases.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")


def to_camel_key(s: str) -> str:
    """``zip_code`` -> ``zipCode``."""
    return to_camel(s)


def json_value(value: Any) -> Any:
    """Money as a two-place string, dates as ISO 8601, everything else unchanged."""
    if isinstance(value, Decimal):
        return str(value.quantize(CENT))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def dict_keys_to_camel(obj: Any) -> Any:
    """Recursively camelCase dict keys, converting leaf values with ``json_value``."""
    if isinstance(obj, dict):
        return {to_camel_key(k): dict_keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_camel(x) for x in obj]
    return json_value(obj)


def row_to_camel(row: Any, fields: Iterable[str]) -> dict[str, Any]:
    """Pick ``fields`` off an ORM row or dataclass into a camelCase response dict."""
    return {to_camel_key(f): json_value(getattr(row, f)) for f in fields}
