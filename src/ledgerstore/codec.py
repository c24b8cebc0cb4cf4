"""
Conversion between Amazon Ion values and plain Python structures.

The ledger returns self-describing Ion values (IonPyDict, IonPyText, IonPyDecimal
and friends). normalize() turns them into the JSON-safe subset of Python:
dict, list, str, int, float, bool and None. Values JSON cannot represent are
converted lossily:

    - timestamps become ISO-8601 strings
    - decimals become int when integral, float otherwise
    - non-finite floats become None
    - blobs and clobs become base64 text

normalize() is idempotent on anything it returns.
"""

import base64
import math
from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

from amazon.ion.core import IonType
from amazon.ion.simple_types import IonPyNull


def normalize(value: Any) -> Any:
    """Deep-convert an Ion value (or a list of them) into plain structures."""
    if value is None or isinstance(value, IonPyNull):
        return None

    ion_type = getattr(value, "ion_type", None)
    if ion_type is IonType.BOOL or isinstance(value, bool):
        return bool(value)
    if ion_type is IonType.SYMBOL:
        # IonPySymbol is a SymbolToken tuple, not a str
        return getattr(value, "text", None)

    if isinstance(value, Mapping):
        return {str(key): normalize(item) for key, item in value.items()}
    if isinstance(value, str):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()

    raise TypeError(f"Cannot normalize value of type {type(value).__name__}")


def to_parameter(value: Any) -> Any:
    """
    Prepare a Python value to be bound as a statement parameter.

    pyqldb encodes parameters as Ion itself; this only fixes up shapes Ion
    has no direct mapping for.
    """
    if isinstance(value, Mapping):
        return {str(key): to_parameter(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_parameter(item) for item in value]
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return value
