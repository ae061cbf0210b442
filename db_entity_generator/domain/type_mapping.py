"""
Native PostgreSQL type to scalar type mapping.

The table below is fixed; anything it does not know degrades to the untyped
fallback scalar instead of raising.
"""

import logging
import re
from typing import Dict, Optional

from ..constants import NATIVE_TYPE_ALIASES
from .code_models import ScalarType

logger = logging.getLogger(__name__)

_ANY = (("typing", "Any"),)
_DATETIME = (("datetime", None),)

UNTYPED = ScalarType("Any", "types.NullType", imports=_ANY, nullable_capable=True, untyped=True)

NATIVE_TYPE_MAP: Dict[str, ScalarType] = {
    "int2": ScalarType("int", "SmallInteger"),
    "int4": ScalarType("int", "Integer"),
    "int8": ScalarType("int", "BigInteger"),
    "bool": ScalarType("bool", "Boolean"),
    "text": ScalarType("str", "Text", length_bounded=True),
    "varchar": ScalarType("str", "String", length_bounded=True),
    "bpchar": ScalarType("str", "CHAR", length_bounded=True),
    "citext": ScalarType("str", "Text", length_bounded=True),
    "numeric": ScalarType("decimal.Decimal", "Numeric", imports=(("decimal", None),)),
    "money": ScalarType("decimal.Decimal", "Numeric", imports=(("decimal", None),)),
    "float4": ScalarType("float", "Float"),
    "float8": ScalarType("float", "Double"),
    "date": ScalarType("datetime.date", "Date", imports=_DATETIME),
    "time": ScalarType("datetime.time", "Time", imports=_DATETIME),
    "timetz": ScalarType("datetime.time", "Time", (("timezone", True),), imports=_DATETIME),
    "timestamp": ScalarType("datetime.datetime", "DateTime", imports=_DATETIME),
    "timestamptz": ScalarType("datetime.datetime", "DateTime", (("timezone", True),), imports=_DATETIME),
    "interval": ScalarType("datetime.timedelta", "Interval", imports=_DATETIME),
    "uuid": ScalarType("uuid.UUID", "Uuid", imports=(("uuid", None),)),
    "bytea": ScalarType("bytes", "LargeBinary"),
    "json": ScalarType("Any", "JSON", imports=_ANY, nullable_capable=True),
    "jsonb": ScalarType("Any", "JSON", imports=_ANY, nullable_capable=True),
}


def normalize_native_type(data_type: Optional[str]) -> str:
    """Lower-case the type tag, drop modifiers such as ``(50)`` and resolve SQL-standard aliases."""
    normalized = re.sub(r"\(.*?\)", "", (data_type or "").strip().lower())
    normalized = " ".join(normalized.split())
    return NATIVE_TYPE_ALIASES.get(normalized, normalized)


def map_native_type(data_type: Optional[str]) -> ScalarType:
    """
    Map a native column type tag to its scalar type.

    Args:
        data_type: Catalog type name such as ``int4`` or ``character varying(50)``

    Returns:
        The mapped scalar, or the untyped fallback for unknown types
    """
    scalar = NATIVE_TYPE_MAP.get(normalize_native_type(data_type))
    if scalar is None:
        logger.debug(f"Unknown native type '{data_type}', using untyped fallback")
        return UNTYPED
    return scalar
