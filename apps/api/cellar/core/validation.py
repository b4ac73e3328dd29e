from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Type, TypeVar, Union

from .errors import ValidationError

E = TypeVar("E", bound=Enum)

Number = Union[int, float, Decimal, str]


def coerce_enum(cls: Type[E], value: Any, field: str) -> E:
    if isinstance(value, cls):
        return value
    try:
        return cls(str(value).strip())
    except ValueError:
        allowed = ", ".join(m.value for m in cls)
        raise ValidationError(field, f"{field} must be one of: {allowed}.") from None


def coerce_optional_enum(cls: Type[E], value: Any, field: str) -> Optional[E]:
    if value is None:
        return None
    return coerce_enum(cls, value, field)


def require_text(value: Optional[str], field: str) -> str:
    if value is None or str(value).strip() == "":
        raise ValidationError(field, f"{field} is required.")
    return str(value).strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    return None if value is None else str(value).strip()


def coerce_number(value: Number, field: str) -> float:
    """Accepts ints, floats, Decimals and numeric strings; rejects bool/NaN/inf."""
    if isinstance(value, bool):
        raise ValidationError(field, f"{field} must be numeric.")
    try:
        out = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        raise ValidationError(field, f"{field} must be numeric.") from None
    if math.isnan(out) or math.isinf(out):
        raise ValidationError(field, f"{field} must be numeric.")
    return out


def check_int_range(value: Optional[int], field: str, lo: int, hi: int) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, f"{field} must be an integer.")
    if value < lo or value > hi:
        raise ValidationError(field, f"{field} must be between {lo} and {hi}.")
    return value


def check_number_range(value: Optional[Number], field: str, lo: float, hi: float) -> Optional[float]:
    if value is None:
        return None
    out = coerce_number(value, field)
    if out < lo or out > hi:
        raise ValidationError(field, f"{field} must be between {lo:g} and {hi:g}.")
    return out


def check_positive_id(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(field, f"{field} must be >= 1.")
    return value
