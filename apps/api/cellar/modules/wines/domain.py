"""
Wine aggregate value objects.

Every object validates itself in __post_init__ and raises ValidationError naming
the offending field; writers and updaters build these before touching storage.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from cellar.core.errors import ValidationError
from cellar.core.validation import (
    check_int_range,
    check_number_range,
    check_positive_id,
    coerce_enum,
    coerce_number,
    coerce_optional_enum,
    optional_text,
    require_text,
)
from cellar.modules.catalog.domain import Country

VINTAGE_MIN, VINTAGE_MAX = 1800, 2200


class WineType(str, Enum):
    RED = "red"
    WHITE = "white"
    ROSE = "rose"
    SPARKLING = "sparkling"
    SWEET = "sweet"
    FORTIFIED = "fortified"


class AgingType(str, Enum):
    YOUNG = "young"
    CRIANZA = "crianza"
    RESERVE = "reserve"
    GRAND_RESERVE = "grand_reserve"


class PlaceType(str, Enum):
    SUPERMARKET = "supermarket"
    RESTAURANT = "restaurant"


class AwardName(str, Enum):
    PENIN = "penin"
    PARKER = "parker"
    WINE_SPECTATOR = "wine_spectator"
    DECANTER = "decanter"
    JAMES_SUCKLING = "james_suckling"
    GUIA_PROENSA = "guia_proensa"


class PhotoType(str, Enum):
    FRONT_LABEL = "front_label"
    BACK_LABEL = "back_label"
    BOTTLE = "bottle"


def check_vintage_year(value: Optional[int]) -> Optional[int]:
    return check_int_range(value, "vintage_year", VINTAGE_MIN, VINTAGE_MAX)


def check_alcohol_percentage(value: Any) -> Optional[float]:
    return check_number_range(value, "alcohol_percentage", 0, 100)


def check_wine_name(value: Optional[str]) -> str:
    return require_text(value, "name")


@dataclass(frozen=True)
class Wine:
    name: str
    winery: Optional[str] = None
    wine_type: Optional[WineType] = None
    country: Optional[Country] = None
    aging_type: Optional[AgingType] = None
    vintage_year: Optional[int] = None
    alcohol_percentage: Optional[float] = None
    do_id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", check_wine_name(self.name))
        object.__setattr__(self, "winery", optional_text(self.winery))
        object.__setattr__(self, "wine_type", coerce_optional_enum(WineType, self.wine_type, "wine_type"))
        object.__setattr__(self, "country", coerce_optional_enum(Country, self.country, "country"))
        object.__setattr__(self, "aging_type", coerce_optional_enum(AgingType, self.aging_type, "aging_type"))
        check_vintage_year(self.vintage_year)
        object.__setattr__(self, "alcohol_percentage", check_alcohol_percentage(self.alcohol_percentage))
        if self.do_id is not None:
            check_positive_id(self.do_id, "do_id")


@dataclass(frozen=True)
class WineGrape:
    grape_id: int
    percentage: Optional[float] = None

    def __post_init__(self) -> None:
        check_positive_id(self.grape_id, "grapes.grape_id")
        object.__setattr__(
            self, "percentage", check_number_range(self.percentage, "grapes.percentage", 0, 100)
        )


@dataclass(frozen=True)
class Place:
    place_type: PlaceType
    name: str
    country: Country
    address: Optional[str] = None
    city: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "place_type", coerce_enum(PlaceType, self.place_type, "purchases.place.place_type")
        )
        object.__setattr__(self, "name", require_text(self.name, "purchases.place.name"))
        object.__setattr__(self, "country", coerce_enum(Country, self.country, "purchases.place.country"))
        object.__setattr__(self, "address", optional_text(self.address))
        object.__setattr__(self, "city", optional_text(self.city))
        if self.place_type is PlaceType.RESTAURANT:
            if not self.address:
                raise ValidationError("purchases.place.address", "purchases.place.address is required for restaurant.")
            if not self.city:
                raise ValidationError("purchases.place.city", "purchases.place.city is required for restaurant.")
        if self.place_type is PlaceType.SUPERMARKET and self.address is not None:
            raise ValidationError("purchases.place.address", "purchases.place.address must be null for supermarket.")


def parse_timestamp(value: Any, field_name: str) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value or "").strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(field_name, f"{field_name} must be an ISO-8601 datetime.") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class Purchase:
    place: Place
    price_paid: float
    purchased_at: datetime

    def __post_init__(self) -> None:
        price = coerce_number(self.price_paid, "purchases.price_paid")
        if price < 0:
            raise ValidationError("purchases.price_paid", "purchases.price_paid must be >= 0.")
        object.__setattr__(self, "price_paid", price)
        object.__setattr__(self, "purchased_at", parse_timestamp(self.purchased_at, "purchases.purchased_at"))

    def purchased_at_iso(self) -> str:
        return self.purchased_at.astimezone(timezone.utc).isoformat()


@dataclass(frozen=True)
class Award:
    name: AwardName
    score: Optional[float] = None
    year: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", coerce_enum(AwardName, self.name, "awards.name"))
        object.__setattr__(self, "score", check_number_range(self.score, "awards.score", 0, 100))
        check_int_range(self.year, "awards.year", VINTAGE_MIN, VINTAGE_MAX)


@dataclass(frozen=True)
class WinePhoto:
    url: str
    type: Optional[PhotoType]
    hash: str
    size: int
    extension: str
    id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", require_text(self.url, "photo.url"))
        object.__setattr__(self, "type", coerce_optional_enum(PhotoType, self.type, "photo.type"))
        object.__setattr__(self, "hash", require_text(self.hash, "photo.hash"))
        if len(self.hash) != 16:
            raise ValidationError("photo.hash", "photo hash must have 16 characters.")
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size < 0:
            raise ValidationError("photo.size", "photo size must be >= 0.")
        object.__setattr__(self, "extension", require_text(self.extension, "photo.extension"))


@dataclass(frozen=True)
class CreateWineCommand:
    wine: Wine
    grapes: Tuple[WineGrape, ...] = field(default_factory=tuple)
    purchases: Tuple[Purchase, ...] = field(default_factory=tuple)
    awards: Tuple[Award, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UpdateWineCommand:
    """values holds only provided fields; a key mapped to None means explicit null."""

    wine_id: int
    values: Dict[str, Any] = field(default_factory=dict)
    grapes: Optional[Tuple[WineGrape, ...]] = None

    @property
    def provided(self) -> FrozenSet[str]:
        keys = set(self.values)
        if self.grapes is not None:
            keys.add("grapes")
        return frozenset(keys)

    def is_provided(self, name: str) -> bool:
        return name in self.provided

    def get(self, name: str) -> Any:
        return self.values.get(name)
