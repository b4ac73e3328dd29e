from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cellar.core.errors import ValidationError
from cellar.core.validation import check_positive_id, coerce_enum, require_text


class Country(str, Enum):
    SPAIN = "spain"
    FRANCE = "france"
    ITALY = "italy"
    PORTUGAL = "portugal"
    GERMANY = "germany"
    ARGENTINA = "argentina"
    CHILE = "chile"
    UNITED_STATES = "united_states"
    SOUTH_AFRICA = "south_africa"
    AUSTRALIA = "australia"


class GrapeColor(str, Enum):
    RED = "red"
    WHITE = "white"


@dataclass(frozen=True)
class DenominationOfOrigin:
    id: int
    name: str
    region: str
    country: Country
    country_code: str

    def __post_init__(self) -> None:
        check_positive_id(self.id, "do_id")
        object.__setattr__(self, "name", require_text(self.name, "do.name"))
        object.__setattr__(self, "region", require_text(self.region, "do.region"))
        object.__setattr__(self, "country", coerce_enum(Country, self.country, "do.country"))
        if len(self.country_code or "") != 2:
            raise ValidationError("do.country_code", "do country code must have 2 characters.")


@dataclass(frozen=True)
class Grape:
    id: int
    name: str
    color: GrapeColor

    def __post_init__(self) -> None:
        check_positive_id(self.id, "grape_id")
        object.__setattr__(self, "name", require_text(self.name, "grape.name"))
        object.__setattr__(self, "color", coerce_enum(GrapeColor, self.color, "grape.color"))
