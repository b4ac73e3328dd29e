from __future__ import annotations

from typing import List

from pydantic import BaseModel

from .domain import Country, GrapeColor


class DoOut(BaseModel):
    id: int
    name: str
    region: str
    country: Country
    country_code: str


class DoListOut(BaseModel):
    items: List[DoOut]


class GrapeOut(BaseModel):
    id: int
    name: str
    color: GrapeColor


class GrapeListOut(BaseModel):
    items: List[GrapeOut]
