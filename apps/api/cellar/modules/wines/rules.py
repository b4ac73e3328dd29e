from __future__ import annotations

from typing import Optional

from sqlalchemy.engine import Connection

from cellar.core.errors import ReferenceNotFound, ValidationError
from cellar.modules.catalog.domain import Country, DenominationOfOrigin
from cellar.modules.catalog.service import find_do


def load_do(conn: Connection, do_id: int) -> DenominationOfOrigin:
    do = find_do(conn, do_id)
    if do is None:
        raise ReferenceNotFound("do", [do_id])
    return do


def resolve_country(conn: Connection, do_id: Optional[int], country: Optional[Country]) -> Optional[Country]:
    """
    Country a wine ends up with, given an optional DO and an optional declared country.

    - DO given and unknown -> ReferenceNotFound
    - both given -> must agree (ValidationError otherwise)
    - only DO -> DO country
    - only country -> country; neither -> None
    """
    if do_id is None:
        return country
    do = load_do(conn, do_id)
    if country is not None and country != do.country:
        raise ValidationError("country", "country must match do country when do_id is provided.")
    return do.country
