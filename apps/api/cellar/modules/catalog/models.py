from __future__ import annotations

from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class DoRecord(SQLModel, table=True):
    __tablename__ = "do"
    __table_args__ = (UniqueConstraint("country", "name", name="uq_do_country_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    region: str
    country: str  # Country
    country_code: str = Field(max_length=2)


class GrapeRecord(SQLModel, table=True):
    __tablename__ = "grape"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)
    color: str  # red|white
