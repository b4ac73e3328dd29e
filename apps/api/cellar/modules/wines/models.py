from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, ForeignKey, Index, Integer, Numeric, String, text
from sqlmodel import Field, SQLModel


class WineRecord(SQLModel, table=True):
    __tablename__ = "wine"
    __table_args__ = (
        Index("ix_wine_winery_name_vintage", "winery", "name", "vintage_year"),
        Index("ix_wine_country_do", "country", "do_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    winery: Optional[str] = Field(default=None)
    wine_type: Optional[str] = Field(default=None)  # WineType
    do_id: Optional[int] = Field(default=None, foreign_key="do.id")
    country: Optional[str] = Field(default=None)  # Country
    aging_type: Optional[str] = Field(default=None)  # AgingType
    vintage_year: Optional[int] = Field(default=None)
    alcohol_percentage: Optional[float] = Field(
        default=None, sa_column=Column(Numeric(5, 2, asdecimal=False), nullable=True)
    )

    created_at: str
    updated_at: str


class WineGrapeRecord(SQLModel, table=True):
    __tablename__ = "wine_grape"

    wine_id: int = Field(
        sa_column=Column(Integer, ForeignKey("wine.id", ondelete="CASCADE"), primary_key=True)
    )
    grape_id: int = Field(sa_column=Column(Integer, ForeignKey("grape.id"), primary_key=True))
    percentage: Optional[float] = Field(
        default=None, sa_column=Column(Numeric(5, 2, asdecimal=False), nullable=True)
    )


# one row per purchase, never shared
class PlaceRecord(SQLModel, table=True):
    __tablename__ = "place"

    id: Optional[int] = Field(default=None, primary_key=True)
    place_type: str  # supermarket|restaurant
    name: str
    address: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None)
    country: str


class WinePurchaseRecord(SQLModel, table=True):
    __tablename__ = "wine_purchase"
    __table_args__ = (Index("ix_wine_purchase_wine_purchased_at", "wine_id", "purchased_at"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    wine_id: int = Field(
        sa_column=Column(Integer, ForeignKey("wine.id", ondelete="CASCADE"), nullable=False)
    )
    place_id: int = Field(sa_column=Column(Integer, ForeignKey("place.id"), nullable=False))
    price_paid: float = Field(sa_column=Column(Numeric(10, 2, asdecimal=False), nullable=False))
    purchased_at: str
    created_at: str


class WineAwardRecord(SQLModel, table=True):
    __tablename__ = "wine_award"
    __table_args__ = (Index("ix_wine_award_wine_name_year", "wine_id", "name", "year"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    wine_id: int = Field(
        sa_column=Column(Integer, ForeignKey("wine.id", ondelete="CASCADE"), nullable=False)
    )
    name: str  # AwardName
    score: Optional[float] = Field(
        default=None, sa_column=Column(Numeric(5, 2, asdecimal=False), nullable=True)
    )
    year: Optional[int] = Field(default=None)


# at most one photo per (wine_id, type) when type is set (partial unique index)
class WinePhotoRecord(SQLModel, table=True):
    __tablename__ = "wine_photo"
    __table_args__ = (
        Index(
            "uq_wine_photo_wine_type",
            "wine_id",
            "type",
            unique=True,
            sqlite_where=text("type IS NOT NULL"),
            postgresql_where=text("type IS NOT NULL"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    wine_id: int = Field(
        sa_column=Column(Integer, ForeignKey("wine.id", ondelete="CASCADE"), nullable=False)
    )
    url: str
    type: Optional[str] = Field(default=None)  # PhotoType
    hash: str = Field(sa_column=Column(String(16), nullable=False))
    size: int
    extension: str
