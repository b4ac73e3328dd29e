from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlmodel import Field, SQLModel


# one review per (user_id, wine_id); the constraint backs up the app-level check
class ReviewRecord(SQLModel, table=True):
    __tablename__ = "review"
    __table_args__ = (UniqueConstraint("user_id", "wine_id", name="uq_review_user_wine"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    )
    wine_id: int = Field(
        sa_column=Column(Integer, ForeignKey("wine.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    score: Optional[int] = Field(default=None)
    intensity_aroma: int
    sweetness: int
    acidity: int
    tannin: Optional[int] = Field(default=None)
    body: int
    persistence: int
    created_at: str


class ReviewBulletRecord(SQLModel, table=True):
    __tablename__ = "review_bullets"

    review_id: int = Field(
        sa_column=Column(Integer, ForeignKey("review.id", ondelete="CASCADE"), primary_key=True)
    )
    bullet: str = Field(sa_column=Column(String(32), primary_key=True))
