from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ReviewAxesIn(BaseModel):
    intensity_aroma: int
    sweetness: int
    acidity: int
    tannin: Optional[int] = None
    body: int
    persistence: int
    score: Optional[int] = None
    bullets: List[str] = Field(default_factory=list)


class ReviewCreateIn(ReviewAxesIn):
    wine_id: int


class ReviewCreatedOut(BaseModel):
    id: int


class ReviewOut(BaseModel):
    id: int
    user_id: int
    wine_id: int
    score: Optional[int] = None
    intensity_aroma: int
    sweetness: int
    acidity: int
    tannin: Optional[int] = None
    body: int
    persistence: int
    bullets: List[str] = Field(default_factory=list)
    created_at: str
