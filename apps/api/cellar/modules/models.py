"""Imports every table so SQLModel.metadata is complete (alembic env, init_db)."""
from __future__ import annotations

from cellar.modules.catalog.models import DoRecord, GrapeRecord
from cellar.modules.reviews.models import ReviewBulletRecord, ReviewRecord
from cellar.modules.users.models import UserRecord
from cellar.modules.wines.models import (
    PlaceRecord,
    WineAwardRecord,
    WineGrapeRecord,
    WinePhotoRecord,
    WinePurchaseRecord,
    WineRecord,
)

__all__ = [
    "DoRecord",
    "GrapeRecord",
    "PlaceRecord",
    "ReviewBulletRecord",
    "ReviewRecord",
    "UserRecord",
    "WineAwardRecord",
    "WineGrapeRecord",
    "WinePhotoRecord",
    "WinePurchaseRecord",
    "WineRecord",
]
