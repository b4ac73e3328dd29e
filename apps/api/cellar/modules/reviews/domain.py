from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from cellar.core.errors import ValidationError
from cellar.core.validation import check_int_range, check_positive_id, coerce_enum

AXES = ("intensity_aroma", "sweetness", "acidity", "body", "persistence")


class ReviewBullet(str, Enum):
    FRUITY = "fruity"
    FLORAL = "floral"
    SPICY = "spicy"
    MINERAL = "mineral"
    OAK_FORWARD = "oak_forward"
    EASY_DRINKING = "easy_drinking"
    ELEGANT = "elegant"
    POWERFUL = "powerful"
    FOOD_FRIENDLY = "food_friendly"


# stored values written by older clients
LEGACY_BULLETS: Dict[str, ReviewBullet] = {
    "afrutado": ReviewBullet.FRUITY,
    "especiado": ReviewBullet.SPICY,
    "madera_marcada": ReviewBullet.OAK_FORWARD,
    "marked_wood": ReviewBullet.OAK_FORWARD,
    "facil_de_beber": ReviewBullet.EASY_DRINKING,
    "elegante": ReviewBullet.ELEGANT,
    "potente": ReviewBullet.POWERFUL,
    "gastronomico": ReviewBullet.FOOD_FRIENDLY,
}


def bullet_from_storage(raw: Any) -> ReviewBullet:
    value = str(raw).strip()
    legacy = LEGACY_BULLETS.get(value)
    if legacy is not None:
        return legacy
    return coerce_enum(ReviewBullet, value, "bullets")


def bullets_from_storage(raws: Iterable[Any]) -> Tuple[ReviewBullet, ...]:
    """Translate and dedupe, keeping first-seen order (two legacy values may map to one)."""
    out: list = []
    for raw in raws:
        b = bullet_from_storage(raw)
        if b not in out:
            out.append(b)
    return tuple(out)


@dataclass(frozen=True)
class WineReview:
    user_id: int
    wine_id: int
    intensity_aroma: int
    sweetness: int
    acidity: int
    body: int
    persistence: int
    tannin: Optional[int] = None
    score: Optional[int] = None
    bullets: Tuple[ReviewBullet, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        check_positive_id(self.user_id, "user_id")
        check_positive_id(self.wine_id, "wine_id")
        for axis in AXES:
            value = getattr(self, axis)
            if value is None:
                raise ValidationError(axis, f"{axis} is required.")
            check_int_range(value, axis, 0, 5)
        check_int_range(self.tannin, "tannin", 0, 5)
        check_int_range(self.score, "score", 0, 100)

        bullets = tuple(coerce_enum(ReviewBullet, b, "bullets") for b in self.bullets)
        if len(bullets) != len(set(bullets)):
            raise ValidationError("bullets", "review bullets must be unique.")
        object.__setattr__(self, "bullets", bullets)

    def bullet_values(self) -> Tuple[str, ...]:
        return tuple(b.value for b in self.bullets)
