"""
Read side of the wine aggregate: paginated listing and the nested detail view.

Listing builds its WHERE clause from ordered (fragment, params) pairs so only
the supplied filters are applied and every value stays bound. Average score is
never stored; it is recomputed from reviews on every query.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection

from cellar.core.db import get_engine
from cellar.core.errors import ValidationError
from cellar.core.validation import check_int_range, check_positive_id, coerce_optional_enum
from cellar.modules.catalog.domain import Country
from cellar.modules.reviews.domain import bullets_from_storage

from .domain import WineType

SCORE_EXPR = (
    "(SELECT ROUND(AVG(r.score), 2) FROM review r "
    "WHERE r.wine_id = w.id AND r.score IS NOT NULL)"
)

SORT_COLUMNS = {
    "created_at": "w.created_at",
    "updated_at": "w.updated_at",
    "name": "w.name",
    "vintage_year": "w.vintage_year",
    "score": SCORE_EXPR,
}
SORT_DIRECTIONS = ("asc", "desc")

SCORE_BUCKETS: Dict[str, Tuple[Optional[int], Optional[int]]] = {
    "any": (None, None),
    "lt70": (None, 69),
    "<70": (None, 69),
    "70_80": (70, 80),
    "70-80": (70, 80),
    "80_90": (80, 90),
    "80-90": (80, 90),
    "90_plus": (90, None),
    "90+": (90, None),
}

MAX_LIMIT = 100


def resolve_score_bucket(
    bucket: Optional[str], score_min: Optional[int], score_max: Optional[int]
) -> Tuple[Optional[int], Optional[int]]:
    """Fill in bounds from a bucket shorthand; explicit bounds always win."""
    if bucket is None or str(bucket).strip() == "":
        return score_min, score_max
    key = str(bucket).strip().lower()
    if key not in SCORE_BUCKETS:
        allowed = ", ".join(SCORE_BUCKETS)
        raise ValidationError("score_bucket", f"score_bucket must be one of: {allowed}.")
    lo, hi = SCORE_BUCKETS[key]
    return (score_min if score_min is not None else lo, score_max if score_max is not None else hi)


@dataclass(frozen=True)
class WineListQuery:
    page: int = 1
    limit: int = 20
    search: Optional[str] = None
    wine_type: Optional[WineType] = None
    country: Optional[Country] = None
    do_id: Optional[int] = None
    grape_id: Optional[int] = None
    score_min: Optional[int] = None
    score_max: Optional[int] = None
    sort_by: str = "created_at"
    sort_dir: str = "desc"

    def __post_init__(self) -> None:
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise ValidationError("page", "page must be >= 1.")
        check_int_range(self.limit, "limit", 1, MAX_LIMIT)
        search = None if self.search is None else str(self.search).strip()
        object.__setattr__(self, "search", search or None)
        object.__setattr__(self, "wine_type", coerce_optional_enum(WineType, self.wine_type, "wine_type"))
        object.__setattr__(self, "country", coerce_optional_enum(Country, self.country, "country"))
        if self.do_id is not None:
            check_positive_id(self.do_id, "do_id")
        if self.grape_id is not None:
            check_positive_id(self.grape_id, "grape_id")
        check_int_range(self.score_min, "score_min", 0, 100)
        check_int_range(self.score_max, "score_max", 0, 100)
        if self.score_min is not None and self.score_max is not None and self.score_min > self.score_max:
            raise ValidationError("score_min", "score_min must be <= score_max.")
        if self.sort_by not in SORT_COLUMNS:
            raise ValidationError("sort_by", f"sort_by must be one of: {', '.join(SORT_COLUMNS)}.")
        if self.sort_dir not in SORT_DIRECTIONS:
            raise ValidationError("sort_dir", "sort_dir must be asc or desc.")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _where_parts(q: WineListQuery) -> List[Tuple[str, Dict[str, Any]]]:
    parts: List[Tuple[str, Dict[str, Any]]] = []
    if q.search is not None:
        parts.append(
            (
                "(LOWER(w.name) LIKE :search ESCAPE '\\' OR LOWER(w.winery) LIKE :search ESCAPE '\\' "
                "OR LOWER(d.name) LIKE :search ESCAPE '\\' OR LOWER(d.region) LIKE :search ESCAPE '\\')",
                {"search": f"%{_escape_like(q.search.lower())}%"},
            )
        )
    if q.wine_type is not None:
        parts.append(("w.wine_type = :wine_type", {"wine_type": q.wine_type.value}))
    if q.country is not None:
        parts.append(("w.country = :country", {"country": q.country.value}))
    if q.do_id is not None:
        parts.append(("w.do_id = :do_id", {"do_id": q.do_id}))
    if q.grape_id is not None:
        parts.append(
            (
                "EXISTS (SELECT 1 FROM wine_grape wg WHERE wg.wine_id = w.id AND wg.grape_id = :grape_id)",
                {"grape_id": q.grape_id},
            )
        )
    if q.score_min is not None:
        parts.append((f"{SCORE_EXPR} >= :score_min", {"score_min": q.score_min}))
    if q.score_max is not None:
        parts.append((f"{SCORE_EXPR} <= :score_max", {"score_max": q.score_max}))
    return parts


def _photo_summaries(conn: Connection, wine_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
    out: Dict[int, List[Dict[str, Any]]] = {wid: [] for wid in wine_ids}
    if not wine_ids:
        return out
    stmt = text(
        "SELECT wine_id, type, url FROM wine_photo WHERE wine_id IN :ids ORDER BY id ASC"
    ).bindparams(bindparam("ids", expanding=True))
    for r in conn.execute(stmt, {"ids": wine_ids}).mappings():
        out[int(r["wine_id"])].append({"type": r["type"], "url": r["url"]})
    return out


def _as_float(v: Any) -> Optional[float]:
    return None if v is None else float(v)


def list_wines(q: WineListQuery) -> Dict[str, Any]:
    parts = _where_parts(q)
    where_sql = (" WHERE " + " AND ".join(frag for frag, _ in parts)) if parts else ""
    params: Dict[str, Any] = {}
    for _, p in parts:
        params.update(p)

    sort_expr = SORT_COLUMNS[q.sort_by]
    direction = q.sort_dir.upper()
    base = 'FROM wine w LEFT JOIN "do" d ON d.id = w.do_id'

    with get_engine().connect() as conn:
        total = int(conn.execute(text(f"SELECT COUNT(*) {base}{where_sql}"), params).scalar_one())

        rows = conn.execute(
            text(
                f"""
                SELECT w.id, w.name, w.winery, w.wine_type, w.country,
                       d.id AS do_id, d.name AS do_name, w.vintage_year,
                       {SCORE_EXPR} AS avg_score, w.created_at, w.updated_at
                {base}{where_sql}
                ORDER BY CASE WHEN {sort_expr} IS NULL THEN 1 ELSE 0 END,
                         {sort_expr} {direction},
                         w.id DESC
                LIMIT :limit OFFSET :offset
                """
            ),
            {**params, "limit": q.limit, "offset": q.offset},
        ).mappings().all()

        photos = _photo_summaries(conn, [int(r["id"]) for r in rows])

    items = [
        {
            "id": int(r["id"]),
            "name": r["name"],
            "winery": r["winery"],
            "wine_type": r["wine_type"],
            "country": r["country"],
            "do_id": None if r["do_id"] is None else int(r["do_id"]),
            "do_name": r["do_name"],
            "vintage_year": r["vintage_year"],
            "avg_score": _as_float(r["avg_score"]),
            "created_at": r["created_at"],
            "updated_at": r["updated_at"],
            "photos": photos[int(r["id"])],
        }
        for r in rows
    ]

    total_pages = 0 if total == 0 else math.ceil(total / q.limit)
    return {
        "items": items,
        "pagination": {
            "page": q.page,
            "limit": q.limit,
            "total_items": total,
            "total_pages": total_pages,
            "has_next": q.page < total_pages,
            "has_prev": q.page > 1,
        },
    }


# -------------------------
# detail
# -------------------------
def _load_grapes(conn: Connection, wine_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        text(
            """
            SELECT g.id, g.name, g.color, wg.percentage
            FROM wine_grape wg
            INNER JOIN grape g ON g.id = wg.grape_id
            WHERE wg.wine_id = :wine_id
            ORDER BY g.name ASC
            """
        ),
        {"wine_id": wine_id},
    ).mappings()
    return [
        {"id": int(r["id"]), "name": r["name"], "color": r["color"], "percentage": _as_float(r["percentage"])}
        for r in rows
    ]


def _load_purchases(conn: Connection, wine_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        text(
            """
            SELECT wp.id, wp.price_paid, wp.purchased_at,
                   p.id AS place_id, p.place_type, p.name AS place_name,
                   p.address AS place_address, p.city AS place_city, p.country AS place_country
            FROM wine_purchase wp
            INNER JOIN place p ON p.id = wp.place_id
            WHERE wp.wine_id = :wine_id
            ORDER BY wp.purchased_at DESC, wp.id DESC
            """
        ),
        {"wine_id": wine_id},
    ).mappings()
    return [
        {
            "id": int(r["id"]),
            "price_paid": _as_float(r["price_paid"]),
            "purchased_at": r["purchased_at"],
            "place": {
                "id": int(r["place_id"]),
                "place_type": r["place_type"],
                "name": r["place_name"],
                "address": r["place_address"],
                "city": r["place_city"],
                "country": r["place_country"],
            },
        }
        for r in rows
    ]


def _load_awards(conn: Connection, wine_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        text(
            """
            SELECT id, name, score, year
            FROM wine_award
            WHERE wine_id = :wine_id
            ORDER BY CASE WHEN year IS NULL THEN 1 ELSE 0 END, year DESC, id ASC
            """
        ),
        {"wine_id": wine_id},
    ).mappings()
    return [
        {"id": int(r["id"]), "name": r["name"], "score": _as_float(r["score"]), "year": r["year"]}
        for r in rows
    ]


def _load_photos(conn: Connection, wine_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        text(
            "SELECT id, type, url, hash, size, extension FROM wine_photo WHERE wine_id = :wine_id ORDER BY id ASC"
        ),
        {"wine_id": wine_id},
    ).mappings()
    return [dict(r) for r in rows]


def load_bullets(conn: Connection, review_ids: List[int]) -> Dict[int, List[str]]:
    raw: Dict[int, List[str]] = {rid: [] for rid in review_ids}
    if not review_ids:
        return raw
    stmt = text(
        "SELECT review_id, bullet FROM review_bullets WHERE review_id IN :ids ORDER BY bullet ASC"
    ).bindparams(bindparam("ids", expanding=True))
    for r in conn.execute(stmt, {"ids": review_ids}):
        raw[int(r[0])].append(str(r[1]))
    return {rid: [b.value for b in bullets_from_storage(values)] for rid, values in raw.items()}


def _load_reviews(conn: Connection, wine_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        text(
            """
            SELECT r.id, r.user_id, r.score, r.intensity_aroma, r.sweetness, r.acidity,
                   r.tannin, r.body, r.persistence, r.created_at,
                   u.name AS user_name, u.lastname AS user_lastname
            FROM review r
            INNER JOIN users u ON u.id = r.user_id
            WHERE r.wine_id = :wine_id
            ORDER BY r.created_at DESC, r.id DESC
            """
        ),
        {"wine_id": wine_id},
    ).mappings().all()
    bullets = load_bullets(conn, [int(r["id"]) for r in rows])
    out: List[Dict[str, Any]] = []
    for r in rows:
        item = dict(r)
        item["user"] = {"id": int(r["user_id"]), "name": item.pop("user_name"), "lastname": item.pop("user_lastname")}
        item["bullets"] = bullets[int(r["id"])]
        out.append(item)
    return out


def get_wine_detail(wine_id: int) -> Optional[Dict[str, Any]]:
    with get_engine().connect() as conn:
        row = (
            conn.execute(
                text(
                    """
                    SELECT w.id, w.name, w.winery, w.wine_type, w.country, w.aging_type,
                           w.vintage_year, w.alcohol_percentage, w.created_at, w.updated_at,
                           d.id AS do_id, d.name AS do_name, d.region AS do_region,
                           d.country AS do_country, d.country_code AS do_country_code
                    FROM wine w
                    LEFT JOIN "do" d ON d.id = w.do_id
                    WHERE w.id = :id
                    """
                ),
                {"id": wine_id},
            )
            .mappings()
            .first()
        )
        if row is None:
            return None

        do = None
        if row["do_id"] is not None:
            do = {
                "id": int(row["do_id"]),
                "name": row["do_name"],
                "region": row["do_region"],
                "country": row["do_country"],
                "country_code": row["do_country_code"],
            }

        return {
            "id": int(row["id"]),
            "name": row["name"],
            "winery": row["winery"],
            "wine_type": row["wine_type"],
            "country": row["country"],
            "aging_type": row["aging_type"],
            "vintage_year": row["vintage_year"],
            "alcohol_percentage": _as_float(row["alcohol_percentage"]),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
            "do": do,
            "grapes": _load_grapes(conn, wine_id),
            "purchases": _load_purchases(conn, wine_id),
            "awards": _load_awards(conn, wine_id),
            "photos": _load_photos(conn, wine_id),
            "reviews": _load_reviews(conn, wine_id),
        }
