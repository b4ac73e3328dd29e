from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from cellar.core.db import get_engine
from cellar.core.errors import AlreadyExists, Forbidden, NotFound
from cellar.core.observability import emit
from cellar.modules.wines.queries import load_bullets

from .domain import WineReview


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _review_exists_for(conn: Connection, user_id: int, wine_id: int) -> bool:
    n = conn.execute(
        text("SELECT COUNT(*) FROM review WHERE user_id = :user_id AND wine_id = :wine_id"),
        {"user_id": user_id, "wine_id": wine_id},
    ).scalar_one()
    return int(n) > 0


def _exists(conn: Connection, table: str, row_id: int) -> bool:
    return conn.execute(text(f"SELECT 1 FROM {table} WHERE id = :id"), {"id": row_id}).first() is not None


def _insert_bullets(conn: Connection, review_id: int, review: WineReview) -> None:
    for bullet in review.bullet_values():
        conn.execute(
            text("INSERT INTO review_bullets (review_id, bullet) VALUES (:review_id, :bullet)"),
            {"review_id": review_id, "bullet": bullet},
        )


def _already_exists(review: WineReview) -> AlreadyExists:
    return AlreadyExists(
        "Review already exists for this user and wine.", user_id=review.user_id, wine_id=review.wine_id
    )


def create_review(review: WineReview, request_id: Optional[str] = None) -> int:
    """
    One review per (user, wine). The pre-check gives the common case a clean
    error; the unique constraint catches the concurrent insert that slips past it.
    """
    eng = get_engine()
    with eng.connect() as conn:
        if _review_exists_for(conn, review.user_id, review.wine_id):
            raise _already_exists(review)
        if not _exists(conn, "wine", review.wine_id):
            raise NotFound("wine", review.wine_id)
        if not _exists(conn, "users", review.user_id):
            raise NotFound("user", review.user_id)

    try:
        with eng.begin() as conn:
            review_id = int(
                conn.execute(
                    text(
                        """
                        INSERT INTO review (user_id, wine_id, score, intensity_aroma, sweetness, acidity,
                                            tannin, body, persistence, created_at)
                        VALUES (:user_id, :wine_id, :score, :intensity_aroma, :sweetness, :acidity,
                                :tannin, :body, :persistence, :created_at)
                        RETURNING id
                        """
                    ),
                    {
                        "user_id": review.user_id,
                        "wine_id": review.wine_id,
                        "score": review.score,
                        "intensity_aroma": review.intensity_aroma,
                        "sweetness": review.sweetness,
                        "acidity": review.acidity,
                        "tannin": review.tannin,
                        "body": review.body,
                        "persistence": review.persistence,
                        "created_at": _now_iso(),
                    },
                ).scalar_one()
            )
            _insert_bullets(conn, review_id, review)
    except IntegrityError:
        with eng.connect() as conn:
            if _review_exists_for(conn, review.user_id, review.wine_id):
                raise _already_exists(review) from None
        raise

    emit(
        "info",
        "review.created",
        f"review {review_id} created",
        request_id,
        __name__,
        review_id=review_id,
        wine_id=review.wine_id,
        user_id=review.user_id,
    )
    return review_id


def _load_review(conn: Connection, review_id: int) -> Optional[Dict[str, Any]]:
    row = (
        conn.execute(
            text(
                """
                SELECT id, user_id, wine_id, score, intensity_aroma, sweetness, acidity,
                       tannin, body, persistence, created_at
                FROM review
                WHERE id = :id
                """
            ),
            {"id": review_id},
        )
        .mappings()
        .first()
    )
    if row is None:
        return None
    out = dict(row)
    out["bullets"] = load_bullets(conn, [review_id])[review_id]
    return out


def get_review(review_id: int) -> Dict[str, Any]:
    with get_engine().connect() as conn:
        review = _load_review(conn, review_id)
    if review is None:
        raise NotFound("review", review_id)
    return review


def _check_owner(existing: Dict[str, Any], review_id: int, user_id: int) -> None:
    if int(existing["user_id"]) != int(user_id):
        raise Forbidden("review", review_id, user_id)


def update_review(
    review_id: int, fields: Dict[str, Any], user_id: int, request_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Replace axes and bullets of an existing review. Only its author may do so.
    A missing score keeps the stored one; owner and wine never change.
    """
    with get_engine().begin() as conn:
        existing = _load_review(conn, review_id)
        if existing is None:
            raise NotFound("review", review_id)
        _check_owner(existing, review_id, user_id)

        score = fields.get("score")
        review = WineReview(
            user_id=int(existing["user_id"]),
            wine_id=int(existing["wine_id"]),
            intensity_aroma=fields.get("intensity_aroma"),
            sweetness=fields.get("sweetness"),
            acidity=fields.get("acidity"),
            body=fields.get("body"),
            persistence=fields.get("persistence"),
            tannin=fields.get("tannin"),
            score=existing["score"] if score is None else score,
            bullets=tuple(fields.get("bullets") or ()),
        )

        conn.execute(
            text(
                """
                UPDATE review
                SET intensity_aroma = :intensity_aroma,
                    sweetness = :sweetness,
                    acidity = :acidity,
                    tannin = :tannin,
                    body = :body,
                    persistence = :persistence,
                    score = :score
                WHERE id = :id
                """
            ),
            {
                "id": review_id,
                "intensity_aroma": review.intensity_aroma,
                "sweetness": review.sweetness,
                "acidity": review.acidity,
                "tannin": review.tannin,
                "body": review.body,
                "persistence": review.persistence,
                "score": review.score,
            },
        )
        conn.execute(text("DELETE FROM review_bullets WHERE review_id = :review_id"), {"review_id": review_id})
        _insert_bullets(conn, review_id, review)
        updated = _load_review(conn, review_id)

    emit("info", "review.updated", f"review {review_id} updated", request_id, __name__, review_id=review_id, user_id=user_id)
    return updated


def delete_review(review_id: int, user_id: int, request_id: Optional[str] = None) -> None:
    with get_engine().begin() as conn:
        owner = conn.execute(text("SELECT user_id FROM review WHERE id = :id"), {"id": review_id}).first()
        if owner is None:
            raise NotFound("review", review_id)
        _check_owner({"user_id": owner[0]}, review_id, user_id)
        conn.execute(text("DELETE FROM review WHERE id = :id"), {"id": review_id})

    emit(
        "info",
        "review.deleted",
        f"review {review_id} deleted",
        request_id,
        __name__,
        review_id=review_id,
        user_id=user_id,
    )
