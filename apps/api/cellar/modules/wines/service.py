from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection

from cellar.core import storage
from cellar.core.db import get_engine
from cellar.core.errors import NotFound, ReferenceNotFound, ValidationError
from cellar.core.observability import emit
from cellar.core.validation import check_positive_id, coerce_enum, coerce_optional_enum, optional_text
from cellar.modules.catalog.domain import Country
from cellar.modules.catalog.service import find_existing_grape_ids

from .domain import (
    AgingType,
    CreateWineCommand,
    PhotoType,
    UpdateWineCommand,
    WineGrape,
    WinePhoto,
    WineType,
    check_alcohol_percentage,
    check_vintage_year,
    check_wine_name,
)
from .rules import load_do, resolve_country

logger = logging.getLogger(__name__)

# column order of the dynamic SET clause
UPDATABLE_COLUMNS = (
    "name",
    "winery",
    "wine_type",
    "do_id",
    "country",
    "aging_type",
    "vintage_year",
    "alcohol_percentage",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _enum_value(v: Any) -> Any:
    return v.value if hasattr(v, "value") else v


# -------------------------
# shared checks
# -------------------------
def _assert_unique_grapes(grapes: Sequence[WineGrape]) -> None:
    ids = [g.grape_id for g in grapes]
    if len(ids) != len(set(ids)):
        raise ValidationError("grapes", "duplicate grape_id is not allowed.")


def _assert_grapes_exist(conn: Connection, grapes: Sequence[WineGrape]) -> None:
    ids = [g.grape_id for g in grapes]
    if not ids:
        return
    existing = find_existing_grape_ids(conn, ids)
    missing = sorted(set(ids) - existing)
    if missing:
        raise ReferenceNotFound("grape", missing)


def _insert_grapes(conn: Connection, wine_id: int, grapes: Iterable[WineGrape]) -> None:
    for g in grapes:
        conn.execute(
            text("INSERT INTO wine_grape (wine_id, grape_id, percentage) VALUES (:wine_id, :grape_id, :percentage)"),
            {"wine_id": wine_id, "grape_id": g.grape_id, "percentage": g.percentage},
        )


# -------------------------
# create
# -------------------------
def create_wine(command: CreateWineCommand, request_id: Optional[str] = None) -> int:
    """
    Insert wine + grape links + purchases (place first) + awards as one unit.

    Shape is already checked by the value objects; here: duplicate grapes,
    DO/country consistency, grape existence, then the transactional inserts.
    """
    wine = command.wine
    _assert_unique_grapes(command.grapes)

    with get_engine().begin() as conn:
        country = resolve_country(conn, wine.do_id, wine.country)
        _assert_grapes_exist(conn, command.grapes)

        now = _now_iso()
        wine_id = int(
            conn.execute(
                text(
                    """
                    INSERT INTO wine (name, winery, wine_type, do_id, country, aging_type,
                                      vintage_year, alcohol_percentage, created_at, updated_at)
                    VALUES (:name, :winery, :wine_type, :do_id, :country, :aging_type,
                            :vintage_year, :alcohol_percentage, :created_at, :updated_at)
                    RETURNING id
                    """
                ),
                {
                    "name": wine.name,
                    "winery": wine.winery,
                    "wine_type": _enum_value(wine.wine_type),
                    "do_id": wine.do_id,
                    "country": _enum_value(country),
                    "aging_type": _enum_value(wine.aging_type),
                    "vintage_year": wine.vintage_year,
                    "alcohol_percentage": wine.alcohol_percentage,
                    "created_at": now,
                    "updated_at": now,
                },
            ).scalar_one()
        )

        _insert_grapes(conn, wine_id, command.grapes)

        for purchase in command.purchases:
            place = purchase.place
            place_id = conn.execute(
                text(
                    """
                    INSERT INTO place (place_type, name, address, city, country)
                    VALUES (:place_type, :name, :address, :city, :country)
                    RETURNING id
                    """
                ),
                {
                    "place_type": place.place_type.value,
                    "name": place.name,
                    "address": place.address,
                    "city": place.city,
                    "country": place.country.value,
                },
            ).scalar_one()
            conn.execute(
                text(
                    """
                    INSERT INTO wine_purchase (wine_id, place_id, price_paid, purchased_at, created_at)
                    VALUES (:wine_id, :place_id, :price_paid, :purchased_at, :created_at)
                    """
                ),
                {
                    "wine_id": wine_id,
                    "place_id": int(place_id),
                    "price_paid": purchase.price_paid,
                    "purchased_at": purchase.purchased_at_iso(),
                    "created_at": now,
                },
            )

        for award in command.awards:
            conn.execute(
                text("INSERT INTO wine_award (wine_id, name, score, year) VALUES (:wine_id, :name, :score, :year)"),
                {"wine_id": wine_id, "name": award.name.value, "score": award.score, "year": award.year},
            )

    emit(
        "info",
        "wine.created",
        f"wine {wine_id} created",
        request_id,
        __name__,
        wine_id=wine_id,
        grapes=len(command.grapes),
        purchases=len(command.purchases),
        awards=len(command.awards),
    )
    return wine_id


# -------------------------
# partial update
# -------------------------
def _normalize_patch_values(command: UpdateWineCommand) -> Dict[str, Any]:
    if not command.provided:
        raise ValidationError(None, "at least one field required")

    unknown = sorted(set(command.values) - set(UPDATABLE_COLUMNS))
    if unknown:
        raise ValidationError(unknown[0], f"{unknown[0]} cannot be updated.")

    out: Dict[str, Any] = {}
    for key, raw in command.values.items():
        if key == "name":
            out[key] = check_wine_name(raw)
        elif key == "winery":
            out[key] = optional_text(raw)
        elif key == "wine_type":
            out[key] = coerce_optional_enum(WineType, raw, key)
        elif key == "country":
            out[key] = coerce_optional_enum(Country, raw, key)
        elif key == "aging_type":
            out[key] = coerce_optional_enum(AgingType, raw, key)
        elif key == "vintage_year":
            out[key] = check_vintage_year(raw)
        elif key == "alcohol_percentage":
            out[key] = check_alcohol_percentage(raw)
        elif key == "do_id":
            out[key] = None if raw is None else check_positive_id(raw, "do_id")

    if command.grapes is not None:
        _assert_unique_grapes(command.grapes)
    return out


def _current_do_id(conn: Connection, wine_id: int) -> Optional[int]:
    row = conn.execute(text("SELECT do_id FROM wine WHERE id = :id"), {"id": wine_id}).first()
    if row is None or row[0] is None:
        return None
    return int(row[0])


def _normalize_country_with_do(conn: Connection, wine_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
    if "do_id" in values:
        if values["do_id"] is None:
            return values
        do = load_do(conn, values["do_id"])
        if "country" in values:
            if values["country"] is None:
                raise ValidationError("country", "country cannot be null when do_id is provided.")
            if values["country"] != do.country:
                raise ValidationError("country", "country must match do country when do_id is provided.")
            return values
        return {**values, "country": do.country}

    # country alone: must still agree with the DO already on the wine
    if values.get("country") is not None:
        current = _current_do_id(conn, wine_id)
        if current is not None:
            do = load_do(conn, current)
            if values["country"] != do.country:
                raise ValidationError("country", "country must match the wine's do country.")
    return values


def _set_clause(values: Dict[str, Any]) -> List[Tuple[str, Dict[str, Any]]]:
    parts: List[Tuple[str, Dict[str, Any]]] = []
    for col in UPDATABLE_COLUMNS:
        if col in values:
            parts.append((f"{col} = :{col}", {col: _enum_value(values[col])}))
    return parts


def _wine_exists(conn: Connection, wine_id: int) -> bool:
    return conn.execute(text("SELECT 1 FROM wine WHERE id = :id"), {"id": wine_id}).first() is not None


def update_wine(command: UpdateWineCommand, request_id: Optional[str] = None) -> bool:
    """
    Apply only the provided fields. Returns False when the wine does not exist.

    When grapes are provided the whole set is replaced in the same transaction
    as the column update; updated_at is always bumped.
    """
    values = _normalize_patch_values(command)

    with get_engine().begin() as conn:
        if command.grapes is not None:
            _assert_grapes_exist(conn, command.grapes)
        values = _normalize_country_with_do(conn, command.wine_id, values)

        # an empty provided set never gets here, so there is always a write
        parts = _set_clause(values)
        parts.append(("updated_at = :updated_at", {"updated_at": _now_iso()}))
        params: Dict[str, Any] = {"id": command.wine_id}
        for _, p in parts:
            params.update(p)
        res = conn.execute(
            text(f"UPDATE wine SET {', '.join(frag for frag, _ in parts)} WHERE id = :id"),
            params,
        )
        if res.rowcount <= 0:
            return False

        if command.grapes is not None:
            conn.execute(text("DELETE FROM wine_grape WHERE wine_id = :wine_id"), {"wine_id": command.wine_id})
            _insert_grapes(conn, command.wine_id, command.grapes)

    emit(
        "info",
        "wine.updated",
        f"wine {command.wine_id} updated",
        request_id,
        __name__,
        wine_id=command.wine_id,
        fields=sorted(command.provided),
    )
    return True


# -------------------------
# delete
# -------------------------
def delete_wine(wine_id: int, request_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Delete the wine (rows cascade), the places owned by its purchases, then the
    photo files captured beforehand and the wine's photo directory.
    """
    with get_engine().begin() as conn:
        photo_urls = [
            str(r[0])
            for r in conn.execute(
                text("SELECT url FROM wine_photo WHERE wine_id = :wine_id ORDER BY id ASC"),
                {"wine_id": wine_id},
            )
        ]
        place_ids = [
            int(r[0])
            for r in conn.execute(
                text("SELECT place_id FROM wine_purchase WHERE wine_id = :wine_id"),
                {"wine_id": wine_id},
            )
        ]

        res = conn.execute(text("DELETE FROM wine WHERE id = :id"), {"id": wine_id})
        if res.rowcount <= 0:
            raise NotFound("wine", wine_id)

        if place_ids:
            conn.execute(
                text("DELETE FROM place WHERE id IN :ids").bindparams(bindparam("ids", expanding=True)),
                {"ids": place_ids},
            )

    # rows are committed; file cleanup failures are logged, never raised
    deleted_files = 0
    for url in dict.fromkeys(photo_urls):
        try:
            if storage.delete_photo_by_url(url):
                deleted_files += 1
        except (OSError, ValueError):
            logger.warning("could not remove photo %s of wine %s", url, wine_id, exc_info=True)
    try:
        dir_removed = storage.delete_wine_directory(wine_id)
    except OSError:
        logger.warning("could not remove photo directory of wine %s", wine_id, exc_info=True)
        dir_removed = False

    emit(
        "info",
        "wine.deleted",
        f"wine {wine_id} deleted",
        request_id,
        __name__,
        wine_id=wine_id,
        photo_files_deleted=deleted_files,
        photo_dir_removed=dir_removed,
    )
    return {
        "wine_id": wine_id,
        "photo_files_deleted": deleted_files,
        "photo_dir_removed": dir_removed,
        "status": "deleted",
    }


# -------------------------
# photos
# -------------------------
_EXT_RE = re.compile(r"[^a-z0-9]")


def _extract_extension(original_filename: str) -> str:
    suffix = Path(original_filename or "").suffix.lower().lstrip(".")
    suffix = _EXT_RE.sub("", suffix)
    return suffix[:10] if suffix else "bin"


def _sha256_file(p: Path) -> str:
    h = hashlib.sha256()
    with p.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def store_wine_photo(
    wine_id: int,
    photo_type: PhotoType,
    source_path: Path,
    original_filename: str,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Upsert the photo of a given type: one row per (wine, type). Replacing keeps
    the row id, points it at the new file and removes the old file.
    """
    photo_type = coerce_enum(PhotoType, photo_type, "type")
    eng = get_engine()
    with eng.connect() as conn:
        if not _wine_exists(conn, wine_id):
            raise NotFound("wine", wine_id)

    if not source_path.is_file():
        raise ValidationError("file", "Uploaded file path is invalid.")
    size = source_path.stat().st_size
    if size <= 0:
        raise ValidationError("file", "Uploaded file is empty.")

    extension = _extract_extension(original_filename)
    file_hash = _sha256_file(source_path)[:16]
    url = storage.save_photo(source_path, wine_id, file_hash, extension)
    photo = WinePhoto(url=url, type=photo_type, hash=file_hash, size=size, extension=extension)

    with eng.begin() as conn:
        existing = (
            conn.execute(
                text("SELECT id, url FROM wine_photo WHERE wine_id = :wine_id AND type = :type"),
                {"wine_id": wine_id, "type": photo_type.value},
            )
            .mappings()
            .first()
        )
        params = {
            "wine_id": wine_id,
            "url": photo.url,
            "type": photo_type.value,
            "hash": photo.hash,
            "size": photo.size,
            "extension": photo.extension,
        }
        if existing is None:
            photo_id = int(
                conn.execute(
                    text(
                        """
                        INSERT INTO wine_photo (wine_id, url, type, hash, size, extension)
                        VALUES (:wine_id, :url, :type, :hash, :size, :extension)
                        RETURNING id
                        """
                    ),
                    params,
                ).scalar_one()
            )
        else:
            photo_id = int(existing["id"])
            conn.execute(
                text("UPDATE wine_photo SET url = :url, hash = :hash, size = :size, extension = :extension WHERE id = :id"),
                {**params, "id": photo_id},
            )

        stale_url: Optional[str] = None
        if existing is not None and str(existing["url"]) != photo.url:
            # identical bytes stored under another type share the file
            shared = conn.execute(
                text("SELECT 1 FROM wine_photo WHERE url = :url AND id <> :id"),
                {"url": str(existing["url"]), "id": photo_id},
            ).first()
            if shared is None:
                stale_url = str(existing["url"])

    if stale_url is not None:
        try:
            storage.delete_photo_by_url(stale_url)
        except (OSError, ValueError):
            logger.warning("could not remove replaced photo %s", stale_url, exc_info=True)

    emit("info", "wine.photo.stored", f"photo {photo_id} stored", request_id, __name__, wine_id=wine_id, type=photo_type.value)
    return {
        "id": photo_id,
        "wine_id": wine_id,
        "type": photo_type.value,
        "url": photo.url,
        "hash": photo.hash,
        "size": photo.size,
        "extension": photo.extension,
    }
