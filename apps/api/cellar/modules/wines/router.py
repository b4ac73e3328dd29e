from __future__ import annotations

import tempfile
from pathlib import Path as FsPath

from fastapi import APIRouter, Path, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from cellar.core.errors import NotFound, ValidationError
from cellar.core.storage import get_max_photo_bytes

from .domain import Award, CreateWineCommand, Place, Purchase, UpdateWineCommand, Wine, WineGrape
from .queries import WineListQuery, get_wine_detail, list_wines, resolve_score_bucket
from .schemas import (
    WineCreateIn,
    WineCreatedOut,
    WineDeleteOut,
    WineDetailOut,
    WineListOut,
    WinePatchIn,
    WinePhotoStoredOut,
)
from .service import create_wine, delete_wine, store_wine_photo, update_wine

router = APIRouter(tags=["wines"])


def _rid(request: Request):
    return getattr(request.state, "request_id", None)


def _grapes(items) -> tuple:
    return tuple(WineGrape(grape_id=g.grape_id, percentage=g.percentage) for g in items)


def _create_command(body: WineCreateIn) -> CreateWineCommand:
    wine = Wine(
        name=body.name,
        winery=body.winery,
        wine_type=body.wine_type,
        country=body.country,
        aging_type=body.aging_type,
        vintage_year=body.vintage_year,
        alcohol_percentage=body.alcohol_percentage,
        do_id=body.do_id,
    )
    purchases = tuple(
        Purchase(
            place=Place(
                place_type=p.place.place_type,
                name=p.place.name,
                country=p.place.country,
                address=p.place.address,
                city=p.place.city,
            ),
            price_paid=p.price_paid,
            purchased_at=p.purchased_at,
        )
        for p in body.purchases
    )
    awards = tuple(Award(name=a.name, score=a.score, year=a.year) for a in body.awards)
    return CreateWineCommand(wine=wine, grapes=_grapes(body.grapes), purchases=purchases, awards=awards)


def _update_command(wine_id: int, body: WinePatchIn) -> UpdateWineCommand:
    patch = body.model_dump(exclude_unset=True)
    grapes = None
    if "grapes" in patch:
        # explicit null grapes means "replace with an empty set"
        grapes = _grapes(body.grapes or [])
        patch.pop("grapes")
    return UpdateWineCommand(wine_id=wine_id, values=patch, grapes=grapes)


@router.get("/wines", response_model=WineListOut)
def api_list_wines(
    page: int = Query(1),
    limit: int = Query(20),
    search: str | None = Query(None),
    wine_type: str | None = Query(None),
    country: str | None = Query(None),
    do_id: int | None = Query(None),
    grape_id: int | None = Query(None),
    score_min: int | None = Query(None),
    score_max: int | None = Query(None),
    score_bucket: str | None = Query(None, description="any|lt70|70_80|80_90|90_plus"),
    sort_by: str = Query("created_at", description="created_at|updated_at|name|vintage_year|score"),
    sort_dir: str = Query("desc", description="asc|desc"),
) -> WineListOut:
    lo, hi = resolve_score_bucket(score_bucket, score_min, score_max)
    q = WineListQuery(
        page=page,
        limit=limit,
        search=search,
        wine_type=wine_type,
        country=country,
        do_id=do_id,
        grape_id=grape_id,
        score_min=lo,
        score_max=hi,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )
    return list_wines(q)


@router.post("/wines", response_model=WineCreatedOut, status_code=201)
def api_create_wine(body: WineCreateIn, request: Request) -> WineCreatedOut:
    wine_id = create_wine(_create_command(body), request_id=_rid(request))
    return WineCreatedOut(id=wine_id)


@router.get("/wines/{wine_id}", response_model=WineDetailOut)
def api_get_wine(wine_id: int = Path(...)) -> WineDetailOut:
    detail = get_wine_detail(wine_id)
    if detail is None:
        raise NotFound("wine", wine_id)
    return detail


@router.patch("/wines/{wine_id}", status_code=204)
def api_patch_wine(wine_id: int, body: WinePatchIn, request: Request) -> Response:
    if not update_wine(_update_command(wine_id, body), request_id=_rid(request)):
        raise NotFound("wine", wine_id)
    return Response(status_code=204)


@router.delete("/wines/{wine_id}", response_model=WineDeleteOut)
def api_delete_wine(wine_id: int, request: Request) -> WineDeleteOut:
    return delete_wine(wine_id, request_id=_rid(request))


def _store_upload(wine_id: int, photo_type: str, data: bytes, filename: str, request_id):
    with tempfile.TemporaryDirectory() as tmp:
        src = FsPath(tmp) / "upload"
        src.write_bytes(data)
        return store_wine_photo(wine_id, photo_type, src, filename, request_id=request_id)


@router.put("/wines/{wine_id}/photos/{photo_type}", response_model=WinePhotoStoredOut)
async def api_put_wine_photo(
    wine_id: int,
    photo_type: str,
    request: Request,
    filename: str = Query("upload.bin", description="original file name, used for the extension"),
) -> WinePhotoStoredOut:
    max_bytes = get_max_photo_bytes()
    too_large = ValidationError("file", f"Uploaded file exceeds {max_bytes} bytes.")
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise too_large

    data = bytearray()
    async for chunk in request.stream():
        data.extend(chunk)
        if len(data) > max_bytes:
            raise too_large

    return await run_in_threadpool(_store_upload, wine_id, photo_type, bytes(data), filename, _rid(request))
