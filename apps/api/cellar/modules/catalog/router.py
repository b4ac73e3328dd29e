from __future__ import annotations

from fastapi import APIRouter

from .schemas import DoListOut, GrapeListOut
from .service import list_dos, list_grapes

router = APIRouter(tags=["catalog"])


@router.get("/dos", response_model=DoListOut)
def get_dos() -> DoListOut:
    return DoListOut(items=list_dos())


@router.get("/grapes", response_model=GrapeListOut)
def get_grapes() -> GrapeListOut:
    return GrapeListOut(items=list_grapes())
