from __future__ import annotations

from fastapi import APIRouter, Header, Request, Response

from .domain import WineReview
from .schemas import ReviewAxesIn, ReviewCreatedOut, ReviewCreateIn, ReviewOut
from .service import create_review, delete_review, get_review, update_review

router = APIRouter(tags=["reviews"])


def _rid(request: Request):
    return getattr(request.state, "request_id", None)


@router.post("/reviews", response_model=ReviewCreatedOut, status_code=201)
def api_create_review(
    body: ReviewCreateIn,
    request: Request,
    x_user_id: int = Header(..., alias="X-User-Id"),
) -> ReviewCreatedOut:
    review = WineReview(
        user_id=x_user_id,
        wine_id=body.wine_id,
        intensity_aroma=body.intensity_aroma,
        sweetness=body.sweetness,
        acidity=body.acidity,
        body=body.body,
        persistence=body.persistence,
        tannin=body.tannin,
        score=body.score,
        bullets=tuple(body.bullets),
    )
    return ReviewCreatedOut(id=create_review(review, request_id=_rid(request)))


@router.get("/reviews/{review_id}", response_model=ReviewOut)
def api_get_review(review_id: int) -> ReviewOut:
    return get_review(review_id)


@router.put("/reviews/{review_id}", response_model=ReviewOut)
def api_update_review(
    review_id: int,
    body: ReviewAxesIn,
    request: Request,
    x_user_id: int = Header(..., alias="X-User-Id"),
) -> ReviewOut:
    return update_review(review_id, body.model_dump(), user_id=x_user_id, request_id=_rid(request))


@router.delete("/reviews/{review_id}", status_code=204)
def api_delete_review(
    review_id: int,
    request: Request,
    x_user_id: int = Header(..., alias="X-User-Id"),
) -> Response:
    delete_review(review_id, user_id=x_user_id, request_id=_rid(request))
    return Response(status_code=204)
