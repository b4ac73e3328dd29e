from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

WineTypeName = Literal["red", "white", "rose", "sparkling", "sweet", "fortified"]
AgingTypeName = Literal["young", "crianza", "reserve", "grand_reserve"]
CountryName = Literal[
    "spain",
    "france",
    "italy",
    "portugal",
    "germany",
    "argentina",
    "chile",
    "united_states",
    "south_africa",
    "australia",
]
PlaceTypeName = Literal["supermarket", "restaurant"]
AwardNameValue = Literal["penin", "parker", "wine_spectator", "decanter", "james_suckling", "guia_proensa"]


class GrapeIn(BaseModel):
    grape_id: int
    percentage: Optional[float] = None


class PlaceIn(BaseModel):
    place_type: PlaceTypeName
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    country: CountryName


class PurchaseIn(BaseModel):
    place: PlaceIn
    price_paid: float
    purchased_at: str


class AwardIn(BaseModel):
    name: AwardNameValue
    score: Optional[float] = None
    year: Optional[int] = None


class WineCreateIn(BaseModel):
    name: str
    winery: Optional[str] = None
    wine_type: Optional[WineTypeName] = None
    do_id: Optional[int] = None
    country: Optional[CountryName] = None
    aging_type: Optional[AgingTypeName] = None
    vintage_year: Optional[int] = None
    alcohol_percentage: Optional[float] = None
    grapes: List[GrapeIn] = Field(default_factory=list)
    purchases: List[PurchaseIn] = Field(default_factory=list)
    awards: List[AwardIn] = Field(default_factory=list)


class WinePatchIn(BaseModel):
    name: Optional[str] = None
    winery: Optional[str] = None
    wine_type: Optional[WineTypeName] = None
    do_id: Optional[int] = None
    country: Optional[CountryName] = None
    aging_type: Optional[AgingTypeName] = None
    vintage_year: Optional[int] = None
    alcohol_percentage: Optional[float] = None
    grapes: Optional[List[GrapeIn]] = None


class WineCreatedOut(BaseModel):
    id: int


class PhotoSummaryOut(BaseModel):
    type: Optional[str] = None
    url: str


class WineListItemOut(BaseModel):
    id: int
    name: str
    winery: Optional[str] = None
    wine_type: Optional[str] = None
    country: Optional[str] = None
    do_id: Optional[int] = None
    do_name: Optional[str] = None
    vintage_year: Optional[int] = None
    avg_score: Optional[float] = None
    created_at: str
    updated_at: str
    photos: List[PhotoSummaryOut] = Field(default_factory=list)


class PaginationOut(BaseModel):
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_items: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    has_next: bool
    has_prev: bool


class WineListOut(BaseModel):
    items: List[WineListItemOut]
    pagination: PaginationOut


class DoRefOut(BaseModel):
    id: int
    name: str
    region: str
    country: str
    country_code: str


class WineGrapeOut(BaseModel):
    id: int
    name: str
    color: str
    percentage: Optional[float] = None


class PlaceOut(BaseModel):
    id: int
    place_type: str
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    country: str


class PurchaseOut(BaseModel):
    id: int
    price_paid: float
    purchased_at: str
    place: PlaceOut


class AwardOut(BaseModel):
    id: int
    name: str
    score: Optional[float] = None
    year: Optional[int] = None


class PhotoOut(BaseModel):
    id: int
    type: Optional[str] = None
    url: str
    hash: str
    size: int
    extension: str


class ReviewerOut(BaseModel):
    id: int
    name: str
    lastname: str


class WineReviewOut(BaseModel):
    id: int
    user: ReviewerOut
    score: Optional[int] = None
    intensity_aroma: int
    sweetness: int
    acidity: int
    tannin: Optional[int] = None
    body: int
    persistence: int
    bullets: List[str] = Field(default_factory=list)
    created_at: str


class WineDetailOut(BaseModel):
    id: int
    name: str
    winery: Optional[str] = None
    wine_type: Optional[str] = None
    country: Optional[str] = None
    aging_type: Optional[str] = None
    vintage_year: Optional[int] = None
    alcohol_percentage: Optional[float] = None
    created_at: str
    updated_at: str
    do: Optional[DoRefOut] = None
    grapes: List[WineGrapeOut] = Field(default_factory=list)
    purchases: List[PurchaseOut] = Field(default_factory=list)
    awards: List[AwardOut] = Field(default_factory=list)
    photos: List[PhotoOut] = Field(default_factory=list)
    reviews: List[WineReviewOut] = Field(default_factory=list)


class WineDeleteOut(BaseModel):
    wine_id: int
    photo_files_deleted: int = 0
    photo_dir_removed: bool = False
    status: str = "deleted"


class WinePhotoStoredOut(BaseModel):
    id: int
    wine_id: int
    type: str
    url: str
    hash: str
    size: int
    extension: str
