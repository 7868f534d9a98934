"""
Notes Module - Pydantic Schemas
"""
import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from notevault.core.pagination import Pagination


class NoteSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    POPULAR = "popular"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    RATING = "rating"


class NoteCreate(BaseModel):
    """Listing payload; ``file_url`` is the object key returned by the upload endpoint."""
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field("", max_length=5000)
    subject: str = Field(..., min_length=2, max_length=255)
    degree: str | None = Field(None, max_length=100)
    specialization: str | None = Field(None, max_length=255)
    university_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    college_name: str | None = Field(None, max_length=255)
    semester: int | None = Field(None, ge=1, le=12)
    year: int | None = Field(None, ge=1, le=6)
    language: str = Field("english", max_length=20)
    tags: list[str] = Field(default_factory=list, max_length=20)
    total_pages: int = Field(..., ge=1, le=5000)
    price_inr: float = Field(..., gt=0, le=100000)
    file_url: str = Field(..., min_length=1)
    file_type: str = Field("pdf", max_length=20)
    file_size_bytes: int = Field(0, ge=0)
    cover_image: str | None = None
    preview_pages: list[str] = Field(default_factory=list, max_length=10)
    table_of_contents: list[str] = Field(default_factory=list)


class NoteUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    title: str | None = Field(None, min_length=3, max_length=255)
    description: str | None = Field(None, max_length=5000)
    price_inr: float | None = Field(None, gt=0, le=100000)
    table_of_contents: list[str] | None = None
    is_active: bool | None = None
    cover_image: str | None = None
    preview_pages: list[str] | None = Field(None, max_length=10)


class SellerSummary(BaseModel):
    id: uuid.UUID
    full_name: str


class NoteSummary(BaseModel):
    """Catalog card."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    subject: str
    degree: str
    semester: int
    university_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    cover_image: str | None = None
    preview_pages: list[str] = []
    total_pages: int
    price_inr: float
    average_rating: float
    total_reviews: int
    purchase_count: int
    view_count: int
    created_at: datetime


class NoteReviewSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    rating: int
    title: str | None = None
    comment: str | None = None
    created_at: datetime


class NoteDetail(NoteSummary):
    description: str
    specialization: str | None = None
    college_name: str | None = None
    year: int | None = None
    language: str
    tags: list[str] = []
    table_of_contents: list[str] = []
    file_type: str
    file_size_bytes: int
    download_count: int
    seller: SellerSummary
    # Only exposed to the owner or a buyer who purchased the note
    file_url: str | None = None
    is_purchased: bool = False
    is_wishlisted: bool = False
    is_owner: bool = False
    reviews: list[NoteReviewSummary] = []


class SellerNoteResponse(NoteSummary):
    """A seller's own listing, including earnings and status."""
    description: str
    is_active: bool
    is_approved: bool
    commission_percentage: float
    commission_amount_inr: float
    seller_earning_inr: float
    download_count: int


class NoteListResponse(BaseModel):
    items: list[NoteSummary]
    pagination: Pagination


class NoteCreateResponse(BaseModel):
    id: uuid.UUID
    message: str = "Note uploaded successfully"


class UploadResponse(BaseModel):
    file_url: str = Field(..., description="Object storage key, pass it to note creation")
    file_type: str
    file_size_bytes: int


class DownloadResponse(BaseModel):
    download_url: str
    expires_in: int
    file_name: str


class LibraryItem(BaseModel):
    purchase_id: uuid.UUID
    purchased_at: datetime
    download_count: int
    note: NoteSummary
