"""Typed models for the package fan-out pipeline."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

SourceStatus = Literal["pending", "loading", "success", "error"]
SortKey = Literal["price", "rating", "duration"]
ViewMode = Literal["search", "results"]
SourceErrorType = Literal["timeout", "http", "transport", "parse", "upstream", "auth", "unknown"]

SORT_KEYS: Tuple[str, ...] = ("price", "rating", "duration")
RATING_FILTER_OPTIONS: Tuple[float, ...] = (0, 3, 4, 4.5)


class RawPackage(BaseModel):
    """A tour package as returned by one source, before source tagging.

    Sources speak camelCase (``originalPrice``, ``bookingUrl``); both the wire
    names and the snake_case field names are accepted.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    title: str
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0, alias="originalPrice")
    rating: Optional[float] = Field(None, ge=0, le=5)
    reviews: Optional[int] = Field(None, ge=0)
    duration: Optional[str] = None
    highlights: Tuple[str, ...] = Field(default_factory=tuple)
    discount: Optional[int] = Field(None, ge=0, le=100)
    booking_url: Optional[str] = Field(None, alias="bookingUrl")
    image: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def _require_title(cls, value: object) -> str:
        title = str(value or "").strip()
        if not title:
            raise ValueError("title must not be empty")
        return title

    @field_validator("highlights", mode="before")
    @classmethod
    def _clean_highlights(cls, value: Optional[Sequence[str] | str]) -> Tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        return tuple(str(item).strip() for item in value if str(item).strip())

    @field_validator("duration", "booking_url", "image", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class Package(RawPackage):
    """A RawPackage tagged with the identifier of the source that produced it."""

    source: str = Field(..., min_length=1)

    @classmethod
    def from_raw(cls, raw: RawPackage, source: str) -> "Package":
        return cls(**raw.model_dump(), source=source)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_markdown(self) -> bool:
        """True when a higher original price should be shown struck through."""
        return self.original_price is not None and self.original_price > self.price

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_discount(self) -> Optional[int]:
        if self.discount:
            return self.discount
        if self.has_markdown and self.original_price:
            return round((self.original_price - self.price) / self.original_price * 100)
        return None


class SourceStatusSnapshot(BaseModel):
    source: str
    status: SourceStatus
    result_count: int = 0
    latency_ms: Optional[int] = None
    error_type: Optional[SourceErrorType] = None
    message: Optional[str] = None


class SessionSnapshot(BaseModel):
    """Serializable state of one search session, with the projected package list."""

    session_id: str
    destination: Optional[str] = None
    view_mode: ViewMode = "search"
    loading: bool = False
    error: Optional[str] = None
    sort_key: SortKey = "price"
    min_rating: float = 0
    source_status: Dict[str, SourceStatusSnapshot] = Field(default_factory=dict)
    packages: List[Package] = Field(default_factory=list)
    total_packages: int = 0
    source_count: int = 0
    generation: int = 0


class SearchEvent(BaseModel):
    """One progress event of a streamed search."""

    event: Literal["source", "complete"]
    source: Optional[str] = None
    status: Optional[SourceStatusSnapshot] = None
    sources_remaining: int = 0
    more_incoming: bool = False
    session: Optional[SessionSnapshot] = None
