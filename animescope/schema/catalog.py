"""Normalized catalog schemas read from Jikan payloads."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator

from animescope.utils.datetime import parse_date


class ImageVariant(BaseModel):
    """One encoding of a poster image in three sizes."""
    image_url: str | None = None
    small_image_url: str | None = None
    large_image_url: str | None = None


class ImageSet(BaseModel):
    jpg: ImageVariant = Field(default_factory=ImageVariant)
    webp: ImageVariant | None = None


class TitleVariant(BaseModel):
    type: str
    title: str


class NamedResource(BaseModel):
    mal_id: int
    type: str | None = None
    name: str
    url: str | None = None


class ResultItem(BaseModel):
    """Projection of a catalog entry carrying only what the engine and its consumers read.

    Two items are equal when they share ``mal_id``, whatever their title variants.
    """

    model_config = {"frozen": True}

    mal_id: int
    url: str | None = None
    title: str
    title_english: str | None = None
    title_japanese: str | None = None
    titles: list[TitleVariant] = Field(default_factory=list)
    images: ImageSet = Field(default_factory=ImageSet)

    @property
    def display_title(self) -> str:
        return self.title_english or self.title or self.title_japanese or ""

    @property
    def image_url(self) -> str | None:
        return self.images.jpg.large_image_url or self.images.jpg.image_url

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResultItem):
            return NotImplemented
        return self.mal_id == other.mal_id

    def __hash__(self) -> int:
        return hash(("anime", self.mal_id))


class SearchPage(BaseModel):
    """One page of search results plus pagination metadata."""
    items: list[ResultItem]
    last_visible_page: int = 1
    has_next_page: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SearchPage:
        pagination = payload.get("pagination")
        if not isinstance(pagination, dict):
            pagination = {}
        return cls(
            items=parse_entries(payload),
            last_visible_page=pagination.get("last_visible_page") or 1,
            has_next_page=bool(pagination.get("has_next_page")),
        )


class AnimeDetail(ResultItem):
    """Full record for one catalog entry."""
    synopsis: str | None = None
    type: str | None = None
    episodes: int | None = None
    status: str | None = None
    score: float | None = None
    year: int | None = None
    genres: list[NamedResource] = Field(default_factory=list)
    studios: list[NamedResource] = Field(default_factory=list)
    aired_from: date | None = None

    @field_validator("aired_from", mode="before")
    @classmethod
    def _parse_aired(cls, value: Any) -> date | None:
        if isinstance(value, date) or value is None:
            return value
        return parse_date(str(value))

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> AnimeDetail:
        raw = payload.get("data")
        data = dict(raw) if isinstance(raw, dict) else {}
        aired = data.get("aired")
        data["aired_from"] = aired.get("from") if isinstance(aired, dict) else None
        return cls.model_validate(data)


def parse_entries(payload: dict[str, Any]) -> list[ResultItem]:
    """Validate the ``data`` array of a list response, skipping entries without an id or title."""
    items: list[ResultItem] = []
    for entry in payload.get("data") or []:
        if not isinstance(entry, dict) or entry.get("mal_id") is None or not entry.get("title"):
            continue
        items.append(ResultItem.model_validate(entry))
    return items
