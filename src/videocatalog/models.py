"""Domain models and transfer objects for videocatalog."""

import math
from datetime import timedelta
from enum import Enum
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class Genre(str, Enum):
    """Catalog genres, serialized by name."""

    ACTION = "ACTION"
    ADVENTURE = "ADVENTURE"
    ANIMATION = "ANIMATION"
    COMEDY = "COMEDY"
    CRIME = "CRIME"
    DOCUMENTARY = "DOCUMENTARY"
    DRAMA = "DRAMA"
    FANTASY = "FANTASY"
    HORROR = "HORROR"
    MUSICAL = "MUSICAL"
    MYSTERY = "MYSTERY"
    ROMANCE = "ROMANCE"
    SCIENCE_FICTION = "SCIENCE_FICTION"
    THRILLER = "THRILLER"
    WAR = "WAR"
    WESTERN = "WESTERN"


class VideoMetadata(BaseModel):
    """Persisted catalog entry for one published video.

    ``id`` is assigned by the repository on first save. ``video_location``
    is set once at publish time and never changed by an update; the two
    counters only ever grow.
    """

    id: int | None = None
    title: str
    synopsis: str = ""
    director: str = ""
    cast_members: str | None = None  # comma-delimited, main actor first
    year_of_release: int = Field(gt=0)
    genre: Genre | None = None
    running_time: timedelta | None = None
    video_location: str
    impressions: int = Field(default=0, ge=0)
    views: int = Field(default=0, ge=0)


class _CamelModel(BaseModel):
    """Transfer object serialized with camelCase keys, accepting both spellings."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoMetadataDto(_CamelModel):
    """Write/read shape for a catalog entry: the record minus counters and content."""

    id: int | None = None
    title: NonBlankStr
    synopsis: NonBlankStr
    director: NonBlankStr
    cast_members: NonBlankStr
    year_of_release: int = Field(gt=0)
    genre: Genre | None = None
    running_time: timedelta | None = None


class VideoMetadataView(_CamelModel):
    """List-view shape with the main actor derived from the cast list."""

    id: int | None
    title: str
    director: str
    main_actor: str | None
    genre: Genre | None
    running_time: timedelta | None


class VideoMetadataWithPreview(_CamelModel):
    """Detail shape pairing the list view with a short content preview."""

    metadata: VideoMetadataView
    preview: str


class EngagementStatistics(_CamelModel):
    impressions: int
    views: int


class SortOrder(BaseModel):
    """A single ``field[,asc|desc]`` ordering term."""

    name: str
    descending: bool = False

    @classmethod
    def parse(cls, expression: str) -> "SortOrder":
        """Parse ``"title"``, ``"title,asc"`` or ``"title,desc"``."""
        name, _, direction = expression.partition(",")
        direction = direction.strip().lower()
        if direction not in ("", "asc", "desc"):
            raise ValueError(f"Invalid sort direction: {direction!r}")
        return cls(name=name.strip(), descending=direction == "desc")


class PageRequest(BaseModel):
    """Zero-based page index, page size and optional ordering."""

    page: int = Field(default=0, ge=0)
    size: int = Field(default=20, gt=0)
    sort: list[SortOrder] = Field(default_factory=list)

    @property
    def offset(self) -> int:
        return self.page * self.size


class Page(_CamelModel, Generic[T]):
    """One page of results plus the totals needed to navigate the rest."""

    content: list[T]
    page: int
    size: int
    total_elements: int

    @computed_field
    @property
    def total_pages(self) -> int:
        """Number of pages of ``size`` needed to hold ``total_elements``."""
        return math.ceil(self.total_elements / self.size)


def main_actor(cast_members: str | None) -> str | None:
    """First entry of a comma-delimited cast list, or None for a blank cast."""
    if cast_members is None or not cast_members.strip():
        return None
    first = cast_members.split(",")[0].strip()
    return first or None


def to_view(video: VideoMetadata) -> VideoMetadataView:
    return VideoMetadataView(
        id=video.id,
        title=video.title,
        director=video.director,
        main_actor=main_actor(video.cast_members),
        genre=video.genre,
        running_time=video.running_time,
    )


def to_dto(video: VideoMetadata) -> VideoMetadataDto:
    return VideoMetadataDto(
        id=video.id,
        title=video.title,
        synopsis=video.synopsis,
        director=video.director,
        cast_members=video.cast_members,
        year_of_release=video.year_of_release,
        genre=video.genre,
        running_time=video.running_time,
    )


def apply_dto(dto: VideoMetadataDto, video: VideoMetadata) -> VideoMetadata:
    """Copy every editable field from ``dto`` onto ``video``.

    Identifier, content location and counters are left untouched.
    """
    video.title = dto.title
    video.synopsis = dto.synopsis
    video.director = dto.director
    video.cast_members = dto.cast_members
    video.year_of_release = dto.year_of_release
    video.genre = dto.genre
    video.running_time = dto.running_time
    return video
