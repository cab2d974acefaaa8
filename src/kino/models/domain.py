"""Backend-neutral domain models.

These are the only shapes the rest of the application sees. Adapters
convert Plex and Jellyfin wire models into them; durations are always
integer milliseconds.
"""

from dataclasses import dataclass, field
from typing import Annotated, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from kino.models.enums import LibraryType, MediaType, WatchStatus

T = TypeVar("T")


def _container_status(unwatched: int, total: int) -> WatchStatus:
    if unwatched == 0:
        return WatchStatus.WATCHED
    if unwatched < total:
        return WatchStatus.IN_PROGRESS
    return WatchStatus.UNWATCHED


class DomainModel(BaseModel):
    """Base model for domain entities."""

    model_config = ConfigDict(frozen=True)


class Library(DomainModel):
    """A library section on the media server.

    Attributes:
        id: Backend-native library identifier.
        name: Display name.
        type: Kind of content the library holds.
        updated_at: Unix timestamp of the last content change (0 if unknown).
    """

    id: str
    name: str
    type: LibraryType
    updated_at: int = 0


class MediaItem(DomainModel):
    """A playable movie or episode.

    Attributes:
        id: Backend-native item identifier.
        title: Display title.
        sort_title: Title used for ordering. Defaults to title.
        library_id: Owning library, when known.
        type: Movie or episode.
        year: Release year (0 if unknown).
        duration_ms: Runtime in milliseconds.
        view_offset_ms: Resume position in milliseconds.
        is_played: Whether the item has been fully watched.
        rating: Audience rating (0.0 if unknown).
        content_rating: Normalized content rating (e.g. PG-13, NR).
        video_codec: Normalized video codec label.
        audio_codec: Normalized audio codec label.
        container: Normalized container name.
        file_size: Size of the primary media file in bytes.
        summary: Plot summary.
        added_at: Unix timestamp when the item was added (0 if unknown).
        show_id: Parent show, for episodes.
        show_title: Parent show title, for episodes.
        season_id: Parent season, for episodes.
        season_num: Season number, for episodes.
        episode_num: Episode number within the season.
    """

    id: str
    title: str
    sort_title: str = Field(default="", validate_default=True)
    library_id: str = ""
    type: Literal[MediaType.MOVIE, MediaType.EPISODE] = MediaType.MOVIE
    year: int = 0
    duration_ms: int = 0
    view_offset_ms: int = 0
    is_played: bool = False
    rating: float = 0.0
    content_rating: str = ""
    video_codec: str = ""
    audio_codec: str = ""
    container: str = ""
    file_size: int = 0
    summary: str = ""
    added_at: int = 0
    show_id: str = ""
    show_title: str = ""
    season_id: str = ""
    season_num: int = 0
    episode_num: int = 0

    @field_validator("sort_title")
    @classmethod
    def _default_sort_title(cls, value: str, info: ValidationInfo) -> str:
        return value or info.data.get("title", "")

    @property
    def watch_status(self) -> WatchStatus:
        """Watch status derived from played flag and resume position."""
        if self.is_played:
            return WatchStatus.WATCHED
        if self.view_offset_ms > 0:
            return WatchStatus.IN_PROGRESS
        return WatchStatus.UNWATCHED

    @property
    def should_resume(self) -> bool:
        """Whether playback should offer to resume."""
        return self.view_offset_ms > 0 and not self.is_played

    @property
    def episode_code(self) -> str:
        """Episode code like S01E05. Empty for movies."""
        if self.type != MediaType.EPISODE:
            return ""
        return f"S{self.season_num:02d}E{self.episode_num:02d}"


class Show(DomainModel):
    """A TV show container.

    unwatched_count is clamped to [0, episode_count].
    """

    id: str
    title: str
    sort_title: str = Field(default="", validate_default=True)
    library_id: str = ""
    type: Literal["show"] = "show"
    year: int = 0
    season_count: int = 0
    episode_count: int = 0
    unwatched_count: int = Field(default=0, validate_default=True)
    rating: float = 0.0
    content_rating: str = ""
    summary: str = ""
    added_at: int = 0

    @field_validator("sort_title")
    @classmethod
    def _default_sort_title(cls, value: str, info: ValidationInfo) -> str:
        return value or info.data.get("title", "")

    @field_validator("unwatched_count")
    @classmethod
    def _clamp_unwatched(cls, value: int, info: ValidationInfo) -> int:
        return max(0, min(value, info.data.get("episode_count", 0)))

    @property
    def watch_status(self) -> WatchStatus:
        """Watch status derived from unwatched and total episode counts."""
        return _container_status(self.unwatched_count, self.episode_count)


class Season(DomainModel):
    """A season of a show."""

    id: str
    show_id: str = ""
    show_title: str = ""
    season_num: int = 0
    title: str = ""
    episode_count: int = 0
    unwatched_count: int = Field(default=0, validate_default=True)

    @field_validator("unwatched_count")
    @classmethod
    def _clamp_unwatched(cls, value: int, info: ValidationInfo) -> int:
        return max(0, min(value, info.data.get("episode_count", 0)))

    @property
    def watch_status(self) -> WatchStatus:
        """Watch status derived from unwatched and total episode counts."""
        return _container_status(self.unwatched_count, self.episode_count)

    @property
    def display_title(self) -> str:
        """Title for display. Season 0 is always shown as Specials."""
        if self.season_num == 0:
            return "Specials"
        return self.title or f"Season {self.season_num}"


class Playlist(DomainModel):
    """A user playlist."""

    id: str
    title: str
    playlist_type: str = "video"
    smart: bool = False
    item_count: int = 0
    duration_ms: int = 0


# Content of a mixed library: either a movie or a show, tagged by `type`
LibraryContent = Annotated[MediaItem | Show, Field(discriminator="type")]


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a paginated listing.

    Attributes:
        items: Items in this page.
        total: Backend-reported size of the whole listing. Advisory only.
    """

    items: list[T] = field(default_factory=list)
    total: int = 0
