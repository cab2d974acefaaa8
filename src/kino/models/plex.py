"""Models for parsing Plex Media Server responses.

These are internal models used to parse and validate the JSON
MediaContainer envelope returned by Plex. They may change if the API changes.
"""

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "PlexDirectory",
    "PlexEnvelope",
    "PlexMedia",
    "PlexMediaContainer",
    "PlexMetadata",
    "PlexPart",
    "PlexPin",
]


class PlexModel(BaseModel):
    """Base model for Plex responses."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class PlexPart(PlexModel):
    """A media file part."""

    key: str = ""
    size: int | None = None
    container: str | None = None


class PlexMedia(PlexModel):
    """A media version of an item."""

    video_codec: str | None = Field(default=None, alias="videoCodec")
    audio_codec: str | None = Field(default=None, alias="audioCodec")
    container: str | None = None
    parts: list[PlexPart] = Field(default_factory=list, alias="Part")


class PlexDirectory(PlexModel):
    """Library section entry from /library/sections."""

    key: str
    type: str = ""
    title: str = ""
    content_changed_at: int | None = Field(default=None, alias="contentChangedAt")
    updated_at: int | None = Field(default=None, alias="updatedAt")


class PlexMetadata(PlexModel):
    """Metadata entry for movies, shows, seasons, episodes and playlists."""

    rating_key: str = Field(default="", alias="ratingKey")
    type: str = ""
    title: str = ""
    title_sort: str | None = Field(default=None, alias="titleSort")
    library_section_id: str | None = Field(default=None, alias="librarySectionID")
    year: int | None = None
    duration: int | None = None
    view_offset: int | None = Field(default=None, alias="viewOffset")
    view_count: int | None = Field(default=None, alias="viewCount")
    audience_rating: float | None = Field(default=None, alias="audienceRating")
    rating: float | None = None
    content_rating: str | None = Field(default=None, alias="contentRating")
    summary: str | None = None
    added_at: int | None = Field(default=None, alias="addedAt")
    media: list[PlexMedia] = Field(default_factory=list, alias="Media")

    # Episode / season hierarchy
    grandparent_title: str | None = Field(default=None, alias="grandparentTitle")
    grandparent_rating_key: str | None = Field(
        default=None, alias="grandparentRatingKey"
    )
    parent_title: str | None = Field(default=None, alias="parentTitle")
    parent_rating_key: str | None = Field(default=None, alias="parentRatingKey")
    parent_index: int | None = Field(default=None, alias="parentIndex")
    index: int | None = None

    # Container counts
    child_count: int | None = Field(default=None, alias="childCount")
    leaf_count: int | None = Field(default=None, alias="leafCount")
    viewed_leaf_count: int | None = Field(default=None, alias="viewedLeafCount")

    # Playlists
    playlist_item_id: int | None = Field(default=None, alias="playlistItemID")
    playlist_type: str | None = Field(default=None, alias="playlistType")
    smart: bool = False


class PlexMediaContainer(PlexModel):
    """The MediaContainer body shared by every Plex listing."""

    size: int = 0
    total_size: int = Field(default=0, alias="totalSize")
    machine_identifier: str | None = Field(default=None, alias="machineIdentifier")
    directories: list[PlexDirectory] = Field(default_factory=list, alias="Directory")
    metadata: list[PlexMetadata] = Field(default_factory=list, alias="Metadata")

    @property
    def reported_total(self) -> int:
        """Total corpus size, falling back to this page's size."""
        return self.total_size or self.size


class PlexEnvelope(PlexModel):
    """Top-level {"MediaContainer": {...}} response."""

    media_container: PlexMediaContainer = Field(
        default_factory=PlexMediaContainer, alias="MediaContainer"
    )


class PlexPin(PlexModel):
    """plex.tv PIN resource."""

    id: int
    code: str = ""
    expires_at: str | None = Field(default=None, alias="expiresAt")
    auth_token: str | None = Field(default=None, alias="authToken")
