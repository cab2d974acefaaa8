"""Models for parsing Jellyfin server responses.

These are internal models used to parse and validate the Jellyfin Items
API. They may change if the API changes.
"""

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "JellyfinAuthResponse",
    "JellyfinCreatedPlaylist",
    "JellyfinItem",
    "JellyfinItemsResponse",
    "JellyfinMediaSource",
    "JellyfinMediaStream",
    "JellyfinPlaybackInfo",
    "JellyfinSearchHint",
    "JellyfinSearchResponse",
    "JellyfinSystemInfo",
    "JellyfinUser",
    "JellyfinUserData",
]


class JellyfinModel(BaseModel):
    """Base model for Jellyfin responses."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class JellyfinUserData(JellyfinModel):
    """Per-user watch state of an item."""

    playback_position_ticks: int | None = Field(
        default=None, alias="PlaybackPositionTicks"
    )
    played: bool = Field(default=False, alias="Played")
    unplayed_item_count: int | None = Field(default=None, alias="UnplayedItemCount")


class JellyfinMediaStream(JellyfinModel):
    """Video, audio or subtitle stream."""

    type: str | None = Field(default=None, alias="Type")
    codec: str | None = Field(default=None, alias="Codec")


class JellyfinMediaSource(JellyfinModel):
    """A playable media source of an item."""

    id: str | None = Field(default=None, alias="Id")
    container: str | None = Field(default=None, alias="Container")
    size: int | None = Field(default=None, alias="Size")
    media_streams: list[JellyfinMediaStream] = Field(
        default_factory=list, alias="MediaStreams"
    )


class JellyfinItem(JellyfinModel):
    """A BaseItemDto: movie, series, season, episode, view or playlist."""

    id: str = Field(alias="Id")
    name: str = Field(default="", alias="Name")
    sort_name: str | None = Field(default=None, alias="SortName")
    type: str | None = Field(default=None, alias="Type")
    collection_type: str | None = Field(default=None, alias="CollectionType")
    production_year: int | None = Field(default=None, alias="ProductionYear")
    run_time_ticks: int | None = Field(default=None, alias="RunTimeTicks")
    community_rating: float | None = Field(default=None, alias="CommunityRating")
    official_rating: str | None = Field(default=None, alias="OfficialRating")
    overview: str | None = Field(default=None, alias="Overview")
    date_created: str | None = Field(default=None, alias="DateCreated")
    parent_id: str | None = Field(default=None, alias="ParentId")
    series_id: str | None = Field(default=None, alias="SeriesId")
    series_name: str | None = Field(default=None, alias="SeriesName")
    season_id: str | None = Field(default=None, alias="SeasonId")
    parent_index_number: int | None = Field(default=None, alias="ParentIndexNumber")
    index_number: int | None = Field(default=None, alias="IndexNumber")
    child_count: int | None = Field(default=None, alias="ChildCount")
    recursive_item_count: int | None = Field(default=None, alias="RecursiveItemCount")
    playlist_item_id: str | None = Field(default=None, alias="PlaylistItemId")
    user_data: JellyfinUserData = Field(
        default_factory=JellyfinUserData, alias="UserData"
    )
    media_sources: list[JellyfinMediaSource] = Field(
        default_factory=list, alias="MediaSources"
    )
    media_streams: list[JellyfinMediaStream] = Field(
        default_factory=list, alias="MediaStreams"
    )


class JellyfinItemsResponse(JellyfinModel):
    """Paged item listing."""

    items: list[JellyfinItem] = Field(default_factory=list, alias="Items")
    total_record_count: int | None = Field(default=None, alias="TotalRecordCount")

    @property
    def reported_total(self) -> int:
        """Total corpus size, falling back to the number of returned items."""
        if self.total_record_count is None:
            return len(self.items)
        return self.total_record_count


class JellyfinSearchHint(JellyfinModel):
    """Entry of /Search/Hints."""

    id: str = Field(alias="Id")
    name: str = Field(default="", alias="Name")
    type: str | None = Field(default=None, alias="Type")
    run_time_ticks: int | None = Field(default=None, alias="RunTimeTicks")
    production_year: int | None = Field(default=None, alias="ProductionYear")
    parent_index_number: int | None = Field(default=None, alias="ParentIndexNumber")
    index_number: int | None = Field(default=None, alias="IndexNumber")
    series: str | None = Field(default=None, alias="Series")


class JellyfinSearchResponse(JellyfinModel):
    """Response of /Search/Hints."""

    search_hints: list[JellyfinSearchHint] = Field(
        default_factory=list, alias="SearchHints"
    )
    total_record_count: int | None = Field(default=None, alias="TotalRecordCount")


class JellyfinPlaybackInfo(JellyfinModel):
    """Response of /Items/{id}/PlaybackInfo."""

    media_sources: list[JellyfinMediaSource] = Field(
        default_factory=list, alias="MediaSources"
    )


class JellyfinSystemInfo(JellyfinModel):
    """Response of /System/Info/Public."""

    id: str = Field(default="", alias="Id")
    server_name: str | None = Field(default=None, alias="ServerName")
    product_name: str | None = Field(default=None, alias="ProductName")
    version: str | None = Field(default=None, alias="Version")


class JellyfinUser(JellyfinModel):
    """User reference in an authentication response."""

    id: str = Field(alias="Id")
    name: str = Field(default="", alias="Name")


class JellyfinAuthResponse(JellyfinModel):
    """Response of /Users/AuthenticateByName."""

    access_token: str = Field(alias="AccessToken")
    user: JellyfinUser = Field(alias="User")


class JellyfinCreatedPlaylist(JellyfinModel):
    """Response of POST /Playlists."""

    id: str = Field(alias="Id")
