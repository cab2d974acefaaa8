"""Normalization of backend-specific metadata values.

Both backends report codecs, containers and content ratings in their own
vocabularies. The functions here map them onto a single set of labels so
the rest of the application can compare and display them uniformly.
"""

from datetime import datetime

# Jellyfin reports durations in 100-nanosecond ticks
_NANOSECONDS_PER_TICK = 100
_NANOSECONDS_PER_MILLISECOND = 1_000_000

_UNRATED = frozenset({"not rated", "unrated"})

_VIDEO_CODECS = {
    "h265": "HEVC",
    "hevc": "HEVC",
    "h264": "H.264",
    "avc": "H.264",
    "mpeg4": "MPEG4",
    "vc1": "VC-1",
    "vp9": "VP9",
    "av1": "AV1",
}

_AUDIO_CODECS = {
    "aac": "AAC",
    "ac3": "AC3",
    "eac3": "EAC3",
    "dca": "DTS",
    "dts": "DTS",
    "truehd": "TrueHD",
    "flac": "FLAC",
    "mp3": "MP3",
    "opus": "Opus",
    "vorbis": "Vorbis",
}


def normalize_content_rating(rating: str | None) -> str:
    """Map "Not Rated" and "Unrated" (any case) to NR.

    Other ratings are returned unchanged.
    """
    if not rating:
        return ""
    if rating.strip().lower() in _UNRATED:
        return "NR"
    return rating


def normalize_video_codec(codec: str | None) -> str:
    """Map a video codec identifier to its display label."""
    if not codec:
        return ""
    return _VIDEO_CODECS.get(codec.lower(), codec.upper())


def normalize_audio_codec(codec: str | None) -> str:
    """Map an audio codec identifier to its display label."""
    if not codec:
        return ""
    return _AUDIO_CODECS.get(codec.lower(), codec.upper())


def normalize_container(container: str | None) -> str:
    """Return the first entry of a comma-separated container list, lower-cased.

    Example:
        >>> normalize_container("MKV,WebM")
        'mkv'
    """
    if not container:
        return ""
    return container.split(",", 1)[0].strip().lower()


def ticks_to_ms(ticks: int | None) -> int:
    """Convert Jellyfin ticks (100ns units) to integer milliseconds.

    Example:
        >>> ticks_to_ms(123_450_000)
        12345
    """
    if not ticks:
        return 0
    return ticks * _NANOSECONDS_PER_TICK // _NANOSECONDS_PER_MILLISECOND


def parse_timestamp(value: str | None) -> int:
    """Parse an ISO-8601 timestamp into Unix seconds. Returns 0 if unparseable.

    Jellyfin emits seven fractional digits, which datetime.fromisoformat
    accepts on Python 3.11+.
    """
    if not value:
        return 0
    try:
        return int(datetime.fromisoformat(value).timestamp())
    except ValueError:
        return 0
