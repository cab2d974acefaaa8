"""Local fuzzy filtering over synced library contents.

Matching is token-based: every query word must match a distinct word of
the title, in any order. Exact, prefix and substring matches rank above
fuzzy ones. Results carry the matched character positions (for
highlighting) and enough navigation context to jump to the item.
"""

import logging
import re
from collections.abc import Collection, Iterator
from dataclasses import dataclass

from rapidfuzz import fuzz
from rapidfuzz.distance import Indel

from kino.models.domain import LibraryContent, MediaItem
from kino.models.enums import MediaType
from kino.services.sync import LibrarySyncEngine

logger = logging.getLogger(__name__)

# ============================================================================
# PRIVATE CONSTANTS - Ranking weights and thresholds (not exported)
# ============================================================================

_FUZZY_THRESHOLD = 70  # Minimum token similarity (0-100) for a fuzzy match

# Per-token penalty by match kind; lower is better
_EXACT = 0
_PREFIX = 100
_SUBSTRING = 200
_FUZZY = 300

# Per title word left over after every query word has matched
_EXTRA_WORD = 5

# Words are runs of letters and digits; punctuation separates them
_TOKEN_RE = re.compile(r"[^\W_]+")


# ============================================================================
# RESULT DATACLASSES
# ============================================================================


@dataclass(frozen=True)
class NavigationContext:
    """Where a filter result lives in the library hierarchy."""

    library_id: str
    library_name: str = ""
    show_id: str = ""
    show_title: str = ""
    season_id: str = ""
    season_num: int = 0


@dataclass(frozen=True)
class FilterResult:
    """A ranked filter match.

    Attributes:
        item: The matched movie, episode or show.
        title: Title the query was matched against.
        type: Item type (movie, episode or show).
        matched_indexes: Character positions in title that matched.
        score: Ranking score; lower is better.
        navigation: Location of the item for navigation.
    """

    item: LibraryContent
    title: str
    type: str
    matched_indexes: tuple[int, ...]
    score: float
    navigation: NavigationContext


@dataclass(frozen=True)
class _TokenMatch:
    penalty: float
    positions: tuple[int, ...]


# ============================================================================
# PUBLIC API
# ============================================================================


class LibraryFilter:
    """Filters the sync engine's cached items without touching the network."""

    def __init__(self, engine: LibrarySyncEngine) -> None:
        self._engine = engine

    def filter(
        self,
        query: str,
        *,
        types: Collection[str] | None = None,
        library_ids: Collection[str] | None = None,
        limit: int | None = None,
    ) -> list[FilterResult]:
        """Rank cached items against a query.

        Args:
            query: Free text. Empty queries match nothing.
            types: Restrict to these item types ("movie", "episode", "show").
            library_ids: Restrict to these libraries.
            limit: Maximum number of results.

        Returns:
            Results sorted by score, then title.
        """
        query_tokens = _TOKEN_RE.findall(query.lower())
        if not query_tokens:
            return []

        results = []
        for item, navigation in self._candidates(library_ids):
            if types is not None and item.type not in types:
                continue
            result = match_title(query_tokens, item.title)
            if result is None:
                continue
            score, positions = result
            results.append(
                FilterResult(
                    item=item,
                    title=item.title,
                    type=str(item.type),
                    matched_indexes=positions,
                    score=score,
                    navigation=navigation,
                )
            )

        results.sort(key=lambda r: (r.score, r.title.lower()))
        logger.debug("Filter %r matched %d items", query, len(results))
        return results[:limit] if limit is not None else results

    def _candidates(
        self, library_ids: Collection[str] | None
    ) -> Iterator[tuple[LibraryContent, NavigationContext]]:
        for library in self._engine.libraries:
            if library_ids is not None and library.id not in library_ids:
                continue
            for item in self._engine.get_items(library.id):
                yield item, _navigation(item, library.id, library.name)


def match_title(
    query_tokens: list[str], title: str
) -> tuple[float, tuple[int, ...]] | None:
    """Match lower-cased query tokens against a title.

    Each query token claims the best remaining title token, so two query
    words never match the same title word.

    Returns:
        (score, matched positions) or None if any query token is unmatched.
    """
    title_tokens = [(m.group(), m.start()) for m in _TOKEN_RE.finditer(title.lower())]
    used: set[int] = set()
    score = 0.0
    positions: list[int] = []

    for query_token in query_tokens:
        best: tuple[int, _TokenMatch] | None = None
        for index, (token, start) in enumerate(title_tokens):
            if index in used:
                continue
            match = _match_token(query_token, token, start)
            if match is not None and (best is None or match.penalty < best[1].penalty):
                best = (index, match)
        if best is None:
            return None
        used.add(best[0])
        score += best[1].penalty
        positions.extend(best[1].positions)

    extra_words = len(title_tokens) - len(query_tokens)
    if extra_words > 0:
        score += extra_words * _EXTRA_WORD
    # Prefer shorter titles among equally good matches
    score += len(title) / 1000
    return score, tuple(sorted(set(positions)))


# ============================================================================
# PRIVATE HELPERS
# ============================================================================


def _match_token(query: str, token: str, start: int) -> _TokenMatch | None:
    if query == token:
        return _TokenMatch(_EXACT, tuple(range(start, start + len(token))))
    if token.startswith(query):
        return _TokenMatch(_PREFIX, tuple(range(start, start + len(query))))
    offset = token.find(query)
    if offset >= 0:
        begin = start + offset
        return _TokenMatch(_SUBSTRING + offset, tuple(range(begin, begin + len(query))))

    similarity = fuzz.ratio(query, token)
    if similarity < _FUZZY_THRESHOLD:
        return None
    matched = tuple(
        start + position
        for op in Indel.opcodes(query, token)
        if op.tag == "equal"
        for position in range(op.dest_start, op.dest_end)
    )
    return _TokenMatch(_FUZZY + (100 - similarity), matched)


def _navigation(
    item: LibraryContent, library_id: str, library_name: str
) -> NavigationContext:
    if isinstance(item, MediaItem) and item.type == MediaType.EPISODE:
        return NavigationContext(
            library_id=library_id,
            library_name=library_name,
            show_id=item.show_id,
            show_title=item.show_title,
            season_id=item.season_id,
            season_num=item.season_num,
        )
    return NavigationContext(library_id=library_id, library_name=library_name)
