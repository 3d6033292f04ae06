# fuzzy_search.py
# Typo-tolerant, alias-aware search and ranking over catalog entries

from functools import reduce
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple
import logging
import re
import unicodedata

from rapidfuzz.distance import Levenshtein

from media_catalog import MovieCategory

logger = logging.getLogger(__name__)

# Matches below this score are considered irrelevant
MINIMUM_SCORE = 0.32
# Added per query token found verbatim inside a candidate
TOKEN_BOOST = 0.08
# Default size of "did you mean" lists
DEFAULT_SUGGESTIONS = 5

# Small nudge so saga films win ties; unknown categories get 0.0
CATEGORY_BIAS: Dict[Any, float] = {
    MovieCategory.SAGA: 0.05,
    MovieCategory.ANTHOLOGY: 0.03,
}

_NON_ALPHANUMERIC = re.compile(r'[^a-z0-9 ]+')
_MULTI_SPACE = re.compile(r'\s+')
_FRANCHISE_PREFIX = re.compile(r'^\s*star\s+wars[: ]?', re.IGNORECASE)
_TITLE_SEPARATORS = re.compile(r'[:-]')

_EPISODE_WORDS = {
    'one': '1', 'two': '2', 'three': '3', 'four': '4', 'five': '5',
    'six': '6', 'seven': '7', 'eight': '8', 'nine': '9',
}
_ROMAN_NUMERALS = {
    'i': '1', 'ii': '2', 'iii': '3', 'iv': '4', 'v': '5',
    'vi': '6', 'vii': '7', 'viii': '8', 'ix': '9',
}
# Longest numerals first so "episode ix" never reads as "episode i"
_EPISODE_NUMERAL = re.compile(
    r'\bepisode (' + '|'.join(
        sorted(list(_EPISODE_WORDS) + list(_ROMAN_NUMERALS), key=len, reverse=True)
    ) + r')\b'
)


class MatchScore(NamedTuple):
    """Best alias for one entity and the score it earned."""
    matched_field: str
    score: float


class SearchResult(NamedTuple):
    """One ranked catalog entry with its final score and the alias that matched."""
    value: Any
    score: float
    matched_field: str


def _episode_numeral_to_digit(match) -> str:
    numeral = match.group(1)
    digit = _EPISODE_WORDS.get(numeral) or _ROMAN_NUMERALS[numeral]
    return f"episode {digit}"


def normalize(raw: Optional[str]) -> str:
    """
    Canonicalize a string for comparison.

    Steps:
    1. Decompose Unicode and drop combining marks (accents)
    2. Lowercase
    3. Replace runs of anything outside [a-z0-9 ] with a space
    4. Collapse whitespace and trim
    5. Turn "episode five" / "episode v" into "episode 5"

    Numerals are converted last, on the already cleaned text, which keeps
    normalize(normalize(x)) == normalize(x).

    Args:
        raw: Any string, or None.

    Returns:
        Normalized string ('' for None or empty input).
    """
    if not raw:
        return ''
    text = unicodedata.normalize('NFD', raw)
    text = ''.join(c for c in text if not unicodedata.combining(c))
    text = text.lower()
    text = _NON_ALPHANUMERIC.sub(' ', text)
    text = _MULTI_SPACE.sub(' ', text).strip()
    return _EPISODE_NUMERAL.sub(_episode_numeral_to_digit, text)


def roman_to_arabic(roman: str) -> str:
    """Map a roman numeral I..IX to its digit string; anything else is returned unchanged."""
    return _ROMAN_NUMERALS.get(roman.strip().lower(), roman)


def build_aliases(entity: Any) -> Tuple[str, ...]:
    """
    Derive the normalized alternate strings that represent one catalog entry.

    The aliases are de-duplicated and keep insertion order, title first, so
    ties between equally scoring aliases always resolve the same way.

    Raises:
        ValueError: if the entity has no usable title.
    """
    title = getattr(entity, 'title', None)
    if not isinstance(title, str) or not title.strip():
        raise ValueError(f"Searchable entity requires a non-empty title: {entity!r}")

    raw: List[str] = [title]
    episode_number = getattr(entity, 'episode_number', None)
    if episode_number is not None:
        raw.append(f"episode {episode_number}")
    episode_roman = getattr(entity, 'episode_roman', None)
    if episode_roman:
        raw.append(f"episode {episode_roman}")
        raw.append(f"episode {roman_to_arabic(episode_roman)}")
    for attr in ('era', 'synopsis', 'notes'):
        value = getattr(entity, attr, None)
        if value:
            raw.append(value)
    # compound titles like "Star Wars: Episode V - The Empire Strikes Back"
    raw.extend(_TITLE_SEPARATORS.split(title))
    raw.append(_FRANCHISE_PREFIX.sub('', title, count=1))

    aliases = dict.fromkeys(normalize(r) for r in raw)
    aliases.pop('', None)
    return tuple(aliases)


def similarity(normalized_query: str, normalized_candidate: str) -> float:
    """
    Score how close a candidate is to the query, between 0.0 and 1.0.

    A candidate containing the whole query scores 1.0 outright. Otherwise the
    score is 1 - levenshtein / longest length, plus TOKEN_BOOST for each query
    token found inside the candidate, capped at 1.0. Not symmetric.
    """
    if not normalized_candidate:
        return 0.0
    if normalized_query in normalized_candidate:
        return 1.0
    longest = max(len(normalized_query), len(normalized_candidate))
    if longest == 0:
        return 0.0
    distance = Levenshtein.distance(normalized_query, normalized_candidate)
    ratio = 1.0 - distance / longest
    for token in normalized_query.split(' '):
        if token.strip() and token in normalized_candidate:
            ratio += TOKEN_BOOST
    return min(ratio, 1.0)


def score_entity(normalized_query: str, entity: Any,
                 category_bias: Optional[Dict[Any, float]] = None) -> MatchScore:
    """Best (alias, score) for an entity with its category bias applied and clamped to 1.0."""
    if category_bias is None:
        category_bias = CATEGORY_BIAS

    def _keep_best(best: MatchScore, alias: str) -> MatchScore:
        score = similarity(normalized_query, alias)
        # strictly greater: the first alias reaching the maximum wins
        return MatchScore(alias, score) if score > best.score else best

    best = reduce(_keep_best, build_aliases(entity), MatchScore('', 0.0))
    bias = category_bias.get(getattr(entity, 'category', None), 0.0)
    return MatchScore(best.matched_field, min(best.score + bias, 1.0))


def search_entries(catalog: Iterable[Any], query: Optional[str], limit: int = 0,
                   category_bias: Optional[Dict[Any, float]] = None) -> List[SearchResult]:
    """
    Rank catalog entries against a free-text query.

    Args:
        catalog: Entities exposing ``title`` and optionally ``episode_number``,
            ``episode_roman``, ``era``, ``synopsis``, ``notes`` and ``category``.
        query: Raw user input; None or blank yields no results.
        limit: Maximum number of results; 0 or negative means unbounded.
        category_bias: Optional override of CATEGORY_BIAS.

    Returns:
        SearchResult list sorted by score descending. Ties keep catalog order.
    """
    if query is None or not query.strip():
        return []
    normalized_query = normalize(query)
    if not normalized_query:
        return []

    hits: List[SearchResult] = []
    for entity in catalog:
        match = score_entity(normalized_query, entity, category_bias)
        if match.score >= MINIMUM_SCORE:
            hits.append(SearchResult(entity, match.score, match.matched_field))

    # sorted() is stable, so equal scores stay in catalog order
    hits = sorted(hits, key=lambda hit: hit.score, reverse=True)
    logger.debug("Fuzzy search %r matched %d entries", normalized_query, len(hits))
    if limit and limit > 0:
        return hits[:limit]
    return hits


def suggest_titles(catalog: Iterable[Any], query: Optional[str],
                   limit: int = DEFAULT_SUGGESTIONS) -> List[str]:
    """Unique titles of the best matches, best first, for "did you mean" prompts."""
    results = search_entries(catalog, query, limit if limit > 0 else DEFAULT_SUGGESTIONS)
    return list(dict.fromkeys(result.value.title for result in results))
