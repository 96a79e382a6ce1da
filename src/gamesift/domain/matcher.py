"""Fuzzy matching of external item names against catalog search results."""

from __future__ import annotations

import re
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from gamesift.domain.errors import NoConfidentMatch
from gamesift.domain.model import ExternalEntry, ReconciliationRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gamesift.domain.model import Item
    from gamesift.domain.ports import CatalogClient

log = getLogger(__name__)

DEFAULT_THRESHOLD = 0.4
DEFAULT_SEARCH_LIMIT = 5
EXACT_SCORE = 1.0
CONTAINMENT_SCORE = 0.9
_MIN_WORD_LENGTH = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_name(value: str) -> str:
    """Lowercase and drop everything that is not an ASCII letter or digit."""

    return _NON_ALNUM.sub("", value.lower())


def _words(value: str) -> list[str]:
    return _NON_ALNUM.sub(" ", value.lower()).split()


def word_overlap(first: str, second: str) -> float:
    """Share of the wordier name's words that relate to a word of the other name.

    Two words relate when both have at least three characters and one contains
    the other.
    """

    first_words, second_words = _words(first), _words(second)
    if len(second_words) > len(first_words):
        first_words, second_words = second_words, first_words
    if not first_words:
        return 0.0
    others = [word for word in second_words if len(word) >= _MIN_WORD_LENGTH]
    related = sum(
        1
        for word in first_words
        if len(word) >= _MIN_WORD_LENGTH
        and any(word in other or other in word for other in others)
    )
    return related / len(first_words)


def character_overlap(first: str, second: str) -> float:
    """Share of the shorter string's adjacent character pairs found in the longer one.

    Both arguments are expected to be normalized already. A single-character
    string is tested as a plain substring.
    """

    shorter, longer = sorted((first, second), key=len)
    if not shorter:
        return 0.0
    if len(shorter) == 1:
        return 1.0 if shorter in longer else 0.0
    pairs = [shorter[index : index + 2] for index in range(len(shorter) - 1)]
    return sum(1 for pair in pairs if pair in longer) / len(pairs)


def similarity(first: str, second: str) -> float:
    """Score two display names in ``[0, 1]``; higher means more alike."""

    left, right = normalize_name(first), normalize_name(second)
    if not left or not right:
        return 0.0
    if left == right:
        return EXACT_SCORE
    if left in right or right in left:
        return CONTAINMENT_SCORE
    return max(word_overlap(first, second), character_overlap(left, right))


def best_candidate(name: str, candidates: Sequence[Item]) -> tuple[Item, float] | None:
    """Return the highest scoring candidate; the first one wins ties."""

    best: tuple[Item, float] | None = None
    for candidate in candidates:
        score = similarity(name, candidate.name)
        if best is None or score > best[1]:
            best = (candidate, score)
    return best


@dataclass(slots=True)
class ReconciliationMatcher:
    """Resolve an external name to a catalog item via search plus similarity."""

    catalog: CatalogClient
    threshold: float = DEFAULT_THRESHOLD
    search_limit: int = DEFAULT_SEARCH_LIMIT

    async def reconcile(self, entry: ExternalEntry) -> ReconciliationRecord:
        candidates = await self.catalog.search(entry.name, self.search_limit)
        best = best_candidate(entry.name, candidates)
        if best is None:
            raise NoConfidentMatch(entry.name)
        item, score = best
        if score <= self.threshold:
            raise NoConfidentMatch(entry.name, score)
        log.debug("Matched %r to %r (%d) with score %.2f", entry.name, item.name, item.id, score)
        return ReconciliationRecord(entry=entry, item=item, similarity_score=score)

    async def match(self, name: str) -> Item | None:
        try:
            record = await self.reconcile(ExternalEntry(name=name))
        except NoConfidentMatch:
            return None
        return record.item
