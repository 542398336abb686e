from collections.abc import Sequence
from difflib import get_close_matches

from habitual.core.errors import AmbiguousError
from habitual.core.models import Task

__all__ = ["find_in_pool"]

FUZZY_MATCH_CUTOFF = 0.8


def _match_id(ref: str, pool: Sequence[Task]) -> Task | None:
    ref_lower = ref.lower()
    exact = next((item for item in pool if item.id == ref_lower), None)
    if exact:
        return exact
    matches = [item for item in pool if item.id.startswith(ref_lower)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [item.id[:8] for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_substring(ref: str, pool: Sequence[Task]) -> Task | None:
    ref_lower = ref.lower()
    exact = next((item for item in pool if item.content.lower() == ref_lower), None)
    if exact:
        return exact
    matches = [item for item in pool if ref_lower in item.content.lower()]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [item.content for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_fuzzy(ref: str, pool: Sequence[Task]) -> Task | None:
    matches = get_close_matches(
        ref.lower(), [item.content.lower() for item in pool], n=1, cutoff=FUZZY_MATCH_CUTOFF
    )
    if matches:
        return next((item for item in pool if item.content.lower() == matches[0]), None)
    return None


def find_in_pool(ref: str, pool: Sequence[Task]) -> Task | None:
    if not pool:
        return None
    return _match_id(ref, pool) or _match_substring(ref, pool) or _match_fuzzy(ref, pool)
