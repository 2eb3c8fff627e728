"""
Time-windowed clustering for the grouping package.

Groups are rebuilt from scratch on every structural change (new assets,
deletion, window or tuning change). The functions here are pure apart from
setting the is_best / is_checked / is_in_bucket flags on the thumbnails they
are given.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..config import DEFAULT_WINDOW_MINUTES
from ..models import Thumbnail, identifier_key
from ..similarity import SimilarityEvaluator, SimilarityTuning


def _timestamp(thumbnail: Thumbnail) -> float:
    return thumbnail.creation_time.timestamp()


def sort_newest_first(thumbnails: Iterable[Thumbnail]) -> list[Thumbnail]:
    """
    Stable sort by creation time, newest first.

    Thumbnails without a creation time are dropped.
    """
    dated = [t for t in thumbnails if t.creation_time is not None]
    return sorted(dated, key=_timestamp, reverse=True)


def candidate_belongs(
    candidate: Thumbnail,
    group: list[Thumbnail],
    window_seconds: float,
    evaluator: SimilarityEvaluator,
) -> bool:
    """
    True when the candidate is inside the time window of, and similar to,
    at least one current member of the group.
    """
    if candidate.creation_time is None:
        return False
    candidate_time = _timestamp(candidate)

    for member in group:
        if member.creation_time is None:
            continue
        if abs(_timestamp(member) - candidate_time) > window_seconds:
            continue
        if evaluator.is_similar(member, candidate):
            return True
    return False


def cluster_thumbnails(
    thumbnails: Iterable[Thumbnail],
    window_minutes: int = DEFAULT_WINDOW_MINUTES,
    tuning: Optional[SimilarityTuning] = None,
    evaluator: Optional[SimilarityEvaluator] = None,
) -> list[list[Thumbnail]]:
    """
    Partition thumbnails into near-duplicate groups.

    Each unused thumbnail, newest first, anchors a candidate group. One
    ordered pass over the remaining unused thumbnails admits every item that
    matches any member already in the group, so a group can grow along a
    chain of pairwise matches.

    Args:
        thumbnails: Signed thumbnails in any order
        window_minutes: Maximum capture-time gap to a matching member
        tuning: Similarity tuning (ignored when evaluator is given)
        evaluator: Optional evaluator, to reuse its scene-profile cache

    Returns:
        Groups of two or more thumbnails, members newest first, groups
        ordered by their newest member. Groups made only of retained
        thumbnails are left out.
    """
    if evaluator is None:
        evaluator = SimilarityEvaluator(tuning)

    ordered = sort_newest_first(thumbnails)
    if len(ordered) < 2:
        return []

    window_seconds = float(window_minutes * 60)
    used: set[str] = set()
    groups: list[list[Thumbnail]] = []

    for anchor in ordered:
        if anchor.id in used:
            continue

        group = [anchor]
        used.add(anchor.id)

        for candidate in ordered:
            if candidate.id in used:
                continue
            if candidate_belongs(candidate, group, window_seconds, evaluator):
                group.append(candidate)
                used.add(candidate.id)

        if len(group) < 2:
            continue
        if all(t.is_retained for t in group):
            continue

        groups.append(sort_newest_first(group))

    groups.sort(key=lambda g: _timestamp(g[0]), reverse=True)
    return groups


def mark_best(group: list[Thumbnail]) -> Optional[Thumbnail]:
    """
    Flag the sharpest member as best and clear the flag on the others.

    Ties go to the first member in group order.
    """
    if not group:
        return None

    best = group[0]
    for thumbnail in group[1:]:
        if thumbnail.sharpness > best.sharpness:
            best = thumbnail

    for thumbnail in group:
        thumbnail.is_best = thumbnail is best
    return best


def ensure_default_check(
    group: list[Thumbnail],
    enforce_checked: bool,
    mark_bucket: bool,
) -> None:
    """
    Normalize the flags of one group in place.

    The best flag is recomputed unless exactly one member carries it. When
    enforce_checked is set and nothing is checked, the best member is
    checked. When mark_bucket is set, each member's bucket flag becomes
    the opposite of its check flag.
    """
    if not group:
        return

    if sum(1 for t in group if t.is_best) != 1:
        mark_best(group)

    if enforce_checked and not any(t.is_checked for t in group):
        best = next((t for t in group if t.is_best), group[0])
        best.is_checked = True

    if mark_bucket:
        for thumbnail in group:
            thumbnail.is_in_bucket = not thumbnail.is_checked


def group_keys(groups: Iterable[list[Thumbnail]]) -> list[str]:
    """Identifier keys of a list of groups, in order."""
    return [identifier_key(group) for group in groups]


__all__ = [
    'sort_newest_first',
    'candidate_belongs',
    'cluster_thumbnails',
    'mark_best',
    'ensure_default_check',
    'group_keys',
    'identifier_key',
]
