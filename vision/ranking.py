"""Score ranking, truncation and filtering of pipeline results."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import TypeVar

from vision.detections import Classification, Detection


ScoredT = TypeVar("ScoredT", Detection, Classification)


def rank_by_score(items: Iterable[ScoredT], max_count: int = 0) -> list[ScoredT]:
    """Sort by score descending and keep at most ``max_count`` entries.

    The sort is stable, so equal scores keep their input order. A
    ``max_count`` of zero keeps every entry.
    """

    ranked = sorted(items, key=lambda item: item.score, reverse=True)
    if max_count > 0:
        del ranked[max_count:]
    return ranked


def rank_and_filter(
    detections: Iterable[Detection],
    max_count: int,
    min_confidence: float,
    allowed_labels: Collection[str],
) -> list[Detection]:
    """Rank detections, cap their number, then apply score and label filters.

    The cap is applied before filtering: a detection outside the top
    ``max_count`` is dropped even if lower ranked entries are later removed by
    the filters. Only labels present in ``allowed_labels`` pass; an empty
    allow-list rejects every detection.
    """

    allowed = frozenset(allowed_labels)
    return [
        detection
        for detection in rank_by_score(detections, max_count)
        if detection.score >= min_confidence and detection.label in allowed
    ]


def merge_classifications(
    classifications: Iterable[Classification],
    max_count: int,
) -> list[Classification]:
    """Merge classifier outputs into one ranked list capped at ``max_count``."""

    return rank_by_score(classifications, max_count)
