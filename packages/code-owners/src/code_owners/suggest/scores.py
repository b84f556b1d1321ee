from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class OwnerScore(StrEnum):
    DISTANCE = "distance"
    IS_REVIEWER = "is_reviewer"


SCORE_WEIGHTS: dict[str, float] = {
    OwnerScore.DISTANCE: 1.0,
    OwnerScore.IS_REVIEWER: 2.0,
}

IS_REVIEWER_VALUE = 1.0
NO_REVIEWER_VALUE = 0.0


def linear_score(features: Mapping[str, float], weights: Mapping[str, float]) -> float:
    total = 0.0
    for key, weight in weights.items():
        total += float(weight) * float(features.get(key, 0.0))
    return total


def distance_score(distance: int, max_distance: int) -> float:
    """1.0 for owners in the file's own folder, 0.0 at `max_distance`."""
    if max_distance <= 0:
        return 1.0
    return (max_distance - min(distance, max_distance)) / max_distance
