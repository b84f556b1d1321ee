"""Ranked code owner suggestions for a path."""

from .scores import OwnerScore, distance_score, linear_score
from .suggester import OwnerSuggester, SuggestedOwner, SuggestionResult

__all__ = [
    "OwnerScore",
    "OwnerSuggester",
    "SuggestedOwner",
    "SuggestionResult",
    "distance_score",
    "linear_score",
]
