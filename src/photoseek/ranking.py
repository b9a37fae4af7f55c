"""Distance-based filtering for nearest-neighbour results."""

from typing import Callable, List, Optional, Sequence, TypeVar


T = TypeVar("T")

DEFAULT_DISTANCE_DELTA = 0.05
DEFAULT_DISTANCE_CAP = 0.60


def clamp_limit(limit: Optional[int], default: int = 24, maximum: int = 200) -> int:
    """Clamp a requested result count into ``[1, maximum]``."""
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


def adaptive_cutoff(
    distances: Sequence[float],
    delta: float = DEFAULT_DISTANCE_DELTA,
    cap: float = DEFAULT_DISTANCE_CAP,
) -> Optional[float]:
    """Return ``min(best + delta, cap)`` or None when there are no candidates."""
    if not distances:
        return None
    return min(min(distances) + delta, cap)


def apply_distance_policy(
    candidates: Sequence[T],
    max_distance: Optional[float] = None,
    delta: float = DEFAULT_DISTANCE_DELTA,
    cap: float = DEFAULT_DISTANCE_CAP,
    distance_of: Callable[[T], float] = lambda candidate: candidate.distance,
) -> List[T]:
    """Filter candidates sorted ascending by distance.

    With ``max_distance`` the cutoff is fixed. Without it the window is
    anchored on the closest candidate: everything within ``delta`` of it is
    kept, but never anything beyond ``cap``. Order is preserved.
    """
    if max_distance is not None:
        cutoff = float(max_distance)
    else:
        cutoff = adaptive_cutoff([distance_of(c) for c in candidates], delta=delta, cap=cap)
        if cutoff is None:
            return []
    return [candidate for candidate in candidates if distance_of(candidate) <= cutoff]
