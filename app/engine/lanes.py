"""
Lane allocation for a user's concurrent assignments.

Greedy interval packing: assignments are taken in start order and dropped
into the first lane whose last interval ends strictly before the new start.
This is first-fit interval colouring. It does not guarantee the minimum lane
count, but never puts two overlapping assignments in one lane.

Complexity: O(n log n) for the sort plus O(n * L) for placement, where
L = number of lanes opened.
"""

from collections import Counter
from typing import Iterable, List

from app.models.entities import Assignment
from app.models.views import LaneLayout, LanePlacement
from app.utils.dates import day_range


def allocate_lanes(assignments: Iterable[Assignment]) -> LaneLayout:
    """
    Pack assignments into display lanes.

    Args:
        assignments: One user's assignments, in input order

    Returns:
        LaneLayout with one placement per schedulable assignment, in placement
        order, and the number of lanes opened

    Ties on start date keep input order (sorted() is stable), so re-rendering
    the same snapshot keeps bars on the same lanes.
    """
    ordered = sorted((a for a in assignments if a.schedulable), key=lambda a: a.start)

    lane_ends = []
    placements: List[LanePlacement] = []
    for a in ordered:
        for lane, last_end in enumerate(lane_ends):
            if last_end < a.start:
                lane_ends[lane] = a.end
                break
        else:
            lane = len(lane_ends)
            lane_ends.append(a.end)
        placements.append(LanePlacement(assignment=a, lane=lane))

    return LaneLayout(placements=placements, lane_count=len(lane_ends))


def peak_concurrency(assignments: Iterable[Assignment]) -> int:
    """Maximum number of assignments covering any single day."""
    load = Counter()
    for a in assignments:
        if a.schedulable:
            load.update(day_range(a.start, a.end))
    return max(load.values(), default=0)
