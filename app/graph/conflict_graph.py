from collections import defaultdict
from typing import Dict, List, Set

from app.models.entities import Assignment


def overlaps(a: Assignment, b: Assignment) -> bool:
    # Calendar days are inclusive on both ends
    return a.start <= b.end and b.start <= a.end


def build_conflict_graph(assignments: List[Assignment]) -> Dict[str, Set[str]]:
    """Edges between overlapping assignments that belong to different root projects."""
    spans = [a for a in assignments if a.schedulable]
    graph: Dict[str, Set[str]] = defaultdict(set)
    for i, a1 in enumerate(spans):
        for a2 in spans[i + 1 :]:
            if a1.root_id != a2.root_id and overlaps(a1, a2):
                graph[a1.id].add(a2.id)
                graph[a2.id].add(a1.id)
    return dict(graph)
