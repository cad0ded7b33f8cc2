"""
Balanced school-supervisor assignment.

Students without a school supervisor are shuffled with a seedable RNG and then
handed out one at a time to whichever supervisor currently has the fewest
students, counting students they already supervise. Ties go to the supervisor
that comes first in the input order, so the same seed and the same inputs
always produce the same assignment.

With zero prior load this leaves every supervisor with floor(N/M) or
ceil(N/M) students. With uneven prior load the lightest supervisors are
topped up first.
"""
import heapq
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple


@dataclass
class BalanceResult:
    # student id -> supervisor id
    assignments: Dict[str, str] = field(default_factory=dict)
    # supervisor id -> number of students newly assigned in this run
    new_counts: Dict[str, int] = field(default_factory=dict)
    # supervisor id -> total load after the run
    final_loads: Dict[str, int] = field(default_factory=dict)


def seeded_shuffle(items: Sequence[str], seed: Optional[int] = None) -> List[str]:
    """Shuffle a copy of items; sorting first makes the result independent of query order"""
    shuffled = sorted(items)
    random.Random(seed).shuffle(shuffled)
    return shuffled


def balance_assignments(
    student_ids: Sequence[str],
    supervisor_loads: Sequence[Tuple[str, int]],
    seed: Optional[int] = None,
) -> BalanceResult:
    """
    Distribute students across supervisors, least-loaded first.

    Args:
        student_ids: students that need a supervisor
        supervisor_loads: (supervisor_id, current_student_count) in tie-break order
        seed: RNG seed for the student shuffle; None draws from system entropy

    Returns:
        BalanceResult with the mapping and the per-supervisor counts
    """
    if not supervisor_loads:
        raise ValueError("At least one supervisor is required")

    result = BalanceResult()
    heap: List[Tuple[int, int, str]] = []
    for order, (supervisor_id, load) in enumerate(supervisor_loads):
        heap.append((load, order, supervisor_id))
        result.new_counts[supervisor_id] = 0
        result.final_loads[supervisor_id] = load
    heapq.heapify(heap)

    for student_id in seeded_shuffle(student_ids, seed):
        load, order, supervisor_id = heapq.heappop(heap)
        result.assignments[student_id] = supervisor_id
        result.new_counts[supervisor_id] += 1
        result.final_loads[supervisor_id] = load + 1
        heapq.heappush(heap, (load + 1, order, supervisor_id))

    return result
