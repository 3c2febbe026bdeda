"""
Bottleneck Identification
Flags capacity-constrained machine groups from the full order list.
"""

import math
from typing import Dict, List
from dataclasses import dataclass, field

from algorithms.models import Order, MachineGroup
from algorithms.lookup import TimeLookup, RouteResolver


# Score composition
LOAD_WEIGHT = 0.6
FREQUENCY_WEIGHT = 0.3
SETUP_WEIGHT = 0.1

# Selection bounds
SCORE_THRESHOLD = 0.6   # share of the maximum score
MAX_GROUP_SHARE = 0.3   # at most 30% of all groups (rounded up)


@dataclass
class BottleneckAnalysis:
    """Scores for all groups and the selected bottleneck groups."""
    scores: Dict[int, float] = field(default_factory=dict)
    groups: List[int] = field(default_factory=list)
    details: Dict[int, Dict[str, float]] = field(default_factory=dict)


def identify_bottleneck_groups(orders: List[Order], machine_groups: List[MachineGroup],
                               lookup: TimeLookup, resolver: RouteResolver) -> BottleneckAnalysis:
    """
    Score every machine group and select the bottleneck groups.

    Per group, over all orders whose route passes through it:
    - load: sum of estimated processing times
    - frequency: number of route occurrences
    - setup burden: sum of the parts' average setup times, counted only
      where the group follows another route step

    score = 0.6 * load / machines + 0.3 * log10(frequency + 1)
            + 0.1 * setup burden / max(1, load)

    Groups scoring at least 60% of the best score are selected, bounded to
    at least one and at most ceil(30%) of all groups.
    """
    analysis = BottleneckAnalysis()
    if not machine_groups:
        return analysis

    loads = {g.group_id: 0.0 for g in machine_groups}
    frequency = {g.group_id: 0 for g in machine_groups}
    setup_burden = {g.group_id: 0.0 for g in machine_groups}

    for order in orders:
        route = resolver.route_for(order.part_number)
        if route is None:
            continue
        processing_time = lookup.cycle_time(order.part_number, order.lot_size)
        avg_setup = lookup.average_setup_time(order.part_number)
        for step, group_id in enumerate(route.sequence):
            if group_id not in loads:
                continue
            loads[group_id] += processing_time
            frequency[group_id] += 1
            if step > 0:
                setup_burden[group_id] += avg_setup

    for group in machine_groups:
        gid = group.group_id
        capacity = len(resolver.machines_in_group(gid)) or 1
        load = loads[gid]

        utilization = load / capacity
        frequency_factor = math.log10(frequency[gid] + 1)
        setup_factor = setup_burden[gid] / max(1, load)

        score = (
            utilization * LOAD_WEIGHT +
            frequency_factor * FREQUENCY_WEIGHT +
            setup_factor * SETUP_WEIGHT
        )
        analysis.scores[gid] = score
        analysis.details[gid] = {
            'utilization': utilization,
            'frequency': frequency[gid],
            'setup_factor': setup_factor,
            'score': score,
        }

    # Stable sort keeps master data order among equal scores
    ranked = sorted(analysis.scores, key=lambda gid: analysis.scores[gid], reverse=True)
    threshold = analysis.scores[ranked[0]] * SCORE_THRESHOLD
    above_threshold = [gid for gid in ranked if analysis.scores[gid] >= threshold]

    limit = math.ceil(len(ranked) * MAX_GROUP_SHARE)
    count = max(1, min(len(above_threshold), limit))
    analysis.groups = ranked[:count]

    return analysis
