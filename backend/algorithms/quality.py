"""
Schedule Quality Evaluation
Scores a complete schedule; higher fitness is better.
"""

from typing import Dict, List, Optional

from algorithms.models import Weights
from algorithms.placement import Schedule, machine_load


class QualityEvaluator:
    """
    Weighted multi-criteria fitness of a schedule.

    The evaluator only holds run constants (machine groups, bottleneck set,
    due offsets); `evaluate` is a pure function of schedule and weights.
    """

    OPTIMAL_BOTTLENECK_UTILIZATION = 0.85

    def __init__(self, machine_groups: Dict[int, int], bottleneck_groups: List[int],
                 due_offsets: Dict[str, Optional[float]]):
        """
        Args:
            machine_groups: machine id -> group id
            bottleneck_groups: ids of the flagged bottleneck groups
            due_offsets: order reference -> due date in minutes from plan start
        """
        self.machine_groups = dict(machine_groups)
        self.bottleneck_groups = set(bottleneck_groups)
        self.due_offsets = dict(due_offsets)

    def breakdown(self, schedule: Schedule) -> Dict[str, float]:
        """Normalized criteria of a schedule (each roughly within [0, 1])."""
        total_setup = 0
        total_processing = 0
        makespan = 0
        lateness = 0
        total_load = 0
        bottleneck_load = 0
        tasks = 0

        for machine_id, machine_schedule in schedule.items():
            group_id = self.machine_groups.get(machine_id)
            if group_id is None:
                continue

            for slot in machine_schedule.slots:
                total_setup += slot.setup_time
                total_processing += slot.processing_time
                tasks += 1
                due = self.due_offsets.get(slot.order_ref)
                if due is not None and slot.end > due:
                    lateness += slot.end - due
                makespan = max(makespan, slot.end)

            load = machine_load(schedule, machine_id)
            total_load += load
            if group_id in self.bottleneck_groups:
                bottleneck_load += load

        avg_job = (total_setup + total_processing) / max(1, tasks)
        reference = max(1, tasks * avg_job)

        avg_bottleneck = bottleneck_load / max(1, len(self.bottleneck_groups))
        optimum = self.OPTIMAL_BOTTLENECK_UTILIZATION
        deviation = abs(avg_bottleneck - optimum) / optimum

        return {
            'makespan': makespan / reference,
            'setup_ratio': total_setup / max(1, total_setup + total_processing),
            'lateness': min(1.0, lateness / reference),
            'machine_load': total_load / max(1, len(schedule)),
            'bottleneck_deviation': min(1.0, deviation),
            'raw_makespan': makespan,
            'raw_lateness': lateness,
        }

    def evaluate(self, schedule: Schedule, weights: Weights) -> float:
        terms = self.breakdown(schedule)
        return -(
            weights.end_time * terms['makespan'] +
            weights.setup_time * terms['setup_ratio'] +
            weights.due_date * terms['lateness'] +
            weights.machine_load * terms['machine_load'] +
            weights.bottleneck * terms['bottleneck_deviation']
        )
