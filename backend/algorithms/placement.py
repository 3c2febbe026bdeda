"""
Placement Engine
Walks an order's route step by step and books each operation on the best
eligible machine of the step's group, scored over several criteria.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass

from algorithms.models import Order, Route, Machine, Slot, MachineSchedule
from algorithms.lookup import TimeLookup
from algorithms.context import PlanningContext


Schedule = Dict[int, MachineSchedule]


def machine_load(schedule: Schedule, machine_id: int) -> float:
    """
    Busy share of a machine: (setup + processing) over its own makespan.

    Idle machines have load 0.
    """
    machine_schedule = schedule.get(machine_id)
    if machine_schedule is None or not machine_schedule.slots:
        return 0
    total_work_time = machine_schedule.slots[-1].end
    if total_work_time <= 0:
        return 0
    busy = sum(s.setup_time + s.processing_time for s in machine_schedule.slots)
    return busy / total_work_time


def recalculate_slot_times(machine_schedule: MachineSchedule, lookup: TimeLookup):
    """
    Re-derive start/setup/end of every slot after a reordering.

    The first slot keeps its recorded start and setup; every later slot
    starts when its predecessor ends and gets the changeover time from the
    predecessor's part.
    """
    previous = None
    for slot in machine_schedule.slots:
        if previous is not None:
            slot.start = previous.end
            slot.setup_time = lookup.setup_time(previous.part_number, slot.part_number)
        slot.end = slot.start + slot.setup_time + slot.processing_time
        previous = slot


@dataclass
class MachineCandidate:
    """Evaluation of one machine for one route step."""
    machine: Machine
    start: float
    setup_time: float
    processing_time: float
    end: float
    score: float


class PlacementEngine:
    """Chooses machines for route steps and appends slots to the schedule."""

    SHIFT_MINUTES = 480          # reference shift length for start/end normalization
    DUE_TOLERANCE_MINUTES = 4320  # 3 days of lateness saturate the due-date criterion

    def __init__(self, context: PlanningContext):
        self.context = context

    def place_order(self, route: Route, order: Order, schedule: Schedule,
                    earliest_from: float = 0) -> Tuple[Schedule, float]:
        """
        Place every route step of an order.

        Args:
            route: Route of the order's part
            order: Order to place
            schedule: Current schedule, extended in place
            earliest_from: Earliest start of the first step

        Returns:
            (schedule, completion time of the order's last appended slot)
        """
        completion_time = 0
        current_time = earliest_from

        for group_id in route.sequence:
            capable = self.context.resolver.eligible_machines(group_id, order.part_number)
            if not capable:
                # Known gap: the order completes without visiting this group
                self.context.warn(
                    f"No capable machine in {self.context.group_name(group_id)} "
                    f"for {order.part_number}; step skipped"
                )
                continue

            best = self.select_machine(capable, order, schedule, current_time)
            self._append_slot(schedule, best, order)

            current_time = best.end
            completion_time = max(completion_time, best.end)

        return schedule, completion_time

    def select_machine(self, capable: List[Machine], order: Order,
                       schedule: Schedule, current_time: float) -> MachineCandidate:
        """Score all capable machines; the first machine reaching the best score wins."""
        best = None
        for machine in capable:
            candidate = self.evaluate_machine(machine, order, schedule, current_time)
            if best is None or candidate.score > best.score:
                best = candidate
        return best

    def evaluate_machine(self, machine: Machine, order: Order,
                         schedule: Schedule, current_time: float) -> MachineCandidate:
        lookup = self.context.lookup
        weights = self.context.weights

        machine_schedule = schedule.get(machine.machine_id)
        last_slot = machine_schedule.last_slot if machine_schedule else None
        if last_slot is None:
            available_at, setup_time = 0, 0
        else:
            available_at = last_slot.end
            setup_time = lookup.setup_time(last_slot.part_number, order.part_number)

        start = max(available_at, current_time)
        processing_time = lookup.cycle_time(order.part_number, order.lot_size, machine.machine_id)
        end = start + setup_time + processing_time

        job_time = setup_time + processing_time
        setup_ratio = setup_time / job_time if job_time > 0 else 0
        load = machine_load(schedule, machine.machine_id)

        due_offset = self.context.due_offsets.get(order.report_number)
        due_deviation = end - due_offset if due_offset is not None else 0

        norm_start = min(1.0, start / self.SHIFT_MINUTES)
        norm_end = min(1.0, end / self.SHIFT_MINUTES)
        norm_due = min(1.0, max(0, due_deviation) / self.DUE_TOLERANCE_MINUTES)

        bottleneck_impact = 0
        if self.context.is_bottleneck(machine.group_id):
            bottleneck_impact = load * self.context.bottleneck_scores.get(machine.group_id, 0)
        norm_bottleneck = min(1.0, bottleneck_impact)

        score = (
            -weights.start_time * norm_start
            - weights.end_time * norm_end
            - weights.setup_time * setup_ratio
            - weights.machine_load * load
            - weights.due_date * norm_due
            - weights.bottleneck * norm_bottleneck
        )

        return MachineCandidate(
            machine=machine,
            start=start,
            setup_time=setup_time,
            processing_time=processing_time,
            end=end,
            score=score,
        )

    def _append_slot(self, schedule: Schedule, candidate: MachineCandidate, order: Order):
        machine = candidate.machine
        slot = Slot(
            order_ref=order.report_number,
            order_name=order.name,
            part_number=order.part_number,
            machine_id=machine.machine_id,
            start=candidate.start,
            end=candidate.end,
            setup_time=candidate.setup_time,
            processing_time=candidate.processing_time,
            order_type=order.order_type,
        )
        if machine.machine_id not in schedule:
            schedule[machine.machine_id] = MachineSchedule(
                machine_id=machine.machine_id,
                machine_name=machine.name or f"Machine {machine.machine_id}",
            )
        schedule[machine.machine_id].slots.append(slot)
