"""
Simulated Annealing
Improves the stock-order schedule by swapping slots on a machine or moving a
slot to another capable machine of the same group.
"""

import math
from typing import List, Optional, Tuple

from algorithms.context import PlanningContext
from algorithms.models import MachineSchedule, clone_schedule
from algorithms.placement import Schedule, recalculate_slot_times
from algorithms.quality import QualityEvaluator


class SimulatedAnnealingOptimizer:
    """Temperature-controlled local search over machine sequences."""

    INITIAL_TEMPERATURE = 1000.0
    COOLING_RATE = 0.95
    MIN_TEMPERATURE = 1.0
    SWAP_PROBABILITY = 0.7  # otherwise relocate
    MIN_ITERATIONS = 2
    MAX_ITERATIONS = 10

    def __init__(self, context: PlanningContext, evaluator: QualityEvaluator):
        self.context = context
        self.evaluator = evaluator
        self.best_history: List[float] = []
        self.iterations = 0

    def iterations_per_temperature(self, order_count: int) -> int:
        return min(self.MAX_ITERATIONS, max(self.MIN_ITERATIONS, order_count // 2))

    def optimize(self, initial: Schedule, order_count: int) -> Schedule:
        """
        Run the annealing loop and return the best schedule found.

        Args:
            initial: Schedule from the greedy constructor (left untouched)
            order_count: Number of stock orders, scales the inner loop

        Returns:
            Best schedule seen
        """
        rng = self.context.rng
        weights = self.context.weights
        inner = self.iterations_per_temperature(order_count)

        current = clone_schedule(initial)
        current_fitness = self.evaluator.evaluate(current, weights)
        best = clone_schedule(current)
        best_fitness = current_fitness
        initial_fitness = current_fitness

        temperature = self.INITIAL_TEMPERATURE
        self.best_history = [best_fitness]
        self.iterations = 0

        self.context.log(f"Simulated annealing started at temperature {temperature:.0f}")
        self.context.log(f"Initial fitness: {current_fitness:.4f}")

        while temperature > self.MIN_TEMPERATURE:
            for _ in range(inner):
                neighbor = self.generate_neighbor(current)
                neighbor_fitness = self.evaluator.evaluate(neighbor, weights)

                if neighbor_fitness > best_fitness:
                    best = clone_schedule(neighbor)
                    best_fitness = neighbor_fitness
                    self.context.log(f"New best solution, fitness {best_fitness:.4f}")

                delta = neighbor_fitness - current_fitness
                if delta > 0 or rng.random() < math.exp(delta / temperature):
                    current = neighbor
                    current_fitness = neighbor_fitness

                self.best_history.append(best_fitness)
                self.iterations += 1

            temperature *= self.COOLING_RATE
            self.context.log(f"Temperature: {temperature:.2f}, best fitness: {best_fitness:.4f}")

        self.context.log(f"Simulated annealing finished after {self.iterations} iterations")
        self.context.log(
            f"Final fitness: {best_fitness:.4f} "
            f"(improvement {best_fitness - initial_fitness:.4f})"
        )
        return best

    def generate_neighbor(self, schedule: Schedule) -> Schedule:
        """Copy of the schedule with one random swap or relocation applied."""
        neighbor = clone_schedule(schedule)
        if self.context.rng.random() < self.SWAP_PROBABILITY:
            self._swap_move(neighbor)
        else:
            self._relocate_move(neighbor)
        return neighbor

    def _swap_move(self, schedule: Schedule) -> bool:
        rng = self.context.rng
        candidates = [ms for ms in schedule.values() if len(ms.slots) >= 2]
        if not candidates:
            return False

        machine_schedule = rng.choice(candidates)
        slots = machine_schedule.slots
        i, j = rng.sample(range(len(slots)), 2)

        # The machine's timeline keeps its origin, whichever slot comes first
        anchor_start = slots[0].start
        slots[i], slots[j] = slots[j], slots[i]
        slots[0].start = anchor_start

        recalculate_slot_times(machine_schedule, self.context.lookup)
        return True

    def _relocate_move(self, schedule: Schedule) -> bool:
        rng = self.context.rng
        candidates = [ms for ms in schedule.values() if ms.slots]
        if not candidates:
            return False

        source = rng.choice(candidates)
        index = rng.randrange(len(source.slots))
        slot = source.slots[index]

        alternatives = self.context.resolver.alternative_machines(source.machine_id, slot.part_number)
        if not alternatives:
            return False
        target_machine = rng.choice(alternatives)

        target = schedule.get(target_machine.machine_id)
        if target is None:
            target = MachineSchedule(
                machine_id=target_machine.machine_id,
                machine_name=target_machine.name or f"Machine {target_machine.machine_id}",
            )
            schedule[target_machine.machine_id] = target

        anchor_start = source.slots[0].start
        source.slots.pop(index)
        if source.slots:
            source.slots[0].start = anchor_start
        slot.machine_id = target_machine.machine_id
        target.slots.append(slot)

        recalculate_slot_times(source, self.context.lookup)
        recalculate_slot_times(target, self.context.lookup)
        return True
