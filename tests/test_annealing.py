"""Tests for the simulated annealing optimizer."""

import random
import pytest

from algorithms.models import Order, OrderType, Machine, Route, Weights
from algorithms.placement import PlacementEngine
from algorithms.quality import QualityEvaluator
from algorithms.annealing import SimulatedAnnealingOptimizer


@pytest.fixture
def single_step_setup(make_context):
    """Six stock orders on two interchangeable lathes, single-step routes."""
    machines = [
        Machine(1000, 'Lathe A', 1, ('P1', 'P2')),
        Machine(1001, 'Lathe B', 1, ('P1', 'P2')),
    ]
    routes = [Route('P1', (1,)), Route('P2', (1,))]
    orders = [
        Order(i, f'R-{i}', part, f'R-{i}', OrderType.STOCK, 5 + i)
        for i, part in enumerate(['P1', 'P2', 'P1', 'P2', 'P1', 'P2'], 1)
    ]
    context = make_context(machines=machines, routes=routes, orders=orders)

    engine = PlacementEngine(context)
    schedule = {}
    for order in orders:
        schedule, _ = engine.place_order(context.resolver.route_for(order.part_number), order, schedule)

    evaluator = QualityEvaluator({m.machine_id: m.group_id for m in machines}, [], context.due_offsets)
    return context, evaluator, schedule, orders


def _slot_refs(schedule):
    return sorted(s.order_ref for ms in schedule.values() for s in ms.slots)


class TestIterations:
    """Tests for the inner loop length."""

    @pytest.mark.parametrize('order_count, expected', [(1, 2), (4, 2), (6, 3), (20, 10), (500, 10)])
    def test_iterations_per_temperature(self, make_context, order_count, expected):
        optimizer = SimulatedAnnealingOptimizer(make_context(), None)
        assert optimizer.iterations_per_temperature(order_count) == expected


class TestNeighbors:
    """Tests for swap and relocate moves."""

    def test_neighbor_keeps_all_slots(self, single_step_setup):
        context, evaluator, schedule, _ = single_step_setup
        optimizer = SimulatedAnnealingOptimizer(context, evaluator)

        for _ in range(50):
            neighbor = optimizer.generate_neighbor(schedule)
            assert _slot_refs(neighbor) == _slot_refs(schedule)
            schedule = neighbor

    def test_neighbor_does_not_touch_input(self, single_step_setup):
        context, evaluator, schedule, _ = single_step_setup
        optimizer = SimulatedAnnealingOptimizer(context, evaluator)
        before = {mid: ms.to_dict() for mid, ms in schedule.items()}

        optimizer.generate_neighbor(schedule)
        assert {mid: ms.to_dict() for mid, ms in schedule.items()} == before

    def test_neighbor_timing_consistent(self, single_step_setup):
        context, evaluator, schedule, _ = single_step_setup
        optimizer = SimulatedAnnealingOptimizer(context, evaluator)

        for _ in range(50):
            schedule = optimizer.generate_neighbor(schedule)
            for ms in schedule.values():
                for previous, slot in zip(ms.slots, ms.slots[1:]):
                    assert slot.start == previous.end
                    assert slot.setup_time == context.lookup.setup_time(previous.part_number, slot.part_number)
                for slot in ms.slots:
                    assert slot.end == slot.start + slot.setup_time + slot.processing_time
                    assert slot.machine_id == ms.machine_id

    def test_relocation_stays_on_capable_machine(self, single_step_setup):
        context, evaluator, schedule, _ = single_step_setup
        optimizer = SimulatedAnnealingOptimizer(context, evaluator)
        optimizer.SWAP_PROBABILITY = 0.0

        for _ in range(30):
            schedule = optimizer.generate_neighbor(schedule)
            for ms in schedule.values():
                machine = context.resolver.machines_by_id[ms.machine_id]
                for slot in ms.slots:
                    assert machine.can_produce(slot.part_number)

    def test_swap_keeps_machine_origin(self, single_step_setup):
        context, evaluator, schedule, _ = single_step_setup
        optimizer = SimulatedAnnealingOptimizer(context, evaluator)
        optimizer.SWAP_PROBABILITY = 1.0
        origins = {mid: ms.slots[0].start for mid, ms in schedule.items() if ms.slots}

        for _ in range(30):
            schedule = optimizer.generate_neighbor(schedule)
            for mid, start in origins.items():
                assert schedule[mid].slots[0].start == start


class TestOptimize:
    """Tests for the annealing loop."""

    def test_best_history_never_decreases(self, single_step_setup):
        context, evaluator, schedule, orders = single_step_setup
        optimizer = SimulatedAnnealingOptimizer(context, evaluator)

        optimizer.optimize(schedule, len(orders))

        history = optimizer.best_history
        assert len(history) == optimizer.iterations + 1
        assert all(b >= a for a, b in zip(history, history[1:]))

    def test_result_not_worse_than_start(self, single_step_setup):
        context, evaluator, schedule, orders = single_step_setup
        optimizer = SimulatedAnnealingOptimizer(context, evaluator)
        initial_fitness = evaluator.evaluate(schedule, context.weights)

        best = optimizer.optimize(schedule, len(orders))

        assert evaluator.evaluate(best, context.weights) >= initial_fitness
        assert evaluator.evaluate(best, context.weights) == optimizer.best_history[-1]
        assert _slot_refs(best) == _slot_refs(schedule)

    def test_cooling_schedule_length(self, single_step_setup):
        context, evaluator, schedule, orders = single_step_setup
        optimizer = SimulatedAnnealingOptimizer(context, evaluator)
        optimizer.optimize(schedule, len(orders))

        steps = 0
        temperature = SimulatedAnnealingOptimizer.INITIAL_TEMPERATURE
        while temperature > SimulatedAnnealingOptimizer.MIN_TEMPERATURE:
            temperature *= SimulatedAnnealingOptimizer.COOLING_RATE
            steps += 1
        assert optimizer.iterations == steps * optimizer.iterations_per_temperature(len(orders))

    def test_seeded_runs_are_reproducible(self, single_step_setup):
        context, evaluator, schedule, orders = single_step_setup

        context.rng = random.Random(7)
        first = SimulatedAnnealingOptimizer(context, evaluator).optimize(schedule, len(orders))
        context.rng = random.Random(7)
        second = SimulatedAnnealingOptimizer(context, evaluator).optimize(schedule, len(orders))

        assert {k: v.to_dict() for k, v in first.items()} == {k: v.to_dict() for k, v in second.items()}
