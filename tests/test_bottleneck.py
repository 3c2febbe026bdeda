"""Tests for bottleneck group identification."""

import math
import pytest

from algorithms.models import Order, OrderType, Machine, MachineGroup, Route
from algorithms.lookup import TimeLookup, RouteResolver
from algorithms.bottleneck import identify_bottleneck_groups, MAX_GROUP_SHARE


def _analyze(orders, groups, machines, routes, setup_matrix=None, cycle_matrix=None):
    lookup = TimeLookup(setup_matrix or {}, cycle_matrix or {}, machines)
    resolver = RouteResolver(routes, machines)
    return identify_bottleneck_groups(orders, groups, lookup, resolver)


def _stock(ref, part, lot):
    return Order(0, ref, part, ref, OrderType.STOCK, lot)


class TestBottleneckScores:
    """Tests for the group score composition."""

    def test_score_formula(self, setup_matrix, cycle_matrix):
        groups = [MachineGroup(1, 'Turning')]
        machines = [Machine(1000, 'A', 1, ('P1',)), Machine(1001, 'B', 1, ('P1',))]
        analysis = _analyze([_stock('R-1', 'P1', 10)], groups, machines,
                            [Route('P1', (1,))], setup_matrix, cycle_matrix)

        # load 30 over 2 machines, one occurrence, first step carries no setup burden
        expected = (30 / 2) * 0.6 + math.log10(2) * 0.3
        assert analysis.scores[1] == pytest.approx(expected)
        assert analysis.details[1]['frequency'] == 1
        assert analysis.details[1]['setup_factor'] == 0

    def test_setup_burden_on_later_steps(self, setup_matrix, cycle_matrix):
        groups = [MachineGroup(1, 'Turning'), MachineGroup(2, 'Milling')]
        machines = [Machine(1000, 'A', 1, ('P1',)), Machine(1002, 'Mill', 2, ('P1',))]
        analysis = _analyze([_stock('R-1', 'P1', 10)], groups, machines,
                            [Route('P1', (1, 2))], setup_matrix, cycle_matrix)

        # average setup of P1 is 15, charged to the milling step only
        assert analysis.details[1]['setup_factor'] == 0
        assert analysis.details[2]['setup_factor'] == pytest.approx(15 / 30)
        expected = 30 * 0.6 + math.log10(2) * 0.3 + (15 / 30) * 0.1
        assert analysis.scores[2] == pytest.approx(expected)

    def test_group_without_machines_counts_as_one(self):
        groups = [MachineGroup(1, 'Empty')]
        analysis = _analyze([_stock('R-1', 'P1', 10)], groups, [], [Route('P1', (1,))])
        assert analysis.details[1]['utilization'] == 10

    def test_unknown_route_groups_ignored(self):
        groups = [MachineGroup(1, 'Turning')]
        machines = [Machine(1000, 'A', 1, ('P1',))]
        analysis = _analyze([_stock('R-1', 'P1', 10)], groups, machines, [Route('P1', (1, 77))])
        assert set(analysis.scores) == {1}

    def test_orders_without_route_ignored(self):
        groups = [MachineGroup(1, 'Turning')]
        machines = [Machine(1000, 'A', 1, ('P1',))]
        analysis = _analyze([_stock('R-1', 'P9', 10)], groups, machines, [Route('P1', (1,))])
        assert analysis.scores[1] == 0


class TestBottleneckSelection:
    """Tests for the number and order of selected groups."""

    def test_no_groups(self):
        analysis = _analyze([_stock('R-1', 'P1', 10)], [], [], [])
        assert analysis.groups == []
        assert analysis.scores == {}

    def test_at_least_one_group_selected(self):
        groups = [MachineGroup(1, 'Turning'), MachineGroup(2, 'Milling')]
        machines = [Machine(1000, 'A', 1, ()), Machine(1001, 'B', 2, ())]
        analysis = _analyze([], groups, machines, [])
        assert analysis.groups == [1]

    def test_selection_capped_by_group_share(self):
        groups = [MachineGroup(g, f'G{g}') for g in range(1, 6)]
        machines = [Machine(1000 + g, f'M{g}', g, ('P1',)) for g in range(1, 6)]
        route = Route('P1', (1, 2, 3, 4, 5))
        analysis = _analyze([_stock('R-1', 'P1', 10)], groups, machines, [route])

        # All groups score equally; ceil(5 * 0.3) = 2
        assert len(analysis.groups) == math.ceil(5 * MAX_GROUP_SHARE) == 2
        assert analysis.groups == [1, 2]

    def test_dominant_group_selected_alone(self):
        groups = [MachineGroup(g, f'G{g}') for g in range(1, 5)]
        machines = [Machine(1000 + g, f'M{g}', g, ('P1', 'P2')) for g in range(1, 5)]
        routes = [Route('P1', (3,)), Route('P2', (1, 2, 3, 4))]
        orders = [_stock('R-1', 'P1', 500), _stock('R-2', 'P2', 1)]
        analysis = _analyze(orders, groups, machines, routes)

        assert analysis.groups == [3]

    def test_selected_groups_ranked_by_score(self):
        groups = [MachineGroup(g, f'G{g}') for g in range(1, 11)]
        machines = [Machine(1000 + g, f'M{g}', g, ('P1',)) for g in range(1, 11)]
        routes = [Route('P1', (4, 7, 9))]
        cycle = {'P1': {'M4': 1, 'M7': 1, 'M9': 1, 'P1': 1}}
        orders = [_stock('R-1', 'P1', 100)]
        analysis = _analyze(orders, groups, machines, routes, cycle_matrix=cycle)

        scores = analysis.scores
        assert 1 <= len(analysis.groups) <= math.ceil(10 * MAX_GROUP_SHARE)
        assert analysis.groups == sorted(analysis.groups, key=lambda g: -scores[g])
        threshold = max(scores.values()) * 0.6
        assert all(scores[g] >= threshold for g in analysis.groups)
