"""Tests for setup/cycle time lookups and route resolution."""

import pytest

from algorithms.models import Machine, Route
from algorithms.lookup import TimeLookup, RouteResolver


class TestSetupTime:
    """Tests for changeover time resolution."""

    def test_same_part_needs_no_setup(self, lookup):
        assert lookup.setup_time('P1', 'P1') == 0

    def test_defined_transition(self, lookup):
        assert lookup.setup_time('P1', 'P2') == 15
        assert lookup.setup_time('P2', 'P1') == 20

    def test_undefined_transition_uses_default(self, lookup):
        assert lookup.setup_time('P1', 'P9') == TimeLookup.DEFAULT_SETUP_TIME
        assert lookup.setup_time('P9', 'P1') == 10

    def test_zero_between_different_parts_is_undefined(self):
        lookup = TimeLookup({'A': {'B': 0}}, {})
        assert lookup.setup_time('A', 'B') == 10

    def test_average_setup_time(self, lookup):
        assert lookup.average_setup_time('P1') == 15
        assert lookup.average_setup_time('P9') == 0

    def test_average_over_several_targets(self):
        lookup = TimeLookup({'A': {'B': 10, 'C': 30}}, {})
        assert lookup.average_setup_time('A') == 20


class TestCycleTime:
    """Tests for lot processing time resolution."""

    def test_machine_specific_entry(self, lookup):
        assert lookup.cycle_time('P1', 10, 1000) == 20

    def test_falls_back_to_part_entry(self, lookup):
        # Lathe B has no entry of its own
        assert lookup.cycle_time('P1', 10, 1001) == 30
        assert lookup.cycle_time('P1', 10) == 30

    def test_falls_back_to_default(self, lookup):
        assert lookup.cycle_time('P9', 4) == 4 * TimeLookup.DEFAULT_CYCLE_TIME

    def test_unknown_machine_uses_part_entry(self, lookup):
        assert lookup.cycle_time('P2', 7, 4242) == 7


class TestRouteResolver:
    """Tests for route and capability resolution."""

    def test_route_for(self, routes, machines):
        resolver = RouteResolver(routes, machines)
        assert resolver.route_for('P1').sequence == (1, 2)
        assert resolver.route_for('P9') is None

    def test_later_route_replaces_earlier(self, machines):
        resolver = RouteResolver([Route('P1', (1,)), Route('P1', (2, 1))], machines)
        assert resolver.route_for('P1').sequence == (2, 1)

    def test_eligible_machines_keep_master_data_order(self, routes, machines):
        resolver = RouteResolver(routes, machines)
        eligible = resolver.eligible_machines(1, 'P1')
        assert [m.machine_id for m in eligible] == [1000, 1001]

    def test_eligible_machines_respect_capability(self, routes):
        machines = [Machine(1000, 'A', 1, ('P1',)), Machine(1001, 'B', 1, ('P2',))]
        resolver = RouteResolver(routes, machines)
        assert [m.machine_id for m in resolver.eligible_machines(1, 'P2')] == [1001]
        assert resolver.eligible_machines(2, 'P1') == []

    def test_alternative_machines(self, routes, machines):
        resolver = RouteResolver(routes, machines)
        assert [m.machine_id for m in resolver.alternative_machines(1000, 'P1')] == [1001]
        assert resolver.alternative_machines(1002, 'P1') == []
        assert resolver.alternative_machines(4242, 'P1') == []

    def test_group_lookups(self, routes, machines):
        resolver = RouteResolver(routes, machines)
        assert resolver.group_of(1002) == 2
        assert resolver.group_of(4242) is None
        assert len(resolver.machines_in_group(1)) == 2
