"""
Master Data Lookups
Setup/cycle time resolution and route/capability resolution.

Missing table entries are policy, not errors: every lookup resolves to a
documented fallback and never raises.
"""

from typing import Dict, List, Optional

from algorithms.models import Machine, Route


class TimeLookup:
    """Resolves setup and cycle times from sparse transition tables."""

    DEFAULT_SETUP_TIME = 10   # minutes, for undefined part transitions
    DEFAULT_CYCLE_TIME = 1    # minutes per unit

    def __init__(self, setup_matrix: Dict[str, Dict[str, float]],
                 cycle_matrix: Dict[str, Dict[str, float]],
                 machines: List[Machine] = None):
        self.setup_matrix = setup_matrix or {}
        self.cycle_matrix = cycle_matrix or {}
        self._machine_names = {m.machine_id: m.name for m in (machines or [])}

    def setup_time(self, from_part: str, to_part: str) -> float:
        """Changeover time from one part number to another."""
        if from_part == to_part:
            return 0
        value = (self.setup_matrix.get(from_part) or {}).get(to_part)
        # An explicit 0 between two different parts counts as undefined
        if not value:
            return self.DEFAULT_SETUP_TIME
        return value

    def cycle_time(self, part_number: str, lot_size: int,
                   machine_id: Optional[int] = None) -> float:
        """
        Processing time for a whole lot.

        Resolution order: machine-specific entry (keyed by machine name),
        part-level generic entry (keyed by the part itself), then the
        default of one minute per unit.
        """
        row = self.cycle_matrix.get(part_number) or {}
        machine_name = self._machine_names.get(machine_id) if machine_id is not None else None

        cycle = None
        if machine_name and row.get(machine_name):
            cycle = row[machine_name]
        elif row.get(part_number):
            cycle = row[part_number]
        else:
            cycle = self.DEFAULT_CYCLE_TIME

        return cycle * lot_size

    def average_setup_time(self, part_number: str) -> float:
        """Mean over all defined outgoing transitions of a part (0 if none)."""
        row = self.setup_matrix.get(part_number) or {}
        if not row:
            return 0
        values = list(row.values())
        return sum(values) / len(values)


class RouteResolver:
    """Maps parts to routes and (group, part) pairs to capable machines."""

    def __init__(self, routes: List[Route], machines: List[Machine]):
        # Upsert semantics: a later route for the same part replaces the earlier one
        self.routes: Dict[str, Route] = {}
        for route in routes or []:
            self.routes[route.part_number] = route
        self.machines = list(machines or [])
        self.machines_by_id: Dict[int, Machine] = {m.machine_id: m for m in self.machines}

    def route_for(self, part_number: str) -> Optional[Route]:
        return self.routes.get(part_number)

    def eligible_machines(self, group_id: int, part_number: str) -> List[Machine]:
        """Machines of a group that can produce the part, in master data order."""
        return [
            m for m in self.machines
            if m.group_id == group_id and m.can_produce(part_number)
        ]

    def alternative_machines(self, machine_id: int, part_number: str) -> List[Machine]:
        """Other machines in the same group as `machine_id` that can produce the part."""
        machine = self.machines_by_id.get(machine_id)
        if machine is None:
            return []
        return [
            m for m in self.eligible_machines(machine.group_id, part_number)
            if m.machine_id != machine_id
        ]

    def machines_in_group(self, group_id: int) -> List[Machine]:
        return [m for m in self.machines if m.group_id == group_id]

    def group_of(self, machine_id: int) -> Optional[int]:
        machine = self.machines_by_id.get(machine_id)
        return machine.group_id if machine else None
