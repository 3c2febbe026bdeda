"""
Data Loader
Loads planning master data from the JSON store or an Excel workbook,
validates it and builds the scheduler.
"""

from datetime import datetime
from typing import Dict, List, Any, Callable

import storage
from parsers import parse_master_data_workbook
from validators import ValidationReport, validate_planning_data
from algorithms.models import Order, Machine, MachineGroup, Route, Weights
from algorithms.two_phase_scheduler import TwoPhaseScheduler


class DataLoader:
    """Manages loading and validation of all planning data."""

    def __init__(self):
        # Raw records as stored
        self.records: Dict[str, Any] = {name: type(default)() for name, (_, default) in storage.COLLECTIONS.items()}

        # Model objects
        self.orders: List[Order] = []
        self.machines: List[Machine] = []
        self.machine_groups: List[MachineGroup] = []
        self.routes: List[Route] = []
        self.setup_matrix: Dict[str, Dict[str, float]] = {}
        self.cycle_matrix: Dict[str, Dict[str, float]] = {}

        self.validation_report = ValidationReport()

    def load_all(self) -> bool:
        """
        Load all collections from the JSON store.

        Returns:
            True if the data is valid for planning
        """
        print("=" * 70)
        print("LOADING PLANNING DATA")
        print("=" * 70)
        print(f"  Storage: {storage.get_data_dir()}")

        self.records = storage.load_master_data()
        return self._finish()

    def load_workbook(self, filepath: str) -> bool:
        """
        Load planning data from an Excel workbook.

        Sheets missing from the workbook fall back to the stored collection.
        """
        print("=" * 70)
        print("LOADING PLANNING WORKBOOK")
        print("=" * 70)

        parsed = parse_master_data_workbook(filepath)
        self.records = storage.load_master_data()
        self.records.update(parsed)
        return self._finish()

    def _finish(self) -> bool:
        self.validation_report = self.validate()
        if not self.validation_report.is_valid:
            print("[ERROR] Planning data failed validation")
            return False

        self._convert()
        print(f"[OK] Loaded {len(self.orders)} orders, {len(self.machines)} machines, "
              f"{len(self.machine_groups)} groups, {len(self.routes)} routes")
        return True

    def validate(self) -> ValidationReport:
        """Validate the raw records currently held."""
        return validate_planning_data(
            self.records['orders'],
            self.records['machines'],
            self.records['machine_groups'],
            self.records['routes'],
            self.records['setup_matrix'],
            self.records['cycle_matrix'],
        )

    def _convert(self):
        """Convert validated records into model objects."""
        self.orders = [Order.from_dict(r) for r in self.records['orders']]
        self.machines = [Machine.from_dict(r) for r in self.records['machines']]
        self.machine_groups = [MachineGroup.from_dict(r) for r in self.records['machine_groups']]
        self.routes = [Route.from_dict(r) for r in self.records['routes']]
        self.setup_matrix = self.records['setup_matrix'] or {}
        self.cycle_matrix = self.records['cycle_matrix'] or {}

    def build_scheduler(self, weights: Weights = None, seed: int = None,
                        progress_callback: Callable[[str], None] = None,
                        deadline: datetime = None, verbose: bool = True) -> TwoPhaseScheduler:
        """Create a scheduler over the loaded data."""
        return TwoPhaseScheduler(
            orders=self.orders,
            setup_matrix=self.setup_matrix,
            cycle_matrix=self.cycle_matrix,
            machines=self.machines,
            machine_groups=self.machine_groups,
            routes=self.routes,
            weights=weights,
            progress_callback=progress_callback,
            seed=seed,
            deadline=deadline,
            verbose=verbose,
        )

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of loaded data."""
        stock = sum(1 for o in self.orders if o.is_stock)
        routed_parts = {r.part_number for r in self.routes}
        return {
            'orders': {
                'total': len(self.orders),
                'stock': stock,
                'customer': len(self.orders) - stock,
                'without_route': sum(1 for o in self.orders if o.part_number not in routed_parts),
            },
            'machines': len(self.machines),
            'machine_groups': len(self.machine_groups),
            'routes': len(self.routes),
            'setup_entries': sum(len(row) for row in self.setup_matrix.values()),
            'cycle_entries': sum(len(row) for row in self.cycle_matrix.values()),
        }

    def print_summary(self):
        """Print a formatted summary."""
        summary = self.get_summary()

        print("\n" + "=" * 70)
        print("DATA LOADING SUMMARY")
        print("=" * 70)

        print(f"\n[ORDERS] ORDERS:")
        print(f"   Total: {summary['orders']['total']}")
        print(f"   Make to stock: {summary['orders']['stock']}")
        print(f"   Make to order: {summary['orders']['customer']}")
        print(f"   Without route: {summary['orders']['without_route']}")

        print(f"\n[MASTER] MASTER DATA:")
        print(f"   Machines: {summary['machines']} in {summary['machine_groups']} groups")
        print(f"   Routes: {summary['routes']}")
        print(f"   Setup matrix entries: {summary['setup_entries']}")
        print(f"   Cycle matrix entries: {summary['cycle_entries']}")

        print("\n" + "=" * 70)


if __name__ == "__main__":
    import sys

    print("Testing Data Loader")
    print()

    loader = DataLoader()
    success = loader.load_workbook(sys.argv[1]) if len(sys.argv) > 1 else loader.load_all()

    if success:
        loader.print_summary()
        print("\n[OK] All data loaded successfully!")
        sys.exit(0)
    else:
        loader.validation_report.print_report()
        print("\n[ERROR] Data loading failed")
        sys.exit(1)
