"""
Data Validators
Checks planning input records before they are handed to the scheduler.

The scheduling engine itself never rejects input; empty or malformed data
is caught here by the calling layer.
"""

from typing import Dict, List, Any

from algorithms.models import OrderType


class ValidationReport:
    """Container for validation results."""

    def __init__(self):
        self.errors = []  # Blocking errors
        self.warnings = []  # Non-blocking warnings
        self.info = []  # Informational messages

    @property
    def is_valid(self) -> bool:
        """Returns True if no blocking errors."""
        return len(self.errors) == 0

    def add_error(self, message: str):
        """Add a blocking error."""
        self.errors.append(message)

    def add_warning(self, message: str):
        """Add a warning."""
        self.warnings.append(message)

    def add_info(self, message: str):
        """Add informational message."""
        self.info.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.is_valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'info': list(self.info),
        }

    def print_report(self):
        """Print formatted validation report."""
        print("\n" + "=" * 70)
        print("VALIDATION REPORT")
        print("=" * 70)

        print("\n[OK] VALIDATION PASSED" if self.is_valid else "\n[FAIL] VALIDATION FAILED")

        for label, messages, limit in (('[ERROR] ERRORS', self.errors, 10),
                                       ('[WARN] WARNINGS', self.warnings, 10),
                                       ('[INFO] INFO', self.info, 5)):
            if not messages:
                continue
            print(f"\n{label} ({len(messages)}):")
            for i, message in enumerate(messages[:limit], 1):
                print(f"   {i}. {message}")
            if len(messages) > limit:
                print(f"   ... and {len(messages) - limit} more")


def _get(record: Dict, *keys, default=None):
    for key in keys:
        if key in record and record[key] not in (None, ''):
            return record[key]
    return default


def _as_int(value):
    """Integer id, or None when the value is not one."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def validate_planning_data(orders: List[Dict], machines: List[Dict],
                           machine_groups: List[Dict], routes: List[Dict],
                           setup_matrix: Dict = None,
                           cycle_matrix: Dict = None) -> ValidationReport:
    """
    Validation of all planning input records.

    Returns:
        ValidationReport with all validation results
    """
    report = ValidationReport()

    # Planning needs orders, routes and machines
    if not orders:
        report.add_error("No orders to plan")
    if not routes:
        report.add_error("No production routes defined")
    if not machines:
        report.add_error("No machines defined")

    group_ids = set()
    for group in machine_groups or []:
        try:
            group_ids.add(int(_get(group, 'group_id', 'id')))
        except (TypeError, ValueError):
            report.add_error(f"Machine group {group.get('name', '?')} has no valid id")

    _validate_orders(orders or [], report)
    _validate_machines(machines or [], group_ids, report)
    _validate_routes(routes or [], group_ids, report)
    _validate_matrix('Setup', setup_matrix or {}, report)
    _validate_matrix('Cycle', cycle_matrix or {}, report)

    if report.is_valid:
        _cross_validate(orders or [], machines or [], routes or [], report)

    return report


def _validate_orders(orders: List[Dict], report: ValidationReport):
    """Validate order records."""
    if not orders:
        return

    report.add_info(f"Found {len(orders)} orders")

    report_numbers = []
    for i, order in enumerate(orders):
        label = _get(order, 'name', 'report_number', 'reportNumber', default=f"#{i}")
        if not _get(order, 'part_number', 'partNumber'):
            report.add_error(f"Order {label}: missing part number")
        ref = _get(order, 'report_number', 'reportNumber')
        if not ref:
            report.add_error(f"Order {label}: missing report number")
        else:
            report_numbers.append(str(ref))

        try:
            lot_size = int(_get(order, 'lot_size', 'lotSize'))
            if lot_size <= 0:
                report.add_error(f"Order {label}: lot size must be positive")
        except (TypeError, ValueError):
            report.add_error(f"Order {label}: lot size missing or not an integer")

        try:
            OrderType.parse(_get(order, 'order_type', 'type'))
        except ValueError as e:
            report.add_error(f"Order {label}: {e}")

    duplicates = sorted({ref for ref in report_numbers if report_numbers.count(ref) > 1})
    if duplicates:
        report.add_error(f"Duplicate report numbers: {duplicates[:5]}")

    customer = sum(1 for o in orders if str(_get(o, 'order_type', 'type', default='')).lower()
                   in ('customer', 'mto', 'make to order'))
    report.add_info(f"Order mix: {len(orders) - customer} stock, {customer} customer")


def _validate_machines(machines: List[Dict], group_ids: set, report: ValidationReport):
    """Validate machine records."""
    if not machines:
        return

    report.add_info(f"Found {len(machines)} machines in {len(group_ids)} groups")
    for machine in machines:
        name = machine.get('name') or machine.get('id')
        group_id = _get(machine, 'group_id', 'groupId')
        if group_id is None:
            report.add_error(f"Machine {name}: machine group is required")
        elif _as_int(group_id) not in group_ids:
            report.add_error(f"Machine {name}: unknown machine group {group_id}")
        if not _get(machine, 'capable_part_numbers', 'capablePartNumbers', default=[]):
            report.add_warning(f"Machine {name}: no capable part numbers")


def _validate_routes(routes: List[Dict], group_ids: set, report: ValidationReport):
    """Validate route records."""
    if not routes:
        return

    report.add_info(f"Found {len(routes)} routes")
    parts = [str(_get(r, 'part_number', 'partNumber', default='')) for r in routes]
    duplicates = sorted({p for p in parts if parts.count(p) > 1})
    if duplicates:
        report.add_warning(f"Multiple routes for parts {duplicates[:5]}; the last one is used")

    for route, part in zip(routes, parts):
        if not part:
            report.add_error("Route without part number")
            continue
        sequence = route.get('sequence') or []
        if not sequence:
            report.add_warning(f"Route for {part} has no steps")
        unknown = [g for g in sequence if _as_int(g) not in group_ids]
        if unknown:
            report.add_error(f"Route for {part} references unknown machine groups {unknown}")


def _validate_matrix(label: str, matrix: Dict, report: ValidationReport):
    """Validate a transition matrix."""
    entries = 0
    for source, row in matrix.items():
        if not isinstance(row, dict):
            report.add_error(f"{label} matrix row {source} is not a mapping")
            continue
        for target, value in row.items():
            entries += 1
            try:
                if float(value) < 0:
                    report.add_error(f"{label} matrix {source} -> {target}: negative value {value}")
            except (TypeError, ValueError):
                report.add_error(f"{label} matrix {source} -> {target}: not a number ({value!r})")
    report.add_info(f"{label} matrix: {entries} entries")


def _cross_validate(orders: List[Dict], machines: List[Dict], routes: List[Dict],
                    report: ValidationReport):
    """Cross-validate orders against routes and machine capabilities."""
    routes_by_part = {str(_get(r, 'part_number', 'partNumber')): r for r in routes}

    missing_routes = sorted({
        str(_get(o, 'part_number', 'partNumber')) for o in orders
        if str(_get(o, 'part_number', 'partNumber')) not in routes_by_part
    })
    if missing_routes:
        report.add_warning(
            f"{len(missing_routes)} part numbers without route will stay unscheduled: {missing_routes[:5]}"
        )

    # Steps without a capable machine are skipped by the scheduler
    for part, route in routes_by_part.items():
        for group_id in route.get('sequence') or []:
            capable = [
                m for m in machines
                if _as_int(_get(m, 'group_id', 'groupId')) == _as_int(group_id)
                and part in (_get(m, 'capable_part_numbers', 'capablePartNumbers', default=[]))
            ]
            if not capable:
                report.add_warning(f"No machine in group {group_id} can produce {part}; step will be skipped")


if __name__ == "__main__":
    import sys
    from data_loader import DataLoader

    print("Testing Data Validation")
    print()

    loader = DataLoader()
    loader.load_all()
    loader.validation_report.print_report()

    if loader.validation_report.is_valid:
        print("\n[OK] Ready to proceed with scheduling!")
        sys.exit(0)
    else:
        print("\n[FAIL] Please fix errors before proceeding")
        sys.exit(1)
