"""
Workbook Parser
Reads a complete planning workbook. Only the sheets that are present are
parsed, so a workbook can carry a partial master data update.
"""

import pandas as pd
from typing import Dict, Any

from .order_parser import parse_orders
from .master_data_parser import parse_machine_groups, parse_machines, parse_routes
from .matrix_parser import parse_matrix


# Sheet name -> (collection name, parser)
WORKBOOK_SHEETS = {
    'Orders': ('orders', parse_orders),
    'MachineGroups': ('machine_groups', parse_machine_groups),
    'Machines': ('machines', parse_machines),
    'Routes': ('routes', parse_routes),
    'SetupMatrix': ('setup_matrix', parse_matrix),
    'CycleMatrix': ('cycle_matrix', parse_matrix),
}


def parse_master_data_workbook(filepath: str) -> Dict[str, Any]:
    """
    Parse every known sheet of a planning workbook.

    Returns:
        Collection name -> parsed records, for the sheets found
    """
    with pd.ExcelFile(filepath) as workbook:
        available = set(workbook.sheet_names)

    print(f"Parsing workbook {filepath}")
    print(f"  Sheets found: {sorted(available)}")

    collections = {}
    for sheet_name, (collection, parser) in WORKBOOK_SHEETS.items():
        if sheet_name not in available:
            continue
        collections[collection] = parser(filepath, sheet_name=sheet_name)

    unknown = available - set(WORKBOOK_SHEETS)
    if unknown:
        print(f"  [WARN] Ignored sheets: {sorted(unknown)}")

    return collections
