"""
Data parsers package initialization.
"""

from .order_parser import parse_orders
from .master_data_parser import parse_machine_groups, parse_machines, parse_routes
from .matrix_parser import parse_matrix
from .workbook_parser import parse_master_data_workbook, WORKBOOK_SHEETS

__all__ = [
    'parse_orders',
    'parse_machine_groups',
    'parse_machines',
    'parse_routes',
    'parse_matrix',
    'parse_master_data_workbook',
    'WORKBOOK_SHEETS'
]
