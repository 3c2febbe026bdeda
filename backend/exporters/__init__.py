"""
Exporters package
Export planning results to Excel.
"""

from .excel_exporter import (
    export_machine_schedule,
    export_order_summary,
    export_all_reports
)
from .utilization_exporter import export_utilization

__all__ = [
    'export_machine_schedule',
    'export_order_summary',
    'export_all_reports',
    'export_utilization'
]
