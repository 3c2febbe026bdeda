"""
Utilization Exporter
Per-machine utilization and on-time delivery from a planning result.
"""

import pandas as pd
from typing import List, Dict, Any

from algorithms.models import Order, ScheduleResult, parse_datetime
from exporters.excel_exporter import _autosize


def utilization_rows(result: ScheduleResult, orders: List[Order]) -> List[Dict[str, Any]]:
    """
    One row per machine with slots.

    Utilization is (setup + processing) over the plan horizon; a slot is on
    time when it ends before its order's due date.
    """
    horizon = result.schedule_end_time
    due_minutes = {}
    if result.start_date is not None:
        for order in orders:
            if order.due_date is not None:
                due_minutes[order.report_number] = (parse_datetime(order.due_date) - result.start_date).total_seconds() / 60

    rows = []
    for machine_schedule in result.schedules:
        if not machine_schedule.slots:
            continue
        busy = machine_schedule.total_setup + machine_schedule.total_processing
        with_due = [s for s in machine_schedule.slots if s.order_ref in due_minutes]
        on_time = sum(1 for s in with_due if s.end <= due_minutes[s.order_ref])

        rows.append({
            'Machine': machine_schedule.machine_name,
            'Machine ID': machine_schedule.machine_id,
            'Slots': len(machine_schedule.slots),
            'Setup (min)': machine_schedule.total_setup,
            'Processing (min)': machine_schedule.total_processing,
            'Idle (min)': max(horizon - busy, 0),
            'Utilization %': round(busy / horizon * 100, 1) if horizon > 0 else 0.0,
            'Slots With Due Date': len(with_due),
            'On-Time %': round(on_time / len(with_due) * 100, 1) if with_due else None,
        })
    return rows


def export_utilization(result: ScheduleResult, orders: List[Order], output_path: str) -> str:
    """
    Export machine utilization report to Excel.

    Args:
        result: Planning result
        orders: Orders the result was planned from (for due dates)
        output_path: Path for output Excel file

    Returns:
        Path to the created file
    """
    df = pd.DataFrame(utilization_rows(result, orders))
    if not df.empty:
        df = df.sort_values('Utilization %', ascending=False)

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='Machine Utilization', index=False)
        _autosize(writer.sheets['Machine Utilization'], df, max_width=30)

    print(f"[OK] Utilization report exported to: {output_path}")
    return output_path
