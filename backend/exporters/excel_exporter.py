"""
Excel Exporter
Export planning results to Excel format.

Slot times are minutes from the plan start; exported sheets show calendar
times derived from ScheduleResult.start_date.
"""

import pandas as pd
from datetime import datetime, timedelta
from typing import List, Dict, Any, Optional
from pathlib import Path

from openpyxl.utils import get_column_letter

from algorithms.models import Order, ScheduleResult, parse_datetime


def _autosize(worksheet, df: pd.DataFrame, max_width: int = 40):
    """Fit column widths to content and freeze the header row."""
    for idx, col in enumerate(df.columns):
        col_data = df[col].fillna('').astype(str)
        max_data_len = col_data.str.len().max() if len(col_data) > 0 else 0
        max_length = max(max_data_len, len(str(col))) + 2
        worksheet.column_dimensions[get_column_letter(idx + 1)].width = min(max_length, max_width)
    worksheet.freeze_panes = 'A2'


def _calendar(result: ScheduleResult, minutes: float) -> Optional[datetime]:
    if result.start_date is None:
        return None
    return result.start_date + timedelta(minutes=minutes)


def machine_schedule_rows(result: ScheduleResult) -> List[Dict[str, Any]]:
    """One row per slot, machines in id order."""
    rows = []
    for machine_schedule in result.schedules:
        for seq, slot in enumerate(machine_schedule.slots, 1):
            rows.append({
                'Machine': machine_schedule.machine_name,
                'Machine ID': machine_schedule.machine_id,
                'Seq': seq,
                'Order': slot.order_name,
                'Report Number': slot.order_ref,
                'Part Number': slot.part_number,
                'Type': 'Make to Order' if slot.order_type.value == 'customer' else 'Make to Stock',
                'Setup Start': _calendar(result, slot.start),
                'Processing Start': _calendar(result, slot.start + slot.setup_time),
                'End': _calendar(result, slot.end),
                'Start (min)': slot.start,
                'End (min)': slot.end,
                'Setup (min)': slot.setup_time,
                'Processing (min)': slot.processing_time,
            })
    return rows


def export_machine_schedule(result: ScheduleResult, output_path: str) -> str:
    """
    Export the per-machine sequence to Excel.

    Args:
        result: Planning result
        output_path: Path for output Excel file

    Returns:
        Path to the created file
    """
    df = pd.DataFrame(machine_schedule_rows(result))

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='Machine Schedule', index=False)
        _autosize(writer.sheets['Machine Schedule'], df)

    print(f"[OK] Machine schedule exported to: {output_path}")
    return output_path


def order_summary_rows(result: ScheduleResult, orders: List[Order]) -> List[Dict[str, Any]]:
    """Completion and due date status per order."""
    completions = result.order_completions()
    unscheduled = {u['report_number']: u['reason'] for u in result.unscheduled}

    rows = []
    for order in orders:
        completion = completions.get(order.report_number)
        due_minutes = None
        if order.due_date is not None and result.start_date is not None:
            due_minutes = (parse_datetime(order.due_date) - result.start_date).total_seconds() / 60

        lateness = None
        on_time = ''
        if completion is not None and due_minutes is not None:
            lateness = max(0.0, completion - due_minutes)
            on_time = 'Yes' if completion <= due_minutes else 'No'

        rows.append({
            'Report Number': order.report_number,
            'Order': order.name,
            'Part Number': order.part_number,
            'Type': 'Make to Stock' if order.is_stock else 'Make to Order',
            'Lot Size': order.lot_size,
            'Due Date': order.due_date,
            'Completion': _calendar(result, completion) if completion is not None else None,
            'Completion (min)': completion,
            'Lateness (min)': lateness,
            'On-Time': on_time,
            'Status': 'Scheduled' if completion is not None else f"Unscheduled: {unscheduled.get(order.report_number, 'not placed')}",
        })
    return rows


def export_order_summary(result: ScheduleResult, orders: List[Order], output_path: str) -> str:
    """Export one row per order with completion, lateness and on-time flag."""
    df = pd.DataFrame(order_summary_rows(result, orders))

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='Order Summary', index=False)
        _autosize(writer.sheets['Order Summary'], df)

        if result.unscheduled:
            unscheduled_df = pd.DataFrame([{
                'Report Number': u['report_number'],
                'Order': u['name'],
                'Part Number': u['part_number'],
                'Type': u['order_type'],
                'Reason': u['reason'],
            } for u in result.unscheduled])
            unscheduled_df.to_excel(writer, sheet_name='Unscheduled', index=False)
            _autosize(writer.sheets['Unscheduled'], unscheduled_df)

    print(f"[OK] Order summary exported to: {output_path}")
    return output_path


def export_all_reports(result: ScheduleResult, orders: List[Order], output_dir: str = None) -> Dict[str, str]:
    """
    Export all reports for a planning result.

    Args:
        result: Planning result
        orders: Orders the result was planned from
        output_dir: Output directory path. Defaults to the project's outputs folder.

    Returns:
        Dictionary of report names to file paths
    """
    from exporters.utilization_exporter import export_utilization

    if output_dir is None:
        output_dir = Path(__file__).parent.parent.parent / "outputs"
    else:
        output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    files = {
        'machine_schedule': export_machine_schedule(
            result, str(output_dir / f"Machine_Schedule_{timestamp}.xlsx")
        ),
        'order_summary': export_order_summary(
            result, orders, str(output_dir / f"Order_Summary_{timestamp}.xlsx")
        ),
        'utilization': export_utilization(
            result, orders, str(output_dir / f"Utilization_{timestamp}.xlsx")
        ),
    }

    print(f"\n[OK] All reports exported to: {output_dir}")
    return files


if __name__ == "__main__":
    import sys

    sys.path.insert(0, str(Path(__file__).parent.parent))

    from data_loader import DataLoader

    print("Testing Excel Export")
    print("=" * 60)

    loader = DataLoader()
    if not loader.load_all():
        print("Failed to load data")
        sys.exit(1)

    scheduler = loader.build_scheduler(seed=42)
    result = scheduler.schedule_orders()
    scheduler.print_summary()

    files = export_all_reports(result, loader.orders)

    print("\n[OK] Export complete!")
    for name, path in files.items():
        print(f"   {name}: {path}")
