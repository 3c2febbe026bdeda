"""
Order Parser
Parses the Orders sheet of a planning workbook into store records.
"""

import pandas as pd
from typing import List, Dict, Any, Optional

from algorithms.models import OrderType


# Workbook header -> store key
ORDER_COLUMNS = {
    'Id': 'id',
    'Name': 'name',
    'Part Number': 'partNumber',
    'Report Number': 'reportNumber',
    'Type': 'type',
    'Lot Size': 'lotSize',
    'Due Date': 'dueDate',
}

ORDER_TYPE_LABELS = {
    OrderType.STOCK: 'Make to Stock',
    OrderType.CUSTOMER: 'Make to Order',
}


def _clean_text(value) -> Optional[str]:
    """Cell to stripped string; numeric ids lose the float suffix."""
    if pd.isna(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


def parse_orders(filepath: str, sheet_name: str = 'Orders') -> List[Dict[str, Any]]:
    """
    Parse production orders.

    Args:
        filepath: Path to the Excel file
        sheet_name: Name of the sheet to read (default: 'Orders')

    Returns:
        List of order records (camelCase keys, as stored)
    """
    try:
        df = pd.read_excel(filepath, sheet_name=sheet_name)
    except Exception as e:
        print(f"Error reading Excel file: {str(e)}")
        raise

    print(f"Loaded {len(df)} rows from {sheet_name} sheet")

    orders = []
    errors = []

    for index, row in df.iterrows():
        try:
            part_number = _clean_text(row.get('Part Number'))
            report_number = _clean_text(row.get('Report Number'))
            if not part_number or not report_number:
                errors.append(f"Row {index}: Missing Part Number or Report Number")
                continue

            lot_size = row.get('Lot Size')
            if pd.isna(lot_size) or float(lot_size) <= 0 or not float(lot_size).is_integer():
                errors.append(f"Row {index}: Lot Size must be a positive integer")
                continue

            order_type = OrderType.parse(row.get('Type'))

            order = {
                'id': len(orders) + 1,
                'name': _clean_text(row.get('Name')) or report_number,
                'partNumber': part_number,
                'reportNumber': report_number,
                'type': ORDER_TYPE_LABELS[order_type],
                'lotSize': int(float(lot_size)),
                'dueDate': None,
            }
            if pd.notna(row.get('Id')):
                order['id'] = int(row['Id'])
            if pd.notna(row.get('Due Date')):
                order['dueDate'] = pd.to_datetime(row['Due Date']).isoformat()

            orders.append(order)

        except Exception as e:
            errors.append(f"Row {index}: Error parsing - {str(e)}")
            continue

    print(f"\nParsing complete:")
    print(f"  - Successfully parsed: {len(orders)} orders")
    print(f"  - Errors: {len(errors)}")

    if errors:
        print("\n[WARN] Errors encountered:")
        for error in errors[:10]:
            print(f"  - {error}")

    return orders
