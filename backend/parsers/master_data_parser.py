"""
Master Data Parser
Parses machine groups, machines and production routes from a planning workbook.

List cells (capable part numbers, route sequence) are comma separated.
"""

import pandas as pd
from typing import List, Dict, Any


def _split_list(value) -> List[str]:
    if pd.isna(value):
        return []
    if isinstance(value, float) and value.is_integer():
        return [str(int(value))]
    return [item.strip() for item in str(value).split(',') if item.strip()]


def _report(kind: str, parsed: int, errors: List[str]):
    print(f"  - {kind}: {parsed} parsed, {len(errors)} errors")
    for error in errors[:10]:
        print(f"    [WARN] {error}")


def parse_machine_groups(filepath: str, sheet_name: str = 'MachineGroups') -> List[Dict[str, Any]]:
    """Parse machine groups (columns: Id, Name, Description)."""
    df = pd.read_excel(filepath, sheet_name=sheet_name)

    groups = []
    errors = []
    for index, row in df.iterrows():
        try:
            group_id = int(row['Id'])
            if not 1 <= group_id <= 999:
                errors.append(f"Row {index}: group id {group_id} outside 1..999")
                continue
            groups.append({
                'id': group_id,
                'name': str(row.get('Name')) if pd.notna(row.get('Name')) else f"Group {group_id}",
                'description': str(row.get('Description')) if pd.notna(row.get('Description')) else '',
            })
        except (KeyError, TypeError, ValueError) as e:
            errors.append(f"Row {index}: Error parsing - {str(e)}")

    _report('Machine groups', len(groups), errors)
    return groups


def parse_machines(filepath: str, sheet_name: str = 'Machines') -> List[Dict[str, Any]]:
    """Parse machines (columns: Id, Name, Group Id, Capable Parts, Description)."""
    df = pd.read_excel(filepath, sheet_name=sheet_name)

    machines = []
    errors = []
    for index, row in df.iterrows():
        try:
            if pd.isna(row.get('Group Id')):
                errors.append(f"Row {index}: Machine group is required")
                continue
            machine_id = int(row['Id']) if pd.notna(row.get('Id')) else 1000 + len(machines)
            machines.append({
                'id': machine_id,
                'name': str(row.get('Name')) if pd.notna(row.get('Name')) else f"Machine {machine_id}",
                'description': str(row.get('Description')) if pd.notna(row.get('Description')) else '',
                'groupId': int(row['Group Id']),
                'capablePartNumbers': _split_list(row.get('Capable Parts')),
            })
        except (KeyError, TypeError, ValueError) as e:
            errors.append(f"Row {index}: Error parsing - {str(e)}")

    _report('Machines', len(machines), errors)
    return machines


def parse_routes(filepath: str, sheet_name: str = 'Routes') -> List[Dict[str, Any]]:
    """
    Parse production routes (columns: Part Number, Product Name, Sequence).

    A part listed twice keeps its last row.
    """
    df = pd.read_excel(filepath, sheet_name=sheet_name)

    routes: Dict[str, Dict[str, Any]] = {}
    errors = []
    for index, row in df.iterrows():
        try:
            part_number = row.get('Part Number')
            if pd.isna(part_number):
                errors.append(f"Row {index}: Missing Part Number")
                continue
            part_number = str(int(part_number)) if isinstance(part_number, float) else str(part_number).strip()
            routes[part_number] = {
                'partNumber': part_number,
                'productName': str(row.get('Product Name')) if pd.notna(row.get('Product Name')) else None,
                'sequence': [int(float(g)) for g in _split_list(row.get('Sequence'))],
            }
        except (TypeError, ValueError) as e:
            errors.append(f"Row {index}: Error parsing - {str(e)}")

    _report('Routes', len(routes), errors)
    return list(routes.values())
