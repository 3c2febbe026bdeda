"""
Matrix Parser
Reads setup and cycle time tables kept in long format (From, To, Value).

For the setup matrix From/To are part numbers; for the cycle matrix From is
the part number and To a machine name (or the part number itself for the
machine-independent time).
"""

import pandas as pd
from typing import Dict


def parse_matrix(filepath: str, sheet_name: str) -> Dict[str, Dict[str, float]]:
    """
    Parse a transition matrix sheet.

    Returns:
        Nested mapping from -> to -> minutes
    """
    df = pd.read_excel(filepath, sheet_name=sheet_name, dtype={'From': str, 'To': str})

    matrix: Dict[str, Dict[str, float]] = {}
    errors = []
    for index, row in df.iterrows():
        source, target, value = row.get('From'), row.get('To'), row.get('Value')
        if pd.isna(source) or pd.isna(target):
            errors.append(f"Row {index}: Missing From/To")
            continue
        try:
            minutes = float(value)
        except (TypeError, ValueError):
            errors.append(f"Row {index}: Value is not a number ({value!r})")
            continue
        if pd.isna(minutes) or minutes < 0:
            errors.append(f"Row {index}: Value must be a non-negative number")
            continue
        matrix.setdefault(str(source).strip(), {})[str(target).strip()] = minutes

    entries = sum(len(row) for row in matrix.values())
    print(f"  - {sheet_name}: {entries} entries, {len(errors)} errors")
    for error in errors[:10]:
        print(f"    [WARN] {error}")
    return matrix
