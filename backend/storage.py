"""
JSON file storage for planning master data.
Orders, transition matrices, machines, machine groups and routes are kept as
flat JSON records in DATA_DIR, alongside the last planning result.

Set DATA_DIR in .env to move the storage directory.
"""

import os
import json
from typing import Any, Dict, Optional


DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'data')

# Collection name -> (file name, default value)
COLLECTIONS = {
    'orders': ('orders.json', []),
    'setup_matrix': ('setupMatrix.json', {}),
    'cycle_matrix': ('cycleMatrix.json', {}),
    'machines': ('machines.json', []),
    'routes': ('routes.json', []),
    'machine_groups': ('machineGroups.json', []),
}

SCHEDULE_STATE_FILE = 'state/last_schedule.json'


def get_data_dir() -> str:
    """Storage directory, read from the environment on every call so tests can redirect it."""
    return os.path.abspath(os.environ.get('DATA_DIR', DEFAULT_DATA_DIR))


def _local_path(filepath: str) -> str:
    path = os.path.join(get_data_dir(), filepath)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return path


def _save_json(filepath: str, data) -> bool:
    with open(_local_path(filepath), 'w') as f:
        json.dump(data, f, indent=2, default=str)
    return True


def _load_json(filepath: str):
    full = _local_path(filepath)
    if not os.path.exists(full):
        return None
    with open(full, 'r') as f:
        return json.load(f)


# ============== Master Data ==============

def load_collection(name: str):
    """
    Load a master data collection.

    A missing file is created with the collection's default value.
    """
    if name not in COLLECTIONS:
        raise KeyError(f"Unknown collection: {name}")
    filename, default = COLLECTIONS[name]

    data = _load_json(filename)
    if data is None:
        data = json.loads(json.dumps(default))
        _save_json(filename, data)
        print(f"[Storage] Created {filename} with default value")
    return data


def save_collection(name: str, data) -> bool:
    """Replace a master data collection."""
    if name not in COLLECTIONS:
        raise KeyError(f"Unknown collection: {name}")
    filename, _ = COLLECTIONS[name]
    _save_json(filename, data)
    print(f"[Storage] Saved {filename}")
    return True


def load_master_data() -> Dict[str, Any]:
    """All collections, keyed by collection name."""
    return {name: load_collection(name) for name in COLLECTIONS}


# ============== Schedule State Persistence ==============

def save_schedule_state(schedule_data: dict) -> bool:
    """
    Save the last planning result as JSON.

    Args:
        schedule_data: Serialized ScheduleResult plus summary and log

    Returns:
        True if saved successfully
    """
    try:
        _save_json(SCHEDULE_STATE_FILE, schedule_data)
        print(f"[Storage] Saved schedule state to {SCHEDULE_STATE_FILE}")
        return True
    except OSError as e:
        print(f"[Storage] Failed to save schedule state: {e}")
        return False


def load_schedule_state() -> Optional[dict]:
    """
    Load the last planning result.

    Returns:
        Schedule data dict, or None if not found
    """
    try:
        data = _load_json(SCHEDULE_STATE_FILE)
        if data:
            print(f"[Storage] Loaded schedule state from {SCHEDULE_STATE_FILE}")
        return data
    except (OSError, ValueError) as e:
        print(f"[Storage] Failed to load schedule state: {e}")
        return None
