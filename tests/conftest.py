"""Shared test fixtures for SeqPlanner tests."""

import os
import sys
import random
import tempfile
import pytest
from datetime import datetime, timedelta

# Add backend to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

# Keep storage and exports out of the repository
os.environ['DATA_DIR'] = tempfile.mkdtemp(prefix='seqplanner_data_')
os.environ['OUTPUT_FOLDER'] = tempfile.mkdtemp(prefix='seqplanner_out_')
os.environ['SECRET_KEY'] = 'test-secret-key'

from algorithms.models import Order, OrderType, Machine, MachineGroup, Route, Weights
from algorithms.lookup import TimeLookup, RouteResolver
from algorithms.context import PlanningContext


START_DATE = datetime(2026, 3, 2, 6, 0)  # A Monday, first shift


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Fresh JSON store per test."""
    path = tmp_path / 'data'
    monkeypatch.setenv('DATA_DIR', str(path))
    return path


@pytest.fixture
def app():
    """Create Flask test application."""
    import app as app_module
    app_module.app.config['TESTING'] = True
    app_module.current_schedule.update({'result': None, 'summary': {}, 'log': [], 'generated_at': None})
    return app_module.app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()


@pytest.fixture
def start_date():
    return START_DATE


@pytest.fixture
def machine_groups():
    return [
        MachineGroup(1, 'Turning', 'CNC lathes'),
        MachineGroup(2, 'Milling', 'Machining center'),
    ]


@pytest.fixture
def machines():
    return [
        Machine(1000, 'Lathe A', 1, ('P1', 'P2')),
        Machine(1001, 'Lathe B', 1, ('P1', 'P2')),
        Machine(1002, 'Mill', 2, ('P1', 'P2')),
    ]


@pytest.fixture
def routes():
    return [
        Route('P1', (1, 2), 'Shaft'),
        Route('P2', (1,), 'Bushing'),
    ]


@pytest.fixture
def setup_matrix():
    return {
        'P1': {'P2': 15},
        'P2': {'P1': 20},
    }


@pytest.fixture
def cycle_matrix():
    # Lathe A is faster for P1; P1 otherwise 3 min/unit, P2 1 min/unit
    return {
        'P1': {'Lathe A': 2, 'P1': 3},
        'P2': {'P2': 1},
    }


@pytest.fixture
def orders(start_date):
    return [
        Order(1, 'Stock shafts', 'P1', 'R-001', OrderType.STOCK, 10),
        Order(2, 'Stock bushings', 'P2', 'R-002', OrderType.STOCK, 20),
        Order(3, 'Stock shafts 2', 'P1', 'R-003', OrderType.STOCK, 5),
        Order(4, 'Customer bushings', 'P2', 'R-004', OrderType.CUSTOMER, 5,
              due_date=start_date + timedelta(days=1)),
    ]


@pytest.fixture
def lookup(setup_matrix, cycle_matrix, machines):
    return TimeLookup(setup_matrix, cycle_matrix, machines)


@pytest.fixture
def make_context(machines, machine_groups, routes, setup_matrix, cycle_matrix, start_date):
    """Factory for planning contexts; keyword arguments override the defaults."""
    def _make(**overrides):
        ctx_machines = overrides.pop('machines', machines)
        ctx_routes = overrides.pop('routes', routes)
        orders = overrides.pop('orders', [])
        values = dict(
            lookup=TimeLookup(setup_matrix, cycle_matrix, ctx_machines),
            resolver=RouteResolver(ctx_routes, ctx_machines),
            machines=ctx_machines,
            machine_groups=machine_groups,
            weights=Weights(),
            start_date=start_date,
            rng=random.Random(42),
            verbose=False,
        )
        values.update(overrides)
        context = PlanningContext(**values)
        context.register_orders(orders)
        return context
    return _make


@pytest.fixture
def stored_records(start_date):
    """Master data as kept in the JSON store (camelCase records)."""
    return {
        'orders': [
            {'id': 1, 'name': 'Stock shafts', 'partNumber': 'P1', 'reportNumber': 'R-001',
             'type': 'Make to Stock', 'lotSize': 10, 'dueDate': None},
            {'id': 2, 'name': 'Stock bushings', 'partNumber': 'P2', 'reportNumber': 'R-002',
             'type': 'Make to Stock', 'lotSize': 20, 'dueDate': None},
            {'id': 3, 'name': 'Customer shafts', 'partNumber': 'P1', 'reportNumber': 'R-003',
             'type': 'Make to Order', 'lotSize': 4,
             'dueDate': (start_date + timedelta(days=2)).isoformat()},
        ],
        'machine_groups': [
            {'id': 1, 'name': 'Turning', 'description': ''},
            {'id': 2, 'name': 'Milling', 'description': ''},
        ],
        'machines': [
            {'id': 1000, 'name': 'Lathe A', 'description': '', 'groupId': 1, 'capablePartNumbers': ['P1', 'P2']},
            {'id': 1001, 'name': 'Lathe B', 'description': '', 'groupId': 1, 'capablePartNumbers': ['P1', 'P2']},
            {'id': 1002, 'name': 'Mill', 'description': '', 'groupId': 2, 'capablePartNumbers': ['P1']},
        ],
        'routes': [
            {'partNumber': 'P1', 'productName': 'Shaft', 'sequence': [1, 2]},
            {'partNumber': 'P2', 'productName': 'Bushing', 'sequence': [1]},
        ],
        'setup_matrix': {'P1': {'P2': 15}, 'P2': {'P1': 20}},
        'cycle_matrix': {'P1': {'Lathe A': 2, 'P1': 3}, 'P2': {'P2': 1}},
    }


@pytest.fixture
def seeded_store(stored_records):
    """Write the stored records into the JSON store."""
    import storage
    for name, records in stored_records.items():
        storage.save_collection(name, records)
    return stored_records
