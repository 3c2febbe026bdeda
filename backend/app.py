"""
SeqPlanner - Flask API
Master data maintenance and two-phase sequencing runs over the JSON store.
"""

import os
import sys
import time
import tempfile
from datetime import datetime, timedelta

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', '.env'))

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import storage
from data_loader import DataLoader
from parsers import parse_master_data_workbook
from validators import validate_planning_data
from algorithms.models import Order, ScheduleResult, Weights, parse_datetime
from exporters.excel_exporter import export_machine_schedule, export_order_summary
from exporters.utilization_exporter import export_utilization


# ============== App Configuration ==============

def create_app():
    """Application factory for Flask app."""
    app = Flask(__name__)

    # Load configuration from environment
    app.secret_key = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['ENV'] = os.environ.get('FLASK_ENV', 'development')
    app.config['DEBUG'] = os.environ.get('FLASK_DEBUG', 'true').lower() == 'true'

    # File upload/export configuration
    base_dir = os.path.dirname(os.path.abspath(__file__))
    app.config['OUTPUT_FOLDER'] = os.environ.get('OUTPUT_FOLDER', os.path.join(base_dir, '..', 'outputs'))
    app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50MB max file size
    app.config['ALLOWED_EXTENSIONS'] = {'xlsx', 'xls'}

    os.makedirs(app.config['OUTPUT_FOLDER'], exist_ok=True)

    # CORS for API access
    CORS(app)

    return app


app = create_app()

MACHINE_ID_START = 1000
MAX_MACHINE_GROUP_ID = 999

REPORTS = {
    'machine_schedule': 'Machine_Schedule',
    'order_summary': 'Order_Summary',
    'utilization': 'Utilization',
}


# ============== Global State ==============

current_schedule = {
    'result': None,          # ScheduleResult of the last run
    'summary': {},
    'log': [],
    'generated_at': None,
}


def load_persisted_schedule():
    """Load the last planning result from the store on startup."""
    state = storage.load_schedule_state()
    if not state or not state.get('result'):
        return
    try:
        current_schedule['result'] = ScheduleResult.from_dict(state['result'])
    except (KeyError, TypeError, ValueError) as e:
        print(f"[Startup] Failed to load persisted schedule: {e}")
        return
    current_schedule['summary'] = state.get('summary', {})
    current_schedule['log'] = state.get('log', [])
    current_schedule['generated_at'] = state.get('generated_at')
    print(f"[Startup] Loaded persisted schedule from {current_schedule['generated_at']}")


# Load persisted schedule on module import
load_persisted_schedule()


# ============== Helper Functions ==============

def allowed_file(filename):
    """Check if file extension is allowed."""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in app.config['ALLOWED_EXTENSIONS']


def _schedule_payload():
    result = current_schedule['result']
    return {
        'result': result.to_dict() if result else None,
        'summary': current_schedule['summary'],
        'log': current_schedule['log'],
        'generated_at': current_schedule['generated_at'],
    }


def _stored_orders():
    """Stored orders that convert to model objects; bad records are skipped."""
    orders = []
    for record in storage.load_collection('orders'):
        try:
            orders.append(Order.from_dict(record))
        except ValueError as e:
            print(f"[WARN] Skipping stored order: {e}")
    return orders


# ============== Orders ==============

@app.route('/api/orders', methods=['GET'])
def get_orders():
    return jsonify(storage.load_collection('orders'))


@app.route('/api/orders', methods=['POST'])
def create_order():
    """Add an order. Report numbers are unique."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Order must be a JSON object'}), 400

    try:
        order = Order.from_dict(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    orders = storage.load_collection('orders')
    if any(str(o.get('reportNumber', o.get('report_number'))) == order.report_number for o in orders):
        return jsonify({'error': f'Report number {order.report_number} already exists'}), 409

    new_order = dict(data)
    new_order['id'] = max([int(time.time() * 1000)] + [int(o.get('id', 0)) + 1 for o in orders])
    orders.append(new_order)
    storage.save_collection('orders', orders)
    return jsonify(new_order), 201


@app.route('/api/orders/<int:order_id>', methods=['DELETE'])
def delete_order(order_id):
    orders = storage.load_collection('orders')
    remaining = [o for o in orders if o.get('id') != order_id]
    if len(remaining) == len(orders):
        return jsonify({'error': 'Order not found'}), 404
    storage.save_collection('orders', remaining)
    return jsonify({'message': 'Order deleted'})


# ============== Matrices ==============

def _matrix_endpoint(collection):
    if request.method == 'GET':
        return jsonify(storage.load_collection(collection))

    matrix = request.get_json(silent=True)
    if not isinstance(matrix, dict) or not all(isinstance(row, dict) for row in matrix.values()):
        return jsonify({'error': 'Matrix must map from -> {to: minutes}'}), 400
    report = validate_planning_data([], [], [], [], **{collection: matrix})
    problems = [e for e in report.errors if 'matrix' in e]
    if problems:
        return jsonify({'error': 'Invalid matrix values', 'details': problems}), 400

    storage.save_collection(collection, matrix)
    return jsonify(matrix), 201


@app.route('/api/setup-matrix', methods=['GET', 'POST'])
def setup_matrix():
    return _matrix_endpoint('setup_matrix')


@app.route('/api/cycle-matrix', methods=['GET', 'POST'])
def cycle_matrix():
    return _matrix_endpoint('cycle_matrix')


# ============== Machines ==============

@app.route('/api/machines', methods=['GET'])
def get_machines():
    return jsonify(storage.load_collection('machines'))


@app.route('/api/machines', methods=['POST'])
def create_machine():
    """Add a machine; ids are assigned from 1000 upward."""
    machine = request.get_json(silent=True)
    if not isinstance(machine, dict):
        return jsonify({'error': 'Machine must be a JSON object'}), 400
    if not machine.get('groupId'):
        return jsonify({'error': 'Machine group ID is required'}), 400
    if not isinstance(machine.get('capablePartNumbers'), list):
        machine['capablePartNumbers'] = []

    machines = storage.load_collection('machines')
    machine['id'] = max(m['id'] for m in machines) + 1 if machines else MACHINE_ID_START
    machines.append(machine)
    storage.save_collection('machines', machines)
    return jsonify(machine), 201


@app.route('/api/machines/<int:machine_id>', methods=['DELETE'])
def delete_machine(machine_id):
    machines = storage.load_collection('machines')
    remaining = [m for m in machines if m.get('id') != machine_id]
    if len(remaining) == len(machines):
        return jsonify({'error': 'Machine not found'}), 404
    storage.save_collection('machines', remaining)
    return jsonify({'message': 'Machine deleted'})


# ============== Routes ==============

@app.route('/api/routes', methods=['GET'])
def get_routes():
    return jsonify(storage.load_collection('routes'))


@app.route('/api/routes', methods=['POST'])
def save_route():
    """Create or replace the route of a part number."""
    route = request.get_json(silent=True)
    if not isinstance(route, dict) or not route.get('partNumber'):
        return jsonify({'error': 'Route requires a partNumber'}), 400
    if not isinstance(route.get('sequence'), list):
        return jsonify({'error': 'Route requires a sequence of machine group ids'}), 400

    routes = storage.load_collection('routes')
    for i, existing in enumerate(routes):
        if existing.get('partNumber') == route['partNumber']:
            routes[i] = route
            break
    else:
        routes.append(route)

    storage.save_collection('routes', routes)
    return jsonify(route), 201


@app.route('/api/routes/<part_number>', methods=['DELETE'])
def delete_route(part_number):
    routes = storage.load_collection('routes')
    remaining = [r for r in routes if r.get('partNumber') != part_number]
    if len(remaining) == len(routes):
        return jsonify({'error': 'Route not found'}), 404
    storage.save_collection('routes', remaining)
    return jsonify({'message': 'Route deleted'})


# ============== Machine Groups ==============

@app.route('/api/machine-groups', methods=['GET'])
def get_machine_groups():
    return jsonify(storage.load_collection('machine_groups'))


@app.route('/api/machine-groups', methods=['POST'])
def create_machine_group():
    """Add a machine group; ids are 1..999."""
    group = request.get_json(silent=True)
    if not isinstance(group, dict):
        return jsonify({'error': 'Machine group must be a JSON object'}), 400

    groups = storage.load_collection('machine_groups')
    current_max = max((g['id'] for g in groups), default=0)
    if current_max >= MAX_MACHINE_GROUP_ID:
        return jsonify({'error': f'Maximum number of machine groups reached ({MAX_MACHINE_GROUP_ID})'}), 400

    group['id'] = current_max + 1
    groups.append(group)
    storage.save_collection('machine_groups', groups)
    return jsonify(group), 201


@app.route('/api/machine-groups/<int:group_id>', methods=['DELETE'])
def delete_machine_group(group_id):
    machines = storage.load_collection('machines')
    if any(str(m.get('groupId')) == str(group_id) for m in machines):
        return jsonify({'error': 'Machine group is still in use by machines'}), 400

    groups = storage.load_collection('machine_groups')
    remaining = [g for g in groups if g.get('id') != group_id]
    if len(remaining) == len(groups):
        return jsonify({'error': 'Machine group not found'}), 404
    storage.save_collection('machine_groups', remaining)
    return jsonify({'message': 'Machine group deleted'})


# ============== Scheduling ==============

@app.route('/api/schedule', methods=['POST'])
def generate_schedule():
    """
    Run the two-phase planner on the stored data.

    Body (all optional): weights, start_date (ISO), seed, time_limit_seconds.
    """
    body = request.get_json(silent=True) or {}

    try:
        weights = Weights.from_dict(body.get('weights'))
        start_date = parse_datetime(body.get('start_date'))
        seed = int(body['seed']) if body.get('seed') is not None else None
        deadline = None
        if body.get('time_limit_seconds') is not None:
            deadline = datetime.now() + timedelta(seconds=float(body['time_limit_seconds']))
    except (TypeError, ValueError) as e:
        return jsonify({'error': f'Invalid planning parameters: {e}'}), 400

    loader = DataLoader()
    if not loader.load_all():
        report = loader.validation_report
        return jsonify({'error': 'Planning data is invalid', 'details': report.errors}), 400

    log = []
    print(f"[Generate] Planning {len(loader.orders)} orders")
    scheduler = loader.build_scheduler(weights=weights, seed=seed,
                                       progress_callback=log.append, deadline=deadline)
    result = scheduler.schedule_orders(start_date=start_date)

    current_schedule['result'] = result
    current_schedule['summary'] = scheduler.get_summary()
    current_schedule['log'] = log
    current_schedule['generated_at'] = datetime.now().isoformat()

    payload = _schedule_payload()
    payload['warnings'] = loader.validation_report.warnings
    storage.save_schedule_state(payload)
    print(f"[Generate] Done, end time {result.schedule_end_time:g} min")
    return jsonify(payload)


@app.route('/api/schedule', methods=['GET'])
def get_schedule():
    """Get the last planning result."""
    if current_schedule['result'] is None:
        return jsonify({'result': None, 'summary': {}, 'log': [], 'generated_at': None})
    return jsonify(_schedule_payload())


@app.route('/api/schedule/export', methods=['GET'])
def export_schedule():
    """Download an Excel report of the last result (?report=machine_schedule|order_summary|utilization)."""
    result = current_schedule['result']
    if result is None:
        return jsonify({'error': 'No schedule data available. Generate a schedule first.'}), 400

    report = request.args.get('report', 'machine_schedule')
    if report not in REPORTS:
        return jsonify({'error': f'Unknown report: {report}', 'details': sorted(REPORTS)}), 400

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    filename = f"{REPORTS[report]}_{timestamp}.xlsx"
    output_path = os.path.join(app.config['OUTPUT_FOLDER'], filename)

    if report == 'machine_schedule':
        export_machine_schedule(result, output_path)
    elif report == 'order_summary':
        export_order_summary(result, _stored_orders(), output_path)
    else:
        export_utilization(result, _stored_orders(), output_path)

    return send_file(os.path.abspath(output_path), as_attachment=True, download_name=filename)


# ============== Import ==============

@app.route('/api/import', methods=['POST'])
def import_workbook():
    """Replace stored collections with the sheets of an uploaded workbook."""
    if 'file' not in request.files:
        return jsonify({'error': 'No file provided'}), 400

    file = request.files['file']
    if file.filename == '':
        return jsonify({'error': 'No file selected'}), 400
    if not allowed_file(file.filename):
        return jsonify({'error': 'Invalid file type. Only .xlsx and .xls files allowed.'}), 400

    filename = secure_filename(file.filename)
    fd, temp_path = tempfile.mkstemp(suffix=os.path.splitext(filename)[1])
    os.close(fd)
    try:
        file.save(temp_path)
        parsed = parse_master_data_workbook(temp_path)
    except ValueError as e:
        return jsonify({'error': f'Could not read workbook: {e}'}), 400
    finally:
        os.unlink(temp_path)

    if not parsed:
        return jsonify({'error': 'Workbook contains no known sheets'}), 400

    for collection, records in parsed.items():
        storage.save_collection(collection, records)
    print(f"[Import] {filename}: replaced {sorted(parsed)}")

    records = storage.load_master_data()
    report = validate_planning_data(
        records['orders'], records['machines'], records['machine_groups'],
        records['routes'], records['setup_matrix'], records['cycle_matrix'],
    )
    return jsonify({
        'success': True,
        'filename': filename,
        'imported': {name: len(data) for name, data in parsed.items()},
        'validation': report.to_dict(),
    })


# ============== Error Handlers ==============

@app.errorhandler(404)
def not_found(e):
    """Handle 404 errors."""
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Not found'}), 404
    return e


@app.errorhandler(413)
def too_large(e):
    return jsonify({'error': 'File too large (max 50MB)'}), 413


@app.errorhandler(500)
def server_error(e):
    """Handle 500 errors."""
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Internal server error'}), 500
    return e


# ============== Main ==============

def run_development():
    """Run the development server."""
    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))

    print("=" * 60)
    print("SeqPlanner - API (Development)")
    print("=" * 60)
    print(f"Data folder: {storage.get_data_dir()}")
    print(f"Output folder: {app.config['OUTPUT_FOLDER']}")
    print(f"Starting server at http://{host}:{port}")
    print("=" * 60)
    print("WARNING: Using development server. For production, use:")
    print("  waitress-serve --port=5000 app:app")
    print("=" * 60)

    app.run(debug=True, host=host, port=port)


def run_production():
    """Run the production server with Waitress."""
    from waitress import serve

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))

    print("=" * 60)
    print("SeqPlanner - API (Production)")
    print("=" * 60)
    print(f"Data folder: {storage.get_data_dir()}")
    print(f"Output folder: {app.config['OUTPUT_FOLDER']}")
    print(f"Starting Waitress server at http://{host}:{port}")
    print("=" * 60)

    serve(app, host=host, port=port, threads=4)


if __name__ == '__main__':
    env = os.environ.get('FLASK_ENV', 'development')

    if env == 'production':
        run_production()
    else:
        run_development()
