#!/usr/bin/env python3
"""
Flask web server that provides a REST API for the scheduling simulator.
It runs the FIFO, SJF and SRT engines from scheduler.py on a generated or
user supplied process population and returns the results as JSON.
"""

import io
import sys
import traceback

from flask import Flask, request, jsonify
from flask_cors import CORS

from scheduler import (
    ENGINES,
    Process,
    ProcessSet,
    generate_processes,
    parse_input_lines,
    run_simulation,
    validate_params,
)

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication


def parse_trace_flag(value):
    """Accepts true/false or the directive-file spelling on/off."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('on', 'off'):
        return value.lower() == 'on'
    raise ValueError(f"trace must be true, false, 'on' or 'off', got {value!r}")


def build_config(data):
    """Builds the simulation config from either input_content or JSON fields."""
    input_content = data.get('input_content')
    if input_content:
        return parse_input_lines(input_content.splitlines())

    try:
        config = {
            'n': int(data['n']),
            'k': int(data['k']),
            'd': float(data['d']),
            'v': float(data.get('v', 0)),
            'seed': int(data['seed']) if data.get('seed') is not None else None,
        }
    except KeyError as e:
        raise ValueError(f"Missing parameter {e.args[0]}")
    except (TypeError, ValueError):
        raise ValueError("Parameters n and k must be integers, d and v numbers")

    config['trace'] = parse_trace_flag(data.get('trace', False))

    validate_params(config['n'], config['k'], config['d'], config['v'])
    return config


def build_process_set(config, process_specs=None):
    """Uses the explicit process list when given, otherwise generates one."""
    if not process_specs:
        return generate_processes(config['n'], config['k'], config['d'], config['v'],
                                  seed=config['seed'])

    processes = []
    for i, entry in enumerate(process_specs):
        try:
            processes.append(Process(
                entry.get('name', f"p{i + 1}"),
                entry['arrival'],
                entry['service'],
            ))
        except KeyError as e:
            raise ValueError(f"Process {i + 1} is missing '{e.args[0]}'")
        except (TypeError, AttributeError):
            raise ValueError(f"Process {i + 1} must be an object with arrival and service")
    config['n'] = len(processes)
    return ProcessSet(processes)


@app.route('/api/test', methods=['GET'])
def test():
    """Test endpoint to verify the server is running."""
    return jsonify({
        'status': 'ok',
        'message': 'Server is running',
        'policies': list(ENGINES)
    })


@app.route('/api/simulate', methods=['POST'])
def simulate():
    """API endpoint to run the three policies on one process population."""
    try:
        print("[INFO] Received simulation request")

        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'No data provided'}), 400
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be a JSON object'}), 400

        process_specs = data.get('processes')
        if process_specs is not None and not isinstance(process_specs, list):
            return jsonify({'error': 'processes must be a list of objects'}), 400
        if process_specs:
            # Generation parameters only label the report for explicit populations;
            # n always comes from the list itself.
            data = {'k': 1, 'd': 0, **data, 'n': len(process_specs)}

        try:
            config = build_config(data)
            process_set = build_process_set(config, process_specs)
        except ValueError as e:
            print(f"[ERROR] Invalid request: {e}")
            return jsonify({'error': str(e)}), 400

        print(f"[INFO] Simulating {len(process_set)} processes")

        output = io.StringIO()
        results = run_simulation(config, process_set, output)

        return jsonify({
            'success': True,
            'params': {key: config[key] for key in ('n', 'k', 'd', 'v', 'seed')},
            'processes': [p.to_dict() for p in process_set],
            'results': {policy: result.to_dict() for policy, result in results.items()},
            'output': output.getvalue()
        })

    except Exception as e:
        print(f"[ERROR] Server error: {e}")
        traceback.print_exc()
        return jsonify({'error': f'Server error: {str(e)}'}), 500


@app.route('/api/validate-config', methods=['POST'])
def validate_config():
    """Validate a configuration without running the simulation."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    errors = []
    warnings = []

    try:
        config = build_config(data)
    except ValueError as e:
        errors.append(str(e))
    else:
        n, k, d = config['n'], config['k'], config['d']
        if d >= k / n:
            warnings.append(f'd ({d:g}) is not smaller than k/n ({k / n:g}); '
                            'processes will compete for the CPU')
        if d < 3 * config['v']:
            warnings.append('Some sampled service times may be clamped to 0')

    return jsonify({
        'valid': len(errors) == 0,
        'errors': errors,
        'warnings': warnings
    })


if __name__ == '__main__':
    print("Starting Scheduling Simulator Server...")
    print(f"Python: {sys.executable}")

    try:
        print("Starting server on http://localhost:5000")
        print("Press Ctrl+C to stop the server")
        app.run(debug=False, host='localhost', port=5000, use_reloader=False)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        print(f"Failed to start server: {e}")
        sys.exit(1)
