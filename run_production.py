#!/usr/bin/env python
"""
SeqPlanner - Production Server Launcher

Starts the planning API under Waitress.

Usage:
    python run_production.py

Settings come from the environment or a .env file next to this script:
    - SECRET_KEY: required, a random string
    - DATA_DIR: JSON store directory (default: ./data)
    - OUTPUT_FOLDER: Excel report directory (default: ./outputs)
    - HOST / PORT: bind address (default: 0.0.0.0:5000)
"""

import os
import sys

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.join(BASE_DIR, 'backend'))

from dotenv import load_dotenv

load_dotenv(os.path.join(BASE_DIR, '.env'))


def check_settings():
    """Refuse to start with a missing or development secret key."""
    secret = os.environ.get('SECRET_KEY', '')
    if secret and not secret.startswith('dev-'):
        return True

    print("=" * 60)
    print("[ERROR] SECRET_KEY is missing or still the development default.")
    print("Set a random value in .env, for example the output of:")
    print("  python -c \"import secrets; print(secrets.token_hex(32))\"")
    print("=" * 60)
    return False


if __name__ == '__main__':
    if not check_settings():
        sys.exit(1)

    os.environ.setdefault('DATA_DIR', os.path.join(BASE_DIR, 'data'))
    os.environ['FLASK_ENV'] = 'production'
    os.environ['FLASK_DEBUG'] = 'false'

    from app import run_production
    run_production()
