#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

Creates the positions and favorites tables on the database named by
DATABASE_URL. Safe to run repeatedly; existing tables are left untouched.

This script can be run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py
"""
import sys
from pathlib import Path

# Add the backend directory to Python path so 'app' package is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from app.database import engine, init_db
from app.utils import setup_logging


if __name__ == "__main__":
    setup_logging()
    print(f"Creating tables on {engine.url.render_as_string(hide_password=True)}...")
    init_db()
    print("Tables created successfully!")
