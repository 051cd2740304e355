"""
Database initialisation script
Creates the appointments table and its indexes
Run: python init_db.py
"""
import sys
sys.path.insert(0, '.')

from imaging_booking.config import get_settings
from imaging_booking.database import init_db


if __name__ == "__main__":
    print("Creating tables...")
    init_db()
    print(f"Tables created in {get_settings().DATABASE_URL.split('@')[-1]}")
    print("Start the server with: python -m uvicorn imaging_booking.main:app --reload --port 3000")
