#!/usr/bin/env python3
"""
Create the daily bonus tables and seed default coin_system_config rows.
Run from the project root: python -m scripts.init_db
or: PYTHONPATH=. python scripts/init_db.py
"""
import os
import sys

# project root on PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.bonus.config import ConfigStore
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models import coin_rule, coin_system_config, coin_transaction, daily_code, user_balance, user_bonus_claim  # noqa: F401


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = ConfigStore(db).seed_defaults()
        print(f"Tables ready, {created} config rows seeded.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
