#!/usr/bin/env python3
"""Run every friendship/notification repair pass in order, as the periodic audit does.
Run from backend: python scripts/run_reconciliation.py
"""
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlmodel import Session

from resonant.db import engine, init_db
from resonant.services.reconciliation import run_full_audit


def main():
    init_db()
    with Session(engine) as session:
        try:
            results = run_full_audit(session)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    for result in results:
        print(result.summary())
        for line in result.details:
            print(f"  {line}")


if __name__ == "__main__":
    main()
