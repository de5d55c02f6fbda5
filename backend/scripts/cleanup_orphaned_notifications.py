#!/usr/bin/env python3
"""Delete friend_request / friend_accepted notifications whose friendship is gone or has moved on.
Run from backend: python scripts/cleanup_orphaned_notifications.py
"""
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlmodel import Session

from resonant.db import engine, init_db
from resonant.services.reconciliation import purge_orphaned_notifications


def main():
    init_db()
    with Session(engine) as session:
        try:
            result = purge_orphaned_notifications(session)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    for line in result.details:
        print(f"  {line}")
    print(result.summary())


if __name__ == "__main__":
    main()
