#!/usr/bin/env python3
"""Delete rejected friendships past the retention window so the pair may send a new request.
Run from backend: python scripts/purge_stale_rejections.py
"""
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlmodel import Session

from resonant.db import engine, init_db
from resonant.services.reconciliation import purge_stale_rejections


def main():
    init_db()
    with Session(engine) as session:
        try:
            result = purge_stale_rejections(session)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    for line in result.details:
        print(f"  {line}")
    print(result.summary())


if __name__ == "__main__":
    main()
