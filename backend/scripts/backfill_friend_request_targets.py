#!/usr/bin/env python3
"""Add targetProfileId to friend_request notifications created before it was recorded.
Notifications whose friendship no longer exists are deleted instead.
Run from backend: python scripts/backfill_friend_request_targets.py
"""
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlmodel import Session

from resonant.db import engine, init_db
from resonant.services.reconciliation import backfill_friend_request_targets


def main():
    init_db()
    with Session(engine) as session:
        try:
            result = backfill_friend_request_targets(session)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    for line in result.details:
        print(f"  {line}")
    print(result.summary())


if __name__ == "__main__":
    main()
