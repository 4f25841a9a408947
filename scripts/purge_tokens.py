#!/usr/bin/env python3
"""
Remove activation and password-reset codes whose expiry is in the past.

Meant to run from cron; nothing in the API process deletes expired codes.

Usage:
  python scripts/purge_tokens.py [--grace-minutes 60]
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone

from booknet.services.auth_service import AuthService


def main() -> None:
    ap = argparse.ArgumentParser(description="Purge expired one-time codes")
    ap.add_argument(
        "--grace-minutes",
        type=int,
        default=0,
        help="Keep codes that expired less than this many minutes ago (default: 0)",
    )
    args = ap.parse_args()
    if args.grace_minutes < 0:
        raise SystemExit("--grace-minutes must be >= 0")

    logging.basicConfig(level=logging.INFO)
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=args.grace_minutes)
    removed = AuthService().purge_expired_tokens(cutoff)
    print(f"OK: {removed} expired token(s) removed (cutoff {cutoff.isoformat()})")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
