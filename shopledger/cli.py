"""
Command line entry points.

    shopledger token                 print a bearer token for POST /jobs/weekly-reminders
    shopledger weekly-reminders      send the weekly payment reminders now
    shopledger seed-owner            create the OWNER_EMAIL account if it is missing
"""

import argparse
import json
import logging
import sys

from shopledger.core.config import settings
from shopledger.core.errors import NotificationError
from shopledger.core.logging import setup_logging
from shopledger.core.security import create_token
from shopledger.db.base import Base
from shopledger.db.session import SessionLocal, engine
from shopledger.models import user, inventory, debt, expense  # noqa: F401  register tables
from shopledger.services.accounts import seed_owner
from shopledger.services.reminders import send_weekly_reminders

logger = logging.getLogger("shopledger.cli")


def cmd_token(args):
    print(create_token(settings.JOB_TOKEN_SUBJECT, expires_minutes=args.minutes))
    return 0


def cmd_weekly_reminders(args):
    db = SessionLocal()
    try:
        result = send_weekly_reminders(db)
    except NotificationError as e:
        logger.error("Weekly reminders aborted: %s", e.message)
        return 1
    finally:
        db.close()
    print(json.dumps(result.as_dict(), indent=2))
    return 0 if result.failed == 0 else 2


def cmd_seed_owner(args):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        owner = seed_owner(db)
    finally:
        db.close()
    if owner is None:
        print("OWNER_EMAIL / OWNER_PASSWORD not set, nothing to do")
    else:
        print(f"Owner account: {owner.email}")
    return 0


def main(argv=None):
    setup_logging()
    parser = argparse.ArgumentParser(prog="shopledger")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("token", help="print a job token")
    p.add_argument("--minutes", type=int, default=60 * 24 * 365)
    p.set_defaults(func=cmd_token)

    p = sub.add_parser("weekly-reminders", help="send weekly payment reminders")
    p.set_defaults(func=cmd_weekly_reminders)

    p = sub.add_parser("seed-owner", help="create the configured owner account")
    p.set_defaults(func=cmd_seed_owner)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
