# backend/app/cli/__main__.py
from __future__ import annotations

import argparse
from datetime import date

from sqlalchemy import select

from app.cli.seed_demo import seed_demo
from app.db import SessionLocal
from app.logging_config import configure_logging
from app.models import Organization
from app.services.rent_periods import refresh_rent_period_statuses


def _date(s: str) -> date:
    try:
        return date.fromisoformat(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date: {s!r}")


def _cmd_seed_demo(args: argparse.Namespace) -> int:
    out = seed_demo(
        org_slug=args.org_slug,
        org_name=args.org_name,
        owner_email=args.owner_email,
        currency=args.currency,
        create_sample_lease=(not args.no_sample_lease),
        today=args.today,
    )
    print(
        {
            "ok": True,
            "org_slug": out.org_slug,
            "owner_email": out.owner_email,
            "owner_token": out.owner_token,
            "rent_config_id": out.rent_config_id,
            "periods_generated": out.periods_generated,
        }
    )
    return 0


def _cmd_refresh_overdue(args: argparse.Namespace) -> int:
    db = SessionLocal()
    try:
        org_id = None
        if args.org_slug:
            org = db.scalar(select(Organization).where(Organization.slug == args.org_slug))
            if org is None:
                print({"ok": False, "error": f"unknown org: {args.org_slug}"})
                return 1
            org_id = int(org.id)

        n = refresh_rent_period_statuses(db, org_id=org_id, today=args.today)
        print({"ok": True, "updated": n})
        return 0
    finally:
        db.close()


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="python -m app.cli")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("seed-demo", help="create a demo org, staff users and a sample lease")
    s.add_argument("--org-slug", default="demo")
    s.add_argument("--org-name", default="Demo Properties")
    s.add_argument("--owner-email", default="owner@demo.local")
    s.add_argument("--currency", default="NGN")
    s.add_argument("--no-sample-lease", action="store_true")
    s.add_argument("--today", type=_date, default=None)
    s.set_defaults(func=_cmd_seed_demo)

    r = sub.add_parser("refresh-overdue", help="recompute status/days_overdue of unpaid rent periods")
    r.add_argument("--org-slug", default=None, help="limit to one organization")
    r.add_argument("--today", type=_date, default=None)
    r.set_defaults(func=_cmd_refresh_overdue)

    args = p.parse_args(argv)
    configure_logging()
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
