# backoffice/cli/__main__.py
from __future__ import annotations

import argparse
import sys

from sqlalchemy import select

from backoffice.cli.seed_demo import seed_demo
from backoffice.db import SessionLocal
from backoffice.models import Organization
from backoffice.tasks.scheduled import run_org_sweeps
from backoffice.workflows.base import Actor
from backoffice.workflows.security_deposits import SecurityDepositWorkflow


def _org_id(db, slug: str) -> int:
    org = db.scalar(select(Organization).where(Organization.slug == slug))
    if org is None:
        raise SystemExit(f"unknown org: {slug}")
    return int(org.id)


def _cmd_seed(args) -> int:
    out = seed_demo(
        org_slug=args.org_slug,
        org_name=args.org_name,
        user_email=args.user_email,
        user_name=args.user_name,
        create_samples=(not args.no_samples),
    )
    print(
        {
            "ok": True,
            "org_slug": out.org_slug,
            "user_email": out.user_email,
            "sample_property_id": out.property_id,
            "sample_prospect_id": out.prospect_id,
        }
    )
    return 0


def _cmd_calculate_dividends(args) -> int:
    db = SessionLocal()
    try:
        wf = SecurityDepositWorkflow(db, Actor(org_id=_org_id(db, args.org_slug)))
        if args.earnings is not None:
            res = wf.record_investment_performance(
                args.year,
                starting_balance=args.starting_balance,
                ending_balance=args.ending_balance if args.ending_balance is not None else args.starting_balance + args.earnings,
                total_earnings=args.earnings,
            )
            if not res.success:
                print({"ok": False, "errors": res.errors})
                return 1

        res = wf.calculate_dividends(args.year)
        print({"ok": res.success, "message": res.message, "errors": res.errors})
        return 0 if res.success else 1
    finally:
        db.close()


def _cmd_sweep(args) -> int:
    db = SessionLocal()
    try:
        out = run_org_sweeps(db, org_id=_org_id(db, args.org_slug))
        print({"ok": True, **out.as_dict()})
        return 0
    finally:
        db.close()


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="backoffice")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("seed", help="create a demo org, owner, property and prospect")
    s.add_argument("--org-slug", default="demo")
    s.add_argument("--org-name", default="demo")
    s.add_argument("--user-email", default="manager@demo.local")
    s.add_argument("--user-name", default="Manager")
    s.add_argument("--no-samples", action="store_true")
    s.set_defaults(func=_cmd_seed)

    d = sub.add_parser("calculate-dividends", help="run the yearly investment pool dividend batch")
    d.add_argument("--org-slug", required=True)
    d.add_argument("--year", type=int, required=True)
    d.add_argument("--earnings", type=float, default=None)
    d.add_argument("--starting-balance", type=float, default=0.0)
    d.add_argument("--ending-balance", type=float, default=None)
    d.set_defaults(func=_cmd_calculate_dividends)

    w = sub.add_parser("sweep", help="run the nightly sweeps for one org now")
    w.add_argument("--org-slug", required=True)
    w.set_defaults(func=_cmd_sweep)

    args = p.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
