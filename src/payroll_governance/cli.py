"""Payroll governance command line interface.

Usage:
    python -m payroll_governance init-db
    python -m payroll_governance generate-draft --period 2026-01-31 --initiator <uuid>
    python -m payroll_governance pending-approvals
    python -m payroll_governance active-settings [--json]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from typing import Any, Callable
from uuid import UUID

from payroll_governance.config import configure_logging
from payroll_governance.database import create_schema, dispose_db, get_session, init_db
from payroll_governance.errors import PayrollGovernanceError
from payroll_governance.services import ConfigurationStore, PayrollDraftGenerator


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class PayrollCli:
    """Payroll governance command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m payroll_governance",
            description="Payroll configuration governance and draft generation",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            help="Log level (default: $LOG_LEVEL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create database tables")

        generate = subparsers.add_parser(
            "generate-draft",
            help="Generate a draft payroll run",
        )
        generate.add_argument(
            "--period",
            type=parse_date,
            required=True,
            help="Payroll period date (YYYY-MM-DD)",
        )
        generate.add_argument(
            "--initiator",
            type=parse_uuid,
            required=True,
            help="ID of the user initiating the run",
        )
        generate.add_argument(
            "--run-id",
            type=str,
            help="Run identifier (default: next PR-<year>-<NNNN>)",
        )

        subparsers.add_parser(
            "pending-approvals",
            help="Show configuration items awaiting review",
        )

        settings_parser = subparsers.add_parser(
            "active-settings",
            help="Show the active company settings",
        )
        settings_parser.add_argument(
            "--json",
            action="store_true",
            help="Print the full record as JSON",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(parsed.log_level)

        handlers: dict[str, Callable[..., Any]] = {
            "init-db": self._cmd_init_db,
            "generate-draft": self._cmd_generate_draft,
            "pending-approvals": self._cmd_pending_approvals,
            "active-settings": self._cmd_active_settings,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(self._dispatch(handler, parsed))
        except PayrollGovernanceError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    async def _dispatch(self, handler: Callable[..., Any], args: argparse.Namespace) -> int:
        init_db(args.database_url)
        try:
            return await handler(args)
        finally:
            await dispose_db()

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create database tables."""
        await create_schema()
        print("Database schema created.")
        return 0

    async def _cmd_generate_draft(self, args: argparse.Namespace) -> int:
        """Generate a draft payroll run."""
        async with get_session() as session:
            generator = PayrollDraftGenerator(session)
            run = await generator.generate_draft(args.period, args.initiator, args.run_id)

        print(f"Draft run {run.run_id} created for {run.period.isoformat()}")
        print(f"  Employees:     {run.employees}")
        print(f"  Exceptions:    {run.exceptions}")
        print(f"  Total net pay: {run.total_net_pay:,.2f}")
        return 0

    async def _cmd_pending_approvals(self, args: argparse.Namespace) -> int:
        """Show configuration items awaiting review."""
        async with get_session() as session:
            dashboard = await ConfigurationStore(session).pending_approvals()

        summary = {
            "total_pending": dashboard["total_pending"],
            "kinds": {
                kind: {"count": data["count"], "submitted": data["submitted"]}
                for kind, data in dashboard["kinds"].items()
            },
        }
        print(json.dumps(summary, indent=2))
        return 0

    async def _cmd_active_settings(self, args: argparse.Namespace) -> int:
        """Show the active company settings."""
        async with get_session() as session:
            settings = await ConfigurationStore(session).get_active_company_settings()

        if settings is None:
            print("No approved company settings.")
            return 1

        if args.json:
            print(json.dumps(settings.to_dict(), indent=2, default=str))
            return 0

        print(f"Active company settings {settings.company_settings_id}")
        print(f"  Pay date:  {settings.pay_date.isoformat()}")
        print(f"  Time zone: {settings.time_zone}")
        print(f"  Currency:  {settings.currency}")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
