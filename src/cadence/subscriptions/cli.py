#!/usr/bin/env python
"""
CLI management commands for the subscription billing service.
"""

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import UTC, datetime

import click
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.subscriptions.billing.repository import find_schedule
from cadence.subscriptions.billing.schedule import (
    BillingScheduleCalculator,
    start_of_hour,
    to_iso_z,
)
from cadence.subscriptions.db import create_all_tables_async, get_async_db
from cadence.subscriptions.exceptions import SessionNotFoundError
from cadence.subscriptions.jobs.factory import build_job_runner
from cadence.subscriptions.jobs.job import SYSTEM_MERCHANT_KEY
from cadence.subscriptions.jobs.runner import JobRunner
from cadence.subscriptions.logging import configure_logging
from cadence.subscriptions.merchants.onboarding import activate_billing_schedule


@dataclass
class CLIDependencies:
    """Bundle of injectable dependencies used by CLI commands."""

    session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]]
    create_tables: Callable[[], Awaitable[None]]
    runner_factory: Callable[[], JobRunner]


def _get_cli_dependencies() -> CLIDependencies:
    """Return the default dependency bundle for CLI commands."""
    return CLIDependencies(
        session_factory=get_async_db,
        create_tables=create_all_tables_async,
        runner_factory=build_job_runner,
    )


def _parse_utc(value: str | None) -> datetime:
    if value is None:
        return datetime.now(UTC)
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


@click.group()
def cli() -> None:
    """Cadence Subscriptions CLI."""
    configure_logging()


@cli.command()
def init_db() -> None:
    """Create all tables on the configured database."""
    deps = _get_cli_dependencies()
    click.echo("Initializing database...")
    asyncio.run(deps.create_tables())
    click.echo("Database initialized successfully!")


@cli.group()
def billing() -> None:
    """Recurring billing commands."""
    pass


@billing.command("trigger")
@click.option("--target-date", default=None, help="UTC hour to bill (ISO-8601, default now)")
def trigger_billing(target_date: str | None) -> None:
    """Enqueue the merchant scan for one UTC hour."""
    from cadence.subscriptions.billing.jobs import ScheduleMerchantsToChargeJob

    deps = _get_cli_dependencies()
    target = start_of_hour(_parse_utc(target_date))

    async def _trigger() -> None:
        runner = deps.runner_factory()
        job = ScheduleMerchantsToChargeJob(SYSTEM_MERCHANT_KEY, {"targetDate": target})
        await runner.enqueue(job)

    asyncio.run(_trigger())
    click.echo(f"Enqueued {ScheduleMerchantsToChargeJob.job_type.value} for {to_iso_z(target)}")


@billing.command("check")
@click.argument("merchant_key")
@click.option("--at", "at", default=None, help="UTC instant to evaluate (ISO-8601, default now)")
def check_schedule(merchant_key: str, at: str | None) -> None:
    """Show whether a merchant is billable at an hour, and its charge window."""
    deps = _get_cli_dependencies()
    target = _parse_utc(at)

    async def _check() -> BillingScheduleCalculator | None:
        async with deps.session_factory() as session:
            schedule = await find_schedule(session, merchant_key)
        if schedule is None:
            return None
        return BillingScheduleCalculator(schedule, target)

    calculator = asyncio.run(_check())
    if calculator is None:
        raise click.ClickException(f"No billing schedule for {merchant_key}")

    schedule = calculator.schedule
    click.echo(f"Merchant:   {merchant_key}")
    click.echo(f"Schedule:   {schedule.hour:02d}:00 {schedule.timezone}")
    click.echo(f"Hour (UTC): {to_iso_z(calculator.target_time)}")
    click.echo(f"Billable:   {'yes' if calculator.is_billable() else 'no'}")
    click.echo(f"Window:     {to_iso_z(calculator.billing_start_time_utc)}")
    click.echo(f"            {to_iso_z(calculator.billing_end_time_utc)}")


@cli.group()
def merchants() -> None:
    """Merchant lifecycle commands."""
    pass


@merchants.command("activate")
@click.argument("merchant_key")
def activate_merchant(merchant_key: str) -> None:
    """Create or reactivate a merchant's billing schedule in its shop timezone."""
    deps = _get_cli_dependencies()

    async def _activate() -> tuple[int, str]:
        context = deps.runner_factory().context
        async with context.admin(merchant_key) as admin, context.session() as session:
            schedule = await activate_billing_schedule(session, admin, merchant_key)
            return schedule.hour, schedule.timezone

    try:
        hour, timezone = asyncio.run(_activate())
    except SessionNotFoundError as exc:
        raise click.ClickException(exc.message) from exc

    click.echo(f"Activated {merchant_key}: billing at {hour:02d}:00 {timezone}")


@cli.group()
def jobs() -> None:
    """Job runner commands."""
    pass


@jobs.command("list")
def list_jobs() -> None:
    """List registered job types and their queues."""
    deps = _get_cli_dependencies()
    runner = deps.runner_factory()
    for job_type in sorted(runner.registered_job_types, key=lambda job_type: job_type.value):
        job_class = runner.job_class(job_type.value)
        click.echo(f"{job_type.value:40} {job_class.queue.value}")


if __name__ == "__main__":
    cli()
