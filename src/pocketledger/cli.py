"""Command-line entry points for PocketLedger."""

from __future__ import annotations

from datetime import date, datetime
from functools import wraps

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .domain.errors import LedgerError
from .models.loan import InterestModel, PaymentFrequency
from .services import budgeting, goals, ledger_service, loans
from .services.amortization import amortize


def _context() -> AppContext:
    ctx = click.get_current_context()
    app = ctx.find_object(AppContext)
    if app is None:
        app = create_app_context(BaseConfig())
        ctx.obj = app
    return app


def _domain_errors(fn):
    """Report domain failures as CLI errors instead of tracebacks."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except LedgerError as exc:
            raise click.ClickException(f"{exc.kind}: {exc}") from exc

    return wrapper


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


user_option = click.option("--user", "username", required=True, help="Owner username")


@click.group()
def main() -> None:
    """PocketLedger ledger tools."""


@main.command("init-db")
def init_db() -> None:
    """Create the database schema."""

    app = _context()
    click.echo(f"Database ready: {app.config.DATABASE_URL}")


@main.command("amortize")
@click.option("--principal", type=float, required=True)
@click.option("--rate", type=float, default=0.0, show_default=True, help="Annual rate in percent")
@click.option(
    "--model",
    type=click.Choice([m.value for m in InterestModel]),
    default=InterestModel.SIMPLE.value,
    show_default=True,
)
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), required=True)
@click.option("--due", type=click.DateTime(formats=["%Y-%m-%d"]), required=True)
@click.option("--grace", type=int, default=0, show_default=True, help="Grace period in months")
@click.option(
    "--frequency",
    type=click.Choice([f.value for f in PaymentFrequency]),
    default=PaymentFrequency.MONTHLY.value,
    show_default=True,
)
@_domain_errors
def amortize_command(principal, rate, model, start, due, grace, frequency) -> None:
    """Preview total repayment and interest without saving anything."""

    preview = amortize(principal, rate, model, _as_date(start), _as_date(due), grace, frequency)
    click.echo(f"Total repayment: {preview.total_repayment:.2f}")
    click.echo(f"Interest: {preview.interest_amount:.2f}")
    click.echo(f"Next installment interest: {preview.next_installment_interest:.2f}")


@main.command("balances")
@user_option
@_domain_errors
def balances(username: str) -> None:
    """List account balances, oldest account first."""

    app = _context()
    accounts = ledger_service.account_balances(
        app.session_factory, user_id=app.user_id_for(username)
    )
    if not accounts:
        click.echo("No accounts.")
        return
    for account in accounts:
        click.echo(f"{account.id:>4}  {account.name:<24} {account.balance:>12}")


@main.command("history")
@user_option
@_domain_errors
def history(username: str) -> None:
    """Show ledger entries, newest first."""

    app = _context()
    rows = ledger_service.transaction_history(
        app.session_factory, user_id=app.user_id_for(username)
    )
    if not rows:
        click.echo("No transactions.")
        return
    for row in rows:
        day = row.transaction_date or row.created_at.date()
        click.echo(
            f"{day.isoformat()}  {row.kind.value:<12} {row.amount:>12}  "
            f"{row.account_name}  {row.category_name or '-'}  {row.description or ''}".rstrip()
        )


@main.command("budget")
@user_option
@click.option("--as-of", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--category", "category_id", type=int, default=None)
@_domain_errors
def budget(username: str, as_of, category_id) -> None:
    """Show the current budget with its spend re-derived from the ledger."""

    app = _context()
    snapshot = budgeting.evaluate_spend(
        app.session_factory,
        user_id=app.user_id_for(username),
        as_of=_as_date(as_of) or date.today(),
        category_id=category_id,
    )
    if snapshot is None:
        click.echo("No active budget.")
        return
    b = snapshot.budget
    click.echo(f"Budget {b.start_date.isoformat()} to {b.end_date.isoformat()}")
    click.echo(f"Limit: {b.amount_limit}  Spent: {snapshot.spent}  Remaining: {snapshot.remaining}")
    if not snapshot.in_period:
        click.echo("Outside the budget period.")
    if snapshot.exceeded:
        click.echo("Over budget.")


@main.command("goals")
@user_option
@_domain_errors
def goals_command(username: str) -> None:
    """List open goals with derived progress."""

    app = _context()
    snapshots = goals.goal_snapshots(app.session_factory, user_id=app.user_id_for(username))
    if not snapshots:
        click.echo("No goals.")
        return
    for snap in snapshots:
        click.echo(
            f"{snap.goal.name:<24} {snap.progress:>12} / {snap.goal.target_amount:<12} "
            f"due {snap.goal.deadline.isoformat()}"
        )


@main.command("loans")
@user_option
@click.option("--active", "active_only", is_flag=True, default=False, help="Only active loans")
@_domain_errors
def loans_command(username: str, active_only: bool) -> None:
    """List loans, newest first, with remaining balance and preview."""

    app = _context()
    snapshots = loans.loan_snapshots(
        app.session_factory, user_id=app.user_id_for(username), active_only=active_only
    )
    if not snapshots:
        click.echo("No loans.")
        return
    for snap in snapshots:
        loan = snap.loan
        click.echo(
            f"{loan.id:>4}  {loan.lender_name:<20} {loan.status.value:<7} "
            f"remaining {snap.remaining:>12}  total {snap.preview.total_repayment:.2f}"
        )


if __name__ == "__main__":  # pragma: no cover
    main()
