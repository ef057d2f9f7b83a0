# pocket_ledger/cli.py
import functools
import logging
from datetime import datetime
from pathlib import Path

import click
import yaml
from dotenv import load_dotenv

from pocket_ledger.config import (
    CONFIG_PATH,
    DEFAULT_CONFIG,
    default_categories,
    load_config,
    save_config,
)
from pocket_ledger.core.errors import PersistenceError, ValidationError
from pocket_ledger.core.models import TransactionType
from pocket_ledger.service import LedgerService
from pocket_ledger.store import JsonStore


class InvalidInput(click.ClickException):
    exit_code = 2


def handle_ledger_errors(func):
    """Turn core errors into click errors with distinct exit codes."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ValidationError as exc:
            raise InvalidInput(str(exc)) from exc
        except PersistenceError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper


def get_service(ctx: click.Context) -> LedgerService:
    obj = ctx.find_root().obj
    if obj.get("service") is None:
        obj["service"] = LedgerService(JsonStore(obj["data_file"]))
    return obj["service"]


def _period(month, year):
    now = datetime.now()
    return month or now.month, year or now.year


def _money(amount) -> str:
    return f"{amount:.2f}"


@click.group()
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to a YAML config file (default: pocketledger.yaml)'
)
@click.option(
    '--data-file', 'data_file',
    default=None,
    type=click.Path(dir_okay=False),
    help='Ledger JSON file (overrides config if provided)'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file with POCKET_LEDGER_* overrides'
)
@click.pass_context
def main(ctx, config_path, data_file, env_file):
    """
    Keep a personal ledger of income and expenses: record transactions,
    check the balance, look at monthly category totals and track a
    monthly budget.
    """
    if env_file:
        load_dotenv(env_file)

    try:
        cfg = load_config(config_path)
    except (ValueError, yaml.YAMLError) as exc:
        raise click.ClickException(f"Invalid config: {exc}") from exc
    level = getattr(logging, str(cfg.get('log_level', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    ctx.obj = {
        'config': cfg,
        'config_path': config_path,
        'data_file': data_file or cfg['data_file'],
        'service': None,
    }


@main.command('add')
@click.argument('kind', type=click.Choice(['income', 'expense'], case_sensitive=False))
@click.argument('category')
@click.argument('amount')
@click.option('-d', '--description', default='', help='Optional note')
@click.pass_context
@handle_ledger_errors
def add(ctx, kind, category, amount, description):
    """Record an income or expense of AMOUNT in CATEGORY."""
    service = get_service(ctx)
    tx = service.add_transaction(
        TransactionType[kind.upper()], category, amount, description
    )
    click.echo(f"Added {tx.kind.value.lower()} of {_money(tx.amount)} in {tx.category}.")
    click.echo(f"Balance: {_money(service.calculate_balance())}")


@main.command('balance')
@click.pass_context
@handle_ledger_errors
def balance(ctx):
    """Show the current balance and this month's budget usage."""
    service = get_service(ctx)
    click.echo(f"Balance: {_money(service.calculate_balance())}")
    status = service.get_budget_status()
    if status:
        _echo_budget_status(status)


@main.command('history')
@click.option('--limit', default=20, show_default=True, type=click.IntRange(min=1))
@click.option('--month', type=click.IntRange(1, 12), default=None)
@click.option('--year', type=int, default=None)
@click.pass_context
@handle_ledger_errors
def history(ctx, limit, month, year):
    """List transactions, newest first."""
    service = get_service(ctx)
    if month or year:
        txs = service.get_transactions_by_month(*_period(month, year))
    else:
        txs = service.get_all_transactions()

    if not txs:
        click.echo("No transactions recorded.")
        return

    for tx in txs[:limit]:
        sign = '+' if tx.kind is TransactionType.INCOME else '-'
        click.echo(
            f"{tx.timestamp:%Y-%m-%d %H:%M}  {tx.kind.value:<8} "
            f"{tx.category:<20} {sign + _money(tx.amount):>13}  {tx.description}".rstrip()
        )
    if len(txs) > limit:
        click.echo(f"... and {len(txs) - limit} more")


@main.command('stats')
@click.option('--month', type=click.IntRange(1, 12), default=None)
@click.option('--year', type=int, default=None)
@click.pass_context
@handle_ledger_errors
def stats(ctx, month, year):
    """Show per-category totals for a month (default: the current one)."""
    service = get_service(ctx)
    month, year = _period(month, year)
    click.echo(f"Period: {month:02d}/{year}")

    for kind, title in ((TransactionType.INCOME, 'Income'), (TransactionType.EXPENSE, 'Expenses')):
        totals = service.get_category_statistics(month, year, kind)
        click.echo(f"\n{title}:")
        if not totals:
            click.echo(f"  No {title.lower()} in this period")
            continue
        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        for category, total in ranked:
            click.echo(f"  {category:<25} {_money(total):>12}")
        click.echo(f"  {'Total':<25} {_money(sum(totals.values())):>12}")
        if kind is TransactionType.EXPENSE:
            top_category, top_total = ranked[0]
            click.echo(f"\nLargest expense category: {top_category} ({_money(top_total)})")

    click.echo(f"\nBalance: {_money(service.calculate_balance())}")


@main.group('budget')
def budget():
    """Set or inspect the monthly budget."""


@budget.command('set')
@click.argument('amount')
@click.option('--month', type=int, default=None)
@click.option('--year', type=int, default=None)
@click.pass_context
@handle_ledger_errors
def budget_set(ctx, amount, month, year):
    """Set the monthly spending limit to AMOUNT."""
    month, year = _period(month, year)
    result = get_service(ctx).set_budget(amount, month, year)
    click.echo(f"Budget for {result.month:02d}/{result.year} set to {_money(result.monthly_limit)}.")


@budget.command('show')
@click.pass_context
@handle_ledger_errors
def budget_show(ctx):
    """Show the current budget and how much of it is used."""
    service = get_service(ctx)
    current = service.get_current_budget()
    if current is None:
        click.echo("No budget set.")
        return
    status = service.get_budget_status(current.month, current.year)
    if status is None:
        click.echo(f"Budget for {current.month:02d}/{current.year}: {_money(current.monthly_limit)}")
        return
    _echo_budget_status(status)


def _echo_budget_status(status):
    b = status.budget
    click.echo(f"Budget for {b.month:02d}/{b.year}: {_money(b.monthly_limit)}")
    click.echo(f"Spent: {_money(status.spent)} ({status.percent_used:.1f}%)")
    click.echo(f"Remaining: {_money(status.remaining)}")
    if status.exceeded:
        click.echo("Budget exceeded!")
    elif status.low:
        click.echo("Less than 20% of the budget left.")


@main.group('categories')
def categories():
    """List or add categories."""


@categories.command('list')
@click.option(
    '--kind', default='expense', show_default=True,
    type=click.Choice(['income', 'expense'], case_sensitive=False),
)
@click.pass_context
@handle_ledger_errors
def categories_list(ctx, kind):
    """Show built-in categories followed by custom ones."""
    cfg = ctx.find_root().obj['config']
    builtin = default_categories(cfg, kind.lower())
    for name in builtin:
        click.echo(name)
    custom = [c for c in get_service(ctx).get_custom_categories() if c not in builtin]
    if custom:
        click.echo("Custom:")
        for name in custom:
            click.echo(f"  {name}")


@categories.command('add')
@click.argument('label')
@click.pass_context
@handle_ledger_errors
def categories_add(ctx, label):
    """Add a custom category LABEL."""
    get_service(ctx).add_custom_category(label.strip())
    click.echo(f"Category '{label.strip()}' added.")


@main.command('init-config')
@click.option('--force', is_flag=True, default=False, help='Overwrite an existing file')
@click.pass_context
def init_config(ctx, force):
    """Write the default config to the --config path."""
    target = Path(ctx.find_root().obj['config_path'] or CONFIG_PATH)
    if target.exists() and not force:
        raise click.ClickException(f"{target} already exists (use --force to overwrite)")
    save_config(DEFAULT_CONFIG, target)
    click.echo(f"Wrote default config to {target}")


if __name__ == '__main__':
    main()
