# cashflow/cli.py
import csv
import functools
import json
import logging
import os
import sys
from datetime import date
from decimal import Decimal

import click
from dotenv import load_dotenv

from cashflow.config import (
    CONFIG_PATH_ENV,
    DATA_DIR_ENV,
    data_file_path,
    default_config_path,
    load_config,
    resolve_data_dir,
    set_data_dir,
)
from cashflow.core.errors import CashflowError
from cashflow.outputs import get_output
from cashflow.projection import project_from_estimate, roll_forward
from cashflow.storage import (
    add_one_time,
    add_recurring,
    data_to_dict,
    delete_one_time,
    delete_recurring,
    edit_one_time,
    edit_recurring,
    load_data,
    prune_one_time,
    set_balance,
    set_recurring_active,
)
from cashflow.utils import format_amount, format_date, parse_amount, parse_date

logger = logging.getLogger(__name__)

ONE_TIME_MARK = "*"


def handle_errors(func):
    """Report domain and parsing errors as click errors (exit code 1)."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (CashflowError, ValueError) as exc:
            logger.debug("Command failed", exc_info=True)
            raise click.ClickException(str(exc))
    return wrapper


def _money(ctx_obj, amount):
    return format_amount(amount, ctx_obj['config'].get('currency', ''))


def _short_id(entity_id):
    return entity_id[:8]


def _echo_row(ctx_obj, row):
    mark = f" {ONE_TIME_MARK}" if row.is_one_time else ""
    click.echo(
        f"{format_date(row.date)}  {row.description + mark:<30}"
        f"{_money(ctx_obj, row.amount):>16}{_money(ctx_obj, row.balance_after):>18}"
    )


@click.group(invoke_without_command=True)
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help=f'Path to config.yaml (default: ${CONFIG_PATH_ENV} or ~/.cashflow/config.yaml)'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help=f'Optional .env file, e.g. defining {DATA_DIR_ENV}'
)
@click.pass_context
@handle_errors
def main(ctx, config_path, env_file):
    """
    Cashflow planning for recurring payments. Projects the account
    balance day by day from the latest balance snapshot, recurring
    monthly transactions and one-time transactions.
    Without a command, shows the plan for the configured number of days.
    """
    if env_file:
        load_dotenv(env_file)
    logging.basicConfig(level=os.getenv("CASHFLOW_LOG_LEVEL", "WARNING").upper())

    cfg = load_config(config_path)
    ctx.obj = {
        'config': cfg,
        'config_path': config_path,
        'data_path': data_file_path(cfg),
    }
    if ctx.invoked_subcommand is None:
        ctx.invoke(plan)


@main.command()
@click.option('--days', '-d', type=int, default=None,
              help='Number of days to project (default: default_days from config)')
@click.option('--start', 'start', default=None,
              help='First projected day, DD.MM.YYYY or YYYY-MM-DD (default: today)')
@click.option('--past', is_flag=True, default=False,
              help='Also list transactions between the balance snapshot and the start date')
@click.option('--output', 'output_format', default=None,
              type=click.Choice(['csv', 'excel']),
              help='Also write the projection with the given output module')
@click.pass_obj
@handle_errors
def plan(obj, days, start, past, output_format):
    """Show the cashflow projection for the next N days."""
    cfg = obj['config']
    days = int(cfg['default_days']) if days is None else days
    start_date = parse_date(start) if start else date.today()

    data = load_data(obj['data_path'])
    history, projection = project_from_estimate(
        start_date, days, data.balance_snapshots, data.recurring, data.one_time
    )

    click.echo(
        f"Balance on {format_date(history.anchor.date)}: "
        f"{_money(obj, history.anchor.balance)}"
    )
    if past:
        for row in history.ledger:
            _echo_row(obj, row)
    if history.anchor.date != start_date:
        click.echo(
            f"Estimated balance on {format_date(start_date)}: "
            f"{_money(obj, projection.anchor.balance)}"
        )

    if not projection.ledger:
        click.echo(f"No transactions scheduled for the next {days} days.")
    else:
        click.echo("")
        for row in projection.ledger:
            _echo_row(obj, row)
        click.echo("")
        click.echo(f"Period total: {_money(obj, projection.period_total)}")
        click.echo(
            f"Lowest balance: {_money(obj, projection.minimum.balance)} "
            f"({format_date(projection.minimum.date)})"
        )
        if any(row.is_one_time for row in projection.ledger):
            click.echo(f"{ONE_TIME_MARK} = one-time transaction")

    threshold = parse_amount(cfg['warning_threshold'])
    if projection.minimum.balance < threshold:
        click.echo(
            f"Warning: balance drops below {_money(obj, threshold)} "
            f"on {format_date(projection.minimum.date)}.",
            err=True,
        )

    if output_format:
        outputter = get_output(output_format, cfg)
        out_path = outputter.write(projection)
        click.echo(f"Written projection to {out_path}")


@main.group()
def balance():
    """Manage account balance snapshots."""


# ignore_unknown_options lets a negative amount such as -478 pass as the argument
@balance.command('set', context_settings={'ignore_unknown_options': True})
@click.argument('amount')
@click.option('--date', 'on', default=None,
              help='Date of the balance, DD.MM.YYYY or YYYY-MM-DD (default: today)')
@click.pass_obj
@handle_errors
def balance_set(obj, amount, on):
    """Record the account balance for a date."""
    value = parse_amount(amount)
    snapshot_date = parse_date(on) if on else date.today()
    snapshot, created = set_balance(obj['data_path'], value, snapshot_date)
    verb = "Set" if created else "Updated"
    click.echo(f"{verb} balance for {format_date(snapshot.date)}: {_money(obj, snapshot.balance)}")


@balance.command('show')
@click.option('--as-of', 'as_of', default=None,
              help='Estimate the balance at the start of this date (default: today)')
@click.pass_obj
@handle_errors
def balance_show(obj, as_of):
    """Show the latest balance snapshot and the estimated current balance."""
    data = load_data(obj['data_path'])
    if not data.balance_snapshots:
        click.echo("No balance snapshots found.")
        click.echo("Set your current balance first:")
        click.echo("  cashflow balance set <amount>")
        return

    target = parse_date(as_of) if as_of else date.today()
    history = roll_forward(target, data.balance_snapshots, data.recurring, data.one_time)
    click.echo(
        f"Balance on {format_date(history.anchor.date)}: {_money(obj, history.anchor.balance)}"
    )
    if history.anchor.date != target:
        click.echo(
            f"Estimated balance on {format_date(target)}: "
            f"{_money(obj, history.closing_balance)}"
        )


@main.group('recurring')
def recurring():
    """Manage recurring monthly transactions."""


main.add_command(recurring, 'rec')


@recurring.command('add')
@click.option('--description', '-d', required=True, help='Description')
@click.option('--amount', '-a', required=True,
              help='Amount (positive for income, negative for expense)')
@click.option('--day', required=True, type=int, help='Day of month (1-31)')
@click.pass_obj
@handle_errors
def recurring_add(obj, description, amount, day):
    """Add a recurring transaction."""
    txn = add_recurring(obj['data_path'], description, parse_amount(amount), day)
    click.echo("Added recurring transaction:")
    click.echo(f"  Description: {txn.description}")
    click.echo(f"  Amount: {_money(obj, txn.amount)}")
    click.echo(f"  Day of month: {txn.day_of_month}")
    click.echo(f"  ID: {txn.id}")


@recurring.command('list')
@click.pass_obj
@handle_errors
def recurring_list(obj):
    """List all recurring transactions by day of month."""
    data = load_data(obj['data_path'])
    if not data.recurring:
        click.echo("No recurring transactions found.")
        click.echo("Add one with:")
        click.echo("  cashflow recurring add -d <description> -a <amount> --day <day>")
        return

    for txn in sorted(data.recurring, key=lambda t: t.day_of_month):
        state = "active" if txn.active else "inactive"
        click.echo(
            f"{_short_id(txn.id)}  {txn.description:<30}"
            f"{_money(obj, txn.amount):>16}  day {txn.day_of_month:>2}  {state}"
        )
    click.echo(f"\nTotal: {len(data.recurring)} recurring transactions")


@recurring.command('edit')
@click.argument('identifier')
@click.option('--amount', '-a', default=None, help='New amount')
@click.option('--day', type=int, default=None, help='New day of month')
@click.option('--description', '-d', default=None, help='New description')
@click.pass_obj
@handle_errors
def recurring_edit(obj, identifier, amount, day, description):
    """Edit a recurring transaction."""
    txn = edit_recurring(
        obj['data_path'],
        identifier,
        amount=parse_amount(amount) if amount is not None else None,
        day_of_month=day,
        description=description,
    )
    click.echo(f"Updated recurring transaction {_short_id(txn.id)}: "
               f"{txn.description}, {_money(obj, txn.amount)}, day {txn.day_of_month}")


@recurring.command('enable')
@click.argument('identifier')
@click.pass_obj
@handle_errors
def recurring_enable(obj, identifier):
    """Include a recurring transaction in projections again."""
    txn = set_recurring_active(obj['data_path'], identifier, True)
    click.echo(f"Enabled recurring transaction: {txn.description}")


@recurring.command('disable')
@click.argument('identifier')
@click.pass_obj
@handle_errors
def recurring_disable(obj, identifier):
    """Keep a recurring transaction but leave it out of projections."""
    txn = set_recurring_active(obj['data_path'], identifier, False)
    click.echo(f"Disabled recurring transaction: {txn.description}")


@recurring.command('delete')
@click.argument('identifier')
@click.pass_obj
@handle_errors
def recurring_delete(obj, identifier):
    """Delete a recurring transaction permanently."""
    txn = delete_recurring(obj['data_path'], identifier)
    click.echo(f"Deleted recurring transaction: {txn.description}")


@main.group('one-time')
def one_time():
    """Manage one-time transactions."""


main.add_command(one_time, 'one')


@one_time.command('add')
@click.option('--description', '-d', required=True, help='Description')
@click.option('--amount', '-a', required=True,
              help='Amount (positive for income, negative for expense)')
@click.option('--date', 'on', required=True, help='Date, DD.MM.YYYY or YYYY-MM-DD')
@click.pass_obj
@handle_errors
def one_time_add(obj, description, amount, on):
    """Add a one-time transaction."""
    txn = add_one_time(obj['data_path'], description, parse_amount(amount), parse_date(on))
    click.echo("Added one-time transaction:")
    click.echo(f"  Description: {txn.description}")
    click.echo(f"  Amount: {_money(obj, txn.amount)}")
    click.echo(f"  Date: {format_date(txn.date)}")
    click.echo(f"  ID: {txn.id}")


@one_time.command('list')
@click.option('--upcoming', is_flag=True, default=False,
              help='Show only transactions dated today or later')
@click.pass_obj
@handle_errors
def one_time_list(obj, upcoming):
    """List one-time transactions by date."""
    data = load_data(obj['data_path'])
    txns = data.one_time
    if upcoming:
        today = date.today()
        txns = [t for t in txns if t.date >= today]

    if not txns:
        click.echo("No upcoming one-time transactions found." if upcoming
                   else "No one-time transactions found.")
        click.echo("Add one with:")
        click.echo("  cashflow one-time add -d <description> -a <amount> --date <date>")
        return

    for txn in sorted(txns, key=lambda t: t.date):
        click.echo(
            f"{_short_id(txn.id)}  {txn.description:<30}"
            f"{_money(obj, txn.amount):>16}  {format_date(txn.date)}"
        )
    click.echo(f"\nTotal: {len(txns)} one-time transactions")


@one_time.command('edit')
@click.argument('identifier')
@click.option('--amount', '-a', default=None, help='New amount')
@click.option('--date', 'on', default=None, help='New date, DD.MM.YYYY or YYYY-MM-DD')
@click.option('--description', '-d', default=None, help='New description')
@click.pass_obj
@handle_errors
def one_time_edit(obj, identifier, amount, on, description):
    """Edit a one-time transaction."""
    txn = edit_one_time(
        obj['data_path'],
        identifier,
        amount=parse_amount(amount) if amount is not None else None,
        on=parse_date(on) if on is not None else None,
        description=description,
    )
    click.echo(f"Updated one-time transaction {_short_id(txn.id)}: "
               f"{txn.description}, {_money(obj, txn.amount)}, {format_date(txn.date)}")


@one_time.command('delete')
@click.argument('identifier')
@click.pass_obj
@handle_errors
def one_time_delete(obj, identifier):
    """Delete a one-time transaction permanently."""
    txn = delete_one_time(obj['data_path'], identifier)
    click.echo(f"Deleted one-time transaction: {txn.description}")


@one_time.command('prune')
@click.option('--before', default=None,
              help='Remove transactions dated before this date (default: today)')
@click.pass_obj
@handle_errors
def one_time_prune(obj, before):
    """Remove one-time transactions that are already in the past."""
    cutoff = parse_date(before) if before else date.today()
    removed = prune_one_time(obj['data_path'], cutoff)
    click.echo(f"Removed {removed} one-time transaction(s) dated before {format_date(cutoff)}.")


@main.command()
@click.option('--format', 'fmt', default='json', type=click.Choice(['json', 'csv']),
              help='Export format')
@click.pass_obj
@handle_errors
def export(obj, fmt):
    """Print all stored transactions and balances."""
    data = load_data(obj['data_path'])
    if fmt == 'json':
        click.echo(json.dumps(data_to_dict(data), indent=2, ensure_ascii=False))
        return

    writer = csv.writer(sys.stdout)
    writer.writerow(['type', 'description', 'amount', 'date_or_day', 'active'])
    for txn in data.recurring:
        writer.writerow(['recurring', txn.description, str(txn.amount),
                         txn.day_of_month, str(txn.active).lower()])
    for txn in data.one_time:
        writer.writerow(['one-time', txn.description, str(txn.amount),
                         txn.date.isoformat(), ''])
    for snap in data.balance_snapshots:
        writer.writerow(['balance', '', str(snap.balance), snap.date.isoformat(), ''])


@main.group('config')
def config_group():
    """Show or change configuration."""


main.add_command(config_group, 'conf')


@config_group.command('show')
@click.pass_obj
@handle_errors
def config_show(obj):
    """Show the effective configuration."""
    cfg = obj['config']
    config_path = obj['config_path'] or default_config_path()
    data_dir, source = resolve_data_dir(cfg)
    click.echo("Configuration:")
    if source == 'env':
        click.echo(f"  Data directory: {data_dir} (from {DATA_DIR_ENV})")
        click.echo(f"  Config value: {cfg['data_dir']} (overridden)")
    else:
        click.echo(f"  Data directory: {data_dir}")
    click.echo(f"  Config file: {config_path}")
    click.echo(f"  Default days: {cfg['default_days']}")
    click.echo(f"  Warning threshold: {_money(obj, Decimal(str(cfg['warning_threshold'])))}")
    click.echo(f"  Output directory: {cfg['output_dir']}")


@config_group.command('set-data-dir')
@click.argument('path')
@click.pass_obj
@handle_errors
def config_set_data_dir(obj, path):
    """Store the data directory in the config file."""
    data_dir = set_data_dir(path, obj['config_path'])
    click.echo(f"Data directory set to: {data_dir}")
    click.echo(f"Configuration saved to: {obj['config_path'] or default_config_path()}")


if __name__ == '__main__':
    main()
