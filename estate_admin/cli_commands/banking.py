"""
Banking overview: accounts with their running balances and this month's movements.
"""

import click
from rich.table import Table

from estate_admin.cli_commands.common import (
    console,
    fail,
    format_value,
    get_app_settings,
    get_registry,
    summary_table,
)
from estate_admin.domain.summaries import account_balances, banking_summary


@click.group()
def banking():
    """Bank accounts and transactions."""
    pass


@banking.command("accounts")
@click.option(
    "--all-transactions",
    "load_all",
    is_flag=True,
    help="Load every transaction so balances and monthly totals cover all",
)
@click.pass_context
def list_accounts(ctx, load_all: bool):
    """List accounts with balances over the loaded transactions."""
    registry = get_registry(ctx)
    accounts = registry["bank-accounts"]
    transactions = registry["bank-transactions"]

    if accounts.fetch_all() is None:
        fail(accounts.error or "Failed to fetch accounts")
    result = (
        transactions.fetch_all()
        if load_all
        else transactions.fetch(per_page=get_app_settings(ctx).default_per_page)
    )
    if result is None:
        fail(transactions.error or "Failed to fetch transactions")

    balances = account_balances(accounts.records, transactions.records)

    table = Table(title="Bank accounts")
    table.add_column("id", style="cyan")
    table.add_column("account_name")
    table.add_column("bank_name")
    table.add_column("opening_balance", justify="right")
    table.add_column("balance", justify="right")
    for account in accounts.records:
        table.add_row(
            account.id,
            account.account_name,
            account.bank_name,
            format_value(account.opening_balance),
            format_value(balances[account.id]),
        )

    console.print(table)
    console.print(summary_table(banking_summary(accounts.state, transactions.state)))
