"""
Water supply billing and cash collection commands.

Covers the day-to-day operator flow: enter a meter reading, take a payment
against a bill, record the day's well or toilet takings and mark them as
deposited once the cash is banked.
"""

import datetime as dt
from typing import Optional

import click

from estate_admin.cli_commands.common import (
    console,
    fail,
    get_app_settings,
    get_registry,
    pagination_line,
    records_table,
    summary_table,
)
from estate_admin.core.exceptions import FormValidationError
from estate_admin.domain.forms import (
    CollectionForm,
    PaymentForm,
    ReadingForm,
    build_collection_payload,
    build_payment_payload,
    build_reading_payload,
    preview_reading,
)
from estate_admin.domain.summaries import (
    readings_summary,
    scope_of,
    toilet_summary,
    water_well_summary,
)
from estate_admin.store.registry import mark_deposited

ISO_DATE = click.DateTime(formats=["%Y-%m-%d"])

READING_COLUMNS = (
    "id",
    "customer_id",
    "reading_date",
    "meter_reading",
    "previous_reading",
    "units_consumed",
    "amount_due",
    "payment_status",
)
COLLECTION_COLUMNS = (
    "id",
    "date",
    "buckets_sold",
    "unit_price",
    "total_amount",
    "is_deposited",
    "deposit_id",
)
TOILET_COLUMNS = ("id", "date", "total_users", "amount_collected", "is_deposited", "deposit_id")


def _day(value: Optional[dt.datetime]) -> dt.date:
    return value.date() if value else dt.date.today()


def _collections_store(ctx, toilet: bool):
    return get_registry(ctx)["toilet-collections" if toilet else "water-well-collections"]


@click.group()
def water():
    """Water supply billing and collections."""
    pass


# Readings and payments


@water.command("reading-add")
@click.argument("customer_id")
@click.argument("meter_reading")
@click.option("--date", "reading_date", type=ISO_DATE, help="Reading date (default: today)")
@click.pass_context
def reading_add(ctx, customer_id: str, meter_reading: str, reading_date: Optional[dt.datetime]):
    """
    Record a meter reading for CUSTOMER_ID and bill it.

    The previous reading, units consumed and amount due are derived from the
    customer's latest reading and unit price.
    """
    registry = get_registry(ctx)
    customers = registry["water-supply-customers"]
    readings = registry["water-supply-readings"]

    customer = customers.fetch_by_id(customer_id)
    if customer is None:
        fail(customers.error or "Failed to fetch customer")
    if readings.fetch_all(filters={"customer_id": customer.id}) is None:
        fail(readings.error or "Failed to fetch readings")

    try:
        form = ReadingForm.parse(
            {
                "customer_id": customer.id,
                "reading_date": _day(reading_date),
                "meter_reading": meter_reading,
            }
        )
        payload = build_reading_payload(form, customer, readings.records)
    except FormValidationError as e:
        fail(e.message)

    preview = preview_reading(customer, readings.records, form.meter_reading)
    record = readings.create(payload)
    if record is None:
        fail(readings.error or "Failed to create reading")

    console.print(f"[green]✓[/green] Reading {record.id} recorded for {customer.name or customer.id}")
    console.print(
        f"  Previous: {preview.previous_reading}  Units: {preview.units_consumed}  "
        f"Amount due: {preview.amount_due:,.2f}"
    )


@water.command("readings")
@click.option("--customer", "customer_id", help="Only this customer's readings")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--per-page", type=int, help="Records per page (default from DEFAULT_PER_PAGE)")
@click.option("--all", "load_all", is_flag=True, help="Load every reading; summary covers all")
@click.pass_context
def list_readings(
    ctx, customer_id: Optional[str], page: int, per_page: Optional[int], load_all: bool
):
    """List meter readings with billing totals."""
    store = get_registry(ctx)["water-supply-readings"]
    filters = {"customer_id": customer_id} if customer_id else None

    if load_all:
        result = store.fetch_all(filters=filters)
    else:
        per_page = per_page or get_app_settings(ctx).default_per_page
        result = store.fetch(filters=filters, page=page, per_page=per_page)
    if result is None:
        fail(store.error or "Failed to fetch readings")

    console.print(records_table(store.records, "Water supply readings", READING_COLUMNS))
    console.print(pagination_line(store.pagination))
    console.print(summary_table(readings_summary(store.records, scope_of(store.state))))


@water.command("pay")
@click.argument("reading_id")
@click.option("--amount", required=True, help="Amount paid")
@click.option("--account", "bank_account_id", required=True, help="Receiving bank account id")
@click.option("--date", "payment_date", type=ISO_DATE, help="Payment date (default: today)")
@click.option("--receipt", "bank_receipt", help="Bank receipt number")
@click.pass_context
def pay(
    ctx,
    reading_id: str,
    amount: str,
    bank_account_id: str,
    payment_date: Optional[dt.datetime],
    bank_receipt: Optional[str],
):
    """Record a bank payment against the bill of READING_ID."""
    registry = get_registry(ctx)
    readings = registry["water-supply-readings"]
    payments = registry["water-supply-payments"]

    reading = readings.fetch_by_id(reading_id)
    if reading is None:
        fail(readings.error or "Failed to fetch reading")

    try:
        form = PaymentForm.parse(
            {
                "amount": amount,
                "payment_date": _day(payment_date),
                "bank_account_id": bank_account_id,
                "bank_receipt": bank_receipt,
            }
        )
        payload = build_payment_payload(form, reading)
    except FormValidationError as e:
        fail(e.message)

    payment = payments.create(payload)
    if payment is None:
        fail(payments.error or "Failed to create payment")

    console.print(f"[green]✓[/green] Payment {payment.id} of {payment.amount:,.2f} recorded")


# Collections and deposits


@water.command("collection-add")
@click.option("--buckets", "buckets_sold", type=int, required=True, help="Buckets sold")
@click.option("--unit-price", default="5", show_default=True, help="Price per bucket")
@click.option("--operator", "operator_id", required=True, help="Operator user id")
@click.option("--account", "bank_account_id", required=True, help="Bank account for the deposit")
@click.option("--date", "collection_date", type=ISO_DATE, help="Collection date (default: today)")
@click.option("--notes", help="Free-text notes")
@click.pass_context
def collection_add(
    ctx,
    buckets_sold: int,
    unit_price: str,
    operator_id: str,
    bank_account_id: str,
    collection_date: Optional[dt.datetime],
    notes: Optional[str],
):
    """Record a day's water well bucket sales."""
    store = get_registry(ctx)["water-well-collections"]
    try:
        form = CollectionForm.parse(
            {
                "date": _day(collection_date),
                "buckets_sold": buckets_sold,
                "unit_price": unit_price,
                "operator_id": operator_id,
                "bank_account_id": bank_account_id,
                "notes": notes,
            }
        )
    except FormValidationError as e:
        fail(e.message)

    record = store.create(build_collection_payload(form))
    if record is None:
        fail(store.error or "Failed to create collection")

    console.print(
        f"[green]✓[/green] Collection {record.id}: {record.buckets_sold} buckets, "
        f"total {record.total_amount:,.2f}"
    )


@water.command("collections")
@click.option("--toilet", is_flag=True, help="Toilet collections instead of water well")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--per-page", type=int, help="Records per page (default from DEFAULT_PER_PAGE)")
@click.option("--all", "load_all", is_flag=True, help="Load every collection; summary covers all")
@click.pass_context
def list_collections(ctx, toilet: bool, page: int, per_page: Optional[int], load_all: bool):
    """List collections with deposit totals."""
    store = _collections_store(ctx, toilet)

    if load_all:
        result = store.fetch_all()
    else:
        per_page = per_page or get_app_settings(ctx).default_per_page
        result = store.fetch(page=page, per_page=per_page)
    if result is None:
        fail(store.error or "Failed to fetch collections")

    scope = scope_of(store.state)
    if toilet:
        table = records_table(store.records, "Toilet collections", TOILET_COLUMNS)
        figures = toilet_summary(store.records, scope)
    else:
        table = records_table(store.records, "Water well collections", COLLECTION_COLUMNS)
        figures = water_well_summary(store.records, scope)

    console.print(table)
    console.print(pagination_line(store.pagination))
    console.print(summary_table(figures))


@water.command("deposit")
@click.argument("collection_id")
@click.option("--deposit-id", help="Bank deposit reference (default: generated)")
@click.option("--date", "deposit_date", type=ISO_DATE, help="Deposit date (default: today)")
@click.option("--toilet", is_flag=True, help="COLLECTION_ID is a toilet collection")
@click.pass_context
def deposit(
    ctx,
    collection_id: str,
    deposit_id: Optional[str],
    deposit_date: Optional[dt.datetime],
    toilet: bool,
):
    """Mark COLLECTION_ID as deposited at the bank."""
    store = _collections_store(ctx, toilet)

    record = mark_deposited(
        store,
        collection_id,
        deposit_id=deposit_id,
        deposit_date=deposit_date.date() if deposit_date else None,
    )
    if record is None:
        fail(store.error or "Failed to update collection")

    console.print(
        f"[green]✓[/green] Collection {record.id} deposited as {record.deposit_id} "
        f"on {record.deposit_date}"
    )
