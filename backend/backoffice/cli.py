# Overview: Flask CLI command groups for bootstrap and financial reporting.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default settings rows.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Financial reporting:
# - python -m flask finance summary [--from 2024-01-01T00:00:00Z --to 2024-01-31T23:59:59Z] [--json]
#   Run the unified financial calculation and print it.
# - python -m flask finance set-capital 5000000
#   Update initial capital and print the recomputed cash position.
# - python -m flask finance seed-demo
#   Insert a small demo data set (one manager order, one employee order, stock).

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Setting
from .services import financial_service, record_service
from .services.financial_engine import DEFAULT_DELIVERY_FEE
from .services.formatting import format_currency, summary_lines
from .services.record_store import FinancialDataError
from .validation import ValidationError, parse_capital_value, parse_date_window


DEFAULT_SETTINGS = (
    ("initial_capital", 0, "Seed capital in the smallest currency unit"),
    ("delivery_fee", DEFAULT_DELIVERY_FEE, "Flat delivery charge deducted from every delivered order"),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and default settings (safe to run repeatedly)."""
    click.echo("START Initializing back office...")
    db.create_all()

    created = 0
    for key, value, description in DEFAULT_SETTINGS:
        if db.session.query(Setting).filter_by(key=key).first() is None:
            db.session.add(Setting(key=key, value=json.dumps(value), description=description))
            created += 1
    db.session.commit()

    click.echo(f"PASS Schema ready, {created} default setting(s) created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('finance')
def finance_group():
    """Unified financial reporting commands."""


@finance_group.command('summary')
@click.option('--from', 'start', default=None, help='Window start (ISO-8601)')
@click.option('--to', 'end', default=None, help='Window end (ISO-8601)')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw metrics object')
@with_appcontext
def finance_summary(start, end, as_json):
    """Compute and print the unified financial metrics."""
    try:
        window = parse_date_window({"from": start, "to": end})
        report = financial_service.unified_report(window=window, user_id="cli")
    except ValidationError as exc:
        raise click.BadParameter(str(exc))
    except FinancialDataError as exc:
        raise click.ClickException(f"{financial_service.FAILURE_DETAILS}: {exc}")

    if as_json:
        click.echo(json.dumps(report, ensure_ascii=False, indent=2, sort_keys=True))
        return

    click.echo(
        f"Delivered orders: {report['deliveredOrdersCount']} "
        f"(manager {report['managerOrdersCount']}, employee {report['employeeOrdersCount']})"
    )
    for line in summary_lines(report):
        click.echo(line)


@finance_group.command('set-capital')
@click.argument('amount')
@with_appcontext
def finance_set_capital(amount):
    """Update initial capital and show the recomputed cash balance."""
    try:
        value = parse_capital_value(amount)
        report = financial_service.update_capital(value)
    except ValidationError as exc:
        raise click.BadParameter(str(exc))
    except FinancialDataError as exc:
        raise click.ClickException(f"Failed to update initial capital: {exc}")

    click.echo(f"PASS Initial capital set to {format_currency(report['initialCapital'])}")
    click.echo(f"     Main cash balance: {format_currency(report['mainCashBalance'])}")


@finance_group.command('seed-demo')
@with_appcontext
def finance_seed_demo():
    """Insert demo records for trying the financial reports."""
    db.create_all()

    shirt = record_service.create_product({
        "name": "Demo Shirt",
        "cost_price": 10000,
        "base_price": 25000,
        "variants": [
            {"color": "Black", "size": "M", "quantity": 12, "cost_price": 10000, "price": 25000},
            {"color": "White", "size": "L", "quantity": 8, "price": 25000},
        ],
    })
    variant = shirt.variants[0]

    record_service.create_order({
        "status": "delivered",
        "receipt_received": True,
        "total_amount": 105000,
        "final_amount": 105000,
        "order_items": [{"variant_id": variant.id, "quantity": 2, "unit_price": 50000}],
    })
    employee_order = record_service.create_order({
        "status": "completed",
        "receipt_received": True,
        "created_by": "employee-1",
        "total_amount": 80000,
        "order_items": [{"variant_id": variant.id, "quantity": 1, "unit_price": 75000}],
    })
    record_service.create_profit_entry({
        "order_id": employee_order.id,
        "employee_id": "employee-1",
        "employee_profit": 30000,
    })
    record_service.create_expense({"amount": 15000, "category": "Rent", "expense_type": "operational"})
    record_service.create_purchase({"supplier_name": "Demo Supplier", "total_amount": 120000})

    click.echo("PASS Demo records created. Run 'python -m flask finance summary' to see the figures.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(finance_group)
