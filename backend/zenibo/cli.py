# Overview: Flask CLI command groups for bootstrap, user administration and coupons.

# backend/zenibo/cli.py
# Commands Legend (run from the backend directory):
# - flask --app wsgi system init-db
#   Create all tables (development; production uses `flask db upgrade`).
# - flask --app wsgi system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app wsgi users list
# - flask --app wsgi users create --email a@example.com --name "Taro" --password "password1" [--admin]
# - flask --app wsgi users set-plan --email a@example.com --plan basic [--status active]
# - flask --app wsgi coupons list
# - flask --app wsgi coupons create --code WELCOME50 --type percentage --value 50 [--plan basic] [--max 100]

from datetime import timedelta

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import PLANS, SUBSCRIPTION_STATUSES, User
from .services import coupon_service
from .services.auth_service import PasswordValidationError, create_user, get_user_by_email
from .time_utils import utcnow
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and administration."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<20} {'Plan':<14} {'Status':<10} {'Admin':<6} {'Active'}")
    click.echo("=" * 100)

    for user in users:
        click.echo(
            f"{user.id:<5} {user.email:<32} {user.name:<20} {user.subscription_plan:<14} "
            f"{user.subscription_status:<10} {'Yes' if user.is_admin else 'No':<6} "
            f"{'Yes' if user.is_active else 'No'}"
        )

    click.echo("=" * 100 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--admin', 'is_admin', is_flag=True, help='Grant coupon administration')
@with_appcontext
def create_user_cli(email, name, password, is_admin):
    """
    Create a user on the free plan.

    Password requirements: 8+ chars, at least one letter and one digit.
    """
    try:
        user = create_user(email, password, name, is_admin=is_admin)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        return
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}){' [admin]' if user.is_admin else ''}")


@users_group.command('set-plan')
@click.option('--email', required=True, help='Email address')
@click.option('--plan', type=click.Choice(PLANS), required=True, help='Subscription plan')
@click.option('--status', type=click.Choice(SUBSCRIPTION_STATUSES), default='active', show_default=True)
@with_appcontext
def set_plan_cli(email, plan, status):
    """Set a user's plan directly (support tooling; no coupon, no payment)."""
    user = get_user_by_email(email)
    if user is None:
        click.echo(f"FAIL User {email} not found")
        return

    now = utcnow()
    user.subscription_plan = plan
    user.subscription_status = status
    if status == "active":
        period = int(current_app.config.get("SUBSCRIPTION_PERIOD_DAYS", 30))
        user.subscription_start_date = now
        user.subscription_end_date = now + timedelta(days=period)
    db.session.commit()

    click.echo(f"PASS {user.email}: plan={plan} status={status}")


@click.group('coupons')
def coupons_group():
    """Coupon administration."""


@coupons_group.command('list')
@with_appcontext
def list_coupons_cli():
    coupons = coupon_service.list_coupons()
    if not coupons:
        click.echo("No coupons found.")
        return

    for c in coupons:
        cap = c.max_redemptions if c.max_redemptions is not None else "-"
        click.echo(
            f"{c.id:<5} {c.code:<20} {c.discount_type:<11} {c.discount_value:<8} "
            f"plan={c.plan_restriction or '-':<13} used={c.redemption_count}/{cap} "
            f"{'active' if c.is_active else 'inactive'}"
        )


@coupons_group.command('create')
@click.option('--code', required=True)
@click.option('--type', 'discount_type', type=click.Choice(['percentage', 'fixed']), required=True)
@click.option('--value', 'discount_value', type=int, required=True, help='Percent (1-100) or yen')
@click.option('--plan', 'plan_restriction', type=click.Choice(PLANS), default=None)
@click.option('--max', 'max_redemptions', type=int, default=None, help='Global redemption cap')
@click.option('--description', default=None)
@with_appcontext
def create_coupon_cli(code, discount_type, discount_value, plan_restriction, max_redemptions, description):
    try:
        coupon = coupon_service.create_coupon({
            "code": code,
            "discount_type": discount_type,
            "discount_value": discount_value,
            "plan_restriction": plan_restriction,
            "max_redemptions": max_redemptions,
            "description": description,
        })
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create coupon: {str(e)}")
        return

    click.echo(f"PASS Created coupon {coupon.code} (ID: {coupon.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(coupons_group)
