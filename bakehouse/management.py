"""
Management commands for deployment, batch planning and event delivery
"""
import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables directly (development only; use `flask db upgrade` elsewhere)"""
    try:
        from . import models  # noqa: F401

        db.create_all()
        click.echo("✅ Database tables created.")
    except Exception as e:
        click.echo(f"❌ Database initialization failed: {str(e)}")
        db.session.rollback()
        raise


@click.command('generate-batches')
@click.option('--store', 'store_id', required=True, type=int, help='Store to plan production for.')
@click.option('--date', 'production_date', required=True, help='Production date (YYYY-MM-DD).')
@with_appcontext
def generate_batches_command(store_id: int, production_date: str):
    """Create production batches from the day's open orders."""
    from .services.production import ProductionError

    service = current_app.extensions['production_service']
    try:
        batches = service.generate_batches(store_id, production_date)
    except ProductionError as e:
        raise click.ClickException(str(e)) from e

    if not batches:
        click.echo(f"ℹ️  No eligible orders for store {store_id} on {production_date}.")
        return
    for batch in batches:
        click.echo(f"✅ Batch {batch.id}: {batch.recipe_name or batch.recipe_id} x{batch.quantity}")
    click.echo(f"Generated {len(batches)} batches.")


@click.command("dispatch-events")
@click.option("--poll-interval", default=None, type=float, help="Seconds to wait between polls when idle.")
@click.option("--batch-size", default=None, type=int, help="Maximum events to process per batch.")
@click.option("--once", is_flag=True, help="Process a single batch instead of running continuously.")
@with_appcontext
def dispatch_events_command(poll_interval, batch_size, once: bool):
    """Run the dispatcher that delivers pending production events."""
    from .services.domain_event_dispatcher import DomainEventDispatcher

    dispatcher = DomainEventDispatcher(batch_size=batch_size)
    if once:
        metrics = dispatcher.dispatch_pending_events()
        click.echo(
            f"Processed {metrics['processed']} events ({metrics['succeeded']} succeeded, {metrics['failed']} failed)."
        )
        return

    interval = poll_interval or current_app.config.get("DOMAIN_EVENT_POLL_INTERVAL", 5.0)
    click.echo(
        f"Starting production event dispatcher (batch_size={dispatcher.batch_size}, poll_interval={interval}s)..."
    )
    dispatcher.run_forever(poll_interval=interval)


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(init_db_command)
    app.cli.add_command(generate_batches_command)
    app.cli.add_command(dispatch_events_command)
