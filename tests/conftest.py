"""
Pytest configuration and shared fixtures for the production engine tests.
"""
import os
import tempfile

import pytest

from bakehouse import create_app
from bakehouse.extensions import db
from bakehouse.services.production import BatchStore, CreateBatchRequest, ProductionService

from .fakes import (
    PRODUCTION_DAY,
    STORE_ID,
    InMemoryOrderSource,
    InMemoryRecipeSource,
    RecordingPublisher,
    croissant_recipe,
    sourdough_recipe,
)


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp()

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'SECRET_KEY': 'test-secret-key',
        'RECIPE_SERVICE_URL': None,
        'ORDER_SERVICE_URL': None,
        'DOMAIN_EVENT_WEBHOOK_URL': None,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def recipe_source():
    return InMemoryRecipeSource([sourdough_recipe(), croissant_recipe()])


@pytest.fixture
def order_source():
    return InMemoryOrderSource()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def service(app, recipe_source, order_source, publisher):
    """A production service wired to in-memory sources, inside an app context."""
    production_service = ProductionService(
        store=BatchStore(),
        recipe_source=recipe_source,
        order_source=order_source,
        publisher=publisher,
    )
    app.extensions['production_service'] = production_service
    with app.app_context():
        yield production_service


@pytest.fixture
def make_batch(service, publisher):
    """Create a manual batch and forget the events it published."""

    def _make(recipe_id='sourdough', quantity=4, store_id=STORE_ID, production_date=PRODUCTION_DAY, **fields):
        batch = service.create_batch(
            store_id,
            CreateBatchRequest(recipe_id=recipe_id, quantity=quantity, production_date=production_date, **fields),
        )
        publisher.clear()
        return batch

    return _make


@pytest.fixture
def store_headers():
    return {'X-Store-Id': str(STORE_ID), 'Content-Type': 'application/json'}
