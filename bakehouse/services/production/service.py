from __future__ import annotations

import logging

from ..event_emitter import OutboxEventPublisher
from .aggregator import BatchAggregator
from .lifecycle import BatchLifecycleService
from .prep_list import PrepListService
from .sources import HttpOrderSource, HttpRecipeSource
from .store import BatchStore

logger = logging.getLogger(__name__)


class ProductionService(BatchAggregator, BatchLifecycleService, PrepListService):
    """Single entry point for the production batch engine.

    Generation, lifecycle and read operations share one store, one pair of
    sources and one publisher.
    """


def build_production_service(config) -> ProductionService:
    """Wire a service from app config; unset source URLs leave that source absent."""
    timeout = config.get('SOURCE_REQUEST_TIMEOUT_SECONDS', 5)

    recipe_url = config.get('RECIPE_SERVICE_URL')
    order_url = config.get('ORDER_SERVICE_URL')
    recipe_source = HttpRecipeSource(recipe_url, timeout=timeout) if recipe_url else None
    order_source = HttpOrderSource(order_url, timeout=timeout) if order_url else None

    if recipe_source is None:
        logger.warning("RECIPE_SERVICE_URL not set; batches will get empty names and no prep items")
    if order_source is None:
        logger.warning("ORDER_SERVICE_URL not set; batch generation is unavailable")

    return ProductionService(
        store=BatchStore(),
        recipe_source=recipe_source,
        order_source=order_source,
        publisher=OutboxEventPublisher(),
    )
