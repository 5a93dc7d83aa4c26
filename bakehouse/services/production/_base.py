from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ..base_service import BaseService
from .errors import BatchNotFoundError
from .prep_items import prep_requirements_for, resolve_recipe
from .store import BatchStore
from .types import (
    ProductionEvent,
    ProductionEventNames,
    ProductionStage,
    RecipeLookup,
)


class ProductionComponent(BaseService):
    """Shared collaborators and helpers for the production services."""

    def __init__(self, store: Optional[BatchStore] = None, recipe_source=None, order_source=None, publisher=None):
        super().__init__()
        self.store = store or BatchStore()
        self.recipe_source = recipe_source
        self.order_source = order_source
        self.publisher = publisher

    def _require_batch(self, store_id: int, batch_id: int, *, for_update: bool = False):
        batch = self.store.find_by_id(store_id, batch_id, for_update=for_update)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    def _resolve_recipe(self, store_id: int, recipe_id: str) -> RecipeLookup:
        return resolve_recipe(self.recipe_source, store_id, recipe_id)

    def _attach_prep_items(self, batch, lookup: RecipeLookup):
        return self.store.replace_prep_items(batch, prep_requirements_for(batch, lookup))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    @staticmethod
    def _event(store_id: int, event_name: str, payload: dict) -> ProductionEvent:
        return ProductionEvent(
            event_name=event_name,
            payload=payload,
            timestamp=datetime.now(timezone.utc),
            store_id=store_id,
        )

    def _created_event(self, batch) -> ProductionEvent:
        return self._event(
            batch.store_id,
            ProductionEventNames.BATCH_CREATED,
            {'batchId': batch.id, 'recipeId': batch.recipe_id},
        )

    def _stage_events(self, batch, previous_stage: int, new_stage: ProductionStage, *, include_completion: bool = True) -> List[ProductionEvent]:
        events = [
            self._event(
                batch.store_id,
                ProductionEventNames.BATCH_STAGE_CHANGED,
                {'batchId': batch.id, 'previousStage': int(previous_stage), 'newStage': int(new_stage)},
            )
        ]
        if include_completion and new_stage == ProductionStage.PACKAGED:
            events.append(
                self._event(batch.store_id, ProductionEventNames.BATCH_COMPLETED, {'batchId': batch.id})
            )
        return events

    def _publish_all(self, events: Iterable[ProductionEvent]) -> None:
        """Publish after commit; a failing publisher never undoes the operation."""
        if self.publisher is None:
            return
        for event in events:
            try:
                self.publisher.publish(event)
            except Exception:
                self.logger.exception("Failed to publish %s for %s", event.event_name, event.payload)
