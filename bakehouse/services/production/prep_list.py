"""Read side of the production board: per-day listings and the prep list."""

from __future__ import annotations

from datetime import date
from typing import List, Union

from ._base import ProductionComponent
from .errors import PrepItemNotFoundError, ProductionValidationError
from .types import AggregatedPrepItem
from .validation import parse_production_date


class PrepListService(ProductionComponent):

    def get_batch(self, store_id: int, batch_id: int):
        return self._require_batch(store_id, batch_id)

    def get_batches_by_date(self, store_id: int, production_date: Union[date, str]):
        """Batches for one day, highest priority first, then oldest first"""
        return self.store.find_by_date(store_id, parse_production_date(production_date))

    def get_timeline(self, store_id: int, production_date: Union[date, str]):
        return self.store.get_timeline(store_id, parse_production_date(production_date))

    def get_prep_list(self, store_id: int, production_date: Union[date, str]) -> List[AggregatedPrepItem]:
        """Ingredient totals across every batch scheduled for the day.

        Items are grouped by ingredient and unit; each group keeps its
        per-batch rows so the kitchen can tick them off one at a time.
        """
        return self.store.get_aggregated_prep_list(store_id, parse_production_date(production_date))

    def toggle_prep_item(self, store_id: int, prep_item_id: int, is_prepped):
        if not isinstance(is_prepped, bool):
            raise ProductionValidationError("is_prepped must be true or false")

        with self.store.transaction():
            item = self.store.get_prep_item_by_id(store_id, prep_item_id)
            if item is None:
                raise PrepItemNotFoundError(prep_item_id)
            self.store.toggle_prep_item(item, is_prepped)

        self.log_operation(
            'toggle_prep_item',
            {'prep_item_id': prep_item_id, 'is_prepped': is_prepped},
            store_id=store_id,
        )
        return item
