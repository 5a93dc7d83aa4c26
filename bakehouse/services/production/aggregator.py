"""Demand to supply planning: turning a day's orders into production batches."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Union

from ._base import ProductionComponent
from .errors import SourceUnavailableError
from .prep_items import recipe_name_for
from .sources import eligible_orders
from .types import (
    INITIAL_STAGE,
    BatchSource,
    CreateBatchRequest,
    DemandGroup,
    LineContribution,
    OrderRecord,
)
from .validation import (
    MAX_NOTES_LENGTH,
    optional_text,
    parse_production_date,
    require_positive_quantity,
    require_recipe_id,
    validate_priority,
)


def group_demand(orders: Iterable[OrderRecord]) -> List[DemandGroup]:
    """Sum line items per recipe, keeping one contribution per order line.

    Groups come back in the order their recipe first appears. Lines with a
    non-positive quantity carry no demand and are skipped.
    """
    groups: Dict[str, DemandGroup] = {}
    for order in orders:
        for index, item in enumerate(order.items):
            if item.quantity <= 0:
                continue
            group = groups.setdefault(item.recipe_id, DemandGroup(recipe_id=item.recipe_id))
            group.add(LineContribution(order_id=order.id, item_index=index, quantity=item.quantity))
    return [group for group in groups.values() if group.total_quantity > 0]


class BatchAggregator(ProductionComponent):
    """Creates batches from order demand or from a manual request"""

    def generate_batches(self, store_id: int, production_date: Union[date, str]):
        """Create one auto batch per recipe demanded by the day's open orders.

        Calls are additive: running this twice for the same day creates a
        second set of batches.
        """
        target = parse_production_date(production_date)
        if self.order_source is None:
            raise SourceUnavailableError("No order source configured; cannot generate batches")

        orders = self.order_source.find_orders_by_date_range(store_id, target, target)
        open_orders = eligible_orders(orders)
        if not open_orders:
            self.logger.info("No eligible orders for store %s on %s; nothing generated", store_id, target)
            return []

        groups = group_demand(open_orders)
        lookups = {group.recipe_id: self._resolve_recipe(store_id, group.recipe_id) for group in groups}

        batches = []
        with self.store.transaction():
            for group in groups:
                lookup = lookups[group.recipe_id]
                batch = self.store.create(
                    store_id,
                    recipe_id=group.recipe_id,
                    recipe_name=recipe_name_for(lookup),
                    quantity=group.total_quantity,
                    production_date=target,
                    priority=0,
                    stage=int(INITIAL_STAGE),
                    source=BatchSource.AUTO.value,
                )
                for contribution in group.contributions:
                    self.store.create_order_contribution(
                        batch,
                        order_id=contribution.order_id,
                        order_item_index=contribution.item_index,
                        quantity_from_order=contribution.quantity,
                    )
                self._attach_prep_items(batch, lookup)
                batches.append(batch)

        self._publish_all(self._created_event(batch) for batch in batches)
        self.log_operation(
            'generate_batches',
            {'date': target.isoformat(), 'orders': len(open_orders), 'batches': [b.id for b in batches]},
            store_id=store_id,
        )
        return batches

    def create_batch(self, store_id: int, request: CreateBatchRequest):
        recipe_id = require_recipe_id(request.recipe_id)
        quantity = require_positive_quantity(request.quantity)
        production_date = parse_production_date(request.production_date)
        priority = validate_priority(request.priority if request.priority is not None else 0)
        recipe_name = optional_text(request.recipe_name, "recipe_name")
        assigned_to = optional_text(request.assigned_to, "assigned_to")
        notes = optional_text(request.notes, "notes", MAX_NOTES_LENGTH)

        lookup = self._resolve_recipe(store_id, recipe_id)
        with self.store.transaction():
            batch = self.store.create(
                store_id,
                recipe_id=recipe_id,
                recipe_name=recipe_name_for(lookup, recipe_name),
                quantity=quantity,
                production_date=production_date,
                priority=priority,
                assigned_to=assigned_to,
                stage=int(INITIAL_STAGE),
                source=BatchSource.MANUAL.value,
                notes=notes,
            )
            self._attach_prep_items(batch, lookup)

        self._publish_all([self._created_event(batch)])
        self.log_operation('create_batch', {'batch_id': batch.id, 'recipe_id': recipe_id, 'quantity': quantity}, store_id=store_id)
        return batch
