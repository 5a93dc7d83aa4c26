"""
SQLAlchemy-backed persistence for batches, order contributions and prep items.

Store methods only flush; the caller decides the transaction boundary with
``BatchStore.transaction()`` so multi-step operations commit or roll back as
a whole.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from ...extensions import db
from ...models import BatchOrder, BatchPrepItem, ProductionBatch
from .errors import BatchConflictError
from .prep_items import QUANTITY_PRECISION
from .types import AggregatedPrepItem, PrepListEntry, PrepRequirement

logger = logging.getLogger(__name__)

UPDATABLE_BATCH_FIELDS = frozenset({'quantity', 'priority', 'assigned_to', 'notes', 'stage'})


class BatchStore:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    @contextmanager
    def transaction(self):
        """Commit when the block finishes; roll back on any error.

        One store serves every request thread; each block commits the session
        bound to the current app context.
        """
        try:
            yield self
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            logger.warning("Concurrent batch modification detected: %s", exc)
            raise BatchConflictError("Batch was modified concurrently; reload and retry") from exc
        except Exception:
            self.session.rollback()
            raise

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------
    def find_by_id(self, store_id: int, batch_id: int, *, for_update: bool = False) -> Optional[ProductionBatch]:
        query = ProductionBatch.for_store(store_id).filter_by(id=batch_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def _ordered_for_date(self, store_id: int, production_date: date):
        return (
            ProductionBatch.for_store(store_id)
            .filter(ProductionBatch.production_date == production_date)
            .order_by(
                ProductionBatch.priority.desc(),
                ProductionBatch.created_at.asc(),
                ProductionBatch.id.asc(),
            )
        )

    def find_by_date(self, store_id: int, production_date: date) -> List[ProductionBatch]:
        return self._ordered_for_date(store_id, production_date).all()

    def get_timeline(self, store_id: int, production_date: date) -> List[ProductionBatch]:
        return (
            self._ordered_for_date(store_id, production_date)
            .options(selectinload(ProductionBatch.prep_items))
            .all()
        )

    def create(self, store_id: int, **fields) -> ProductionBatch:
        batch = ProductionBatch(store_id=store_id, **fields)
        self.session.add(batch)
        self.session.flush()
        return batch

    def update(self, batch: ProductionBatch, **changes) -> ProductionBatch:
        unknown = set(changes) - UPDATABLE_BATCH_FIELDS
        if unknown:
            raise ValueError(f"Cannot update batch fields: {sorted(unknown)}")
        for key, value in changes.items():
            setattr(batch, key, value)
        self.session.flush()
        return batch

    def delete(self, batch: ProductionBatch) -> None:
        self.session.delete(batch)
        self.session.flush()

    # ------------------------------------------------------------------
    # Order contributions
    # ------------------------------------------------------------------
    def create_order_contribution(
        self,
        batch: ProductionBatch,
        *,
        order_id: int,
        order_item_index: int,
        quantity_from_order: int,
    ) -> BatchOrder:
        contribution = BatchOrder(
            store_id=batch.store_id,
            order_id=order_id,
            order_item_index=order_item_index,
            quantity_from_order=quantity_from_order,
        )
        batch.order_sources.append(contribution)
        self.session.flush()
        return contribution

    def get_order_contributions_by_batch(self, store_id: int, batch_id: int) -> List[BatchOrder]:
        return (
            BatchOrder.for_store(store_id)
            .filter_by(batch_id=batch_id)
            .order_by(BatchOrder.id.asc())
            .all()
        )

    # ------------------------------------------------------------------
    # Prep items
    # ------------------------------------------------------------------
    def create_prep_item(self, batch: ProductionBatch, requirement: PrepRequirement) -> BatchPrepItem:
        item = BatchPrepItem(
            store_id=batch.store_id,
            ingredient_id=requirement.ingredient_id,
            ingredient_name=requirement.ingredient_name,
            required_quantity=requirement.required_quantity,
            unit=requirement.unit,
            is_prepped=False,
        )
        batch.prep_items.append(item)
        self.session.flush()
        return item

    def replace_prep_items(self, batch: ProductionBatch, requirements: Iterable[PrepRequirement]) -> List[BatchPrepItem]:
        if batch.prep_items:
            batch.prep_items.clear()
            # Deletes must reach the database before the re-inserts hit the
            # (batch_id, ingredient_id) unique constraint.
            self.session.flush()
        return [self.create_prep_item(batch, requirement) for requirement in requirements]

    def get_prep_item_by_id(self, store_id: int, prep_item_id: int) -> Optional[BatchPrepItem]:
        return BatchPrepItem.get_scoped(store_id, prep_item_id)

    def toggle_prep_item(self, item: BatchPrepItem, is_prepped: bool) -> BatchPrepItem:
        item.is_prepped = bool(is_prepped)
        self.session.flush()
        return item

    def get_aggregated_prep_list(self, store_id: int, production_date: date) -> List[AggregatedPrepItem]:
        rows = (
            self.session.query(BatchPrepItem, ProductionBatch.recipe_name)
            .join(ProductionBatch, ProductionBatch.id == BatchPrepItem.batch_id)
            .filter(
                BatchPrepItem.store_id == store_id,
                ProductionBatch.store_id == store_id,
                ProductionBatch.production_date == production_date,
            )
            .order_by(
                BatchPrepItem.ingredient_name.asc(),
                BatchPrepItem.ingredient_id.asc(),
                BatchPrepItem.unit.asc(),
                BatchPrepItem.batch_id.asc(),
            )
            .all()
        )

        grouped: Dict[Tuple[str, str], AggregatedPrepItem] = {}
        for item, recipe_name in rows:
            key = (item.ingredient_id, item.unit)
            group = grouped.get(key)
            if group is None:
                group = AggregatedPrepItem(
                    ingredient_id=item.ingredient_id,
                    ingredient_name=item.ingredient_name,
                    unit=item.unit,
                )
                grouped[key] = group
            group.total_required = round(group.total_required + item.required_quantity, QUANTITY_PRECISION)
            group.total_count += 1
            if item.is_prepped:
                group.prepped_count += 1
            group.items.append(
                PrepListEntry(
                    prep_item_id=item.id,
                    batch_id=item.batch_id,
                    recipe_name=recipe_name or '',
                    required_quantity=item.required_quantity,
                    is_prepped=item.is_prepped,
                )
            )
        return list(grouped.values())
