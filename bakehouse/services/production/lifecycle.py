"""
Batch lifecycle: stage transitions, splitting, merging, edits and deletion.

Every mutation locks the rows it touches (``SELECT ... FOR UPDATE`` where the
database supports it) and the version column rejects writes based on a stale
read. Recipe lookups run before the transaction opens so no lock is held
across a network call; values read before the lock are checked again once
the rows are locked.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence

from ._base import ProductionComponent
from .errors import ProductionValidationError
from .prep_items import recipe_name_for
from .types import INITIAL_STAGE, ProductionStage, SplitResult
from .validation import (
    MAX_NOTES_LENGTH,
    coerce_stage,
    optional_text,
    require_int,
    require_positive_quantity,
    validate_priority,
)

EDITABLE_FIELDS = ('quantity', 'priority', 'assigned_to', 'notes')


class BatchLifecycleService(ProductionComponent):

    def update_stage(self, store_id: int, batch_id: int, new_stage):
        stage = coerce_stage(new_stage)
        with self.store.transaction():
            batch = self._require_batch(store_id, batch_id, for_update=True)
            previous = batch.stage
            self.store.update(batch, stage=int(stage))

        self._publish_all(self._stage_events(batch, previous, stage))
        self.log_operation(
            'update_stage',
            {'batch_id': batch.id, 'from': previous, 'to': int(stage)},
            store_id=store_id,
        )
        return batch

    # ------------------------------------------------------------------
    # Split
    # ------------------------------------------------------------------
    @staticmethod
    def _validate_split(batch, split_quantity) -> int:
        quantity = require_int(split_quantity, "split_quantity")
        if quantity <= 0 or quantity >= batch.quantity:
            raise ProductionValidationError(
                f"split_quantity must be between 1 and {batch.quantity - 1} for batch {batch.id}"
            )
        return quantity

    def split_batch(self, store_id: int, batch_id: int, split_quantity) -> SplitResult:
        """Move ``split_quantity`` units of a batch into a new batch.

        The new batch keeps the original's stage, so work already done on the
        original is not lost. Order provenance stays with the original.
        """
        existing = self._require_batch(store_id, batch_id)
        self._validate_split(existing, split_quantity)
        lookup = self._resolve_recipe(store_id, existing.recipe_id)

        with self.store.transaction():
            original = self._require_batch(store_id, batch_id, for_update=True)
            quantity = self._validate_split(original, split_quantity)
            remaining = original.quantity - quantity

            self.store.update(original, quantity=remaining)
            new_batch = self.store.create(
                store_id,
                recipe_id=original.recipe_id,
                recipe_name=original.recipe_name,
                quantity=quantity,
                production_date=original.production_date,
                priority=original.priority,
                assigned_to=original.assigned_to,
                stage=int(original.stage),
                source=original.source,
                notes=original.notes,
            )
            self._attach_prep_items(new_batch, lookup)

        self.log_operation(
            'split_batch',
            {'batch_id': original.id, 'new_batch_id': new_batch.id, 'remaining': remaining, 'split': quantity},
            store_id=store_id,
        )
        return SplitResult(original=original, new_batch=new_batch)

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------
    def _load_mergeable(self, store_id: int, batch_ids: Sequence[int], *, for_update: bool = False) -> List:
        batches = [self._require_batch(store_id, batch_id, for_update=for_update) for batch_id in batch_ids]
        first = batches[0]
        for batch in batches[1:]:
            if batch.recipe_id != first.recipe_id:
                raise ProductionValidationError(
                    f"Cannot merge batch {batch.id}: recipe {batch.recipe_id!r} differs from {first.recipe_id!r}"
                )
            if batch.production_date != first.production_date:
                raise ProductionValidationError(
                    f"Cannot merge batch {batch.id}: production date {batch.production_date} "
                    f"differs from {first.production_date}"
                )
        return batches

    def merge_batches(self, store_id: int, batch_ids: Sequence[int]):
        """Combine batches of one recipe and day into a single new batch.

        The first id listed supplies the assignee, source and recipe name.
        The merged batch takes the summed quantity, the highest priority and
        the least advanced stage, and inherits every order contribution.
        """
        ids = [require_int(batch_id, "batch_ids") for batch_id in (batch_ids or [])]
        if not ids:
            raise ProductionValidationError("batch_ids must contain at least one batch id")
        if len(set(ids)) != len(ids):
            raise ProductionValidationError("batch_ids must not contain duplicates")

        preview = self._load_mergeable(store_id, ids)
        lookup = self._resolve_recipe(store_id, preview[0].recipe_id)

        events = []
        with self.store.transaction():
            batches = self._load_mergeable(store_id, ids, for_update=True)
            first = batches[0]
            lowest_stage = ProductionStage(min(int(batch.stage) for batch in batches))
            notes = '; '.join(batch.notes for batch in batches if batch.notes) or None

            merged = self.store.create(
                store_id,
                recipe_id=first.recipe_id,
                recipe_name=first.recipe_name or recipe_name_for(lookup),
                quantity=sum(batch.quantity for batch in batches),
                production_date=first.production_date,
                priority=max(batch.priority for batch in batches),
                assigned_to=first.assigned_to,
                stage=int(INITIAL_STAGE),
                source=first.source,
                notes=notes,
            )
            if lowest_stage > INITIAL_STAGE:
                self.store.update(merged, stage=int(lowest_stage))
                events.extend(
                    self._stage_events(merged, INITIAL_STAGE, lowest_stage, include_completion=False)
                )

            for batch in batches:
                for contribution in self.store.get_order_contributions_by_batch(store_id, batch.id):
                    self.store.create_order_contribution(
                        merged,
                        order_id=contribution.order_id,
                        order_item_index=contribution.order_item_index,
                        quantity_from_order=contribution.quantity_from_order,
                    )

            self._attach_prep_items(merged, lookup)

            for batch in batches:
                self.store.delete(batch)

        self._publish_all(events)
        self.log_operation(
            'merge_batches',
            {'merged_from': ids, 'batch_id': merged.id, 'quantity': merged.quantity},
            store_id=store_id,
        )
        return merged

    # ------------------------------------------------------------------
    # Edit / delete
    # ------------------------------------------------------------------
    def _clean_changes(self, changes: Mapping[str, Any]) -> dict:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ProductionValidationError(f"Cannot update batch fields: {', '.join(sorted(unknown))}")

        cleaned = {}
        if 'quantity' in changes:
            cleaned['quantity'] = require_positive_quantity(changes['quantity'])
        if 'priority' in changes:
            cleaned['priority'] = validate_priority(changes['priority'])
        if 'assigned_to' in changes:
            cleaned['assigned_to'] = optional_text(changes['assigned_to'], 'assigned_to')
        if 'notes' in changes:
            cleaned['notes'] = optional_text(changes['notes'], 'notes', MAX_NOTES_LENGTH)
        return cleaned

    def update_batch(self, store_id: int, batch_id: int, changes: Mapping[str, Any]):
        """Edit quantity, priority, assignee or notes.

        A quantity change re-derives the prep items, which resets their
        prepped flags.
        """
        cleaned = self._clean_changes(changes or {})
        existing = self._require_batch(store_id, batch_id)
        lookup = None
        if 'quantity' in cleaned:
            lookup = self._resolve_recipe(store_id, existing.recipe_id)

        with self.store.transaction():
            batch = self._require_batch(store_id, batch_id, for_update=True)
            quantity_changed = 'quantity' in cleaned and cleaned['quantity'] != batch.quantity
            if cleaned:
                self.store.update(batch, **cleaned)
            if quantity_changed:
                self._attach_prep_items(batch, lookup)

        self.log_operation('update_batch', {'batch_id': batch.id, 'changes': cleaned}, store_id=store_id)
        return batch

    def delete_batch(self, store_id: int, batch_id: int) -> None:
        with self.store.transaction():
            batch = self._require_batch(store_id, batch_id, for_update=True)
            self.store.delete(batch)
        self.log_operation('delete_batch', {'batch_id': batch_id}, store_id=store_id)
