"""Stage transitions, split, merge, edits and deletion of production batches."""

import threading
from datetime import timedelta

import pytest
from sqlalchemy import text

from bakehouse.extensions import db
from bakehouse.models import BatchOrder, BatchPrepItem, ProductionBatch
from bakehouse.services.production import (
    BatchConflictError,
    BatchNotFoundError,
    CreateBatchRequest,
    ProductionEventNames,
    ProductionStage,
    ProductionValidationError,
)

from .fakes import OTHER_STORE_ID, PRODUCTION_DAY, STORE_ID, order


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def test_stage_change_publishes_single_event(service, make_batch, publisher):
    batch = make_batch()

    updated = service.update_stage(STORE_ID, batch.id, ProductionStage.MIXING)

    assert updated.stage == ProductionStage.MIXING
    assert publisher.names == [ProductionEventNames.BATCH_STAGE_CHANGED]
    assert publisher.events[0].payload == {'batchId': batch.id, 'previousStage': 0, 'newStage': 1}


def test_packaging_also_publishes_completion(service, make_batch, publisher):
    batch = make_batch()

    service.update_stage(STORE_ID, batch.id, 3)

    assert publisher.names == [
        ProductionEventNames.BATCH_STAGE_CHANGED,
        ProductionEventNames.BATCH_COMPLETED,
    ]
    assert publisher.events[1].payload == {'batchId': batch.id}


def test_stage_moves_are_not_restricted_to_forward(service, make_batch, publisher):
    batch = make_batch()
    service.update_stage(STORE_ID, batch.id, ProductionStage.READY)

    updated = service.update_stage(STORE_ID, batch.id, ProductionStage.TO_PREP)

    assert updated.stage == ProductionStage.TO_PREP
    assert publisher.events[-1].payload['previousStage'] == 2


def test_unknown_stage_is_rejected(service, make_batch, publisher):
    batch = make_batch()

    with pytest.raises(ProductionValidationError):
        service.update_stage(STORE_ID, batch.id, 7)
    assert publisher.events == []


def test_stage_change_on_missing_batch(service):
    with pytest.raises(BatchNotFoundError):
        service.update_stage(STORE_ID, 9999, ProductionStage.MIXING)


# ---------------------------------------------------------------------------
# Split
# ---------------------------------------------------------------------------

def test_split_conserves_quantity(service, make_batch):
    batch = make_batch(quantity=10, priority=3, assigned_to='Sam', notes='extra crust')

    result = service.split_batch(STORE_ID, batch.id, 4)

    assert result.original.quantity == 6
    assert result.new_batch.quantity == 4
    assert result.original.quantity + result.new_batch.quantity == 10
    new = result.new_batch
    assert (new.recipe_id, new.recipe_name, new.production_date) == ('sourdough', 'Sourdough Loaf', PRODUCTION_DAY)
    assert (new.priority, new.assigned_to, new.source, new.notes) == (3, 'Sam', 'manual', 'extra crust')
    assert new.stage == ProductionStage.TO_PREP


def test_split_derives_prep_for_new_batch_only(service, make_batch):
    batch = make_batch(quantity=10)

    result = service.split_batch(STORE_ID, batch.id, 4)

    original_prep = {i.ingredient_id: i.required_quantity for i in result.original.prep_items}
    new_prep = {i.ingredient_id: i.required_quantity for i in result.new_batch.prep_items}
    assert original_prep == {'flour': 5.0, 'water': 3.0}
    assert new_prep == {'flour': 2.0, 'water': 1.2}


def test_split_copies_non_initial_stage(service, make_batch):
    batch = make_batch(quantity=10)
    service.update_stage(STORE_ID, batch.id, ProductionStage.READY)

    result = service.split_batch(STORE_ID, batch.id, 5)

    assert result.new_batch.stage == ProductionStage.READY


def test_split_keeps_order_provenance_on_original(service, order_source):
    order_source.orders = [order(7, sourdough=10)]
    batch = service.generate_batches(STORE_ID, PRODUCTION_DAY)[0]

    result = service.split_batch(STORE_ID, batch.id, 3)

    assert len(result.original.order_sources) == 1
    assert result.new_batch.order_sources == []


@pytest.mark.parametrize('split_quantity', [0, -1, 10, 11])
def test_split_quantity_bounds(service, make_batch, split_quantity):
    batch = make_batch(quantity=10)

    with pytest.raises(ProductionValidationError):
        service.split_batch(STORE_ID, batch.id, split_quantity)

    assert ProductionBatch.query.count() == 1
    assert db.session.get(ProductionBatch, batch.id).quantity == 10


def test_split_missing_batch(service):
    with pytest.raises(BatchNotFoundError):
        service.split_batch(STORE_ID, 424242, 1)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def test_merge_combines_batches(service, make_batch, order_source, publisher):
    order_source.orders = [order(1, sourdough=3)]
    auto = service.generate_batches(STORE_ID, PRODUCTION_DAY)[0]
    manual = make_batch(quantity=5, priority=4, assigned_to='Rae', notes='seeded')
    first = make_batch(quantity=2, priority=1, assigned_to='Ana', notes='')
    ids = [first.id, auto.id, manual.id]

    merged = service.merge_batches(STORE_ID, ids)

    assert merged.quantity == 10
    assert merged.priority == 4
    assert merged.stage == ProductionStage.TO_PREP
    assert merged.assigned_to == 'Ana'
    assert merged.source == 'manual'
    assert merged.notes == 'seeded'
    assert [c.provenance_key() for c in merged.order_sources] == [(1, 0, 3)]
    prep = {i.ingredient_id: i.required_quantity for i in merged.prep_items}
    assert prep == {'flour': 5.0, 'water': 3.0}
    assert ProductionBatch.query.filter(ProductionBatch.id.in_(ids)).count() == 0
    assert BatchOrder.query.count() == 1
    assert BatchPrepItem.query.filter(BatchPrepItem.batch_id.in_(ids)).count() == 0


def test_merge_takes_lowest_stage_and_reports_it(service, make_batch, publisher):
    mixing = make_batch(quantity=2)
    packaged = make_batch(quantity=3)
    service.update_stage(STORE_ID, mixing.id, ProductionStage.MIXING)
    service.update_stage(STORE_ID, packaged.id, ProductionStage.PACKAGED)
    publisher.clear()

    merged = service.merge_batches(STORE_ID, [packaged.id, mixing.id])

    assert merged.stage == ProductionStage.MIXING
    assert publisher.names == [ProductionEventNames.BATCH_STAGE_CHANGED]
    assert publisher.events[0].payload == {'batchId': merged.id, 'previousStage': 0, 'newStage': 1}


def test_merge_at_initial_stage_publishes_nothing(service, make_batch, publisher):
    a = make_batch(quantity=1)
    b = make_batch(quantity=1)

    service.merge_batches(STORE_ID, [a.id, b.id])

    assert publisher.events == []


def test_merge_of_packaged_batches_does_not_report_completion(service, make_batch, publisher):
    a = make_batch(quantity=2)
    b = make_batch(quantity=5)
    service.update_stage(STORE_ID, a.id, ProductionStage.PACKAGED)
    service.update_stage(STORE_ID, b.id, ProductionStage.PACKAGED)
    publisher.clear()

    merged = service.merge_batches(STORE_ID, [a.id, b.id])

    assert merged.stage == ProductionStage.PACKAGED
    assert publisher.names == [ProductionEventNames.BATCH_STAGE_CHANGED]
    assert publisher.events[0].payload == {'batchId': merged.id, 'previousStage': 0, 'newStage': 3}


def test_merge_rejects_mixed_recipes(service, make_batch):
    a = make_batch(recipe_id='sourdough')
    b = make_batch(recipe_id='croissant')

    with pytest.raises(ProductionValidationError):
        service.merge_batches(STORE_ID, [a.id, b.id])
    assert ProductionBatch.query.count() == 2


def test_merge_rejects_mixed_dates(service, make_batch):
    a = make_batch()
    b = make_batch(production_date=PRODUCTION_DAY + timedelta(days=1))

    with pytest.raises(ProductionValidationError):
        service.merge_batches(STORE_ID, [a.id, b.id])


@pytest.mark.parametrize('ids', [[], None])
def test_merge_requires_ids(service, ids):
    with pytest.raises(ProductionValidationError):
        service.merge_batches(STORE_ID, ids)


def test_merge_rejects_duplicate_ids(service, make_batch):
    a = make_batch()

    with pytest.raises(ProductionValidationError):
        service.merge_batches(STORE_ID, [a.id, a.id])


def test_merge_with_missing_batch(service, make_batch):
    a = make_batch()

    with pytest.raises(BatchNotFoundError) as excinfo:
        service.merge_batches(STORE_ID, [a.id, 5555])
    assert excinfo.value.batch_id == 5555
    assert db.session.get(ProductionBatch, a.id) is not None


# ---------------------------------------------------------------------------
# Edit / delete
# ---------------------------------------------------------------------------

def test_update_batch_edits_fields(service, make_batch):
    batch = make_batch(quantity=4)

    updated = service.update_batch(STORE_ID, batch.id, {'priority': 3, 'assigned_to': 'Lee', 'notes': 'rush'})

    assert (updated.priority, updated.assigned_to, updated.notes) == (3, 'Lee', 'rush')
    assert updated.quantity == 4


def test_quantity_change_replaces_prep_items(service, make_batch):
    batch = make_batch(quantity=4)
    service.toggle_prep_item(STORE_ID, batch.prep_items[0].id, True)

    updated = service.update_batch(STORE_ID, batch.id, {'quantity': 10})

    prep = {i.ingredient_id: i.required_quantity for i in updated.prep_items}
    assert prep == {'flour': 5.0, 'water': 3.0}
    assert BatchPrepItem.query.filter_by(batch_id=batch.id).count() == 2
    assert not any(i.is_prepped for i in updated.prep_items)


@pytest.mark.parametrize('changes', [
    {'quantity': 0},
    {'quantity': 100001},
    {'priority': -3},
    {'priority': 5},
    {'assigned_to': 'x' * 256},
    {'notes': 'n' * 2001},
    {'stage': 2},
    {'recipe_id': 'croissant'},
])
def test_update_batch_validation(service, make_batch, changes):
    batch = make_batch()

    with pytest.raises(ProductionValidationError):
        service.update_batch(STORE_ID, batch.id, changes)


def test_delete_batch_removes_children(service, order_source):
    order_source.orders = [order(3, sourdough=4)]
    batch = service.generate_batches(STORE_ID, PRODUCTION_DAY)[0]
    batch_id = batch.id

    service.delete_batch(STORE_ID, batch_id)

    assert db.session.get(ProductionBatch, batch_id) is None
    assert BatchOrder.query.filter_by(batch_id=batch_id).count() == 0
    assert BatchPrepItem.query.filter_by(batch_id=batch_id).count() == 0

    with pytest.raises(BatchNotFoundError):
        service.delete_batch(STORE_ID, batch_id)


# ---------------------------------------------------------------------------
# Store isolation and concurrency
# ---------------------------------------------------------------------------

def test_other_store_cannot_see_or_touch_batch(service, make_batch):
    batch = make_batch()

    with pytest.raises(BatchNotFoundError):
        service.get_batch(OTHER_STORE_ID, batch.id)
    with pytest.raises(BatchNotFoundError):
        service.update_stage(OTHER_STORE_ID, batch.id, ProductionStage.MIXING)
    with pytest.raises(BatchNotFoundError):
        service.split_batch(OTHER_STORE_ID, batch.id, 1)
    with pytest.raises(BatchNotFoundError):
        service.delete_batch(OTHER_STORE_ID, batch.id)

    assert db.session.get(ProductionBatch, batch.id).stage == ProductionStage.TO_PREP


def test_stale_write_raises_conflict(service, make_batch):
    batch = make_batch()
    assert batch.version == 1

    # Another writer bumps the version behind this session's back.
    db.session.execute(
        text('UPDATE production_batch SET version = version + 1 WHERE id = :id'),
        {'id': batch.id},
    )

    with pytest.raises(BatchConflictError):
        with service.store.transaction():
            service.store.update(batch, priority=3)


def test_transaction_commits_while_another_thread_holds_one_open(app, service):
    """Blocks opened from different request threads commit independently."""
    entered = threading.Event()
    release = threading.Event()
    errors = []

    def hold_transaction():
        try:
            with app.app_context():
                with service.store.transaction():
                    entered.set()
                    release.wait(timeout=5)
        except Exception as exc:  # surfaced through the assertion below
            errors.append(exc)
            entered.set()

    holder = threading.Thread(target=hold_transaction)
    holder.start()
    try:
        assert entered.wait(timeout=5)
        batch = service.create_batch(
            STORE_ID,
            CreateBatchRequest(recipe_id='sourdough', quantity=2, production_date=PRODUCTION_DAY),
        )
    finally:
        release.set()
        holder.join(timeout=5)

    assert errors == []
    with app.app_context():
        assert db.session.get(ProductionBatch, batch.id) is not None
        assert BatchPrepItem.query.filter_by(batch_id=batch.id).count() == 2
