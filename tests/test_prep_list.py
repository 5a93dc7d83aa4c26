"""Per-day prep list aggregation, prep toggling and batch listings."""

from datetime import timedelta

import pytest

from bakehouse.services.production import (
    PrepItemNotFoundError,
    ProductionValidationError,
)

from .fakes import OTHER_STORE_ID, PRODUCTION_DAY, STORE_ID


def test_prep_list_groups_ingredients_across_batches(service, make_batch):
    loaf = make_batch(recipe_id='sourdough', quantity=4)
    croissant = make_batch(recipe_id='croissant', quantity=20)

    groups = service.get_prep_list(STORE_ID, PRODUCTION_DAY)

    by_ingredient = {g.ingredient_id: g for g in groups}
    assert [g.ingredient_name for g in groups] == ['Bread Flour', 'Butter', 'Water']

    flour = by_ingredient['flour']
    assert flour.unit == 'kg'
    assert flour.total_required == 4.0
    assert flour.total_count == 2
    assert flour.prepped_count == 0
    assert {entry.batch_id for entry in flour.items} == {loaf.id, croissant.id}
    assert {entry.recipe_name for entry in flour.items} == {'Sourdough Loaf', 'Butter Croissant'}

    assert by_ingredient['butter'].total_required == 1.0
    assert by_ingredient['water'].total_required == 1.2


def test_every_prep_item_appears_exactly_once(service, make_batch):
    make_batch(quantity=4)
    make_batch(quantity=6)
    make_batch(recipe_id='croissant', quantity=10)

    groups = service.get_prep_list(STORE_ID, PRODUCTION_DAY)

    ids = [entry.prep_item_id for group in groups for entry in group.items]
    assert len(ids) == len(set(ids)) == 6


def test_prep_list_only_covers_requested_day_and_store(service, make_batch):
    make_batch(production_date=PRODUCTION_DAY + timedelta(days=1))
    make_batch(store_id=OTHER_STORE_ID)

    assert service.get_prep_list(STORE_ID, PRODUCTION_DAY) == []


def test_toggle_updates_counts(service, make_batch):
    batch = make_batch(quantity=4)
    flour_item = next(i for i in batch.prep_items if i.ingredient_id == 'flour')

    toggled = service.toggle_prep_item(STORE_ID, flour_item.id, True)

    assert toggled.is_prepped is True
    flour = next(g for g in service.get_prep_list(STORE_ID, PRODUCTION_DAY) if g.ingredient_id == 'flour')
    assert flour.prepped_count == 1
    assert flour.is_fully_prepped
    assert flour.to_dict()['items'][0]['is_prepped'] is True

    service.toggle_prep_item(STORE_ID, flour_item.id, False)
    flour = next(g for g in service.get_prep_list(STORE_ID, PRODUCTION_DAY) if g.ingredient_id == 'flour')
    assert flour.prepped_count == 0


def test_toggle_does_not_touch_quantity(service, make_batch):
    batch = make_batch(quantity=4)
    item = batch.prep_items[0]
    before = item.required_quantity

    service.toggle_prep_item(STORE_ID, item.id, True)

    assert item.required_quantity == before


def test_toggle_missing_or_foreign_item(service, make_batch):
    batch = make_batch()

    with pytest.raises(PrepItemNotFoundError):
        service.toggle_prep_item(STORE_ID, 98765, True)
    with pytest.raises(PrepItemNotFoundError):
        service.toggle_prep_item(OTHER_STORE_ID, batch.prep_items[0].id, True)


def test_toggle_requires_boolean(service, make_batch):
    batch = make_batch()

    with pytest.raises(ProductionValidationError):
        service.toggle_prep_item(STORE_ID, batch.prep_items[0].id, 'yes')


def test_batches_by_date_sorted_by_priority_then_age(service, make_batch):
    low = make_batch(priority=0)
    high = make_batch(priority=3)
    low_later = make_batch(priority=0)
    make_batch(production_date=PRODUCTION_DAY + timedelta(days=2))

    batches = service.get_batches_by_date(STORE_ID, PRODUCTION_DAY)

    assert [b.id for b in batches] == [high.id, low.id, low_later.id]


def test_timeline_includes_prep_items(service, make_batch):
    make_batch(quantity=2)

    timeline = service.get_timeline(STORE_ID, PRODUCTION_DAY.isoformat())

    assert len(timeline) == 1
    assert len(timeline[0].prep_items) == 2
