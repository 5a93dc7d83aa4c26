from ...services.production.types import ProductionStage


def _iso(value):
    return value.isoformat() if value is not None else None


def _stage_label(stage):
    try:
        return ProductionStage(stage).label
    except ValueError:
        return None


def prep_item_to_dict(item):
    return {
        'id': item.id,
        'batch_id': item.batch_id,
        'ingredient_id': item.ingredient_id,
        'ingredient_name': item.ingredient_name,
        'required_quantity': item.required_quantity,
        'unit': item.unit,
        'is_prepped': item.is_prepped,
    }


def order_contribution_to_dict(contribution):
    return {
        'order_id': contribution.order_id,
        'order_item_index': contribution.order_item_index,
        'quantity_from_order': contribution.quantity_from_order,
    }


def batch_to_dict(batch, include_children=True):
    data = {
        'id': batch.id,
        'store_id': batch.store_id,
        'recipe_id': batch.recipe_id,
        'recipe_name': batch.recipe_name,
        'quantity': batch.quantity,
        'stage': batch.stage,
        'stage_label': _stage_label(batch.stage),
        'production_date': _iso(batch.production_date),
        'priority': batch.priority,
        'assigned_to': batch.assigned_to,
        'source': batch.source,
        'notes': batch.notes,
        'version': batch.version,
        'created_at': _iso(batch.created_at),
        'updated_at': _iso(batch.updated_at),
    }
    if include_children:
        data['prep_items'] = [prep_item_to_dict(item) for item in batch.prep_items]
        data['order_sources'] = [order_contribution_to_dict(c) for c in batch.order_sources]
    return data
