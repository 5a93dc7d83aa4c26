"""JSON API for the production board.

Every request is scoped to the store named by the ``X-Store-Id`` header.
"""

import logging

from flask import current_app, jsonify, request

from ...services.production import CreateBatchRequest, ProductionValidationError
from . import production_bp
from .serializers import batch_to_dict, prep_item_to_dict

logger = logging.getLogger(__name__)

STORE_HEADER = 'X-Store-Id'
MERGE_MIN_BATCHES = 2
MERGE_MAX_BATCHES = 50


def _service():
    return current_app.extensions['production_service']


def _store_id() -> int:
    raw = request.headers.get(STORE_HEADER, '').strip()
    if not raw.isdigit():
        raise ProductionValidationError(f'{STORE_HEADER} header must be a store id')
    return int(raw)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProductionValidationError('Request body must be a JSON object')
    return data


def _required_date_arg() -> str:
    value = request.args.get('date')
    if not value:
        raise ProductionValidationError('date query parameter is required (YYYY-MM-DD)')
    return value


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------

@production_bp.route('/batches', methods=['GET'])
def list_batches():
    batches = _service().get_batches_by_date(_store_id(), _required_date_arg())
    return jsonify({'success': True, 'data': [batch_to_dict(b, include_children=False) for b in batches]})


@production_bp.route('/batches/<int:batch_id>', methods=['GET'])
def get_batch(batch_id):
    batch = _service().get_batch(_store_id(), batch_id)
    return jsonify({'success': True, 'data': batch_to_dict(batch)})


@production_bp.route('/batches', methods=['POST'])
def create_batch():
    store_id = _store_id()
    data = _json_body()
    payload = CreateBatchRequest(
        recipe_id=data.get('recipe_id'),
        quantity=data.get('quantity'),
        production_date=data.get('production_date'),
        recipe_name=data.get('recipe_name'),
        priority=data.get('priority', 0),
        assigned_to=data.get('assigned_to'),
        notes=data.get('notes'),
    )
    batch = _service().create_batch(store_id, payload)
    return jsonify({'success': True, 'data': batch_to_dict(batch)}), 201


@production_bp.route('/batches/generate', methods=['POST'])
def generate_batches():
    store_id = _store_id()
    data = _json_body()
    batches = _service().generate_batches(store_id, data.get('date'))
    return jsonify({
        'success': True,
        'data': [batch_to_dict(b) for b in batches],
        'message': f'Generated {len(batches)} batches',
    }), 201


@production_bp.route('/batches/<int:batch_id>/stage', methods=['PATCH'])
def update_stage(batch_id):
    store_id = _store_id()
    data = _json_body()
    if 'stage' not in data:
        raise ProductionValidationError('stage is required')
    batch = _service().update_stage(store_id, batch_id, data['stage'])
    return jsonify({'success': True, 'data': batch_to_dict(batch)})


@production_bp.route('/batches/<int:batch_id>', methods=['PUT'])
def update_batch(batch_id):
    store_id = _store_id()
    batch = _service().update_batch(store_id, batch_id, _json_body())
    return jsonify({'success': True, 'data': batch_to_dict(batch)})


@production_bp.route('/batches/<int:batch_id>', methods=['DELETE'])
def delete_batch(batch_id):
    _service().delete_batch(_store_id(), batch_id)
    return jsonify({'success': True, 'message': f'Batch {batch_id} deleted'})


@production_bp.route('/batches/<int:batch_id>/split', methods=['POST'])
def split_batch(batch_id):
    store_id = _store_id()
    data = _json_body()
    if 'quantity' not in data:
        raise ProductionValidationError('quantity is required')
    result = _service().split_batch(store_id, batch_id, data['quantity'])
    return jsonify({
        'success': True,
        'data': {
            'original': batch_to_dict(result.original),
            'new_batch': batch_to_dict(result.new_batch),
        },
    }), 201


@production_bp.route('/batches/merge', methods=['POST'])
def merge_batches():
    store_id = _store_id()
    batch_ids = _json_body().get('batch_ids')
    if not isinstance(batch_ids, list) or not MERGE_MIN_BATCHES <= len(batch_ids) <= MERGE_MAX_BATCHES:
        raise ProductionValidationError(
            f'batch_ids must be a list of {MERGE_MIN_BATCHES} to {MERGE_MAX_BATCHES} batch ids'
        )
    merged = _service().merge_batches(store_id, batch_ids)
    return jsonify({'success': True, 'data': batch_to_dict(merged)}), 201


# ---------------------------------------------------------------------------
# Prep list and timeline
# ---------------------------------------------------------------------------

@production_bp.route('/prep-list', methods=['GET'])
def prep_list():
    groups = _service().get_prep_list(_store_id(), _required_date_arg())
    return jsonify({'success': True, 'data': [group.to_dict() for group in groups]})


@production_bp.route('/prep-list/<int:prep_item_id>', methods=['PATCH'])
def toggle_prep_item(prep_item_id):
    store_id = _store_id()
    data = _json_body()
    if 'is_prepped' not in data:
        raise ProductionValidationError('is_prepped is required')
    item = _service().toggle_prep_item(store_id, prep_item_id, data['is_prepped'])
    return jsonify({'success': True, 'data': prep_item_to_dict(item)})


@production_bp.route('/timeline', methods=['GET'])
def timeline():
    batches = _service().get_timeline(_store_id(), _required_date_arg())
    return jsonify({'success': True, 'data': [batch_to_dict(b) for b in batches]})
