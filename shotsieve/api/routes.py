"""
Flask routes for the shotsieve JSON API.

The app factory stores the session's GroupingEngine (and optionally its
Database) in ``app.extensions``; every route works on that engine. Errors
are reported as ``{'error': code, 'message': text}``.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional

from flask import Blueprint, current_app, jsonify, request

from ..errors import (
    ChangesFailedError,
    EmptyBucketError,
    QuotaExceededError,
    UnauthorizedError,
)
from ..grouping.engine import GroupingEngine
from ..utils import validators

# Create blueprint for routes
api = Blueprint('api', __name__)

# Module logger
_logger = logging.getLogger(__name__)

ENGINE_KEY = 'shotsieve_engine'
DATABASE_KEY = 'shotsieve_db'


def _engine() -> GroupingEngine:
    return current_app.extensions[ENGINE_KEY]


def _database():
    return current_app.extensions.get(DATABASE_KEY)


def _error(code: str, message: str, status: int):
    return jsonify({'error': code, 'message': message}), status


def _current_snapshot() -> dict:
    """Session snapshot with the daily quota re-read for today."""
    engine = _engine()
    engine.refresh_quota()
    return engine.snapshot().to_dict()


def _session_response(**extra):
    payload = dict(extra)
    payload['session'] = _current_snapshot()
    return jsonify(payload)


# =============================================================================
# Route Handlers
# =============================================================================

@api.route('/api/ping')
def api_ping():
    """Simple endpoint for connection monitoring."""
    return jsonify({'status': 'ok', 'time': datetime.now().isoformat()})


@api.route('/api/session')
def api_session():
    """Return the current session snapshot."""
    return jsonify(_current_snapshot())


@api.route('/api/load', methods=['POST'])
def api_load():
    """
    Start a fresh session.

    With {"wait": true} the load runs in the request and the new snapshot is
    returned; otherwise it runs on a background thread.
    """
    data = request.get_json(silent=True) or {}
    engine = _engine()

    if data.get('wait'):
        snapshot = engine.load_all()
        return jsonify(snapshot.to_dict())

    if engine.is_loading:
        return jsonify({'status': 'already_loading'}), 202

    thread = threading.Thread(target=engine.load_all, name='shotsieve-load')
    thread.daemon = True
    thread.start()
    return jsonify({'status': 'started'}), 202


@api.route('/api/cancel', methods=['POST'])
def api_cancel():
    """Stop the running fetch pass, keeping what was already signed."""
    _engine().cancel()
    return jsonify({'status': 'cancel_requested'})


@api.route('/api/advance', methods=['POST'])
def api_advance():
    """Finalize the current group and move on."""
    try:
        moved = _engine().advance()
    except QuotaExceededError as e:
        return _error('quota_exceeded', str(e), 429)
    return _session_response(moved=moved)


@api.route('/api/navigate', methods=['POST'])
def api_navigate():
    """Move between discovered groups: {"direction": "previous" | "next"}."""
    data = request.get_json(silent=True) or {}
    direction = data.get('direction')
    engine = _engine()

    if direction == 'previous':
        moved = engine.navigate_previous()
    elif direction == 'next':
        moved = engine.navigate_next_discovered()
    else:
        return _error('invalid_direction', "direction must be 'previous' or 'next'", 400)
    return _session_response(moved=moved)


@api.route('/api/check', methods=['POST'])
def api_check():
    """
    Toggle the keep decision of a displayed photo: {"id": ...}.

    With {"checked": bool} the decision is set instead of toggled.
    """
    data = request.get_json(silent=True) or {}
    asset_id = data.get('id')
    if not asset_id or not isinstance(asset_id, str):
        return _error('invalid_request', 'id is required', 400)

    engine = _engine()
    if 'checked' in data:
        changed = engine.set_check(asset_id, bool(data['checked']))
    else:
        changed = engine.toggle_check(asset_id)
    return _session_response(changed=changed)


@api.route('/api/bucket')
def api_bucket():
    """Return the photos queued for deletion, by finalized group."""
    groups = _engine().bucket_groups
    return jsonify({
        'groups': [group.to_dict() for group in groups],
        'item_count': sum(len(group.items) for group in groups),
    })


@api.route('/api/bucket/delete', methods=['POST'])
def api_bucket_delete():
    """Delete every bucketed photo."""
    try:
        deleted = _engine().delete_bucket()
    except EmptyBucketError as e:
        return _error(e.code, str(e), 400)
    except UnauthorizedError as e:
        return _error(e.code, str(e), 403)
    except ChangesFailedError as e:
        _logger.error(f"Bucket deletion failed: {e}")
        return _error(e.code, str(e), 500)
    return _session_response(deleted=deleted)


@api.route('/api/settings', methods=['POST'])
def api_settings():
    """
    Change the grouping window and/or similarity preset:
    {"window_minutes": 90, "preset": "strict"}.
    """
    data = request.get_json(silent=True)
    is_valid, error = validators.validate_settings(data)
    if not is_valid:
        return _error('invalid_settings', error, 400)

    engine = _engine()
    if 'window_minutes' in data:
        engine.set_window_minutes(int(data['window_minutes']))
    if 'preset' in data:
        engine.set_preset(data['preset'])
    return _session_response(status='applied')


@api.route('/api/retention/reset', methods=['POST'])
def api_retention_reset():
    """Forget every retained photo and reload the session."""
    snapshot = _engine().reset_retention()
    return jsonify(snapshot.to_dict())


@api.route('/api/groups')
def api_groups():
    """Return the discovered groups (?include_queued=1 adds the look-ahead)."""
    include_queued = request.args.get('include_queued', '').lower() in ('1', 'true', 'yes')
    groups = _engine().all_groups(include_queued=include_queued)
    return jsonify({
        'groups': [group.to_dict() for group in groups],
        'count': len(groups),
    })


@api.route('/api/cache/stats')
def api_cache_stats():
    """Return database statistics."""
    db = _database()
    if db is None:
        return _error('no_database', 'Session has no database', 404)
    return jsonify(db.get_stats())


@api.route('/api/cache/clear', methods=['POST'])
def api_cache_clear():
    """Clear the signature cache."""
    db = _database()
    if db is None:
        return _error('no_database', 'Session has no database', 404)
    db.signatures.clear()
    return jsonify({'status': 'cleared'})


def register_engine(app, engine: GroupingEngine, db: Optional[object] = None) -> None:
    """Attach a session to an app."""
    app.extensions[ENGINE_KEY] = engine
    if db is not None:
        app.extensions[DATABASE_KEY] = db


__all__ = ['api', 'register_engine', 'ENGINE_KEY', 'DATABASE_KEY']
