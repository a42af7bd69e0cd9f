"""
Flask routes for the metawatch API.
"""

import json
import queue
import logging
from dataclasses import asdict

from flask import Blueprint, Response, current_app, request, jsonify, stream_with_context

from metawatch.config import log_event
from metawatch.state import CONNECTED_CLIENTS, NOTIFICATION_QUEUE, RECENT_NOTICES
from metawatch.services.dispatcher import NOTIFY_CHANGED, NOTIFY_OPEN
from metawatch.services.fuzzy import highlight, rank_candidates
from metawatch.services.queue_processor import enqueue_notification, get_result
from metawatch.services.settings_store import RULE_KINDS

# Create blueprint
api = Blueprint('api', __name__)


def _service():
    return current_app.extensions["metawatch"]


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _rule_values(data):
    # kind and index come from the URL
    return {k: v for k, v in data.items() if k not in ("kind", "index")}


def _rules_payload(settings):
    return {
        "header": [asdict(r) for r in settings.header_rules],
        "action": [asdict(r) for r in settings.action_rules],
    }


@api.errorhandler(ValueError)
def bad_request(e):
    return jsonify({"error": str(e)}), 400


@api.errorhandler(IndexError)
def not_found(e):
    return jsonify({"error": str(e)}), 404


@api.route('/health')
def health():
    """Health check endpoint."""
    service = _service()
    settings = service.settings.get()
    return jsonify({
        "status": "ok",
        "vault": str(service.store.root),
        "header_rules": len(settings.header_rules),
        "action_rules": len(settings.action_rules),
        "actions": len(service.registry),
        "queue_size": NOTIFICATION_QUEUE.qsize(),
    })


# --- RULES ---

@api.route('/api/rules')
def get_rules():
    """List both rule sequences in configuration order."""
    return jsonify(_rules_payload(_service().settings.get()))


@api.route('/api/rules/<kind>', methods=['POST'])
def add_rule(kind):
    """Append a rule of the given kind."""
    data = _json_body()
    settings = _service().settings
    rule = settings.add_rule(kind, **_rule_values(data))
    index = len(getattr(settings.get(), RULE_KINDS[kind][0])) - 1
    return jsonify({"rule": asdict(rule), "index": index}), 201


@api.route('/api/rules/<kind>/<int:index>', methods=['PATCH'])
def update_rule(kind, index):
    """Update fields of one rule; `{"toggle": true}` flips its active flag."""
    data = _json_body()
    settings = _service().settings
    if data.pop("toggle", False):
        rule = settings.toggle_rule(kind, index)
    else:
        rule = settings.update_rule(kind, index, **_rule_values(data))
    return jsonify({"rule": asdict(rule), "index": index})


@api.route('/api/rules/<kind>/<int:index>', methods=['DELETE'])
def remove_rule(kind, index):
    """Remove one rule."""
    rule = _service().settings.remove_rule(kind, index)
    return jsonify({"removed": asdict(rule), "index": index})


# --- ACTIONS ---

@api.route('/api/actions')
def list_actions():
    """List registered actions, ranked by the `q` query."""
    query = request.args.get("q", "")
    ranked = rank_candidates(query, _service().registry.list_actions(), key=lambda a: a.name)
    return jsonify({
        "query": query,
        "actions": [{**asdict(a), "highlighted": highlight(a.name, query)} for a in ranked],
    })


# --- NOTIFICATIONS ---

def _enqueue(kind):
    path = _json_body().get("path") or ""
    if not isinstance(path, str):
        return jsonify({"error": "path must be a string"}), 400
    path = path.strip()
    if not path:
        return jsonify({"error": "No path provided"}), 400
    _service().store.resolve(path)
    request_id = enqueue_notification(kind, path)
    log_event(logging.INFO, "api_notification", kind=kind, path=path, request_id=request_id)
    return jsonify({"status": "queued", "request_id": request_id, "kind": kind, "path": path}), 202


@api.route('/api/documents/open', methods=['POST'])
def document_open():
    """Host reports that a document became the active view."""
    return _enqueue(NOTIFY_OPEN)


@api.route('/api/documents/changed', methods=['POST'])
def document_changed():
    """Host reports that a document's metadata was re-parsed."""
    return _enqueue(NOTIFY_CHANGED)


@api.route('/api/queue/status/<request_id>', methods=['GET'])
def queue_status(request_id):
    """Check the status of a queued notification."""
    result = get_result(request_id)
    if result is None:
        return jsonify({"error": "Request not found"}), 404
    return jsonify(result)


# --- NOTICES ---

@api.route('/api/notices')
def get_notices():
    """Get recent notices."""
    return jsonify({"notices": list(RECENT_NOTICES)})


@api.route('/api/stream')
def stream():
    """SSE endpoint for transient notices."""
    client_queue = queue.Queue()
    CONNECTED_CLIENTS.append(client_queue)

    def event_stream():
        yield f"data: {json.dumps({'type': 'init', 'notices': list(RECENT_NOTICES)[-5:]}, default=str)}\n\n"
        try:
            while True:
                try:
                    data = client_queue.get(timeout=2.0)
                    yield f"data: {json.dumps(data, default=str)}\n\n"
                except queue.Empty:
                    yield f"data: {json.dumps({'type': 'heartbeat'})}\n\n"
        except GeneratorExit:
            pass
        finally:
            if client_queue in CONNECTED_CLIENTS:
                CONNECTED_CLIENTS.remove(client_queue)

    return Response(
        stream_with_context(event_stream()),
        mimetype="text/event-stream",
        headers={
            'Cache-Control': 'no-cache',
            'Connection': 'keep-alive',
            'X-Accel-Buffering': 'no'
        }
    )
