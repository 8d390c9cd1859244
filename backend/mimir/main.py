from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from mimir import get_coordinator

main = Blueprint('main', __name__)


@main.route('/')
@main.route('/health')
def health():
    registry = get_coordinator(current_app).registry
    return jsonify({
        'status': 'ok',
        'service': 'MIMIR Quiz Socket.IO Server',
        'rooms': len(registry),
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })
