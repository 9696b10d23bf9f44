"""Shared application context handed to the API services as ``app_ctx``.

Holds the Firebase handles and the cross-cutting helpers (auth, envelopes,
transactions, request hooks) so services stay free of globals and tests can
monkeypatch a single module.
"""

import csv
import logging
import time
import uuid
from datetime import datetime, timezone

import sentry_sdk
from firebase_admin import auth, firestore
from flask import Response, current_app, g, jsonify, request, stream_with_context
from werkzeug.exceptions import HTTPException

from researchhub.errors import ApiError, AuthenticationError, AuthorizationError
from researchhub.logging_config import log_event as _log_event
from researchhub.services import auth_service

logger = logging.getLogger('researchhub')

config = None
db = None
firebase_init_error = ''
sentry_enabled = False
socketio = None

CORS_ALLOWED_HEADERS = 'Authorization, Content-Type, X-Request-ID'
CORS_ALLOWED_METHODS = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'


def log_event(level, event, **fields):
    _log_event(logger, level, event, **fields)


def now_iso():
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value):
    raw = str(value or '').strip()
    if not raw:
        return None
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def new_id(prefix):
    return f"{prefix}_{uuid.uuid4().hex}"


# =============================================
# AUTH
# =============================================

def verify_firebase_token(request):
    return auth_service.verify_firebase_token(request, auth_module=auth, logger=logger)


def resolve_actor(request):
    """Authenticate the request and resolve the caller's role once per request."""
    cached = getattr(g, 'actor', None)
    if cached is not None:
        return cached
    decoded_token = verify_firebase_token(request)
    if not decoded_token:
        raise AuthenticationError('Authentication required')
    actor = auth_service.build_actor(decoded_token, db=db, logger=logger)
    if actor is None:
        raise AuthenticationError('Invalid token')
    g.actor = actor
    return actor


def require_admin(request):
    actor = resolve_actor(request)
    if not actor.is_admin:
        raise AuthorizationError('Access denied. Admin role required.')
    return actor


# =============================================
# PERSISTENCE
# =============================================

def require_db():
    if db is None:
        raise ApiError('Database is not configured', status_code=503)
    return db


def run_in_transaction(callback):
    """Run ``callback(transaction)`` inside a Firestore transaction with retries."""
    transaction = require_db().transaction()
    return firestore.transactional(callback)(transaction)


# =============================================
# RESPONSES
# =============================================

def api_success(data=None, message=None, status=200, **extra):
    body = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    body.update(extra)
    return jsonify(body), status


def csv_download(rows, filename):
    class _CsvBuffer:
        def write(self, value):
            return value

    def generate_csv():
        writer = csv.writer(_CsvBuffer())
        for row in rows:
            yield writer.writerow(row)

    response = Response(stream_with_context(generate_csv()), mimetype='text/csv')
    response.headers['Content-Disposition'] = f'attachment; filename={filename}'
    return response


# =============================================
# REQUEST HOOKS
# =============================================

def cors_origin():
    origin = str(getattr(config, 'client_url', '') or '').strip()
    return origin or '*'


def apply_cors_headers(response):
    if not request.path.startswith('/api/'):
        return response
    origin = cors_origin()
    response.headers['Access-Control-Allow-Origin'] = origin
    if origin != '*':
        response.headers['Vary'] = 'Origin'
    response.headers['Access-Control-Allow-Headers'] = CORS_ALLOWED_HEADERS
    response.headers['Access-Control-Allow-Methods'] = CORS_ALLOWED_METHODS
    return response


def handle_api_options_preflight():
    if request.method == 'OPTIONS' and request.path.startswith('/api/'):
        return apply_cors_headers(current_app.make_default_options_response())
    return None


def attach_request_context():
    request_id = str(request.headers.get('X-Request-ID', '') or '').strip()[:120] or uuid.uuid4().hex
    g.request_id = request_id
    g.request_started = time.time()
    if not sentry_enabled:
        return
    sentry_sdk.set_tag('request.id', request_id)
    sentry_sdk.set_tag('route.path', request.path)
    sentry_sdk.set_tag('route.method', request.method)
    sentry_sdk.set_tag('route.endpoint', request.endpoint or '')
    sentry_sdk.set_tag('route.auth_header_present', 'true' if request.headers.get('Authorization') else 'false')


def attach_response_context(response):
    request_id = str(getattr(g, 'request_id', '') or '').strip()
    if request_id:
        response.headers['X-Request-ID'] = request_id
    if sentry_enabled:
        sentry_sdk.set_tag('route.status_code', str(response.status_code))
    return apply_cors_headers(response)


def handle_api_error(error):
    if error.status_code >= 500:
        log_event(logging.ERROR, 'api_error', path=request.path, status=error.status_code,
                  error=error.message, request_id=getattr(g, 'request_id', ''))
    return jsonify(error.to_dict()), error.status_code


def handle_http_exception(error):
    if not request.path.startswith('/api/'):
        return error
    message = 'Method not allowed' if error.code == 405 else (error.name or 'Error')
    response = jsonify({'success': False, 'error': message})
    response.status_code = error.code or 500
    for key, value in error.get_headers():
        if key.lower() == 'allow':
            response.headers[key] = value
    return response


def handle_unexpected_error(error):
    logger.exception(f"Unhandled error on {request.method} {request.path} (request {getattr(g, 'request_id', '')}): {error}")
    if sentry_enabled:
        sentry_sdk.capture_exception(error)
    return jsonify({'success': False, 'error': 'Internal server error'}), 500


def register_request_hooks(app):
    app.before_request(handle_api_options_preflight)
    app.before_request(attach_request_context)
    app.after_request(attach_response_context)
    app.register_error_handler(ApiError, handle_api_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected_error)
