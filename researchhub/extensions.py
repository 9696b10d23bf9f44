import json

import firebase_admin
import sentry_sdk
from firebase_admin import credentials, firestore
from flask_socketio import SocketIO
from sentry_sdk.integrations.flask import FlaskIntegration

from researchhub import runtime
from researchhub.services import realtime_service


def load_firebase_credentials(config):
    if config.firebase_credentials:
        return credentials.Certificate(json.loads(config.firebase_credentials))
    return credentials.Certificate(config.firebase_credentials_path)


def init_firebase(config):
    """Initialise the Firebase app and Firestore client, once per process."""
    if runtime.db is not None:
        return runtime.db
    if not config.has_firebase_credentials:
        runtime.firebase_init_error = 'FIREBASE_CREDENTIALS is not set and no credentials file was found.'
        runtime.logger.info(f"⚠️ Firebase initialization skipped: {runtime.firebase_init_error}")
        return None
    try:
        if not firebase_admin._apps:
            options = {'projectId': config.firebase_project_id} if config.firebase_project_id else None
            firebase_admin.initialize_app(load_firebase_credentials(config), options)
        runtime.db = firestore.client()
        runtime.firebase_init_error = ''
    except Exception as e:
        runtime.firebase_init_error = str(e)
        runtime.logger.info(f"⚠️ Firebase initialization skipped: {runtime.firebase_init_error}")
    return runtime.db


def init_sentry(config):
    if not config.sentry_dsn:
        runtime.sentry_enabled = False
        return
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=config.sentry_traces_sample_rate,
        send_default_pii=False,
        environment=config.sentry_environment,
        release=config.sentry_release,
    )
    runtime.sentry_enabled = True


def init_socketio(app, config):
    socketio = SocketIO(app, async_mode='threading', cors_allowed_origins=config.client_url or '*')
    realtime_service.register_realtime_handlers(socketio, runtime)
    runtime.socketio = socketio
    return socketio


def init_extensions(app, config) -> None:
    runtime.config = config
    init_sentry(config)
    init_firebase(config)
    init_socketio(app, config)
    app.extensions.setdefault('researchhub', {})
    app.extensions['researchhub']['firebase_ready'] = runtime.db is not None
