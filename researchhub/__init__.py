import os

from flask import Flask, jsonify

from .config import AppConfig, load_config
from .extensions import init_extensions
from .logging_config import configure_logging


def create_app(config: AppConfig = None):
    """App factory entrypoint.

    Wires config, logging, Firebase, Sentry and the socket channel, then
    registers the request hooks and every API blueprint.
    """
    config = config or load_config()
    configure_logging(config.log_level)

    from . import runtime
    from .blueprints import ALL_BLUEPRINTS

    app = Flask(__name__)
    app.secret_key = config.flask_secret_key or os.urandom(32).hex()
    app.config['RESEARCHHUB_CONFIG'] = config

    init_extensions(app, config)
    runtime.register_request_hooks(app)
    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.route('/healthz')
    def healthz():
        return jsonify({'status': 'ok'}), 200

    return app
