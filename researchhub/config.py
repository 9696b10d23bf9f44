import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEV_ENV_NAMES = {'development', 'dev', 'local', 'test'}


def safe_int_env(name, default=0, minimum=1, maximum=100000):
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except Exception:
        value = int(default)
    return min(max(value, minimum), maximum)


def safe_float_env(name, default=0.0):
    raw = os.getenv(name, str(default)).strip()
    try:
        value = float(raw)
    except Exception:
        return default
    return min(max(value, 0.0), 1.0)


def resolve_runtime_env():
    return (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()


@dataclass(frozen=True)
class AppConfig:
    """Central config object, read once from the environment."""

    flask_secret_key: str = ''
    firebase_credentials: str = ''
    firebase_credentials_path: str = 'firebase-credentials.json'
    firebase_project_id: str = ''
    client_url: str = ''
    log_level: str = 'INFO'
    runtime_env: str = 'development'
    sentry_dsn: str = ''
    sentry_environment: str = 'production'
    sentry_release: str = 'researchhub'
    sentry_traces_sample_rate: float = 0.0
    session_list_limit: int = 200
    export_max_rows: int = 10000

    @property
    def is_dev_like(self):
        return self.runtime_env in DEV_ENV_NAMES

    @property
    def has_firebase_credentials(self):
        return bool(self.firebase_credentials.strip()) or os.path.exists(self.firebase_credentials_path)


def load_config() -> AppConfig:
    config = AppConfig(
        flask_secret_key=os.getenv('FLASK_SECRET_KEY', ''),
        firebase_credentials=(os.getenv('FIREBASE_CREDENTIALS', '') or '').strip(),
        firebase_credentials_path=(os.getenv('FIREBASE_CREDENTIALS_PATH', 'firebase-credentials.json') or 'firebase-credentials.json').strip(),
        firebase_project_id=(os.getenv('FIREBASE_PROJECT_ID', '') or '').strip(),
        client_url=(os.getenv('CLIENT_URL', '') or '').strip(),
        log_level=(os.getenv('LOG_LEVEL', 'INFO') or 'INFO').strip().upper(),
        runtime_env=resolve_runtime_env(),
        sentry_dsn=(os.getenv('SENTRY_DSN_BACKEND', '') or '').strip(),
        sentry_environment=(os.getenv('SENTRY_ENVIRONMENT', os.getenv('FLASK_ENV', 'production')) or 'production').strip(),
        sentry_release=(os.getenv('SENTRY_RELEASE', 'researchhub') or 'researchhub').strip(),
        sentry_traces_sample_rate=safe_float_env('SENTRY_TRACES_SAMPLE_RATE', 0.0),
        session_list_limit=safe_int_env('SESSION_LIST_LIMIT', 200, minimum=1, maximum=1000),
        export_max_rows=safe_int_env('EXPORT_MAX_ROWS', 10000, minimum=100, maximum=50000),
    )
    if not config.is_dev_like:
        if not config.flask_secret_key.strip():
            raise RuntimeError('FLASK_SECRET_KEY must be set in non-development environments.')
        if not config.has_firebase_credentials:
            raise RuntimeError('FIREBASE_CREDENTIALS must be set in non-development environments.')
    return config
