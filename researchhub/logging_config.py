import json
import logging

from flask import g, has_request_context

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s'


class RequestIdFilter(logging.Filter):
    """Stamp every record with the current request id ('-' outside a request)."""

    def filter(self, record):
        request_id = '-'
        if has_request_context():
            request_id = str(getattr(g, 'request_id', '') or '-')
        record.request_id = request_id
        return True


def configure_logging(level: str = 'INFO') -> None:
    """Idempotent logging setup for app-factory flow."""
    root = logging.getLogger()
    numeric_level = getattr(logging, str(level or 'INFO').upper(), logging.INFO)
    if any(getattr(handler, '_researchhub', False) for handler in root.handlers):
        root.setLevel(numeric_level)
        return
    handler = logging.StreamHandler()
    handler._researchhub = True
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric_level)


def log_event(logger, level, event, **fields):
    payload = {'event': event}
    for key, value in fields.items():
        payload[str(key)] = value
    logger.log(level, json.dumps(payload, ensure_ascii=True, default=str))
