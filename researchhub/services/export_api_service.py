"""CSV export handlers."""

import json

from researchhub.errors import ApiError, AuthorizationError, InternalError, ValidationError
from researchhub.repositories import credits_repo, payments_repo, sessions_repo
from researchhub.services import study_api_service

EXPORT_TYPES = {'sessions', 'payment-requests', 'transactions'}
ADMIN_ONLY_EXPORTS = {'payment-requests', 'transactions'}


def _session_rows(docs):
    yield [
        'session_id', 'user_id', 'study_id', 'status', 'current_step',
        'start_time', 'end_time', 'response_count', 'responses', 'feedback',
    ]
    for doc in docs:
        session = doc.to_dict() or {}
        responses = session.get('responses') or {}
        yield [
            session.get('session_id', doc.id),
            session.get('user_id', ''),
            session.get('study_id', ''),
            session.get('status', ''),
            session.get('current_step', 0),
            session.get('start_time', ''),
            session.get('end_time') or '',
            len(responses),
            json.dumps(responses, ensure_ascii=True, default=str),
            session.get('feedback') or '',
        ]


def _payment_request_rows(docs):
    yield [
        'id', 'user_id', 'email', 'plan_type', 'amount', 'payment_method',
        'status', 'created_at', 'processed_at', 'processed_by',
    ]
    for doc in docs:
        entry = doc.to_dict() or {}
        yield [
            doc.id,
            entry.get('user_id', ''),
            entry.get('email', ''),
            entry.get('plan_type', ''),
            entry.get('amount', 0),
            entry.get('payment_method', ''),
            entry.get('status', ''),
            entry.get('created_at', ''),
            entry.get('processed_at') or '',
            entry.get('processed_by') or '',
        ]


def _transaction_rows(docs):
    yield ['id', 'user_id', 'type', 'amount', 'plan_type', 'description', 'created_by', 'created_at']
    for doc in docs:
        entry = doc.to_dict() or {}
        yield [
            doc.id,
            entry.get('user_id', ''),
            entry.get('type', ''),
            entry.get('amount', 0),
            entry.get('plan_type', ''),
            entry.get('description', ''),
            entry.get('created_by', ''),
            entry.get('created_at', ''),
        ]


def export_csv(app_ctx, request, export_type):
    actor = app_ctx.resolve_actor(request)
    if export_type not in EXPORT_TYPES:
        raise ValidationError('Invalid export type')
    if export_type in ADMIN_ONLY_EXPORTS and not actor.is_admin:
        raise AuthorizationError('Access denied. Admin role required.')

    max_rows = app_ctx.config.export_max_rows if app_ctx.config is not None else 10000
    study_id = ''
    if export_type == 'sessions':
        study_id = str(request.args.get('studyId', '') or '').strip()
        if not study_id:
            raise ValidationError('studyId is required for session exports')
        study_api_service.require_study_access(app_ctx, study_id, actor)

    try:
        db = app_ctx.require_db()
        if export_type == 'sessions':
            rows = _session_rows(sessions_repo.list_by_study(db, study_id, max_rows))
            filename = f"study-{study_id}-sessions.csv"
        elif export_type == 'payment-requests':
            rows = _payment_request_rows(payments_repo.list_requests(db, limit=max_rows))
            filename = 'payment-requests.csv'
        else:
            rows = _transaction_rows(credits_repo.list_transactions(db, limit=max_rows))
            filename = 'transactions.csv'
        return app_ctx.csv_download(rows, filename)
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error exporting CSV ({export_type}): {e}")
        raise InternalError('Could not export CSV')
