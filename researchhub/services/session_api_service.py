"""Business logic handlers for study-session progression.

A session walks one participant through a study's ordered blocks:
``start`` creates it in ``in_progress`` at step 0, ``progress`` moves the
step and merges answers, ``complete`` closes it. The only transition is
``in_progress -> completed``. Every write re-checks ownership and status
inside the same Firestore transaction as the update.
"""

import logging

from researchhub.errors import (
    ApiError,
    AuthorizationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from researchhub.repositories import sessions_repo

STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
MAX_FEEDBACK_CHARS = 5000
MAX_DEVICE_INFO_KEYS = 50


def parse_step(value):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError('currentStep must be a non-negative integer')
    return value


def parse_response_map(value, field_name):
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f'{field_name} must be an object')
    return {str(key): answer for key, answer in value.items()}


def sanitize_device_info(value):
    if not isinstance(value, dict):
        return {}
    cleaned = {}
    for key, item in list(value.items())[:MAX_DEVICE_INFO_KEYS]:
        cleaned[str(key)[:80]] = item
    return cleaned


def merge_responses(existing, incoming):
    """Merge answers keyed by step id; new keys append in completion order."""
    merged = dict(existing) if isinstance(existing, dict) else {}
    merged.update(incoming)
    return merged


def build_session_record(session_id, user_id, study_id, session_data, now_iso, request=None):
    device_info = sanitize_device_info(session_data.get('deviceInfo'))
    if request is not None:
        device_info.setdefault('user_agent', request.headers.get('User-Agent', ''))
    return {
        'session_id': session_id,
        'user_id': user_id,
        'study_id': study_id,
        'status': STATUS_IN_PROGRESS,
        'start_time': str(session_data.get('startTime') or now_iso),
        'end_time': None,
        'current_step': 0,
        'responses': {},
        'device_info': device_info,
        'feedback': None,
        'created_at': now_iso,
        'updated_at': now_iso,
    }


def summarize_session(app_ctx, session):
    responses = session.get('responses') or {}
    started = app_ctx.parse_iso(session.get('start_time'))
    ended = app_ctx.parse_iso(session.get('end_time'))
    duration_seconds = None
    if started is not None and ended is not None:
        duration_seconds = max(0, round((ended - started).total_seconds(), 1))
    return {
        'completed': session.get('status') == STATUS_COMPLETED,
        'total_responses': len(responses),
        'current_step': session.get('current_step', 0),
        'duration_seconds': duration_seconds,
    }


def _session_id_from(payload, session_id=None):
    session_id = str(session_id or payload.get('sessionId') or payload.get('session_id') or '').strip()
    if not session_id:
        raise ValidationError('Session ID is required')
    return session_id


def _json_payload(request):
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError('Invalid payload')
    return payload


def _check_claimed_user(payload, actor):
    claimed = payload.get('userId')
    if claimed is not None and str(claimed) != actor.uid:
        raise AuthorizationError('userId does not match the authenticated user')


def apply_owned_session_update(app_ctx, session_id, actor, build_updates):
    """Read, verify and update a session atomically.

    ``build_updates(session)`` returns the fields to write; it may raise to
    abort. Sessions owned by someone else look exactly like missing ones.
    """
    session_ref = sessions_repo.doc_ref(app_ctx.require_db(), session_id)

    def _txn(transaction):
        snapshot = session_ref.get(transaction=transaction)
        if not snapshot.exists:
            raise NotFoundError('Session not found')
        session = snapshot.to_dict() or {}
        if session.get('user_id') != actor.uid:
            raise NotFoundError('Session not found')
        updates = build_updates(session)
        transaction.update(session_ref, updates)
        session.update(updates)
        return session

    return app_ctx.run_in_transaction(_txn)


def start_session(app_ctx, request):
    actor = app_ctx.resolve_actor(request)
    payload = _json_payload(request)
    user_id = str(payload.get('userId') or '').strip()
    study_id = str(payload.get('studyId') or payload.get('study_id') or '').strip()
    if not user_id or not study_id:
        raise ValidationError('userId and studyId are required')
    _check_claimed_user(payload, actor)

    session_data = payload.get('sessionData')
    if not isinstance(session_data, dict):
        session_data = payload

    try:
        now_iso = app_ctx.now_iso()
        session_id = app_ctx.new_id('session')
        record = build_session_record(session_id, actor.uid, study_id, session_data, now_iso, request=request)
        sessions_repo.create_doc(app_ctx.require_db(), session_id, record)
        app_ctx.log_event(logging.INFO, 'study_session_started', session_id=session_id, uid=actor.uid, study_id=study_id)
        return app_ctx.api_success(
            record,
            message='Study session started successfully',
            status=201,
            sessionId=session_id,
        )
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error starting study session for user {actor.uid}: {e}")
        raise InternalError('Could not start study session')


def record_progress(app_ctx, request, session_id=None):
    actor = app_ctx.resolve_actor(request)
    payload = _json_payload(request)
    session_id = _session_id_from(payload, session_id)
    _check_claimed_user(payload, actor)

    current_step = payload.get('currentStep')
    if current_step is not None:
        current_step = parse_step(current_step)
    responses = parse_response_map(payload.get('responses'), 'responses')
    step_id = str(payload.get('stepId', '') or '').strip()
    if step_id:
        responses[step_id] = payload.get('response')
    time_spent = payload.get('timeSpent')
    if time_spent is not None and (isinstance(time_spent, bool) or not isinstance(time_spent, (int, float))):
        raise ValidationError('timeSpent must be a number')

    def _build_updates(session):
        if session.get('status') == STATUS_COMPLETED:
            raise ConflictError('Session already completed')
        now_iso = app_ctx.now_iso()
        updates = {
            'responses': merge_responses(session.get('responses'), responses),
            'timestamp': now_iso,
            'updated_at': now_iso,
        }
        if current_step is not None:
            updates['current_step'] = current_step
        if time_spent is not None:
            updates['time_spent'] = time_spent
        return updates

    try:
        session = apply_owned_session_update(app_ctx, session_id, actor, _build_updates)
        return app_ctx.api_success(session, message='Progress saved successfully')
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error saving progress for session {session_id}: {e}")
        raise InternalError('Could not save session progress')


def complete_session(app_ctx, request, session_id=None):
    actor = app_ctx.resolve_actor(request)
    payload = _json_payload(request)
    session_id = _session_id_from(payload, session_id)
    _check_claimed_user(payload, actor)

    final_responses = parse_response_map(payload.get('finalResponses'), 'finalResponses')
    feedback = payload.get('feedback')
    if feedback is not None:
        if not isinstance(feedback, str):
            raise ValidationError('feedback must be a string')
        feedback = feedback.strip()[:MAX_FEEDBACK_CHARS] or None

    def _build_updates(session):
        if session.get('status') == STATUS_COMPLETED:
            raise ConflictError('Session already completed')
        now_iso = app_ctx.now_iso()
        return {
            'status': STATUS_COMPLETED,
            'end_time': str(payload.get('completionTime') or now_iso),
            'responses': merge_responses(session.get('responses'), final_responses),
            'feedback': feedback,
            'updated_at': now_iso,
        }

    try:
        session = apply_owned_session_update(app_ctx, session_id, actor, _build_updates)
        app_ctx.log_event(logging.INFO, 'study_session_completed', session_id=session_id, uid=actor.uid,
                          study_id=session.get('study_id', ''))
        return app_ctx.api_success(
            session,
            message='Study completed successfully',
            results=summarize_session(app_ctx, session),
        )
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error completing session {session_id}: {e}")
        raise InternalError('Could not complete study session')


def _load_readable_session(app_ctx, session_id, actor, allow_admin):
    snapshot = sessions_repo.get_doc(app_ctx.require_db(), session_id)
    if not snapshot.exists:
        raise NotFoundError('Session not found')
    session = snapshot.to_dict() or {}
    if session.get('user_id') == actor.uid or (allow_admin and actor.is_admin):
        return session
    raise NotFoundError('Session not found')


def get_results(app_ctx, request, session_id):
    actor = app_ctx.resolve_actor(request)
    try:
        session = _load_readable_session(app_ctx, session_id, actor, allow_admin=True)
        return app_ctx.api_success({
            'session': session,
            'summary': summarize_session(app_ctx, session),
        })
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error fetching results for session {session_id}: {e}")
        raise InternalError('Could not load session results')


def get_session(app_ctx, request, session_id):
    actor = app_ctx.resolve_actor(request)
    try:
        return app_ctx.api_success(_load_readable_session(app_ctx, session_id, actor, allow_admin=False))
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error fetching session {session_id}: {e}")
        raise InternalError('Could not load study session')


def list_sessions(app_ctx, request):
    actor = app_ctx.resolve_actor(request)
    study_id = str(request.args.get('studyId', '') or '').strip()
    try:
        limit = app_ctx.config.session_list_limit if app_ctx.config is not None else 200
        docs = sessions_repo.list_by_user(app_ctx.require_db(), app_ctx.firestore, actor.uid, limit,
                                          study_id=study_id or None)
        sessions = [doc.to_dict() or {} for doc in docs]
        return app_ctx.api_success(sessions)
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error listing sessions for user {actor.uid}: {e}")
        raise InternalError('Could not load study sessions')
