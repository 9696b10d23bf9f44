"""Business logic handlers for study collaboration APIs."""

from researchhub.errors import ApiError, InternalError, NotFoundError, ValidationError
from researchhub.repositories import collaboration_repo
from researchhub.services import study_api_service

MAX_COMMENT_CHARS = 4000
MAX_COMMENTS_PER_STUDY = 500
MAX_ACTIVITY_ENTRIES = 100


def _study_id_arg(request):
    study_id = str(request.args.get('studyId', '') or '').strip()
    if not study_id:
        raise ValidationError('studyId is required')
    return study_id


def log_activity(app_ctx, study_id, actor, action, details=None):
    try:
        collaboration_repo.add_activity(app_ctx.db, {
            'study_id': study_id,
            'user_id': actor.uid,
            'action': action,
            'details': details or {},
            'created_at': app_ctx.now_iso(),
        })
    except Exception as e:
        app_ctx.logger.warning(f"Warning: failed logging collaboration activity {action} for {study_id}: {e}")


def list_comments(app_ctx, request):
    actor = app_ctx.resolve_actor(request)
    study_id = _study_id_arg(request)
    study_api_service.require_study_access(app_ctx, study_id, actor)
    try:
        comments = []
        for doc in collaboration_repo.list_comments_by_study(app_ctx.db, study_id, MAX_COMMENTS_PER_STUDY):
            comment = doc.to_dict() or {}
            comment['id'] = doc.id
            comments.append(comment)
        comments.sort(key=lambda c: str(c.get('created_at', '') or ''))
        return app_ctx.api_success(comments)
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error listing comments for study {study_id}: {e}")
        raise InternalError('Could not load comments')


def create_comment(app_ctx, request):
    actor = app_ctx.resolve_actor(request)
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError('Invalid payload')
    study_id = str(payload.get('studyId', '') or '').strip()
    content = str(payload.get('content', '') or '').strip()
    if not study_id or not content:
        raise ValidationError('studyId and content are required')
    if len(content) > MAX_COMMENT_CHARS:
        raise ValidationError(f'Comment must be at most {MAX_COMMENT_CHARS} characters')
    block_id = str(payload.get('blockId', '') or '').strip() or None

    study_api_service.require_study_access(app_ctx, study_id, actor)
    try:
        comment_ref = collaboration_repo.create_comment_doc_ref(app_ctx.db)
        comment = {
            'study_id': study_id,
            'user_id': actor.uid,
            'content': content,
            'block_id': block_id,
            'resolved': False,
            'resolved_by': None,
            'resolved_at': None,
            'created_at': app_ctx.now_iso(),
        }
        comment_ref.set(comment)
        comment['id'] = comment_ref.id
        log_activity(app_ctx, study_id, actor, 'comment_added', {'comment_id': comment_ref.id})
        return app_ctx.api_success(comment, message='Comment added', status=201)
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error creating comment on study {study_id}: {e}")
        raise InternalError('Could not add comment')


def resolve_comment(app_ctx, request, comment_id):
    actor = app_ctx.resolve_actor(request)
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError('Invalid payload')
    resolved = payload.get('resolved', True)
    if not isinstance(resolved, bool):
        raise ValidationError('resolved must be a boolean')

    comment_doc = collaboration_repo.get_comment_doc(app_ctx.require_db(), comment_id)
    if not comment_doc.exists:
        raise NotFoundError('Comment not found')
    comment = comment_doc.to_dict() or {}
    study_id = comment.get('study_id', '')
    study_api_service.require_study_access(app_ctx, study_id, actor)

    try:
        updates = {
            'resolved': resolved,
            'resolved_by': actor.uid if resolved else None,
            'resolved_at': app_ctx.now_iso() if resolved else None,
        }
        collaboration_repo.comment_doc_ref(app_ctx.db, comment_id).update(updates)
        comment.update(updates)
        comment['id'] = comment_id
        log_activity(app_ctx, study_id, actor, 'comment_resolved' if resolved else 'comment_reopened',
                     {'comment_id': comment_id})
        return app_ctx.api_success(comment)
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error updating comment {comment_id}: {e}")
        raise InternalError('Could not update comment')


def list_activity(app_ctx, request):
    actor = app_ctx.resolve_actor(request)
    study_id = _study_id_arg(request)
    study_api_service.require_study_access(app_ctx, study_id, actor)
    try:
        entries = [doc.to_dict() or {} for doc in collaboration_repo.list_activity_by_study(app_ctx.db, study_id, MAX_ACTIVITY_ENTRIES)]
        entries.sort(key=lambda entry: str(entry.get('created_at', '') or ''), reverse=True)
        return app_ctx.api_success(entries)
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error loading activity for study {study_id}: {e}")
        raise InternalError('Could not load activity feed')
