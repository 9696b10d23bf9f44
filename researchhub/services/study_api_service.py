"""Business logic handlers for study APIs."""

from researchhub.errors import ApiError, AuthorizationError, InternalError, NotFoundError
from researchhub.repositories import studies_repo

BLOCK_TYPES = (
    'welcome-screen',
    'open-question',
    'opinion-scale',
    'simple-input',
    'multiple-choice',
    'context-screen',
    'yes-no',
    'five-second-test',
    'card-sort',
    'tree-test',
    'thank-you',
    'image-upload',
    'file-upload',
)
BLOCK_TYPE_SET = set(BLOCK_TYPES)
PUBLIC_STUDY_STATUSES = {'active', 'published'}


def normalize_block_type(value):
    block_type = str(value or '').strip().lower().replace('_', '-')
    return block_type if block_type in BLOCK_TYPE_SET else 'unknown'


def normalize_blocks(raw_blocks):
    """Return the study's blocks as an ordered list with a stable ``order`` index."""
    if not isinstance(raw_blocks, list):
        return []
    indexed = []
    for position, raw in enumerate(raw_blocks):
        if not isinstance(raw, dict):
            continue
        order = raw.get('order')
        if not isinstance(order, int) or isinstance(order, bool):
            order = position
        indexed.append((order, position, raw))
    indexed.sort(key=lambda item: (item[0], item[1]))

    blocks = []
    for index, (_order, position, raw) in enumerate(indexed):
        settings = raw.get('settings')
        blocks.append({
            'id': str(raw.get('id', '') or f"block_{position}"),
            'type': normalize_block_type(raw.get('type')),
            'title': str(raw.get('title', '') or ''),
            'order': index,
            'settings': settings if isinstance(settings, dict) else {},
        })
    return blocks


def get_study_access(app_ctx, study_id, actor):
    """Return ``(study, access)`` where access is owner, collaborator role, admin or None."""
    study_doc = studies_repo.get_study_doc(app_ctx.require_db(), study_id)
    if not study_doc.exists:
        raise NotFoundError('Study not found')
    study = study_doc.to_dict() or {}
    if study.get('researcher_id', '') == actor.uid:
        return study, 'owner'
    collaborator_doc = studies_repo.get_collaborator_doc(app_ctx.db, study_id, actor.uid)
    if collaborator_doc.exists:
        return study, (collaborator_doc.to_dict() or {}).get('role') or 'viewer'
    if actor.is_admin:
        return study, 'admin'
    return study, None


def require_study_access(app_ctx, study_id, actor):
    study, access = get_study_access(app_ctx, study_id, actor)
    if access is None:
        raise AuthorizationError('You do not have access to this study')
    return study, access


def get_study(app_ctx, request, study_id):
    actor = app_ctx.resolve_actor(request)
    try:
        study, access = get_study_access(app_ctx, study_id, actor)
        status = str(study.get('status', '') or '').strip().lower()
        if access is None and status not in PUBLIC_STUDY_STATUSES:
            raise AuthorizationError('You do not have access to this study')
        return app_ctx.api_success({
            'id': study_id,
            'title': study.get('title', ''),
            'description': study.get('description', ''),
            'status': status,
            'researcher_id': study.get('researcher_id', ''),
            'blocks': normalize_blocks(study.get('blocks')),
            'access': access or 'participant',
        })
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error fetching study {study_id}: {e}")
        raise InternalError('Could not load study')
