"""Authentication and role resolution helpers."""

from dataclasses import dataclass

from researchhub.repositories import profiles_repo

ADMIN_ROLES = {'admin', 'super_admin'}
KNOWN_ROLES = {'participant', 'researcher', 'admin', 'super_admin'}
DEFAULT_ROLE = 'participant'


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of one request, with its resolved role."""

    uid: str
    email: str = ''
    role: str = DEFAULT_ROLE

    @property
    def is_admin(self):
        return self.role in ADMIN_ROLES


def extract_bearer_token(request):
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return ''
    return auth_header.split('Bearer ', 1)[1].strip()


def verify_firebase_token(request, auth_module, logger):
    """Return decoded Firebase token dict, or None when invalid/missing."""
    token = extract_bearer_token(request)
    if not token:
        return None
    try:
        return auth_module.verify_id_token(token)
    except Exception as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc}")
        return None


def normalize_role(value):
    role = str(value or '').strip().lower()
    return role if role in KNOWN_ROLES else ''


def role_from_claims(decoded_token):
    """Read the role from custom claims, falling back to a user_metadata dict."""
    role = normalize_role(decoded_token.get('role'))
    if role:
        return role
    metadata = decoded_token.get('user_metadata')
    if isinstance(metadata, dict):
        return normalize_role(metadata.get('role'))
    return ''


def resolve_role(decoded_token, *, db, logger=None):
    """Token metadata decides the role; the profile row is read only when it has none."""
    claim_role = role_from_claims(decoded_token)
    if claim_role:
        return claim_role
    uid = decoded_token.get('uid', '')
    profile_role = ''
    if db is not None and uid:
        try:
            profile_doc = profiles_repo.get_doc(db, uid)
            if profile_doc.exists:
                profile_role = normalize_role((profile_doc.to_dict() or {}).get('role'))
        except Exception as exc:
            if logger is not None:
                logger.warning(f"Profile role lookup failed for {uid}: {exc}")
    return profile_role or DEFAULT_ROLE


def build_actor(decoded_token, *, db, logger=None):
    uid = str(decoded_token.get('uid', '') or '').strip()
    if not uid:
        return None
    email = str(decoded_token.get('email', '') or '').strip().lower()
    return Actor(uid=uid, email=email, role=resolve_role(decoded_token, db=db, logger=logger))
