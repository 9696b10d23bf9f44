"""Firestore accessors for study sessions."""

from .query_utils import apply_equals, apply_where, stream_limited


def doc_ref(db, session_id):
    return db.collection('study_sessions').document(session_id)


def get_doc(db, session_id):
    return doc_ref(db, session_id).get()


def create_doc(db, session_id, payload):
    return doc_ref(db, session_id).set(payload)


def list_by_user(db, firestore_module, user_id, limit, study_id=None):
    """Newest sessions first; the study filter runs in the query, before the limit."""
    query = apply_equals(db.collection('study_sessions'), user_id=user_id, study_id=study_id)
    query = query.order_by('start_time', direction=firestore_module.Query.DESCENDING)
    return stream_limited(query, limit)


def list_by_study(db, study_id, limit):
    return stream_limited(apply_where(db.collection('study_sessions'), 'study_id', '==', study_id), limit)
