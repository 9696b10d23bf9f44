"""Firestore accessors for collaboration comments and the activity feed."""

from .query_utils import apply_where, stream_limited


def comment_doc_ref(db, comment_id):
    return db.collection('collaboration_comments').document(comment_id)


def create_comment_doc_ref(db):
    return db.collection('collaboration_comments').document()


def get_comment_doc(db, comment_id):
    return comment_doc_ref(db, comment_id).get()


def list_comments_by_study(db, study_id, limit):
    return stream_limited(apply_where(db.collection('collaboration_comments'), 'study_id', '==', study_id), limit)


def add_activity(db, payload):
    return db.collection('collaboration_activity').add(payload)


def list_activity_by_study(db, study_id, limit):
    return stream_limited(apply_where(db.collection('collaboration_activity'), 'study_id', '==', study_id), limit)
