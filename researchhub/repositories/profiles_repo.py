"""Firestore accessors for the profiles collection."""

from .query_utils import apply_where, stream_limited


def doc_ref(db, uid):
    return db.collection('profiles').document(uid)


def get_doc(db, uid):
    return doc_ref(db, uid).get()


def find_by_email(db, email, limit=1):
    return stream_limited(apply_where(db.collection('profiles'), 'email', '==', email), limit)
