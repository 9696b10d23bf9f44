"""Firestore accessors for payment requests."""

from .query_utils import apply_equals, stream_limited


def doc_ref(db, request_id):
    return db.collection('payment_requests').document(request_id)


def create_doc_ref(db):
    return db.collection('payment_requests').document()


def list_requests(db, status=None, user_id=None, limit=None):
    query = apply_equals(db.collection('payment_requests'), status=status, user_id=user_id)
    return stream_limited(query, limit)


def list_recent_requests(db, firestore_module, status=None, limit=None):
    query = apply_equals(db.collection('payment_requests'), status=status)
    query = query.order_by('created_at', direction=firestore_module.Query.DESCENDING)
    return stream_limited(query, limit)
