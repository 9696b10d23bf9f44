"""Firestore accessors for credit balances and the transaction ledger."""

from .query_utils import apply_equals, stream_limited


def credit_doc_ref(db, uid):
    return db.collection('credits').document(uid)


def get_credit_doc(db, uid):
    return credit_doc_ref(db, uid).get()


def create_transaction_doc_ref(db):
    return db.collection('transactions').document()


def list_transactions(db, user_id=None, limit=None):
    return stream_limited(apply_equals(db.collection('transactions'), user_id=user_id), limit)
