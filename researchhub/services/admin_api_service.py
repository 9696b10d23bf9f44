"""Business logic handlers for admin payment and credit APIs."""

import logging

from researchhub.errors import ApiError, ConflictError, InternalError, NotFoundError, ValidationError
from researchhub.repositories import credits_repo, payments_repo, profiles_repo

PAYMENT_STATUSES = ('pending', 'verified', 'rejected')
PAYMENT_ACTIONS = {
    'verify': 'verified',
    'reject': 'rejected',
}
MAX_ADMIN_NOTES_CHARS = 2000
MAX_PAYMENT_REQUESTS = 500
DEFAULT_PLAN_TYPE = 'basic'


def list_payment_requests(app_ctx, request):
    app_ctx.require_admin(request)
    status = str(request.args.get('status', '') or '').strip().lower() or None
    if status is not None and status not in PAYMENT_STATUSES:
        raise ValidationError('Invalid status filter')
    try:
        requests = []
        docs = payments_repo.list_recent_requests(app_ctx.require_db(), app_ctx.firestore, status=status,
                                                  limit=MAX_PAYMENT_REQUESTS)
        for doc in docs:
            entry = doc.to_dict() or {}
            entry['id'] = doc.id
            requests.append(entry)
        return app_ctx.api_success(requests)
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error listing payment requests: {e}")
        raise InternalError('Could not load payment requests')


def process_payment_request(app_ctx, request, request_id, action):
    actor = app_ctx.require_admin(request)
    new_status = PAYMENT_ACTIONS.get(str(action or '').strip().lower())
    if new_status is None:
        raise ValidationError('Action must be verify or reject')
    payload = request.get_json(silent=True) or {}
    admin_notes = str(payload.get('adminNotes', '') or '').strip()[:MAX_ADMIN_NOTES_CHARS] if isinstance(payload, dict) else ''

    request_ref = payments_repo.doc_ref(app_ctx.require_db(), request_id)

    def _txn(transaction):
        snapshot = request_ref.get(transaction=transaction)
        if not snapshot.exists:
            raise NotFoundError('Payment request not found')
        entry = snapshot.to_dict() or {}
        if entry.get('status') != 'pending':
            raise ConflictError('Only pending payment requests can be processed')
        updates = {
            'status': new_status,
            'admin_notes': admin_notes,
            'processed_at': app_ctx.now_iso(),
            'processed_by': actor.uid,
        }
        transaction.update(request_ref, updates)
        entry.update(updates)
        entry['id'] = request_id
        return entry

    try:
        entry = app_ctx.run_in_transaction(_txn)
        app_ctx.log_event(logging.INFO, 'payment_request_processed', request_id=request_id,
                          status=new_status, admin_uid=actor.uid)
        return app_ctx.api_success(entry, message=f'Payment request {new_status}')
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error processing payment request {request_id}: {e}")
        raise InternalError('Could not process payment request')


def parse_credit_amount(value):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


def add_credits(app_ctx, request):
    actor = app_ctx.require_admin(request)
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError('Invalid payload')
    email = str(payload.get('email', '') or '').strip().lower()
    credits = parse_credit_amount(payload.get('credits'))
    if not email or credits is None:
        raise ValidationError('Email and valid credits amount are required')
    # Omitted planType/expiresAt keep whatever the credit row already holds.
    plan_type = str(payload.get('planType', '') or '').strip()[:40] or None
    expires_at = payload.get('expiresAt') or None
    if expires_at is not None and app_ctx.parse_iso(expires_at) is None:
        raise ValidationError('expiresAt must be an ISO 8601 timestamp')

    try:
        profile_docs = profiles_repo.find_by_email(app_ctx.require_db(), email, limit=1)
        if not profile_docs:
            raise NotFoundError('User not found')
        uid = profile_docs[0].id
        credit_ref = credits_repo.credit_doc_ref(app_ctx.db, uid)
        transaction_ref = credits_repo.create_transaction_doc_ref(app_ctx.db)

        def _txn(transaction):
            snapshot = credit_ref.get(transaction=transaction)
            existing = (snapshot.to_dict() or {}) if snapshot.exists else {}
            balance = int(existing.get('balance', 0) or 0) + credits
            plan = plan_type or existing.get('plan_type') or DEFAULT_PLAN_TYPE
            expiry = expires_at if expires_at is not None else existing.get('expires_at')
            now_iso = app_ctx.now_iso()
            transaction.set(credit_ref, {
                'user_id': uid,
                'email': email,
                'balance': balance,
                'plan_type': plan,
                'expires_at': expiry,
                'updated_at': now_iso,
            }, merge=True)
            transaction.set(transaction_ref, {
                'user_id': uid,
                'type': 'credit_grant',
                'amount': credits,
                'plan_type': plan,
                'description': f'Admin granted {credits} credits',
                'created_by': actor.uid,
                'created_at': now_iso,
            })
            return balance, plan, expiry

        balance, plan, expiry = app_ctx.run_in_transaction(_txn)
        app_ctx.log_event(logging.INFO, 'credits_added', uid=uid, credits=credits, admin_uid=actor.uid)
        return app_ctx.api_success({
            'user_id': uid,
            'email': email,
            'credits': credits,
            'balance': balance,
            'plan_type': plan,
            'expires_at': expiry,
            'transaction_id': transaction_ref.id,
        }, message=f'Successfully added {credits} credits to {email}')
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error adding credits for {email}: {e}")
        raise InternalError('Could not add credits')


def payment_stats(app_ctx, request):
    app_ctx.require_admin(request)
    try:
        counts = {status: 0 for status in PAYMENT_STATUSES}
        verified_revenue = 0.0
        total = 0
        for doc in payments_repo.list_requests(app_ctx.require_db()):
            entry = doc.to_dict() or {}
            total += 1
            status = entry.get('status', '')
            if status in counts:
                counts[status] += 1
            if status == 'verified':
                amount = entry.get('amount', 0)
                if isinstance(amount, (int, float)) and not isinstance(amount, bool):
                    verified_revenue += amount
        return app_ctx.api_success({
            'total_requests': total,
            'by_status': counts,
            'verified_revenue': round(verified_revenue, 2),
        })
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error computing payment stats: {e}")
        raise InternalError('Could not compute payment analytics')
