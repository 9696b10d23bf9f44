"""Business logic handlers for participant/researcher payment APIs."""

import logging

from researchhub.errors import ApiError, InternalError, ValidationError
from researchhub.repositories import credits_repo, payments_repo

PLAN_TYPES = {'basic', 'pro', 'enterprise'}
PAYMENT_METHODS = {'bank_transfer', 'card', 'paypal'}


def create_payment_request(app_ctx, request):
    actor = app_ctx.resolve_actor(request)
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError('Invalid payload')

    plan_type = str(payload.get('planType', '') or '').strip().lower()
    if plan_type not in PLAN_TYPES:
        raise ValidationError('Invalid plan selected')
    amount = payload.get('amount')
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        raise ValidationError('Amount must be a positive number')
    payment_method = str(payload.get('paymentMethod', '') or 'bank_transfer').strip().lower()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError('Invalid payment method')

    try:
        request_ref = payments_repo.create_doc_ref(app_ctx.require_db())
        entry = {
            'user_id': actor.uid,
            'email': actor.email,
            'plan_type': plan_type,
            'amount': round(float(amount), 2),
            'payment_method': payment_method,
            'status': 'pending',
            'admin_notes': '',
            'created_at': app_ctx.now_iso(),
            'processed_at': None,
            'processed_by': None,
        }
        request_ref.set(entry)
        entry['id'] = request_ref.id
        app_ctx.log_event(logging.INFO, 'payment_request_created', request_id=request_ref.id, uid=actor.uid)
        return app_ctx.api_success(entry, message='Payment request submitted', status=201)
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error creating payment request for user {actor.uid}: {e}")
        raise InternalError('Could not submit payment request')


def get_credits(app_ctx, request):
    actor = app_ctx.resolve_actor(request)
    try:
        credit_doc = credits_repo.get_credit_doc(app_ctx.require_db(), actor.uid)
        credit = (credit_doc.to_dict() or {}) if credit_doc.exists else {}
        return app_ctx.api_success({
            'user_id': actor.uid,
            'balance': int(credit.get('balance', 0) or 0),
            'plan_type': credit.get('plan_type', ''),
            'expires_at': credit.get('expires_at'),
        })
    except ApiError:
        raise
    except Exception as e:
        app_ctx.logger.error(f"Error loading credits for user {actor.uid}: {e}")
        raise InternalError('Could not load credits')
