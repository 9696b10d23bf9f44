from flask import Blueprint, request

from researchhub import runtime
from researchhub.services import payments_api_service

payments_bp = Blueprint('payments_api', __name__)


@payments_bp.route('/api/payments/requests', methods=['POST'])
def create_payment_request():
    return payments_api_service.create_payment_request(runtime, request)


@payments_bp.route('/api/payments/credits', methods=['GET'])
def get_credits():
    return payments_api_service.get_credits(runtime, request)
