from flask import Blueprint, request

from researchhub import runtime
from researchhub.services import admin_api_service

admin_bp = Blueprint('admin_api', __name__)


@admin_bp.route('/api/admin/payments/requests', methods=['GET'])
def list_payment_requests():
    return admin_api_service.list_payment_requests(runtime, request)


@admin_bp.route('/api/admin/payments/requests/<request_id>/<action>', methods=['PUT'])
def process_payment_request(request_id, action):
    return admin_api_service.process_payment_request(runtime, request, request_id, action)


@admin_bp.route('/api/admin/payments/credits/add', methods=['POST'])
def add_credits():
    return admin_api_service.add_credits(runtime, request)


@admin_bp.route('/api/admin/payments/analytics', methods=['GET'])
def payment_analytics():
    return admin_api_service.payment_stats(runtime, request)
