from flask import Blueprint, request

from researchhub import runtime
from researchhub.services import collaboration_api_service

collaboration_bp = Blueprint('collaboration_api', __name__)


@collaboration_bp.route('/api/collaboration/comments', methods=['GET'])
def list_comments():
    return collaboration_api_service.list_comments(runtime, request)


@collaboration_bp.route('/api/collaboration/comments', methods=['POST'])
def create_comment():
    return collaboration_api_service.create_comment(runtime, request)


@collaboration_bp.route('/api/collaboration/comments/<comment_id>/resolve', methods=['PATCH'])
def resolve_comment(comment_id):
    return collaboration_api_service.resolve_comment(runtime, request, comment_id)


@collaboration_bp.route('/api/collaboration/activity', methods=['GET'])
def list_activity():
    return collaboration_api_service.list_activity(runtime, request)
