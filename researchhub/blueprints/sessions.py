from flask import Blueprint, request

from researchhub import runtime
from researchhub.services import session_api_service

sessions_bp = Blueprint('sessions_api', __name__)


@sessions_bp.route('/api/study-sessions', methods=['GET'])
def list_sessions():
    return session_api_service.list_sessions(runtime, request)


@sessions_bp.route('/api/study-sessions/start', methods=['POST'])
def start_session():
    return session_api_service.start_session(runtime, request)


@sessions_bp.route('/api/study-sessions/progress', methods=['POST'])
def record_progress():
    return session_api_service.record_progress(runtime, request)


@sessions_bp.route('/api/study-sessions/complete', methods=['POST'])
def complete_session():
    return session_api_service.complete_session(runtime, request)


@sessions_bp.route('/api/study-sessions/results/<session_id>', methods=['GET'])
def get_results(session_id):
    return session_api_service.get_results(runtime, request, session_id)


@sessions_bp.route('/api/study-sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    return session_api_service.get_session(runtime, request, session_id)


@sessions_bp.route('/api/study-sessions/<session_id>', methods=['PUT'])
def update_session_progress(session_id):
    return session_api_service.record_progress(runtime, request, session_id)
