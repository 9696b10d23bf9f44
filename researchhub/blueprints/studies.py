from flask import Blueprint, request

from researchhub import runtime
from researchhub.services import study_api_service

studies_bp = Blueprint('studies_api', __name__)


@studies_bp.route('/api/studies/<study_id>', methods=['GET'])
def get_study(study_id):
    return study_api_service.get_study(runtime, request, study_id)
