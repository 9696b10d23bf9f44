from flask import Blueprint, request

from researchhub import runtime
from researchhub.services import export_api_service

export_bp = Blueprint('export_api', __name__)


@export_bp.route('/api/export/<export_type>', methods=['GET'])
def export_csv(export_type):
    return export_api_service.export_csv(runtime, request, export_type)
