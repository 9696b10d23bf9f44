"""Socket event handlers for the real-time study channel."""

from flask_socketio import emit, join_room


def extract_study_id(payload):
    if isinstance(payload, dict):
        payload = payload.get('studyId') or payload.get('study_id')
    return str(payload or '').strip()


def register_realtime_handlers(socketio, app_ctx):
    def on_join_study(payload=None):
        study_id = extract_study_id(payload)
        if not study_id:
            emit('error', {'message': 'studyId is required'})
            return
        join_room(study_id)
        app_ctx.logger.info(f"Socket client joined study room {study_id}")
        emit('joined_study', {'studyId': study_id})

    socketio.on_event('join_study', on_join_study)
