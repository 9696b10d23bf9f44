import os

from researchhub import create_app
from researchhub import runtime

app = create_app()

if __name__ == '__main__':
    port = int(os.getenv('PORT', '5000'))
    debug = str(os.getenv('FLASK_DEBUG', '0')).strip().lower() in {'1', 'true', 'yes', 'on'}
    runtime.socketio.run(app, host='0.0.0.0', port=port, debug=debug, allow_unsafe_werkzeug=debug)
