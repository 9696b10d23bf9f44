"""Error taxonomy shared by the API services.

Services raise these; the app factory turns them into the
``{success: false, error}`` envelope with the matching status code.
"""


class ApiError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'error': self.message}


class ValidationError(ApiError):
    status_code = 400
    default_message = 'Invalid request'


class AuthenticationError(ApiError):
    status_code = 401
    default_message = 'Authentication required'


class AuthorizationError(ApiError):
    status_code = 403
    default_message = 'Forbidden'


class NotFoundError(ApiError):
    status_code = 404
    default_message = 'Not found'


class ConflictError(ApiError):
    # Invalid state transitions are reported as client errors.
    status_code = 400
    default_message = 'Invalid state transition'


class InternalError(ApiError):
    status_code = 500
