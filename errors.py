from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge


class ApiError(Exception):
    """
    Base for every failure that ends a request.
    Carries the HTTP status and the fixed message shown to the caller.
    """
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationMissing(ApiError):
    status_code = 401
    message = 'Unauthorized'


class AuthorizationDenied(ApiError):
    status_code = 401
    message = 'Unauthorized'


class ValidationError(ApiError):
    status_code = 400
    message = 'Invalid request'


class FileTooLarge(ValidationError):
    message = 'File size must be less than 5MB'


class NotFound(ApiError):
    status_code = 404
    message = 'Not found'


# --- Document sub-kinds (metadata missing vs content missing) ---
class DocumentNotFound(NotFound):
    message = 'Document not found'


class FileMissing(NotFound):
    message = 'File not found on server'


class NoFileData(NotFound):
    message = 'No file data available for this document'


class UpstreamFailure(ApiError):
    status_code = 500


def register_error_handlers(app, jwt):
    """ Single boundary that turns failures into the JSON error envelope. """

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        return jsonify({'error': error.message}), error.status_code

    # Bodies over MAX_CONTENT_LENGTH are cut off by Werkzeug before the view reads them
    @app.errorhandler(RequestEntityTooLarge)
    def handle_body_too_large(error):
        return jsonify({'error': FileTooLarge.message}), FileTooLarge.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        current_app.logger.exception(f"Unhandled error: {error}")
        return jsonify({'error': ApiError.message}), 500

    # Token problems are all reported as 401 with the same envelope
    @jwt.unauthorized_loader
    def missing_token(reason):
        current_app.logger.info(f"Rejected request without token: {reason}")
        return jsonify({'error': AuthenticationMissing.message}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        current_app.logger.info(f"Rejected invalid token: {reason}")
        return jsonify({'error': AuthenticationMissing.message}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': AuthenticationMissing.message}), 401
