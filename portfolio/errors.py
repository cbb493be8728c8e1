from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from .models import db


class ApiError(Exception):
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'error': self.message}


class AuthorizationError(ApiError):
    status_code = 401
    message = 'Unauthorized'


class MalformedPayloadError(ApiError):
    status_code = 400
    message = 'Malformed JSON body'


class ValidationError(ApiError):
    status_code = 422
    message = 'Invalid payload'

    def __init__(self, message=None, details=None, missing=None, status_code=None):
        super().__init__(message)
        self.details = list(details or [])
        self.missing = list(missing or [])
        if status_code is not None:
            self.status_code = status_code

    @classmethod
    def from_pydantic(cls, exc, status_code=None, prefix=()):
        details = []
        missing = []
        for error in exc.errors():
            field = '.'.join(str(part) for part in (*prefix, *error.get('loc', ())))
            details.append({
                'field': field,
                'message': error.get('msg', ''),
                'type': error.get('type', ''),
            })
            if error.get('type') == 'missing':
                missing.append(field)
        return cls(details=details, missing=missing, status_code=status_code)

    @classmethod
    def for_field(cls, field, message, error_type='value_error', status_code=None):
        return cls(
            details=[{'field': field, 'message': message, 'type': error_type}],
            status_code=status_code,
        )

    def to_dict(self):
        return {
            'error': self.message,
            'details': self.details,
            'missing': self.missing,
        }


class NotFoundError(ApiError):
    status_code = 404
    message = 'Not found'

    def __init__(self, entity_label=None):
        super().__init__(f'{entity_label} not found' if entity_label else None)


class ConflictError(ApiError):
    status_code = 409
    message = 'Conflict'


def _json_error(status_code, body):
    response = jsonify(body)
    response.status_code = status_code
    response.headers['Cache-Control'] = 'no-store'
    return response


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            current_app.logger.error(f'API error: {error.message}')
        return _json_error(error.status_code, error.to_dict())

    @app.errorhandler(StaleDataError)
    def handle_stale_data(error):
        db.session.rollback()
        current_app.logger.warning(f'Concurrent modification rejected: {error}')
        return _json_error(409, {'error': 'Record was modified by another request'})

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        current_app.logger.warning(f'Integrity constraint rejected write: {error.orig}')
        return _json_error(409, {'error': 'Record conflicts with existing data'})

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(error):
        db.session.rollback()
        current_app.logger.exception('Database operation failed.')
        return _json_error(500, {'error': 'Internal server error'})

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return _json_error(error.code or 500, {'error': error.description or error.name})

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        current_app.logger.exception('Unhandled exception while serving request.')
        return _json_error(500, {'error': 'Internal server error'})
