import json
import logging
import os
import re
import secrets
import warnings

from flask import Flask, abort, g, has_request_context, request, session
from flask_login import current_user
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.middleware.proxy_fix import ProxyFix

from .auth import login_manager
from .cache import TTLCache
from .config import Config
from .errors import register_error_handlers
from .models import db, Page, HOME_PAGE_NAME

REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{8,80}$")
MUTATING_METHODS = frozenset(('POST', 'PUT', 'PATCH', 'DELETE'))
CSRF_EXEMPT_PATHS = frozenset(('/admin/login',))
ADMIN_PREFIX = '/admin'
_sentry_initialized = False


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, tagged with the current request when there is one."""

    def format(self, record):
        entry = {
            'time': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        if has_request_context():
            entry['request_id'] = getattr(g, 'request_id', '')
            entry['method'] = request.method
            entry['path'] = request.path
            entry['remote_ip'] = request.remote_addr
        if record.exc_info:
            entry['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def configure_logging(app):
    level_name = str(app.config.get('LOG_LEVEL') or 'INFO').upper()
    app.logger.setLevel(getattr(logging, level_name, logging.INFO))
    if app.config.get('LOG_JSON', True):
        for handler in app.logger.handlers:
            handler.setFormatter(JsonLogFormatter())


def init_sentry(app):
    global _sentry_initialized
    dsn = (app.config.get('SENTRY_DSN') or '').strip()
    if _sentry_initialized or not dsn:
        return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration(), SqlalchemyIntegration()],
        traces_sample_rate=float(app.config.get('SENTRY_TRACES_SAMPLE_RATE') or 0.0),
        environment=app.config.get('SENTRY_ENVIRONMENT') or None,
    )
    _sentry_initialized = True
    app.logger.info('Sentry error reporting enabled.')


def _ensure_secrets(app):
    if not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = secrets.token_urlsafe(32)
        warnings.warn(
            'SECRET_KEY is not set; using a per-process random key, admin sessions end on restart.',
            stacklevel=3,
        )
    if not app.config.get('ADMIN_PASSWORD'):
        app.config['ADMIN_PASSWORD'] = secrets.token_urlsafe(16)
        app.logger.warning('ADMIN_PASSWORD is not set; admin sign-in is locked until it is configured.')


def _csrf_required():
    if request.method not in MUTATING_METHODS:
        return False
    if not request.path.startswith(ADMIN_PREFIX) or request.path in CSRF_EXEMPT_PATHS:
        return False
    # Anonymous callers get the 401 from login_required instead.
    return current_user.is_authenticated


def register_request_hooks(app):
    @app.before_request
    def assign_request_id():
        incoming = (request.headers.get('X-Request-ID') or '').strip()
        g.request_id = incoming if REQUEST_ID_PATTERN.match(incoming) else secrets.token_hex(16)

    @app.before_request
    def enforce_csrf():
        if not app.config.get('CSRF_ENABLED', True) or not _csrf_required():
            return
        expected = session.get('_csrf_token') or ''
        provided = request.headers.get('X-CSRF-Token') or ''
        if not expected or not provided or not secrets.compare_digest(expected, provided):
            abort(400, description='Invalid or missing CSRF token.')

    @app.after_request
    def add_security_headers(response):
        headers = response.headers
        headers['X-Request-ID'] = getattr(g, 'request_id', '')
        headers.setdefault('X-Content-Type-Options', 'nosniff')
        headers.setdefault('X-Frame-Options', 'DENY')
        headers.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
        headers.setdefault('Permissions-Policy', 'geolocation=(), microphone=(), camera=()')
        headers.setdefault('Cross-Origin-Opener-Policy', 'same-origin')
        if request.is_secure and app.config.get('HSTS_ENABLED', True):
            max_age = max(0, int(app.config.get('HSTS_MAX_AGE', 31536000)))
            headers.setdefault('Strict-Transport-Security', f'max-age={max_age}; includeSubDomains')
        if request.path.startswith(ADMIN_PREFIX):
            headers.setdefault('X-Robots-Tag', 'noindex, nofollow, noarchive')
            headers['Cache-Control'] = 'no-store'
        return response


def register_probes(app):
    def database_reachable():
        try:
            db.session.execute(text('SELECT 1'))
            return True
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception('Database probe failed.')
            return False

    @app.get('/healthz')
    def healthz():
        if database_reachable():
            return {'status': 'ok'}, 200
        return {'status': 'degraded'}, 503

    @app.get('/readyz')
    def readyz():
        checks = {'database': database_reachable(), 'home_page_seeded': False}
        if checks['database']:
            try:
                checks['home_page_seeded'] = (
                    db.session.query(Page.id).filter_by(name=HOME_PAGE_NAME).first() is not None
                )
            except SQLAlchemyError:
                db.session.rollback()
                app.logger.exception('Readiness seed check failed.')
        ready = all(checks.values())
        return {'status': 'ready' if ready else 'warming', 'checks': checks}, (200 if ready else 503)


def _prepare_store(app):
    from .seed import seed_database

    with app.app_context():
        try:
            db.create_all()
            seed_database()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception('Schema creation or home page seeding failed; continuing without it.')


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    app.config.update(config_overrides or {})
    configure_logging(app)
    _ensure_secrets(app)

    if app.config.get('TRUST_PROXY_HEADERS'):
        # One hop: the platform edge.
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    init_sentry(app)
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    db.init_app(app)
    login_manager.init_app(app)
    app.extensions['portfolio_profile_cache'] = TTLCache(
        app.config.get('PROFILE_CACHE_TTL_SECONDS', 30.0),
        clock=app.config.get('PROFILE_CACHE_CLOCK'),
    )
    register_error_handlers(app)
    register_request_hooks(app)
    register_probes(app)

    from .routes.admin import admin_bp
    from .routes.public import public_bp
    app.register_blueprint(public_bp)
    app.register_blueprint(admin_bp, url_prefix=ADMIN_PREFIX)

    _prepare_store(app)
    return app
