import os
import tempfile
from datetime import timedelta
from urllib.parse import urlparse

basedir = os.path.abspath(os.path.dirname(__file__))

# Platform markers; any one of them means we sit behind a managed edge proxy.
MANAGED_RUNTIME_MARKERS = ('RAILWAY_ENVIRONMENT', 'RAILWAY_PROJECT_ID', 'RENDER', 'RENDER_SERVICE_ID', 'VERCEL')
PRODUCTION_ENV_VARS = ('FLASK_ENV', 'RAILWAY_ENVIRONMENT', 'VERCEL_ENV')


def _env(name, default=''):
    value = os.environ.get(name)
    return default if value is None else value.strip()


def _as_bool(value, default=False):
    if value is None or value == '':
        return default
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _as_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value, default):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _on_serverless():
    return bool(_env('VERCEL') or _env('VERCEL_ENV'))


def _behind_managed_proxy():
    return any(_env(name) for name in MANAGED_RUNTIME_MARKERS) or _on_serverless()


def _in_production():
    return any(_env(name).lower() == 'production' for name in PRODUCTION_ENV_VARS)


def _database_url():
    url = _env('DATABASE_URL')
    if url.startswith('postgres://'):
        # Heroku-style scheme; SQLAlchemy only accepts postgresql://
        url = 'postgresql://' + url[len('postgres://'):]
    if url:
        return url
    if _on_serverless():
        return 'sqlite:////tmp/portfolio.db'
    return 'sqlite:///' + os.path.join(basedir, 'portfolio.db')


def _engine_options(url):
    if url.startswith('sqlite'):
        return {}
    options = {'pool_pre_ping': True, 'pool_recycle': 300}
    if urlparse(url).scheme.startswith('postgresql'):
        timeout = max(1, _as_int(_env('DB_CONNECT_TIMEOUT_SECONDS'), 5))
        statement_ms = max(1000, _as_int(_env('DB_STATEMENT_TIMEOUT_MS'), 8000))
        options['connect_args'] = {
            'connect_timeout': timeout,
            'options': f'-c statement_timeout={statement_ms}',
        }
    return options


def _default_upload_folder():
    if _on_serverless():
        return os.path.join(tempfile.gettempdir(), 'portfolio-media')
    return os.path.join(basedir, 'uploads')


class Config:
    SECRET_KEY = _env('SECRET_KEY')
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Admin session
    ADMIN_USERNAME = _env('ADMIN_USERNAME', 'admin') or 'admin'
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD') or ''
    PERMANENT_SESSION_LIFETIME = timedelta(hours=max(1, _as_int(_env('ADMIN_SESSION_HOURS'), 8)))
    CSRF_ENABLED = _as_bool(_env('CSRF_ENABLED'), True)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = _as_bool(
        _env('SESSION_COOKIE_SECURE'),
        _env('PREFERRED_URL_SCHEME').lower() == 'https' or _in_production(),
    )

    # Edge and transport
    TRUST_PROXY_HEADERS = _as_bool(_env('TRUST_PROXY_HEADERS'), _behind_managed_proxy())
    PREFERRED_URL_SCHEME = _env('PREFERRED_URL_SCHEME') or ('https' if SESSION_COOKIE_SECURE else 'http')
    APP_BASE_URL = _env('APP_BASE_URL').rstrip('/')
    HSTS_ENABLED = _as_bool(_env('HSTS_ENABLED'), True)
    HSTS_MAX_AGE = _as_int(_env('HSTS_MAX_AGE'), 31536000)

    # Public read API
    PUBLIC_CACHE_CONTROL = _env('PUBLIC_CACHE_CONTROL') or 'public, s-maxage=300, stale-while-revalidate=300'
    PUBLIC_MAX_LIMIT = max(1, _as_int(_env('PUBLIC_MAX_LIMIT'), 100))
    HOME_SKILLS_LIMIT = max(1, _as_int(_env('HOME_SKILLS_LIMIT'), 20))
    PROFILE_CACHE_TTL_SECONDS = max(0.0, _as_float(_env('PROFILE_CACHE_TTL_SECONDS'), 30.0))
    DB_RETRY_ATTEMPTS = max(1, _as_int(_env('DB_RETRY_ATTEMPTS'), 3))
    DB_RETRY_DELAY_SECONDS = max(0.0, _as_float(_env('DB_RETRY_DELAY_SECONDS'), 0.5))

    # Media
    UPLOAD_FOLDER = _env('UPLOAD_FOLDER') or _default_upload_folder()
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024
    MAX_UPLOAD_IMAGE_PIXELS = _as_int(_env('MAX_UPLOAD_IMAGE_PIXELS'), 40_000_000)
    ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp', 'ico', 'pdf'}
    ALLOWED_UPLOAD_MIME_TYPES = {
        'image/png',
        'image/jpeg',
        'image/gif',
        'image/webp',
        'image/x-icon',
        'image/vnd.microsoft.icon',
        'application/pdf',
    }

    # Contact notifications
    SMTP_HOST = _env('SMTP_HOST')
    SMTP_PORT = _as_int(_env('SMTP_PORT'), 587)
    SMTP_USERNAME = _env('SMTP_USERNAME')
    SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD') or ''
    SMTP_USE_TLS = _as_bool(_env('SMTP_USE_TLS'), True)
    SMTP_USE_SSL = _as_bool(_env('SMTP_USE_SSL'), False)
    MAIL_FROM = _env('MAIL_FROM') or SMTP_USERNAME or 'no-reply@localhost'
    CONTACT_NOTIFICATION_EMAILS = _env('CONTACT_NOTIFICATION_EMAILS')
    MAILGUN_API_KEY = _env('MAILGUN_API_KEY')
    MAILGUN_DOMAIN = _env('MAILGUN_DOMAIN')

    # Observability
    SENTRY_DSN = _env('SENTRY_DSN')
    SENTRY_ENVIRONMENT = _env('SENTRY_ENVIRONMENT')
    SENTRY_TRACES_SAMPLE_RATE = _as_float(_env('SENTRY_TRACES_SAMPLE_RATE'), 0.0)
    LOG_JSON = _as_bool(_env('LOG_JSON'), True)
    LOG_LEVEL = (_env('LOG_LEVEL') or 'INFO').upper()
