import secrets

from flask import current_app, jsonify, session
from flask_login import LoginManager, UserMixin

login_manager = LoginManager()


class AdminUser(UserMixin):
    """The single configured administrator; there is no user table."""

    def __init__(self, username):
        self.id = username
        self.username = username


@login_manager.user_loader
def load_user(user_id):
    configured = current_app.config.get('ADMIN_USERNAME') or ''
    if configured and user_id == configured:
        return AdminUser(configured)
    return None


@login_manager.unauthorized_handler
def unauthorized():
    response = jsonify({'error': 'Unauthorized'})
    response.status_code = 401
    response.headers['Cache-Control'] = 'no-store'
    return response


def check_credentials(username, password):
    expected_username = current_app.config.get('ADMIN_USERNAME') or ''
    expected_password = current_app.config.get('ADMIN_PASSWORD') or ''
    if not expected_username or not expected_password:
        return False
    username_ok = secrets.compare_digest(username.encode('utf-8'), expected_username.encode('utf-8'))
    password_ok = secrets.compare_digest(password.encode('utf-8'), expected_password.encode('utf-8'))
    return username_ok and password_ok


def get_csrf_token():
    token = session.get('_csrf_token')
    if not token:
        token = secrets.token_urlsafe(32)
        session['_csrf_token'] = token
    return token
