from flask import Blueprint, abort, current_app, jsonify, request, session
from flask_login import current_user, login_required, login_user, logout_user
from pydantic.alias_generators import to_camel

from ..auth import AdminUser, check_credentials, get_csrf_token
from ..content import (
    admin_view,
    dashboard_snapshot,
    create_record,
    delete_record,
    dump_sections,
    get_record,
    get_resource,
    get_singleton,
    list_admin,
    serialize_page,
    update_record,
    upsert_profile,
    upsert_sections,
    upsert_site_settings,
    validate_payload,
)
from ..errors import AuthorizationError, ValidationError
from ..models import db, Profile, SiteSettings
from ..schemas import HomeContentPayload, LoginPayload, SectionsPayload
from ..seed import DEFAULT_SITE_SETTINGS, PROFILE_CREATE_DEFAULTS, ensure_home_page
from ..storage import save_upload
from ..utils import get_json_payload, parse_bool_arg

admin_bp = Blueprint('admin', __name__)


def _resource_or_404(entity):
    resource = get_resource(entity)
    if resource is None:
        abort(404)
    return resource


def _defaults_view(defaults):
    data = {to_camel(key): value for key, value in defaults.items()}
    data['id'] = None
    return data


# Auth
@admin_bp.route('/login', methods=['POST'])
def login():
    credentials = validate_payload(LoginPayload, get_json_payload())
    if not check_credentials(credentials.username, credentials.password):
        current_app.logger.warning(f'Failed admin login for {credentials.username[:80]!r} from {request.remote_addr}')
        raise AuthorizationError('Invalid credentials')

    session.clear()
    login_user(AdminUser(credentials.username))
    session.permanent = True
    current_app.logger.info('Admin signed in.')
    return jsonify({
        'authenticated': True,
        'username': credentials.username,
        'csrfToken': get_csrf_token(),
    })


@admin_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    session.clear()
    return jsonify({'success': True})


@admin_bp.route('/session')
def admin_session():
    if not current_user.is_authenticated:
        return jsonify({'authenticated': False})
    return jsonify({
        'authenticated': True,
        'username': current_user.username,
        'csrfToken': get_csrf_token(),
    })


# Dashboard
@admin_bp.route('/dashboard')
@login_required
def dashboard():
    return jsonify(dashboard_snapshot())


# Singletons
@admin_bp.route('/profile')
@login_required
def get_profile():
    profile = get_singleton(Profile)
    if profile is None:
        return jsonify(_defaults_view(PROFILE_CREATE_DEFAULTS))
    return jsonify(admin_view(profile))


@admin_bp.route('/profile', methods=['PUT', 'POST'])
@login_required
def save_profile():
    profile, created = upsert_profile(get_json_payload())
    return jsonify(admin_view(profile)), (201 if created else 200)


@admin_bp.route('/site-settings')
@login_required
def get_site_settings():
    settings = get_singleton(SiteSettings)
    if settings is None:
        return jsonify(_defaults_view(DEFAULT_SITE_SETTINGS))
    return jsonify(admin_view(settings))


@admin_bp.route('/site-settings', methods=['PUT', 'POST'])
@login_required
def save_site_settings():
    settings, created = upsert_site_settings(get_json_payload())
    return jsonify(admin_view(settings)), (201 if created else 200)


# Pages and sections
@admin_bp.route('/home-content')
@login_required
def get_home_content():
    page, _ = ensure_home_page()
    return jsonify(serialize_page(page))


@admin_bp.route('/home-content', methods=['PUT'])
@login_required
def save_home_content():
    raw = get_json_payload()
    body = validate_payload(HomeContentPayload, raw)
    page, _ = ensure_home_page()
    if body.page is not None:
        page = update_record(get_resource('pages'), page.id, raw.get('page') or {}, commit=False)
    upsert_sections(page, dump_sections(body.sections))
    db.session.commit()
    current_app.logger.info(f'Upserted {len(body.sections)} home sections on page {page.id}')
    return jsonify(serialize_page(page))


@admin_bp.route('/pages/<page_id>/sections', methods=['PUT'])
@login_required
def save_page_sections(page_id):
    resource = get_resource('pages')
    body = validate_payload(SectionsPayload, get_json_payload())
    page = get_record(resource, page_id)
    upsert_sections(page, dump_sections(body.sections))
    db.session.commit()
    current_app.logger.info(f'Upserted {len(body.sections)} sections on page {page.id}')
    return jsonify(serialize_page(page))


# Uploads
@admin_bp.route('/uploads', methods=['POST'])
@login_required
def upload():
    file = request.files.get('file')
    if file is None or not file.filename:
        raise ValidationError.for_field('file', 'No file provided', error_type='missing', status_code=400)
    resize = parse_bool_arg(request.form.get('resize') or request.args.get('resize'))
    return jsonify(save_upload(file, resize_icon=resize)), 201


# Entity collections
@admin_bp.route('/<entity>')
@login_required
def list_entities(entity):
    resource = _resource_or_404(entity)
    archived = (request.args.get('archived') or '').strip().lower() or None
    return jsonify({'items': [admin_view(record) for record in list_admin(resource, archived=archived)]})


@admin_bp.route('/<entity>', methods=['POST'])
@login_required
def create_entity(entity):
    resource = _resource_or_404(entity)
    if resource.create_schema is None:
        abort(405)
    record = create_record(resource, get_json_payload())
    return jsonify(admin_view(record)), 201


@admin_bp.route('/<entity>/<record_id>')
@login_required
def get_entity(entity, record_id):
    resource = _resource_or_404(entity)
    return jsonify(admin_view(get_record(resource, record_id)))


@admin_bp.route('/<entity>/<record_id>', methods=['PUT', 'PATCH'])
@login_required
def update_entity(entity, record_id):
    resource = _resource_or_404(entity)
    record = update_record(resource, record_id, get_json_payload())
    return jsonify(admin_view(record))


@admin_bp.route('/<entity>/<record_id>', methods=['DELETE'])
@login_required
def delete_entity(entity, record_id):
    resource = _resource_or_404(entity)
    delete_record(resource, record_id)
    return jsonify({'success': True, 'id': record_id})
