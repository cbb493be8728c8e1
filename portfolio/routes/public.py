import os

from flask import Blueprint, abort, current_app, jsonify, request, send_from_directory
from sqlalchemy.exc import SQLAlchemyError

from ..content import (
    fallback_site_settings,
    get_resource,
    get_singleton,
    list_public,
    public_profile,
    public_site_settings,
    public_view,
    serialize_page,
    validate_payload,
)
from ..db_utils import with_database_retry
from ..errors import ValidationError
from ..models import (
    db,
    Message,
    Page,
    PageSection,
    Profile,
    SiteSettings,
    Skill,
    HOME_PAGE_NAME,
    MESSAGE_STATUS_UNREAD,
    SINGLETON_KEY,
)
from ..notifications import send_contact_notification
from ..presentation import compose_page, group_skills
from ..schemas import ContactPayload, ContentQuery
from ..seed import (
    FALLBACK_PROFILE,
    HOME_PAGE_DEFAULTS,
    HOME_SKILLS_FALLBACK_SUBTITLE,
    HOME_SKILLS_FALLBACK_TITLE,
    default_home_sections,
)
from ..storage import IMAGE_EXTENSIONS, safe_upload_path
from ..utils import get_json_payload

public_bp = Blueprint('public', __name__)
PROFILE_CACHE_KEY = 'public-profile'


def _cached(payload, status_code=200):
    response = jsonify(payload)
    response.status_code = status_code
    response.headers['Cache-Control'] = current_app.config['PUBLIC_CACHE_CONTROL']
    return response


def _uncached(payload, status_code=200):
    response = jsonify(payload)
    response.status_code = status_code
    response.headers['Cache-Control'] = 'no-store'
    return response


def _content_filters():
    query = validate_payload(ContentQuery, request.args.to_dict(), status_code=400)
    featured = None
    if query.featured is not None:
        flag = query.featured.strip().lower()
        if flag not in ('true', 'false'):
            raise ValidationError.for_field('featured', 'Expected true or false', status_code=400)
        featured = flag == 'true'
    limit = query.limit
    if limit is not None:
        limit = min(limit, current_app.config['PUBLIC_MAX_LIMIT'])
    return limit, featured, query.category


def _fallback_home_sections():
    page = {
        'id': None,
        'name': HOME_PAGE_DEFAULTS['name'],
        'title': HOME_PAGE_DEFAULTS['title'],
        'slug': HOME_PAGE_DEFAULTS['slug'],
        'description': HOME_PAGE_DEFAULTS['description'],
    }
    sections = [dict(section, id=None, isVisible=True) for section in default_home_sections()]
    return compose_page(page, sections)


def _render_page(page):
    data = serialize_page(page, public=True)
    sections = data.pop('sections')
    return compose_page(data, sections)


@public_bp.route('/content/<entity>')
def content_collection(entity):
    resource = get_resource(entity, public=True)
    if resource is None:
        abort(404)
    limit, featured, category = _content_filters()
    try:
        records = list_public(resource, limit=limit, featured=featured, category=category)
        items = [public_view(record) for record in records]
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f'Failed to load public {entity}.')
        return _uncached({'error': f'Failed to fetch {entity}', 'items': []}, 500)

    payload = {'items': items}
    if resource.model is Skill:
        payload['groups'] = group_skills(items)
    return _cached(payload)


@public_bp.route('/content/profile')
def content_profile():
    cache = current_app.extensions['portfolio_profile_cache']
    cached = cache.get(PROFILE_CACHE_KEY)
    if cached is not None:
        return _cached(cached)

    try:
        profile = with_database_retry(
            lambda: Profile.query.filter_by(key=SINGLETON_KEY, is_visible=True).first()
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Public profile read failed; serving fallback profile.')
        return _uncached(dict(FALLBACK_PROFILE))

    if profile is None:
        return _cached(dict(FALLBACK_PROFILE))
    payload = public_profile(profile)
    cache.set(PROFILE_CACHE_KEY, payload)
    return _cached(payload)


@public_bp.route('/content/site-settings')
def content_site_settings():
    try:
        settings = get_singleton(SiteSettings)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Public site settings read failed; serving defaults.')
        return _uncached(fallback_site_settings())
    if settings is None:
        return _cached(fallback_site_settings())
    return _cached(public_site_settings(settings))


@public_bp.route('/content/home-sections')
def content_home_sections():
    try:
        page = Page.query.filter_by(name=HOME_PAGE_NAME).first()
        if page is None:
            return _cached(_fallback_home_sections())
        if not page.is_visible:
            return _cached({'page': None, 'sections': []})
        return _cached(_render_page(page))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Home sections read failed; serving default sections.')
        return _uncached(_fallback_home_sections())


@public_bp.route('/content/home-skills')
def content_home_skills():
    try:
        skills = (
            Skill.query.filter(Skill.is_visible.is_(True))
            .order_by(Skill.order.asc(), Skill.level.desc(), Skill.name.asc(), Skill.id.asc())
            .limit(current_app.config['HOME_SKILLS_LIMIT'])
            .all()
        )
        heading = (
            PageSection.query.join(Page, PageSection.page_id == Page.id)
            .filter(Page.name == HOME_PAGE_NAME, PageSection.name == 'skills_title')
            .first()
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Home skills read failed.')
        return _uncached({
            'error': 'Failed to fetch skills',
            'title': HOME_SKILLS_FALLBACK_TITLE,
            'subtitle': HOME_SKILLS_FALLBACK_SUBTITLE,
            'skills': [],
        }, 500)

    title, subtitle = HOME_SKILLS_FALLBACK_TITLE, HOME_SKILLS_FALLBACK_SUBTITLE
    if heading is not None and heading.is_visible:
        title = heading.title or title
        subtitle = heading.subtitle or subtitle
    return _cached({
        'title': title,
        'subtitle': subtitle,
        'skills': [public_view(skill) for skill in skills],
    })


@public_bp.route('/content/pages/<slug>')
def content_page(slug):
    page = Page.query.filter_by(slug=slug, is_visible=True).first()
    if page is None:
        abort(404, description='Page not found')
    return _cached(_render_page(page))


@public_bp.route('/contact', methods=['POST'])
def contact():
    form = validate_payload(ContactPayload, get_json_payload())
    message = Message(
        name=form.name,
        email=str(form.email),
        subject=form.subject or None,
        message=form.message,
        status=MESSAGE_STATUS_UNREAD,
    )
    db.session.add(message)
    db.session.commit()
    current_app.logger.info(f'Contact message saved (id={message.id})')

    try:
        result = send_contact_notification(message)
        current_app.logger.info(f'Email notification result: {result}')
    except Exception:
        current_app.logger.exception(f'Contact notification failed for message {message.id}.')

    return _uncached({'success': True, 'message': 'Message sent successfully', 'id': message.id}, 201)


@public_bp.route('/media/<filename>')
def media_file(filename):
    safe_filename, full_path = safe_upload_path(filename)
    if not safe_filename or not full_path or not os.path.exists(full_path):
        abort(404)
    response = send_from_directory(current_app.config['UPLOAD_FOLDER'], safe_filename, conditional=True, etag=True)
    extension = safe_filename.rsplit('.', 1)[1].lower() if '.' in safe_filename else ''
    if extension not in IMAGE_EXTENSIONS:
        response.headers['Content-Disposition'] = f'attachment; filename="{safe_filename}"'
    response.headers['Cache-Control'] = 'public, max-age=604800'
    return response
