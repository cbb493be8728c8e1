"""Entity registry and the store operations behind both APIs.

Each content type is described once by a ``Resource``: its model, payload
schemas, public and admin ordering, and write hooks. Route modules look
resources up by their URL name and call the functions below.
"""
import copy

from flask import current_app
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from slugify import slugify
from sqlalchemy import func, select

from .errors import ConflictError, NotFoundError, ValidationError
from .models import (
    db,
    Certificate,
    Education,
    Message,
    Page,
    PageSection,
    Profile,
    Project,
    Service,
    SiteSettings,
    Skill,
    MESSAGE_STATUS_UNREAD,
    SECTION_TYPE_CONTENT,
    SINGLETON_KEY,
    utc_now_naive,
)
from .schemas import (
    CertificateCreate,
    CertificateUpdate,
    EducationCreate,
    EducationUpdate,
    MessageUpdate,
    PageCreate,
    PageUpdate,
    ProfileUpdate,
    ProjectCreate,
    ProjectUpdate,
    ServiceCreate,
    ServiceUpdate,
    SiteSettingsUpdate,
    SkillCreate,
    SkillUpdate,
    parse_section_content,
)
from .seed import DEFAULT_SITE_SETTINGS, PROFILE_CREATE_DEFAULTS
from .utils import sanitize_html, to_json_value

INTERNAL_FIELDS = {'key', 'version'}
PUBLIC_PROFILE_FIELDS = (
    'fullName', 'title', 'bio', 'avatar', 'resume', 'location', 'email', 'phone',
    'website', 'linkedIn', 'github', 'twitter', 'instagram', 'youTube',
)
SHORT_DESC_LENGTH = 100


class Resource:
    def __init__(
        self,
        name,
        model,
        label,
        create_schema,
        update_schema,
        public_order,
        admin_order=None,
        sanitized_fields=(),
        public=True,
    ):
        self.name = name
        self.model = model
        self.label = label
        self.create_schema = create_schema
        self.update_schema = update_schema
        self.public_order = public_order
        self.admin_order = admin_order or public_order
        self.sanitized_fields = tuple(sanitized_fields)
        self.public = public

    def has_column(self, field):
        return field in self.model.__table__.columns


def _skill_order():
    return (
        Skill.category.is_(None).asc(),
        Skill.category.asc(),
        Skill.order.asc(),
        Skill.level.desc(),
        Skill.name.asc(),
        Skill.id.asc(),
    )


def _project_order():
    return (Project.featured.desc(), Project.order.asc(), Project.created_at.desc(), Project.id.asc())


def _project_admin_order():
    return (Project.order.asc(), Project.created_at.desc(), Project.id.asc())


def _service_order():
    return (Service.featured.desc(), Service.order.asc(), Service.title.asc(), Service.id.asc())


def _certificate_order():
    return (Certificate.order.asc(), Certificate.issue_date.desc(), Certificate.id.asc())


def _education_order():
    return (Education.order.asc(), Education.start_date.desc(), Education.id.asc())


def _page_order():
    return (Page.order.asc(), Page.name.asc())


def _message_order():
    return (Message.created_at.desc(), Message.id.asc())


RESOURCES = {
    'skills': Resource('skills', Skill, 'Skill', SkillCreate, SkillUpdate, _skill_order),
    'projects': Resource(
        'projects', Project, 'Project', ProjectCreate, ProjectUpdate, _project_order,
        admin_order=_project_admin_order,
        sanitized_fields=('content',),
    ),
    'services': Resource('services', Service, 'Service', ServiceCreate, ServiceUpdate, _service_order),
    'certificates': Resource(
        'certificates', Certificate, 'Certificate', CertificateCreate, CertificateUpdate, _certificate_order,
        sanitized_fields=('description',),
    ),
    'education': Resource(
        'education', Education, 'Education', EducationCreate, EducationUpdate, _education_order,
        sanitized_fields=('description',),
    ),
    'pages': Resource('pages', Page, 'Page', PageCreate, PageUpdate, _page_order, public=False),
    'messages': Resource('messages', Message, 'Message', None, MessageUpdate, _message_order, public=False),
}
PUBLIC_RESOURCES = tuple(name for name, resource in RESOURCES.items() if resource.public)


def get_resource(name, public=False):
    resource = RESOURCES.get(name)
    if resource is None or (public and not resource.public):
        return None
    return resource


def validate_payload(schema, payload, prefix=(), status_code=None):
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc, status_code=status_code, prefix=prefix) from exc


# Serialization

def serialize(record, exclude=()):
    data = {}
    for column in record.__table__.columns:
        if column.key in exclude:
            continue
        data[to_camel(column.key)] = to_json_value(getattr(record, column.key))
    return data


def _public_exclude(record):
    return INTERNAL_FIELDS | {c.key for c in record.__table__.columns if c.key.endswith('_path')}


def serialize_section(section, exclude=()):
    return serialize(section, exclude=exclude)


def serialize_page(page, public=False):
    if public:
        data = serialize(page, exclude=_public_exclude(page))
        data['sections'] = [serialize_section(s, exclude={'page_id'}) for s in page.sections if s.is_visible]
        return data
    data = serialize(page)
    data['sections'] = [serialize_section(s) for s in page.sections]
    return data


def admin_view(record):
    if isinstance(record, Page):
        return serialize_page(record)
    return serialize(record)


def public_view(record):
    data = serialize(record, exclude=_public_exclude(record))
    if isinstance(record, Skill):
        data['proficiency'] = record.level
    elif isinstance(record, Service) and not record.short_desc:
        description = record.description or ''
        data['shortDesc'] = description[:SHORT_DESC_LENGTH] + '...'
    return data


def public_profile(profile):
    data = serialize(profile)
    return {field: data.get(field) for field in PUBLIC_PROFILE_FIELDS}


def public_site_settings(settings):
    return serialize(settings, exclude=_public_exclude(settings) | {'id', 'created_at'})


def fallback_site_settings():
    return {to_camel(key): value for key, value in DEFAULT_SITE_SETTINGS.items()}


# Public reads

def list_public(resource, limit=None, featured=None, category=None):
    model = resource.model
    query = model.query.filter(model.is_visible.is_(True))
    if featured is not None and resource.has_column('featured'):
        query = query.filter(model.featured.is_(featured))
    if category and category.lower() != 'all' and resource.has_column('category'):
        query = query.filter(model.category == category)
    query = query.order_by(*resource.public_order())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_admin(resource, archived=None):
    model = resource.model
    query = model.query
    if model is Message:
        if archived == 'only':
            query = query.filter(Message.is_archived.is_(True))
        elif archived != 'true':
            query = query.filter(Message.is_archived.is_(False))
    return query.order_by(*resource.admin_order()).all()


def get_record(resource, record_id):
    record = db.session.get(resource.model, record_id)
    if record is None:
        raise NotFoundError(resource.label)
    return record


# Writes

def _reject_nulls(model, changes):
    columns = model.__table__.columns
    errors = []
    for field, value in changes.items():
        if value is None and field in columns and not columns[field].nullable:
            errors.append({
                'field': to_camel(field),
                'message': 'Field cannot be null',
                'type': 'null_not_allowed',
            })
    if errors:
        raise ValidationError(details=errors)


def _check_version(record, expected_version):
    if expected_version is not None and expected_version != record.version:
        raise ConflictError(
            f'{type(record).__name__} was modified (expected version {expected_version}, found {record.version})'
        )


def _sanitize(resource, changes):
    for field in resource.sanitized_fields:
        if field in changes:
            changes[field] = sanitize_html(changes[field])


def _next_service_order():
    current_max = db.session.query(func.max(Service.order)).scalar()
    return 0 if current_max is None else current_max + 1


def _page_slug(value):
    slug = slugify(value or '')
    if not slug:
        raise ValidationError.for_field('slug', 'Slug could not be derived from the title')
    return slug


def create_record(resource, payload):
    data = validate_payload(resource.create_schema, payload).model_dump()
    _sanitize(resource, data)
    sections = []
    if resource.model is Service and data.get('order') is None:
        data['order'] = _next_service_order()
    if resource.model is Page:
        data['slug'] = _page_slug(data.get('slug') or data['title'])
        sections = data.pop('sections', [])

    record = resource.model(**data)
    db.session.add(record)
    if sections:
        upsert_sections(record, sections)
    db.session.commit()
    current_app.logger.info(f'Created {resource.label} {record.id}')
    return record


def update_record(resource, record_id, payload, commit=True):
    """Merge ``payload`` onto the stored record.

    With ``commit=False`` the changes stay pending in the session so the
    caller can fold them into a larger write.
    """
    record = get_record(resource, record_id)
    changes = validate_payload(resource.update_schema, payload).model_dump(exclude_unset=True)
    _check_version(record, changes.pop('version', None))
    _reject_nulls(resource.model, changes)
    _sanitize(resource, changes)
    if resource.model is Page and 'slug' in changes:
        changes['slug'] = _page_slug(changes['slug'])
    for field, value in changes.items():
        setattr(record, field, value)
    if commit:
        db.session.commit()
        current_app.logger.info(f'Updated {resource.label} {record.id} fields={sorted(changes)}')
    return record


def delete_record(resource, record_id):
    record = get_record(resource, record_id)
    db.session.delete(record)
    db.session.commit()
    current_app.logger.info(f'Deleted {resource.label} {record_id}')


# Sections

def upsert_sections(page, sections):
    """Create or update sections of ``page`` keyed by their name.

    ``sections`` holds the dumped ``SectionPayload`` dicts, unset keys
    excluded; existing sections keep every field the payload omits.
    """
    existing = {section.name: section for section in page.sections}
    resolved = []
    # Validate every section before mutating any of them.
    for index, data in enumerate(sections):
        section = existing.get(data['name'])
        section_type = data.get('type') or (section.type if section else SECTION_TYPE_CONTENT)
        content = data.get('content')
        if 'content' not in data and section is not None and section.type != section_type:
            # A retyped section keeps only the stored keys its new type defines.
            content = section.content
        if content is not None:
            try:
                data['content'] = parse_section_content(section_type, content)
            except PydanticValidationError as exc:
                raise ValidationError.from_pydantic(exc, prefix=('sections', index, 'content')) from exc
        resolved.append((data, section_type))

    for data, section_type in resolved:
        section = existing.get(data['name'])
        if section is None:
            section = PageSection(name=data['name'], type=section_type, order=0, is_visible=True)
            page.sections.append(section)
            existing[section.name] = section
        for field, value in data.items():
            if field == 'type':
                value = section_type
            if value is None and field in ('order', 'is_visible', 'type'):
                continue
            setattr(section, field, value)
    return page


def dump_sections(section_payloads):
    return [section.model_dump(exclude_unset=True) for section in section_payloads]


# Singletons

def get_singleton(model):
    return model.query.filter_by(key=SINGLETON_KEY).first()


def _upsert_singleton(model, schema, payload, defaults, required_on_create=()):
    changes = validate_payload(schema, payload).model_dump(exclude_unset=True)
    expected_version = changes.pop('version', None)
    record = get_singleton(model)
    created = record is None
    missing = [field for field in required_on_create if not changes.get(field)]
    if created and missing:
        raise ValidationError(missing=[to_camel(f) for f in missing], details=[
            {'field': to_camel(f), 'message': 'Field required', 'type': 'missing'} for f in missing
        ])
    _reject_nulls(model, changes)
    if created:
        values = copy.deepcopy(defaults)
        values.update(changes)
        record = model(key=SINGLETON_KEY, **values)
        db.session.add(record)
    else:
        _check_version(record, expected_version)
        for field, value in changes.items():
            setattr(record, field, value)
    db.session.commit()
    current_app.logger.info(f"{'Created' if created else 'Updated'} {model.__name__} {record.id}")
    return record, created


def upsert_profile(payload):
    return _upsert_singleton(Profile, ProfileUpdate, payload, PROFILE_CREATE_DEFAULTS)


def upsert_site_settings(payload):
    defaults = {key: value for key, value in DEFAULT_SITE_SETTINGS.items() if key != 'site_name'}
    return _upsert_singleton(
        SiteSettings, SiteSettingsUpdate, payload, defaults, required_on_create=('site_name',)
    )


# Dashboard

def _count(model, *criteria):
    stmt = select(func.count(model.id))
    if criteria:
        stmt = stmt.where(*criteria)
    return stmt.scalar_subquery()


def dashboard_snapshot():
    """Collect every dashboard counter in one SELECT so they share a snapshot."""
    month_start = utc_now_naive().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    counters = {
        'projects.total': _count(Project),
        'projects.visible': _count(Project, Project.is_visible.is_(True)),
        'projects.featured': _count(Project, Project.featured.is_(True)),
        'projects.thisMonth': _count(Project, Project.created_at >= month_start),
        'skills.total': _count(Skill),
        'skills.visible': _count(Skill, Skill.is_visible.is_(True)),
        'skills.thisMonth': _count(Skill, Skill.created_at >= month_start),
        'messages.total': _count(Message),
        'messages.unread': _count(Message, Message.status == MESSAGE_STATUS_UNREAD),
        'messages.thisMonth': _count(Message, Message.created_at >= month_start),
        'services.total': _count(Service),
        'services.visible': _count(Service, Service.is_visible.is_(True)),
        'certificates.total': _count(Certificate),
        'certificates.visible': _count(Certificate, Certificate.is_visible.is_(True)),
        'education.total': _count(Education),
        'education.visible': _count(Education, Education.is_visible.is_(True)),
    }
    labels = list(counters)
    row = db.session.execute(
        select(*[counters[label].label(label.replace('.', '_')) for label in labels])
    ).one()

    stats = {}
    for label, value in zip(labels, row):
        entity, counter = label.split('.', 1)
        stats.setdefault(entity, {})[counter] = int(value or 0)

    recent_projects = Project.query.order_by(Project.updated_at.desc(), Project.id.asc()).limit(5).all()
    recent_messages = Message.query.order_by(Message.created_at.desc(), Message.id.asc()).limit(5).all()
    return {
        'stats': stats,
        'recentProjects': [serialize(p) for p in recent_projects],
        'recentMessages': [serialize(m) for m in recent_messages],
    }
