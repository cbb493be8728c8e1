from datetime import datetime, timezone
import uuid
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

SINGLETON_KEY = 'primary'

MESSAGE_STATUS_UNREAD = 'UNREAD'
MESSAGE_STATUS_READ = 'READ'
MESSAGE_STATUS_REPLIED = 'REPLIED'
MESSAGE_STATUSES = (
    MESSAGE_STATUS_UNREAD,
    MESSAGE_STATUS_READ,
    MESSAGE_STATUS_REPLIED,
)

SECTION_TYPE_CONTENT = 'CONTENT'
SECTION_TYPE_CTA = 'CTA'
SECTION_TYPES = (
    SECTION_TYPE_CONTENT,
    SECTION_TYPE_CTA,
)

HOME_PAGE_NAME = 'home'


def utc_now_naive():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id():
    return uuid.uuid4().hex


class Profile(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    key = db.Column(db.String(40), unique=True, nullable=False, default=SINGLETON_KEY)
    full_name = db.Column(db.String(200), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    bio = db.Column(db.Text, nullable=False)
    avatar = db.Column(db.String(500))
    avatar_path = db.Column(db.String(500))
    resume = db.Column(db.String(500))
    resume_path = db.Column(db.String(500))
    location = db.Column(db.String(200))
    email = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(80))
    website = db.Column(db.String(500))
    linked_in = db.Column(db.String(500))
    github = db.Column(db.String(500))
    twitter = db.Column(db.String(500))
    instagram = db.Column(db.String(500))
    you_tube = db.Column(db.String(500))
    is_visible = db.Column(db.Boolean, nullable=False, default=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    __mapper_args__ = {'version_id_col': version}


class Skill(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(120), index=True)
    level = db.Column(db.Integer, nullable=False, default=0)
    icon = db.Column(db.String(200))
    image_url = db.Column(db.String(500))
    image_path = db.Column(db.String(500))
    description = db.Column(db.Text)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_visible = db.Column(db.Boolean, nullable=False, default=True, index=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    __mapper_args__ = {'version_id_col': version}


class Project(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    short_desc = db.Column(db.String(300))
    content = db.Column(db.Text)
    image = db.Column(db.String(500))
    image_path = db.Column(db.String(500))
    images = db.Column(db.JSON, nullable=False, default=list)
    tech_stack = db.Column(db.JSON, nullable=False, default=list)
    category = db.Column(db.String(120), nullable=False, index=True)
    status = db.Column(db.String(40), nullable=False, default='completed')
    featured = db.Column(db.Boolean, nullable=False, default=False, index=True)
    github_url = db.Column(db.String(500))
    live_url = db.Column(db.String(500))
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_visible = db.Column(db.Boolean, nullable=False, default=True, index=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive, index=True)

    __mapper_args__ = {'version_id_col': version}


class Service(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    short_desc = db.Column(db.String(300))
    icon = db.Column(db.String(200))
    image = db.Column(db.String(500))
    image_path = db.Column(db.String(500))
    features = db.Column(db.JSON, nullable=False, default=list)
    pricing = db.Column(db.String(200))
    category = db.Column(db.String(120), index=True)
    featured = db.Column(db.Boolean, nullable=False, default=False, index=True)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_visible = db.Column(db.Boolean, nullable=False, default=True, index=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    __mapper_args__ = {'version_id_col': version}


class Certificate(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False)
    issuer = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    image = db.Column(db.String(500))
    image_path = db.Column(db.String(500))
    credential_id = db.Column(db.String(200))
    credential_url = db.Column(db.String(500))
    issue_date = db.Column(db.Date, nullable=False)
    expiry_date = db.Column(db.Date)
    skills = db.Column(db.JSON, nullable=False, default=list)
    category = db.Column(db.String(120), index=True)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_visible = db.Column(db.Boolean, nullable=False, default=True, index=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    __mapper_args__ = {'version_id_col': version}


class Education(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    institution = db.Column(db.String(200), nullable=False)
    degree = db.Column(db.String(200), nullable=False)
    field = db.Column(db.String(200))
    description = db.Column(db.Text)
    grade = db.Column(db.String(80))
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date)
    is_current = db.Column(db.Boolean, nullable=False, default=False)
    location = db.Column(db.String(200))
    achievements = db.Column(db.JSON, nullable=False, default=list)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_visible = db.Column(db.Boolean, nullable=False, default=True, index=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    __mapper_args__ = {'version_id_col': version}


class Page(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(80), unique=True, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_visible = db.Column(db.Boolean, nullable=False, default=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)
    sections = db.relationship(
        'PageSection',
        backref='page',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='(PageSection.order, PageSection.name)',
    )

    __mapper_args__ = {'version_id_col': version}


class PageSection(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    page_id = db.Column(db.String(32), db.ForeignKey('page.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(80), nullable=False)
    type = db.Column(db.String(20), nullable=False, default=SECTION_TYPE_CONTENT)
    title = db.Column(db.String(300))
    subtitle = db.Column(db.Text)
    content = db.Column(db.JSON)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_visible = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    __table_args__ = (
        db.UniqueConstraint('page_id', 'name', name='uq_page_section_page_name'),
    )


class Message(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    subject = db.Column(db.String(300))
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=MESSAGE_STATUS_UNREAD, index=True)
    is_archived = db.Column(db.Boolean, nullable=False, default=False, index=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    __mapper_args__ = {'version_id_col': version}


class SiteSettings(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    key = db.Column(db.String(40), unique=True, nullable=False, default=SINGLETON_KEY)
    site_name = db.Column(db.String(200), nullable=False)
    site_description = db.Column(db.Text)
    logo = db.Column(db.String(500))
    logo_path = db.Column(db.String(500))
    favicon = db.Column(db.String(500))
    favicon_path = db.Column(db.String(500))
    colors = db.Column(db.JSON, nullable=False, default=dict)
    fonts = db.Column(db.JSON, nullable=False, default=dict)
    social = db.Column(db.JSON, nullable=False, default=dict)
    contact = db.Column(db.JSON, nullable=False, default=dict)
    analytics = db.Column(db.JSON, nullable=False, default=dict)
    maintenance = db.Column(db.Boolean, nullable=False, default=False)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    __mapper_args__ = {'version_id_col': version}
