from datetime import date
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .models import MESSAGE_STATUSES, SECTION_TYPE_CONTENT, SECTION_TYPE_CTA, SECTION_TYPES


def _http_url(value):
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not (value.startswith('https://') or value.startswith('http://')):
        raise ValueError('must be an http(s) URL')
    return value


HttpUrlText = Annotated[str, AfterValidator(_http_url)]
Level = Annotated[int, Field(ge=0, le=100)]
RequiredText = Annotated[str, Field(min_length=1)]
Order = Annotated[int, Field(ge=0)]


class PayloadModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
        str_strip_whitespace=True,
    )


class VersionedUpdate(PayloadModel):
    version: Optional[int] = None


# Skills

class SkillCreate(PayloadModel):
    name: RequiredText
    level: Level
    category: Optional[str] = None
    icon: Optional[str] = None
    image_url: Optional[str] = None
    image_path: Optional[str] = None
    description: Optional[str] = None
    order: Order = 0
    is_visible: bool = True


class SkillUpdate(VersionedUpdate):
    name: Optional[RequiredText] = None
    level: Optional[Level] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    image_url: Optional[str] = None
    image_path: Optional[str] = None
    description: Optional[str] = None
    order: Optional[Order] = None
    is_visible: Optional[bool] = None


# Projects

class ProjectCreate(PayloadModel):
    title: RequiredText
    description: RequiredText
    category: RequiredText
    short_desc: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    image_path: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    tech_stack: List[str] = Field(default_factory=list)
    status: str = 'completed'
    featured: bool = False
    github_url: Optional[HttpUrlText] = None
    live_url: Optional[HttpUrlText] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    order: Order = 0
    is_visible: bool = True


class ProjectUpdate(VersionedUpdate):
    title: Optional[RequiredText] = None
    description: Optional[RequiredText] = None
    category: Optional[RequiredText] = None
    short_desc: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    image_path: Optional[str] = None
    images: Optional[List[str]] = None
    tech_stack: Optional[List[str]] = None
    status: Optional[str] = None
    featured: Optional[bool] = None
    github_url: Optional[HttpUrlText] = None
    live_url: Optional[HttpUrlText] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    order: Optional[Order] = None
    is_visible: Optional[bool] = None


# Services

class ServiceCreate(PayloadModel):
    title: RequiredText
    description: RequiredText
    short_desc: Optional[str] = None
    icon: Optional[str] = None
    image: Optional[str] = None
    image_path: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    pricing: Optional[str] = None
    category: Optional[str] = None
    featured: bool = False
    order: Optional[Order] = None
    is_visible: bool = True


class ServiceUpdate(VersionedUpdate):
    title: Optional[RequiredText] = None
    description: Optional[RequiredText] = None
    short_desc: Optional[str] = None
    icon: Optional[str] = None
    image: Optional[str] = None
    image_path: Optional[str] = None
    features: Optional[List[str]] = None
    pricing: Optional[str] = None
    category: Optional[str] = None
    featured: Optional[bool] = None
    order: Optional[Order] = None
    is_visible: Optional[bool] = None


# Certificates

class CertificateCreate(PayloadModel):
    title: RequiredText
    issuer: RequiredText
    issue_date: date
    description: Optional[str] = None
    image: Optional[str] = None
    image_path: Optional[str] = None
    credential_id: Optional[str] = None
    credential_url: Optional[HttpUrlText] = None
    expiry_date: Optional[date] = None
    skills: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    is_verified: bool = False
    order: Order = 0
    is_visible: bool = True


class CertificateUpdate(VersionedUpdate):
    title: Optional[RequiredText] = None
    issuer: Optional[RequiredText] = None
    issue_date: Optional[date] = None
    description: Optional[str] = None
    image: Optional[str] = None
    image_path: Optional[str] = None
    credential_id: Optional[str] = None
    credential_url: Optional[HttpUrlText] = None
    expiry_date: Optional[date] = None
    skills: Optional[List[str]] = None
    category: Optional[str] = None
    is_verified: Optional[bool] = None
    order: Optional[Order] = None
    is_visible: Optional[bool] = None


# Education

class EducationCreate(PayloadModel):
    institution: RequiredText
    degree: RequiredText
    start_date: date
    field: Optional[str] = None
    description: Optional[str] = None
    grade: Optional[str] = None
    end_date: Optional[date] = None
    is_current: bool = False
    location: Optional[str] = None
    achievements: List[str] = Field(default_factory=list)
    order: Order = 0
    is_visible: bool = True


class EducationUpdate(VersionedUpdate):
    institution: Optional[RequiredText] = None
    degree: Optional[RequiredText] = None
    start_date: Optional[date] = None
    field: Optional[str] = None
    description: Optional[str] = None
    grade: Optional[str] = None
    end_date: Optional[date] = None
    is_current: Optional[bool] = None
    location: Optional[str] = None
    achievements: Optional[List[str]] = None
    order: Optional[Order] = None
    is_visible: Optional[bool] = None


# Pages and sections

class ContentSectionContent(PayloadModel):
    description: Optional[str] = None


class CtaSectionContent(PayloadModel):
    primary_button: Optional[str] = None
    secondary_button: Optional[str] = None


SECTION_CONTENT_MODELS = {
    SECTION_TYPE_CONTENT: ContentSectionContent,
    SECTION_TYPE_CTA: CtaSectionContent,
}


def dump_section_content(model):
    return model.model_dump(by_alias=True, exclude_none=True)


def parse_section_content(section_type, content):
    """Validate ``content`` against the closed shape for ``section_type``."""
    content_model = SECTION_CONTENT_MODELS[section_type]
    return dump_section_content(content_model.model_validate(content))


class SectionPayload(PayloadModel):
    name: Annotated[str, Field(min_length=1, max_length=80)]
    type: Optional[Literal[SECTION_TYPES]] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    content: Optional[Dict[str, Any]] = None
    order: Optional[Order] = None
    is_visible: Optional[bool] = None


class SectionsPayload(PayloadModel):
    sections: List[SectionPayload]


class PageCreate(PayloadModel):
    name: Annotated[str, Field(min_length=1, max_length=80)]
    title: RequiredText
    slug: Optional[str] = None
    description: Optional[str] = None
    order: Order = 0
    is_visible: bool = True
    sections: List[SectionPayload] = Field(default_factory=list)


class PageUpdate(VersionedUpdate):
    name: Optional[Annotated[str, Field(min_length=1, max_length=80)]] = None
    title: Optional[RequiredText] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    order: Optional[Order] = None
    is_visible: Optional[bool] = None


class HomeContentPayload(PayloadModel):
    page: Optional[PageUpdate] = None
    sections: List[SectionPayload] = Field(default_factory=list)


# Messages

class ContactPayload(PayloadModel):
    name: Annotated[str, Field(min_length=2, max_length=200)]
    email: EmailStr
    subject: Optional[Annotated[str, Field(max_length=300)]] = None
    message: Annotated[str, Field(min_length=10, max_length=10000)]


class MessageUpdate(VersionedUpdate):
    status: Optional[Literal[MESSAGE_STATUSES]] = None
    is_archived: Optional[bool] = None


# Singletons

class ProfileUpdate(VersionedUpdate):
    full_name: Optional[RequiredText] = None
    title: Optional[RequiredText] = None
    bio: Optional[RequiredText] = None
    avatar: Optional[str] = None
    avatar_path: Optional[str] = None
    resume: Optional[str] = None
    resume_path: Optional[str] = None
    location: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    website: Optional[HttpUrlText] = None
    linked_in: Optional[HttpUrlText] = None
    github: Optional[HttpUrlText] = None
    twitter: Optional[HttpUrlText] = None
    instagram: Optional[HttpUrlText] = None
    you_tube: Optional[HttpUrlText] = None
    is_visible: Optional[bool] = None


class SiteSettingsUpdate(VersionedUpdate):
    site_name: Optional[RequiredText] = None
    site_description: Optional[str] = None
    logo: Optional[str] = None
    logo_path: Optional[str] = None
    favicon: Optional[str] = None
    favicon_path: Optional[str] = None
    colors: Optional[Dict[str, Any]] = None
    fonts: Optional[Dict[str, Any]] = None
    social: Optional[Dict[str, Any]] = None
    contact: Optional[Dict[str, Any]] = None
    analytics: Optional[Dict[str, Any]] = None
    maintenance: Optional[bool] = None


# Auth and query strings

class LoginPayload(PayloadModel):
    username: RequiredText
    password: RequiredText


class ContentQuery(PayloadModel):
    limit: Optional[Annotated[int, Field(ge=1)]] = None
    featured: Optional[str] = None
    category: Optional[str] = None
