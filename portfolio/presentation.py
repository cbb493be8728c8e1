"""View-model derivation for the public pages.

Everything here is a pure function of its input: the same ordered
collection always yields the same grouped or rendered structure.
"""
from pydantic import ValidationError as PydanticValidationError

from .schemas import SECTION_CONTENT_MODELS, dump_section_content

OTHER_CATEGORY = 'Other'
ALL_CATEGORIES = 'all'
SECTION_BASE_FIELDS = ('id', 'name', 'type', 'title', 'subtitle', 'order')


def _skill_sort_key(skill):
    level = skill.get('level')
    return (-(level if isinstance(level, (int, float)) else 0), skill.get('name') or '')


def _category_sort_key(category):
    return (category.casefold(), category)


def group_skills(skills):
    groups = {}
    for skill in skills:
        category = skill.get('category')
        if category is None:
            category = OTHER_CATEGORY
        groups.setdefault(category, []).append(skill)
    return [
        {'category': category, 'skills': sorted(groups[category], key=_skill_sort_key)}
        for category in sorted(groups, key=_category_sort_key)
    ]


def filter_projects(projects, limit=None, featured_only=False, category=None):
    wanted = (category or '').strip().lower()
    if wanted == ALL_CATEGORIES:
        wanted = ''
    matches = []
    for project in projects:
        if featured_only and not project.get('featured'):
            continue
        if wanted and (project.get('category') or '').lower() != wanted:
            continue
        matches.append(project)
    if limit is not None:
        matches = matches[:max(0, int(limit))]
    return matches


def render_section(section):
    rendered = {field: section.get(field) for field in SECTION_BASE_FIELDS}
    content_model = SECTION_CONTENT_MODELS.get(section.get('type'))
    content = section.get('content')
    if content_model is None or not isinstance(content, dict):
        return rendered
    try:
        parsed = content_model.model_validate(content)
    except PydanticValidationError:
        return rendered
    rendered['content'] = dump_section_content(parsed)
    return rendered


def _section_sort_key(section):
    order = section.get('order')
    return (order if isinstance(order, int) else 0, section.get('name') or '')


def compose_page(page, sections):
    visible = [s for s in sections if s.get('isVisible', True)]
    return {
        'page': page,
        'sections': [render_section(s) for s in sorted(visible, key=_section_sort_key)],
    }
