import copy

from flask import current_app

from .models import (
    db,
    Page,
    PageSection,
    HOME_PAGE_NAME,
    SECTION_TYPE_CONTENT,
    SECTION_TYPE_CTA,
)

HOME_PAGE_DEFAULTS = {
    'name': HOME_PAGE_NAME,
    'title': 'Home Page',
    'slug': 'home',
    'description': 'Portfolio home page content',
    'order': 0,
    'is_visible': True,
}

DEFAULT_HOME_SECTIONS = [
    {
        'name': 'skills_title',
        'type': SECTION_TYPE_CONTENT,
        'title': 'Technologies & Skills',
        'subtitle': 'Expertise in modern technologies and frameworks',
        'content': None,
        'order': 0,
    },
    {
        'name': 'what_i_do_title',
        'type': SECTION_TYPE_CONTENT,
        'title': 'What I Do',
        'subtitle': 'I specialize in building modern web applications using cutting-edge technologies',
        'content': None,
        'order': 1,
    },
    {
        'name': 'frontend_section',
        'type': SECTION_TYPE_CONTENT,
        'title': 'Frontend',
        'subtitle': None,
        'content': {'description': 'React, Next.js, TypeScript, Tailwind CSS'},
        'order': 2,
    },
    {
        'name': 'backend_section',
        'type': SECTION_TYPE_CONTENT,
        'title': 'Backend',
        'subtitle': None,
        'content': {'description': 'Node.js, Python, PostgreSQL, MongoDB'},
        'order': 3,
    },
    {
        'name': 'mobile_section',
        'type': SECTION_TYPE_CONTENT,
        'title': 'Mobile',
        'subtitle': None,
        'content': {'description': 'React Native, Flutter, Progressive Web Apps'},
        'order': 4,
    },
    {
        'name': 'devops_section',
        'type': SECTION_TYPE_CONTENT,
        'title': 'DevOps',
        'subtitle': None,
        'content': {'description': 'Docker, AWS, CI/CD, Git'},
        'order': 5,
    },
    {
        'name': 'projects_title',
        'type': SECTION_TYPE_CONTENT,
        'title': 'Featured Projects',
        'subtitle': 'Here are some of my recent projects that showcase my skills and expertise',
        'content': None,
        'order': 6,
    },
    {
        'name': 'cta_section',
        'type': SECTION_TYPE_CTA,
        'title': 'Ready to Start Your Project?',
        'subtitle': (
            "Let's work together to bring your ideas to life. I'm always excited to take on "
            'new challenges and create amazing experiences.'
        ),
        'content': {
            'primaryButton': 'Start a Conversation',
            'secondaryButton': 'Learn More About Me',
        },
        'order': 7,
    },
]

# Served by the public profile read whenever the stored profile is missing
# or the store cannot be reached.
FALLBACK_PROFILE = {
    'fullName': 'John Doe',
    'title': 'Full Stack Developer',
    'bio': 'Full Stack Developer passionate about creating exceptional digital experiences.',
    'avatar': None,
    'resume': None,
    'location': 'San Francisco, CA',
    'email': 'john.doe@example.com',
    'phone': '+1 (555) 123-4567',
    'website': 'https://johndoe.dev',
    'linkedIn': 'https://linkedin.com/in/johndoe',
    'github': 'https://github.com/johndoe',
    'twitter': 'https://twitter.com/johndoe',
    'instagram': None,
    'youTube': None,
}

# Used when the first admin write creates the profile row.
PROFILE_CREATE_DEFAULTS = {
    'full_name': 'Portfolio Owner',
    'title': 'Professional',
    'bio': 'Welcome to my portfolio.',
    'email': 'contact@example.com',
    'is_visible': True,
}

DEFAULT_SITE_SETTINGS = {
    'site_name': 'Portfolio',
    'site_description': 'Building amazing web experiences with modern technologies.',
    'logo': None,
    'favicon': None,
    'colors': {'primary': '#3b82f6', 'secondary': '#64748b'},
    'fonts': {'heading': 'Inter', 'body': 'Inter'},
    'social': {'github': '#', 'linkedin': '#', 'twitter': '#', 'email': '#'},
    'contact': {'email': 'contact@example.com', 'phone': '+1 (555) 123-4567'},
    'analytics': {'enabled': False},
    'maintenance': False,
}

HOME_SKILLS_FALLBACK_TITLE = 'Technologies & Skills'
HOME_SKILLS_FALLBACK_SUBTITLE = 'Expertise in modern technologies and frameworks'


def default_home_sections():
    return copy.deepcopy(DEFAULT_HOME_SECTIONS)


def ensure_home_page():
    """Return the home page, creating it with the default sections if absent."""
    page = Page.query.filter_by(name=HOME_PAGE_NAME).first()
    if page:
        return page, False
    page = Page(**HOME_PAGE_DEFAULTS)
    for section in default_home_sections():
        page.sections.append(PageSection(is_visible=True, **section))
    db.session.add(page)
    db.session.commit()
    current_app.logger.info(f'Created home page {page.id} with {len(page.sections)} default sections.')
    return page, True


def seed_database():
    ensure_home_page()
