"""Shared helpers used across route modules."""
from datetime import date, datetime

import bleach
from flask import request

from .errors import MalformedPayloadError

ALLOWED_RICH_TEXT_TAGS = [
    'p', 'br', 'strong', 'em', 'b', 'i', 'u', 'blockquote', 'code', 'pre',
    'ul', 'ol', 'li', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'a', 'img', 'table', 'thead', 'tbody', 'tr', 'th', 'td', 'hr', 'div', 'span'
]
ALLOWED_RICH_TEXT_ATTRIBUTES = {
    '*': ['class'],
    'a': ['href', 'title', 'target', 'rel'],
    'img': ['src', 'alt', 'title', 'width', 'height'],
}
ALLOWED_RICH_TEXT_PROTOCOLS = ['http', 'https', 'mailto']


def sanitize_html(value, max_length=100000):
    if value is None:
        return None
    cleaned = bleach.clean(
        str(value).strip(),
        tags=ALLOWED_RICH_TEXT_TAGS,
        attributes=ALLOWED_RICH_TEXT_ATTRIBUTES,
        protocols=ALLOWED_RICH_TEXT_PROTOCOLS,
        strip=True,
    )
    return cleaned[:max_length]


def to_json_value(value):
    if isinstance(value, datetime):
        return value.isoformat(timespec='milliseconds') + 'Z'
    if isinstance(value, date):
        return value.isoformat()
    return value


def get_json_payload():
    """Return the request body as a JSON object; an empty body reads as ``{}``."""
    if not request.get_data(cache=True).strip():
        return {}
    payload = request.get_json(force=True, silent=True)
    if not isinstance(payload, dict):
        raise MalformedPayloadError()
    return payload


def parse_bool_arg(value):
    """Parse a query-string flag; only the literal ``true`` enables it."""
    return (value or '').strip().lower() == 'true'
