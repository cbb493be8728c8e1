import os
import uuid

from flask import current_app
from PIL import Image, ImageOps, UnidentifiedImageError
from slugify import slugify
from werkzeug.utils import secure_filename

from .errors import ValidationError

IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp', 'ico'}
EXTENSION_MIME_TYPES = {
    'png': {'image/png'},
    'jpg': {'image/jpeg'},
    'jpeg': {'image/jpeg'},
    'gif': {'image/gif'},
    'webp': {'image/webp'},
    'ico': {'image/x-icon', 'image/vnd.microsoft.icon'},
    'pdf': {'application/pdf'},
}
ICON_SIZE = (48, 48)


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']


def safe_upload_path(stored_name):
    upload_root = os.path.abspath(current_app.config['UPLOAD_FOLDER'])
    raw_name = (stored_name or '').strip()
    safe_name = secure_filename(raw_name)
    if not safe_name or safe_name != raw_name:
        return None, None
    full_path = os.path.abspath(os.path.join(upload_root, safe_name))
    try:
        if os.path.commonpath([upload_root, full_path]) != upload_root:
            return None, None
    except ValueError:
        return None, None
    return safe_name, full_path


def validate_uploaded_file(file):
    if not file or not file.filename:
        return False

    filename = secure_filename(file.filename)
    if not filename or len(filename) > 180 or not allowed_file(filename):
        return False

    extension = filename.rsplit('.', 1)[1].lower()
    mime_type = (file.mimetype or '').split(';', 1)[0].lower()
    allowed_mimes = current_app.config.get('ALLOWED_UPLOAD_MIME_TYPES', set())
    if (
        mime_type not in allowed_mimes
        or extension not in EXTENSION_MIME_TYPES
        or mime_type not in EXTENSION_MIME_TYPES[extension]
    ):
        return False

    file.stream.seek(0)
    if extension == 'pdf':
        signature = file.stream.read(5)
        file.stream.seek(0)
        return signature == b'%PDF-'

    max_pixels = max(1, int(current_app.config.get('MAX_UPLOAD_IMAGE_PIXELS', 40_000_000)))
    try:
        with Image.open(file.stream) as image:
            width, height = image.size
            if width < 1 or height < 1 or (width * height) > max_pixels:
                return False
            image.verify()
        return True
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        return False
    finally:
        file.stream.seek(0)


def _stored_name(filename, extension):
    stem = filename.rsplit('.', 1)[0]
    return f"{uuid.uuid4().hex[:16]}-{slugify(stem, max_length=80) or 'file'}.{extension}"


def _save_icon(file, full_path):
    with Image.open(file.stream) as image:
        icon = ImageOps.contain(image.convert('RGBA'), ICON_SIZE)
        canvas = Image.new('RGBA', ICON_SIZE, (0, 0, 0, 0))
        canvas.paste(icon, ((ICON_SIZE[0] - icon.width) // 2, (ICON_SIZE[1] - icon.height) // 2))
        canvas.save(full_path, format='PNG')


def save_upload(file, resize_icon=False):
    """Validate and store an uploaded file, returning its public descriptor."""
    if not validate_uploaded_file(file):
        raise ValidationError.for_field('file', 'Invalid or unsupported file.', status_code=400)

    filename = secure_filename(file.filename)
    extension = filename.rsplit('.', 1)[1].lower()
    content_type = (file.mimetype or '').split(';', 1)[0].lower()
    if resize_icon and extension in IMAGE_EXTENSIONS:
        extension = 'png'
        content_type = 'image/png'
    else:
        resize_icon = False

    stored_name = _stored_name(filename, extension)
    full_path = os.path.join(current_app.config['UPLOAD_FOLDER'], stored_name)
    if resize_icon:
        _save_icon(file, full_path)
    else:
        file.save(full_path)
    size = os.path.getsize(full_path)
    current_app.logger.info(f'Stored upload {stored_name} ({size} bytes)')
    return {
        'url': f'/media/{stored_name}',
        'path': stored_name,
        'contentType': content_type,
        'size': size,
    }
