import base64
import smtplib
import urllib.error
import urllib.parse
import urllib.request
from email.message import EmailMessage

from flask import current_app, has_request_context, request


def _safe_header_value(value, max_length=240):
    # Prevent header injection by stripping CR/LF and collapsing whitespace.
    cleaned = ' '.join((value or '').replace('\r', ' ').replace('\n', ' ').split())
    return cleaned[:max_length]


def _split_recipients(raw):
    recipients = []
    seen = set()
    for item in (raw or '').split(','):
        cleaned = _safe_header_value(item, max_length=320)
        normalized = cleaned.lower()
        if cleaned and normalized not in seen:
            recipients.append(cleaned)
            seen.add(normalized)
    return recipients


def _resolve_base_url():
    configured = (current_app.config.get('APP_BASE_URL') or '').rstrip('/')
    if configured:
        return configured
    if has_request_context():
        try:
            return (request.host_url or '').rstrip('/')
        except RuntimeError:
            return ''
    return ''


def _message_admin_url(message_id):
    return f"{_resolve_base_url()}/admin/messages/{message_id}"


def _send_via_mailgun(subject, body, recipients, mail_from, reply_to=None):
    """Send through the Mailgun HTTP API; returns None when not configured."""
    api_key = (current_app.config.get('MAILGUN_API_KEY') or '').strip()
    domain = (current_app.config.get('MAILGUN_DOMAIN') or '').strip()
    if not api_key or not domain:
        return None

    url = f"https://api.mailgun.net/v3/{domain}/messages"
    fields = {
        'from': mail_from,
        'to': ', '.join(recipients),
        'subject': subject,
        'text': body,
    }
    if reply_to:
        fields['h:Reply-To'] = reply_to
    data = urllib.parse.urlencode(fields).encode('utf-8')

    auth = base64.b64encode(f"api:{api_key}".encode()).decode()

    req = urllib.request.Request(url, data=data, method='POST')
    req.add_header('Authorization', f'Basic {auth}')

    try:
        with urllib.request.urlopen(req, timeout=15):  # nosec B310
            current_app.logger.info('Mailgun email sent successfully.')
            return True
    except urllib.error.HTTPError as e:
        error_body = e.read().decode('utf-8', errors='replace')
        current_app.logger.error(f'Mailgun API error {e.code}: {error_body}')
        return False
    except (urllib.error.URLError, OSError):
        current_app.logger.exception('Mailgun email delivery failed.')
        return False


def _send_via_smtp(subject, body, recipients, mail_from, reply_to=None):
    """Send through SMTP; returns None when no host is configured."""
    host = (current_app.config.get('SMTP_HOST') or '').strip()
    if not host:
        return None

    port = int(current_app.config.get('SMTP_PORT') or 587)
    username = current_app.config.get('SMTP_USERNAME') or ''
    password = current_app.config.get('SMTP_PASSWORD') or ''
    use_ssl = bool(current_app.config.get('SMTP_USE_SSL'))
    use_tls = bool(current_app.config.get('SMTP_USE_TLS'))

    message = EmailMessage()
    message['Subject'] = subject
    message['From'] = mail_from
    message['To'] = ', '.join(recipients)
    if reply_to:
        message['Reply-To'] = reply_to
    message.set_content(body)

    try:
        if use_ssl:
            smtp = smtplib.SMTP_SSL(host=host, port=port, timeout=12)
        else:
            smtp = smtplib.SMTP(host=host, port=port, timeout=12)

        with smtp:
            if use_tls and not use_ssl:
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(message)
        return True
    except (smtplib.SMTPException, OSError):
        current_app.logger.exception('SMTP email delivery failed.')
        return False


def send_email(subject, body, recipients, reply_to=None):
    if not recipients:
        return False

    mail_from = _safe_header_value(current_app.config.get('MAIL_FROM') or 'no-reply@localhost', max_length=254)
    safe_subject = _safe_header_value(subject, max_length=240)
    safe_reply_to = _safe_header_value(reply_to, max_length=320) or None

    result = _send_via_mailgun(safe_subject, body, recipients, mail_from, reply_to=safe_reply_to)
    if result is not None:
        return result

    result = _send_via_smtp(safe_subject, body, recipients, mail_from, reply_to=safe_reply_to)
    if result is not None:
        return result

    current_app.logger.info('No email provider configured (set MAILGUN_API_KEY+MAILGUN_DOMAIN or SMTP_HOST).')
    return False


def send_contact_notification(message):
    recipients = _split_recipients(current_app.config.get('CONTACT_NOTIFICATION_EMAILS'))
    if not recipients:
        return False

    subject_text = _safe_header_value(message.subject or 'Portfolio Contact', max_length=180) or 'Portfolio Contact'
    subject = f"[Portfolio] New message: {subject_text}"
    body = "\n".join([
        "A new message was sent through the portfolio contact form.",
        "",
        f"Name: {message.name}",
        f"Email: {message.email}",
        f"Subject: {subject_text}",
        "",
        "Message:",
        message.message or "",
        "",
        f"Review it at {_message_admin_url(message.id)}",
    ])
    return send_email(subject, body, recipients, reply_to=message.email)
