from portfolio import notifications
from portfolio.models import Message


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout):
        self.host = host
        self.port = port
        self.started_tls = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        pass

    def send_message(self, message):
        FakeSMTP.sent.append((self, message))


def contact_message():
    return Message(
        id="abc123",
        name="Sam",
        email="sam@example.com",
        subject="Project\r\nBcc: victim@example.com",
        message="I would like to hire you.",
    )


def test_split_recipients_dedupes_case_insensitively():
    assert notifications._split_recipients("a@x.com, A@X.com,,b@x.com") == ["a@x.com", "b@x.com"]
    assert notifications._split_recipients(None) == []


def test_contact_notification_without_recipients_is_skipped(app):
    with app.app_context():
        assert notifications.send_contact_notification(contact_message()) is False


def test_contact_notification_goes_through_smtp(app, monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    app.config.update(
        CONTACT_NOTIFICATION_EMAILS="owner@example.com",
        SMTP_HOST="smtp.example.com",
        SMTP_USE_TLS=True,
        SMTP_USE_SSL=False,
        APP_BASE_URL="https://portfolio.example.com",
    )
    with app.app_context():
        assert notifications.send_contact_notification(contact_message()) is True

    smtp, message = FakeSMTP.sent[0]
    assert smtp.host == "smtp.example.com"
    assert smtp.started_tls is True
    assert message["To"] == "owner@example.com"
    assert message["Reply-To"] == "sam@example.com"
    assert message["Subject"] == "[Portfolio] New message: Project Bcc: victim@example.com"
    assert message["Bcc"] is None
    assert "https://portfolio.example.com/admin/messages/abc123" in message.get_content()


def test_smtp_failure_reports_false(app, monkeypatch):
    def refuse(*args, **kwargs):
        raise OSError("connection refused")

    monkeypatch.setattr(notifications.smtplib, "SMTP", refuse)
    app.config.update(CONTACT_NOTIFICATION_EMAILS="owner@example.com", SMTP_HOST="smtp.example.com")
    with app.app_context():
        assert notifications.send_contact_notification(contact_message()) is False
