import time

from flask import current_app
from sqlalchemy.exc import DisconnectionError, OperationalError

from .models import db

RETRYABLE_ERRORS = (OperationalError, DisconnectionError)


def with_database_retry(operation, attempts=None, delay_seconds=None, sleep=None):
    """Run ``operation`` and retry connection-class failures with backoff.

    Waits ``delay * 2 ** (attempt - 1)`` between attempts. Any other error,
    or the last connection failure, propagates to the caller.
    """
    config = current_app.config
    if attempts is None:
        attempts = config.get('DB_RETRY_ATTEMPTS', 3)
    if delay_seconds is None:
        delay_seconds = config.get('DB_RETRY_DELAY_SECONDS', 0.5)
    sleep = sleep or config.get('DB_RETRY_SLEEP') or time.sleep
    attempts = max(1, int(attempts))

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts:
                current_app.logger.error(f'Database operation failed after {attempt} attempts: {exc}')
                raise
            wait = delay_seconds * (2 ** (attempt - 1))
            current_app.logger.warning(
                f'Database connection error (attempt {attempt}/{attempts}), retrying in {wait:.2f}s'
            )
            sleep(wait)
