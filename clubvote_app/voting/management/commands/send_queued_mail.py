import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, override

from django.core.management.base import BaseCommand
from django.db import connection
from post_office.mail import get_queued
from post_office.management.commands.send_queued_mail import Command as PostOfficeCommand

logger = logging.getLogger(__name__)

# Receipt mail is drained by a scheduled job. Overlapping runs must not send
# the same queued message twice, so only one run holds this lock at a time.
_MAIL_LOCK_NAMESPACE = 4107
_MAIL_LOCK_KEY = 52001


@contextmanager
def _exclusive_run() -> Iterator[bool]:
    if connection.vendor != "postgresql":
        yield True
        return

    with connection.cursor() as cursor:
        cursor.execute("SELECT pg_try_advisory_lock(%s, %s)", [_MAIL_LOCK_NAMESPACE, _MAIL_LOCK_KEY])
        row = cursor.fetchone()
    acquired = bool(row and row[0])
    try:
        yield acquired
    finally:
        if acquired:
            with connection.cursor() as cursor:
                cursor.execute("SELECT pg_advisory_unlock(%s, %s)", [_MAIL_LOCK_NAMESPACE, _MAIL_LOCK_KEY])


class Command(BaseCommand):
    help = "Send queued ballot receipt emails, skipping if another run is active."

    @override
    def add_arguments(self, parser) -> None:
        PostOfficeCommand().add_arguments(parser)

    @override
    def handle(self, *args: Any, **options: Any) -> Any:
        if options.get("log_level") is None:
            options["log_level"] = 2
        with _exclusive_run() as acquired:
            if not acquired:
                logger.info("send_queued_mail: another run holds the mail lock; skipping")
                return None
            if not get_queued().exists():
                return None
            return PostOfficeCommand().handle(*args, **options)
