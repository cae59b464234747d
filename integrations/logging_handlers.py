"""
Logging handler that mirrors ClickRank activity into the `clickrank_logs` table.

Wired up in settings.LOGGING for the seo, integrations and content loggers.
A `context` dict passed via `extra` is appended to the message as JSON.
"""
import json
import logging
import random

from django.conf import settings


class DatabaseLogHandler(logging.Handler):
    # Roughly one in TRIM_EVERY writes trims the table
    TRIM_EVERY = 100

    def emit(self, record):
        try:
            # Imported here: handlers are built before the app registry is ready
            from .models import LogEntry

            message = record.getMessage()
            context = getattr(record, 'context', None)
            if context:
                message = f"{message} | {json.dumps(context, default=str, sort_keys=True)}"
            if record.exc_info and record.levelno >= logging.ERROR:
                message = f"{message}\n{self.formatException(record.exc_info)}"

            LogEntry.objects.create(
                level=record.levelname,
                message=message[:LogEntry.MAX_MESSAGE_LENGTH],
            )
            if random.randint(1, self.TRIM_EVERY) == 1:
                LogEntry.objects.trim(settings.CLICKRANK['MAX_LOG_ENTRIES'])
        except Exception:
            self.handleError(record)

    def formatException(self, exc_info):
        return logging.Formatter().formatException(exc_info)
