"""
Models for the ClickRank integration: the activity log shown to site owners.
"""
from django.db import models


class LogEntryManager(models.Manager):
    def trim(self, max_entries):
        """Delete all but the newest `max_entries` rows. Returns the number deleted."""
        ids = list(self.order_by('-id').values_list('id', flat=True)[max_entries:max_entries + 1])
        if not ids:
            return 0
        deleted, _ = self.filter(id__lte=ids[0]).delete()
        return deleted


class LogEntry(models.Model):
    """
    One line of the ClickRank activity log, written by
    integrations.logging_handlers.DatabaseLogHandler.
    """
    LEVEL_CHOICES = [
        ('DEBUG', 'Debug'),
        ('INFO', 'Info'),
        ('WARNING', 'Warning'),
        ('ERROR', 'Error'),
        ('CRITICAL', 'Critical'),
    ]
    MAX_MESSAGE_LENGTH = 2000

    time = models.DateTimeField(auto_now_add=True, db_index=True)
    level = models.CharField(max_length=10, choices=LEVEL_CHOICES, default='INFO')
    message = models.TextField()

    objects = LogEntryManager()

    class Meta:
        db_table = 'clickrank_logs'
        ordering = ['-time', '-id']

    def __str__(self):
        return f"[{self.level}] {self.message[:80]}"
