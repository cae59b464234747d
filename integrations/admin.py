from django.contrib import admin
from .models import LogEntry


@admin.register(LogEntry)
class LogEntryAdmin(admin.ModelAdmin):
    list_display = ('time', 'level', 'message')
    list_filter = ('level', 'time')
    search_fields = ('message',)
    readonly_fields = ('time', 'level', 'message')
