from django.contrib import admin
from .models import SeoRecord


@admin.register(SeoRecord)
class SeoRecordAdmin(admin.ModelAdmin):
    list_display = ('url_normalized', 'resolved_entity_id', 'title', 'has_backup', 'updated_at')
    list_filter = ('updated_at',)
    search_fields = ('url', 'url_normalized', 'title')
    readonly_fields = ('url_normalized', 'created_at', 'updated_at')

    @admin.display(boolean=True)
    def has_backup(self, obj):
        return obj.has_backup
