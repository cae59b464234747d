from django.contrib import admin
from .models import Post, PostMeta, Term, TermMeta, Attachment, Option


class PostMetaInline(admin.TabularInline):
    model = PostMeta
    extra = 0


class TermMetaInline(admin.TabularInline):
    model = TermMeta
    extra = 0


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ('title', 'post_type', 'slug', 'path', 'status', 'published_at')
    list_filter = ('post_type', 'status')
    search_fields = ('title', 'slug', 'path')
    readonly_fields = ('created_at', 'updated_at')
    inlines = [PostMetaInline]


@admin.register(Term)
class TermAdmin(admin.ModelAdmin):
    list_display = ('name', 'taxonomy', 'slug')
    list_filter = ('taxonomy',)
    search_fields = ('name', 'slug')
    inlines = [TermMetaInline]


@admin.register(Attachment)
class AttachmentAdmin(admin.ModelAdmin):
    list_display = ('url', 'title', 'alt_text', 'updated_at')
    search_fields = ('url', 'title', 'alt_text')


@admin.register(Option)
class OptionAdmin(admin.ModelAdmin):
    list_display = ('name', 'updated_at')
    search_fields = ('name',)
