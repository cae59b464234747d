"""
Serializers for ClickRank optimization payloads (webhook and sync items).

Validation doubles as sanitization: text fields lose HTML tags, image entries
without an image URL and empty link-title pairs are dropped.
"""
import json
import re

from django.utils.html import strip_tags
from rest_framework import serializers

from seo.models import MAX_URL_LENGTH


def clean_text(value):
    return strip_tags(value or '').strip()


class SanitizedCharField(serializers.CharField):
    """CharField that strips HTML tags. Null reads as empty."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_blank', True)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return clean_text(super().to_internal_value(data))

    def validate_empty_values(self, data):
        if data is None and self.allow_null:
            return (True, '')
        return super().validate_empty_values(data)


class SchemaField(serializers.Field):
    """JSON-LD markup, given either as a string or as a JSON object/array."""

    def to_internal_value(self, data):
        if data is None:
            return ''
        if isinstance(data, (dict, list)):
            return json.dumps(data)
        if isinstance(data, str):
            return data.strip()
        raise serializers.ValidationError('Expected a JSON string, object or array.')

    def to_representation(self, value):
        return value


class ImageOptimizationSerializer(serializers.Serializer):
    image_url = SanitizedCharField(required=True, allow_blank=False, allow_null=False, max_length=1000)
    new_alt_text = SanitizedCharField(max_length=1000)
    new_title = SanitizedCharField(max_length=500)

    def to_internal_value(self, data):
        validated = super().to_internal_value(data)
        # Unset values stay unset, so the attachment keeps what it has
        return {k: v for k, v in validated.items() if k == 'image_url' or data.get(k) is not None}


class OptimizationSerializer(serializers.Serializer):
    """
    One page's optimization as sent by ClickRank.

    page_url is required; everything else is optional. `action` is either
    absent or 'revert', in which case `fields` narrows what is reverted.
    """
    page_url = SanitizedCharField(required=True, allow_blank=False, allow_null=False,
                                  max_length=MAX_URL_LENGTH)
    action = SanitizedCharField(max_length=20)
    page_title = SanitizedCharField()
    meta_description = SanitizedCharField()
    canonical_url = SanitizedCharField(max_length=500)
    page_schema = SchemaField(required=False, allow_null=True)
    term_name = SanitizedCharField(max_length=200)
    fields = serializers.ListField(child=serializers.CharField(), required=False)
    image_optimizations = serializers.ListField(child=serializers.DictField(), required=False)
    link_titles = serializers.DictField(child=serializers.CharField(allow_blank=True, allow_null=True),
                                        required=False)

    def validate_action(self, value):
        return _sanitize_key(value)

    def validate_fields(self, value):
        keys = [key for key in (_sanitize_key(v) for v in value) if key]
        if value and not keys:
            # An empty list would read as "revert everything"
            raise serializers.ValidationError('No valid field names given.')
        return keys

    def validate_image_optimizations(self, value):
        images = []
        for entry in value:
            if not entry.get('image_url'):
                continue
            serializer = ImageOptimizationSerializer(data=entry)
            if serializer.is_valid():
                images.append(serializer.validated_data)
        return images

    def validate_link_titles(self, value):
        links = {}
        for url, title in value.items():
            url, title = clean_text(url), clean_text(title)
            if url and title:
                links[url] = title
        return links


def _sanitize_key(value):
    """Lower-case and keep only [a-z0-9_-]."""
    return re.sub(r'[^a-z0-9_\-]', '', (value or '').lower())
