"""
Per-field-class optimization switches, set by the site owner in the option store.
"""
from dataclasses import dataclass, fields

from content.meta import get_option

# toggle attribute -> option name
TOGGLE_OPTIONS = {
    'title': 'clickrank_ai_enable_title_opt',
    'description': 'clickrank_ai_enable_meta_opt',
    'image_alt': 'clickrank_ai_enable_img_alt_opt',
    'schema': 'clickrank_ai_enable_schema_opt',
    'canonical': 'clickrank_ai_enable_canonical_opt',
    'link_title': 'clickrank_ai_enable_link_title_opt',
}

# field class -> toggle attribute
FIELD_TOGGLES = {
    'title': 'title',
    'description': 'description',
    'canonical': 'canonical',
    'schema': 'schema',
    'images': 'image_alt',
    'links': 'link_title',
}


@dataclass(frozen=True)
class ModuleToggleSet:
    title: bool = True
    description: bool = True
    image_alt: bool = True
    schema: bool = True
    canonical: bool = True
    link_title: bool = True

    @classmethod
    def load(cls):
        """Read the toggles from the option store. Unset options count as enabled."""
        return cls(**{
            f.name: _as_bool(get_option(TOGGLE_OPTIONS[f.name], True))
            for f in fields(cls)
        })

    def allows(self, field_class):
        return getattr(self, FIELD_TOGGLES[field_class])


def _as_bool(value):
    if isinstance(value, str):
        return value.strip().lower() not in ('', '0', 'false', 'no', 'off')
    return bool(value)
