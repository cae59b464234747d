"""
SEO plugin compatibility profiles.

The site may already be managed by another SEO plugin; ClickRank then writes
its values into that plugin's meta keys and options so they show up there.
The active profile is chosen once at startup (see SeoConfig.ready).
"""
import enum
import logging
from dataclasses import dataclass

from content.meta import get_option, update_option

logger = logging.getLogger(__name__)

HOMEPAGE_TITLE_OPTION = '_clickrank_ai_homepage_title'
HOMEPAGE_DESCRIPTION_OPTION = '_clickrank_ai_homepage_description'
HOMEPAGE_SCHEMA_OPTION = '_clickrank_ai_homepage_schema'
HOMEPAGE_CANONICAL_OPTION = '_clickrank_ai_homepage_canonical'


class CompatMode(enum.Enum):
    NONE = 'none'
    YOAST = 'yoast'
    RANK_MATH = 'rank_math'
    AIOSEO = 'aioseo'


@dataclass(frozen=True)
class CompatProfile:
    mode: CompatMode
    post_title_key: str
    post_description_key: str
    term_description_key: str
    # option name -> key inside that (dict) option, for the homepage title / description
    homepage_title_options: tuple = ()
    homepage_description_options: tuple = ()
    # plain options that mirror the homepage title / description
    homepage_title_mirror: str = ''
    homepage_description_mirror: str = ''


PROFILES = {
    CompatMode.NONE: CompatProfile(
        mode=CompatMode.NONE,
        post_title_key='_clickrank_ai_seo_title',
        post_description_key='_clickrank_ai_meta_description',
        term_description_key='_clickrank_ai_meta_description',
    ),
    CompatMode.YOAST: CompatProfile(
        mode=CompatMode.YOAST,
        post_title_key='_yoast_wpseo_title',
        post_description_key='_yoast_wpseo_metadesc',
        term_description_key='wpseo_desc',
        homepage_title_options=(('wpseo_titles', 'title-home-wpseo'),),
        homepage_description_options=(('wpseo_titles', 'metadesc-home-wpseo'),),
    ),
    CompatMode.RANK_MATH: CompatProfile(
        mode=CompatMode.RANK_MATH,
        post_title_key='rank_math_title',
        post_description_key='rank_math_description',
        term_description_key='rank_math_description',
        homepage_title_options=(
            ('rank-math-options-titles', 'homepage_title'),
            ('rank-math-options-general', 'homepage_title'),
        ),
        homepage_description_options=(
            ('rank-math-options-titles', 'homepage_description'),
            ('rank-math-options-general', 'homepage_description'),
        ),
        homepage_title_mirror='rank_math_homepage_title',
        homepage_description_mirror='rank_math_homepage_description',
    ),
    CompatMode.AIOSEO: CompatProfile(
        mode=CompatMode.AIOSEO,
        post_title_key='aioseo_title',
        post_description_key='aioseo_description',
        term_description_key='aioseo_description',
    ),
}

_active = PROFILES[CompatMode.NONE]


def configure(mode):
    """Select the active profile. Unknown modes fall back to `none`."""
    global _active
    try:
        mode = CompatMode(mode)
    except ValueError:
        logger.warning("Unknown SEO compat mode %r, using 'none'", mode)
        mode = CompatMode.NONE
    _active = PROFILES[mode]
    return _active


def active_profile():
    return _active


def update_homepage_title(title):
    update_option(HOMEPAGE_TITLE_OPTION, title)
    _mirror(title, _active.homepage_title_options, _active.homepage_title_mirror)
    logger.info("Homepage title updated: %s", title)


def update_homepage_description(description):
    update_option(HOMEPAGE_DESCRIPTION_OPTION, description)
    _mirror(description, _active.homepage_description_options, _active.homepage_description_mirror)
    logger.info("Homepage meta description updated")


def _mirror(value, dict_options, plain_option):
    for option_name, key in dict_options:
        current = get_option(option_name, {})
        if not isinstance(current, dict):
            current = {}
        current[key] = value
        update_option(option_name, current)
    if plain_option:
        update_option(plain_option, value)
