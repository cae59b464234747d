"""
Tests for content app - option store and per-entity metadata accessors.
"""
import pytest

from content.meta import (
    delete_option, delete_post_meta, get_option, get_post_meta, get_term_meta,
    update_option, update_post_meta, update_term_meta,
)
from content.models import Post, Term


@pytest.mark.django_db
class TestOptions:

    def test_missing_option_reads_default(self):
        assert get_option('nope') is None
        assert get_option('nope', 'fallback') == 'fallback'

    def test_update_and_delete(self):
        update_option('clickrank_ai_api_key', 'abc')
        update_option('clickrank_ai_api_key', 'def')
        assert get_option('clickrank_ai_api_key') == 'def'
        assert delete_option('clickrank_ai_api_key') is True
        assert delete_option('clickrank_ai_api_key') is False

    def test_structured_values(self):
        update_option('wpseo_titles', {'title-home-wpseo': 'Home'})
        assert get_option('wpseo_titles') == {'title-home-wpseo': 'Home'}


@pytest.mark.django_db
class TestEntityMeta:

    def test_post_meta(self):
        post = Post.objects.create(slug='a', path='a')
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == ''
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Title')
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'Title'
        assert delete_post_meta(post.id, '_clickrank_ai_seo_title') is True
        assert get_post_meta(post.id, '_clickrank_ai_seo_title', None) is None

    def test_term_meta(self):
        term = Term.objects.create(slug='news', name='News')
        update_term_meta(term.id, 'wpseo_desc', 'About')
        assert get_term_meta(term.id, 'wpseo_desc') == 'About'


class TestPermalinks:

    def test_post_url(self, settings):
        settings.CLICKRANK = {**settings.CLICKRANK, 'SITE_URL': 'https://example.com'}
        assert Post(slug='hello', path='2024/05/hello').get_absolute_url() == \
            'https://example.com/2024/05/hello/'

    def test_tag_archive_base(self, settings):
        settings.CLICKRANK = {**settings.CLICKRANK, 'SITE_URL': 'https://example.com/'}
        assert Term(taxonomy='post_tag', slug='red').get_absolute_url() == 'https://example.com/tag/red/'
        assert Term(taxonomy='category', slug='news').get_absolute_url() == 'https://example.com/category/news/'
