"""
Tests for the seo app: URL normalizer, SEO store, resolver, compat profiles,
module toggles, reconciliation engine and legacy migration.
"""
from datetime import timedelta
from unittest import mock

import pytest
from django.db import DatabaseError
from django.utils import timezone

from content.meta import (
    get_option, get_post_meta, get_term_meta, update_option, update_post_meta, update_term_meta,
)
from content.models import Attachment, Post, PostMeta, Term
from seo import compat, migration, reconciliation, store
from seo.exceptions import NotFoundError, PersistenceError
from seo.models import SeoRecord
from seo.normalizer import normalize_url
from seo.resolver import ContentRef, resolve
from seo.toggles import ModuleToggleSet


@pytest.fixture
def create_post():
    def _create_post(slug="hello-world", path=None, title="Hello World", status="publish",
                     post_type="post", published_at=None):
        return Post.objects.create(
            slug=slug,
            path=slug if path is None else path,
            title=title,
            status=status,
            post_type=post_type,
            published_at=published_at or timezone.now(),
        )
    return _create_post


@pytest.fixture
def create_term():
    def _create_term(slug="news", taxonomy="category", name="News"):
        return Term.objects.create(slug=slug, taxonomy=taxonomy, name=name)
    return _create_term


@pytest.fixture
def compat_mode():
    def _compat_mode(mode):
        return compat.configure(mode)
    yield _compat_mode
    compat.configure('none')


class TestNormalizeUrl:

    def test_collapses_query_fragment_and_trailing_slash(self):
        variants = [
            'https://example.com/blog/post',
            'https://example.com/blog/post/',
            'HTTPS://EXAMPLE.com/blog/post/?utm_source=news',
            'https://example.com/blog/post#comments',
            '  https://user:pw@example.com/blog/post/  ',
        ]
        assert {normalize_url(v) for v in variants} == {'https://example.com/blog/post'}

    def test_path_case_is_kept(self):
        assert normalize_url('https://Example.com/Blog/') == 'https://example.com/Blog'

    def test_root_keeps_its_slash(self):
        assert normalize_url('https://example.com') == 'https://example.com/'
        assert normalize_url('https://example.com/?p=1') == 'https://example.com/'

    @pytest.mark.parametrize('url', [
        'https://example.com/a/b/',
        'example.com/path/',
        'mailto:someone@example.com',
        'http:///only-path/',
        '//cdn.example.com/img.png',
        '',
        '/',
        'https://[::1/broken',
    ])
    def test_idempotent_and_never_raises(self, url):
        once = normalize_url(url)
        assert normalize_url(once) == once

    def test_none_is_root(self):
        assert normalize_url(None) == '/'


@pytest.mark.django_db
class TestSeoStore:
    URL = 'https://example.com/blog/post/'

    def test_first_write_creates_no_backup(self):
        store.upsert(self.URL, {'title': 'A'})
        record = store.get(self.URL)
        assert record.title == 'A'
        assert record.original_title is None
        assert record.url_normalized == 'https://example.com/blog/post'

    def test_revert_after_single_write_is_a_noop(self):
        store.upsert(self.URL, {'title': 'A'})
        assert store.revert(self.URL, ['title']) is False
        assert store.get(self.URL).title == 'A'

    def test_second_write_backs_up_and_revert_restores(self):
        store.upsert(self.URL, {'title': 'A'})
        store.upsert(self.URL, {'title': 'B'})
        assert store.get(self.URL).original_title == 'A'

        assert store.revert(self.URL, ['title']) is True
        record = store.get(self.URL)
        assert record.title == 'A'
        assert record.original_title is None

    def test_repeated_writes_keep_first_original(self):
        for value in ('A', 'B', 'C', 'D'):
            store.upsert(self.URL, {'title': value})
        record = store.get(self.URL)
        assert record.title == 'D'
        assert record.original_title == 'A'

    def test_only_supplied_fields_are_touched(self):
        store.upsert(self.URL, {'title': 'A', 'description': 'Desc'})
        store.upsert(self.URL, {'canonical': 'https://example.com/canonical'})
        record = store.get(self.URL)
        assert record.title == 'A'
        assert record.description == 'Desc'
        assert record.canonical_url == 'https://example.com/canonical'
        assert record.original_title is None

    def test_without_preserve_originals_no_backup_is_taken(self):
        store.upsert(self.URL, {'title': 'A'})
        store.upsert(self.URL, {'title': 'B'}, preserve_originals=False)
        assert store.get(self.URL).original_title is None

    def test_url_variants_share_one_record(self):
        first = store.upsert(self.URL, {'title': 'A'})
        second = store.upsert('https://EXAMPLE.com/blog/post?ref=x', {'title': 'B'})
        assert first == second
        assert SeoRecord.objects.count() == 1

    def test_entity_id_and_lookup_by_entity(self):
        store.upsert(self.URL, {'title': 'A'}, entity_id=42)
        assert store.get_by_entity(42).url == self.URL
        assert store.get_by_entity(43) is None

    def test_revert_all_fields_when_none_given(self):
        store.upsert(self.URL, {'title': 'A', 'schema': '{"a": 1}'})
        store.upsert(self.URL, {'title': 'B', 'schema': '{"b": 2}'})
        assert store.revert(self.URL) is True
        record = store.get(self.URL)
        assert (record.title, record.schema) == ('A', '{"a": 1}')

    def test_revert_missing_record(self):
        assert store.revert('https://example.com/missing') is False

    def test_delete_reports_whether_a_row_was_deleted(self):
        store.upsert(self.URL, {'title': 'A'})
        assert store.delete(self.URL + '?x=1') is True
        assert store.delete(self.URL) is False

    def test_cleanup_deletes_stale_records(self):
        store.upsert('https://example.com/old', {'title': 'Old'})
        store.upsert('https://example.com/new', {'title': 'New'})
        SeoRecord.objects.filter(url_normalized='https://example.com/old').update(
            updated_at=timezone.now() - timedelta(days=120))

        assert store.cleanup(max_age_days=90) == 1
        assert store.get('https://example.com/old') is None
        assert store.get('https://example.com/new') is not None

    def test_statistics(self):
        store.upsert('https://example.com/a', {'title': 'A', 'description': 'D'}, entity_id=1)
        store.upsert('https://example.com/b', {'title': ''})
        stats = store.statistics()
        assert stats['total'] == 2
        assert stats['with_title'] == 1
        assert stats['with_description'] == 1
        assert stats['with_schema'] == 0
        assert stats['linked'] == 1

    def test_database_errors_become_persistence_errors(self):
        with mock.patch.object(SeoRecord.objects, 'select_for_update',
                               side_effect=DatabaseError('gone')):
            with pytest.raises(PersistenceError):
                store.upsert(self.URL, {'title': 'A'})

    def test_insert_race_falls_back_to_update(self):
        # Another writer inserted the row after our locked lookup came back empty
        competing = SeoRecord.objects.create(
            url=self.URL, url_normalized=normalize_url(self.URL), title='Theirs')

        with mock.patch('seo.store._locked', return_value=None):
            record_id = store.upsert(self.URL, {'title': 'Ours'})

        assert record_id == competing.pk
        assert SeoRecord.objects.count() == 1
        record = store.get(self.URL)
        assert record.title == 'Ours'
        assert record.original_title == 'Theirs'

    def test_long_urls_fit_the_key_columns(self):
        url = 'https://example.com/' + 'a' * 1500
        store.upsert(url, {'title': 'Long'})
        assert SeoRecord._meta.get_field('url_normalized').max_length >= len(normalize_url(url))
        assert store.get(url).title == 'Long'


@pytest.mark.django_db
class TestResolver:

    def test_homepage(self):
        assert resolve('http://localhost:8000/') == ContentRef.homepage()
        assert resolve('http://localhost:8000') == ContentRef.homepage()

    def test_homepage_under_a_subdirectory(self, settings, create_post):
        settings.CLICKRANK = {**settings.CLICKRANK, 'SITE_URL': 'https://example.com/blog/'}
        post = create_post(slug='hello', path='hello')
        assert resolve('https://example.com/blog/') == ContentRef.homepage()
        assert resolve('https://example.com/blog/hello/') == ContentRef.post(post.id)

    def test_query_post_id(self, create_post):
        post = create_post()
        assert resolve(f'http://localhost:8000/?p={post.id}') == ContentRef.post(post.id)
        assert resolve(f'http://localhost:8000/?page_id={post.id}') == ContentRef.post(post.id)

    def test_permalink_path(self, create_post):
        post = create_post(slug='hello-world', path='2024/05/hello-world')
        assert resolve('http://localhost:8000/2024/05/hello-world/') == ContentRef.post(post.id)

    def test_slug_fallback_prefers_latest_published(self, create_post):
        now = timezone.now()
        create_post(slug='guide', path='old/guide', published_at=now - timedelta(days=10))
        latest = create_post(slug='guide', path='new/guide', published_at=now)
        create_post(slug='guide', path='draft/guide', status='draft', published_at=now + timedelta(days=1))
        assert resolve('http://localhost:8000/elsewhere/guide/') == ContentRef.post(latest.id)

    def test_post_slug_wins_over_term_slug(self, create_post, create_term):
        post = create_post(slug='shoes', path='blog/shoes')
        create_term(slug='shoes', taxonomy='category')
        assert resolve('http://localhost:8000/category/shoes/') == ContentRef.post(post.id)

    def test_term_in_public_taxonomy(self, create_term):
        term = create_term(slug='news', taxonomy='category')
        assert resolve('http://localhost:8000/category/news/') == ContentRef.term(term.id, 'category')

    def test_taxonomies_are_tried_in_configured_order(self, create_term):
        category = create_term(slug='red', taxonomy='category', name='Red category')
        create_term(slug='red', taxonomy='post_tag', name='Red tag')
        assert resolve('http://localhost:8000/tag/red/') == ContentRef.term(category.id, 'category')

    def test_two_segment_taxonomy_pattern(self, create_term):
        term = create_term(slug='boots', taxonomy='product_cat', name='Boots')
        assert resolve('http://localhost:8000/product_cat/boots/') == ContentRef.term(term.id, 'product_cat')

    def test_unknown(self):
        assert resolve('http://localhost:8000/nothing/here/') == ContentRef.unknown()
        assert not resolve('http://localhost:8000/nothing/').is_resolved


@pytest.mark.django_db
class TestCompat:

    def test_default_profile_keys(self):
        profile = compat.active_profile()
        assert profile.post_title_key == '_clickrank_ai_seo_title'
        assert profile.post_description_key == '_clickrank_ai_meta_description'

    def test_yoast_homepage_title_is_mirrored(self, compat_mode):
        compat_mode('yoast')
        update_option('wpseo_titles', {'separator': 'sc-dash'})
        compat.update_homepage_title('Welcome')

        assert get_option(compat.HOMEPAGE_TITLE_OPTION) == 'Welcome'
        assert get_option('wpseo_titles') == {'separator': 'sc-dash', 'title-home-wpseo': 'Welcome'}

    def test_rank_math_homepage_description_is_mirrored(self, compat_mode):
        compat_mode('rank_math')
        compat.update_homepage_description('About us')

        assert get_option('rank-math-options-titles') == {'homepage_description': 'About us'}
        assert get_option('rank-math-options-general') == {'homepage_description': 'About us'}
        assert get_option('rank_math_homepage_description') == 'About us'

    def test_unknown_mode_falls_back_to_none(self, compat_mode):
        assert compat_mode('wordlift').mode == compat.CompatMode.NONE


@pytest.mark.django_db
class TestToggles:

    def test_all_enabled_by_default(self):
        toggles = ModuleToggleSet.load()
        assert all(toggles.allows(f) for f in reconciliation.FIELD_CLASSES)

    def test_disabled_options(self):
        update_option('clickrank_ai_enable_title_opt', False)
        update_option('clickrank_ai_enable_img_alt_opt', '0')
        toggles = ModuleToggleSet.load()
        assert not toggles.allows('title')
        assert not toggles.allows('images')
        assert toggles.allows('description')


@pytest.mark.django_db
class TestApply:
    PAGE_URL = 'http://localhost:8000/hello-world/'

    def test_post_writes_store_meta_and_bundle(self, create_post):
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Original title')

        result = reconciliation.apply(ContentRef.post(post.id), {
            'page_url': self.PAGE_URL,
            'page_title': 'New title',
            'meta_description': 'New description',
            'link_titles': {'https://example.com/': 'Example'},
        })

        assert result.updated == ['title', 'description', 'links']
        assert result.url_saved is True
        record = store.get(self.PAGE_URL)
        assert record.title == 'New title'
        assert record.resolved_entity_id == post.id
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'New title'
        assert get_post_meta(post.id, '_clickrank_ai_link_titles') == {'https://example.com/': 'Example'}
        bundle = get_post_meta(post.id, reconciliation.REVERT_META_KEY)
        assert bundle == {'title': 'Original title', 'description': '', 'links': ''}

    def test_bundle_keeps_first_snapshot(self, create_post):
        post = create_post()
        ref = ContentRef.post(post.id)
        reconciliation.apply(ref, {'page_url': self.PAGE_URL, 'page_title': 'First'})
        reconciliation.apply(ref, {'page_url': self.PAGE_URL, 'page_title': 'Second'})

        assert get_post_meta(post.id, reconciliation.REVERT_META_KEY) == {'title': ''}
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'Second'

    def test_toggle_off_skips_store_and_meta(self, create_post):
        post = create_post()
        toggles = ModuleToggleSet(title=False)
        result = reconciliation.apply(ContentRef.post(post.id), {
            'page_url': self.PAGE_URL,
            'page_title': 'Ignored',
            'meta_description': 'Kept',
        }, toggles=toggles)

        assert result.updated == ['description']
        assert store.get(self.PAGE_URL).title is None
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == ''

    def test_unpublished_post_is_not_accessible(self, create_post):
        post = create_post(status='draft')
        with pytest.raises(NotFoundError) as excinfo:
            reconciliation.apply(ContentRef.post(post.id), {'page_url': self.PAGE_URL, 'page_title': 'X'})
        assert excinfo.value.message == 'Post not found or not accessible'
        assert not PostMeta.objects.filter(post=post).exists()

    def test_homepage_title_and_schema(self):
        result = reconciliation.apply(ContentRef.homepage(), {
            'page_url': 'http://localhost:8000/',
            'page_title': 'Home',
            'page_schema': '{"@type": "WebSite"}',
        })

        assert result.updated == ['title', 'schema']
        assert get_option(compat.HOMEPAGE_TITLE_OPTION) == 'Home'
        assert get_option(compat.HOMEPAGE_SCHEMA_OPTION) == '{"@type": "WebSite"}'
        assert store.get('http://localhost:8000/').title == 'Home'

    def test_term_name_takes_precedence(self, create_term):
        term = create_term(name='News')
        result = reconciliation.apply(ContentRef.term(term.id, 'category'), {
            'page_url': 'http://localhost:8000/category/news/',
            'page_title': 'Page title',
            'term_name': 'Latest news',
            'meta_description': 'All the news',
        })

        term.refresh_from_db()
        assert result.updated == ['title', 'description']
        assert term.name == 'Latest news'
        assert get_term_meta(term.id, '_clickrank_ai_meta_description') == 'All the news'
        assert get_term_meta(term.id, reconciliation.REVERT_META_KEY) == {'title': 'News', 'description': ''}

    def test_images_are_updated_and_snapshotted(self, create_post):
        post = create_post()
        image = Attachment.objects.create(url='http://localhost:8000/uploads/a.jpg',
                                          alt_text='old alt', title='old title')
        result = reconciliation.apply(ContentRef.post(post.id), {
            'page_url': self.PAGE_URL,
            'image_optimizations': [
                {'image_url': image.url, 'new_alt_text': 'new alt'},
                {'image_url': 'http://localhost:8000/uploads/missing.jpg', 'new_alt_text': 'x'},
            ],
        })

        image.refresh_from_db()
        assert result.images_updated == 1
        assert image.alt_text == 'new alt'
        assert image.title == 'old title'
        assert get_post_meta(post.id, reconciliation.REVERT_META_KEY) == {'images': [
            {'image_url': image.url, 'original_alt': 'old alt', 'original_title': 'old title'},
        ]}

    def test_unknown_ref_saves_to_store_only(self):
        result = reconciliation.apply(ContentRef.unknown(), {
            'page_url': 'http://localhost:8000/unknown/',
            'page_title': 'Somewhere',
        })
        assert result.updated == []
        assert result.url_saved is True
        assert store.get('http://localhost:8000/unknown/').resolved_entity_id is None

    def test_unknown_ref_image_only_update(self):
        image = Attachment.objects.create(url='http://localhost:8000/uploads/b.jpg')
        result = reconciliation.apply(ContentRef.unknown(), {
            'page_url': 'http://localhost:8000/unknown/',
            'image_optimizations': [{'image_url': image.url, 'new_alt_text': 'alt', 'new_title': 'T'}],
        })
        assert result.updated == ['images']
        assert result.images_updated == 2

    def test_store_failure_does_not_block_entity_update(self, create_post):
        post = create_post()
        with mock.patch('seo.store.upsert', side_effect=PersistenceError('db down')):
            result = reconciliation.apply(ContentRef.post(post.id), {
                'page_url': self.PAGE_URL, 'page_title': 'Still applied'})
        assert result.url_saved is False
        assert result.updated == ['title']
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'Still applied'

    def test_store_failure_with_nothing_else_applied_raises(self):
        with mock.patch('seo.store.upsert', side_effect=PersistenceError('db down')):
            with pytest.raises(PersistenceError):
                reconciliation.apply(ContentRef.unknown(), {
                    'page_url': 'http://localhost:8000/unknown/', 'page_title': 'Lost'})

    def test_legacy_write_failure_becomes_persistence_error(self, create_post):
        post = create_post()
        with mock.patch('seo.reconciliation.update_post_meta', side_effect=DatabaseError('boom')):
            with pytest.raises(PersistenceError) as excinfo:
                reconciliation.apply(ContentRef.post(post.id), {
                    'page_url': self.PAGE_URL, 'page_title': 'Lost'})
        assert excinfo.value.context['ref'] == f'post:{post.id}'
        assert excinfo.value.context['fields'] == ['title']
        assert get_post_meta(post.id, reconciliation.REVERT_META_KEY, None) is None

    def test_yoast_keys_are_used(self, create_post, compat_mode):
        compat_mode('yoast')
        post = create_post()
        reconciliation.apply(ContentRef.post(post.id), {
            'page_url': self.PAGE_URL, 'meta_description': 'Yoast description'})
        assert get_post_meta(post.id, '_yoast_wpseo_metadesc') == 'Yoast description'


@pytest.mark.django_db
class TestRevert:
    PAGE_URL = 'http://localhost:8000/hello-world/'

    def test_post_full_revert_deletes_bundle(self, create_post):
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Original')
        ref = ContentRef.post(post.id)
        reconciliation.apply(ref, {'page_url': self.PAGE_URL, 'page_title': 'New',
                                   'meta_description': 'Desc'})

        restored = reconciliation.revert(ref)

        assert restored == ['title', 'description']
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'Original'
        # Empty snapshot removes the key instead of storing ''
        assert not PostMeta.objects.filter(post=post, key='_clickrank_ai_meta_description').exists()
        assert get_post_meta(post.id, reconciliation.REVERT_META_KEY, None) is None

    def test_partial_revert_keeps_remaining_entries(self, create_post):
        post = create_post()
        ref = ContentRef.post(post.id)
        reconciliation.apply(ref, {'page_url': self.PAGE_URL, 'page_title': 'New',
                                   'meta_description': 'Desc'})

        assert reconciliation.revert(ref, ['meta_description']) == ['description']
        assert get_post_meta(post.id, reconciliation.REVERT_META_KEY) == {'title': ''}

    def test_homepage_revert_keeps_bundle(self):
        update_option(compat.HOMEPAGE_TITLE_OPTION, 'Before')
        ref = ContentRef.homepage()
        reconciliation.apply(ref, {'page_url': 'http://localhost:8000/', 'page_title': 'After'})

        assert reconciliation.revert(ref, ['page_title']) == ['title']
        assert get_option(compat.HOMEPAGE_TITLE_OPTION) == 'Before'
        assert get_option(reconciliation.HOMEPAGE_REVERT_OPTION) == {'title': 'Before'}

        assert reconciliation.clear_homepage_backup() is True
        with pytest.raises(NotFoundError):
            reconciliation.revert(ref)

    def test_term_revert_restores_name(self, create_term):
        term = create_term(name='News')
        ref = ContentRef.term(term.id, 'category')
        reconciliation.apply(ref, {'page_url': 'http://localhost:8000/category/news/', 'term_name': 'Renamed'})

        assert reconciliation.revert(ref, ['term_name']) == ['title']
        term.refresh_from_db()
        assert term.name == 'News'

    def test_image_revert(self, create_post):
        post = create_post()
        image = Attachment.objects.create(url='http://localhost:8000/uploads/a.jpg', alt_text='old')
        ref = ContentRef.post(post.id)
        reconciliation.apply(ref, {'page_url': self.PAGE_URL, 'image_optimizations': [
            {'image_url': image.url, 'new_alt_text': 'new'}]})

        assert reconciliation.revert(ref, ['image_optimizations']) == ['images']
        image.refresh_from_db()
        assert image.alt_text == 'old'

    def test_no_bundle(self, create_post):
        post = create_post()
        with pytest.raises(NotFoundError) as excinfo:
            reconciliation.revert(ContentRef.post(post.id))
        assert excinfo.value.message == 'No revert data found'

    def test_process_revert_reverts_store_and_entity(self, create_post):
        post = create_post()
        reconciliation.process({'page_url': self.PAGE_URL, 'page_title': 'A'})
        reconciliation.process({'page_url': self.PAGE_URL, 'page_title': 'B'})

        result = reconciliation.process_revert({'page_url': self.PAGE_URL, 'fields': ['page_title']})

        assert result.ref == ContentRef.post(post.id)
        assert result.url_reverted is True
        assert result.restored == ['title']
        assert store.get(self.PAGE_URL).title == 'A'
        assert get_post_meta(post.id, '_clickrank_ai_seo_title', None) is None

    def test_process_revert_unknown_without_backup(self):
        with pytest.raises(NotFoundError):
            reconciliation.process_revert({'page_url': 'http://localhost:8000/nowhere/'})

    def test_unrecognized_field_names_revert_nothing(self, create_post):
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Old')
        store.upsert(self.PAGE_URL, {'title': 'A'})
        reconciliation.process({'page_url': self.PAGE_URL, 'page_title': 'B'})

        result = reconciliation.process_revert({'page_url': self.PAGE_URL, 'fields': ['foo']})

        assert result.restored == []
        assert result.url_reverted is False
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'B'
        assert store.get(self.PAGE_URL).title == 'B'
        assert reconciliation.revert(ContentRef.post(post.id), ['foo']) == []
        assert get_post_meta(post.id, reconciliation.REVERT_META_KEY) == {'title': 'Old'}

    def test_legacy_restore_failure_becomes_persistence_error(self, create_post):
        post = create_post()
        ref = ContentRef.post(post.id)
        reconciliation.apply(ref, {'page_url': self.PAGE_URL, 'page_title': 'New'})

        with mock.patch('seo.reconciliation.delete_post_meta', side_effect=DatabaseError('boom')):
            with pytest.raises(PersistenceError):
                reconciliation.revert(ref)
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'New'


@pytest.mark.django_db
class TestMigration:

    def test_migrate_posts(self, create_post):
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Legacy title')
        update_post_meta(post.id, '_clickrank_ai_canonical_url', 'https://example.com/canonical')
        create_post(slug='no-meta')

        results = migration.migrate_posts()

        assert results == {'processed': 2, 'migrated': 1, 'skipped': 1, 'errors': []}
        record = store.get(post.get_absolute_url())
        assert record.title == 'Legacy title'
        assert record.canonical_url == 'https://example.com/canonical'
        assert record.original_title is None

    def test_already_migrated_posts_are_skipped(self, create_post):
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Legacy title')
        store.upsert(post.get_absolute_url(), {'title': 'Already there'})

        assert migration.migrate_posts()['skipped'] == 1
        assert store.get(post.get_absolute_url()).title == 'Already there'

    def test_post_stored_under_another_url_is_skipped(self, create_post):
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Legacy title')
        store.upsert('http://localhost:8000/old-slug/', {'title': 'Already there'}, entity_id=post.id)

        assert migration.migrate_posts()['skipped'] == 1
        assert store.get(post.get_absolute_url()) is None

    def test_migrated_rows_are_linked_to_the_post(self, create_post):
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Legacy title')

        migration.migrate_posts()

        assert store.get_by_entity(post.id).url == post.get_absolute_url()

    def test_migrate_terms_uses_description_only(self, create_term):
        term = create_term()
        update_term_meta(term.id, '_clickrank_ai_meta_description', 'About news')

        assert migration.migrate_terms()['migrated'] == 1
        record = store.get(term.get_absolute_url())
        assert record.description == 'About news'
        assert record.title is None

    def test_full_migration_stores_summary(self, create_post):
        update_option(compat.HOMEPAGE_TITLE_OPTION, 'Home title')
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Legacy')

        summary = migration.run_full_migration(batch_size=1)

        assert summary['homepage']['migrated'] == 1
        assert summary['posts']['migrated'] == 1
        assert get_option(migration.RESULTS_OPTION)['completed_at'] is not None
        status = migration.migration_status()
        assert status['url_records'] == 2
        assert status['total_posts'] == 1
