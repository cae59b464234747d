"""
Tests for integrations app - ClickRank webhook, outbound API client, log table
and management commands.
"""
import logging
from datetime import timedelta
from unittest import mock

import pytest
import requests
from django.core.cache import cache
from django.core.management import call_command
from django.db import DatabaseError
from django.utils import timezone
from rest_framework.test import APIClient

from content.meta import get_option, get_post_meta, update_option, update_post_meta
from content.models import Attachment, Post, Term
from seo import store
from seo.models import MAX_URL_LENGTH, SeoRecord
from integrations import clickrank_api
from integrations.logging_handlers import DatabaseLogHandler
from integrations.models import LogEntry
from integrations.serializers import OptimizationSerializer

WEBHOOK = '/api/v1/clickrank/update-post'
API_KEY = 'cr_test_key_123'


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def configured_key():
    update_option('clickrank_ai_api_key', API_KEY)
    return API_KEY


@pytest.fixture
def webhook_client(api_client, configured_key):
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {configured_key}')
    return api_client


@pytest.fixture
def create_post():
    def _create_post(slug="hello-world", status="publish", post_type="post"):
        return Post.objects.create(
            slug=slug, path=slug, title=slug.replace('-', ' ').title(),
            status=status, post_type=post_type, published_at=timezone.now(),
        )
    return _create_post


def _response(status_code, json_body=None):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.json.return_value = json_body if json_body is not None else {}
    return resp


@pytest.mark.django_db
class TestWebhookAuth:

    def test_no_key_configured(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer anything')
        response = api_client.post(WEBHOOK, {'page_url': 'http://localhost:8000/'})
        assert response.status_code == 401
        assert response.data == {'success': False, 'message': 'API key not configured'}

    def test_missing_header(self, api_client, configured_key):
        response = api_client.post(WEBHOOK, {'page_url': 'http://localhost:8000/'})
        assert response.status_code == 401
        assert response.data['message'] == 'Invalid authorization'

    def test_malformed_header(self, api_client, configured_key):
        api_client.credentials(HTTP_AUTHORIZATION=f'Token {configured_key}')
        response = api_client.post(WEBHOOK, {'page_url': 'http://localhost:8000/'})
        assert response.status_code == 401

    def test_wrong_key(self, api_client, configured_key):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer not-the-key')
        response = api_client.post(WEBHOOK, {'page_url': 'http://localhost:8000/'})
        assert response.status_code == 403
        assert response.data == {'success': False, 'message': 'Invalid API key'}

    def test_bearer_scheme_is_case_insensitive(self, api_client, configured_key):
        api_client.credentials(HTTP_AUTHORIZATION=f'bearer {configured_key}')
        response = api_client.post(WEBHOOK, {'page_url': 'http://localhost:8000/', 'page_title': 'Home'})
        assert response.status_code == 200


@pytest.mark.django_db
class TestWebhookRateLimit:

    def test_limit_exceeded(self, webhook_client, settings):
        settings.CLICKRANK = {**settings.CLICKRANK, 'RATE_LIMIT_REQUESTS': 2}
        payload = {'page_url': 'http://localhost:8000/', 'page_title': 'Home'}

        assert webhook_client.post(WEBHOOK, payload).status_code == 200
        assert webhook_client.post(WEBHOOK, payload).status_code == 200
        response = webhook_client.post(WEBHOOK, payload)
        assert response.status_code == 429
        assert response.data == {'success': False, 'message': 'Rate limit exceeded'}

    def test_limit_applies_before_auth(self, api_client, configured_key, settings):
        settings.CLICKRANK = {**settings.CLICKRANK, 'RATE_LIMIT_REQUESTS': 1}
        api_client.credentials(HTTP_AUTHORIZATION='Bearer wrong')

        assert api_client.post(WEBHOOK, {'page_url': 'x'}).status_code == 403
        assert api_client.post(WEBHOOK, {'page_url': 'x'}).status_code == 429

    def test_limit_is_per_client(self, webhook_client, settings):
        settings.CLICKRANK = {**settings.CLICKRANK, 'RATE_LIMIT_REQUESTS': 1}
        payload = {'page_url': 'http://localhost:8000/', 'page_title': 'Home'}

        assert webhook_client.post(WEBHOOK, payload, REMOTE_ADDR='10.0.0.1').status_code == 200
        assert webhook_client.post(WEBHOOK, payload, REMOTE_ADDR='10.0.0.2').status_code == 200
        assert webhook_client.post(WEBHOOK, payload, REMOTE_ADDR='10.0.0.1').status_code == 429

    def test_disabled(self, webhook_client, settings):
        settings.CLICKRANK = {**settings.CLICKRANK, 'RATE_LIMIT_REQUESTS': 1, 'RATE_LIMIT_ENABLED': False}
        payload = {'page_url': 'http://localhost:8000/', 'page_title': 'Home'}
        for _ in range(3):
            assert webhook_client.post(WEBHOOK, payload).status_code == 200


@pytest.mark.django_db
class TestWebhookUpdate:

    def test_missing_page_url(self, webhook_client):
        response = webhook_client.post(WEBHOOK, {'page_title': 'No URL'})
        assert response.status_code == 400
        assert response.data['success'] is False
        assert response.data['message'] == 'Invalid request data'

    def test_update_post(self, webhook_client, create_post):
        post = create_post()
        response = webhook_client.post(WEBHOOK, {
            'page_url': 'http://localhost:8000/hello-world/',
            'page_title': '<b>Better</b> title',
            'meta_description': 'Sharper description',
        })

        assert response.status_code == 200
        assert response.data == {
            'success': True,
            'message': f'Post {post.id} updated',
            'fields': ['title', 'description'],
        }
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'Better title'
        assert store.get('http://localhost:8000/hello-world').title == 'Better title'

    def test_schema_object_is_stored_as_json_string(self, webhook_client, create_post):
        post = create_post()
        response = webhook_client.post(WEBHOOK, {
            'page_url': 'http://localhost:8000/hello-world/',
            'page_schema': {'@context': 'https://schema.org', '@type': 'Article'},
        })

        assert response.status_code == 200
        assert get_post_meta(post.id, '_clickrank_ai_page_schema') == \
            '{"@context": "https://schema.org", "@type": "Article"}'

    def test_update_homepage(self, webhook_client):
        response = webhook_client.post(WEBHOOK, {
            'page_url': 'http://localhost:8000/',
            'page_title': 'Welcome',
        })
        assert response.status_code == 200
        assert response.data['message'] == 'Homepage updated'
        assert get_option('_clickrank_ai_homepage_title') == 'Welcome'

    def test_update_term(self, webhook_client):
        term = Term.objects.create(taxonomy='category', slug='news', name='News')
        response = webhook_client.post(WEBHOOK, {
            'page_url': 'http://localhost:8000/category/news/',
            'term_name': 'Latest News',
        })
        assert response.status_code == 200
        assert response.data['message'] == f'Term {term.id} updated'

    def test_unresolved_url_saved_to_store(self, webhook_client):
        response = webhook_client.post(WEBHOOK, {
            'page_url': 'http://localhost:8000/not-a-post/',
            'page_title': 'Orphan',
        })
        assert response.status_code == 200
        assert response.data == {
            'success': True,
            'message': 'SEO data saved to URL table (post not resolved)',
            'url_table_only': True,
        }
        assert SeoRecord.objects.filter(url_normalized='http://localhost:8000/not-a-post').exists()

    def test_unresolved_url_image_only(self, webhook_client):
        Attachment.objects.create(url='http://localhost:8000/uploads/a.jpg')
        response = webhook_client.post(WEBHOOK, {
            'page_url': 'http://localhost:8000/not-a-post/',
            'image_optimizations': [
                {'image_url': 'http://localhost:8000/uploads/a.jpg', 'new_alt_text': 'A cat'},
                {'new_alt_text': 'dropped, no url'},
            ],
        })
        assert response.status_code == 200
        assert response.data['message'] == 'Images updated'
        assert response.data['count'] == 1

    def test_unresolved_url_without_data(self, webhook_client):
        response = webhook_client.post(WEBHOOK, {'page_url': 'http://localhost:8000/not-a-post/'})
        assert response.status_code == 404
        assert response.data['message'] == 'Content not found and no data to save'

    def test_unpublished_post(self, webhook_client, create_post):
        create_post(status='draft')
        response = webhook_client.post(WEBHOOK, {
            'page_url': 'http://localhost:8000/hello-world/',
            'page_title': 'Draft title',
        })
        assert response.status_code == 404
        assert response.data == {'success': False, 'message': 'Post not found or not accessible'}

    def test_nothing_applied(self, webhook_client, create_post):
        create_post()
        update_option('clickrank_ai_enable_title_opt', False)
        response = webhook_client.post(WEBHOOK, {
            'page_url': 'http://localhost:8000/hello-world/',
            'page_title': 'Disabled',
        })
        assert response.status_code == 400
        assert response.data['message'] == 'No updates applied'

    def test_legacy_write_failure_is_rendered(self, webhook_client, create_post):
        post = create_post()
        with mock.patch('seo.reconciliation.update_post_meta', side_effect=DatabaseError('boom')):
            response = webhook_client.post(WEBHOOK, {
                'page_url': 'http://localhost:8000/hello-world/',
                'page_title': 'Lost',
            })
        assert response.status_code == 500
        assert response.data == {'success': False, 'message': f'Failed to update post:{post.id}'}

    def test_long_page_url_is_saved(self, webhook_client):
        page_url = 'http://localhost:8000/' + 'x' * 1200 + '/'
        response = webhook_client.post(WEBHOOK, {'page_url': page_url, 'page_title': 'Long'})
        assert response.status_code == 200
        assert response.data['url_table_only'] is True
        assert store.get(page_url).title == 'Long'


@pytest.mark.django_db
class TestWebhookRevert:
    URL = 'http://localhost:8000/hello-world/'

    def test_revert_post(self, webhook_client, create_post):
        post = create_post()
        webhook_client.post(WEBHOOK, {'page_url': self.URL, 'page_title': 'A'})
        webhook_client.post(WEBHOOK, {'page_url': self.URL, 'page_title': 'B'})

        response = webhook_client.post(WEBHOOK, {
            'page_url': self.URL, 'action': 'revert', 'fields': ['page_title'],
        })

        assert response.status_code == 200
        assert response.data == {'success': True, 'message': f'Post {post.id} reverted', 'fields': ['title']}
        assert store.get(self.URL).title == 'A'
        assert get_post_meta(post.id, '_clickrank_ai_revert_data', None) is None

    def test_revert_store_only(self, webhook_client):
        url = 'http://localhost:8000/orphan/'
        store.upsert(url, {'title': 'A'})
        store.upsert(url, {'title': 'B'})

        response = webhook_client.post(WEBHOOK, {'page_url': url, 'action': 'revert'})

        assert response.status_code == 200
        assert response.data['url_table_only'] is True
        assert store.get(url).title == 'A'

    def test_revert_without_backup(self, webhook_client, create_post):
        create_post()
        response = webhook_client.post(WEBHOOK, {'page_url': self.URL, 'action': 'revert'})
        assert response.status_code == 404
        assert response.data == {'success': False, 'message': 'No revert data found'}

    def test_revert_with_unknown_fields_changes_nothing(self, webhook_client, create_post):
        post = create_post()
        webhook_client.post(WEBHOOK, {'page_url': self.URL, 'page_title': 'A'})
        webhook_client.post(WEBHOOK, {'page_url': self.URL, 'page_title': 'B'})

        response = webhook_client.post(WEBHOOK, {
            'page_url': self.URL, 'action': 'revert', 'fields': ['foo'],
        })

        assert response.status_code == 400
        assert response.data == {'success': False, 'message': 'No fields reverted'}
        assert store.get(self.URL).title == 'B'
        assert get_post_meta(post.id, '_clickrank_ai_seo_title') == 'B'


@pytest.mark.django_db
class TestOptimizationSerializer:

    def test_sanitizes_payload(self):
        serializer = OptimizationSerializer(data={
            'page_url': ' http://localhost:8000/x/ ',
            'action': 'REVERT!',
            'page_title': '<script>x</script>Title',
            'fields': ['Page_Title', '<>'],
            'link_titles': {'https://a.example/': '<i>A</i>', 'https://b.example/': '', '': 'C'},
            'image_optimizations': [{'image_url': 'http://localhost:8000/a.jpg', 'new_title': None}],
        })
        assert serializer.is_valid(), serializer.errors
        data = serializer.validated_data
        assert data['page_url'] == 'http://localhost:8000/x/'
        assert data['action'] == 'revert'
        assert data['page_title'] == 'xTitle'
        assert data['fields'] == ['page_title']
        assert data['link_titles'] == {'https://a.example/': 'A'}
        assert data['image_optimizations'] == [{'image_url': 'http://localhost:8000/a.jpg'}]

    def test_rejects_non_object(self):
        assert not OptimizationSerializer(data=['page_url']).is_valid()

    def test_rejects_fields_with_no_usable_names(self):
        serializer = OptimizationSerializer(data={
            'page_url': 'http://localhost:8000/x/', 'action': 'revert', 'fields': ['<>', '!!'],
        })
        assert not serializer.is_valid()
        assert 'fields' in serializer.errors

    def test_page_url_limit_matches_store_column(self):
        page_url = OptimizationSerializer().fields['page_url']
        assert page_url.max_length == MAX_URL_LENGTH
        assert SeoRecord._meta.get_field('url').max_length == MAX_URL_LENGTH
        assert SeoRecord._meta.get_field('url_normalized').max_length == MAX_URL_LENGTH


@pytest.mark.django_db
class TestClickRankAPI:

    @mock.patch('integrations.clickrank_api.time.sleep')
    @mock.patch('integrations.clickrank_api.requests.post')
    def test_retries_once_on_server_error(self, mock_post, mock_sleep):
        mock_post.side_effect = [_response(503), _response(200)]

        assert clickrank_api.send_subscription(API_KEY) is True
        assert mock_post.call_count == 2
        mock_sleep.assert_called_once_with(2)

    @mock.patch('integrations.clickrank_api.time.sleep')
    @mock.patch('integrations.clickrank_api.requests.post')
    def test_client_error_is_not_retried(self, mock_post, mock_sleep):
        mock_post.return_value = _response(404, {'message': 'Unknown site'})

        assert clickrank_api.send_subscription(API_KEY) is False
        assert mock_post.call_count == 1
        mock_sleep.assert_not_called()

    @mock.patch('integrations.clickrank_api.time.sleep')
    @mock.patch('integrations.clickrank_api.requests.post')
    def test_gives_up_after_two_network_errors(self, mock_post, mock_sleep):
        mock_post.side_effect = requests.ConnectionError('refused')

        assert clickrank_api.send_subscription(API_KEY) is False
        assert mock_post.call_count == 2

    @mock.patch('integrations.clickrank_api.requests.post')
    def test_subscription_payload(self, mock_post):
        mock_post.return_value = _response(201)

        clickrank_api.send_subscription(API_KEY)

        url = mock_post.call_args.args[0]
        kwargs = mock_post.call_args.kwargs
        assert url == 'https://app.clickrank.ai/api/v2/subscription'
        assert kwargs['headers']['Authorization'] == f'Bearer {API_KEY}'
        assert kwargs['timeout'] == 30
        assert '"webhook_url": "http://localhost:8000/api/v1/clickrank/update-post"' in kwargs['data']

    def test_empty_key(self):
        assert clickrank_api.send_subscription('') is False
        assert clickrank_api.sync_data('') is False
        assert clickrank_api.test_connection('')['success'] is False

    @mock.patch('integrations.clickrank_api.requests.post')
    def test_sync_with_one_unresolvable_item(self, mock_post, create_post, caplog):
        first = create_post(slug='first')
        third = create_post(slug='third')
        mock_post.return_value = _response(200, {
            'http://localhost:8000/first/': {'page_title': 'First optimized'},
            'http://localhost:8000/missing/': {'page_title': 'Nowhere'},
            'http://localhost:8000/third/': {'meta_description': 'Third optimized'},
        })

        with caplog.at_level(logging.WARNING, logger='integrations.clickrank_api'):
            assert clickrank_api.sync_data(API_KEY) is True

        failures = [r for r in caplog.records
                    if r.name == 'integrations.clickrank_api' and r.levelno == logging.WARNING]
        assert [r.getMessage() for r in failures] == ['Cannot resolve URL: http://localhost:8000/missing/']
        assert get_post_meta(first.id, '_clickrank_ai_seo_title') == 'First optimized'
        assert get_post_meta(third.id, '_clickrank_ai_meta_description') == 'Third optimized'
        assert mock_post.call_args.kwargs['timeout'] == 45
        assert '"post_count": 2' in mock_post.call_args.kwargs['data']

    @mock.patch('integrations.clickrank_api.requests.post')
    def test_sync_item_with_database_failure_does_not_stop_the_batch(self, mock_post, create_post):
        first = create_post(slug='a')
        broken = create_post(slug='b')
        last = create_post(slug='c')
        mock_post.return_value = _response(200, {
            'http://localhost:8000/a/': {'page_title': 'A optimized'},
            'http://localhost:8000/b/': {'page_title': 'B optimized'},
            'http://localhost:8000/c/': {'page_title': 'C optimized'},
        })

        def flaky_update(post_id, key, value):
            if post_id == broken.id:
                raise DatabaseError('boom')
            return update_post_meta(post_id, key, value)

        with mock.patch('seo.reconciliation.update_post_meta', side_effect=flaky_update):
            assert clickrank_api.sync_data(API_KEY) is True

        assert get_post_meta(first.id, '_clickrank_ai_seo_title') == 'A optimized'
        assert get_post_meta(broken.id, '_clickrank_ai_seo_title') == ''
        assert get_post_meta(last.id, '_clickrank_ai_seo_title') == 'C optimized'

    @mock.patch('integrations.clickrank_api.requests.post')
    def test_sync_with_nothing_pending(self, mock_post):
        mock_post.return_value = _response(200, {})
        assert clickrank_api.sync_data(API_KEY) is True

    @mock.patch('integrations.clickrank_api.requests.post')
    def test_sync_with_no_successful_item(self, mock_post):
        mock_post.return_value = _response(200, {'http://localhost:8000/missing/': {}})
        assert clickrank_api.sync_data(API_KEY) is False

    @mock.patch('integrations.clickrank_api.requests.post')
    def test_connection_success_is_cached(self, mock_post):
        mock_post.return_value = _response(200)
        assert clickrank_api.test_connection(API_KEY) == {'success': True, 'message': 'Connection successful'}
        assert cache.get(clickrank_api.LAST_CONNECTION_CACHE_KEY) is not None

    @mock.patch('integrations.clickrank_api.time.sleep')
    @mock.patch('integrations.clickrank_api.requests.post')
    def test_health_check_never_raises(self, mock_post, mock_sleep, configured_key):
        mock_post.side_effect = requests.Timeout('slow')
        assert clickrank_api.health_check() is False

    def test_health_check_without_key(self):
        assert clickrank_api.health_check() is False


@pytest.mark.django_db
class TestLogging:

    def _record(self, message, level=logging.INFO, **extra):
        record = logging.LogRecord('integrations.tests', level, __file__, 1, message, (), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_handler_writes_truncated_entry_with_context(self):
        DatabaseLogHandler().emit(self._record('x' * 3000, context={'url': 'http://a'}))
        entry = LogEntry.objects.get()
        assert entry.level == 'INFO'
        assert len(entry.message) == 2000

        DatabaseLogHandler().emit(self._record('Saved', level=logging.WARNING, context={'url': 'http://a'}))
        assert LogEntry.objects.filter(level='WARNING').get().message == 'Saved | {"url": "http://a"}'

    def test_trim_keeps_newest(self):
        for i in range(5):
            LogEntry.objects.create(message=f'entry {i}')
        assert LogEntry.objects.trim(2) == 3
        assert sorted(LogEntry.objects.values_list('message', flat=True)) == ['entry 3', 'entry 4']

    def test_handler_trims_occasionally(self, settings):
        settings.CLICKRANK = {**settings.CLICKRANK, 'MAX_LOG_ENTRIES': 1}
        with mock.patch('integrations.logging_handlers.random.randint', return_value=1):
            handler = DatabaseLogHandler()
            handler.emit(self._record('one'))
            handler.emit(self._record('two'))
        assert list(LogEntry.objects.values_list('message', flat=True)) == ['two']


@pytest.mark.django_db
class TestHealthEndpoint:

    def test_health(self, api_client):
        response = api_client.get('/api/v1/health/')
        assert response.status_code == 200
        assert response.json() == {'status': 'ok', 'service': 'clickrank-backend'}


@pytest.mark.django_db
class TestManagementCommands:

    def test_cleanup(self, capsys):
        store.upsert('http://localhost:8000/old/', {'title': 'Old'})
        SeoRecord.objects.update(updated_at=timezone.now() - timedelta(days=200))

        call_command('clickrank_cleanup', days=90)

        assert SeoRecord.objects.count() == 0
        assert '1 SEO records' in capsys.readouterr().out

    @mock.patch('integrations.clickrank_api.requests.post')
    def test_sync(self, mock_post, configured_key, create_post, capsys):
        create_post()
        mock_post.return_value = _response(200, {'http://localhost:8000/hello-world/': {'page_title': 'T'}})
        call_command('clickrank_sync')
        assert 'Sync complete.' in capsys.readouterr().out

    def test_sync_without_key(self):
        from django.core.management.base import CommandError
        with pytest.raises(CommandError):
            call_command('clickrank_sync')

    def test_migrate_and_status(self, create_post, capsys):
        from content.meta import update_post_meta
        post = create_post()
        update_post_meta(post.id, '_clickrank_ai_seo_title', 'Legacy')

        call_command('clickrank_migrate')
        call_command('clickrank_status')

        out = capsys.readouterr().out
        assert 'posts: 1 migrated' in out
        assert 'SEO records: 1' in out
