"""Unit tests for RestMetadataStore."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from common.exceptions import RecordNotFound, StoreUnavailable, ValidationRejected
from common.types import RecordFields
from ingestion.metadata_store import RestMetadataStore

STORE_URL = 'https://store.example.com'


def make_store(config, handler) -> RestMetadataStore:
    store = RestMetadataStore(config)
    store.session = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=STORE_URL)
    return store


def row(record_id, file_name='report.pdf', created_at='2024-03-01T10:00:00+00:00'):
    return {
        'id': record_id,
        'user_id': 'owner-1',
        'file_name': file_name,
        'file_url': f'https://cdn.example.com/{file_name}',
        'file_type': 'application/pdf',
        'file_size': 2048,
        'created_at': created_at,
    }


@pytest.fixture
def store_config(temp_config):
    temp_config.data['store_url'] = STORE_URL
    temp_config.data['max_retries'] = 2
    temp_config.set_api_key('anon-key')
    return temp_config


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff delays instead of sleeping."""
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(asyncio, 'sleep', fake_sleep)
    return delays


@pytest.mark.asyncio
async def test_list_records_queries_owner_newest_first(store_config):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=[
            row(7, 'b.pdf', '2024-03-02T10:00:00+00:00'),
            row(3, 'a.pdf', '2024-03-01T10:00:00+00:00'),
        ])

    records = await make_store(store_config, handler).list_records('owner-1')

    assert [record.record_id for record in records] == ['7', '3']
    assert records[0].created_at == datetime(2024, 3, 2, 10, tzinfo=timezone.utc)
    assert records[0].remote_locator == 'https://cdn.example.com/b.pdf'

    request = requests[0]
    assert request.method == 'GET'
    assert request.url.path == '/rest/v1/files'
    assert request.url.params['user_id'] == 'eq.owner-1'
    assert request.url.params['order'] == 'created_at.desc,id.desc'
    assert request.headers['apikey'] == 'anon-key'
    assert request.headers['Authorization'] == 'Bearer anon-key'
    assert 'X-Request-ID' in request.headers


@pytest.mark.asyncio
async def test_list_records_rejects_malformed_rows(store_config):
    def handler(request):
        return httpx.Response(200, json=[{'id': 1}])

    with pytest.raises(StoreUnavailable):
        await make_store(store_config, handler).list_records('owner-1')


@pytest.mark.asyncio
async def test_create_record_returns_stored_row(store_config):
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        assert request.headers['Prefer'] == 'return=representation'
        return httpx.Response(201, json=[row('rec-1', 'report.pdf')])

    fields = RecordFields(
        file_name='report.pdf',
        remote_locator='https://cdn.example.com/report.pdf',
        mime_type='application/pdf',
        byte_size=2048,
    )
    record = await make_store(store_config, handler).create_record('owner-1', fields)

    assert record.record_id == 'rec-1'
    assert record.owner_id == 'owner-1'
    assert bodies == [{
        'user_id': 'owner-1',
        'file_name': 'report.pdf',
        'file_url': 'https://cdn.example.com/report.pdf',
        'file_type': 'application/pdf',
        'file_size': 2048,
    }]


@pytest.mark.asyncio
async def test_create_record_validation_rejected(store_config):
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        return httpx.Response(422, json={'message': 'null value in column "file_url"'})

    fields = RecordFields(file_name='x', remote_locator='', mime_type='text/plain', byte_size=1)
    with pytest.raises(ValidationRejected):
        await make_store(store_config, handler).create_record('owner-1', fields)

    assert calls == 1


@pytest.mark.asyncio
async def test_delete_record_success(store_config):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=[row('rec-1')])

    await make_store(store_config, handler).delete_record('rec-1')

    assert requests[0].method == 'DELETE'
    assert requests[0].url.params['id'] == 'eq.rec-1'


@pytest.mark.asyncio
async def test_delete_record_no_content(store_config):
    def handler(request):
        return httpx.Response(204)

    await make_store(store_config, handler).delete_record('rec-1')


@pytest.mark.asyncio
async def test_delete_record_nothing_matched(store_config):
    def handler(request):
        return httpx.Response(200, json=[])

    with pytest.raises(RecordNotFound):
        await make_store(store_config, handler).delete_record('missing')


@pytest.mark.asyncio
async def test_retry_on_server_error(store_config, sleeps):
    call_count = 0

    def handler(request):
        nonlocal call_count
        call_count += 1
        if call_count < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=[])

    records = await make_store(store_config, handler).list_records('owner-1')

    assert records == []
    assert call_count == 3
    assert sleeps == [1, 2]


@pytest.mark.asyncio
async def test_unavailable_after_max_retries(store_config, sleeps):
    call_count = 0

    def handler(request):
        nonlocal call_count
        call_count += 1
        raise httpx.ConnectError('connection refused')

    with pytest.raises(StoreUnavailable):
        await make_store(store_config, handler).list_records('owner-1')

    assert call_count == 3


@pytest.mark.asyncio
async def test_no_retry_on_client_error(store_config, sleeps):
    call_count = 0

    def handler(request):
        nonlocal call_count
        call_count += 1
        return httpx.Response(401, json={'message': 'JWT expired'})

    with pytest.raises(StoreUnavailable):
        await make_store(store_config, handler).list_records('owner-1')

    assert call_count == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_no_auth_headers_without_key(temp_config):
    temp_config.data['store_url'] = STORE_URL
    headers = []

    def handler(request):
        headers.append(request.headers)
        return httpx.Response(200, json=[])

    await make_store(temp_config, handler).list_records('owner-1')

    assert 'apikey' not in headers[0]
    assert 'Authorization' not in headers[0]
