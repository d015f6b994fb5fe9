"""Tests for ShareService."""

import json

import httpx
import pytest

from vaultclient.credentials import StaticCredentials
from vaultclient.exceptions import AuthRequiredError, NetworkError
from vaultclient.schemas import FolderDescriptor
from vaultclient.sharing import ShareService

FILE_JSON = {
    'id': 'f1',
    'original_filename': 'plan.md',
    'mime_type': 'text/markdown',
    'size_bytes': 321,
    'folder_id': 'root-child',
    'is_public': False,
    'tags': ['work'],
    'owner_id': 'u1',
}


@pytest.fixture
def calls():
    return []


@pytest.fixture
def handler(calls):
    def handle(request):
        body = json.loads(request.content) if request.content else None
        calls.append((request.method, request.url.path, body))
        path = request.url.path
        if request.method == 'GET' and path == '/files/f1':
            return httpx.Response(200, json={'file': FILE_JSON})
        if request.method == 'GET' and path == '/files/bare':
            return httpx.Response(200, json={**FILE_JSON, 'id': 'bare'})
        if request.method == 'PATCH' and path == '/files/f1/public':
            share = {'token': 'pub_tok', 'is_active': True, 'download_count': 0} if body['is_public'] else None
            return httpx.Response(200, json={'file': {**FILE_JSON, 'is_public': body['is_public'], 'share_link': share}})
        if request.method == 'PATCH' and path == '/files/f1/visibility':
            return httpx.Response(204)
        if request.method == 'GET' and path == '/folders/shared/share/status':
            return httpx.Response(200, json={'has_share_link': True, 'token': 'fold_tok'})
        if request.method == 'GET' and path == '/folders/plain/share/status':
            return httpx.Response(200, json={'has_share_link': False})
        if request.method == 'POST' and path == '/folders/plain/share':
            return httpx.Response(201, json={'token': 'new_fold_tok', 'is_active': True})
        if request.method == 'DELETE' and path == '/folders/shared/share':
            return httpx.Response(204)
        if request.method == 'HEAD' and path == '/p/live':
            return httpx.Response(200, headers={
                'Content-Type': 'application/pdf',
                'Content-Length': '2048',
                'Content-Disposition': 'inline; filename="brochure.pdf"',
            })
        if request.method == 'HEAD' and path == '/p/expired':
            return httpx.Response(404)
        if request.method == 'GET' and path == '/files/html':
            return httpx.Response(200, text='<html>maintenance</html>')
        if request.method == 'GET' and path == '/files/partial':
            return httpx.Response(200, json={'file': {'id': 'partial'}})
        if request.method == 'GET' and path == '/folders/broken/share/status':
            return httpx.Response(200, json=['unexpected'])
        if request.method == 'HEAD' and path == '/p/getonly':
            return httpx.Response(405)
        if request.method == 'GET' and path == '/p/getonly':
            return httpx.Response(200, content=b'x' * 10, headers={
                'Content-Type': 'image/png',
                'Content-Disposition': 'inline; filename="photo.png"',
            })
        if request.method == 'GET' and path == '/p/gone':
            return httpx.Response(404)
        if request.method == 'HEAD' and path == '/p/gone':
            return httpx.Response(405)
        return httpx.Response(404, json={'error': {'message': 'Not found'}})
    return handle


@pytest.fixture
def service(make_rest, handler, credentials):
    return ShareService(make_rest(handler), credentials)


@pytest.mark.asyncio
async def test_get_file_accepts_wrapped_and_bare_bodies(service):
    wrapped = await service.get_file('f1')
    bare = await service.get_file('bare')

    assert wrapped.original_filename == 'plan.md'
    assert wrapped.tags == ['work']
    assert bare.id == 'bare'


@pytest.mark.asyncio
async def test_get_file_error_message(service):
    with pytest.raises(NetworkError) as exc_info:
        await service.get_file('nope')

    assert exc_info.value.user_message == 'Not found'
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_toggle_public_returns_share_link(service, calls):
    updated = await service.toggle_public('f1', True)

    assert updated.is_public is True
    assert updated.public_token == 'pub_tok'
    assert service.file_share_url(updated.public_token) == 'http://app.vault.test/public/files/share/pub_tok'
    assert calls == [('PATCH', '/files/f1/public', {'is_public': True})]


@pytest.mark.asyncio
async def test_toggle_private_clears_token(service):
    updated = await service.toggle_public('f1', False)

    assert updated.is_public is False
    assert updated.public_token is None


@pytest.mark.asyncio
async def test_set_visibility(service, calls):
    await service.set_visibility('f1', True)

    assert calls == [('PATCH', '/files/f1/visibility', {'is_public': True})]


@pytest.mark.asyncio
async def test_folder_share_lifecycle(service, calls):
    status = await service.folder_share_status('plain')
    link = await service.share_folder('plain')
    await service.unshare_folder('shared')

    assert status.has_share_link is False
    assert link.token == 'new_fold_tok'
    assert service.folder_share_url(link.token) == 'http://app.vault.test/p/f/new_fold_tok'
    assert [(method, path) for method, path, _ in calls] == [
        ('GET', '/folders/plain/share/status'),
        ('POST', '/folders/plain/share'),
        ('DELETE', '/folders/shared/share'),
    ]


@pytest.mark.asyncio
async def test_operations_require_login(make_rest, handler, calls):
    service = ShareService(make_rest(handler), StaticCredentials(None))

    with pytest.raises(AuthRequiredError) as exc_info:
        await service.toggle_public('f1', True)

    assert 'token <bearer-token>' in exc_info.value.user_message
    assert calls == []


@pytest.mark.asyncio
async def test_describe_public_file_from_headers(make_rest, handler):
    service = ShareService(make_rest(handler), StaticCredentials(None))

    file = await service.describe_public_file('live')

    assert file.original_filename == 'brochure.pdf'
    assert file.mime_type == 'application/pdf'
    assert file.size_bytes == 2048
    assert file.public_token == 'live'


@pytest.mark.asyncio
async def test_describe_expired_public_file(service):
    with pytest.raises(NetworkError) as exc_info:
        await service.describe_public_file('expired')

    assert exc_info.value.user_message == 'This file link is invalid or has expired'


def test_folder_descriptor_ignores_unknown_keys():
    folder = FolderDescriptor.model_validate({
        'id': 'd1',
        'name': 'Reports',
        'parent_id': 'root',
        'share_link': {'token': 'fold_tok', 'is_active': True},
        'item_count': 7,
    })

    assert folder.name == 'Reports'
    assert folder.share_link.token == 'fold_tok'
    assert not hasattr(folder, 'item_count')


@pytest.mark.asyncio
@pytest.mark.parametrize("file_id", ['html', 'partial'])
async def test_get_file_rejects_malformed_body(service, file_id):
    with pytest.raises(NetworkError) as exc_info:
        await service.get_file(file_id)

    assert exc_info.value.user_message == 'Invalid JSON response'


@pytest.mark.asyncio
async def test_folder_share_status_rejects_malformed_body(service):
    with pytest.raises(NetworkError) as exc_info:
        await service.folder_share_status('broken')

    assert exc_info.value.user_message == 'Invalid JSON response'


@pytest.mark.asyncio
async def test_describe_public_file_falls_back_to_get(make_rest, handler, calls):
    service = ShareService(make_rest(handler), StaticCredentials(None))

    file = await service.describe_public_file('getonly')

    assert file.original_filename == 'photo.png'
    assert file.mime_type == 'image/png'
    assert [(method, path) for method, path, _ in calls] == [('HEAD', '/p/getonly'), ('GET', '/p/getonly')]


@pytest.mark.asyncio
async def test_describe_public_file_get_fallback_reports_expired_link(make_rest, handler):
    service = ShareService(make_rest(handler), StaticCredentials(None))

    with pytest.raises(NetworkError) as exc_info:
        await service.describe_public_file('gone')

    assert exc_info.value.user_message == 'This file link is invalid or has expired'
