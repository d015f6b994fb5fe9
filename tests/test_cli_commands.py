"""Tests for CLI command handlers."""

from io import StringIO

import httpx
import pytest
from prompt_toolkit.data_structures import Size
from prompt_toolkit.output.vt100 import Vt100_Output

from common.types import UploadStatus, UploadTask
from cli.commands import create_clients
from cli.models import (
    ClosePreviewCommand,
    DismissCommand,
    DownloadCommand,
    InfoCommand,
    ListUploadsCommand,
    LogoutCommand,
    PreviewCommand,
    PublicPreviewCommand,
    ShareFileCommand,
    ShareFolderCommand,
    TokenCommand,
    UploadCommand,
)
from cli.repl import UploadReporter, dispatch_command, print_ansi, show_welcome
from vaultclient.preview import ResolverState

FILES = {
    'img': {'id': 'img', 'original_filename': 'cat.png', 'mime_type': 'image/png', 'size_bytes': 4},
    'src': {'id': 'src', 'original_filename': 'main.py', 'mime_type': 'text/x-python', 'size_bytes': 22},
    'zip': {'id': 'zip', 'original_filename': 'bundle.zip', 'mime_type': 'application/zip', 'size_bytes': 9},
    'big': {'id': 'big', 'original_filename': 'huge.log', 'mime_type': 'text/plain', 'size_bytes': 900_000},
}


def backend(request):
    path = request.url.path
    parts = path.strip('/').split('/')
    if path == '/files/partial':
        return httpx.Response(200, json={'file': {'id': 'partial'}})
    if path == '/files/html':
        return httpx.Response(200, text='<html>maintenance</html>')
    if request.method == 'GET' and len(parts) == 2 and parts[0] == 'files':
        file = FILES.get(parts[1])
        if file is None:
            return httpx.Response(404, json={'error': {'message': 'File not found'}})
        return httpx.Response(200, json={'file': {**file, 'tags': ['pets']}})
    if request.method == 'GET' and path == '/files/img/download':
        return httpx.Response(200, content=b'\x89PNG', headers={'Content-Disposition': 'attachment; filename="cat.png"'})
    if request.method == 'GET' and path == '/files/src/download':
        return httpx.Response(200, content=b"def main():\n    pass\n")
    if request.method == 'HEAD' and path == '/p/pubtok':
        return httpx.Response(200, headers={'Content-Type': 'image/png', 'Content-Length': '4'})
    if request.method == 'GET' and path == '/p/pubtok':
        return httpx.Response(200, content=b'\x89PNG')
    if request.method == 'PATCH' and path == '/files/img/public':
        return httpx.Response(200, json={'file': {
            **FILES['img'], 'is_public': True, 'share_link': {'token': 'share123', 'is_active': True}
        }})
    if request.method == 'GET' and path == '/folders/d1/share/status':
        return httpx.Response(200, json={'has_share_link': True, 'token': 'existing'})
    if request.method == 'GET' and path == '/folders/d2/share/status':
        return httpx.Response(200, json={'has_share_link': False})
    if request.method == 'POST' and path == '/folders/d2/share':
        return httpx.Response(201, json={'token': 'fresh', 'is_active': True})
    if request.method == 'DELETE' and path == '/folders/d1/share':
        return httpx.Response(204)
    if request.method == 'POST' and path == '/files':
        return httpx.Response(201, json={'file': {'id': 'up1', 'original_filename': 'x', 'size_bytes': 1}})
    return httpx.Response(404)


@pytest.fixture
def clients(temp_config, settings, tmp_path):
    temp_config.data['download_dir'] = str(tmp_path / 'downloads')
    temp_config.set_token('tok_cli')
    return create_clients(temp_config, settings, transport=httpx.MockTransport(backend))


@pytest.mark.asyncio
async def test_token_and_logout(clients):
    assert 'Token saved' in await dispatch_command(TokenCommand(token='tok_new'), clients)
    assert clients.config.get_token() == 'tok_new'

    assert await dispatch_command(LogoutCommand(), clients) == 'Logged out.'
    assert clients.config.get_token() is None


@pytest.mark.asyncio
async def test_info(clients):
    result = await dispatch_command(InfoCommand(file_id='img'), clients)

    assert 'cat.png' in result
    assert 'image/png (image)' in result
    assert 'tags:     pets' in result


@pytest.mark.asyncio
async def test_service_errors_become_error_lines(clients):
    result = await dispatch_command(InfoCommand(file_id='nope'), clients)

    assert result == 'Error: File not found'


@pytest.mark.asyncio
@pytest.mark.parametrize('command', [PreviewCommand(file_id='partial'), InfoCommand(file_id='html')])
async def test_malformed_responses_become_error_lines(clients, command):
    result = await dispatch_command(command, clients)

    assert result == 'Error: Invalid JSON response'


@pytest.mark.asyncio
async def test_not_logged_in(clients):
    clients.config.set_token(None)

    result = await dispatch_command(ShareFileCommand(file_id='img', public=True), clients)

    assert result == 'Error: Not logged in. Please run: token <bearer-token>'


@pytest.mark.asyncio
async def test_preview_image_then_close(clients):
    result = await dispatch_command(PreviewCommand(file_id='img'), clients)

    assert result.startswith('Preview ready: cat.png (image')
    assert 'file://' in result
    assert clients.resolver.state is ResolverState.RESOLVED

    assert await dispatch_command(ClosePreviewCommand(), clients) == 'Preview closed.'
    assert clients.resolver.store.live_urls == []
    assert await dispatch_command(ClosePreviewCommand(), clients) == 'No preview open.'
    await clients.aclose()


@pytest.mark.asyncio
async def test_preview_text_shows_numbered_code(clients):
    result = await dispatch_command(PreviewCommand(file_id='src'), clients)

    assert '--- code ---' in result
    assert '   1 | def main():' in result
    await clients.aclose()


@pytest.mark.asyncio
async def test_preview_unsupported_suggests_download(clients):
    result = await dispatch_command(PreviewCommand(file_id='zip'), clients)

    assert 'No preview available for bundle.zip' in result
    assert 'download zip' in result


@pytest.mark.asyncio
async def test_preview_too_large(clients):
    result = await dispatch_command(PreviewCommand(file_id='big'), clients)

    assert result.startswith('Error: Text file too large for preview')


@pytest.mark.asyncio
async def test_public_preview_supersedes_previous(clients):
    await dispatch_command(PreviewCommand(file_id='img'), clients)
    first_url = clients.resolver.session.url

    result = await dispatch_command(PublicPreviewCommand(share_token='pubtok'), clients)

    assert result.startswith('Preview ready')
    assert clients.resolver.store.live_urls == [clients.resolver.session.url]
    assert first_url not in clients.resolver.store.live_urls
    await clients.aclose()


@pytest.mark.asyncio
async def test_download(clients, tmp_path):
    result = await dispatch_command(DownloadCommand(file_id='img'), clients)

    assert 'File "cat.png" downloaded successfully!' in result
    assert (tmp_path / 'downloads' / 'cat.png').read_bytes() == b'\x89PNG'


@pytest.mark.asyncio
async def test_download_failure_message(clients, tmp_path):
    not_a_dir = tmp_path / 'occupied'
    not_a_dir.write_text('file in the way')

    result = await dispatch_command(DownloadCommand(file_id='src', output_dir=str(not_a_dir)), clients)

    assert result.startswith('Failed to download "main.py"')


@pytest.mark.asyncio
async def test_upload_and_list(clients, sample_file):
    result = await dispatch_command(UploadCommand(file_list=(str(sample_file),), tag_list=('a',)), clients)

    assert 'Started upload(s):' in result
    assert 'test.txt' in result

    await clients.uploads.wait()
    listing = await dispatch_command(ListUploadsCommand(), clients)
    assert 'done' in listing
    await clients.aclose()


@pytest.mark.asyncio
async def test_uploads_empty(clients):
    assert await dispatch_command(ListUploadsCommand(), clients) == 'No active uploads.'


@pytest.mark.asyncio
async def test_dismiss(clients, tmp_path):
    (task,) = clients.uploads.enqueue([tmp_path / 'missing.txt'])

    assert await dispatch_command(DismissCommand(task_id=task.task_id), clients) == f'Dismissed {task.task_id}.'
    assert 'no active upload' in await dispatch_command(DismissCommand(task_id=task.task_id), clients)


@pytest.mark.asyncio
async def test_share_file_prints_link(clients):
    result = await dispatch_command(ShareFileCommand(file_id='img', public=True), clients)

    assert result == 'cat.png is now public: http://app.vault.test/public/files/share/share123'


@pytest.mark.asyncio
async def test_share_folder_reuses_existing_link(clients):
    existing = await dispatch_command(ShareFolderCommand(folder_id='d1', public=True), clients)
    fresh = await dispatch_command(ShareFolderCommand(folder_id='d2', public=True), clients)
    removed = await dispatch_command(ShareFolderCommand(folder_id='d1', public=False), clients)

    assert existing == 'Folder d1 is shared: http://app.vault.test/p/f/existing'
    assert fresh == 'Folder d2 is shared: http://app.vault.test/p/f/fresh'
    assert removed == 'Share link for folder d1 removed.'


def test_upload_reporter_prints_milestones_and_outcome():
    lines = []
    reporter = UploadReporter(write=lines.append)
    task = UploadTask(task_id='upload-1', name='a.bin', size=2048)

    for progress in (0, 10, 30, 40, 80, 100):
        task.advance(progress)
        reporter.on_change(task)
    task.status = UploadStatus.COMPLETED
    reporter.on_change(task)
    reporter.on_change(task)

    assert len(lines) == 3
    assert '25%' not in lines[0]
    assert '30%' in lines[0]
    assert '80%' in lines[1]
    assert 'done' in lines[2]


def test_upload_reporter_reports_relocation_error():
    lines = []
    reporter = UploadReporter(write=lines.append)
    task = UploadTask(task_id='upload-2', name='a.bin', size=1, status=UploadStatus.COMPLETED, progress=100)

    reporter.on_change(task)
    task.relocation_error = 'Failed to move file to folder: nope'
    reporter.on_change(task)

    assert len(lines) == 2
    assert 'Failed to move file to folder' in lines[1]


def test_upload_reporter_renders_colours_on_terminal():
    stream = StringIO()
    output = Vt100_Output(stream, lambda: Size(rows=24, columns=80), term='xterm')
    reporter = UploadReporter(write=lambda line: print_ansi(line, output=output))
    task = UploadTask(task_id='upload-1', name='a.txt', size=10, status=UploadStatus.COMPLETED, progress=100)

    reporter.on_change(task)

    rendered = stream.getvalue()
    assert '[upload-1] a.txt 10 B' in rendered
    assert 'done' in rendered
    assert '\x1b[' in rendered
    assert '?[' not in rendered


def test_welcome_describes_client_features(capsys):
    show_welcome()

    out = capsys.readouterr().out
    assert 'SecureVault CLI - File Preview, Upload and Sharing' in out
    assert 'Encrypted' not in out
