"""Shared pytest fixtures for all tests."""

import httpx
import pytest

from cli.config import Config
from vaultclient.config import Settings
from vaultclient.credentials import StaticCredentials
from vaultclient.schemas import FileDescriptor, ShareLink
from vaultclient.transport import RestClient

BASE_URL = "http://vault.test"


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .securevault directory
    """
    config_dir = tmp_path / '.securevault'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def settings():
    """Settings pointing at the mock backend."""
    return Settings(
        rest_base_url=BASE_URL,
        graphql_url=f"{BASE_URL}/graphql",
        app_base_url="http://app.vault.test",
    )


@pytest.fixture
def credentials():
    return StaticCredentials("tok_test")


@pytest.fixture
def make_rest(settings):
    """Factory building a RestClient around an httpx.MockTransport handler."""
    def build(handler, **kwargs) -> RestClient:
        return RestClient(settings, transport=httpx.MockTransport(handler), **kwargs)
    return build


@pytest.fixture
def make_file():
    """Factory for file descriptors."""
    def build(
        file_id: str = "f1",
        name: str = "photo.png",
        mime_type: str = "image/png",
        size: int = 1024,
        share_token: str = None,
        share_active: bool = True
    ) -> FileDescriptor:
        share_link = ShareLink(token=share_token, is_active=share_active) if share_token else None
        return FileDescriptor(
            id=file_id,
            original_filename=name,
            mime_type=mime_type,
            size_bytes=size,
            is_public=share_link is not None,
            share_link=share_link,
        )
    return build


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def multiple_sample_files(tmp_path):
    """
    Create multiple sample files for testing bulk operations.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        List of Paths to sample files
    """
    files = []
    for i in range(3):
        file_path = tmp_path / f'test{i}.txt'
        file_path.write_text(f'Sample content {i}')
        files.append(file_path)
    return files
