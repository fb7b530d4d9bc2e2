"""Test configuration and fixtures."""

import pytest

from tests.helpers import (
    MemoryLayer,
    dir_member,
    file_member,
    symlink_member,
    whiteout_member,
    write_image_tar,
)


@pytest.fixture
def base_layer():
    """Base layer with a small root filesystem."""
    return MemoryLayer(
        [
            dir_member("bin"),
            file_member("bin/sh", b"#!shell", mode=0o755),
            dir_member("etc"),
            file_member("etc/os-release", b"ID=alpine\n"),
            file_member("etc/passwd", b"root:x:0:0\n"),
            dir_member("etc/nginx"),
            file_member("etc/nginx/nginx.conf", b"worker_processes 1;\n"),
            file_member("etc/nginx/mime.types", b"types {}\n"),
            file_member("etc/.hidden", b"secret"),
            dir_member("tmp", mode=0o777),
            file_member("tmp/cache.db", b"x" * 10),
        ]
    )


@pytest.fixture
def app_layer():
    """Layer that updates, deletes and adds files on top of the base."""
    return MemoryLayer(
        [
            file_member("etc/os-release", b"ID=custom\n"),
            whiteout_member("etc/passwd"),
            whiteout_member("tmp"),
            dir_member("app"),
            file_member("app/main.py", b"print('hi')\n"),
            symlink_member("app/current", "/app/main.py"),
        ]
    )


@pytest.fixture
def image_tar(tmp_path, base_layer, app_layer):
    """Image tar with the base and app layers."""
    return write_image_tar(
        tmp_path / "app-v1.tar",
        [base_layer.data, app_layer.data],
        repo_tags=["app:v1"],
    )


def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")
