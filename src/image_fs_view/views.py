"""Async functional image filesystem view operations."""

import asyncio
import functools
import logging
from pathlib import Path

import aiofiles

from .core.diff import compare_images
from .core.overlay import LayerFileReader, extract_layer, open_file, read_file, resolve_overlay
from .core.types import Image, TreeOptions, ViewConfig
from .models import ArchiveEntry, DiffResult, FileInfo, TreeNode
from .tar.image import TarImage
from .utils.filters import filter_by_path, filter_by_pattern
from .utils.tree import build_tree

logger = logging.getLogger(__name__)


async def _run_sync(func, *args, **kwargs):
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


def _image_entries(image: Image, layer: int | None) -> list[ArchiveEntry]:
    layers = image.layers()
    logger.debug(f"Found {len(layers)} layers")

    if layer is not None:
        return extract_layer(layers, layer)
    return resolve_overlay(layers).entries()


def list_image_files(
    image: Image,
    path: str | None = None,
    pattern: str | None = None,
    layer: int | None = None,
) -> list[FileInfo]:
    """List files of the merged filesystem, or of one layer.

    Args:
        image: Image to inspect
        path: Restrict to this directory (or file) and its descendants
        pattern: Substring or glob filter
        layer: 0-based layer index for a raw per-layer listing

    Returns:
        File rows; an empty list when nothing matches
    """
    files = [entry.to_file_info() for entry in _image_entries(image, layer)]
    if path:
        files = filter_by_path(files, path)
    if pattern:
        files = filter_by_pattern(files, pattern)
    return files


def read_image_file(image: Image, file_path: str, layer: int | None = None) -> bytes:
    """Read a file as a running container would see it, or from one layer."""
    return read_file(image.layers(), file_path, layer)


def open_image_file(image: Image, file_path: str, layer: int | None = None) -> LayerFileReader:
    """Open a file for chunked reading; the caller closes the returned reader."""
    return open_file(image.layers(), file_path, layer)


def build_image_tree(
    image: Image,
    path: str = "/",
    layer: int | None = None,
    options: TreeOptions | None = None,
) -> TreeNode:
    """Build the directory tree of the merged filesystem, or of one layer."""
    return build_tree(_image_entries(image, layer), path, options)


def _with_tar_image(tar_path: str | Path, func, *args, **kwargs):
    with TarImage(tar_path) as image:
        return func(image, *args, **kwargs)


def _compare_tar_images(first_path: str | Path, second_path: str | Path) -> DiffResult:
    with TarImage(first_path) as first, TarImage(second_path) as second:
        logger.debug(f"Comparing {first.tar_path.name} with {second.tar_path.name}")
        return compare_images(first, second)


async def list_files(
    tar_path: str | Path,
    path: str | None = None,
    pattern: str | None = None,
    layer: int | None = None,
) -> list[FileInfo]:
    """이미지 tar 파일의 파일 목록을 조회합니다.

    기본적으로 모든 레이어를 합친 최종 오버레이 파일시스템을 보여주며,
    layer를 지정하면 해당 레이어의 변경 내용만 보여줍니다.

    Args:
        tar_path: 이미지 tar 파일 경로 (docker save 결과물)
        path: 이 경로 아래의 파일만 조회 (예: "/etc")
        pattern: 필터 패턴
            - 부분 문자열: "nginx"
            - basename glob: "*.conf"
            - 경로 glob: "/etc/**/*.conf"
        layer: 레이어 인덱스 (0부터 시작, None이면 병합된 파일시스템)

    Returns:
        list[FileInfo]: 파일 정보 목록 (일치하는 파일이 없으면 빈 목록)

    Raises:
        TarReadError: tar 파일을 읽을 수 없는 경우
        LayerNotFoundError: 레이어 인덱스가 범위를 벗어난 경우
        LayerDecodeError: 레이어 아카이브가 손상된 경우

    Examples:
        files = await list_files("nginx.tar", path="/etc/nginx", pattern="*.conf")
        for file in files:
            print(f"{file.mode} {file.size} {file.path}")
    """
    return await _run_sync(
        _with_tar_image, tar_path, list_image_files, path, pattern, layer
    )


async def cat_file(
    tar_path: str | Path, file_path: str, layer: int | None = None
) -> bytes:
    """이미지 tar 파일에서 파일 내용을 읽습니다.

    Args:
        tar_path: 이미지 tar 파일 경로
        file_path: 읽을 파일 경로 (예: "/etc/os-release", "etc/os-release")
        layer: 레이어 인덱스 (0부터 시작, None이면 최종 오버레이 기준)

    Returns:
        bytes: 파일 내용

    Raises:
        FileNotFoundInImageError: 파일이 없거나 상위 레이어에서 삭제된 경우
        NotARegularFileError: 경로가 일반 파일이 아닌 경우

    Examples:
        content = await cat_file("alpine.tar", "/etc/alpine-release")
        print(content.decode())
    """
    return await _run_sync(_with_tar_image, tar_path, read_image_file, file_path, layer)


async def save_file(
    tar_path: str | Path,
    file_path: str,
    destination: str | Path,
    layer: int | None = None,
    config: ViewConfig | None = None,
) -> int:
    """이미지 tar 파일의 파일을 로컬 경로에 저장합니다.

    Args:
        tar_path: 이미지 tar 파일 경로
        file_path: 이미지 안의 파일 경로
        destination: 저장할 로컬 파일 경로
        layer: 레이어 인덱스 (0부터 시작, None이면 최종 오버레이 기준)
        config: 쓰기 청크 크기 등 설정

    Returns:
        int: 저장한 바이트 수

    Examples:
        written = await save_file("nginx.tar", "/etc/nginx/nginx.conf", "nginx.conf")
    """
    config = config or ViewConfig()
    image = TarImage(tar_path)
    await _run_sync(image.open)

    try:
        reader = await _run_sync(open_image_file, image, file_path, layer)
        try:
            written = 0
            async with aiofiles.open(destination, "wb") as f:
                while True:
                    chunk = await _run_sync(reader.read, config.chunk_size)
                    if not chunk:
                        break
                    await f.write(chunk)
                    written += len(chunk)
        finally:
            await _run_sync(reader.close)
    finally:
        await _run_sync(image.close)

    logger.debug(f"Saved {file_path} to {destination} ({written} bytes)")
    return written


async def get_tree(
    tar_path: str | Path,
    path: str = "/",
    layer: int | None = None,
    options: TreeOptions | None = None,
) -> TreeNode:
    """이미지 tar 파일의 디렉터리 트리 구조를 만듭니다.

    Args:
        tar_path: 이미지 tar 파일 경로
        path: 트리의 시작 디렉터리 (기본값: "/")
        layer: 레이어 인덱스 (0부터 시작, None이면 병합된 파일시스템)
        options: 깊이 제한, 숨김 파일, 제외 패턴 등 트리 옵션

    Returns:
        TreeNode: 루트 노드 (children에 하위 항목 포함)

    Examples:
        tree = await get_tree("nginx.tar", "/etc", options=TreeOptions(level=2))
        for child in tree.children:
            print(child.name)
    """
    return await _run_sync(
        _with_tar_image, tar_path, build_image_tree, path, layer, options
    )


async def compare_tars(first_path: str | Path, second_path: str | Path) -> DiffResult:
    """같은 저장소의 두 이미지 tar 파일을 비교합니다.

    두 이미지가 공유하는 레이어는 읽지 않고, 각 이미지에만 있는 레이어의
    파일 목록만 비교합니다. 양쪽 고유 레이어에 모두 있는 파일은 내용 비교
    없이 modified로 분류됩니다.

    Args:
        first_path: 기준 이미지 tar 파일 경로 (예: "app-v1.tar")
        second_path: 비교할 이미지 tar 파일 경로 (예: "app-v2.tar")

    Returns:
        DiffResult: added, removed, modified 경로 목록 (정렬됨)

    Raises:
        RepositoryMismatchError: 두 이미지의 저장소가 다른 경우

    Examples:
        result = await compare_tars("app-v1.tar", "app-v2.tar")
        if result.identical:
            print("Images are identical")
        for path in result.added:
            print(f"+ {path}")
    """
    return await _run_sync(_compare_tar_images, first_path, second_path)
