"""Repository and tag extraction from image tar files."""

import json
import tarfile

from ..exceptions import ValidationError

DEFAULT_REGISTRY = "docker.io"
DEFAULT_TAG = "latest"
_DOCKER_HUB_ALIASES = ("docker.io", "index.docker.io", "registry-1.docker.io")


def extract_repo_tags_from_repositories(tar: tarfile.TarFile) -> list[str]:
    """Extract repository tags from the legacy ``repositories`` file.

    Args:
        tar: Open image tar file

    Returns:
        List of repository tags (e.g., ["nginx:alpine", "myapp:latest"])

    Raises:
        ValidationError: If the repositories file is invalid or missing
    """
    try:
        repos_member = tar.extractfile("repositories")
        if repos_member is None:
            raise ValidationError("repositories file not found in tar file")

        repos_data = json.loads(repos_member.read().decode("utf-8"))

    except KeyError as e:
        raise ValidationError("repositories file not found in tar file") from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in repositories file: {e}") from e
    except UnicodeDecodeError as e:
        raise ValidationError(f"Cannot decode repositories file: {e}") from e

    if not isinstance(repos_data, dict):
        raise ValidationError("repositories file must be a JSON object")

    # Extract tags from repositories structure: {"repo": {"tag": "layer_id"}}
    repo_tags = []
    for repo_name, tag_dict in repos_data.items():
        if isinstance(tag_dict, dict):
            for tag_name in tag_dict:
                repo_tags.append(f"{repo_name}:{tag_name}")

    return repo_tags


def parse_repository_tag(repo_tag: str) -> tuple[str, str]:
    """저장소:태그 문자열을 저장소와 태그 구성요소로 파싱합니다.

    Args:
        repo_tag: 저장소 태그 문자열
            - 예: "nginx:alpine", "localhost:5000/myapp:latest"
            - digest 참조: "nginx@sha256:abc123..."

    Returns:
        tuple[str, str]: (저장소, 태그 또는 digest) 튜플

    Examples:
        # 기본 이미지 태그 파싱
        repo, tag = parse_repository_tag("nginx:alpine")
        # 결과: ("nginx", "alpine")

        # 레지스트리 포트가 포함된 경우
        repo, tag = parse_repository_tag("localhost:5000/myapp")
        # 결과: ("localhost:5000/myapp", "latest")
    """
    if "@" in repo_tag:
        repository, _, digest = repo_tag.partition("@")
        return repository, digest

    # Only a colon after the last slash separates a tag; earlier ones are ports
    name_start = repo_tag.rfind("/") + 1
    colon = repo_tag.rfind(":")
    if colon >= name_start:
        tag = repo_tag[colon + 1 :]
        return repo_tag[:colon], tag or DEFAULT_TAG

    return repo_tag, DEFAULT_TAG


def normalize_repository(repository: str) -> str:
    """저장소 이름을 레지스트리를 포함한 전체 이름으로 정규화합니다.

    같은 저장소를 가리키는 서로 다른 표기("alpine", "library/alpine",
    "docker.io/library/alpine")를 하나의 이름으로 맞춥니다.

    Args:
        repository: 태그가 없는 저장소 이름

    Returns:
        str: 정규화된 저장소 이름

    Examples:
        normalize_repository("alpine")
        # 결과: "docker.io/library/alpine"

        normalize_repository("localhost:5000/myapp")
        # 결과: "localhost:5000/myapp"
    """
    first, _, rest = repository.partition("/")
    if not rest:
        return f"{DEFAULT_REGISTRY}/library/{repository}"

    if "." in first or ":" in first or first == "localhost":
        if first not in _DOCKER_HUB_ALIASES:
            return repository
        if "/" not in rest:
            rest = f"library/{rest}"
        return f"{DEFAULT_REGISTRY}/{rest}"

    return f"{DEFAULT_REGISTRY}/{repository}"


def get_primary_tag(repo_tags: list[str]) -> tuple[str, str] | None:
    """태그 목록에서 주요(첫 번째) 저장소와 태그를 가져옵니다.

    Args:
        repo_tags: 저장소 태그 목록 (예: ["nginx:alpine", "nginx:latest"])

    Returns:
        tuple[str, str] | None: (정규화된 저장소, 태그) 튜플 또는 태그가 없는 경우 None
    """
    if not repo_tags:
        return None

    repository, tag = parse_repository_tag(repo_tags[0])
    return normalize_repository(repository), tag
