"""Parsing of skill reference strings.

Supported formats:
- ``github:owner/repo/path/to/skill.md`` with an optional ``@ref`` suffix
- ``https://github.com/owner/repo/blob/<ref>/path/to/skill.md`` (or ``tree``)
- ``git:https://host/org/repo.git/path/to/skill.md`` with an optional ``@ref``
- ``owner/repo/path`` (no prefix) when it does not name an existing local file
- anything else is treated as a local filesystem path
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

from skillforge.core.errors import InvalidReferenceError
from skillforge.utils.paths import expand_path


@dataclass(frozen=True)
class LocalReference:
    """Reference to a SKILL.md file on disk."""

    path: Path


@dataclass(frozen=True)
class GitHubReference:
    """Reference to a skill file in a GitHub repository.

    Attributes:
        owner: Repository owner (user or organization)
        repo: Repository name
        path: Path of the skill file within the repository
        ref: Branch, tag or commit; None means the default branch
    """

    owner: str
    repo: str
    path: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class GitReference:
    """Reference to a skill file in an arbitrary git repository."""

    url: str
    path: str
    ref: Optional[str] = None


SkillReference = Union[LocalReference, GitHubReference, GitReference]


def _split_ref(value: str) -> tuple[str, Optional[str]]:
    """Split a trailing ``@ref`` off a reference."""
    at_index = value.rfind("@")
    if at_index == -1:
        return value, None
    return value[:at_index], value[at_index + 1:] or None


def parse_github_ref(reference: str) -> GitHubReference:
    """Parse ``github:owner/repo/path[@ref]`` (the prefix is optional).

    Raises:
        InvalidReferenceError: If owner, repo or path is missing
    """
    cleaned = reference[len("github:"):] if reference.startswith("github:") else reference
    path_part, ref = _split_ref(cleaned)

    parts = [p for p in path_part.split("/") if p]
    if len(parts) < 3:
        raise InvalidReferenceError(
            f"Invalid GitHub reference: {reference}. Expected format: owner/repo/path"
        )

    owner, repo, *path_parts = parts
    return GitHubReference(owner=owner, repo=repo, path="/".join(path_parts), ref=ref)


def parse_github_url(url: str) -> GitHubReference:
    """Parse a GitHub browser URL pointing at a skill file.

    Handles:
    - https://github.com/owner/repo/blob/main/skills/review.md
    - https://github.com/owner/repo/tree/v1.0/skills/review/SKILL.md
    - github.com/owner/repo/skills/review.md (default branch)

    Raises:
        InvalidReferenceError: If the URL is not a GitHub URL or has no file path
    """
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"

    parsed = urlparse(url)
    if parsed.netloc not in ("github.com", "www.github.com"):
        raise InvalidReferenceError(f"Not a GitHub URL: {url}")

    path_parts = [p for p in parsed.path.split("/") if p]
    if len(path_parts) < 3:
        raise InvalidReferenceError(
            f"Invalid GitHub URL: {url}. Expected owner/repo/path to a skill file"
        )

    owner, repo = path_parts[0], path_parts[1]
    ref = None
    rest = path_parts[2:]

    if rest[0] in ("blob", "tree"):
        if len(rest) < 3:
            raise InvalidReferenceError(f"Invalid GitHub URL: {url}. Missing file path")
        ref = rest[1]
        rest = rest[2:]

    return GitHubReference(owner=owner, repo=repo, path="/".join(rest), ref=ref)


def parse_git_ref(reference: str) -> GitReference:
    """Parse ``git:<repo-url>/<path>[@ref]``.

    The repository URL ends either at ``.git`` or after ``host/org/repo``.
    SSH URLs (``git@host:org/repo.git``) keep their ``@`` intact.

    Raises:
        InvalidReferenceError: If the repository and path cannot be separated
    """
    cleaned = reference[len("git:"):] if reference.startswith("git:") else reference

    ref = None
    at_index = cleaned.rfind("@")
    # The user part of an SSH URL (git@host) comes before any slash
    if at_index != -1 and "/" in cleaned[:at_index]:
        cleaned, ref = _split_ref(cleaned)

    git_index = cleaned.find(".git/")
    if git_index != -1:
        return GitReference(url=cleaned[: git_index + 4], path=cleaned[git_index + 5:], ref=ref)

    match = re.match(r"^(https?://[^/]+/[^/]+/[^/]+)/(.+)$", cleaned)
    if not match:
        raise InvalidReferenceError(
            f"Invalid git reference: {reference}. Expected format: git:url/path"
        )
    return GitReference(url=match.group(1), path=match.group(2), ref=ref)


def parse_reference(reference: str, base_path: Optional[Path] = None) -> SkillReference:
    """Parse any supported skill reference.

    Args:
        reference: Reference string
        base_path: Directory relative local paths are resolved against
            (defaults to the current directory)

    A bare ``owner/repo/path`` is read as a GitHub reference when no such
    local file exists.

    Returns:
        LocalReference, GitHubReference or GitReference

    Raises:
        InvalidReferenceError: If the reference is empty or malformed
    """
    reference = reference.strip()
    if not reference:
        raise InvalidReferenceError("Empty skill reference")

    if reference.startswith("github:"):
        return parse_github_ref(reference)
    if reference.startswith("git:"):
        return parse_git_ref(reference)
    if reference.startswith(("https://github.com/", "http://github.com/", "github.com/")):
        return parse_github_url(reference)

    path = Path(reference).expanduser()
    if not path.is_absolute() and base_path is not None:
        path = Path(base_path) / path
    path = expand_path(str(path))

    # owner/repo/path without the github: prefix, unless it names a local file
    if not path.exists() and _looks_like_github_shorthand(reference):
        return parse_github_ref(reference)
    return LocalReference(path=path)


def _looks_like_github_shorthand(reference: str) -> bool:
    if reference.startswith(("/", "~", ".", "\\")) or Path(reference).is_absolute():
        return False
    path_part, _ = _split_ref(reference)
    return len([p for p in path_part.split("/") if p]) >= 3
