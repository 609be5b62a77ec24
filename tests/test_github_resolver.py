"""Tests for the GitHub resolver with mocked API responses."""

import httpx
import pytest
import respx

from skillforge.core.errors import ResolutionError, SkillNotFoundError
from skillforge.core.types import GitHubSource
from skillforge.resolve.cache import SkillCache
from skillforge.resolve.github import GitHubResolver
from skillforge.resolve.reference import GitHubReference

CONTENTS_URL = "https://api.github.com/repos/owner/repo/contents/skills/review/SKILL.md"
DOWNLOAD_URL = "https://raw.githubusercontent.com/owner/repo/main/skills/review/SKILL.md"

SKILL_CONTENT = """---
name: review
description: Review pull requests
---

# Review

Read the diff carefully.
"""


@pytest.fixture
def reference():
    """Provide a reference to a skill file."""
    return GitHubReference(owner="owner", repo="repo", path="skills/review/SKILL.md", ref="main")


@pytest.fixture
def no_retry_delay(monkeypatch):
    """Make retries immediate."""
    monkeypatch.setattr(GitHubResolver, "RETRY_DELAY", 0)


def file_item():
    """Build a Contents API file response."""
    return {
        "type": "file",
        "name": "SKILL.md",
        "path": "skills/review/SKILL.md",
        "download_url": DOWNLOAD_URL,
    }


class TestGitHubResolverInit:
    """Test GitHubResolver initialization."""

    def test_init_without_token(self):
        """Test initialization without token."""
        resolver = GitHubResolver()

        assert resolver.token is None
        assert "Authorization" not in resolver._headers
        assert resolver._headers["Accept"] == "application/vnd.github+json"

    def test_init_with_token(self):
        """Test initialization with token."""
        resolver = GitHubResolver(token="test-token-123")

        assert resolver._headers["Authorization"] == "Bearer test-token-123"


@pytest.mark.anyio
class TestGitHubResolverResolve:
    """Test GitHubResolver.resolve()."""

    @respx.mock
    async def test_resolve_skill(self, reference):
        """Test fetching and parsing a skill file."""
        contents = respx.get(CONTENTS_URL).mock(return_value=httpx.Response(200, json=file_item()))
        respx.get(DOWNLOAD_URL).mock(return_value=httpx.Response(200, text=SKILL_CONTENT))

        skill = await GitHubResolver(token="t").resolve(reference)

        assert skill.name == "review"
        assert skill.description == "Review pull requests"
        assert skill.instructions.startswith("# Review")
        assert skill.source == GitHubSource(
            owner="owner", repo="repo", path="skills/review/SKILL.md", ref="main"
        )
        request = contents.calls.last.request
        assert request.url.params["ref"] == "main"
        assert request.headers["Authorization"] == "Bearer t"

    @respx.mock
    async def test_default_branch_sends_no_ref(self):
        """Test that a reference without ref omits the query parameter."""
        contents = respx.get(CONTENTS_URL).mock(return_value=httpx.Response(200, json=file_item()))
        respx.get(DOWNLOAD_URL).mock(return_value=httpx.Response(200, text=SKILL_CONTENT))

        await GitHubResolver().resolve(
            GitHubReference(owner="owner", repo="repo", path="skills/review/SKILL.md")
        )

        assert "ref" not in contents.calls.last.request.url.params

    @respx.mock
    async def test_not_found(self, reference):
        """Test that a 404 becomes SkillNotFoundError."""
        respx.get(CONTENTS_URL).mock(return_value=httpx.Response(404))

        with pytest.raises(SkillNotFoundError):
            await GitHubResolver().resolve(reference)

    @respx.mock
    async def test_directory_rejected(self, reference):
        """Test that a directory listing is not a skill file."""
        respx.get(CONTENTS_URL).mock(return_value=httpx.Response(200, json=[file_item()]))

        with pytest.raises(ResolutionError):
            await GitHubResolver().resolve(reference)

    @respx.mock
    async def test_rate_limit_retried(self, reference, no_retry_delay):
        """Test that a 403 is retried."""
        contents = respx.get(CONTENTS_URL).mock(
            side_effect=[httpx.Response(403), httpx.Response(200, json=file_item())]
        )
        respx.get(DOWNLOAD_URL).mock(return_value=httpx.Response(200, text=SKILL_CONTENT))

        skill = await GitHubResolver().resolve(reference)

        assert skill.name == "review"
        assert contents.call_count == 2

    @respx.mock
    async def test_persistent_rate_limit(self, reference, no_retry_delay):
        """Test that the last 403 propagates."""
        contents = respx.get(CONTENTS_URL).mock(return_value=httpx.Response(403))

        with pytest.raises(httpx.HTTPStatusError):
            await GitHubResolver().resolve(reference)

        assert contents.call_count == GitHubResolver.MAX_RETRIES


@pytest.mark.anyio
class TestGitHubResolverCache:
    """Test caching of fetched files."""

    @respx.mock
    async def test_second_resolve_uses_cache(self, reference, temp_cache_dir):
        """Test that a cached file is not fetched again."""
        contents = respx.get(CONTENTS_URL).mock(return_value=httpx.Response(200, json=file_item()))
        download = respx.get(DOWNLOAD_URL).mock(return_value=httpx.Response(200, text=SKILL_CONTENT))
        resolver = GitHubResolver(cache=SkillCache(temp_cache_dir))

        first = await resolver.resolve(reference)
        second = await resolver.resolve(reference)

        assert first == second
        assert contents.call_count == 1
        assert download.call_count == 1

    @respx.mock
    async def test_force_refresh_bypasses_cache(self, reference, temp_cache_dir):
        """Test that force_refresh fetches again."""
        contents = respx.get(CONTENTS_URL).mock(return_value=httpx.Response(200, json=file_item()))
        respx.get(DOWNLOAD_URL).mock(return_value=httpx.Response(200, text=SKILL_CONTENT))
        resolver = GitHubResolver(cache=SkillCache(temp_cache_dir))

        await resolver.resolve(reference)
        await resolver.resolve(reference, force_refresh=True)

        assert contents.call_count == 2
