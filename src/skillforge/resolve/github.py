"""GitHub skill resolver using the GitHub Contents API."""

import asyncio
from typing import Any, Optional

import httpx

from skillforge.core.errors import ResolutionError, SkillNotFoundError
from skillforge.core.types import GitHubSource, Skill
from skillforge.resolve.cache import SkillCache
from skillforge.resolve.parse import parse_skill_md
from skillforge.resolve.reference import GitHubReference


class GitHubResolver:
    """Resolver for skill files stored in GitHub repositories."""

    BASE_URL = "https://api.github.com"
    MAX_RETRIES = 3
    RETRY_DELAY = 1.0  # seconds

    def __init__(self, token: Optional[str] = None, cache: Optional[SkillCache] = None):
        """Initialize the resolver.

        Args:
            token: Optional GitHub token for authenticated requests
            cache: Optional cache for fetched files
        """
        self.token = token
        self.cache = cache
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    async def resolve(self, reference: GitHubReference, force_refresh: bool = False) -> Skill:
        """Fetch and parse a skill file.

        Args:
            reference: GitHub location of the skill file
            force_refresh: Skip the cache and fetch again

        Returns:
            The parsed Skill

        Raises:
            SkillNotFoundError: If the file does not exist
            ResolutionError: If the path is not a file
            httpx.HTTPError: If requests fail after retries
        """
        ref = reference.ref or "HEAD"
        content = None

        if self.cache is not None and not force_refresh:
            content = self.cache.get(reference.owner, reference.repo, reference.path, ref)

        if content is None:
            async with httpx.AsyncClient(timeout=30.0) as client:
                content = await self.fetch_content(client, reference)
            if self.cache is not None:
                self.cache.put(content, reference.owner, reference.repo, reference.path, ref)

        parsed = parse_skill_md(
            content, f"github:{reference.owner}/{reference.repo}/{reference.path}"
        )
        return Skill(
            name=parsed.name,
            description=parsed.description,
            instructions=parsed.instructions,
            source=GitHubSource(
                owner=reference.owner,
                repo=reference.repo,
                path=reference.path,
                ref=reference.ref,
            ),
            metadata=parsed.frontmatter or None,
        )

    async def fetch_content(self, client: httpx.AsyncClient, reference: GitHubReference) -> str:
        """Look the file up through the Contents API and download it."""
        item = await self._get_contents(client, reference)

        download_url = item.get("download_url")
        if not download_url:
            raise ResolutionError(f"No download_url for file: {reference.path}")

        return await self._download(client, download_url)

    async def _get_contents(
        self, client: httpx.AsyncClient, reference: GitHubReference
    ) -> dict[str, Any]:
        url = f"{self.BASE_URL}/repos/{reference.owner}/{reference.repo}/contents/{reference.path}"
        params = {"ref": reference.ref} if reference.ref else None

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await client.get(
                    url, headers=self._headers, params=params, follow_redirects=True
                )
                response.raise_for_status()

                data = response.json()
                if not isinstance(data, dict) or data.get("type") != "file":
                    raise ResolutionError(
                        f"Expected a skill file at {reference.path}, got a directory or invalid response"
                    )
                return data

            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise SkillNotFoundError(
                        f"Skill not found on GitHub: "
                        f"{reference.owner}/{reference.repo}/{reference.path}@{reference.ref or 'HEAD'}"
                    ) from e
                elif e.response.status_code == 403:
                    # Rate limiting - retry with backoff
                    if attempt < self.MAX_RETRIES - 1:
                        await asyncio.sleep(self.RETRY_DELAY * (attempt + 1))
                        continue
                raise
            except httpx.TransportError:
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_DELAY * (attempt + 1))
                    continue
                raise

        raise httpx.HTTPError(f"Failed to fetch contents after {self.MAX_RETRIES} attempts")

    async def _download(self, client: httpx.AsyncClient, download_url: str) -> str:
        for attempt in range(self.MAX_RETRIES):
            try:
                response = await client.get(download_url, follow_redirects=True)
                response.raise_for_status()
                return response.text

            except httpx.HTTPError:
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_DELAY * (attempt + 1))
                    continue
                raise

        raise httpx.HTTPError(f"Failed to download {download_url} after {self.MAX_RETRIES} attempts")
