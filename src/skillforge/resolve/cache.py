"""On-disk cache for remote SKILL.md files with TTL-based expiration."""

import hashlib
import json
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from skillforge.utils.paths import ensure_dir, expand_path


class SkillCache:
    """Cache for fetched skill files.

    Each entry lives in its own directory under the cache root, holding the
    skill content and a metadata file recording where it came from and when
    it was cached.
    """

    CONTENT_FILE = "SKILL.md"
    METADATA_FILE = ".cache-metadata.json"
    DEFAULT_TTL_SECONDS = 3600

    def __init__(self, cache_dir: Path, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        """Initialize the cache.

        Args:
            cache_dir: Root directory for cached files (e.g. ~/.cache/skillforge/github)
            ttl_seconds: Time-to-live for cached entries (default: one hour)
        """
        self.cache_dir = expand_path(str(cache_dir))
        self.ttl_seconds = ttl_seconds

    def get_cache_key(self, owner: str, repo: str, path: str, ref: str) -> str:
        """Build a stable, filesystem-safe directory name for an entry."""
        identifier = f"{owner}/{repo}/{path}@{ref}"
        digest = hashlib.sha256(identifier.encode()).hexdigest()[:16]

        readable = "-".join(
            part.replace("/", "-").replace(".", "-") for part in (owner, repo, ref)
        )
        return f"{readable}-{digest}"

    def get(self, owner: str, repo: str, path: str, ref: str) -> Optional[str]:
        """Return cached content if present, matching and not expired.

        Expired entries are removed.
        """
        entry = self.cache_dir / self.get_cache_key(owner, repo, path, ref)
        if not entry.is_dir():
            return None

        if self.is_expired(entry):
            shutil.rmtree(entry, ignore_errors=True)
            return None

        try:
            metadata = json.loads((entry / self.METADATA_FILE).read_text())
            content = (entry / self.CONTENT_FILE).read_text(encoding="utf-8")
        except (json.JSONDecodeError, OSError):
            return None

        if (
            metadata.get("owner") != owner
            or metadata.get("repo") != repo
            or metadata.get("path") != path
            or metadata.get("ref") != ref
        ):
            return None

        return content

    def put(self, content: str, owner: str, repo: str, path: str, ref: str) -> Path:
        """Store content for an entry, replacing any previous version.

        Returns:
            The entry directory

        Raises:
            OSError: If the entry cannot be written
        """
        entry = self.cache_dir / self.get_cache_key(owner, repo, path, ref)
        if entry.exists():
            shutil.rmtree(entry, ignore_errors=True)
        ensure_dir(entry)

        (entry / self.CONTENT_FILE).write_text(content, encoding="utf-8")
        metadata = {
            "cached_at": datetime.now(timezone.utc).isoformat(),
            "owner": owner,
            "repo": repo,
            "path": path,
            "ref": ref,
        }
        (entry / self.METADATA_FILE).write_text(json.dumps(metadata, indent=2))
        return entry

    def is_expired(self, entry: Path) -> bool:
        """Check whether a cache entry is older than the TTL or unreadable."""
        metadata_path = entry / self.METADATA_FILE
        if not metadata_path.exists():
            return True

        try:
            metadata = json.loads(metadata_path.read_text())
            cached_at_str = metadata.get("cached_at")
            if not cached_at_str:
                return True

            cached_at = datetime.fromisoformat(cached_at_str)
            if cached_at.tzinfo is None:
                cached_at = cached_at.replace(tzinfo=timezone.utc)

            age = datetime.now(timezone.utc) - cached_at
            return age > timedelta(seconds=self.ttl_seconds)

        except (json.JSONDecodeError, ValueError, OSError):
            return True

    def clear(self) -> int:
        """Remove every cached entry.

        Returns:
            Number of entries removed
        """
        if not self.cache_dir.exists():
            return 0

        removed = 0
        for item in self.cache_dir.iterdir():
            if item.is_dir():
                shutil.rmtree(item, ignore_errors=True)
                removed += 1
            elif item.is_file():
                item.unlink(missing_ok=True)
        return removed
