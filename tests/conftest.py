"""Shared pytest fixtures for skillforge tests."""

import pytest

from skillforge.core import branch, concurrent, hydrate, leaf, sequence


@pytest.fixture
def anyio_backend():
    """Run anyio-marked tests on asyncio, the event loop the code targets."""
    return "asyncio"


@pytest.fixture
def skill_a():
    """Provide a simple leaf named 'a'."""
    return leaf({"name": "a", "instructions": "Do A."})


@pytest.fixture
def skill_b():
    """Provide a simple leaf named 'b'."""
    return leaf({"name": "b", "instructions": "Do B."})


@pytest.fixture
def skill_c():
    """Provide a simple leaf named 'c'."""
    return leaf({"name": "c", "instructions": "Do C."})


@pytest.fixture
def incident_composition(skill_a, skill_b, skill_c):
    """Provide a composition that uses every node type."""
    return sequence(
        skill_a,
        concurrent(hydrate(skill_b, {"service": "payments"}), skill_c),
        branch(when="severity is critical", then=skill_a, else_=skill_c),
    )


@pytest.fixture
def sample_skill_md():
    """Provide SKILL.md content with frontmatter."""
    return """---
name: sample-skill
description: A sample skill for testing
version: 1.0.0
---

# Sample Skill

This is a sample skill for testing purposes.
"""


@pytest.fixture
def sample_skill_dir(tmp_path, sample_skill_md):
    """Create a sample skill directory with SKILL.md."""
    skill_dir = tmp_path / "sample-skill"
    skill_dir.mkdir()
    (skill_dir / "SKILL.md").write_text(sample_skill_md)
    return skill_dir


@pytest.fixture
def temp_cache_dir(tmp_path):
    """Provide a temporary cache directory."""
    cache_dir = tmp_path / "cache"
    cache_dir.mkdir()
    return cache_dir


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Run in an empty working directory with a private HOME and no overrides."""
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    home_dir = tmp_path / "home"
    home_dir.mkdir()

    monkeypatch.chdir(work_dir)
    monkeypatch.setenv("HOME", str(home_dir))
    for var in (
        "SKILLFORGE_OUT_DIR",
        "SKILLFORGE_CACHE_DIR",
        "SKILLFORGE_CACHE_TTL",
        "SKILLFORGE_MODEL",
        "SKILLFORGE_MAX_TOKENS",
        "ANTHROPIC_API_KEY",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(var, raising=False)

    return {"work_dir": work_dir, "home_dir": home_dir}
