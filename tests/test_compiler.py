"""Tests for the agent compiler with a mocked Messages API."""

import json

import httpx
import pytest
import respx

from skillforge.compiler.agent import (
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    AnthropicSynthesizer,
    CompileOptions,
    compile_composition,
    preview_compilation,
    strip_code_fences,
)
from skillforge.compiler.protocols import SynthesisResult
from skillforge.core.errors import SynthesizerError

MESSAGES_URL = "https://api.anthropic.com/v1/messages"


def messages_response(text, model=DEFAULT_MODEL):
    """Build a Messages API response body."""
    return {
        "id": "msg_123",
        "type": "message",
        "role": "assistant",
        "model": model,
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": 120, "output_tokens": 45},
    }


class RecordingSynthesizer:
    """Synthesizer double that records prompts and returns canned text."""

    def __init__(self, text):
        self.text = text
        self.calls = []

    async def synthesize(self, prompt, *, system_prompt):
        self.calls.append((prompt, system_prompt))
        return SynthesisResult(text=self.text, model="fake-model", input_tokens=3, output_tokens=4)


@pytest.fixture
def no_retry_delay(monkeypatch):
    """Make retries immediate."""
    monkeypatch.setattr(AnthropicSynthesizer, "RETRY_DELAY", 0)


class TestStripCodeFences:
    """Test strip_code_fences()."""

    @pytest.mark.parametrize(
        "raw",
        [
            "```markdown\n# Title\n```",
            "```md\n# Title\n```",
            "```\n# Title\n```",
            "  # Title  \n",
        ],
    )
    def test_fences_removed(self, raw):
        """Test that wrapping fences and whitespace are removed."""
        assert strip_code_fences(raw) == "# Title"

    def test_inner_fences_kept(self):
        """Test that fences inside the document survive."""
        content = "# Title\n\n```bash\nls\n```\n\nDone."

        assert strip_code_fences(content) == content


class TestAnthropicSynthesizerInit:
    """Test AnthropicSynthesizer configuration."""

    def test_api_key_from_env(self, monkeypatch):
        """Test that the key falls back to ANTHROPIC_API_KEY."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

        assert AnthropicSynthesizer().api_key == "env-key"

    def test_api_base_trailing_slash(self):
        """Test that a trailing slash on the base URL is dropped."""
        synthesizer = AnthropicSynthesizer(api_key="k", api_base="https://proxy.local/")

        assert synthesizer.api_base == "https://proxy.local"


@pytest.mark.anyio
class TestAnthropicSynthesizer:
    """Test AnthropicSynthesizer requests."""

    async def test_missing_api_key(self, monkeypatch):
        """Test that synthesizing without a key fails before any request."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with pytest.raises(SynthesizerError):
            await AnthropicSynthesizer().synthesize("prompt", system_prompt="system")

    @respx.mock
    async def test_successful_request(self):
        """Test the request payload and the parsed result."""
        route = respx.post(MESSAGES_URL).mock(
            return_value=httpx.Response(200, json=messages_response("# Skill"))
        )

        synthesizer = AnthropicSynthesizer(api_key="test-key", max_tokens=1000)
        result = await synthesizer.synthesize("the prompt", system_prompt="the system")

        assert result.text == "# Skill"
        assert result.model == DEFAULT_MODEL
        assert result.input_tokens == 120
        assert result.output_tokens == 45

        request = route.calls.last.request
        assert request.headers["x-api-key"] == "test-key"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = json.loads(request.content)
        assert body["model"] == DEFAULT_MODEL
        assert body["max_tokens"] == 1000
        assert body["system"] == "the system"
        assert body["messages"] == [{"role": "user", "content": "the prompt"}]

    @respx.mock
    async def test_retries_on_overload(self, no_retry_delay):
        """Test that a 529 response is retried."""
        route = respx.post(MESSAGES_URL).mock(
            side_effect=[
                httpx.Response(529, json={"type": "error"}),
                httpx.Response(200, json=messages_response("# Skill")),
            ]
        )

        result = await AnthropicSynthesizer(api_key="k").synthesize("p", system_prompt="s")

        assert result.text == "# Skill"
        assert route.call_count == 2

    @respx.mock
    async def test_gives_up_after_max_retries(self, no_retry_delay):
        """Test that persistent server errors propagate."""
        route = respx.post(MESSAGES_URL).mock(return_value=httpx.Response(500))

        with pytest.raises(httpx.HTTPStatusError):
            await AnthropicSynthesizer(api_key="k").synthesize("p", system_prompt="s")

        assert route.call_count == AnthropicSynthesizer.MAX_RETRIES

    @respx.mock
    async def test_rejected_key(self):
        """Test that a 401 becomes a SynthesizerError without retrying."""
        route = respx.post(MESSAGES_URL).mock(return_value=httpx.Response(401))

        with pytest.raises(SynthesizerError):
            await AnthropicSynthesizer(api_key="bad").synthesize("p", system_prompt="s")

        assert route.call_count == 1

    @respx.mock
    async def test_network_error_retried(self, no_retry_delay):
        """Test that transport errors are retried."""
        route = respx.post(MESSAGES_URL).mock(
            side_effect=[
                httpx.ConnectError("boom"),
                httpx.Response(200, json=messages_response("# Skill")),
            ]
        )

        result = await AnthropicSynthesizer(api_key="k").synthesize("p", system_prompt="s")

        assert result.text == "# Skill"
        assert route.call_count == 2

    @respx.mock
    async def test_empty_content(self):
        """Test that a response without text is an error."""
        body = messages_response("")
        body["content"] = []
        respx.post(MESSAGES_URL).mock(return_value=httpx.Response(200, json=body))

        with pytest.raises(SynthesizerError):
            await AnthropicSynthesizer(api_key="k").synthesize("p", system_prompt="s")


@pytest.mark.anyio
class TestCompileComposition:
    """Test compile_composition()."""

    async def test_compile_with_fake_synthesizer(self, incident_composition):
        """Test prompt contents, fence stripping and metadata."""
        synthesizer = RecordingSynthesizer("```markdown\n---\nname: incident\n---\n# Incident\n```")

        result = await compile_composition(
            incident_composition,
            CompileOptions(name="incident", description="Handle incidents"),
            synthesizer,
        )

        assert result.content == "---\nname: incident\n---\n# Incident"
        assert result.metadata == {
            "model": "fake-model",
            "input_tokens": 3,
            "output_tokens": 4,
            "skill_count": 3,
            "patterns": ["sequential", "parallel", "conditional", "hydrated"],
        }

        prompt, system_prompt = synthesizer.calls[0]
        assert system_prompt == DEFAULT_SYSTEM_PROMPT
        assert "# Skill Composition: incident" in prompt
        assert "**Desired skill description:** Handle incidents" in prompt

    async def test_custom_system_prompt(self, skill_a):
        """Test that the system prompt can be overridden."""
        synthesizer = RecordingSynthesizer("# A")

        await compile_composition(skill_a, CompileOptions(name="a", system_prompt="Be brief."), synthesizer)

        assert synthesizer.calls[0][1] == "Be brief."

    @respx.mock
    async def test_compile_over_http(self, skill_a):
        """Test compiling end to end against the mocked API."""
        respx.post(MESSAGES_URL).mock(
            return_value=httpx.Response(200, json=messages_response("```\n# A\n```"))
        )

        result = await compile_composition(
            skill_a, CompileOptions(name="a"), AnthropicSynthesizer(api_key="k")
        )

        assert result.content == "# A"
        assert result.metadata["skill_count"] == 1
        assert result.metadata["patterns"] == []


class TestPreviewCompilation:
    """Test preview_compilation()."""

    def test_preview_contains_outline(self, incident_composition):
        """Test that the preview is the formatted composition."""
        text = preview_compilation(incident_composition, "incident")

        assert text.startswith("# Skill Composition: incident")
        assert "SEQUENCE (execute in order):" in text
        assert "Desired skill description" not in text

    def test_preview_with_description(self, skill_a):
        """Test that a description is appended."""
        text = preview_compilation(skill_a, "a", "Does A")

        assert text.rstrip().endswith("**Desired skill description:** Does A")
