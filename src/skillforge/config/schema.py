"""Pydantic models for skillforge configuration."""

from pydantic import BaseModel, Field, field_validator


class SettingsConfig(BaseModel):
    """Where compiled skills go and how remote skills are cached."""

    out_dir: str = Field(
        default=".claude/skills",
        description="Directory compiled and imported skills are written to",
    )
    cache_dir: str = Field(
        default="~/.cache/skillforge",
        description="Directory for caching remote skills and git clones",
    )
    cache_ttl: int = Field(
        default=3600, ge=0, description="Seconds before a cached skill is refetched"
    )


class CompilerConfig(BaseModel):
    """Settings for the agent compiler."""

    model: str = Field(description="Model used to synthesize skills")
    max_tokens: int = Field(default=4096, gt=0, description="Response token limit")
    api_base: str = Field(
        default="https://api.anthropic.com", description="Messages API base URL"
    )

    @field_validator("api_base")
    @classmethod
    def validate_api_base(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base must be an http(s) URL")
        return v.rstrip("/")


class SkillforgeConfig(BaseModel):
    """Root configuration for skillforge."""

    version: str = Field(description="Config schema version")
    settings: SettingsConfig = Field(default_factory=SettingsConfig)
    compiler: CompilerConfig

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Only the 1.x schema is understood."""
        if not v.startswith("1."):
            raise ValueError(f"Unsupported config version: {v}")
        return v
