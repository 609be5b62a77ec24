"""Built-in default configuration for skillforge."""

from skillforge.compiler.agent import DEFAULT_MAX_TOKENS, DEFAULT_MODEL

# Base layer that every other config is merged on top of
DEFAULT_CONFIG = {
    "version": "1.0",
    "settings": {
        "out_dir": ".claude/skills",
        "cache_dir": "~/.cache/skillforge",
        "cache_ttl": 3600,
    },
    "compiler": {
        "model": DEFAULT_MODEL,
        "max_tokens": DEFAULT_MAX_TOKENS,
        "api_base": "https://api.anthropic.com",
    },
}
