import os
from typing import Optional

from pydantic import BaseModel


DEFAULT_RPC_URL = "https://cloudflare-eth.com"

# Env var name -> Settings field, for the three explorer sources
SOURCE_ENV_VARS: dict[str, str] = {
    "BASE_API_URL": "base_api_url",
    "ETH_API_URL": "eth_api_url",
    "BASE_INTERNAL_API_URL": "base_internal_api_url",
}


class ConfigurationError(EnvironmentError):
    """Required configuration is missing."""


class Settings(BaseModel):
    # ── Explorer sources (address appended to each) ─────────────────────
    base_api_url: Optional[str] = None
    eth_api_url: Optional[str] = None
    base_internal_api_url: Optional[str] = None

    # ── Name resolution ─────────────────────────────────────────────────
    eth_rpc_url: str = DEFAULT_RPC_URL
    basename_suffix: str = ".base.eth"

    # ── Fetch policy ────────────────────────────────────────────────────
    max_retries: int = 8
    initial_delay: float = 1.0
    source_pause: float = 0.2
    request_timeout: float = 30.0

    # ── Presentation ────────────────────────────────────────────────────
    public_host: str = "http://localhost:8000"

    # Category value -> keyword override, e.g. {"swap": ("swap", "trade")}
    keyword_overrides: dict[str, tuple[str, ...]] = {}

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            base_api_url=os.getenv("BASE_API_URL") or None,
            eth_api_url=os.getenv("ETH_API_URL") or None,
            base_internal_api_url=os.getenv("BASE_INTERNAL_API_URL") or None,
            eth_rpc_url=_env("ETH_RPC_URL", DEFAULT_RPC_URL),
            basename_suffix=_env("BASENAME_SUFFIX", ".base.eth"),
            max_retries=int(_env("FETCH_MAX_RETRIES", "8")),
            initial_delay=float(_env("FETCH_INITIAL_DELAY", "1.0")),
            source_pause=float(_env("SOURCE_PAUSE", "0.2")),
            request_timeout=float(_env("REQUEST_TIMEOUT", "30")),
            public_host=_env("PUBLIC_HOST", "http://localhost:8000"),
            keyword_overrides=_keyword_overrides_from_env(),
        )

    def require_sources(self) -> tuple[str, str, str]:
        """Return the three source URLs, or raise if any is unset."""
        missing = [env for env, field in SOURCE_ENV_VARS.items() if not getattr(self, field)]
        if missing:
            raise ConfigurationError(
                f"API URLs are not defined in environment variables: {', '.join(missing)}"
            )
        return self.base_api_url, self.eth_api_url, self.base_internal_api_url


def _env(name: str, default: str) -> str:
    """Env var value, with unset and blank both meaning ``default``."""
    return os.getenv(name, "").strip() or default


def _keyword_overrides_from_env() -> dict[str, tuple[str, ...]]:
    # CLASSIFY_SWAP_KEYWORDS="swap,exactinput" -> {"swap": ("swap", "exactinput")}
    overrides: dict[str, tuple[str, ...]] = {}
    for category in ("swap", "bridge", "defi", "naming"):
        raw = os.getenv(f"CLASSIFY_{category.upper()}_KEYWORDS", "")
        keywords = tuple(k.strip().lower() for k in raw.split(",") if k.strip())
        if keywords:
            overrides[category] = keywords
    return overrides
