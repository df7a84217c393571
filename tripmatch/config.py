"""Runtime settings for TripMatch, read from environment variables.

Secrets follow the same lookup order everywhere: environment first, then
the system keyring when the ``keyring`` library is installed.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_DEFAULT_HOME = Path.home() / ".tripmatch"
_DEFAULT_RPC_URL = "http://localhost:5001/tripmatch/us-central1"
_DEFAULT_TIMEOUT_S = 30.0
_DEFAULT_PAGE_SIZE = 10
_MAX_PAGE_SIZE = 100

KEYRING_SERVICE = "tripmatch"
KEYRING_USER = "rpc-token"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Effective configuration for one process."""

    home: Path = _DEFAULT_HOME
    rpc_url: str = _DEFAULT_RPC_URL
    rpc_token: Optional[str] = None
    rpc_timeout: float = Field(default=_DEFAULT_TIMEOUT_S, gt=0)
    page_size: int = Field(default=_DEFAULT_PAGE_SIZE, ge=1, le=_MAX_PAGE_SIZE)
    bidirectional_age: bool = False

    @property
    def viewed_path(self) -> Path:
        return self.home / "viewed_itineraries.json"

    @property
    def cache_path(self) -> Path:
        return self.home / "search_cache.json"

    def masked_token(self) -> str:
        if not self.rpc_token:
            return "(not set)"
        return self.rpc_token[:4] + "..." if len(self.rpc_token) > 8 else "****"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def _env_int(name: str, default: int, low: int, high: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    return max(low, min(high, value))


def keyring_token() -> Optional[str]:
    """Return the RPC token stored in the system keyring, if any."""
    try:
        import keyring
    except ImportError:
        return None
    try:
        return keyring.get_password(KEYRING_SERVICE, KEYRING_USER)
    except Exception as exc:
        logger.debug("Keyring lookup failed: %s", exc)
        return None


def load_settings() -> Settings:
    """Build Settings from the environment, falling back to defaults."""
    home = os.environ.get("TRIPMATCH_HOME", "").strip()
    token = os.environ.get("TRIPMATCH_RPC_TOKEN", "").strip() or keyring_token()
    return Settings(
        home=Path(home).expanduser() if home else _DEFAULT_HOME,
        rpc_url=os.environ.get("TRIPMATCH_RPC_URL", "").strip() or _DEFAULT_RPC_URL,
        rpc_token=token or None,
        rpc_timeout=_env_float("TRIPMATCH_RPC_TIMEOUT", _DEFAULT_TIMEOUT_S),
        page_size=_env_int("TRIPMATCH_PAGE_SIZE", _DEFAULT_PAGE_SIZE, 1, _MAX_PAGE_SIZE),
        bidirectional_age=(
            os.environ.get("TRIPMATCH_BIDIRECTIONAL_AGE", "").strip().lower() in _TRUTHY
        ),
    )
