"""Runtime settings for the remote model passes.

Everything is read from the environment at call time (never at import time).
The only setting with behavioral weight is the credential: when
``OPENAI_API_KEY`` is absent or blank the package runs fully offline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_DEFAULT_MODEL = "gpt-4o-mini"
_DEFAULT_TIMEOUT_SEC = 45.0
_DEFAULT_EXTRACT_TIMEOUT_SEC = 90.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True, slots=True)
class RemoteSettings:
    """Credential, model name and timeouts for the remote completion endpoint."""

    api_key: str | None = None
    model: str = _DEFAULT_MODEL
    timeout_sec: float = _DEFAULT_TIMEOUT_SEC
    extract_timeout_sec: float = _DEFAULT_EXTRACT_TIMEOUT_SEC

    @property
    def online(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @classmethod
    def from_env(cls) -> RemoteSettings:
        api_key = os.getenv("OPENAI_API_KEY")
        model = (os.getenv("LEDGER_CATEGORIZER_MODEL") or "").strip() or _DEFAULT_MODEL
        return cls(
            api_key=api_key.strip() if api_key and api_key.strip() else None,
            model=model,
            timeout_sec=_env_float("LEDGER_CATEGORIZER_TIMEOUT_SEC", _DEFAULT_TIMEOUT_SEC),
            extract_timeout_sec=_env_float(
                "LEDGER_CATEGORIZER_EXTRACT_TIMEOUT_SEC", _DEFAULT_EXTRACT_TIMEOUT_SEC
            ),
        )


__all__ = ["RemoteSettings"]
