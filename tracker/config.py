"""Environment-driven settings."""
from __future__ import annotations

import os
import typing as t
from dataclasses import dataclass

from tracker.errors import ValidationError


def _float(environ: t.Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class Settings:
    openai_api_key: str = ""
    extraction_model: str = "gpt-4o-mini"
    supabase_url: str = ""
    supabase_key: str = ""
    user_id: str = ""
    sweep_interval: float = 60.0
    http_timeout: float = 30.0
    log_level: str = "WARNING"

    @property
    def has_remote_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key and self.user_id)

    @classmethod
    def from_env(cls, environ: t.Optional[t.Mapping[str, str]] = None) -> Settings:
        """Read settings from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY", ""),
            extraction_model=env.get("TRACKER_EXTRACTION_MODEL") or cls.extraction_model,
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_key=env.get("SUPABASE_ANON_KEY", ""),
            user_id=env.get("TRACKER_USER_ID", ""),
            sweep_interval=_float(env, "TRACKER_SWEEP_INTERVAL", cls.sweep_interval),
            http_timeout=_float(env, "TRACKER_HTTP_TIMEOUT", cls.http_timeout),
            log_level=(env.get("TRACKER_LOG_LEVEL") or cls.log_level).upper(),
        )
