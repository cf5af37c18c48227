"""Runtime settings read from the environment (and optional .env files)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional

from style_transfer.styles import RegenerationEngine

from .quota import QuotaScope


logger = logging.getLogger(__name__)

DAILY_REGEN_LIMIT = 10
SESSION_DESCRIBE_LIMIT = 5


def load_env_file(candidates: Iterable[Path] | None = None) -> None:
    """Best-effort load of KEY=VALUE lines from .env files.

    Checks the current directory, then HOME. Values already in the
    environment are never overwritten.
    """

    if candidates is None:
        candidates = [Path.cwd() / ".env", Path.home() / ".env"]

    for path in candidates:
        if not path.exists():
            continue
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            if key in os.environ:
                continue
            os.environ[key] = value.strip().strip('"').strip("'")


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _scope(env: Mapping[str, str], name: str, default: QuotaScope) -> QuotaScope:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return QuotaScope(raw.strip().lower())
    except ValueError as exc:
        choices = ", ".join(s.value for s in QuotaScope)
        raise ValueError(f"{name} must be one of: {choices}") from exc


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    image_model: str = "gemini-2.5-flash-image"
    text_model: str = "gemini-2.5-flash"
    imagen_model: str = "imagen-4.0-generate-001"
    engine: RegenerationEngine = RegenerationEngine.STYLE_TRANSFER
    regen_limit: int = DAILY_REGEN_LIMIT
    regen_scope: QuotaScope = QuotaScope.DAILY
    describe_limit: int = SESSION_DESCRIBE_LIMIT
    describe_scope: QuotaScope = QuotaScope.SESSION
    call_delay: float = 1.5
    quota_path: Path = Path("~/.frame_studio/quota.json")
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        engine = RegenerationEngine.STYLE_TRANSFER
        if env.get("FRAMESTUDIO_ENGINE", "").strip().lower() == "reimagine":
            engine = RegenerationEngine.REIMAGINE

        return cls(
            api_key=env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY"),
            image_model=env.get("FRAMESTUDIO_IMAGE_MODEL", cls.image_model),
            text_model=env.get("FRAMESTUDIO_TEXT_MODEL", cls.text_model),
            imagen_model=env.get("FRAMESTUDIO_IMAGEN_MODEL", cls.imagen_model),
            engine=engine,
            regen_limit=_number(env, "FRAMESTUDIO_REGEN_LIMIT", DAILY_REGEN_LIMIT, int),
            regen_scope=_scope(env, "FRAMESTUDIO_REGEN_SCOPE", QuotaScope.DAILY),
            describe_limit=_number(env, "FRAMESTUDIO_DESCRIBE_LIMIT", SESSION_DESCRIBE_LIMIT, int),
            describe_scope=_scope(env, "FRAMESTUDIO_DESCRIBE_SCOPE", QuotaScope.SESSION),
            call_delay=_number(env, "FRAMESTUDIO_CALL_DELAY", 1.5, float),
            quota_path=Path(env.get("FRAMESTUDIO_QUOTA_PATH", str(cls.quota_path))).expanduser(),
            log_level=env.get("FRAMESTUDIO_LOG_LEVEL", cls.log_level).upper(),
        )


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
