"""Consumption counters scoped to a day or a session.

A ledger stores ``{"period_key": ..., "consumed": ...}`` under its name. When
the observed period key differs from the stored one the counter restarts at
zero and the reset is written back.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

from .errors import QuotaExceeded


logger = logging.getLogger(__name__)


class QuotaScope(str, Enum):
    DAILY = "daily"
    SESSION = "session"


class MeteredAction(str, Enum):
    REGENERATION = "regeneration"
    DESCRIPTION = "description"


def daily_period_key(now: datetime | None = None) -> str:
    """Calendar date (UTC) used as the period key for daily limits."""

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date().isoformat()


class SessionPeriod:
    """Period key that stays fixed for the lifetime of one session."""

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex

    def __call__(self) -> str:
        return f"session:{self.session_id}"


class QuotaStore(Protocol):
    def load(self, name: str) -> Optional[dict]: ...

    def save(self, name: str, state: dict) -> None: ...


class MemoryQuotaStore:
    def __init__(self) -> None:
        self._states: Dict[str, dict] = {}

    def load(self, name: str) -> Optional[dict]:
        state = self._states.get(name)
        return dict(state) if state is not None else None

    def save(self, name: str, state: dict) -> None:
        self._states[name] = dict(state)


class JsonFileQuotaStore:
    """All ledgers in one JSON file, keyed by ledger name."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def _read_all(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable quota file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed quota file %s", self.path)
            return {}
        return data

    def load(self, name: str) -> Optional[dict]:
        state = self._read_all().get(name)
        return state if isinstance(state, dict) else None

    def save(self, name: str, state: dict) -> None:
        data = self._read_all()
        data[name] = state
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2))
        tmp.replace(self.path)


class QuotaLedger:
    def __init__(
        self,
        store: QuotaStore,
        *,
        name: str,
        limit: int,
        period: Callable[[], str] = daily_period_key,
    ) -> None:
        if limit < 0:
            raise ValueError("limit must be >= 0")
        self.store = store
        self.name = name
        self.limit = limit
        self._period = period

    def current_period(self) -> str:
        return self._period()

    def _stored(self) -> tuple[Optional[str], int]:
        state = self.store.load(self.name)
        if state is None:
            return None, 0
        try:
            key = str(state["period_key"])
            consumed = int(state["consumed"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed %s quota state: %r", self.name, state)
            return None, 0
        return key, max(0, consumed)

    def peek(self, period_key: str | None = None) -> int:
        """Units consumed in ``period_key``; a new period is reset to zero."""

        period_key = period_key or self.current_period()
        stored_key, consumed = self._stored()
        if stored_key != period_key:
            if stored_key is not None:
                logger.info("%s quota period changed (%s -> %s), resetting", self.name, stored_key, period_key)
            self.store.save(self.name, {"period_key": period_key, "consumed": 0})
            return 0
        return consumed

    def remaining(self, period_key: str | None = None) -> int:
        return max(0, self.limit - self.peek(period_key))

    def reserve(self, amount: int, period_key: str | None = None) -> int:
        """Consume ``amount`` units or raise ``QuotaExceeded`` without mutating.

        Returns the new consumed total.
        """

        if amount <= 0:
            raise ValueError("amount must be > 0")
        period_key = period_key or self.current_period()
        consumed = self.peek(period_key)
        if consumed + amount > self.limit:
            raise QuotaExceeded(self.name, limit=self.limit, consumed=consumed, requested=amount)

        consumed += amount
        self.store.save(self.name, {"period_key": period_key, "consumed": consumed})
        logger.debug("%s quota: %d/%d used in %s", self.name, consumed, self.limit, period_key)
        return consumed


def build_ledger(
    action: MeteredAction,
    *,
    limit: int,
    scope: QuotaScope,
    store: QuotaStore,
    session: SessionPeriod | None = None,
) -> QuotaLedger:
    """Ledger for one metered action with the configured scope."""

    if scope is QuotaScope.SESSION:
        period: Callable[[], str] = session or SessionPeriod()
    else:
        period = daily_period_key
    return QuotaLedger(store, name=action.value, limit=limit, period=period)
