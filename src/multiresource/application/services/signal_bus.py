from __future__ import annotations

import logging
from typing import Callable

from multiresource.core.ids import new_uuid
from multiresource.core.time import now_utc_iso
from multiresource.domain.models.signal import Signal
from multiresource.infrastructure.db.repos.signal_repo import SignalRepo

logger = logging.getLogger(__name__)

SignalCallback = Callable[[Signal], None]


class SignalBus:
    """Records state-change notifications and fans them out to subscribers.

    Signals are published only once the state change that produced them has
    committed, so an observer never sees a notification for a rolled-back
    transition.
    """

    def __init__(self, signal_repo: SignalRepo) -> None:
        self.signal_repo = signal_repo
        self._subscribers: list[SignalCallback] = []

    def subscribe(self, callback: SignalCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: SignalCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(
        self,
        name: str,
        *,
        token_id: int | None = None,
        resource_id: int | None = None,
        tag_id: int | None = None,
        detail: str | None = None,
    ) -> Signal:
        signal = Signal(
            id=new_uuid(),
            name=name,
            token_id=token_id,
            resource_id=resource_id,
            tag_id=tag_id,
            emitted_at=now_utc_iso(),
            detail=detail,
        )
        self.publish([signal])
        return signal

    def publish(self, signals: list[Signal]) -> None:
        self.signal_repo.insert_many(signals)
        for signal in signals:
            logger.debug(
                "signal %s token=%s resource=%s tag=%s",
                signal.name,
                signal.token_id,
                signal.resource_id,
                signal.tag_id,
            )
            for callback in list(self._subscribers):
                try:
                    callback(signal)
                except Exception:
                    logger.exception("Signal subscriber failed for %s", signal.name)

    def history(
        self,
        *,
        token_id: int | None = None,
        name: str | None = None,
        limit: int = 100,
    ) -> list[Signal]:
        return self.signal_repo.list(token_id=token_id, name=name, limit=limit)
