from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from talentflow.types import SideEffectIntent

logger = logging.getLogger(__name__)

IntentHandler = Callable[[SideEffectIntent], None]


class Notifier(Protocol):
    def deliver(self, intent: SideEffectIntent) -> None: ...


@dataclass(slots=True)
class DispatchReport:
    delivered: list[SideEffectIntent] = field(default_factory=list)
    failed: list[SideEffectIntent] = field(default_factory=list)
    skipped: list[SideEffectIntent] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class SideEffectDispatcher:
    """Hands committed-transition intents to their collaborators.

    Each intent is delivered at most once per ``dispatch`` call. A failing
    handler is logged and recorded in the report; it never propagates, since
    the status change it describes has already been committed.
    """

    def __init__(
        self,
        *,
        notifier: Notifier | None = None,
        handlers: Mapping[str, IntentHandler] | None = None,
    ):
        self.notifier = notifier
        self.handlers: dict[str, IntentHandler] = dict(handlers or {})

    def register(self, kind: str, handler: IntentHandler) -> None:
        self.handlers[kind] = handler

    def handler_for(self, intent: SideEffectIntent) -> IntentHandler | None:
        handler = self.handlers.get(intent.kind)
        if handler is not None:
            return handler
        if intent.kind.startswith("notify_") and self.notifier is not None:
            return self.notifier.deliver
        return None

    def dispatch(self, intents: Iterable[SideEffectIntent]) -> DispatchReport:
        report = DispatchReport()
        for intent in intents:
            handler = self.handler_for(intent)
            if handler is None:
                logger.warning(
                    "No handler for intent kind=%s application_id=%s",
                    intent.kind,
                    intent.application_id,
                )
                report.skipped.append(intent)
                continue

            try:
                handler(intent)
            except Exception:
                logger.exception(
                    "Side effect failed kind=%s application_id=%s",
                    intent.kind,
                    intent.application_id,
                )
                report.failed.append(intent)
            else:
                report.delivered.append(intent)

        if report.failed:
            logger.warning(
                "Dispatched %s intents with %s failures",
                len(report.delivered) + len(report.failed),
                len(report.failed),
            )
        return report
