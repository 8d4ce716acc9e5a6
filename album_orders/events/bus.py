"""
Bus d'événements en processus (fire-and-forget).

Événements émis: checkout_completed, payment_completed, payment_failed,
payment_refunded, order_status_updated.
Les abonnés (emails, rapports) ne peuvent jamais faire échouer l'émetteur:
une exception d'abonné est journalisée puis ignorée.
"""
from collections import defaultdict
from typing import Any, Callable, Dict, List, Protocol, Tuple
import logging

logger = logging.getLogger(__name__)

Handler = Callable[[str, Dict[str, Any]], None]

CHECKOUT_COMPLETED = "checkout_completed"
PAYMENT_COMPLETED = "payment_completed"
PAYMENT_FAILED = "payment_failed"
PAYMENT_REFUNDED = "payment_refunded"
ORDER_STATUS_UPDATED = "order_status_updated"


class EventSink(Protocol):
    def emit(self, name: str, payload: Dict[str, Any]) -> None: ...


class InProcessEventBus:
    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, name: str, handler: Handler) -> None:
        """name='*' reçoit tous les événements."""
        self._handlers[name].append(handler)

    def emit(self, name: str, payload: Dict[str, Any]) -> None:
        logger.info("event %s %s", name, payload)
        for handler in list(self._handlers.get(name, [])) + list(self._handlers.get("*", [])):
            try:
                handler(name, payload)
            except Exception:
                logger.exception("events.bus handler failed event=%s handler=%r", name, handler)


class RecordingEventSink:
    """Conserve les événements émis (tests, diagnostic)."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, name: str, payload: Dict[str, Any]) -> None:
        self.events.append((name, dict(payload)))

    def names(self) -> List[str]:
        return [n for n, _ in self.events]
