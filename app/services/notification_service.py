"""Fire-and-forget domain events.

Engines queue events on the session while a transaction is open; the
``transactional`` wrapper dispatches them once the commit succeeded. A failing
handler is logged and never turns a committed transition into an error.
"""
import logging
from collections import defaultdict
from typing import Any, Callable

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict[str, Any]], None]

ALL_EVENTS = "*"

_PENDING_KEY = "pending_events"
_handlers: dict[str, list[Handler]] = defaultdict(list)


def subscribe(event_type: str, handler: Handler) -> None:
    _handlers[event_type].append(handler)


def unsubscribe(event_type: str, handler: Handler) -> None:
    if handler in _handlers.get(event_type, []):
        _handlers[event_type].remove(handler)


def emit(event_type: str, payload: dict[str, Any]) -> None:
    """Deliver one event to its subscribers. Exactly one attempt per handler."""
    for handler in [*_handlers.get(event_type, []), *_handlers.get(ALL_EVENTS, [])]:
        try:
            handler(event_type, payload)
        except Exception:
            logger.exception("Notification handler %r failed for %s", handler, event_type)


def enqueue(db: Session, event_type: str, payload: dict[str, Any]) -> None:
    db.info.setdefault(_PENDING_KEY, []).append((event_type, payload))


def discard_pending(db: Session) -> None:
    db.info.pop(_PENDING_KEY, None)


def dispatch_pending(db: Session) -> None:
    for event_type, payload in db.info.pop(_PENDING_KEY, []):
        emit(event_type, payload)


def _log_event(event_type: str, payload: dict[str, Any]) -> None:
    logger.info("event %s %s", event_type, payload)


subscribe(ALL_EVENTS, _log_event)
