"""Minimal domain event dispatch: log every event, forward to an optional listener."""

import logging
from typing import Callable, Optional

from kitelink.domain.events.api_events import DomainEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[DomainEvent], None]


class EventDispatcher:
    """Publishes pipeline events to the log and to one listener."""

    def __init__(self, listener: Optional[EventListener] = None):
        self.listener = listener

    def __call__(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self.listener is None:
            return
        try:
            self.listener(event)
        except Exception as e:
            # Observers must not break the request they are observing.
            logger.warning(f"Event listener failed on {type(event).__name__}: {e}", exc_info=True)
