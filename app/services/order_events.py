"""
Order lifecycle events.

Events describe something that already happened, so they are named in the
past tense and are immutable. Handlers receive the publisher's session and
must not commit: their writes land in the same transaction as the change that
raised the event.
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    occurred_at: datetime = Field(default_factory=_utcnow)


class OrderShipped(OrderEvent):
    """Order moved to shipped."""


class OrderCancelled(OrderEvent):
    """Order moved to cancelled (or is being removed before shipping)."""
    previous_status: str


class DeliveryCompleted(OrderEvent):
    """Delivery for the order reached the delivered status."""
    actual_delivery: Optional[datetime] = None


EventHandler = Callable[[AsyncSession, OrderEvent], Awaitable[None]]


class EventDispatcher:
    """Maps event types to async handlers, run in registration order."""

    def __init__(self):
        self._handlers: Dict[Type[OrderEvent], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type[OrderEvent]):
        """Decorator registering a handler for event_type."""
        def decorator(handler: EventHandler) -> EventHandler:
            self._handlers[event_type].append(handler)
            return handler
        return decorator

    def handlers_for(self, event_type: Type[OrderEvent]) -> List[EventHandler]:
        return list(self._handlers.get(event_type, []))

    async def publish(self, db: AsyncSession, event: OrderEvent) -> None:
        handlers = self.handlers_for(type(event))
        if not handlers:
            logger.warning(f"No handlers registered for {type(event).__name__}")
            return

        logger.debug(f"Dispatching {type(event).__name__} for order {event.order_id}")
        for handler in handlers:
            await handler(db, event)


dispatcher = EventDispatcher()
