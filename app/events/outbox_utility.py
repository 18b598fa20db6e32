from typing import Dict, Any, Optional
from uuid import UUID

from app.models.outbox import OutboxEvent

# Event types consumed by the inventory worker
ORDER_PLACED = "order.placed.v1"
ORDER_ITEMS_ADDED = "order.items_added.v1"
ORDER_CANCELLED = "order.cancelled.v1"


async def create_outbox_event(
    aggregate_type: str,
    aggregate_id: Optional[UUID],
    event_type: str,
    payload: Dict[str, Any],
    conn: Any = None
) -> OutboxEvent:
    """
    Creates a new Outbox event record using the provided database connection (transaction).

    CRITICAL: Passing 'conn' ensures the event is created atomically with the business data.
    """
    return await OutboxEvent.create(
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        event_type=event_type,
        payload=payload,
        published=False,
        attempts=0,
        using_db=conn
    )
