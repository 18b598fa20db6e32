import asyncio
import logging

from app.consumers.inventory_consumer import handle_order_cancelled, handle_order_placed
from app.core.config import BATCH_SIZE, MAX_ATTEMPTS, POLLING_INTERVAL
from app.events.outbox_utility import ORDER_CANCELLED, ORDER_ITEMS_ADDED, ORDER_PLACED
from app.models.outbox import OutboxEvent

log = logging.getLogger("app.outbox")

# Routing table: event type -> consumer
HANDLERS = {
    ORDER_PLACED: handle_order_placed,
    ORDER_ITEMS_ADDED: handle_order_placed,
    ORDER_CANCELLED: handle_order_cancelled,
}


async def dispatch_event(event: OutboxEvent, notifier):
    """Routes an OutboxEvent to the consumer registered for its type."""
    handler = HANDLERS.get(event.event_type)
    if handler is None:
        log.warning(f"No handler found for event type: {event.event_type}")
        return

    log.debug(f"Dispatching {event.event_type} (ID: {event.id.hex[:8]}...)")
    await handler(event.payload, event.id, notifier, event_type=event.event_type)


async def poll_outbox_for_new_events(notifier) -> int:
    """
    Dispatches one batch of unpublished events, oldest first. Returns how many
    were published. A failing event keeps its place, with the error recorded,
    until MAX_ATTEMPTS is reached.
    """
    events = await OutboxEvent.filter(
        published=False, attempts__lt=MAX_ATTEMPTS
    ).order_by("created_at").limit(BATCH_SIZE)

    published = 0
    for event in events:
        try:
            await dispatch_event(event, notifier)
        except Exception as e:
            event.attempts += 1
            event.last_error = repr(e)
            await event.save(update_fields=["attempts", "last_error"])
            if event.attempts >= MAX_ATTEMPTS:
                log.error(f"Giving up on outbox event {event.id} ({event.event_type}) after {event.attempts} attempts: {e!r}")
            else:
                log.warning(f"Outbox event {event.id} ({event.event_type}) failed, attempt {event.attempts}: {e!r}")
            continue

        event.published = True
        await event.save(update_fields=["published"])
        published += 1
    return published


async def start_outbox_poller(notifier):
    """Main loop; runs as a background task of the API process until cancelled."""
    log.info("Outbox poller started")
    try:
        while True:
            try:
                await poll_outbox_for_new_events(notifier)
            except Exception as e:
                log.error(f"Poller encountered a database error: {e!r}")

            await asyncio.sleep(POLLING_INTERVAL)
    except asyncio.CancelledError:
        log.info("Outbox poller stopped")
        raise
