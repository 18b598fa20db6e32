from tortoise import fields, models
import uuid


class ProcessedEvent(models.Model):
    """
    Idempotency ledger for the outbox consumers: an event id recorded here has
    already been applied and must not be applied again.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    event_id = fields.CharField(max_length=128, unique=True)
    event_type = fields.CharField(max_length=128, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "processed_events"
