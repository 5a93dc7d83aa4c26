"""Outbox event publisher.

Synopsis:
Persists production lifecycle events as DomainEvent rows so a separate
dispatcher can deliver them to downstream consumers (inventory deduction,
kitchen displays).

Glossary:
- Outbox: Persisted events queued for delivery.
- Fire-and-forget: A failed write is logged and dropped, never raised.
"""

import logging
import uuid
from datetime import timezone
from typing import Optional

from ..extensions import db
from ..models.domain_event import DomainEvent
from .production.types import ProductionEvent

logger = logging.getLogger(__name__)


# --- OutboxEventPublisher ---
# Purpose: Persist production events for asynchronous delivery.
# Inputs: ProductionEvent (name, payload, timestamp, optional store).
# Outputs: Saved DomainEvent row (or None on guarded failure).
class OutboxEventPublisher:
    """Lightweight publisher that writes to DomainEvent (outbox style)."""

    ENTITY_TYPE = "production_batch"

    def __init__(self, *, source: str = "production", auto_commit: bool = True, session=None):
        self.source = source
        self.auto_commit = auto_commit
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def publish(self, event: ProductionEvent) -> Optional[DomainEvent]:
        payload = dict(event.payload or {})
        occurred_at = event.timestamp
        if occurred_at.tzinfo is None:
            occurred_at = occurred_at.replace(tzinfo=timezone.utc)

        row = DomainEvent(
            event_name=event.event_name,
            occurred_at=occurred_at,
            store_id=event.store_id,
            entity_type=self.ENTITY_TYPE,
            entity_id=payload.get("batchId"),
            correlation_id=str(uuid.uuid4()),
            source=self.source,
            schema_version=1,
            properties=payload,
            is_processed=False,
            delivery_attempts=0,
        )
        try:
            self.session.add(row)
            if self.auto_commit:
                self.session.commit()
            return row
        except Exception as e:
            # Delivery is at-most-once; the operation that produced the
            # event has already committed.
            logger.error(f"Failed to record event {event.event_name}: {e}")
            self.session.rollback()
            return None
