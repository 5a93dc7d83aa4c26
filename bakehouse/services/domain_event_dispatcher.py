"""Production event outbox dispatcher.

Synopsis:
Drains undelivered DomainEvent rows written by the production engine and
posts them to the downstream webhook (inventory deduction, kitchen
displays).

Glossary:
- Outbox: Persisted events queued for delivery.
- Dispatcher: Worker that sends events to external systems.
- Dead letter: An event that exhausted its retries; marked processed with
  the failure recorded in its properties.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from flask import current_app, has_app_context
from sqlalchemy import select

from ..extensions import db
from ..models.domain_event import DomainEvent

logger = logging.getLogger(__name__)

EMPTY_METRICS = {"processed": 0, "succeeded": 0, "failed": 0}


def _config(key: str, default=None):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


# --- DomainEventDispatcher ---
# Purpose: Deliver queued production events to the configured webhook.
class DomainEventDispatcher:
    """Outbox dispatcher for processing DomainEvent records asynchronously."""

    def __init__(
        self,
        *,
        webhook_url: Optional[str] = None,
        batch_size: Optional[int] = None,
        max_retry_attempts: Optional[int] = None,
        timeout: float = 5.0,
        session=None,
    ) -> None:
        self.webhook_url = webhook_url or _config("DOMAIN_EVENT_WEBHOOK_URL")
        self.batch_size = max(1, batch_size or _config("DOMAIN_EVENT_BATCH_SIZE", 100))
        if max_retry_attempts is None:
            max_retry_attempts = _config("DOMAIN_EVENT_MAX_RETRY_ATTEMPTS", 6)
        self.max_retry_attempts = max_retry_attempts
        self.timeout = timeout
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def dispatch_pending_events(self, *, batch_size: Optional[int] = None) -> Dict[str, int]:
        """Dispatch one page of pending events and return processing metrics."""
        limit = max(1, batch_size or self.batch_size)

        try:
            stmt = (
                select(DomainEvent)
                .where(DomainEvent.is_processed.is_(False))
                .order_by(DomainEvent.id.asc())
                .limit(limit)
                .with_for_update(skip_locked=True)
            )
            events = self.session.execute(stmt).scalars().all()
        except Exception:
            logger.exception("Failed to load pending production events")
            self.session.rollback()
            return dict(EMPTY_METRICS)

        if not events:
            self.session.rollback()
            return dict(EMPTY_METRICS)

        metrics = dict(EMPTY_METRICS)
        now_utc = datetime.now(timezone.utc)
        for event in events:
            metrics["processed"] += 1
            if self._deliver_event(event):
                metrics["succeeded"] += 1
                event.is_processed = True
                event.processed_at = now_utc
            else:
                metrics["failed"] += 1
                self._record_failure(event, now_utc)

        try:
            self.session.commit()
        except Exception:
            logger.exception("Failed to commit production event dispatch results")
            self.session.rollback()

        return metrics

    def run_forever(self, *, poll_interval: float = 5.0, batch_size: Optional[int] = None) -> None:
        """Continuously dispatch events until interrupted."""
        interval = max(0.5, poll_interval)
        logger.info(
            "DomainEventDispatcher started (webhook=%s, batch_size=%s, poll_interval=%ss)",
            bool(self.webhook_url),
            batch_size or self.batch_size,
            interval,
        )
        try:
            while True:
                metrics = self.dispatch_pending_events(batch_size=batch_size)
                # Back off only when the outbox is drained.
                time.sleep(interval if metrics["processed"] == 0 else min(interval, 1.0))
        except KeyboardInterrupt:
            logger.info("DomainEventDispatcher interrupted; shutting down cleanly")

    # ---------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------

    def _record_failure(self, event: DomainEvent, now_utc: datetime) -> None:
        event.delivery_attempts = (event.delivery_attempts or 0) + 1
        if not self.max_retry_attempts or event.delivery_attempts < self.max_retry_attempts:
            return
        logger.error(
            "Production event %s (%s) exceeded max retry attempts (%s). Marking as processed.",
            event.id,
            event.event_name,
            self.max_retry_attempts,
        )
        event.is_processed = True
        event.processed_at = now_utc
        props = dict(event.properties or {})
        props["_dispatch_errors"] = list(props.get("_dispatch_errors", [])) + ["max_retry_exceeded"]
        event.properties = props

    @staticmethod
    def build_payload(event: DomainEvent) -> Dict[str, Any]:
        occurred_at = event.occurred_at
        if occurred_at is not None and occurred_at.tzinfo is None:
            occurred_at = occurred_at.replace(tzinfo=timezone.utc)
        return {
            "id": event.id,
            "event_name": event.event_name,
            "occurred_at": occurred_at.isoformat() if occurred_at else None,
            "store_id": event.store_id,
            "entity_type": event.entity_type,
            "entity_id": event.entity_id,
            "correlation_id": event.correlation_id,
            "source": event.source,
            "schema_version": event.schema_version,
            "payload": {k: v for k, v in (event.properties or {}).items() if not k.startswith("_")},
        }

    def _deliver_event(self, event: DomainEvent) -> bool:
        if not self.webhook_url:
            logger.debug("No webhook configured; marking production event %s as processed.", event.id)
            return True

        try:
            response = requests.post(
                self.webhook_url,
                json=self.build_payload(event),
                headers={"X-Event-Name": event.event_name},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning(
                "Production event %s webhook delivery failed: %s",
                event.id,
                exc,
                extra={"status_code": getattr(exc.response, "status_code", None)},
            )
            return False
        logger.debug("Production event %s delivered to webhook", event.id)
        return True
