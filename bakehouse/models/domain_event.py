from datetime import datetime, timezone

from ..extensions import db


class DomainEvent(db.Model):
    """Production lifecycle event persisted for outbox-style delivery."""

    __tablename__ = "domain_event"

    id = db.Column(db.Integer, primary_key=True)
    event_name = db.Column(db.String(128), nullable=False, index=True)
    occurred_at = db.Column(
        db.DateTime, default=lambda: datetime.now(timezone.utc), index=True
    )

    # Tenant context
    store_id = db.Column(db.Integer, nullable=True, index=True)

    # Entity context
    entity_type = db.Column(db.String(64), nullable=True, index=True)
    entity_id = db.Column(db.Integer, nullable=True, index=True)

    correlation_id = db.Column(db.String(128), nullable=True, index=True)
    source = db.Column(db.String(64), nullable=True, default="production")
    schema_version = db.Column(db.Integer, nullable=True, default=1)

    # Event payload
    properties = db.Column(db.JSON, nullable=True)

    # Outbox processing fields
    is_processed = db.Column(db.Boolean, default=False, index=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    delivery_attempts = db.Column(db.Integer, default=0)

    def __repr__(self):
        return f"<DomainEvent {self.event_name} {self.id}>"
