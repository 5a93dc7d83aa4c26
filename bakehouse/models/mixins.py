from datetime import datetime, timezone

from ..extensions import db


def _utc_now():
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Adds created_at and updated_at timestamps to models"""
    created_at = db.Column(db.DateTime, default=_utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utc_now, onupdate=_utc_now, nullable=False)


class StoreScopedMixin:
    """Partitions rows by store; every lookup goes through ``for_store``."""
    store_id = db.Column(db.Integer, nullable=False, index=True)

    @classmethod
    def for_store(cls, store_id):
        return cls.query.filter_by(store_id=store_id)

    @classmethod
    def get_scoped(cls, store_id, record_id):
        """Fetch one record by id, treating another store's rows as missing."""
        return cls.for_store(store_id).filter_by(id=record_id).first()
