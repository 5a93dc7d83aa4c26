"""Models package - imports all models for the application"""
from ..extensions import db
from .mixins import StoreScopedMixin, TimestampMixin
from .production import BatchOrder, BatchPrepItem, ProductionBatch
from .domain_event import DomainEvent

__all__ = [
    'db',
    'StoreScopedMixin',
    'TimestampMixin',
    'ProductionBatch',
    'BatchOrder',
    'BatchPrepItem',
    'DomainEvent',
]
