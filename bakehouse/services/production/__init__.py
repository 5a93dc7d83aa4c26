"""
Production batch engine

Turns customer orders into production batches, drives them through the
kitchen stages and projects the per-day ingredient prep list.
"""

from .aggregator import BatchAggregator, group_demand
from .errors import (
    BatchConflictError,
    BatchNotFoundError,
    OrderSourceError,
    PrepItemNotFoundError,
    ProductionError,
    ProductionValidationError,
    RecipeNotFoundError,
    RecipeSourceError,
    SourceUnavailableError,
)
from .lifecycle import BatchLifecycleService
from .prep_items import derive_prep_items
from .prep_list import PrepListService
from .service import ProductionService, build_production_service
from .sources import HttpOrderSource, HttpRecipeSource
from .store import BatchStore
from .types import (
    AggregatedPrepItem,
    BatchSource,
    BillOfMaterialsLine,
    CreateBatchRequest,
    OrderLine,
    OrderRecord,
    PrepListEntry,
    ProductionEvent,
    ProductionEventNames,
    ProductionStage,
    RecipeSnapshot,
    SplitResult,
)

__all__ = [
    'AggregatedPrepItem',
    'BatchAggregator',
    'BatchConflictError',
    'BatchLifecycleService',
    'BatchNotFoundError',
    'BatchSource',
    'BatchStore',
    'BillOfMaterialsLine',
    'CreateBatchRequest',
    'HttpOrderSource',
    'HttpRecipeSource',
    'OrderLine',
    'OrderRecord',
    'OrderSourceError',
    'PrepItemNotFoundError',
    'PrepListEntry',
    'PrepListService',
    'ProductionError',
    'ProductionEvent',
    'ProductionEventNames',
    'ProductionService',
    'ProductionStage',
    'ProductionValidationError',
    'RecipeNotFoundError',
    'RecipeSnapshot',
    'RecipeSourceError',
    'SourceUnavailableError',
    'SplitResult',
    'build_production_service',
    'derive_prep_items',
    'group_demand',
]
