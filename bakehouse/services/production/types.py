"""
Production Types

Core data structures for the production batch engine: stages, the shapes
exchanged with the recipe and order sources, derived prep requirements and
the read-side prep list.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional


class ProductionStage(IntEnum):
    """Position of a batch in the manufacturing pipeline"""
    TO_PREP = 0
    MIXING = 1
    READY = 2
    PACKAGED = 3

    @property
    def label(self) -> str:
        return self.name.replace('_', ' ').title()


INITIAL_STAGE = ProductionStage.TO_PREP


class BatchSource(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


# Orders that still need product made for them.
ELIGIBLE_ORDER_STATUSES = frozenset({"received", "in_progress"})


class ProductionEventNames:
    BATCH_CREATED = "batch.created"
    BATCH_STAGE_CHANGED = "batch.stageChanged"
    BATCH_COMPLETED = "batch.completed"


@dataclass(frozen=True)
class BillOfMaterialsLine:
    """One ingredient line of a recipe, per single output unit"""
    ingredient_id: str
    name: str
    unit: str
    quantity_per_output_unit: float


@dataclass(frozen=True)
class RecipeSnapshot:
    recipe_id: str
    name: str
    ingredients: List[BillOfMaterialsLine] = field(default_factory=list)


@dataclass(frozen=True)
class RecipeLookup:
    """Outcome of asking the recipe source for a recipe.

    Exactly one of ``recipe`` and ``failure`` is set. Callers decide what a
    failure means for them instead of catching lookup exceptions themselves.
    """
    recipe_id: str
    recipe: Optional[RecipeSnapshot] = None
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.recipe is not None

    @classmethod
    def found(cls, recipe: RecipeSnapshot) -> "RecipeLookup":
        return cls(recipe_id=recipe.recipe_id, recipe=recipe)

    @classmethod
    def failed(cls, recipe_id: str, reason: str) -> "RecipeLookup":
        return cls(recipe_id=recipe_id, failure=reason)


@dataclass(frozen=True)
class OrderLine:
    recipe_id: str
    quantity: int


@dataclass(frozen=True)
class OrderRecord:
    id: int
    status: str
    items: List[OrderLine] = field(default_factory=list)

    @property
    def is_eligible(self) -> bool:
        return self.status in ELIGIBLE_ORDER_STATUSES


@dataclass(frozen=True)
class LineContribution:
    """Which order line funded how much of a demand group"""
    order_id: int
    item_index: int
    quantity: int


@dataclass
class DemandGroup:
    recipe_id: str
    total_quantity: int = 0
    contributions: List[LineContribution] = field(default_factory=list)

    def add(self, contribution: LineContribution) -> None:
        self.total_quantity += contribution.quantity
        self.contributions.append(contribution)


@dataclass
class CreateBatchRequest:
    """Manual batch creation input"""
    recipe_id: str
    quantity: int
    production_date: date
    recipe_name: Optional[str] = None
    priority: int = 0
    assigned_to: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class PrepRequirement:
    """A derived ingredient requirement, not yet attached to a stored batch"""
    ingredient_id: str
    ingredient_name: str
    required_quantity: float
    unit: str


@dataclass
class SplitResult:
    original: Any
    new_batch: Any


@dataclass(frozen=True)
class ProductionEvent:
    event_name: str
    payload: Dict[str, Any]
    timestamp: datetime
    store_id: Optional[int] = None


@dataclass
class PrepListEntry:
    prep_item_id: int
    batch_id: int
    recipe_name: str
    required_quantity: float
    is_prepped: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'prep_item_id': self.prep_item_id,
            'batch_id': self.batch_id,
            'recipe_name': self.recipe_name,
            'required_quantity': self.required_quantity,
            'is_prepped': self.is_prepped,
        }


@dataclass
class AggregatedPrepItem:
    """All prep requirements for one ingredient (in one unit) on one day"""
    ingredient_id: str
    ingredient_name: str
    unit: str
    total_required: float = 0.0
    prepped_count: int = 0
    total_count: int = 0
    items: List[PrepListEntry] = field(default_factory=list)

    @property
    def is_fully_prepped(self) -> bool:
        return self.total_count > 0 and self.prepped_count == self.total_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ingredient_id': self.ingredient_id,
            'ingredient_name': self.ingredient_name,
            'unit': self.unit,
            'total_required': self.total_required,
            'prepped_count': self.prepped_count,
            'total_count': self.total_count,
            'is_fully_prepped': self.is_fully_prepped,
            'items': [item.to_dict() for item in self.items],
        }
