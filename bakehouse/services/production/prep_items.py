"""Prep requirement derivation and the recipe degradation policy.

A batch whose recipe cannot be resolved is still a valid scheduling
placeholder: it gets an empty recipe name and no prep items. That mapping
lives here, in one place, so the aggregator and lifecycle code never catch
recipe errors on their own.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .errors import RecipeSourceError
from .types import BillOfMaterialsLine, PrepRequirement, RecipeLookup

logger = logging.getLogger(__name__)

QUANTITY_PRECISION = 4


def resolve_recipe(recipe_source, store_id: int, recipe_id: str) -> RecipeLookup:
    if recipe_source is None:
        return RecipeLookup.failed(recipe_id, "no recipe source configured")
    try:
        recipe = recipe_source.get_recipe(store_id, recipe_id)
    except RecipeSourceError as exc:
        return RecipeLookup.failed(recipe_id, str(exc))
    return RecipeLookup.found(recipe)


def recipe_name_for(lookup: RecipeLookup, explicit_name: Optional[str] = None) -> str:
    if explicit_name:
        return explicit_name
    if lookup.ok:
        return lookup.recipe.name or ''
    logger.warning("Recipe %s unresolved, batch gets an empty name: %s", lookup.recipe_id, lookup.failure)
    return ''


def derive_prep_items(batch, bill_of_materials: Sequence[BillOfMaterialsLine]) -> List[PrepRequirement]:
    """Scale a bill-of-materials by the batch quantity.

    Lines naming the same ingredient twice collapse into one requirement so a
    batch never holds two prep rows for one ingredient.
    """
    totals: Dict[str, float] = {}
    first_line: Dict[str, BillOfMaterialsLine] = {}
    for line in bill_of_materials:
        first_line.setdefault(line.ingredient_id, line)
        totals[line.ingredient_id] = totals.get(line.ingredient_id, 0.0) + (
            line.quantity_per_output_unit * batch.quantity
        )

    return [
        PrepRequirement(
            ingredient_id=ingredient_id,
            ingredient_name=first_line[ingredient_id].name or 'Unknown',
            required_quantity=round(total, QUANTITY_PRECISION),
            unit=first_line[ingredient_id].unit or '',
        )
        for ingredient_id, total in totals.items()
    ]


def prep_requirements_for(batch, lookup: RecipeLookup) -> List[PrepRequirement]:
    if not lookup.ok:
        logger.warning(
            "No prep items for batch %s: recipe %s unresolved (%s)",
            getattr(batch, 'id', None),
            lookup.recipe_id,
            lookup.failure,
        )
        return []
    return derive_prep_items(batch, lookup.recipe.ingredients)
