"""
Collaborator boundaries for the production engine.

Recipes and orders are owned by sibling services. The engine only sees the
small protocols below; the HTTP adapters talk to those services with
``requests`` and translate transport failures into source errors.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, List, Optional, Protocol
from urllib.parse import quote

import requests

from .errors import OrderSourceError, RecipeNotFoundError, RecipeSourceError
from .types import (
    BillOfMaterialsLine,
    OrderLine,
    OrderRecord,
    ProductionEvent,
    RecipeSnapshot,
)

logger = logging.getLogger(__name__)


class RecipeSource(Protocol):
    def get_recipe(self, store_id: int, recipe_id: str) -> RecipeSnapshot:
        """Return the recipe or raise RecipeNotFoundError / RecipeSourceError."""


class OrderSource(Protocol):
    def find_orders_by_date_range(
        self, store_id: int, date_from: date, date_to: date
    ) -> List[OrderRecord]:
        """Return orders due within [date_from, date_to]."""


class EventPublisher(Protocol):
    def publish(self, event: ProductionEvent) -> None:
        """Fire-and-forget delivery of a lifecycle event."""


def _first_present(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _unwrap(payload: Any) -> Any:
    # Sibling services wrap bodies as {"success": ..., "data": ...}.
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def parse_recipe_payload(recipe_id: str, payload: Any) -> RecipeSnapshot:
    data = _unwrap(payload)
    try:
        lines = [
            BillOfMaterialsLine(
                ingredient_id=str(_first_present(raw, "ingredient_id", "ingredientId")),
                name=_first_present(raw, "name", default="Unknown"),
                unit=_first_present(raw, "unit", default=""),
                quantity_per_output_unit=float(
                    _first_present(raw, "quantity_per_output_unit", "quantityPerOutputUnit", "quantity")
                ),
            )
            for raw in data.get("ingredients") or []
        ]
        return RecipeSnapshot(
            recipe_id=str(data.get("id", recipe_id)),
            name=data.get("name") or "",
            ingredients=lines,
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise RecipeSourceError(f"Malformed recipe payload for {recipe_id!r}: {exc}") from exc


def parse_order_payload(payload: Any) -> List[OrderRecord]:
    data = _unwrap(payload)
    if not isinstance(data, list):
        raise OrderSourceError("Malformed order payload: expected a list of orders")
    try:
        return [
            OrderRecord(
                id=int(raw["id"]),
                status=str(raw.get("status", "")),
                items=[
                    OrderLine(
                        recipe_id=str(_first_present(item, "recipe_id", "recipeId")),
                        quantity=int(item["quantity"]),
                    )
                    for item in raw.get("items") or []
                ],
            )
            for raw in data
        ]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise OrderSourceError(f"Malformed order payload: {exc}") from exc


class HttpRecipeSource:
    """Recipe lookups against the recipe service REST API."""

    def __init__(self, base_url: str, *, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_recipe(self, store_id: int, recipe_id: str) -> RecipeSnapshot:
        url = f"{self.base_url}/stores/{store_id}/recipes/{quote(str(recipe_id), safe='')}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RecipeSourceError(f"Recipe service unreachable: {exc}") from exc

        if response.status_code == 404:
            raise RecipeNotFoundError(recipe_id)
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise RecipeSourceError(f"Recipe service returned {response.status_code}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise RecipeSourceError("Recipe service returned invalid JSON") from exc
        return parse_recipe_payload(recipe_id, payload)


class HttpOrderSource:
    """Order queries against the order service REST API."""

    def __init__(self, base_url: str, *, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def find_orders_by_date_range(self, store_id: int, date_from: date, date_to: date) -> List[OrderRecord]:
        url = f"{self.base_url}/stores/{store_id}/orders"
        params = {"from": date_from.isoformat(), "to": date_to.isoformat()}
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise OrderSourceError(f"Order service request failed: {exc}") from exc
        except ValueError as exc:
            raise OrderSourceError("Order service returned invalid JSON") from exc

        orders = parse_order_payload(payload)
        logger.debug("Fetched %s orders for store %s (%s..%s)", len(orders), store_id, date_from, date_to)
        return orders


def eligible_orders(orders: Iterable[OrderRecord]) -> List[OrderRecord]:
    return [order for order in orders if order.is_eligible]
