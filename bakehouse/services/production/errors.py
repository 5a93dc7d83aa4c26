"""Exceptions raised by the production engine and its collaborators."""


class ProductionError(RuntimeError):
    """Base class for errors surfaced to production callers."""

    status_code = 500
    error_code = "PRODUCTION_ERROR"


class ProductionValidationError(ProductionError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class BatchNotFoundError(ProductionError):
    status_code = 404
    error_code = "BATCH_NOT_FOUND"

    def __init__(self, batch_id, message=None):
        self.batch_id = batch_id
        super().__init__(message or f"Production batch {batch_id} not found")


class PrepItemNotFoundError(ProductionError):
    status_code = 404
    error_code = "PREP_ITEM_NOT_FOUND"

    def __init__(self, prep_item_id):
        self.prep_item_id = prep_item_id
        super().__init__(f"Prep item {prep_item_id} not found")


class BatchConflictError(ProductionError):
    """A batch changed underneath us between read and write."""

    status_code = 409
    error_code = "BATCH_CONFLICT"


class SourceUnavailableError(ProductionError):
    """A required collaborator (e.g. the order source) is not configured."""

    status_code = 503
    error_code = "SOURCE_UNAVAILABLE"


class RecipeSourceError(RuntimeError):
    """The recipe source could not answer a lookup."""


class RecipeNotFoundError(RecipeSourceError):
    def __init__(self, recipe_id):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe {recipe_id!r} not found")


class OrderSourceError(ProductionError):
    """The order source could not answer a query; generation cannot proceed."""

    status_code = 502
    error_code = "ORDER_SOURCE_ERROR"
