"""Engine exceptions."""


class InventoryEngineError(Exception):
    """Base class for engine errors."""


class UnitConversionError(InventoryEngineError):
    """Raised when unit conversion between incompatible types is attempted."""

    def __init__(self, from_unit: str, to_unit: str, item_name: str = ""):
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.item_name = item_name
        super().__init__(
            f"Cannot convert '{from_unit}' to '{to_unit}' for item '{item_name}'"
        )


class RecipeDefinitionError(InventoryEngineError):
    """Raised when a recipe edge does not point at exactly one target."""

    def __init__(self, edge_name: str, edge_id, reason: str):
        self.edge_name = edge_name
        self.edge_id = edge_id
        super().__init__(f"{edge_name} {edge_id}: {reason}")


class InvalidQuantityError(InventoryEngineError, ValueError):
    """Raised when a model is given a quantity, cost or multiplier out of range."""

    def __init__(self, model_name: str, field: str, value, requirement: str):
        self.model_name = model_name
        self.field = field
        self.value = value
        super().__init__(f"{model_name}.{field} {requirement}, got {value}")
