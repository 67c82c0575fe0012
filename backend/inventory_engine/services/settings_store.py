"""Per-location inventory settings lookups."""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from inventory_engine.core.config import settings as app_settings
from inventory_engine.models.inventory import InventorySettings
from inventory_engine.schemas.inventory import MultiplierSettings


def get_inventory_settings(db: Session, location_id: int) -> Optional[InventorySettings]:
    return db.query(InventorySettings).filter(InventorySettings.location_id == location_id).first()


def multiplier_settings_from(row: Optional[InventorySettings]) -> Optional[MultiplierSettings]:
    if row is None:
        return None
    return MultiplierSettings.model_validate(row)


def default_pour_size_from(row: Optional[InventorySettings]) -> Decimal:
    """Location pour size when set, else the global default."""
    if row is not None and row.default_pour_size_oz:
        return row.default_pour_size_oz
    return app_settings.default_pour_size_oz
