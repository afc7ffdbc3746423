"""Service layer: order store, reconciliation, placement and the panel facade."""

from .models import OrderRecord, PlacementResult
from .order_store import OrderStore, SettingsStore, UserStore
from .panel_service import OrderNotFoundError, PanelService, SettingsValidationError
from .reconciler import OrderReconciler
from .placement import OrderPlacementService

__all__ = [
    "OrderRecord",
    "PlacementResult",
    "OrderStore",
    "SettingsStore",
    "UserStore",
    "PanelService",
    "OrderNotFoundError",
    "SettingsValidationError",
    "OrderReconciler",
    "OrderPlacementService",
]
