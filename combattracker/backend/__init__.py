"""Backend package for the combat tracker."""

from .codec import InvalidEncounterError, InvalidTemplateError, export_encounter, import_encounter
from .config import BackendSettings, load_settings
from .dice import DiceExpressionError, is_dice_expression, roll_dice_expression
from .engine import ActionResult, apply_action, reduce
from .grouping import build_pending_groups, build_turn_groups
from .session import EncounterSession
from .state import TrackerState, build_initial_encounter, make_initial_state
from .store import EncounterStore, TemplateStore, create_stores

__all__ = [
    "ActionResult",
    "apply_action",
    "BackendSettings",
    "build_initial_encounter",
    "build_pending_groups",
    "build_turn_groups",
    "create_stores",
    "DiceExpressionError",
    "EncounterSession",
    "EncounterStore",
    "export_encounter",
    "import_encounter",
    "InvalidEncounterError",
    "InvalidTemplateError",
    "is_dice_expression",
    "load_settings",
    "make_initial_state",
    "reduce",
    "roll_dice_expression",
    "TemplateStore",
    "TrackerState",
]
