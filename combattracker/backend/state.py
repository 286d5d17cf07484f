"""State builders for encounter snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
import uuid

MAX_UNDO = 30


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def build_initial_encounter(name: str = "Encounter", encounter_id: str | None = None) -> dict[str, Any]:
    """Return an empty encounter at round 1 with no combatants or effects."""
    now = utc_now_iso()
    return {
        "id": encounter_id or new_id("enc"),
        "name": name,
        "round": 1,
        "turnIndex": 0,
        "turnGroupKey": None,
        "selectedId": None,
        "combatants": [],
        "effects": [],
        "createdAt": now,
        "updatedAt": now,
    }


def ensure_sort_orders(encounter: dict[str, Any]) -> dict[str, Any]:
    """Fill in ``sortOrder`` for combatants saved before the field existed.

    Members of one stack share a value; everyone else gets their own,
    numbered in roster order starting at 1.
    """
    if all(isinstance(c.get("sortOrder"), int) for c in encounter.get("combatants", [])):
        return encounter

    next_value = 1
    assigned: dict[str, int] = {}
    combatants: list[dict[str, Any]] = []
    for combatant in encounter.get("combatants", []):
        if isinstance(combatant.get("sortOrder"), int):
            combatants.append(combatant)
            continue
        key = combatant.get("groupId") or combatant["id"]
        if key not in assigned:
            assigned[key] = next_value
            next_value += 1
        combatants.append({**combatant, "sortOrder": assigned[key]})

    return {**encounter, "combatants": combatants}


@dataclass(frozen=True)
class TrackerState:
    encounter: dict[str, Any]
    undo_stack: tuple[dict[str, Any], ...] = ()


def make_initial_state(existing: dict[str, Any] | None = None) -> TrackerState:
    if existing is None:
        return TrackerState(encounter=build_initial_encounter())
    return TrackerState(encounter=ensure_sort_orders(existing))
