"""Encounter reducer: one action in, one new tracker state out."""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace
import math
from typing import Any

from pydantic import ValidationError

from .codec import InvalidEncounterError, import_encounter
from .damage import (
    can_roll_death_saves,
    clamp_hp,
    cycle_resistance,
    normalize_after_hp_change,
    record_death_save,
    resolve_damage,
    resolve_heal,
    sparse_resistances,
)
from .effects import build_effect, drop_concentration, expire_effects, prune_combatant, remove_effect
from .grouping import build_turn_groups, resolve_current_group_index, sort_combatants_by_initiative
from .models import DAMAGE_TYPES, DEFAULT_PC_BUFFS, SIDES, CombatantPatch
from .state import MAX_UNDO, TrackerState, build_initial_encounter, new_id, utc_now_iso


@dataclass(frozen=True)
class ActionResult:
    state: TrackerState
    engine_events: list[dict[str, Any]]


def reduce(state: TrackerState, action: dict[str, Any]) -> TrackerState:
    return apply_action(state=state, action=action).state


def apply_action(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    """Apply ``action`` to ``state``.

    Never raises for bad input: unknown actions, missing targets and invalid
    payloads return the very same ``state`` object.
    """
    if not isinstance(action, dict):
        return _unchanged(state)
    action_type = str(action.get("type", "")).upper()
    handler = _HANDLERS.get(action_type)
    if handler is None:
        return _unchanged(state)
    return handler(state, action)


def _unchanged(state: TrackerState) -> ActionResult:
    return ActionResult(state=state, engine_events=[])


def _commit(state: TrackerState, encounter: dict[str, Any], events: list[dict[str, Any]]) -> ActionResult:
    # the snapshot is taken from the untouched pre-action encounter
    snapshot = copy.deepcopy(state.encounter)
    undo_stack = (snapshot, *state.undo_stack)[:MAX_UNDO]
    next_encounter = {**encounter, "updatedAt": utc_now_iso()}
    return ActionResult(state=TrackerState(encounter=next_encounter, undo_stack=undo_stack), engine_events=events)


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return math.floor(value)


def _int_or(value: Any, default: int) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else default


def _find(encounter: dict[str, Any], combatant_id: Any) -> dict[str, Any] | None:
    for combatant in encounter["combatants"]:
        if combatant["id"] == combatant_id:
            return combatant
    return None


def _replace_combatant(encounter: dict[str, Any], updated: dict[str, Any]) -> dict[str, Any]:
    combatants = [updated if c["id"] == updated["id"] else c for c in encounter["combatants"]]
    return {**encounter, "combatants": combatants}


def _alpha_suffix(index: int) -> str:
    suffix = ""
    value = index
    while value >= 0:
        suffix = chr(65 + value % 26) + suffix
        value = value // 26 - 1
    return suffix


def _apply_new_encounter(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    name = action.get("name")
    encounter = build_initial_encounter(name=name if isinstance(name, str) and name.strip() else "Encounter")
    return ActionResult(
        state=TrackerState(encounter=encounter),
        engine_events=[{"kind": "encounter_created", "encounterId": encounter["id"]}],
    )


def _apply_import_encounter(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    try:
        encounter = import_encounter(action.get("encounter"))
    except InvalidEncounterError as exc:
        return ActionResult(state=state, engine_events=[{"kind": "import_rejected", "reason": str(exc)}])
    encounter = {**encounter, "updatedAt": utc_now_iso()}
    return ActionResult(
        state=TrackerState(encounter=encounter),
        engine_events=[{"kind": "encounter_imported", "encounterId": encounter["id"]}],
    )


def _apply_undo(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    if not state.undo_stack:
        return _unchanged(state)
    previous, *rest = state.undo_stack
    return ActionResult(
        state=TrackerState(encounter=previous, undo_stack=tuple(rest)),
        engine_events=[{"kind": "undo", "remaining": len(rest)}],
    )


def _apply_select(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    combatant_id = action.get("id")
    if _find(state.encounter, combatant_id) is None:
        return _unchanged(state)
    encounter = {**state.encounter, "selectedId": combatant_id}
    return ActionResult(state=replace(state, encounter=encounter), engine_events=[])


def _apply_add_combatant(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    payload = action.get("payload")
    if not isinstance(payload, dict):
        return _unchanged(state)
    side = payload.get("side")
    if side not in SIDES:
        return _unchanged(state)

    raw_name = payload.get("name")
    base_name = (raw_name.strip() if isinstance(raw_name, str) else "") or side
    count = max(1, _to_int(payload.get("count")) or 1)
    is_stack = side == "Enemy" and count > 1

    fallback_max_hp = max(1, _to_int(payload.get("maxHP")) or 1)
    rolled = payload.get("rolledMaxHps")
    rolled_max_hps = [_to_int(value) for value in rolled] if isinstance(rolled, list) else []
    base_hp = _to_int(payload.get("hp")) if not rolled_max_hps else None
    temp_hp = max(0, _to_int(payload.get("tempHP")) or 0)
    ac = _to_int(payload.get("ac"))
    initiative = _to_int(payload.get("initiative"))
    url = payload.get("url").strip() if isinstance(payload.get("url"), str) else ""
    notes = payload.get("notes") if isinstance(payload.get("notes"), str) else ""
    raw_conditions = payload.get("conditions")
    conditions = [str(c) for c in raw_conditions] if isinstance(raw_conditions, list) else []
    raw_resistances = payload.get("resistances")
    resistances = {
        key: value
        for key, value in (raw_resistances if isinstance(raw_resistances, dict) else {}).items()
        if key in DAMAGE_TYPES and value in ("resist", "vuln", "immune")
    }
    buff_library = payload.get("buffLibrary")
    if not isinstance(buff_library, list):
        buff_library = list(DEFAULT_PC_BUFFS) if side == "PC" else []

    existing = state.encounter["combatants"]
    base_order = max([-1, *(_int_or(c.get("order"), -1) for c in existing)]) + 1
    base_sort_order = max([0, *(_int_or(c.get("sortOrder"), 0) for c in existing)]) + 1
    group_id = new_id("g") if is_stack else None

    created: list[dict[str, Any]] = []
    for index in range(count):
        if count == 1:
            name = base_name
        elif side == "Enemy":
            name = f"{base_name} {_alpha_suffix(index)}"
        else:
            name = f"{base_name} {index + 1}"

        rolled_value = rolled_max_hps[index] if index < len(rolled_max_hps) else None
        max_hp = max(1, rolled_value if rolled_value is not None else fallback_max_hp)
        hp = clamp_hp(base_hp, max_hp) if base_hp is not None else max_hp

        combatant = {
            "id": new_id("c"),
            "name": name,
            "side": side,
            "initiative": initiative,
            "sortOrder": base_sort_order if is_stack else base_sort_order + index,
            "groupId": group_id,
            "groupLabel": base_name if is_stack else None,
            "maxHP": max_hp,
            "hp": hp,
            "tempHP": temp_hp,
            "ac": ac,
            "notes": notes,
            "url": url or None,
            "conditions": list(conditions),
            "resistances": dict(resistances),
            "buffLibrary": [str(b) for b in buff_library],
            "order": base_order + index,
            "status": "alive",
            "deathSaveSuccesses": 0,
            "deathSaveFailures": 0,
        }
        created.append(normalize_after_hp_change(combatant))

    encounter = {
        **state.encounter,
        "combatants": sort_combatants_by_initiative([*existing, *created]),
        "selectedId": state.encounter.get("selectedId") or created[0]["id"],
    }
    return _commit(
        state,
        encounter,
        [{"kind": "combatant_added", "ids": [c["id"] for c in created], "groupId": group_id}],
    )


def _apply_remove_combatant(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    combatant_id = action.get("id")
    if _find(state.encounter, combatant_id) is None:
        return _unchanged(state)

    combatants = [c for c in state.encounter["combatants"] if c["id"] != combatant_id]
    effects = prune_combatant(state.encounter["effects"], combatant_id)
    groups = build_turn_groups(combatants)

    selected_id = state.encounter.get("selectedId")
    if selected_id == combatant_id:
        if groups:
            selected_id = groups[0].member_ids[0]
        else:
            selected_id = combatants[0]["id"] if combatants else None

    turn_index = min(state.encounter.get("turnIndex", 0), max(0, len(groups) - 1))
    encounter = {
        **state.encounter,
        "combatants": combatants,
        "effects": effects,
        "selectedId": selected_id,
        "turnIndex": turn_index,
        "turnGroupKey": groups[turn_index].key if groups else None,
    }
    return _commit(state, encounter, [{"kind": "combatant_removed", "id": combatant_id}])


def _patched_combatant(combatant: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    updated = dict(combatant)
    for key in ("name", "side", "notes", "url", "status"):
        if key in fields and fields[key] is not None:
            updated[key] = fields[key]
    if "url" in fields and fields["url"] is None:
        updated["url"] = None
    for key in ("conditions", "buffLibrary"):
        if fields.get(key) is not None:
            updated[key] = list(fields[key])
    if fields.get("resistances") is not None:
        updated["resistances"] = sparse_resistances(fields["resistances"])

    if fields.get("maxHP") is not None:
        updated["maxHP"] = max(1, math.floor(fields["maxHP"]))
        if fields.get("hp") is None:
            updated["hp"] = min(updated["hp"], updated["maxHP"])
    if fields.get("hp") is not None:
        updated["hp"] = clamp_hp(math.floor(fields["hp"]), updated["maxHP"])
    if fields.get("tempHP") is not None:
        updated["tempHP"] = max(0, math.floor(fields["tempHP"]))
    if "ac" in fields:
        updated["ac"] = None if fields["ac"] is None else max(0, math.floor(fields["ac"]))
    if "initiative" in fields:
        updated["initiative"] = None if fields["initiative"] is None else math.floor(fields["initiative"])
    for key in ("deathSaveSuccesses", "deathSaveFailures"):
        if fields.get(key) is not None:
            updated[key] = math.floor(fields[key])

    return normalize_after_hp_change(updated)


def _apply_update_combatant(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    combatant_id = action.get("id")
    target = _find(state.encounter, combatant_id)
    patch = action.get("patch")
    if target is None or not isinstance(patch, dict):
        return _unchanged(state)
    try:
        fields = CombatantPatch.model_validate(patch).model_dump(exclude_unset=True)
    except ValidationError:
        return _unchanged(state)
    if not fields:
        return _unchanged(state)

    # initiative belongs to the whole stack once combatants are grouped
    group_id = target.get("groupId") if "initiative" in fields else None
    initiative = fields.get("initiative")
    shared_initiative = None if initiative is None else math.floor(initiative)

    combatants: list[dict[str, Any]] = []
    for combatant in state.encounter["combatants"]:
        if combatant["id"] == combatant_id:
            combatants.append(_patched_combatant(combatant, fields))
        elif group_id and combatant.get("groupId") == group_id:
            combatants.append({**combatant, "initiative": shared_initiative})
        else:
            combatants.append(combatant)

    encounter = {**state.encounter, "combatants": sort_combatants_by_initiative(combatants)}
    return _commit(
        state,
        encounter,
        [{"kind": "combatant_updated", "id": combatant_id, "fields": sorted(fields)}],
    )


def _apply_set_initiative(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    ids = action.get("ids")
    initiative = _to_int(action.get("initiative"))
    if not isinstance(ids, list) or initiative is None:
        return _unchanged(state)
    wanted = {i for i in ids if isinstance(i, str)}
    if not any(c["id"] in wanted for c in state.encounter["combatants"]):
        return _unchanged(state)

    combatants = [
        {**c, "initiative": initiative} if c["id"] in wanted else c for c in state.encounter["combatants"]
    ]
    encounter = {**state.encounter, "combatants": sort_combatants_by_initiative(combatants)}
    return _commit(state, encounter, [{"kind": "initiative_set", "ids": list(ids), "initiative": initiative}])


def _apply_damage(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    target = _find(state.encounter, action.get("id"))
    amount = _to_int(action.get("amount"))
    if target is None or amount is None:
        return _unchanged(state)
    damage_type = action.get("damageType")
    if not isinstance(damage_type, str):
        damage_type = None

    hp, temp_hp = resolve_damage(target, amount, damage_type)
    updated = normalize_after_hp_change({**target, "hp": hp, "tempHP": temp_hp})
    return _commit(
        state,
        _replace_combatant(state.encounter, updated),
        [
            {
                "kind": "damage_applied",
                "id": target["id"],
                "hpLost": target["hp"] - hp,
                "tempHPLost": target.get("tempHP", 0) - temp_hp,
            }
        ],
    )


def _apply_heal(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    target = _find(state.encounter, action.get("id"))
    amount = _to_int(action.get("amount"))
    if target is None or amount is None:
        return _unchanged(state)
    hp = resolve_heal(target, amount)
    updated = normalize_after_hp_change({**target, "hp": hp})
    return _commit(
        state,
        _replace_combatant(state.encounter, updated),
        [{"kind": "healed", "id": target["id"], "hpGained": hp - target["hp"]}],
    )


def _apply_set_hp(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    target = _find(state.encounter, action.get("id"))
    hp = _to_int(action.get("hp"))
    if target is None or hp is None:
        return _unchanged(state)
    updated = normalize_after_hp_change({**target, "hp": clamp_hp(hp, target["maxHP"])})
    return _commit(state, _replace_combatant(state.encounter, updated), [{"kind": "hp_set", "id": target["id"]}])


def _apply_set_temp_hp(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    target = _find(state.encounter, action.get("id"))
    temp_hp = _to_int(action.get("tempHP"))
    if target is None or temp_hp is None:
        return _unchanged(state)
    updated = {**target, "tempHP": max(0, temp_hp)}
    return _commit(
        state, _replace_combatant(state.encounter, updated), [{"kind": "temp_hp_set", "id": target["id"]}]
    )


def _apply_toggle_condition(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    target = _find(state.encounter, action.get("id"))
    condition = action.get("condition")
    if target is None or not isinstance(condition, str) or not condition:
        return _unchanged(state)

    conditions = list(target.get("conditions", []))
    if condition in conditions:
        conditions = [c for c in conditions if c != condition]
    else:
        conditions.append(condition)
    updated = {**target, "conditions": conditions}
    return _commit(
        state,
        _replace_combatant(state.encounter, updated),
        [{"kind": "condition_toggled", "id": target["id"], "condition": condition, "active": condition in conditions}],
    )


def _apply_cycle_resistance(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    target = _find(state.encounter, action.get("id"))
    damage_type = action.get("damageType")
    if target is None or damage_type not in DAMAGE_TYPES:
        return _unchanged(state)
    resistances = cycle_resistance(target.get("resistances", {}), damage_type)
    updated = {**target, "resistances": resistances}
    return _commit(
        state,
        _replace_combatant(state.encounter, updated),
        [
            {
                "kind": "resistance_cycled",
                "id": target["id"],
                "damageType": damage_type,
                "resistance": resistances.get(damage_type, "normal"),
            }
        ],
    )


def _apply_record_death_save(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    target = _find(state.encounter, action.get("id"))
    success = action.get("success")
    if target is None or not isinstance(success, bool) or not can_roll_death_saves(target):
        return _unchanged(state)
    updated = record_death_save(target, success)
    return _commit(
        state,
        _replace_combatant(state.encounter, updated),
        [{"kind": "death_save_recorded", "id": target["id"], "success": success, "status": updated["status"]}],
    )


def _apply_reset_death_saves(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    target = _find(state.encounter, action.get("id"))
    if target is None or not can_roll_death_saves(target):
        return _unchanged(state)
    updated = {**target, "status": "down", "deathSaveSuccesses": 0, "deathSaveFailures": 0}
    return _commit(
        state, _replace_combatant(state.encounter, updated), [{"kind": "death_saves_reset", "id": target["id"]}]
    )


def _step_turn(state: TrackerState, step: int) -> ActionResult:
    groups = build_turn_groups(state.encounter["combatants"])
    if not groups:
        return _unchanged(state)

    encounter = state.encounter
    current = resolve_current_group_index(encounter, groups)
    current_round = encounter.get("round", 1)
    events: list[dict[str, Any]] = []

    if step > 0:
        wrapped = current >= len(groups) - 1
        index = 0 if wrapped else current + 1
        next_round = current_round + 1 if wrapped else current_round
    else:
        wrapped = current <= 0
        index = len(groups) - 1 if wrapped else current - 1
        next_round = max(1, current_round - 1) if wrapped else current_round

    group = groups[index]
    encounter = {
        **encounter,
        "turnIndex": index,
        "turnGroupKey": group.key,
        "round": next_round,
        "selectedId": group.member_ids[0],
    }

    # effects only expire going forward; undo is the way back
    if step > 0 and wrapped:
        before = {effect["id"] for effect in encounter["effects"]}
        encounter = expire_effects(encounter)
        expired = sorted(before - {effect["id"] for effect in encounter["effects"]})
        events.append({"kind": "round_started", "round": next_round})
        if expired:
            events.append({"kind": "effects_expired", "effectIds": expired})

    events.append({"kind": "turn_changed", "turnGroupKey": group.key, "round": next_round})
    return _commit(state, encounter, events)


def _apply_next_turn(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    return _step_turn(state, step=1)


def _apply_prev_turn(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    return _step_turn(state, step=-1)


def _apply_add_effect(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    payload = action.get("payload")
    if not isinstance(payload, dict):
        return _unchanged(state)

    roster_ids = {c["id"] for c in state.encounter["combatants"]}
    source_id = payload.get("sourceId")
    if not isinstance(source_id, str) or source_id not in roster_ids:
        source_id = None
    raw_targets = payload.get("targetIds")
    if raw_targets is not None and not isinstance(raw_targets, list):
        return _unchanged(state)
    target_ids = [t for t in raw_targets or [] if isinstance(t, str) and t in roster_ids]
    target_ids = list(dict.fromkeys(target_ids))
    if not target_ids and source_id is not None:
        target_ids = [source_id]
    if not target_ids:
        return _unchanged(state)

    raw_duration = payload.get("durationRounds")
    duration = None if raw_duration is None else _to_int(raw_duration)
    if raw_duration is not None and duration is None:
        return _unchanged(state)
    name = payload.get("name")
    notes = payload.get("notes")

    effect = build_effect(
        effect_id=new_id("e"),
        name=name if isinstance(name, str) else "",
        target_ids=target_ids,
        created_round=state.encounter["round"],
        duration_rounds=None if duration is None else max(0, duration),
        concentration=payload.get("concentration") is True,
        source_id=source_id,
        notes=notes if isinstance(notes, str) else None,
    )
    encounter = {**state.encounter, "effects": [*state.encounter["effects"], effect]}
    return _commit(state, encounter, [{"kind": "effect_added", "effectId": effect["id"], "name": effect["name"]}])


def _apply_remove_effect(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    effect_id = action.get("id")
    if not isinstance(effect_id, str) or effect_id == "":
        return _unchanged(state)
    effects = remove_effect(state.encounter["effects"], effect_id)
    if len(effects) == len(state.encounter["effects"]):
        return _unchanged(state)
    encounter = {**state.encounter, "effects": effects}
    return _commit(state, encounter, [{"kind": "effect_removed", "effectId": effect_id}])


def _apply_drop_concentration(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    source_id = action.get("sourceId")
    if not isinstance(source_id, str) or source_id == "":
        return _unchanged(state)
    effects = drop_concentration(state.encounter["effects"], source_id)
    if len(effects) == len(state.encounter["effects"]):
        return _unchanged(state)
    encounter = {**state.encounter, "effects": effects}
    return _commit(
        state,
        encounter,
        [
            {
                "kind": "concentration_dropped",
                "sourceId": source_id,
                "removed": len(state.encounter["effects"]) - len(effects),
            }
        ],
    )


def _apply_move_within_tie(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    combatant_id = action.get("id")
    direction = action.get("dir")
    if type(direction) is not int or direction not in (-1, 1):
        return _unchanged(state)

    # saves from before ``order`` existed fall back to roster position
    combatants = [
        {**c, "order": _int_or(c.get("order"), index)} for index, c in enumerate(state.encounter["combatants"])
    ]
    groups = build_turn_groups(combatants)
    index = next((i for i, g in enumerate(groups) if combatant_id in g.member_ids), -1)
    if index == -1:
        return _unchanged(state)
    other = index + direction
    if other < 0 or other >= len(groups):
        return _unchanged(state)

    moving, neighbour = groups[index], groups[other]
    if moving.initiative != neighbour.initiative:
        return _unchanged(state)

    orders = {c["id"]: c["order"] for c in combatants}
    moving_block = sorted(moving.member_ids, key=orders.__getitem__)
    neighbour_block = sorted(neighbour.member_ids, key=orders.__getitem__)
    slots = sorted(orders[i] for i in (*moving_block, *neighbour_block))

    # the two blocks trade places inside their shared slots; each keeps its internal order
    if orders[moving_block[0]] < orders[neighbour_block[0]]:
        sequence = [*neighbour_block, *moving_block]
    else:
        sequence = [*moving_block, *neighbour_block]
    new_orders = dict(zip(sequence, slots))
    swapped = [{**c, "order": new_orders[c["id"]]} if c["id"] in new_orders else c for c in combatants]

    encounter = {**state.encounter, "combatants": sort_combatants_by_initiative(swapped)}
    return _commit(
        state,
        encounter,
        [{"kind": "moved_within_tie", "groupKey": moving.key, "swappedWith": neighbour.key}],
    )


def _apply_clear_initiative(state: TrackerState, action: dict[str, Any]) -> ActionResult:
    combatants = [{**c, "initiative": None} for c in state.encounter["combatants"]]
    encounter = {
        **state.encounter,
        "combatants": sort_combatants_by_initiative(combatants),
        "turnIndex": 0,
        "turnGroupKey": None,
        "round": 1,
    }
    return _commit(state, encounter, [{"kind": "initiative_cleared"}])


_HANDLERS = {
    "NEW_ENCOUNTER": _apply_new_encounter,
    "IMPORT_ENCOUNTER": _apply_import_encounter,
    "UNDO": _apply_undo,
    "SELECT": _apply_select,
    "ADD_COMBATANT": _apply_add_combatant,
    "REMOVE_COMBATANT": _apply_remove_combatant,
    "UPDATE_COMBATANT": _apply_update_combatant,
    "SET_INITIATIVE": _apply_set_initiative,
    "APPLY_DAMAGE": _apply_damage,
    "APPLY_HEAL": _apply_heal,
    "SET_HP": _apply_set_hp,
    "SET_TEMP_HP": _apply_set_temp_hp,
    "TOGGLE_CONDITION": _apply_toggle_condition,
    "CYCLE_RESISTANCE": _apply_cycle_resistance,
    "RECORD_DEATH_SAVE": _apply_record_death_save,
    "RESET_DEATH_SAVES": _apply_reset_death_saves,
    "NEXT_TURN": _apply_next_turn,
    "PREV_TURN": _apply_prev_turn,
    "ADD_EFFECT": _apply_add_effect,
    "REMOVE_EFFECT": _apply_remove_effect,
    "DROP_CONCENTRATION": _apply_drop_concentration,
    "MOVE_WITHIN_TIE": _apply_move_within_tie,
    "CLEAR_INITIATIVE": _apply_clear_initiative,
}
