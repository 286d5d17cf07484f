"""Timed and indefinite effects attached to combatants."""

from __future__ import annotations

from typing import Any


def build_effect(
    effect_id: str,
    name: str,
    target_ids: list[str],
    created_round: int,
    duration_rounds: int | None = None,
    concentration: bool = False,
    source_id: str | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    return {
        "id": effect_id,
        "name": name.strip() or "Effect",
        "sourceId": source_id,
        "targetIds": list(target_ids),
        "createdRound": created_round,
        "durationRounds": duration_rounds,
        "concentration": concentration,
        "notes": notes,
    }


def is_expired(effect: dict[str, Any], current_round: int) -> bool:
    duration = effect.get("durationRounds")
    if duration is None:
        return False
    return current_round - effect["createdRound"] >= duration


def expire_effects(encounter: dict[str, Any]) -> dict[str, Any]:
    """Drop every finite effect whose duration has run out by ``encounter['round']``."""
    current_round = encounter["round"]
    remaining = [effect for effect in encounter.get("effects", []) if not is_expired(effect, current_round)]
    return {**encounter, "effects": remaining}


def remove_effect(effects: list[dict[str, Any]], effect_id: str) -> list[dict[str, Any]]:
    return [effect for effect in effects if effect.get("id") != effect_id]


def drop_concentration(effects: list[dict[str, Any]], source_id: str) -> list[dict[str, Any]]:
    """Remove every concentration effect cast by ``source_id`` at once."""
    return [
        effect
        for effect in effects
        if not (effect.get("concentration") is True and effect.get("sourceId") == source_id)
    ]


def prune_combatant(effects: list[dict[str, Any]], combatant_id: str) -> list[dict[str, Any]]:
    """Detach a removed combatant from every effect.

    The combatant is dropped from target lists and cleared as caster; effects
    left without any target are deleted.
    """
    pruned: list[dict[str, Any]] = []
    for effect in effects:
        target_ids = [target for target in effect.get("targetIds", []) if target != combatant_id]
        if not target_ids:
            continue
        source_id = effect.get("sourceId")
        pruned.append(
            {
                **effect,
                "sourceId": None if source_id == combatant_id else source_id,
                "targetIds": target_ids,
            }
        )
    return pruned


def effects_for_target(encounter: dict[str, Any], target_id: str) -> list[dict[str, Any]]:
    return [effect for effect in encounter.get("effects", []) if target_id in effect.get("targetIds", [])]


def concentration_effects_for_source(encounter: dict[str, Any], source_id: str) -> list[dict[str, Any]]:
    return [
        effect
        for effect in encounter.get("effects", [])
        if effect.get("concentration") is True and effect.get("sourceId") == source_id
    ]
