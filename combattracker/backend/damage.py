"""HP, temp-HP, resistance and death-save bookkeeping for a single combatant."""

from __future__ import annotations

from typing import Any

from .models import DAMAGE_TYPES, MAX_DEATH_SAVES

RESISTANCE_CYCLE: tuple[str, ...] = ("normal", "resist", "vuln", "immune")

_RESISTANCE_LABELS = {"resist": "RES", "vuln": "VULN", "immune": "IMM"}


def get_resistance_kind(combatant: dict[str, Any], damage_type: str | None) -> str:
    if not damage_type:
        return "normal"
    return combatant.get("resistances", {}).get(damage_type, "normal")


def apply_resistance_to_damage(amount: int, kind: str) -> int:
    if amount <= 0:
        return 0
    if kind == "immune":
        return 0
    if kind == "resist":
        return amount // 2
    if kind == "vuln":
        return amount * 2
    return amount


def resolve_damage(combatant: dict[str, Any], amount: int, damage_type: str | None) -> tuple[int, int]:
    """Return ``(hp, tempHP)`` after ``amount`` damage of ``damage_type``.

    Temp HP absorbs damage first; hp never drops below zero.
    """
    kind = get_resistance_kind(combatant, damage_type)
    remaining = apply_resistance_to_damage(amount, kind)

    temp_hp = combatant.get("tempHP", 0)
    absorbed = min(temp_hp, remaining)
    temp_hp -= absorbed
    remaining -= absorbed

    hp = max(0, combatant["hp"] - remaining)
    return hp, temp_hp


def clamp_hp(hp: int, max_hp: int) -> int:
    return max(0, min(max_hp, hp))


def resolve_heal(combatant: dict[str, Any], amount: int) -> int:
    return clamp_hp(combatant["hp"] + max(0, amount), combatant["maxHP"])


def _saturate(value: Any) -> int:
    if not isinstance(value, int):
        return 0
    return max(0, min(MAX_DEATH_SAVES, value))


def normalize_after_hp_change(combatant: dict[str, Any]) -> dict[str, Any]:
    """Bring ``status`` and death-save counters in line with ``hp``.

    Expects ``hp`` to be clamped already. Enemies die at 0 hp. Other sides go
    down (or stay stable/dead) and keep their counters; any hp above 0 means
    alive with both counters cleared.
    """
    if combatant["hp"] > 0:
        return {**combatant, "status": "alive", "deathSaveSuccesses": 0, "deathSaveFailures": 0}

    if combatant.get("side") == "Enemy":
        return {**combatant, "hp": 0, "status": "dead"}

    successes = _saturate(combatant.get("deathSaveSuccesses"))
    failures = _saturate(combatant.get("deathSaveFailures"))
    current = combatant.get("status")
    if current == "dead" or failures >= MAX_DEATH_SAVES:
        status = "dead"
    elif current == "stable" or successes >= MAX_DEATH_SAVES:
        status = "stable"
    else:
        status = "down"
    return {
        **combatant,
        "hp": 0,
        "status": status,
        "deathSaveSuccesses": successes,
        "deathSaveFailures": failures,
    }


def can_roll_death_saves(combatant: dict[str, Any]) -> bool:
    return combatant.get("side") != "Enemy" and combatant.get("hp", 0) == 0 and combatant.get("status") != "dead"


def record_death_save(combatant: dict[str, Any], success: bool) -> dict[str, Any]:
    successes = _saturate(combatant.get("deathSaveSuccesses"))
    failures = _saturate(combatant.get("deathSaveFailures"))
    if success:
        successes = min(MAX_DEATH_SAVES, successes + 1)
    else:
        failures = min(MAX_DEATH_SAVES, failures + 1)

    if failures >= MAX_DEATH_SAVES:
        status = "dead"
    elif successes >= MAX_DEATH_SAVES:
        status = "stable"
    else:
        status = "down"
    return {**combatant, "status": status, "deathSaveSuccesses": successes, "deathSaveFailures": failures}


def next_resistance_kind(kind: str) -> str:
    index = RESISTANCE_CYCLE.index(kind) if kind in RESISTANCE_CYCLE else 0
    return RESISTANCE_CYCLE[(index + 1) % len(RESISTANCE_CYCLE)]


def cycle_resistance(resistances: dict[str, str], damage_type: str) -> dict[str, str]:
    """Advance one damage type along normal -> resist -> vuln -> immune -> normal."""
    next_kind = next_resistance_kind(resistances.get(damage_type, "normal"))
    updated = {key: value for key, value in resistances.items() if key != damage_type}
    if next_kind != "normal":
        updated[damage_type] = next_kind
    return updated


def sparse_resistances(resistances: dict[str, str]) -> dict[str, str]:
    return {key: value for key, value in resistances.items() if value != "normal"}


def format_resistance(kind: str) -> str:
    return _RESISTANCE_LABELS.get(kind, "—")


def summarize_resistances(resistances: dict[str, str]) -> str:
    parts = [
        f"{damage_type}:{resistances[damage_type]}"
        for damage_type in DAMAGE_TYPES
        if resistances.get(damage_type, "normal") != "normal"
    ]
    return ", ".join(parts)
