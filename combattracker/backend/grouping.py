"""Turn groups derived from the roster: solo combatants and initiative-sharing stacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class TurnGroup:
    key: str
    initiative: int
    label: str
    member_ids: tuple[str, ...]
    sides: frozenset[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "initiative": self.initiative,
            "label": self.label,
            "memberIds": list(self.member_ids),
            "sides": sorted(self.sides),
        }


@dataclass(frozen=True)
class PendingGroup:
    key: str
    label: str
    member_ids: tuple[str, ...]
    sides: frozenset[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "memberIds": list(self.member_ids),
            "sides": sorted(self.sides),
        }


def group_key_for_combatant(combatant: dict[str, Any]) -> str:
    group_id = combatant.get("groupId")
    return f"g:{group_id}" if group_id else f"c:{combatant['id']}"


def _text_key(value: str) -> tuple[str, str]:
    return value.casefold(), value


def _label_for(combatant: dict[str, Any]) -> str:
    if combatant.get("groupId"):
        return combatant.get("groupLabel") or combatant.get("name", "")
    return combatant.get("name", "")


def _collect(combatants: Iterable[dict[str, Any]], with_initiative: bool) -> list[dict[str, Any]]:
    buckets: dict[str, dict[str, Any]] = {}
    for combatant in combatants:
        if combatant.get("status") == "dead":
            continue
        initiative = combatant.get("initiative")
        if (initiative is not None) != with_initiative:
            continue

        key = group_key_for_combatant(combatant)
        label = _label_for(combatant)
        bucket = buckets.get(key)
        if bucket is None:
            buckets[key] = {
                "key": key,
                "initiative": initiative,
                "label": label,
                "members": [combatant],
                "sides": {combatant.get("side")},
            }
            continue

        bucket["members"].append(combatant)
        bucket["sides"].add(combatant.get("side"))
        # members normally share one value; keep the highest if they drifted apart
        if initiative is not None and initiative > bucket["initiative"]:
            bucket["initiative"] = initiative
        if not bucket["label"] and label:
            bucket["label"] = label

    for bucket in buckets.values():
        bucket["members"].sort(key=lambda c: _text_key(c.get("name", "")))
    return list(buckets.values())


def build_turn_groups(combatants: Iterable[dict[str, Any]]) -> list[TurnGroup]:
    """Group living combatants with initiative, highest initiative first.

    Ties are broken by label so the order never depends on roster position.
    """
    groups = [
        TurnGroup(
            key=bucket["key"],
            initiative=bucket["initiative"],
            label=bucket["label"],
            member_ids=tuple(c["id"] for c in bucket["members"]),
            sides=frozenset(bucket["sides"]),
        )
        for bucket in _collect(combatants, with_initiative=True)
    ]
    groups.sort(key=lambda g: _text_key(g.label))
    groups.sort(key=lambda g: g.initiative, reverse=True)
    return groups


def build_pending_groups(combatants: Iterable[dict[str, Any]]) -> list[PendingGroup]:
    """Group living combatants that are still waiting for an initiative value."""
    groups = [
        PendingGroup(
            key=bucket["key"],
            label=bucket["label"],
            member_ids=tuple(c["id"] for c in bucket["members"]),
            sides=frozenset(bucket["sides"]),
        )
        for bucket in _collect(combatants, with_initiative=False)
    ]
    groups.sort(key=lambda g: _text_key(g.label))
    return groups


def _roster_sort_key(combatant: dict[str, Any]) -> tuple[int, int, int]:
    initiative = combatant.get("initiative")
    order = combatant.get("order") or 0
    if initiative is None:
        return 1, 0, order
    return 0, -initiative, order


def sort_combatants_by_initiative(combatants: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Canonical roster order: set initiative descending, then ``order``; unset last."""
    return sorted(combatants, key=_roster_sort_key)


def resolve_current_group_index(encounter: dict[str, Any], groups: list[TurnGroup]) -> int:
    """Locate the active group, preferring ``turnGroupKey`` over ``turnIndex``.

    The stored key is only a hint: when it no longer names a live group the
    positional ``turnIndex`` is used, and failing that the first group.
    """
    key = encounter.get("turnGroupKey")
    if key:
        for index, group in enumerate(groups):
            if group.key == key:
                return index

    turn_index = encounter.get("turnIndex", 0)
    if isinstance(turn_index, int) and 0 <= turn_index < len(groups):
        return turn_index
    return 0


def current_turn_group(encounter: dict[str, Any]) -> TurnGroup | None:
    groups = build_turn_groups(encounter.get("combatants", []))
    if not groups:
        return None
    return groups[resolve_current_group_index(encounter, groups)]
