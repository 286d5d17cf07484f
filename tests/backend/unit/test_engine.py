import copy

import pytest

from combattracker.backend.engine import apply_action, reduce
from combattracker.backend.models import DEFAULT_PC_BUFFS
from combattracker.backend.state import TrackerState, make_initial_state


def _add(state: TrackerState, **payload) -> TrackerState:
    return reduce(state, {"type": "ADD_COMBATANT", "payload": payload})


def _named(state: TrackerState, name: str) -> dict:
    return next(c for c in state.encounter["combatants"] if c["name"] == name)


def _names(state: TrackerState) -> list[str]:
    return [c["name"] for c in state.encounter["combatants"]]


def test_unknown_and_malformed_actions_return_same_state() -> None:
    state = make_initial_state()

    assert apply_action(state, {"type": "FLY"}).state is state
    assert apply_action(state, {}).state is state
    assert apply_action(state, {"type": "APPLY_DAMAGE", "id": "missing", "amount": 3}).state is state
    assert apply_action(state, {"type": "ADD_COMBATANT", "payload": {"name": "X", "side": "Dragon"}}).state is state


@pytest.mark.parametrize(
    "build_action",
    [
        lambda hero_id: {"type": "ADD_EFFECT", "payload": {"name": "Bless", "targetIds": 5}},
        lambda hero_id: {"type": "ADD_EFFECT", "payload": {"name": "Bless", "sourceId": [hero_id], "targetIds": []}},
        lambda hero_id: {"type": "ADD_EFFECT", "payload": {"name": "Bless", "targetIds": [[hero_id]]}},
        lambda hero_id: {"type": "SET_INITIATIVE", "ids": [[hero_id]], "initiative": 12},
        lambda hero_id: {"type": "MOVE_WITHIN_TIE", "id": hero_id, "dir": 1.0},
        lambda hero_id: {"type": "MOVE_WITHIN_TIE", "id": hero_id, "dir": "1"},
    ],
)
def test_wrongly_typed_payload_fields_are_noops(build_action) -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=10, initiative=15)
    state = _add(state, name="Sidekick", side="NPC", maxHP=10, initiative=15)

    assert reduce(state, build_action(_named(state, "Hero")["id"])) is state


def test_action_type_is_case_insensitive() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=12, initiative=None)

    result = apply_action(state, {"type": "apply_damage", "id": _named(state, "Hero")["id"], "amount": 2})

    assert _named(result.state, "Hero")["hp"] == 10


def test_add_single_pc_gets_defaults_and_selection() -> None:
    result = apply_action(
        make_initial_state(),
        {"type": "ADD_COMBATANT", "payload": {"name": "  Aria ", "side": "PC", "maxHP": "12.7", "initiative": 14.6}},
    )
    state = result.state
    (aria,) = state.encounter["combatants"]

    assert aria["name"] == "Aria"
    assert aria["maxHP"] == 12
    assert aria["hp"] == 12
    assert aria["initiative"] == 14
    assert aria["status"] == "alive"
    assert aria["buffLibrary"] == list(DEFAULT_PC_BUFFS)
    assert aria["groupId"] is None
    assert aria["order"] == 0
    assert aria["sortOrder"] == 1
    assert state.encounter["selectedId"] == aria["id"]
    assert len(state.undo_stack) == 1
    assert result.engine_events[0]["kind"] == "combatant_added"


def test_blank_name_defaults_to_side_and_max_hp_floors_to_one() -> None:
    state = _add(make_initial_state(), name="  ", side="NPC", maxHP=-4)

    (npc,) = state.encounter["combatants"]
    assert npc["name"] == "NPC"
    assert npc["maxHP"] == 1
    assert npc["buffLibrary"] == []


def test_enemy_stack_shares_group_and_uses_rolled_hp() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20)
    state = _add(state, name="Goblin", side="Enemy", maxHP=7, count=3, rolledMaxHps=[5, 9])

    goblins = [_named(state, f"Goblin {suffix}") for suffix in "ABC"]

    assert len({g["groupId"] for g in goblins}) == 1
    assert goblins[0]["groupId"] is not None
    assert {g["groupLabel"] for g in goblins} == {"Goblin"}
    assert {g["sortOrder"] for g in goblins} == {2}
    assert [g["order"] for g in goblins] == [1, 2, 3]
    assert [g["maxHP"] for g in goblins] == [5, 9, 7]
    assert [g["hp"] for g in goblins] == [5, 9, 7]
    assert state.encounter["selectedId"] == _named(state, "Hero")["id"]


def test_large_enemy_stack_uses_double_letter_suffixes() -> None:
    state = _add(make_initial_state(), name="Rat", side="Enemy", maxHP=1, count=28)

    names = set(_names(state))

    assert {"Rat A", "Rat Z", "Rat AA", "Rat AB"} <= names


def test_non_enemy_multiples_are_numbered_and_not_stacked() -> None:
    state = _add(make_initial_state(), name="Guard", side="NPC", maxHP=11, count=2)

    guards = [_named(state, "Guard 1"), _named(state, "Guard 2")]

    assert [g["groupId"] for g in guards] == [None, None]
    assert [g["sortOrder"] for g in guards] == [1, 2]


def test_explicit_start_hp_only_without_rolls() -> None:
    state = _add(make_initial_state(), name="Scout", side="NPC", maxHP=10, hp=25, tempHP=3)
    state = _add(state, name="Brute", side="Enemy", maxHP=10, hp=2, rolledMaxHps=[30])

    assert _named(state, "Scout")["hp"] == 10
    assert _named(state, "Scout")["tempHP"] == 3
    assert _named(state, "Brute")["hp"] == 30


def test_roster_is_resorted_after_add() -> None:
    state = _add(make_initial_state(), name="Slow", side="PC", maxHP=5, initiative=8)
    state = _add(state, name="Pending", side="PC", maxHP=5)
    state = _add(state, name="Fast", side="Enemy", maxHP=5, initiative=19)

    assert _names(state) == ["Fast", "Slow", "Pending"]


def test_remove_combatant_prunes_effects_and_reselects() -> None:
    state = _add(make_initial_state(), name="Cleric", side="PC", maxHP=20, initiative=12)
    state = _add(state, name="Fighter", side="PC", maxHP=30, initiative=18)
    cleric = _named(state, "Cleric")
    fighter = _named(state, "Fighter")
    state = reduce(
        state,
        {
            "type": "ADD_EFFECT",
            "payload": {"name": "Bless", "sourceId": cleric["id"], "targetIds": [cleric["id"], fighter["id"]]},
        },
    )
    state = reduce(
        state,
        {"type": "ADD_EFFECT", "payload": {"name": "Shield", "sourceId": cleric["id"], "targetIds": [cleric["id"]]}},
    )
    state = reduce(state, {"type": "NEXT_TURN"})
    assert state.encounter["selectedId"] == cleric["id"]

    state = reduce(state, {"type": "REMOVE_COMBATANT", "id": cleric["id"]})

    assert _names(state) == ["Fighter"]
    (bless,) = state.encounter["effects"]
    assert bless["targetIds"] == [fighter["id"]]
    assert bless["sourceId"] is None
    assert state.encounter["selectedId"] == fighter["id"]
    assert state.encounter["turnIndex"] == 0
    assert state.encounter["turnGroupKey"] == f"c:{fighter['id']}"


def test_removing_last_combatant_clears_selection() -> None:
    state = _add(make_initial_state(), name="Lone", side="PC", maxHP=5)

    state = reduce(state, {"type": "REMOVE_COMBATANT", "id": _named(state, "Lone")["id"]})

    assert state.encounter["combatants"] == []
    assert state.encounter["selectedId"] is None
    assert state.encounter["turnGroupKey"] is None


def test_update_initiative_propagates_to_whole_stack() -> None:
    state = _add(make_initial_state(), name="Orc", side="Enemy", maxHP=15, count=2)
    orc_a = _named(state, "Orc A")

    state = reduce(state, {"type": "UPDATE_COMBATANT", "id": orc_a["id"], "patch": {"initiative": 13, "hp": 4}})

    assert _named(state, "Orc A")["initiative"] == 13
    assert _named(state, "Orc B")["initiative"] == 13
    assert _named(state, "Orc A")["hp"] == 4
    assert _named(state, "Orc B")["hp"] == 15


def test_update_max_hp_clamps_hp_unless_hp_patched_too() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20)
    hero_id = _named(state, "Hero")["id"]

    lowered = reduce(state, {"type": "UPDATE_COMBATANT", "id": hero_id, "patch": {"maxHP": 12}})
    both = reduce(state, {"type": "UPDATE_COMBATANT", "id": hero_id, "patch": {"maxHP": 12, "hp": 3}})
    raised = reduce(state, {"type": "UPDATE_COMBATANT", "id": hero_id, "patch": {"maxHP": 30}})

    assert (_named(lowered, "Hero")["maxHP"], _named(lowered, "Hero")["hp"]) == (12, 12)
    assert (_named(both, "Hero")["maxHP"], _named(both, "Hero")["hp"]) == (12, 3)
    assert (_named(raised, "Hero")["maxHP"], _named(raised, "Hero")["hp"]) == (30, 20)


def test_update_normalizes_hp_temp_and_ac() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20)
    hero_id = _named(state, "Hero")["id"]

    state = reduce(
        state,
        {"type": "UPDATE_COMBATANT", "id": hero_id, "patch": {"hp": -7, "tempHP": -2, "ac": 15.8, "mystery": 1}},
    )
    hero = _named(state, "Hero")

    assert hero["hp"] == 0
    assert hero["status"] == "down"
    assert hero["tempHP"] == 0
    assert hero["ac"] == 15
    assert "mystery" not in hero


def test_update_with_invalid_or_empty_patch_is_noop() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20)
    hero_id = _named(state, "Hero")["id"]

    assert reduce(state, {"type": "UPDATE_COMBATANT", "id": hero_id, "patch": {"side": "Dragon"}}) is state
    assert reduce(state, {"type": "UPDATE_COMBATANT", "id": hero_id, "patch": {"unknown": 3}}) is state
    assert reduce(state, {"type": "UPDATE_COMBATANT", "id": "nobody", "patch": {"hp": 3}}) is state


def test_update_clearing_initiative_resorts_roster() -> None:
    state = _add(make_initial_state(), name="First", side="PC", maxHP=5, initiative=20)
    state = _add(state, name="Second", side="PC", maxHP=5, initiative=10)

    state = reduce(state, {"type": "UPDATE_COMBATANT", "id": _named(state, "First")["id"], "patch": {"initiative": None}})

    assert _names(state) == ["Second", "First"]
    assert _named(state, "First")["initiative"] is None


def test_set_initiative_bulk_applies_and_sorts() -> None:
    state = _add(make_initial_state(), name="A", side="PC", maxHP=5)
    state = _add(state, name="B", side="PC", maxHP=5)
    state = _add(state, name="C", side="PC", maxHP=5, initiative=10)
    ids = [_named(state, "A")["id"], _named(state, "B")["id"]]

    state = reduce(state, {"type": "SET_INITIATIVE", "ids": ids, "initiative": 17.9})

    assert _names(state) == ["A", "B", "C"]
    assert [c["initiative"] for c in state.encounter["combatants"]] == [17, 17, 10]
    assert reduce(state, {"type": "SET_INITIATIVE", "ids": ["ghost"], "initiative": 3}) is state
    assert reduce(state, {"type": "SET_INITIATIVE", "ids": ids, "initiative": None}) is state


def test_apply_damage_uses_resistances_and_temp_hp() -> None:
    state = _add(
        make_initial_state(),
        name="Golem",
        side="NPC",
        maxHP=10,
        tempHP=4,
        resistances={"fire": "resist", "poison": "immune"},
    )
    golem_id = _named(state, "Golem")["id"]

    burnt = reduce(state, {"type": "APPLY_DAMAGE", "id": golem_id, "amount": 10, "damageType": "fire"})
    poisoned = reduce(state, {"type": "APPLY_DAMAGE", "id": golem_id, "amount": 10, "damageType": "poison"})
    smashed = reduce(state, {"type": "APPLY_DAMAGE", "id": golem_id, "amount": 10, "damageType": None})

    assert (_named(burnt, "Golem")["tempHP"], _named(burnt, "Golem")["hp"]) == (0, 9)
    assert (_named(poisoned, "Golem")["tempHP"], _named(poisoned, "Golem")["hp"]) == (4, 10)
    assert (_named(smashed, "Golem")["tempHP"], _named(smashed, "Golem")["hp"]) == (0, 4)


def test_enemy_reduced_to_zero_dies_and_leaves_turn_order() -> None:
    state = _add(make_initial_state(), name="Bandit", side="Enemy", maxHP=6, initiative=11)
    bandit_id = _named(state, "Bandit")["id"]

    state = reduce(state, {"type": "APPLY_DAMAGE", "id": bandit_id, "amount": 12, "damageType": "fire"})
    bandit = _named(state, "Bandit")

    assert bandit["hp"] == 0
    assert bandit["status"] == "dead"
    assert bandit["deathSaveFailures"] == 0
    assert reduce(state, {"type": "NEXT_TURN"}) is state


def test_heal_revives_down_pc() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20)
    hero_id = _named(state, "Hero")["id"]
    state = reduce(state, {"type": "SET_HP", "id": hero_id, "hp": 0})
    state = reduce(state, {"type": "RECORD_DEATH_SAVE", "id": hero_id, "success": False})
    assert _named(state, "Hero")["deathSaveFailures"] == 1

    state = reduce(state, {"type": "APPLY_HEAL", "id": hero_id, "amount": 50})
    hero = _named(state, "Hero")

    assert hero["hp"] == 20
    assert hero["status"] == "alive"
    assert (hero["deathSaveSuccesses"], hero["deathSaveFailures"]) == (0, 0)


def test_set_hp_and_temp_hp_clamp() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20)
    hero_id = _named(state, "Hero")["id"]

    state = reduce(state, {"type": "SET_HP", "id": hero_id, "hp": 99})
    state = reduce(state, {"type": "SET_TEMP_HP", "id": hero_id, "tempHP": -5})

    assert _named(state, "Hero")["hp"] == 20
    assert _named(state, "Hero")["tempHP"] == 0
    assert reduce(state, {"type": "SET_HP", "id": hero_id, "hp": "lots"}) is state


def test_death_save_actions() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20)
    hero_id = _named(state, "Hero")["id"]
    assert reduce(state, {"type": "RECORD_DEATH_SAVE", "id": hero_id, "success": True}) is state

    state = reduce(state, {"type": "SET_HP", "id": hero_id, "hp": 0})
    for _ in range(3):
        state = reduce(state, {"type": "RECORD_DEATH_SAVE", "id": hero_id, "success": True})
    assert _named(state, "Hero")["status"] == "stable"

    state = reduce(state, {"type": "RESET_DEATH_SAVES", "id": hero_id})
    hero = _named(state, "Hero")
    assert (hero["status"], hero["deathSaveSuccesses"], hero["deathSaveFailures"]) == ("down", 0, 0)

    for _ in range(3):
        state = reduce(state, {"type": "RECORD_DEATH_SAVE", "id": hero_id, "success": False})
    assert _named(state, "Hero")["status"] == "dead"
    assert reduce(state, {"type": "RECORD_DEATH_SAVE", "id": hero_id, "success": False}) is state


def test_toggle_condition_adds_then_removes() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20, conditions=["Prone"])
    hero_id = _named(state, "Hero")["id"]

    state = reduce(state, {"type": "TOGGLE_CONDITION", "id": hero_id, "condition": "Poisoned"})
    assert _named(state, "Hero")["conditions"] == ["Prone", "Poisoned"]

    state = reduce(state, {"type": "TOGGLE_CONDITION", "id": hero_id, "condition": "Prone"})
    assert _named(state, "Hero")["conditions"] == ["Poisoned"]


def test_cycle_resistance_action_keeps_map_sparse() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20)
    hero_id = _named(state, "Hero")["id"]

    kinds = []
    for _ in range(4):
        state = reduce(state, {"type": "CYCLE_RESISTANCE", "id": hero_id, "damageType": "cold"})
        kinds.append(_named(state, "Hero")["resistances"].get("cold"))

    assert kinds == ["resist", "vuln", "immune", None]
    assert _named(state, "Hero")["resistances"] == {}
    assert reduce(state, {"type": "CYCLE_RESISTANCE", "id": hero_id, "damageType": "sonic"}) is state


def test_select_requires_existing_combatant_and_skips_undo() -> None:
    state = _add(make_initial_state(), name="A", side="PC", maxHP=5)
    state = _add(state, name="B", side="PC", maxHP=5)
    b_id = _named(state, "B")["id"]

    selected = reduce(state, {"type": "SELECT", "id": b_id})

    assert selected.encounter["selectedId"] == b_id
    assert selected.undo_stack == state.undo_stack
    assert reduce(state, {"type": "SELECT", "id": "ghost"}) is state


def test_reducer_never_mutates_its_input() -> None:
    state = _add(make_initial_state(), name="Hero", side="PC", maxHP=20, initiative=5)
    hero_id = _named(state, "Hero")["id"]
    before = copy.deepcopy(state.encounter)

    for action in (
        {"type": "APPLY_DAMAGE", "id": hero_id, "amount": 30},
        {"type": "TOGGLE_CONDITION", "id": hero_id, "condition": "Prone"},
        {"type": "CYCLE_RESISTANCE", "id": hero_id, "damageType": "fire"},
        {"type": "UPDATE_COMBATANT", "id": hero_id, "patch": {"name": "Renamed", "initiative": 1}},
        {"type": "NEXT_TURN"},
        {"type": "CLEAR_INITIATIVE"},
    ):
        reduce(state, action)

    assert state.encounter == before
