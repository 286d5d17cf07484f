"""Dice expression evaluator used for max-HP specs such as ``13d6+27``."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable

Rng = Callable[[], float]

_DICE_TOKEN = re.compile(r"^(\d*)[dD](\d+)$")
_INT_TOKEN = re.compile(r"^[0-9]+$")
_WHITESPACE = re.compile(r"\s+")


class DiceExpressionError(ValueError):
    """Raised when a dice expression is empty or contains a malformed term."""


@dataclass(frozen=True)
class DiceTerm:
    sign: int
    kind: str
    value: int
    count: int | None = None
    sides: int | None = None
    rolls: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"sign": self.sign, "kind": self.kind, "value": self.value}
        if self.kind == "dice":
            payload["count"] = self.count
            payload["sides"] = self.sides
            payload["rolls"] = list(self.rolls)
        return payload


@dataclass(frozen=True)
class DiceRoll:
    expr: str
    total: int
    terms: tuple[DiceTerm, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"expr": self.expr, "total": self.total, "terms": [term.to_dict() for term in self.terms]}


def is_dice_expression(raw: str) -> bool:
    """Return True when the text contains a ``d``/``D`` and should be rolled."""
    return "d" in raw.lower()


def _parse_dice_token(token: str) -> tuple[int, int] | None:
    match = _DICE_TOKEN.match(token)
    if match is None:
        return None
    count = int(match.group(1)) if match.group(1) else 1
    sides = int(match.group(2))
    if count < 1 or sides < 2:
        return None
    return count, sides


def _split_terms(expr: str) -> list[tuple[int, str]]:
    sign = 1
    start = 0
    if expr[0] == "+":
        start = 1
    elif expr[0] == "-":
        sign = -1
        start = 1

    terms: list[tuple[int, str]] = []
    for pos in range(start, len(expr) + 1):
        char = expr[pos] if pos < len(expr) else None
        if char is not None and char not in "+-":
            continue
        token = expr[start:pos]
        if not token:
            raise DiceExpressionError(f"Bad expression near '{expr[:pos]}'")
        terms.append((sign, token))
        sign = -1 if char == "-" else 1
        start = pos + 1
    return terms


def roll_dice_expression(raw: str, rng: Rng) -> DiceRoll:
    """Parse and roll ``raw`` using ``rng``, a source of uniform floats in [0, 1).

    Every die result and every signed term subtotal is kept on the returned
    ``DiceRoll`` so callers can show how the total was reached.
    """
    expr = _WHITESPACE.sub("", raw)
    if not expr:
        raise DiceExpressionError("Empty expression")

    terms: list[DiceTerm] = []
    total = 0
    for sign, token in _split_terms(expr):
        dice = _parse_dice_token(token)
        if dice is not None:
            count, sides = dice
            rolls = tuple(1 + math.floor(rng() * sides) for _ in range(count))
            value = sign * sum(rolls)
            terms.append(DiceTerm(sign=sign, kind="dice", value=value, count=count, sides=sides, rolls=rolls))
            total += value
            continue

        if _INT_TOKEN.match(token):
            value = sign * int(token)
            terms.append(DiceTerm(sign=sign, kind="number", value=value))
            total += value
            continue

        raise DiceExpressionError(f"Unrecognized term '{token}'")

    return DiceRoll(expr=raw, total=total, terms=tuple(terms))


def roll_max_hp(spec: int | float | str | None, rng: Rng) -> int:
    """Resolve a max-HP spec (number, numeric text or dice) to an integer >= 1.

    Malformed dice expressions fall back to 1 instead of raising.
    """
    raw = "" if spec is None else str(spec).strip()
    if not raw:
        return 1

    if is_dice_expression(raw):
        try:
            return max(1, roll_dice_expression(raw, rng).total)
        except DiceExpressionError:
            return 1

    try:
        value = float(raw)
    except ValueError:
        return 1
    if not math.isfinite(value):
        return 1
    return max(1, math.trunc(value))


def roll_max_hps(spec: int | float | str | None, count: int, rng: Rng) -> list[int]:
    """Roll one max-HP value per creature for a stack of ``count`` creatures."""
    return [roll_max_hp(spec, rng) for _ in range(max(1, count))]
