"""Domain vocabulary and document schemas for encounters and templates."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

Side = Literal["PC", "NPC", "Enemy"]
LifeState = Literal["alive", "down", "stable", "dead"]
ResistanceKind = Literal["normal", "resist", "vuln", "immune"]
DamageType = Literal[
    "acid",
    "bludgeoning",
    "cold",
    "fire",
    "force",
    "lightning",
    "necrotic",
    "piercing",
    "poison",
    "psychic",
    "radiant",
    "slashing",
    "thunder",
]

SIDES: tuple[str, ...] = ("PC", "NPC", "Enemy")
DAMAGE_TYPES: tuple[str, ...] = (
    "acid",
    "bludgeoning",
    "cold",
    "fire",
    "force",
    "lightning",
    "necrotic",
    "piercing",
    "poison",
    "psychic",
    "radiant",
    "slashing",
    "thunder",
)
RESISTANCE_KINDS: tuple[str, ...] = ("normal", "resist", "vuln", "immune")
COMMON_CONDITIONS: tuple[str, ...] = (
    "Blinded",
    "Charmed",
    "Deafened",
    "Frightened",
    "Grappled",
    "Incapacitated",
    "Invisible",
    "Paralyzed",
    "Petrified",
    "Poisoned",
    "Prone",
    "Restrained",
    "Stunned",
    "Unconscious",
    "Exhaustion",
)
DEFAULT_PC_BUFFS: tuple[str, ...] = ("Bless", "Sanctuary", "Guidance", "Shield of Faith", "Bane", "Hex")

MAX_DEATH_SAVES = 3

Number = Annotated[float, Field(allow_inf_nan=False)]
DeathSaveCount = Annotated[int, Field(ge=0, le=MAX_DEATH_SAVES)]


class CombatantDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    side: Side
    initiative: int | None = None
    sortOrder: int | None = None
    groupId: str | None = None
    groupLabel: str | None = None
    maxHP: int = Field(ge=1)
    hp: int = Field(ge=0)
    tempHP: int = Field(default=0, ge=0)
    ac: int | None = None
    notes: str = ""
    url: str | None = None
    conditions: list[str] = Field(default_factory=list)
    resistances: dict[DamageType, ResistanceKind] = Field(default_factory=dict)
    buffLibrary: list[str] = Field(default_factory=list)
    order: int = 0
    status: LifeState = "alive"
    deathSaveSuccesses: DeathSaveCount = 0
    deathSaveFailures: DeathSaveCount = 0


class EffectDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    sourceId: str | None = None
    targetIds: list[str] = Field(min_length=1)
    createdRound: int = Field(ge=1)
    durationRounds: int | None = Field(default=None, ge=0)
    concentration: bool = False
    notes: str | None = None


class EncounterDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    round: int = Field(default=1, ge=1)
    turnIndex: int = Field(default=0, ge=0)
    turnGroupKey: str | None = None
    selectedId: str | None = None
    combatants: list[CombatantDocument] = Field(default_factory=list)
    effects: list[EffectDocument] = Field(default_factory=list)
    createdAt: str
    updatedAt: str


class TemplateDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    side: Side
    maxHP: int | str
    ac: int | None = None
    notes: str = ""
    url: str | None = None
    resistances: dict[DamageType, ResistanceKind] = Field(default_factory=dict)
    conditions: list[str] = Field(default_factory=list)
    buffLibrary: list[str] = Field(default_factory=list)
    createdAt: str
    updatedAt: str


class CombatantPatch(BaseModel):
    """Closed set of combatant fields an update may touch; other keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    side: Side | None = None
    initiative: Number | None = None
    maxHP: Number | None = None
    hp: Number | None = None
    tempHP: Number | None = None
    ac: Number | None = None
    notes: str | None = None
    url: str | None = None
    conditions: list[str] | None = None
    resistances: dict[DamageType, ResistanceKind] | None = None
    buffLibrary: list[str] | None = None
    status: LifeState | None = None
    deathSaveSuccesses: Number | None = None
    deathSaveFailures: Number | None = None
