"""
Core type definitions for the rune engine.

This module defines:
- NewType IDs for strong typing of identifiers
- Enums for rune types, rarities, artefacts and run states
- Constants shared across the engine
"""

from enum import Enum, auto
from typing import NewType, Literal

# =============================================================================
# Strong ID Types (NewType for compile-time safety)
# =============================================================================

RuneId = NewType("RuneId", str)
"""Unique identifier for a rune, stable for the whole run."""

RuneforgeId = NewType("RuneforgeId", str)
"""Identifier of a runeforge (e.g., 'runeforge-1')."""

PlayerId = NewType("PlayerId", str)
"""Identifier of the drafting player."""

SourceId = NewType("SourceId", str)
"""A runeforge id or CENTER_SOURCE_ID."""

# =============================================================================
# Enums
# =============================================================================


class RuneType(Enum):
    """Elemental identity of a rune. Order defines the wall layout."""

    FIRE = "Fire"
    FROST = "Frost"
    LIFE = "Life"
    VOID = "Void"
    WIND = "Wind"
    LIGHTNING = "Lightning"


class Rarity(Enum):
    """Rune rarity tiers, lowest first."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"


class ArtefactId(Enum):
    """Purchasable run modifiers."""

    POTION = "potion"
    ROD = "rod"
    TOME = "tome"
    RING = "ring"
    ROBE = "robe"


class RunStatus(Enum):
    """Solo run state machine."""

    NOT_STARTED = "not-started"
    """Game dealt, no action taken yet."""

    IN_PROGRESS = "in-progress"
    """At least one action has been taken this game."""

    VICTORY = "victory"
    """Target score reached at a round boundary. Terminal."""

    DEFEAT = "defeat"
    """Health reached zero or the deck ran dry. Terminal."""


class ErrorKind(Enum):
    """Kinds of rejected actions."""

    INVALID_SELECTION = auto()
    """A draft or placement precondition was violated."""

    SOURCE_UNAVAILABLE = auto()
    """Center draft attempted while a runeforge is still accessible."""

    INSUFFICIENT_FUNDS = auto()
    """Artefact purchase without enough arcane dust."""

    CONSISTENCY_VIOLATION = auto()
    """An upstream invariant is broken (wall cell occupied, line not full)."""

    RUN_OVER = auto()
    """The run is in a terminal state."""


class SegmentConnectivity(Enum):
    """Which filled neighbours join a wall segment."""

    SAME_TYPE = "same-type"
    """Only runes of the placed rune's type."""

    ANY_RUNE = "any-rune"
    """Every filled cell, whatever its type."""


class DeckDraftEffectType(Enum):
    """Bonus attached to a post-victory deck draft offer."""

    HEAL = "heal"
    MAX_HEALTH = "maxHealth"
    BETTER_RUNES = "betterRunes"


# =============================================================================
# Constants
# =============================================================================

RUNE_TYPES: tuple[RuneType, ...] = tuple(RuneType)
"""All rune types in wall-layout order."""

RARITY_ORDER: tuple[Rarity, ...] = tuple(Rarity)
"""Rarities from lowest to highest."""

CENTER_SOURCE_ID: SourceId = SourceId("center")
"""Source id used to draft from the center pool."""

MAX_SELECTED_ARTEFACTS: Literal[5] = 5
"""Maximum number of artefacts active in a run."""

DEFAULT_DECK_DRAFT_SELECTION_LIMIT: Literal[1] = 1
"""Offers that can be taken from one deck draft round without the Robe."""

MAX_DECK_DRAFT_SELECTION_LIMIT: Literal[3] = 3
"""Hard cap on deck draft selections per offer."""
