"""
Spell Wall - Rune Drafting & Wall-Resolution Engine

A solo drafting puzzle engine with immutable state snapshots and typed event logging.
This package contains pure game logic; storage is confined to the persistence
module and the session store.
"""

from spellwall.types import (
    RuneId,
    RuneforgeId,
    PlayerId,
    SourceId,
    RuneType,
    Rarity,
    ArtefactId,
    RunStatus,
    ErrorKind,
    SegmentConnectivity,
    RUNE_TYPES,
    CENTER_SOURCE_ID,
    MAX_SELECTED_ARTEFACTS,
)
from spellwall.config import SoloRunConfig, DeckDraftingConfig, ConfigError, load_config
from spellwall.models import (
    Rune,
    Runeforge,
    PatternLine,
    FloorLine,
    SpellWall,
    PlayerStats,
    RuneScore,
    Deck,
    SoloRunState,
)
from spellwall.wall import ResolvedSegment, RuneResolutionStep, ChannelSynergyStep
from spellwall.rules import ValidationResult, ConsistencyViolation
from spellwall.collection import ArtefactCollection
from spellwall.controller import SoloRunController
from spellwall.persistence import KeyValueStore, InMemoryStore, JsonFileStore
from spellwall.session import SoloRunSession

__all__ = [
    # Types
    "RuneId",
    "RuneforgeId",
    "PlayerId",
    "SourceId",
    "RuneType",
    "Rarity",
    "ArtefactId",
    "RunStatus",
    "ErrorKind",
    "SegmentConnectivity",
    "RUNE_TYPES",
    "CENTER_SOURCE_ID",
    "MAX_SELECTED_ARTEFACTS",
    # Config
    "SoloRunConfig",
    "DeckDraftingConfig",
    "ConfigError",
    "load_config",
    # Models
    "Rune",
    "Runeforge",
    "PatternLine",
    "FloorLine",
    "SpellWall",
    "PlayerStats",
    "RuneScore",
    "Deck",
    "SoloRunState",
    # Resolution
    "ResolvedSegment",
    "RuneResolutionStep",
    "ChannelSynergyStep",
    "ValidationResult",
    "ConsistencyViolation",
    # Controller & session
    "ArtefactCollection",
    "SoloRunController",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "SoloRunSession",
]
