"""
Solo run session: the single store a UI talks to.

The session owns the current run state and the artefact collection. Every
mutation goes through a named controller transition; afterwards the
session persists what changed:

- The run is saved after each transition once it has started
- A defeat clears the saved run
- Victories bank the arcane dust reward, and any dust earned in the run
  is banked when a game ends
- The longest run is updated when a game ends
"""

from __future__ import annotations

import logging
from dataclasses import replace

from spellwall.types import RuneId, SourceId, RuneType, RunStatus, ArtefactId
from spellwall.config import SoloRunConfig, DEFAULT_CONFIG
from spellwall.models import SoloRunState
from spellwall.events import GameEvent
from spellwall.collection import ArtefactCollection
from spellwall.controller import SoloRunController
from spellwall.progression import get_arcane_dust_reward
from spellwall import persistence
from spellwall.persistence import KeyValueStore

logger = logging.getLogger(__name__)


class SoloRunSession:
    """
    Stateful wrapper around SoloRunController with persistence.

    Usage:
        session = SoloRunSession(JsonFileStore("save.json"))
        session.start_run()
        session.draft(SourceId("runeforge-1"), RuneType.FIRE)
        session.place_runes(0)
    """

    def __init__(
        self,
        store: KeyValueStore,
        controller: SoloRunController | None = None,
        config: SoloRunConfig = DEFAULT_CONFIG,
    ):
        self.store = store
        self.controller = controller or SoloRunController(config)
        self.state: SoloRunState | None = None
        self.collection = ArtefactCollection(
            owned=frozenset(persistence.get_owned_artefacts(store)),
            selected=tuple(persistence.get_selected_artefacts(store)),
            arcane_dust=persistence.get_arcane_dust(store),
        )

    # =========================================================================
    # Saved Runs
    # =========================================================================

    def has_saved_run(self) -> bool:
        """Re-derived from storage on every call."""
        return persistence.has_saved_solo_state(self.store)

    def continue_run(self) -> list[GameEvent]:
        """Load the saved run, if any, as the current run."""
        saved = persistence.load_solo_state(self.store)
        if saved is None:
            return []
        state, events = self.controller.hydrate_run(saved)
        self.state = state
        return events

    @property
    def longest_run(self) -> int:
        return persistence.get_longest_run(self.store)

    # =========================================================================
    # Run Transitions
    # =========================================================================

    def start_run(self, config: SoloRunConfig | None = None) -> list[GameEvent]:
        """Start a fresh run with the selected artefacts, replacing any saved run."""
        persistence.clear_solo_state(self.store)
        state, events = self.controller.start_run(config, self.collection.active_artefacts())
        return self._commit(None, state, events)

    def start_next_game(self) -> list[GameEvent]:
        return self._apply(self.controller.start_next_game)

    def draft(self, source_id: SourceId, rune_type: RuneType) -> list[GameEvent]:
        return self._apply(self.controller.draft, source_id, rune_type)

    def cancel_selection(self) -> list[GameEvent]:
        return self._apply(self.controller.cancel_selection)

    def place_runes(self, line_index: int) -> list[GameEvent]:
        return self._apply(self.controller.place_runes, line_index)

    def place_runes_in_floor(self) -> list[GameEvent]:
        return self._apply(self.controller.place_runes_in_floor)

    def complete_line(self, line_index: int) -> list[GameEvent]:
        return self._apply(self.controller.complete_line, line_index)

    def end_round(self) -> list[GameEvent]:
        return self._apply(self.controller.end_round)

    def pick_deck_draft(self, offer_index: int) -> list[GameEvent]:
        return self._apply(self.controller.pick_deck_draft, offer_index)

    def disenchant(self, rune_id: RuneId) -> list[GameEvent]:
        return self._apply(self.controller.disenchant, rune_id)

    # =========================================================================
    # Collection Transitions
    # =========================================================================

    def buy_artefact(self, artefact_id: ArtefactId) -> list[GameEvent]:
        self.collection, events = self.controller.buy_artefact(self.collection, artefact_id)
        self._save_collection()
        return events

    def select_artefact(self, artefact_id: ArtefactId) -> list[GameEvent]:
        self.collection, events = self.controller.select_artefact(self.collection, artefact_id)
        self._save_collection()
        return events

    def unselect_artefact(self, artefact_id: ArtefactId) -> list[GameEvent]:
        self.collection, events = self.controller.unselect_artefact(self.collection, artefact_id)
        self._save_collection()
        return events

    # =========================================================================
    # Internals
    # =========================================================================

    def _apply(self, transition, *args) -> list[GameEvent]:
        if self.state is None:
            raise RuntimeError("No active run; call start_run or continue_run first")
        previous = self.state
        state, events = transition(previous, *args)
        return self._commit(previous, state, events)

    def _commit(
        self,
        previous: SoloRunState | None,
        state: SoloRunState,
        events: list[GameEvent],
    ) -> list[GameEvent]:
        became_terminal = state.is_terminal() and (previous is None or previous.status != state.status)

        if became_terminal:
            persistence.update_longest_run(self.store, state.game_index)
            if state.status == RunStatus.VICTORY:
                self._bank_dust(get_arcane_dust_reward(state.game_index))

        if state.is_terminal() and state.arcane_dust_earned:
            self._bank_dust(state.arcane_dust_earned)
            state = replace(state, arcane_dust_earned=0)

        self.state = state

        if state.status == RunStatus.DEFEAT:
            persistence.clear_solo_state(self.store)
            logger.info(f"Run ended in defeat at game {state.game_index}")
        elif state.status != RunStatus.NOT_STARTED:
            persistence.save_solo_state(self.store, state)

        return events

    def _bank_dust(self, amount: int) -> None:
        total = persistence.add_arcane_dust(self.store, amount)
        self.collection = self.collection.with_dust(total)
        logger.debug(f"Banked {amount} arcane dust (total {total})")

    def _save_collection(self) -> None:
        persistence.save_owned_artefacts(self.store, sorted(self.collection.owned, key=lambda a: a.value))
        persistence.save_selected_artefacts(self.store, list(self.collection.selected))
        persistence.set_arcane_dust(self.store, self.collection.arcane_dust)
