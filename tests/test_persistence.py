"""
Tests for the key-value stores and persisted meta-progression.
"""

import json

import pytest

from spellwall.types import ArtefactId, RuneType
from spellwall.persistence import (
    ARCANE_DUST_KEY,
    OWNED_ARTEFACTS_KEY,
    SELECTED_ARTEFACTS_KEY,
    SOLO_STATE_KEY,
    LONGEST_RUN_KEY,
    InMemoryStore,
    JsonFileStore,
    get_arcane_dust,
    set_arcane_dust,
    add_arcane_dust,
    get_owned_artefacts,
    add_owned_artefact,
    get_selected_artefacts,
    save_selected_artefacts,
    save_solo_state,
    load_solo_state,
    has_saved_solo_state,
    clear_solo_state,
    get_longest_run,
    update_longest_run,
)
from spellwall.controller import create_test_state


class BrokenStore:
    """A store whose backend always fails."""

    def get(self, key: str) -> str | None:
        raise OSError("disk unavailable")

    def set(self, key: str, value: str) -> None:
        raise OSError("disk unavailable")

    def remove(self, key: str) -> None:
        raise OSError("disk unavailable")


class TestArcaneDust:
    """Tests for the dust balance."""

    def test_missing_is_zero(self) -> None:
        assert get_arcane_dust(InMemoryStore()) == 0

    @pytest.mark.parametrize("raw", ["abc", "-5", ""])
    def test_malformed_or_negative_is_zero(self, raw: str) -> None:
        assert get_arcane_dust(InMemoryStore({ARCANE_DUST_KEY: raw})) == 0

    def test_set_and_add(self) -> None:
        store = InMemoryStore()

        assert set_arcane_dust(store, 120) == 120
        assert add_arcane_dust(store, 30) == 150
        assert store.get(ARCANE_DUST_KEY) == "150"

    def test_never_negative(self) -> None:
        store = InMemoryStore({ARCANE_DUST_KEY: "10"})
        assert add_arcane_dust(store, -50) == 0


class TestArtefactLists:
    """Tests for owned and selected artefacts."""

    def test_malformed_json(self) -> None:
        store = InMemoryStore({OWNED_ARTEFACTS_KEY: "{not json"})
        assert get_owned_artefacts(store) == []

    def test_not_a_list(self) -> None:
        store = InMemoryStore({OWNED_ARTEFACTS_KEY: '{"potion": true}'})
        assert get_owned_artefacts(store) == []

    def test_unknown_and_duplicate_ids_dropped(self) -> None:
        store = InMemoryStore({OWNED_ARTEFACTS_KEY: '["potion", "wand", "potion", "tome"]'})
        assert get_owned_artefacts(store) == [ArtefactId.POTION, ArtefactId.TOME]

    def test_add_owned_is_idempotent(self) -> None:
        store = InMemoryStore()

        add_owned_artefact(store, ArtefactId.ROD)
        add_owned_artefact(store, ArtefactId.ROD)

        assert json.loads(store.get(OWNED_ARTEFACTS_KEY)) == ["rod"]

    def test_selection_truncated(self) -> None:
        store = InMemoryStore()
        selection = [*ArtefactId, ArtefactId.POTION]

        saved = save_selected_artefacts(store, selection)

        assert len(saved) == 5
        assert len(json.loads(store.get(SELECTED_ARTEFACTS_KEY))) == 5
        assert get_selected_artefacts(store) == list(ArtefactId)


class TestSoloState:
    """Tests for the saved run."""

    def test_save_and_load(self) -> None:
        store = InMemoryStore()
        state = create_test_state(runeforges=[[RuneType.FIRE, RuneType.WIND]], score=12)

        save_solo_state(store, state)

        assert has_saved_solo_state(store)
        assert load_solo_state(store) == state

    def test_nothing_saved(self) -> None:
        store = InMemoryStore()
        assert not has_saved_solo_state(store)
        assert load_solo_state(store) is None

    def test_corrupt_save(self) -> None:
        store = InMemoryStore({SOLO_STATE_KEY: '{"version": 1}'})
        assert load_solo_state(store) is None

        store = InMemoryStore({SOLO_STATE_KEY: "not json"})
        assert load_solo_state(store) is None

    def test_clear(self) -> None:
        store = InMemoryStore()
        save_solo_state(store, create_test_state())

        clear_solo_state(store)

        assert not has_saved_solo_state(store)


class TestLongestRun:
    """Tests for the best run record."""

    def test_keeps_maximum(self) -> None:
        store = InMemoryStore()

        assert update_longest_run(store, 3) == 3
        assert update_longest_run(store, 1) == 3
        assert get_longest_run(store) == 3

    def test_malformed(self) -> None:
        assert get_longest_run(InMemoryStore({LONGEST_RUN_KEY: "x"})) == 0


class TestJsonFileStore:
    """Tests for the file-backed store."""

    def test_round_trip(self, tmp_path) -> None:
        path = tmp_path / "saves" / "spellwall.json"
        store = JsonFileStore(path)

        assert store.get("a") is None
        store.set("a", "1")
        store.set("b", "2")
        store.remove("a")

        assert json.loads(path.read_text(encoding="utf-8")) == {"b": "2"}
        assert JsonFileStore(path).get("b") == "2"

    def test_dust_survives_reopen(self, tmp_path) -> None:
        path = tmp_path / "spellwall.json"

        add_arcane_dust(JsonFileStore(path), 75)

        assert get_arcane_dust(JsonFileStore(path)) == 75

    def test_corrupt_file_reads_as_defaults(self, tmp_path) -> None:
        path = tmp_path / "spellwall.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        store = JsonFileStore(path)

        assert get_arcane_dust(store) == 0
        assert get_owned_artefacts(store) == []


class TestStorageFailures:
    """Storage errors are logged, never raised."""

    def test_reads_fall_back(self) -> None:
        store = BrokenStore()

        assert get_arcane_dust(store) == 0
        assert get_owned_artefacts(store) == []
        assert load_solo_state(store) is None
        assert not has_saved_solo_state(store)
        assert get_longest_run(store) == 0

    def test_writes_do_not_raise(self, caplog) -> None:
        store = BrokenStore()

        assert set_arcane_dust(store, 10) == 10
        save_solo_state(store, create_test_state())
        clear_solo_state(store)

        assert "Failed to save" in caplog.text
