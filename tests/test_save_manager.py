import json
from pathlib import Path

import pytest

from barbuilder.models import EMPTY, Item, Spell, Snapshot
from barbuilder.persistence import (
    SCHEMA_VERSION,
    CharacterSaveManager,
    CharacterState,
    CorruptSaveError,
    SaveValidationError,
    SpecState,
)
from barbuilder.persistence.codec import decode_save, encode_save, migrate_data


def _state_with_layout() -> CharacterState:
    state = CharacterState(character_id="hero")
    state.ensure_specs(2, [1, 2])
    state.highest_seen_level = 20
    state.last_known_level = 20
    snap = Snapshot(player_level=20, slots={1: Spell("Fireball"), 2: EMPTY, 13: Item(6948)})
    state.specs[1].layouts[20] = snap
    return state


def test_load_creates_fresh_save(tmp_path: Path):
    mgr = CharacterSaveManager(root_dir=tmp_path, character_id="hero")
    assert not mgr.exists()
    state = mgr.load()
    assert mgr.exists()
    assert mgr.save_path == tmp_path / "profiles" / "hero" / "character.json"
    assert state.character_id == "hero"
    assert state.highest_seen_level is None


def test_save_and_reload_round_trip(tmp_path: Path):
    mgr = CharacterSaveManager(root_dir=tmp_path, character_id="hero")
    mgr.save(_state_with_layout())

    loaded = mgr.load()
    assert loaded.highest_seen_level == 20
    layout = loaded.specs[1].layouts[20]
    assert layout.get(1) == Spell("Fireball")
    assert layout.get(2) is EMPTY
    assert layout.get(13) == Item(6948)
    assert layout.get(3) is None
    assert loaded.specs[2].enabled_bars == {1, 2}


def test_corrupt_save_falls_back_to_backup(tmp_path: Path):
    mgr = CharacterSaveManager(root_dir=tmp_path, character_id="hero")
    state = _state_with_layout()
    mgr.save(state)
    state.highest_seen_level = 30
    mgr.save(state)

    mgr.save_path.write_text("{not json", encoding="utf-8")
    loaded = mgr.load()
    # The backup holds the previous write.
    assert loaded.highest_seen_level == 20


def test_corrupt_save_without_backup_raises(tmp_path: Path):
    mgr = CharacterSaveManager(root_dir=tmp_path, character_id="hero")
    mgr.save_path.write_text("[]", encoding="utf-8")
    with pytest.raises(CorruptSaveError):
        mgr.load()


def test_decode_rejects_newer_schema():
    data = _state_with_layout().to_dict()
    data["schema_version"] = SCHEMA_VERSION + 1
    with pytest.raises(SaveValidationError):
        decode_save(json.dumps(data))


def test_v1_save_keeps_only_highest_layout_per_spec():
    v1 = {
        "character_id": "old",
        "specs": {
            "1": {
                "name": "Fire",
                "enabled_bars": [1],
                "layouts": {
                    "10": {"playerLevel": 10, "slots": {"1": {"type": "spell", "name": "Fireball"}}},
                    "25": {"playerLevel": 25, "slots": {"1": {"type": "spell", "name": "Pyroblast"}}},
                },
            },
            "2": {"name": "Frost", "enabled_bars": [1], "layouts": {}},
        },
    }
    state = decode_save(json.dumps(v1))
    assert state.schema_version == SCHEMA_VERSION
    assert list(state.specs[1].layouts) == [25]
    assert state.specs[1].layouts[25].get(1) == Spell("Pyroblast")
    assert state.highest_seen_level == 25


def test_migrate_same_version_is_noop():
    data = {"schema_version": SCHEMA_VERSION}
    assert migrate_data(data, SCHEMA_VERSION, SCHEMA_VERSION) is data


def test_invalid_values_raise_validation_error():
    with pytest.raises(SaveValidationError):
        CharacterState(active_spec=0)
    with pytest.raises(SaveValidationError):
        SpecState(enabled_bars={0})
    text = encode_save(_state_with_layout()).replace('"type": "spell"', '"type": "bogus"')
    with pytest.raises(SaveValidationError):
        decode_save(text)


def test_save_dir_env_override(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("BB_SAVE_DIR", str(tmp_path / "saves"))
    mgr = CharacterSaveManager(character_id="env")
    assert mgr.save_path.is_relative_to(tmp_path / "saves")


def test_schema_violations_are_listed():
    data = _state_with_layout().to_dict()
    data["active_spec"] = 0
    data["specs"]["1"]["layouts"]["20"]["slots"]["1"] = {"name": "typeless"}
    with pytest.raises(SaveValidationError) as exc:
        decode_save(json.dumps(data))
    message = str(exc.value)
    assert "active_spec" in message
    assert "specs.1.layouts.20.slots.1" in message
