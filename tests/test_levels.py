from barbuilder.interfaces import CompanionEntry
from barbuilder.levels import migrate_companions
from barbuilder.models import Companion, Spell, Snapshot
from barbuilder.persistence import CharacterState


def _save(bb, level, slots):
    bb.store.save(level, Snapshot(player_level=level, slots=dict(slots)), 1)


def test_initialize_seeds_level_counters(bb):
    bb.levels.initialize(10)
    assert bb.state.highest_seen_level == 10
    assert bb.state.last_known_level == 10
    assert bb.state.companions_migrated

    reloaded = bb.save_manager.load()
    assert reloaded.highest_seen_level == 10


def test_initialize_only_raises_highest(bb):
    bb.state.highest_seen_level = 30
    bb.state.last_known_level = 30
    bb.levels.initialize(12)
    assert bb.state.highest_seen_level == 30
    bb.levels.initialize(31)
    assert bb.state.highest_seen_level == 31


def test_first_ascent_level_up_leaves_saving_to_capture(bb, client):
    bb.levels.initialize(10)
    client.level = 11
    assert bb.levels.handle_level_up(11) is None
    assert bb.state.highest_seen_level == 11
    assert bb.state.last_known_level == 11
    assert bb.restore.verify_history == []


def test_level_up_restores_existing_layout(bb, client):
    client.learn("Fireball")
    bb.levels.initialize(10)
    _save(bb, 11, {1: Spell("Fireball")})
    client.level = 11
    bb.capture.schedule()

    assert bb.levels.handle_level_up(11) == "restore"
    assert not bb.capture.is_pending
    assert client.read_slot(1) == Spell("Fireball")


def test_rerun_level_up_restores_master(bb, client):
    client.learn("Fireball")
    bb.state.highest_seen_level = 20
    bb.state.last_known_level = 5
    _save(bb, 20, {1: Spell("Fireball")})
    client.level = 6
    client.put(2, Spell("Server Spell"))

    assert bb.levels.handle_level_up(6) == "rerun"
    assert client.read_slot(1) == Spell("Fireball")
    assert client.read_slot(2).kind.value == "empty"
    assert bb.state.highest_seen_level == 20


def test_reaching_the_peak_again_still_counts_as_rerun(bb, client):
    bb.state.highest_seen_level = 20
    bb.state.last_known_level = 19
    _save(bb, 20, {})
    client.level = 20
    assert bb.levels.handle_level_up(20) == "rerun"


def test_level_up_notifications_are_debounced(bb, client, timers, monkeypatch):
    handled = []
    monkeypatch.setattr(bb.levels, "handle_level_up", handled.append)

    bb.levels.on_level_up(11)
    timers.advance(0.5)
    bb.levels.on_level_up(12)
    timers.advance(bb.settings.restore_delay)

    assert handled == [12]


def test_level_up_in_combat_retries_after_combat(bb, client, timers, monkeypatch):
    handled = []
    monkeypatch.setattr(bb.levels, "handle_level_up", handled.append)
    client.combat = True

    bb.levels.on_level_up(11)
    timers.advance(bb.settings.restore_delay)
    assert handled == []
    assert bb.levels.pending_combat_level == 11

    timers.advance(bb.settings.verify_delay)
    assert handled == [11]

    client.combat = False
    bb.levels.on_regen_enabled()
    assert bb.levels.pending_combat_level is None
    timers.advance(bb.settings.restore_delay)
    assert handled == [11, 11]

    bb.levels.on_regen_enabled()
    timers.advance(5.0)
    assert handled == [11, 11]


def test_death_reset_saves_missing_layout_and_restores_level_one(bb, client, timers):
    client.learn("Fireball")
    bb.state.highest_seen_level = 30
    bb.state.last_known_level = 30
    _save(bb, 1, {1: Spell("Fireball")})
    client.put(5, Spell("Frostbolt"))
    client.level = 1

    assert bb.levels.handle_level_change(1)

    assert bb.store.has(30, 1)
    assert bb.state.last_known_level == 1
    assert "Returned to level 1: Restoring bars" in bb.chat.texts()

    timers.advance(bb.settings.restore_delay)
    baseline = bb.store.get_session(1, 1)
    assert baseline is not None and baseline.player_level == 1


def test_death_reset_keeps_existing_layout(bb, client):
    bb.state.highest_seen_level = 30
    bb.state.last_known_level = 30
    _save(bb, 30, {1: Spell("Pyroblast")})
    client.level = 1

    assert bb.levels.handle_level_change(1)
    layout, _ = bb.store.get(30, 1)
    assert layout.get(1) == Spell("Pyroblast")


def test_level_change_that_is_not_a_reset_is_ignored(bb):
    bb.state.last_known_level = 10
    assert not bb.levels.handle_level_change(11)
    bb.state.last_known_level = 1
    assert not bb.levels.handle_level_change(1)


def test_companion_migration_fills_names(client):
    client.companion_registry["MOUNT"] = [
        CompanionEntry(1, "Black Stallion", icon="Mount_Black"),
        CompanionEntry(2, "Swift Palomino", icon="Mount_Palomino"),
    ]
    state = CharacterState()
    state.ensure_specs(1, [1])
    state.specs[1].layouts[20] = Snapshot(
        player_level=20,
        slots={
            1: Companion("MOUNT", 2),
            2: Companion("MOUNT", 9, icon="Mount_Black"),
            3: Companion("MOUNT", 7),
            4: Companion("MOUNT", 1, "Already Named"),
        },
    )

    assert migrate_companions(state, client) == 2
    slots = state.specs[1].layouts[20].slots
    assert slots[1].name == "Swift Palomino"
    assert slots[2].name == "Black Stallion"
    assert slots[3].name is None
    assert slots[4].name == "Already Named"
