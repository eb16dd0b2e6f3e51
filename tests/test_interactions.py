from closedroom.sim.interactions import (
    DEFAULT_EXIT_TEXT,
    DOOR_LOCKED_MESSAGE,
    OUTCOME_DOOR_LOCKED,
    OUTCOME_DOOR_OPENED,
    OUTCOME_EXIT,
    OUTCOME_KEY_COLLECTED,
    OUTCOME_NOTE,
    OUTCOME_NOTHING,
    find_adjacent_object,
    interact,
)
from closedroom.sim.movement import try_move
from closedroom.sim.state import GameState
from closedroom.sim.world import (
    DoorObject,
    ExitObject,
    KeyObject,
    NoteObject,
    Scene,
    SceneObject,
    Story,
    StoryMeta,
    Tileset,
    Vector2,
)


def _build_story(objects: tuple[SceneObject, ...], *, player_start: Vector2 = Vector2(1, 1)) -> Story:
    start = Scene(
        scene_id="start",
        width=3,
        height=3,
        grid=("###", "...", "###"),
        player_start=player_start,
        objects=objects,
    )
    hall = Scene(scene_id="hall", width=2, height=2, grid=("..", ".."), player_start=Vector2(1, 1))
    return Story(meta=StoryMeta(title="Test"), tileset=Tileset(tile_size=16), scenes=(start, hall))


def _locked_door() -> DoorObject:
    return DoorObject(
        object_id="door-hall",
        x=2,
        y=2,
        to_scene="hall",
        to=Vector2(0, 0),
        locked=True,
        key_id="red",
    )


def test_key_then_locked_door_walkthrough() -> None:
    story = _build_story((KeyObject(object_id="key-red", x=1, y=2, key_id="red"), _locked_door()))
    state = GameState.initial(story)

    picked = interact(state)
    assert picked.outcome == OUTCOME_KEY_COLLECTED
    assert picked.state.inventory == frozenset({"red"})
    assert [obj.object_id for obj in picked.state.scene.objects] == ["door-hall"]

    beside_door = try_move(picked.state, 1, 0)
    assert beside_door.player == Vector2(2, 1)

    opened = interact(beside_door)
    assert opened.outcome == OUTCOME_DOOR_OPENED
    assert opened.state.current_scene_id == "hall"
    assert opened.state.player == Vector2(0, 0)
    assert opened.state.inventory == frozenset({"red"})


def test_locked_door_without_key_reports_message() -> None:
    state = GameState.initial(_build_story((_locked_door(),), player_start=Vector2(2, 1)))

    result = interact(state)

    assert result.outcome == OUTCOME_DOOR_LOCKED
    assert result.message == DOOR_LOCKED_MESSAGE
    assert result.state is state
    assert result.changed_state is False


def test_unlocked_door_opens_without_key() -> None:
    door = DoorObject(object_id="door", x=1, y=0, to_scene="hall", to=Vector2(1, 0))
    state = GameState.initial(_build_story((door,)))

    result = interact(state)

    assert result.outcome == OUTCOME_DOOR_OPENED
    assert result.state.current_scene_id == "hall"
    assert result.state.player == Vector2(1, 0)


def test_door_destination_is_not_validated() -> None:
    door = DoorObject(object_id="door", x=1, y=0, to_scene="hall", to=Vector2(9, 9))
    state = GameState.initial(_build_story((door,)))

    result = interact(state)

    assert result.state.player == Vector2(9, 9)


def test_note_and_exit_only_report_text() -> None:
    note_state = GameState.initial(_build_story((NoteObject(object_id="note", x=1, y=0, text="Look down."),)))
    note = interact(note_state)
    assert note.outcome == OUTCOME_NOTE
    assert note.message == "Look down."
    assert note.state is note_state

    exit_state = GameState.initial(_build_story((ExitObject(object_id="exit", x=1, y=2),)))
    exit_result = interact(exit_state)
    assert exit_result.outcome == OUTCOME_EXIT
    assert exit_result.message == DEFAULT_EXIT_TEXT
    assert exit_result.state is exit_state


def test_first_adjacent_object_in_scene_order_wins() -> None:
    note = NoteObject(object_id="note", x=1, y=0, text="first")
    key = KeyObject(object_id="key", x=1, y=2, key_id="blue")
    state = GameState.initial(_build_story((note, key)))

    assert find_adjacent_object(state.scene, state.player) == note
    assert interact(state).outcome == OUTCOME_NOTE


def test_diagonal_and_same_tile_objects_are_not_adjacent() -> None:
    diagonal = NoteObject(object_id="diag", x=2, y=2, text="diag")
    underfoot = NoteObject(object_id="under", x=1, y=1, text="under")
    state = GameState.initial(_build_story((diagonal, underfoot)))

    result = interact(state)

    assert result.outcome == OUTCOME_NOTHING
    assert result.state is state


def test_second_key_with_same_id_is_removed_without_growing_inventory() -> None:
    first = KeyObject(object_id="key-a", x=1, y=0, key_id="red")
    second = KeyObject(object_id="key-b", x=1, y=2, key_id="red")
    state = GameState.initial(_build_story((first, second)))

    after_first = interact(state).state
    after_second = interact(after_first)

    assert after_second.outcome == OUTCOME_KEY_COLLECTED
    assert after_second.state.inventory == frozenset({"red"})
    assert after_second.state.scene.objects == ()
