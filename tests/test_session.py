import pytest

from closedroom.sim.actions import parse_actions
from closedroom.sim.core import FEEDBACK_BLOCKED, WALL_BUMP_MESSAGE, Feedback, GameSession
from closedroom.sim.interactions import DOOR_LOCKED_MESSAGE, OUTCOME_DOOR_LOCKED
from closedroom.sim.state import GameState, RenderSnapshot
from closedroom.sim.world import DoorObject, KeyObject, Scene, Story, StoryMeta, Tileset, UnknownSceneError, Vector2


def _build_story() -> Story:
    start = Scene(
        scene_id="start",
        width=3,
        height=3,
        grid=("###", "...", "###"),
        player_start=Vector2(1, 1),
        objects=(
            KeyObject(object_id="key-red", x=1, y=2, key_id="red"),
            DoorObject(object_id="door-hall", x=2, y=2, to_scene="hall", to=Vector2(0, 0), locked=True, key_id="red"),
        ),
        actions=parse_actions(
            [
                {"label": "Shout", "setFlag": {"key": "shouted", "value": True}},
                {"label": "Whisper", "if": {"flagEquals": {"key": "shouted", "value": True}}},
            ],
            path="scenes.0.actions",
        ),
    )
    hall = Scene(scene_id="hall", width=2, height=2, grid=("..", ".."), player_start=Vector2(1, 1))
    return Story(meta=StoryMeta(title="Test"), tileset=Tileset(tile_size=16), scenes=(start, hall))


def _build_session() -> tuple[GameSession, list[RenderSnapshot], list[Feedback]]:
    renders: list[RenderSnapshot] = []
    feedback: list[Feedback] = []
    session = GameSession.from_world(_build_story(), on_render=renders.append, on_feedback=feedback.append)
    return session, renders, feedback


def test_accepted_move_renders_once() -> None:
    session, renders, feedback = _build_session()

    assert session.move(-1, 0) is True

    assert len(renders) == 1
    assert renders[0].player == Vector2(0, 1)
    assert feedback == []


def test_wall_bump_gives_feedback_without_render() -> None:
    session, renders, feedback = _build_session()
    before = session.state

    assert session.move(0, -1) is False

    assert renders == []
    assert feedback == [Feedback(kind=FEEDBACK_BLOCKED, message=WALL_BUMP_MESSAGE)]
    assert session.state is before


def test_move_into_edge_is_silent_noop() -> None:
    session, renders, feedback = _build_session()
    session.move(-1, 0)
    renders.clear()

    assert session.move(-1, 0) is False

    assert renders == []
    assert feedback == []
    assert session.state.player == Vector2(0, 1)


def test_key_and_door_through_keyboard_input() -> None:
    session, renders, feedback = _build_session()

    assert session.handle_key("e") is True
    assert session.handle_key("ArrowRight") is True
    assert session.handle_key("Enter") is True

    assert session.state.current_scene_id == "hall"
    assert session.state.player == Vector2(0, 0)
    assert session.state.inventory == frozenset({"red"})
    assert len(renders) == 3
    assert renders[-1].scene.scene_id == "hall"
    assert feedback == []


def test_locked_door_notifies_without_render() -> None:
    session, renders, feedback = _build_session()
    session.move(1, 0)
    renders.clear()

    result = session.interact()

    assert result.outcome == OUTCOME_DOOR_LOCKED
    assert renders == []
    assert feedback == [Feedback(kind=OUTCOME_DOOR_LOCKED, message=DOOR_LOCKED_MESSAGE)]


def test_unknown_key_is_ignored() -> None:
    session, renders, feedback = _build_session()

    assert session.handle_key("q") is False
    assert renders == []
    assert feedback == []


def test_snapshot_lists_available_actions_and_status_line() -> None:
    session, renders, _ = _build_session()

    snapshot = session.snapshot()
    assert [action.label for action in snapshot.actions] == ["Shout"]
    assert snapshot.status_line == "Room: start | Flags: {}"

    session.perform(snapshot.actions[0])

    assert [action.label for action in renders[-1].actions] == ["Shout", "Whisper"]
    assert renders[-1].status_line == 'Room: start | Flags: {"shouted": true}'


def test_snapshot_flags_are_read_only() -> None:
    session, _, _ = _build_session()
    snapshot = session.snapshot()

    with pytest.raises(TypeError):
        snapshot.flags["cheat"] = True  # type: ignore[index]


def test_reload_restores_initial_state(tmp_path) -> None:
    story_path = tmp_path / "story.json"
    story_path.write_text(
        """
        {
          "meta": {"title": "Reloadable"},
          "tileset": {"tileSize": 16},
          "scenes": [
            {"id": "a", "width": 2, "height": 1, "grid": [".."], "playerStart": {"x": 0, "y": 0}}
          ]
        }
        """,
        encoding="utf-8",
    )
    renders: list[RenderSnapshot] = []
    session = GameSession.load(str(story_path), on_render=renders.append)
    session.move(1, 0)

    session.reload()

    assert session.state.player == Vector2(0, 0)
    assert renders[-1].title == "Reloadable"


def test_reload_without_source_raises() -> None:
    session, _, _ = _build_session()

    with pytest.raises(ValueError):
        session.reload()


def test_restart_returns_to_initial_state_and_renders() -> None:
    session, renders, _ = _build_session()
    session.handle_key("e")

    session.restart(_build_story())

    assert session.state.inventory == frozenset()
    assert session.state.player == Vector2(1, 1)
    assert renders[-1].inventory == frozenset()


def test_session_rejects_state_with_dangling_scene_id() -> None:
    state = GameState.initial(_build_story()).moved_to("attic")

    with pytest.raises(UnknownSceneError):
        GameSession(state)
