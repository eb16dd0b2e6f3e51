import random

from closedroom.sim.movement import direction_for_key, is_interact_key, movement_target, try_move
from closedroom.sim.state import GameState
from closedroom.sim.world import Room, RoomWorld, Scene, Story, StoryMeta, Tileset, Vector2


def _build_story() -> Story:
    scene = Scene(
        scene_id="cell",
        width=4,
        height=3,
        grid=("#..#", "....", "##.."),
        player_start=Vector2(1, 1),
    )
    return Story(meta=StoryMeta(title="Cell"), tileset=Tileset(tile_size=16), scenes=(scene,))


def test_move_onto_floor_updates_player() -> None:
    state = GameState.initial(_build_story())

    moved = try_move(state, 1, 0)

    assert moved.player == Vector2(2, 1)
    assert state.player == Vector2(1, 1)


def test_wall_blocks_move_and_returns_same_state() -> None:
    state = GameState.initial(_build_story())

    assert try_move(state, 0, 1) is state
    assert movement_target(state.scene, state.player, 0, 1) is None


def test_moves_clamp_to_scene_bounds() -> None:
    state = GameState.initial(_build_story())

    at_edge = try_move(state, -1, 0)
    assert at_edge.player == Vector2(0, 1)

    assert try_move(at_edge, -1, 0) is at_edge


def test_room_worlds_ignore_movement() -> None:
    state = GameState.initial(RoomWorld(rooms=(Room(room_id="foyer"),), start_room_id="foyer"))

    assert try_move(state, 1, 0) is state


def test_key_mapping_is_case_insensitive() -> None:
    assert direction_for_key("ArrowUp") == (0, -1)
    assert direction_for_key("W") == (0, -1)
    assert direction_for_key("s") == (0, 1)
    assert direction_for_key("ArrowLeft") == (-1, 0)
    assert direction_for_key("d") == (1, 0)
    assert direction_for_key("q") is None
    assert is_interact_key("E") is True
    assert is_interact_key("Enter") is True
    assert is_interact_key("space") is False


def test_random_walk_stays_in_bounds_and_off_walls() -> None:
    scene = Scene(
        scene_id="maze",
        width=5,
        height=4,
        grid=("#...#", ".#.#.", "..#..", "#...#"),
        player_start=Vector2(1, 0),
    )
    story = Story(meta=StoryMeta(title="Maze"), tileset=Tileset(tile_size=16), scenes=(scene,))
    state = GameState.initial(story)
    rng = random.Random(7)
    steps = [(0, -1), (0, 1), (-1, 0), (1, 0), (1, 1), (-2, 0)]

    for _ in range(2000):
        state = try_move(state, *rng.choice(steps))
        assert scene.in_bounds(state.player.x, state.player.y)
        assert scene.tile_at(state.player.x, state.player.y) != "#"
