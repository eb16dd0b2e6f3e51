from __future__ import annotations

from typing import Any

from closedroom.sim.world import OBJECT_TYPES, TILESET_THEMES, WALL_TILE, normalize_flags

STORY_SHAPE = "story"
ROOM_WORLD_SHAPE = "rooms"


class ContentValidationError(ValueError):
    """Content payload does not match the expected shape."""


def _require_int(value: Any, *, field_name: str, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ContentValidationError(f"{field_name} must be an integer")
    if minimum is not None and value < minimum:
        raise ContentValidationError(f"{field_name} must be >= {minimum}")
    return value


def _require_str(value: Any, *, field_name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ContentValidationError(f"{field_name} must be a non-empty string")
    return value


def _require_list(payload: dict[str, Any], key: str, *, field_name: str, default_empty: bool = False) -> list[Any]:
    value = payload.get(key)
    if value is None and default_empty:
        return []
    if not isinstance(value, list):
        raise ContentValidationError(f"{field_name}.{key} must be a list")
    return value


def _validate_vector(value: Any, *, field_name: str) -> tuple[int, int]:
    if not isinstance(value, dict):
        raise ContentValidationError(f"{field_name} must be an object")
    return (
        _require_int(value.get("x"), field_name=f"{field_name}.x"),
        _require_int(value.get("y"), field_name=f"{field_name}.y"),
    )


def detect_shape(payload: Any) -> str:
    if isinstance(payload, dict):
        if "scenes" in payload:
            return STORY_SHAPE
        if "rooms" in payload:
            return ROOM_WORLD_SHAPE
    raise ContentValidationError("content payload must be an object with either scenes or rooms")


def _validate_tileset(tileset: Any) -> None:
    if not isinstance(tileset, dict):
        raise ContentValidationError("story.tileset must be an object")
    _require_int(tileset.get("tileSize"), field_name="story.tileset.tileSize", minimum=1)
    theme = tileset.get("theme", "color")
    if theme not in TILESET_THEMES:
        raise ContentValidationError(f"story.tileset.theme must be one of {sorted(TILESET_THEMES)}")
    for key in ("frameWidth", "frameHeight", "margin", "spacing", "floorFrame", "wallFrame"):
        if tileset.get(key) is not None:
            _require_int(tileset[key], field_name=f"story.tileset.{key}", minimum=0)
    symbol_frames = tileset.get("symbolFrames", {})
    if not isinstance(symbol_frames, dict):
        raise ContentValidationError("story.tileset.symbolFrames must be an object when present")
    for symbol, frame in symbol_frames.items():
        if not isinstance(symbol, str) or len(symbol) != 1:
            raise ContentValidationError("story.tileset.symbolFrames keys must be single characters")
        _require_int(frame, field_name=f"story.tileset.symbolFrames[{symbol}]", minimum=0)


def _validate_object(row: Any, *, field_name: str, width: int, height: int) -> str:
    if not isinstance(row, dict):
        raise ContentValidationError(f"{field_name} must be an object")
    object_id = _require_str(row.get("id"), field_name=f"{field_name}.id")
    object_type = row.get("type")
    if object_type not in OBJECT_TYPES:
        raise ContentValidationError(f"{field_name}.type must be one of {list(OBJECT_TYPES)}")
    x, y = _validate_vector(row, field_name=field_name)
    if not (0 <= x < width and 0 <= y < height):
        raise ContentValidationError(f"{field_name} position ({x},{y}) is outside the scene")

    if object_type == "note" and not isinstance(row.get("text"), str):
        raise ContentValidationError(f"{field_name}.text must be a string")
    if object_type == "key":
        _require_str(row.get("keyId"), field_name=f"{field_name}.keyId")
    if object_type == "door":
        if not isinstance(row.get("locked", False), bool):
            raise ContentValidationError(f"{field_name}.locked must be a boolean")
        if row.get("keyId") is not None:
            _require_str(row["keyId"], field_name=f"{field_name}.keyId")
        _require_str(row.get("toScene"), field_name=f"{field_name}.toScene")
        # Destination coordinates are checked for shape only; reaching a wall or
        # out-of-bounds tile through a door is an authoring concern.
        _validate_vector(row.get("to"), field_name=f"{field_name}.to")
    if object_type == "exit" and row.get("text") is not None and not isinstance(row["text"], str):
        raise ContentValidationError(f"{field_name}.text must be a string when present")
    return object_id


def _validate_scene(scene: Any, *, field_name: str, object_ids: set[str]) -> str:
    if not isinstance(scene, dict):
        raise ContentValidationError(f"{field_name} must be an object")
    scene_id = _require_str(scene.get("id"), field_name=f"{field_name}.id")
    width = _require_int(scene.get("width"), field_name=f"{field_name}.width", minimum=1)
    height = _require_int(scene.get("height"), field_name=f"{field_name}.height", minimum=1)

    grid = _require_list(scene, "grid", field_name=field_name)
    if len(grid) != height:
        raise ContentValidationError(f"{field_name}.grid must have {height} rows")
    for index, row in enumerate(grid):
        if not isinstance(row, str) or len(row) != width:
            raise ContentValidationError(f"{field_name}.grid[{index}] must have width {width} characters")

    start_x, start_y = _validate_vector(scene.get("playerStart"), field_name=f"{field_name}.playerStart")
    if not (0 <= start_x < width and 0 <= start_y < height):
        raise ContentValidationError(f"{field_name}.playerStart is outside the scene")
    if grid[start_y][start_x] == WALL_TILE:
        raise ContentValidationError(f"{field_name}.playerStart must be on a walkable tile")

    for index, row in enumerate(_require_list(scene, "objects", field_name=field_name, default_empty=True)):
        object_id = _validate_object(row, field_name=f"{field_name}.objects[{index}]", width=width, height=height)
        if object_id in object_ids:
            raise ContentValidationError(f"duplicate object id: {object_id}")
        object_ids.add(object_id)

    _validate_actions(scene.get("actions"), field_name=f"{field_name}.actions")
    _validate_dialogue(scene.get("dialogue"), field_name=f"{field_name}.dialogue")
    return scene_id


def _validate_dialogue(lines: Any, *, field_name: str) -> None:
    if lines is None:
        return
    if not isinstance(lines, list):
        raise ContentValidationError(f"{field_name} must be a list when present")
    for index, line in enumerate(lines):
        if not isinstance(line, dict) or not isinstance(line.get("text"), str):
            raise ContentValidationError(f"{field_name}[{index}] must be an object with text")


def _validate_actions(actions: Any, *, field_name: str) -> None:
    if actions is None:
        return
    if not isinstance(actions, list):
        raise ContentValidationError(f"{field_name} must be a list when present")
    for index, action in enumerate(actions):
        if not isinstance(action, dict):
            raise ContentValidationError(f"{field_name}[{index}] must be an object")
        _validate_actions(action.get("then"), field_name=f"{field_name}[{index}].then")


def validate_story_payload(payload: dict[str, Any]) -> None:
    if not isinstance(payload, dict):
        raise ContentValidationError("story payload must be an object")

    meta = payload.get("meta")
    if not isinstance(meta, dict):
        raise ContentValidationError("story.meta must be an object")
    if not isinstance(meta.get("title"), str):
        raise ContentValidationError("story.meta.title must be a string")

    _validate_tileset(payload.get("tileset"))

    scenes = _require_list(payload, "scenes", field_name="story")
    if not scenes:
        raise ContentValidationError("story.scenes must not be empty")
    scene_ids: set[str] = set()
    object_ids: set[str] = set()
    for index, scene in enumerate(scenes):
        scene_id = _validate_scene(scene, field_name=f"story.scenes[{index}]", object_ids=object_ids)
        if scene_id in scene_ids:
            raise ContentValidationError(f"duplicate scene id: {scene_id}")
        scene_ids.add(scene_id)


def validate_room_world_payload(payload: dict[str, Any]) -> None:
    if not isinstance(payload, dict):
        raise ContentValidationError("world payload must be an object")

    rooms = _require_list(payload, "rooms", field_name="world")
    if not rooms:
        raise ContentValidationError("world.rooms must not be empty")
    room_ids: set[str] = set()
    for index, room in enumerate(rooms):
        field_name = f"world.rooms[{index}]"
        if not isinstance(room, dict):
            raise ContentValidationError(f"{field_name} must be an object")
        room_id = _require_str(room.get("id"), field_name=f"{field_name}.id")
        if room_id in room_ids:
            raise ContentValidationError(f"duplicate room id: {room_id}")
        room_ids.add(room_id)
        npc_ids = room.get("npcIds", [])
        if not isinstance(npc_ids, list) or not all(isinstance(npc_id, str) for npc_id in npc_ids):
            raise ContentValidationError(f"{field_name}.npcIds must be a list of strings when present")
        _validate_dialogue(room.get("dialogue"), field_name=f"{field_name}.dialogue")
        _validate_actions(room.get("actions"), field_name=f"{field_name}.actions")

    start_room_id = _require_str(payload.get("startRoomId"), field_name="world.startRoomId")
    if start_room_id not in room_ids:
        raise ContentValidationError(f"world.startRoomId references unknown room: {start_room_id}")

    for index, npc in enumerate(_require_list(payload, "npcs", field_name="world", default_empty=True)):
        if not isinstance(npc, dict):
            raise ContentValidationError(f"world.npcs[{index}] must be an object")
        _require_str(npc.get("id"), field_name=f"world.npcs[{index}].id")

    try:
        normalize_flags(payload.get("flags"), field_name="world.flags")
    except ValueError as exc:
        raise ContentValidationError(str(exc)) from exc
