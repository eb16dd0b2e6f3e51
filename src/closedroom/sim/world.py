from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from closedroom.sim.actions import Action

WALL_TILE = "#"
TILESET_THEMES = {"mono", "color"}
DEFAULT_FLOOR_FRAME = 0
DEFAULT_WALL_FRAME = 1
DEFAULT_SYMBOL_FRAMES: dict[str, int] = {
    "T": 3,
    "S": 4,
    "R": 5,
    "D": 6,
    "C": 7,
    "V": 8,
    "W": 9,
}


class UnknownSceneError(LookupError):
    """Raised when a scene or room id does not resolve in the loaded world."""

    def __init__(self, scene_id: str) -> None:
        super().__init__(f"scene not found: {scene_id}")
        self.scene_id = scene_id


def _is_flag_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def normalize_flags(value: Any, *, field_name: str = "flags") -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be an object")
    normalized: dict[str, Any] = {}
    for key, flag_value in value.items():
        if not isinstance(key, str) or not key:
            raise ValueError(f"{field_name} keys must be non-empty strings")
        if not _is_flag_scalar(flag_value):
            raise ValueError(f"{field_name}[{key}] must be a string, number, boolean or null")
        normalized[key] = flag_value
    return normalized


@dataclass(frozen=True, order=True)
class Vector2:
    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "Vector2":
        return Vector2(self.x + dx, self.y + dy)

    def manhattan(self, other: "Vector2") -> int:
        return abs(self.x - other.x) + abs(self.y - other.y)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Vector2":
        return cls(x=int(data["x"]), y=int(data["y"]))


@dataclass(frozen=True)
class DialogueLine:
    speaker: str
    text: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DialogueLine":
        return cls(speaker=str(data.get("speaker", "")), text=str(data.get("text", "")))


@dataclass(frozen=True)
class StoryMeta:
    title: str
    version: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoryMeta":
        return cls(title=str(data.get("title", "")), version=int(data.get("version", 1)))


@dataclass(frozen=True)
class Tileset:
    """Tile metadata for renderers; the engine only reads ``tile_size``."""

    tile_size: int
    theme: str = "color"
    image: str | None = None
    frame_width: int | None = None
    frame_height: int | None = None
    margin: int = 0
    spacing: int = 0
    floor_frame: int | None = None
    wall_frame: int | None = None
    symbol_frames: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.tile_size, bool) or not isinstance(self.tile_size, int) or self.tile_size <= 0:
            raise ValueError("tileset.tile_size must be an integer > 0")
        if self.theme not in TILESET_THEMES:
            raise ValueError(f"tileset.theme must be one of {sorted(TILESET_THEMES)}")

    @property
    def uses_image(self) -> bool:
        return bool(self.image and self.frame_width and self.frame_height)

    def base_frame(self) -> int:
        return DEFAULT_FLOOR_FRAME if self.floor_frame is None else self.floor_frame

    def frame_for_symbol(self, symbol: str) -> int | None:
        if symbol == WALL_TILE:
            return DEFAULT_WALL_FRAME if self.wall_frame is None else self.wall_frame
        if symbol in self.symbol_frames:
            return self.symbol_frames[symbol]
        return DEFAULT_SYMBOL_FRAMES.get(symbol)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tileset":
        def optional_int(key: str) -> int | None:
            raw = data.get(key)
            return None if raw is None else int(raw)

        return cls(
            tile_size=data.get("tileSize", 0),
            theme=str(data.get("theme", "color")),
            image=data.get("image"),
            frame_width=optional_int("frameWidth"),
            frame_height=optional_int("frameHeight"),
            margin=int(data.get("margin", 0)),
            spacing=int(data.get("spacing", 0)),
            floor_frame=optional_int("floorFrame"),
            wall_frame=optional_int("wallFrame"),
            symbol_frames={str(k): int(v) for k, v in dict(data.get("symbolFrames", {})).items()},
        )


@dataclass(frozen=True)
class NoteObject:
    object_id: str
    x: int
    y: int
    text: str
    type_name = "note"

    @property
    def position(self) -> Vector2:
        return Vector2(self.x, self.y)


@dataclass(frozen=True)
class KeyObject:
    object_id: str
    x: int
    y: int
    key_id: str
    type_name = "key"

    @property
    def position(self) -> Vector2:
        return Vector2(self.x, self.y)


@dataclass(frozen=True)
class DoorObject:
    object_id: str
    x: int
    y: int
    to_scene: str
    to: Vector2
    locked: bool = False
    key_id: str | None = None
    type_name = "door"

    @property
    def position(self) -> Vector2:
        return Vector2(self.x, self.y)


@dataclass(frozen=True)
class ExitObject:
    object_id: str
    x: int
    y: int
    text: str | None = None
    type_name = "exit"

    @property
    def position(self) -> Vector2:
        return Vector2(self.x, self.y)


SceneObject = Union[NoteObject, KeyObject, DoorObject, ExitObject]
OBJECT_TYPES = ("note", "key", "door", "exit")


def scene_object_from_dict(data: dict[str, Any]) -> SceneObject:
    object_type = data.get("type")
    object_id = str(data["id"])
    x = int(data["x"])
    y = int(data["y"])
    if object_type == "note":
        return NoteObject(object_id=object_id, x=x, y=y, text=str(data.get("text", "")))
    if object_type == "key":
        return KeyObject(object_id=object_id, x=x, y=y, key_id=str(data["keyId"]))
    if object_type == "door":
        key_id = data.get("keyId")
        return DoorObject(
            object_id=object_id,
            x=x,
            y=y,
            to_scene=str(data["toScene"]),
            to=Vector2.from_dict(data["to"]),
            locked=bool(data.get("locked", False)),
            key_id=str(key_id) if key_id else None,
        )
    if object_type == "exit":
        text = data.get("text")
        return ExitObject(object_id=object_id, x=x, y=y, text=str(text) if text is not None else None)
    raise ValueError(f"unsupported object type: {object_type}")


@dataclass(frozen=True)
class Scene:
    scene_id: str
    width: int
    height: int
    grid: tuple[str, ...]
    player_start: Vector2
    name: str = ""
    objects: tuple[SceneObject, ...] = ()
    dialogue: tuple[DialogueLine, ...] = ()
    actions: tuple["Action", ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.scene_id, str) or not self.scene_id:
            raise ValueError("scene_id must be a non-empty string")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"scene {self.scene_id} requires width > 0 and height > 0")
        if len(self.grid) != self.height:
            raise ValueError(f"scene {self.scene_id} grid must have {self.height} rows")
        for index, row in enumerate(self.grid):
            if len(row) != self.width:
                raise ValueError(f"scene {self.scene_id} grid[{index}] must have width {self.width} characters")

    @property
    def title(self) -> str:
        return self.name or self.scene_id

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def tile_at(self, x: int, y: int) -> str:
        return self.grid[y][x]

    def is_walkable(self, x: int, y: int) -> bool:
        return self.tile_at(x, y) != WALL_TILE

    def clamp(self, position: Vector2) -> Vector2:
        return Vector2(
            x=max(0, min(self.width - 1, position.x)),
            y=max(0, min(self.height - 1, position.y)),
        )

    def with_objects(self, objects: tuple[SceneObject, ...]) -> "Scene":
        return replace(self, objects=tuple(objects))

    def with_dialogue(self, lines: tuple[DialogueLine, ...]) -> "Scene":
        return replace(self, dialogue=self.dialogue + tuple(lines))


@dataclass(frozen=True)
class Npc:
    npc_id: str
    name: str
    role: str = ""

    @property
    def initials(self) -> str:
        letters = [word[0] for word in self.name.split() if word and word[0].isalpha()]
        return "".join(letters[:2]).upper()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Npc":
        return cls(npc_id=str(data["id"]), name=str(data.get("name", data["id"])), role=str(data.get("role") or ""))


@dataclass(frozen=True)
class Room:
    """Gridless scene of the rooms/npcs content shape."""

    room_id: str
    title: str = ""
    description: str = ""
    npc_ids: tuple[str, ...] = ()
    dialogue: tuple[DialogueLine, ...] = ()
    actions: tuple["Action", ...] = ()
    objects: tuple[SceneObject, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.room_id, str) or not self.room_id:
            raise ValueError("room_id must be a non-empty string")

    @property
    def scene_id(self) -> str:
        return self.room_id

    def with_objects(self, objects: tuple[SceneObject, ...]) -> "Room":
        return replace(self, objects=tuple(objects))

    def with_dialogue(self, lines: tuple[DialogueLine, ...]) -> "Room":
        return replace(self, dialogue=self.dialogue + tuple(lines))


AnyScene = Union[Scene, Room]


@dataclass(frozen=True)
class Story:
    meta: StoryMeta
    tileset: Tileset
    scenes: tuple[Scene, ...]

    def __post_init__(self) -> None:
        if not self.scenes:
            raise ValueError("story must contain at least one scene")
        seen: set[str] = set()
        for scene in self.scenes:
            if scene.scene_id in seen:
                raise ValueError(f"duplicate scene id: {scene.scene_id}")
            seen.add(scene.scene_id)

    @property
    def title(self) -> str:
        return self.meta.title

    @property
    def subtitle(self) -> str:
        return ""

    @property
    def start_scene_id(self) -> str:
        return self.scenes[0].scene_id

    @property
    def initial_flags(self) -> dict[str, Any]:
        return {}

    def get_scene(self, scene_id: str) -> Scene:
        for scene in self.scenes:
            if scene.scene_id == scene_id:
                return scene
        raise UnknownSceneError(scene_id)

    def replace_scene(self, scene: Scene) -> "Story":
        self.get_scene(scene.scene_id)
        return replace(
            self,
            scenes=tuple(scene if existing.scene_id == scene.scene_id else existing for existing in self.scenes),
        )

    def npcs_in(self, scene_id: str) -> tuple[Npc, ...]:
        return ()


@dataclass(frozen=True)
class RoomWorld:
    rooms: tuple[Room, ...]
    start_room_id: str
    title: str = ""
    subtitle: str = ""
    npcs: tuple[Npc, ...] = ()
    flags: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.rooms:
            raise ValueError("world must contain at least one room")
        seen: set[str] = set()
        for room in self.rooms:
            if room.room_id in seen:
                raise ValueError(f"duplicate room id: {room.room_id}")
            seen.add(room.room_id)
        if self.start_room_id not in seen:
            raise UnknownSceneError(self.start_room_id)
        object.__setattr__(self, "flags", normalize_flags(self.flags))

    @property
    def start_scene_id(self) -> str:
        return self.start_room_id

    @property
    def initial_flags(self) -> dict[str, Any]:
        return dict(self.flags)

    def get_scene(self, scene_id: str) -> Room:
        for room in self.rooms:
            if room.room_id == scene_id:
                return room
        raise UnknownSceneError(scene_id)

    def replace_scene(self, scene: Room) -> "RoomWorld":
        self.get_scene(scene.room_id)
        return replace(
            self,
            rooms=tuple(scene if existing.room_id == scene.room_id else existing for existing in self.rooms),
        )

    def npcs_in(self, scene_id: str) -> tuple[Npc, ...]:
        wanted = set(self.get_scene(scene_id).npc_ids)
        return tuple(npc for npc in self.npcs if npc.npc_id in wanted)


World = Union[Story, RoomWorld]
