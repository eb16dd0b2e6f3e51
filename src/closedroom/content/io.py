from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import requests

from closedroom.content.schema import (
    ROOM_WORLD_SHAPE,
    STORY_SHAPE,
    detect_shape,
    validate_room_world_payload,
    validate_story_payload,
)
from closedroom.sim.actions import parse_actions
from closedroom.sim.world import (
    DialogueLine,
    Npc,
    Room,
    RoomWorld,
    Scene,
    Story,
    StoryMeta,
    Tileset,
    Vector2,
    World,
    scene_object_from_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_STORY_PATH = "content/examples/closed_room.json"
DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0
URL_SCHEMES = ("http://", "https://")


class ContentLoadError(Exception):
    """Content could not be fetched, read or decoded."""


def is_url(source: str) -> bool:
    return source.lower().startswith(URL_SCHEMES)


def _fetch_json(url: str, *, timeout: float) -> Any:
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise ContentLoadError(f"failed to load story: {exc}") from exc
    if not response.ok:
        raise ContentLoadError(f"failed to load story: {response.status_code} {response.reason}")
    try:
        return response.json()
    except ValueError as exc:
        raise ContentLoadError(f"failed to decode story JSON from {url}: {exc}") from exc


def _read_json(path: str | Path) -> Any:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ContentLoadError(f"failed to read story {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ContentLoadError(f"failed to decode story JSON from {path}: {exc}") from exc


def read_content_payload(source: str | Path, *, timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS) -> Any:
    if isinstance(source, str) and is_url(source):
        return _fetch_json(source, timeout=timeout)
    return _read_json(source)


def _dialogue(rows: Any) -> tuple[DialogueLine, ...]:
    return tuple(DialogueLine.from_dict(row) for row in rows or [])


def story_from_payload(payload: dict[str, Any]) -> Story:
    validate_story_payload(payload)
    scenes = []
    for index, row in enumerate(payload["scenes"]):
        scenes.append(
            Scene(
                scene_id=row["id"],
                name=str(row.get("name", "")),
                width=row["width"],
                height=row["height"],
                grid=tuple(row["grid"]),
                player_start=Vector2.from_dict(row["playerStart"]),
                objects=tuple(scene_object_from_dict(obj) for obj in row.get("objects") or []),
                dialogue=_dialogue(row.get("dialogue")),
                actions=parse_actions(row.get("actions"), path=f"scenes.{index}.actions"),
            )
        )
    return Story(
        meta=StoryMeta.from_dict(payload["meta"]),
        tileset=Tileset.from_dict(payload["tileset"]),
        scenes=tuple(scenes),
    )


def room_world_from_payload(payload: dict[str, Any]) -> RoomWorld:
    validate_room_world_payload(payload)
    rooms = []
    for index, row in enumerate(payload["rooms"]):
        rooms.append(
            Room(
                room_id=row["id"],
                title=str(row.get("title", "")),
                description=str(row.get("description", "")),
                npc_ids=tuple(row.get("npcIds") or []),
                dialogue=_dialogue(row.get("dialogue")),
                actions=parse_actions(row.get("actions"), path=f"rooms.{index}.actions"),
            )
        )
    return RoomWorld(
        rooms=tuple(rooms),
        start_room_id=payload["startRoomId"],
        title=str(payload.get("title", "")),
        subtitle=str(payload.get("subtitle", "")),
        npcs=tuple(Npc.from_dict(row) for row in payload.get("npcs") or []),
        flags=dict(payload.get("flags") or {}),
    )


def world_from_payload(payload: Any) -> World:
    shape = detect_shape(payload)
    if shape == STORY_SHAPE:
        return story_from_payload(payload)
    if shape == ROOM_WORLD_SHAPE:
        return room_world_from_payload(payload)
    raise ValueError(f"unsupported content shape: {shape}")


def load_world(source: str | Path = DEFAULT_STORY_PATH, *, timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS) -> World:
    payload = read_content_payload(source, timeout=timeout)
    world = world_from_payload(payload)
    logger.info("loaded %s content from %s", type(world).__name__, source)
    return world


def load_story_json(path: str | Path) -> Story:
    return story_from_payload(_read_json(path))


def load_room_world_json(path: str | Path) -> RoomWorld:
    return room_world_from_payload(_read_json(path))
