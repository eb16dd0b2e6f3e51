from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from closedroom.sim.world import AnyScene, Npc, Scene, SceneObject, Vector2, World

if TYPE_CHECKING:
    from closedroom.sim.actions import Action

ROOM_PLAYER_POSITION = Vector2(0, 0)


@dataclass(frozen=True)
class GameState:
    """Authoritative session record; every transition returns a new value."""

    world: World
    current_scene_id: str
    player: Vector2
    flags: Mapping[str, Any] = field(default_factory=dict)
    inventory: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "flags", MappingProxyType(dict(self.flags)))
        object.__setattr__(self, "inventory", frozenset(self.inventory))

    @classmethod
    def initial(cls, world: World) -> "GameState":
        scene = world.get_scene(world.start_scene_id)
        player = scene.player_start if isinstance(scene, Scene) else ROOM_PLAYER_POSITION
        return cls(
            world=world,
            current_scene_id=scene.scene_id,
            player=player,
            flags=world.initial_flags,
        )

    @property
    def scene(self) -> AnyScene:
        return self.world.get_scene(self.current_scene_id)

    def with_flag(self, key: str, value: Any) -> "GameState":
        flags = dict(self.flags)
        flags[key] = value
        return replace(self, flags=flags)

    def with_scene(self, scene: AnyScene) -> "GameState":
        return replace(self, world=self.world.replace_scene(scene))

    def moved_to(self, scene_id: str, player: Vector2 | None = None) -> "GameState":
        return replace(self, current_scene_id=scene_id, player=self.player if player is None else player)

    def with_key(self, key_id: str) -> "GameState":
        if key_id in self.inventory:
            return self
        return replace(self, inventory=self.inventory | {key_id})


@dataclass(frozen=True)
class RenderSnapshot:
    """Read-only view handed to renderers after each accepted transition."""

    title: str
    subtitle: str
    scene: AnyScene
    objects: tuple[SceneObject, ...]
    npcs: tuple[Npc, ...]
    flags: Mapping[str, Any]
    player: Vector2
    inventory: frozenset[str]
    actions: tuple["Action", ...]

    @property
    def status_line(self) -> str:
        flags = json.dumps(dict(self.flags), sort_keys=True)
        return f"Room: {self.scene.scene_id} | Flags: {flags}"
