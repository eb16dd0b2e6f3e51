from __future__ import annotations

import logging
from dataclasses import replace

from closedroom.sim.state import GameState
from closedroom.sim.world import Scene, Vector2

logger = logging.getLogger(__name__)

DIRECTION_KEYS: dict[str, tuple[int, int]] = {
    "arrowup": (0, -1),
    "w": (0, -1),
    "arrowdown": (0, 1),
    "s": (0, 1),
    "arrowleft": (-1, 0),
    "a": (-1, 0),
    "arrowright": (1, 0),
    "d": (1, 0),
}
INTERACT_KEYS = {"e", "enter"}


def direction_for_key(key: str) -> tuple[int, int] | None:
    return DIRECTION_KEYS.get(key.strip().lower())


def is_interact_key(key: str) -> bool:
    return key.strip().lower() in INTERACT_KEYS


def movement_target(scene: Scene, player: Vector2, dx: int, dy: int) -> Vector2 | None:
    """Clamped destination of one step, or None when it lands on a wall."""
    target = scene.clamp(player.offset(dx, dy))
    if not scene.is_walkable(target.x, target.y):
        return None
    return target


def try_move(state: GameState, dx: int, dy: int) -> GameState:
    scene = state.scene
    if not isinstance(scene, Scene):
        return state
    target = movement_target(scene, state.player, dx, dy)
    if target is None:
        logger.debug("move (%d,%d) from %s blocked by wall in %s", dx, dy, state.player, scene.scene_id)
        return state
    if target == state.player:
        return state
    return replace(state, player=target)
