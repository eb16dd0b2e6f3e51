from __future__ import annotations

import logging
from dataclasses import dataclass

from closedroom.sim.state import GameState
from closedroom.sim.world import AnyScene, DoorObject, ExitObject, KeyObject, NoteObject, SceneObject, Vector2

logger = logging.getLogger(__name__)

OUTCOME_NOTHING = "nothing"
OUTCOME_NOTE = "note"
OUTCOME_KEY_COLLECTED = "key_collected"
OUTCOME_DOOR_LOCKED = "door_locked"
OUTCOME_DOOR_OPENED = "door_opened"
OUTCOME_EXIT = "exit"

DOOR_LOCKED_MESSAGE = "The door is locked."
DEFAULT_EXIT_TEXT = "Exit"


@dataclass(frozen=True)
class InteractionResult:
    state: GameState
    outcome: str
    message: str | None = None
    target: SceneObject | None = None

    @property
    def changed_state(self) -> bool:
        return self.outcome in {OUTCOME_KEY_COLLECTED, OUTCOME_DOOR_OPENED}


def find_adjacent_object(scene: AnyScene, player: Vector2) -> SceneObject | None:
    """First object in scene order at Manhattan distance exactly 1."""
    for scene_object in scene.objects:
        if scene_object.position.manhattan(player) == 1:
            return scene_object
    return None


def interact(state: GameState) -> InteractionResult:
    scene = state.scene
    target = find_adjacent_object(scene, state.player)
    if target is None:
        return InteractionResult(state=state, outcome=OUTCOME_NOTHING)

    if isinstance(target, NoteObject):
        return InteractionResult(state=state, outcome=OUTCOME_NOTE, message=target.text, target=target)

    if isinstance(target, KeyObject):
        remaining = tuple(obj for obj in scene.objects if obj.object_id != target.object_id)
        next_state = state.with_key(target.key_id).with_scene(scene.with_objects(remaining))
        logger.info("collected key %s from %s", target.key_id, scene.scene_id)
        return InteractionResult(state=next_state, outcome=OUTCOME_KEY_COLLECTED, target=target)

    if isinstance(target, DoorObject):
        has_key = not target.key_id or target.key_id in state.inventory
        if target.locked and not has_key:
            return InteractionResult(
                state=state,
                outcome=OUTCOME_DOOR_LOCKED,
                message=DOOR_LOCKED_MESSAGE,
                target=target,
            )
        # Destination coordinates are trusted as authored; no bounds or wall check.
        logger.info("door %s: %s -> %s at %s", target.object_id, scene.scene_id, target.to_scene, target.to)
        return InteractionResult(
            state=state.moved_to(target.to_scene, target.to),
            outcome=OUTCOME_DOOR_OPENED,
            target=target,
        )

    if isinstance(target, ExitObject):
        return InteractionResult(
            state=state,
            outcome=OUTCOME_EXIT,
            message=target.text if target.text is not None else DEFAULT_EXIT_TEXT,
            target=target,
        )

    return InteractionResult(state=state, outcome=OUTCOME_NOTHING)
