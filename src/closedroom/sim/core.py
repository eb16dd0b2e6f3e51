from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable

from closedroom.content.io import DEFAULT_FETCH_TIMEOUT_SECONDS, load_world
from closedroom.sim.actions import Action, apply_action, available_actions
from closedroom.sim.interactions import InteractionResult, interact
from closedroom.sim.movement import direction_for_key, is_interact_key, movement_target, try_move
from closedroom.sim.state import GameState, RenderSnapshot
from closedroom.sim.world import Scene, World

logger = logging.getLogger(__name__)

FEEDBACK_BLOCKED = "blocked"
WALL_BUMP_MESSAGE = "Something blocks the way."

RenderCallback = Callable[[RenderSnapshot], None]


@dataclass(frozen=True)
class Feedback:
    """Player-facing notice that is not a state transition (note text, locked door, wall bump)."""

    kind: str
    message: str


FeedbackCallback = Callable[[Feedback], None]


def build_snapshot(state: GameState) -> RenderSnapshot:
    scene = state.scene
    return RenderSnapshot(
        title=state.world.title,
        subtitle=state.world.subtitle,
        scene=scene,
        objects=tuple(scene.objects),
        npcs=state.world.npcs_in(scene.scene_id),
        flags=MappingProxyType(dict(state.flags)),
        player=state.player,
        inventory=state.inventory,
        actions=available_actions(scene, state.flags),
    )


class GameSession:
    """Processes one input at a time and owns the only mutable reference to ``GameState``."""

    def __init__(
        self,
        state: GameState,
        *,
        on_render: RenderCallback | None = None,
        on_feedback: FeedbackCallback | None = None,
        source: str | Path | None = None,
    ) -> None:
        # Raises UnknownSceneError for a dangling scene id.
        state.scene
        self._state = state
        self.on_render = on_render
        self.on_feedback = on_feedback
        self.source = source

    @classmethod
    def from_world(
        cls,
        world: World,
        *,
        on_render: RenderCallback | None = None,
        on_feedback: FeedbackCallback | None = None,
        source: str | Path | None = None,
    ) -> "GameSession":
        return cls(GameState.initial(world), on_render=on_render, on_feedback=on_feedback, source=source)

    @classmethod
    def load(
        cls,
        source: str | Path,
        *,
        on_render: RenderCallback | None = None,
        on_feedback: FeedbackCallback | None = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ) -> "GameSession":
        world = load_world(source, timeout=timeout)
        return cls.from_world(world, on_render=on_render, on_feedback=on_feedback, source=source)

    @property
    def state(self) -> GameState:
        return self._state

    def snapshot(self) -> RenderSnapshot:
        return build_snapshot(self._state)

    def render(self) -> None:
        if self.on_render is not None:
            self.on_render(self.snapshot())

    def reload(self, *, timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS) -> None:
        if self.source is None:
            raise ValueError("session has no content source to reload")
        self.restart(load_world(self.source, timeout=timeout))

    def restart(self, world: World) -> None:
        """Discard the current state and start over in ``world``."""
        self._commit(GameState.initial(world))

    def move(self, dx: int, dy: int) -> bool:
        scene = self._state.scene
        if isinstance(scene, Scene) and movement_target(scene, self._state.player, dx, dy) is None:
            self._notify(Feedback(kind=FEEDBACK_BLOCKED, message=WALL_BUMP_MESSAGE))
            return False
        next_state = try_move(self._state, dx, dy)
        if next_state is self._state:
            return False
        self._commit(next_state)
        return True

    def interact(self) -> InteractionResult:
        result = interact(self._state)
        if result.message is not None:
            self._notify(Feedback(kind=result.outcome, message=result.message))
        if result.changed_state:
            self._commit(result.state)
        return result

    def perform(self, action: Action) -> GameState:
        self._commit(apply_action(action, self._state))
        return self._state

    def handle_key(self, key: str) -> bool:
        direction = direction_for_key(key)
        if direction is not None:
            return self.move(*direction)
        if is_interact_key(key):
            return self.interact().changed_state
        return False

    def _commit(self, state: GameState) -> None:
        # Resolving the scene first keeps a dangling scene id out of the session.
        snapshot = build_snapshot(state)
        self._state = state
        if self.on_render is not None:
            self.on_render(snapshot)

    def _notify(self, feedback: Feedback) -> None:
        logger.debug("feedback %s: %s", feedback.kind, feedback.message)
        if self.on_feedback is not None:
            self.on_feedback(feedback)
