from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Union

from closedroom.sim.conditions import Condition, evaluate, parse_condition
from closedroom.sim.state import GameState
from closedroom.sim.world import AnyScene, DialogueLine

logger = logging.getLogger(__name__)

AUTO_LABEL_PREFIX = "auto:"


@dataclass(frozen=True)
class SetFlag:
    key: str
    value: Any


@dataclass(frozen=True)
class MoveTo:
    scene_id: str


@dataclass(frozen=True)
class AppendDialogue:
    lines: tuple[DialogueLine, ...]


Effect = Union[SetFlag, MoveTo, AppendDialogue]


@dataclass(frozen=True)
class Action:
    """One node of an action tree.

    ``effects`` always run, in the order setFlag, moveTo, appendDialogue.
    ``guard`` only gates ``then``: a failing guard skips the children but not
    the effects already applied on the same node.
    """

    effects: tuple[Effect, ...] = ()
    guard: Condition | None = None
    then: tuple["Action", ...] = ()
    label: str | None = None


def _parse_dialogue_lines(payload: Any) -> tuple[DialogueLine, ...]:
    if not isinstance(payload, list):
        return ()
    lines: list[DialogueLine] = []
    for row in payload:
        if isinstance(row, dict):
            lines.append(DialogueLine.from_dict(row))
        elif isinstance(row, str):
            lines.append(DialogueLine(speaker="", text=row))
    return tuple(lines)


def _parse_effects(payload: dict[str, Any]) -> tuple[Effect, ...]:
    effects: list[Effect] = []
    set_flag = payload.get("setFlag")
    if isinstance(set_flag, dict) and isinstance(set_flag.get("key"), str):
        effects.append(SetFlag(key=set_flag["key"], value=set_flag.get("value")))
    move_to = payload.get("moveTo")
    if isinstance(move_to, str) and move_to:
        effects.append(MoveTo(scene_id=move_to))
    if "appendDialogue" in payload:
        effects.append(AppendDialogue(lines=_parse_dialogue_lines(payload["appendDialogue"])))
    return tuple(effects)


def parse_action(payload: Any, *, label_path: str | None = None) -> Action:
    if not isinstance(payload, dict):
        return Action(label=f"{AUTO_LABEL_PREFIX}{label_path}" if label_path is not None else None)

    label = payload.get("label")
    if not isinstance(label, str):
        label = f"{AUTO_LABEL_PREFIX}{label_path}" if label_path is not None else None

    return Action(
        effects=_parse_effects(payload),
        guard=parse_condition(payload.get("if")),
        then=parse_actions(
            payload.get("then"),
            path=f"{label_path}.then" if label_path is not None else None,
        ),
        label=label,
    )


def parse_actions(payload: Any, *, path: str | None = None) -> tuple[Action, ...]:
    if not isinstance(payload, list):
        return ()
    return tuple(
        parse_action(row, label_path=f"{path}.{index}" if path is not None else None)
        for index, row in enumerate(payload)
    )


def apply_effect(effect: Effect, state: GameState) -> GameState:
    if isinstance(effect, SetFlag):
        return state.with_flag(effect.key, effect.value)
    if isinstance(effect, MoveTo):
        logger.info("moveTo %s -> %s", state.current_scene_id, effect.scene_id)
        return state.moved_to(effect.scene_id)
    if isinstance(effect, AppendDialogue):
        scene = state.scene
        return state.with_scene(scene.with_dialogue(effect.lines))
    return state


def apply_action(action: Action, state: GameState) -> GameState:
    for effect in action.effects:
        state = apply_effect(effect, state)
    if not evaluate(action.guard, state.flags):
        logger.debug("guard failed for action %s; skipping %d sub-actions", action.label, len(action.then))
        return state
    for child in action.then:
        state = apply_action(child, state)
    return state


def available_actions(scene: AnyScene, flags: Mapping[str, Any]) -> tuple[Action, ...]:
    return tuple(action for action in scene.actions if evaluate(action.guard, flags))
