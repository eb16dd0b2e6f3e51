from __future__ import annotations

import argparse
import sys
from typing import Callable, Sequence

from closedroom.cli.settings import configure_logging
from closedroom.content.io import DEFAULT_STORY_PATH, ContentLoadError
from closedroom.sim.core import Feedback, GameSession
from closedroom.sim.movement import direction_for_key, is_interact_key
from closedroom.sim.state import RenderSnapshot
from closedroom.sim.world import DoorObject, ExitObject, KeyObject, NoteObject, Scene, UnknownSceneError

PLAYER_GLYPH = "@"
OBJECT_GLYPHS: dict[type, str] = {
    NoteObject: "?",
    KeyObject: "k",
    DoorObject: "+",
    ExitObject: ">",
}
HELP_TEXT = "Commands: w/a/s/d move | e interact | <n> action | show | reload | quit"


class AsciiViewer:
    """Read-only projection of a render snapshot for terminal display."""

    def render(self, snapshot: RenderSnapshot) -> str:
        lines: list[str] = []
        if snapshot.title:
            lines.append(snapshot.title)
        if snapshot.subtitle:
            lines.append(snapshot.subtitle)

        scene = snapshot.scene
        if isinstance(scene, Scene):
            lines.append(f"== {scene.title} ==")
            lines.extend(self._grid_lines(snapshot, scene))
        else:
            lines.append(f"== {scene.title or scene.room_id} ==")
            if scene.description:
                lines.append(scene.description)

        if snapshot.npcs:
            lines.append("Characters:")
            for npc in snapshot.npcs:
                role = f" ({npc.role})" if npc.role else ""
                lines.append(f"  [{npc.initials}] {npc.name}{role}")

        if scene.dialogue:
            lines.append("Dialogue:")
            for line in scene.dialogue:
                lines.append(f"  {line.speaker}: {line.text}" if line.speaker else f"  {line.text}")

        for index, action in enumerate(snapshot.actions, start=1):
            lines.append(f"  {index}) {action.label}")

        if snapshot.inventory:
            lines.append("Keys: " + ", ".join(sorted(snapshot.inventory)))
        lines.append(snapshot.status_line)
        return "\n".join(lines)

    def _grid_lines(self, snapshot: RenderSnapshot, scene: Scene) -> list[str]:
        rows = [list(row) for row in scene.grid]
        for scene_object in snapshot.objects:
            if scene.in_bounds(scene_object.x, scene_object.y):
                rows[scene_object.y][scene_object.x] = OBJECT_GLYPHS.get(type(scene_object), "*")
        if scene.in_bounds(snapshot.player.x, snapshot.player.y):
            rows[snapshot.player.y][snapshot.player.x] = PLAYER_GLYPH
        return ["".join(row) for row in rows]


class TextShell:
    """Line-oriented input adapter; the session remains the source of truth."""

    def __init__(self, session: GameSession, write: Callable[[str], None] = print) -> None:
        self.session = session
        self.write = write
        self.view = AsciiViewer()
        session.on_render = self.show
        session.on_feedback = self.notify

    def show(self, snapshot: RenderSnapshot) -> None:
        self.write(self.view.render(snapshot))

    def notify(self, feedback: Feedback) -> None:
        self.write(f"* {feedback.message}")

    def execute(self, raw: str) -> bool:
        """Run one command; returns False when the shell should stop."""
        command = raw.strip()
        if command in {"quit", "exit"}:
            return False
        if command == "reload":
            try:
                self.session.reload()
            except (ContentLoadError, ValueError) as exc:
                self.write(f"error: {exc}")
            return True
        if command == "show":
            self.session.render()
            return True
        if command.isdigit():
            actions = self.session.snapshot().actions
            index = int(command) - 1
            if 0 <= index < len(actions):
                self.session.perform(actions[index])
            else:
                self.write("unknown action")
            return True
        if direction_for_key(command) is not None or is_interact_key(command):
            self.session.handle_key(command)
        elif command:
            self.write("unknown command")
        return True


def run_text_shell(
    session: GameSession,
    *,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    shell = TextShell(session, write=write)
    write(HELP_TEXT)
    session.render()
    while True:
        try:
            raw = read_line("> ")
        except EOFError:
            break
        if not shell.execute(raw):
            break
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="closedroom-text", description="Play a closedroom story in the terminal.")
    parser.add_argument("--story", default=DEFAULT_STORY_PATH, help="Story JSON path or http(s) URL.")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $CLOSEDROOM_LOG_LEVEL or WARNING).")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        session = GameSession.load(args.story)
    except (ContentLoadError, ValueError, UnknownSceneError) as exc:
        print(f"[closedroom.viewer] failed to load story: {exc}", file=sys.stderr)
        return 1
    return run_text_shell(session)


if __name__ == "__main__":
    raise SystemExit(main())
