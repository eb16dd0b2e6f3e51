from __future__ import annotations

import argparse
import importlib.metadata
import os
import platform
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from closedroom.cli.settings import HEADLESS_ENV_VAR, configure_logging, env_flag_enabled
from closedroom.content.io import DEFAULT_STORY_PATH, ContentLoadError, load_world
from closedroom.sim.core import Feedback, GameSession
from closedroom.sim.movement import direction_for_key
from closedroom.sim.state import RenderSnapshot
from closedroom.sim.world import DoorObject, ExitObject, KeyObject, NoteObject, Scene, Tileset, UnknownSceneError, World

HUD_HEIGHT = 56
MOVE_TWEEN_SECONDS = 0.12
BACKGROUND_COLOR = (15, 16, 20)
PLAYER_COLOR = (240, 240, 240)
PLAYER_OUTLINE = (0, 0, 0)
HUD_TEXT_COLOR = (220, 220, 230)
NO_GRID_MESSAGE = "story has no tile grid; use the text shell for room worlds."

TILE_COLORS: dict[str, tuple[int, int, int]] = {
    "#": (42, 45, 57),
    ".": (21, 23, 36),
    "o": (64, 68, 87),
    "D": (122, 74, 42),
    "E": (44, 110, 73),
}
FRAME_COLORS: dict[int, tuple[int, int, int]] = {
    0: (21, 23, 36),
    1: (42, 45, 57),
    2: (90, 62, 43),
    3: (107, 77, 46),
    4: (202, 166, 106),
    5: (145, 61, 61),
    6: (122, 74, 42),
    7: (45, 93, 93),
    8: (47, 51, 66),
    9: (139, 211, 255),
}
OBJECT_COLORS: dict[type, tuple[int, int, int]] = {
    DoorObject: (193, 134, 74),
    KeyObject: (240, 228, 90),
    NoteObject: (90, 176, 255),
    ExitObject: (85, 204, 136),
}
PYGAME_KEY_NAMES: dict[str, str] = {
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
    "return": "Enter",
    "enter": "Enter",
}

pygame: Any | None = None


@dataclass
class MoveTween:
    """Presentational slide between two tiles; the session has already moved."""

    start: tuple[int, int]
    end: tuple[int, int]
    elapsed: float = 0.0
    duration: float = MOVE_TWEEN_SECONDS

    @property
    def done(self) -> bool:
        return self.elapsed >= self.duration

    def advance(self, dt: float) -> None:
        self.elapsed = min(self.duration, self.elapsed + dt)

    def position(self) -> tuple[float, float]:
        alpha = 1.0 if self.duration <= 0 else self.elapsed / self.duration
        return (
            self.start[0] + (self.end[0] - self.start[0]) * alpha,
            self.start[1] + (self.end[1] - self.start[1]) * alpha,
        )


def session_key_for(pygame_key_name: str) -> str:
    return PYGAME_KEY_NAMES.get(pygame_key_name.lower(), pygame_key_name)


def tile_color(symbol: str, tileset: Tileset) -> tuple[int, int, int]:
    frame = tileset.frame_for_symbol(symbol)
    if frame is not None and frame in FRAME_COLORS:
        return FRAME_COLORS[frame]
    return TILE_COLORS.get(symbol, TILE_COLORS["."])


def window_size(scene: Scene, tileset: Tileset) -> tuple[int, int]:
    return (scene.width * tileset.tile_size, scene.height * tileset.tile_size + HUD_HEIGHT)


def grid_tileset(world: World) -> Tileset | None:
    return getattr(world, "tileset", None)


def reload_grid_story(session: GameSession) -> Tileset:
    """Reload the session source; a world without a tile grid leaves the session untouched."""
    if session.source is None:
        raise ValueError("session has no content source to reload")
    world = load_world(session.source)
    tileset = grid_tileset(world)
    if tileset is None:
        raise ValueError(NO_GRID_MESSAGE)
    session.restart(world)
    return tileset


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="closedroom-viewer",
        description="Run the closedroom pygame viewer.",
    )
    parser.add_argument("--story", default=DEFAULT_STORY_PATH, help="Story JSON path or http(s) URL.")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Force SDL dummy video driver for CI/testing and exit without opening a real window.",
    )
    parser.add_argument(
        "--no-tween",
        action="store_true",
        help="Move the player sprite instantly instead of sliding between tiles.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: $CLOSEDROOM_LOG_LEVEL or WARNING).")
    return parser


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[closedroom.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )
    for name in ("SDL_VIDEODRIVER", "SDL_AUDIODRIVER"):
        value = os.environ.get(name, "<unset>")
        print(f"[closedroom.viewer] env {name}={value}")


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def _load_tileset_frames(tileset: Tileset) -> list[Any] | None:
    if not tileset.uses_image or not Path(str(tileset.image)).exists():
        return None
    try:
        sheet = pygame.image.load(str(tileset.image))
    except pygame.error as exc:
        print(f"[closedroom.viewer] tileset image failed to load: {exc}; using generated tiles", file=sys.stderr)
        return None
    frames: list[Any] = []
    step_x = tileset.frame_width + tileset.spacing
    step_y = tileset.frame_height + tileset.spacing
    for top in range(tileset.margin, sheet.get_height() - tileset.frame_height + 1, step_y):
        for left in range(tileset.margin, sheet.get_width() - tileset.frame_width + 1, step_x):
            frame = sheet.subsurface((left, top, tileset.frame_width, tileset.frame_height))
            frames.append(pygame.transform.scale(frame, (tileset.tile_size, tileset.tile_size)))
    return frames


def _draw_tile(screen: Any, frames: list[Any] | None, frame: int, color: tuple[int, int, int], rect: Any) -> None:
    if frames is not None and 0 <= frame < len(frames):
        screen.blit(frames[frame], rect)
    else:
        pygame.draw.rect(screen, color, rect)


def _draw_scene(screen: Any, snapshot: RenderSnapshot, tileset: Tileset, frames: list[Any] | None) -> None:
    scene = snapshot.scene
    if not isinstance(scene, Scene):
        return
    size = tileset.tile_size
    for y in range(scene.height):
        for x in range(scene.width):
            rect = pygame.Rect(x * size, y * size, size, size)
            symbol = scene.tile_at(x, y)
            _draw_tile(screen, frames, tileset.base_frame(), TILE_COLORS["."], rect)
            overlay = tileset.frame_for_symbol(symbol)
            if overlay is not None:
                _draw_tile(screen, frames, overlay, tile_color(symbol, tileset), rect)
    for scene_object in snapshot.objects:
        outline = pygame.Rect(scene_object.x * size + 1, scene_object.y * size + 1, size - 2, size - 2)
        pygame.draw.rect(screen, (0, 0, 0), outline)
        body = pygame.Rect(scene_object.x * size + 3, scene_object.y * size + 3, size - 6, size - 6)
        pygame.draw.rect(screen, OBJECT_COLORS.get(type(scene_object), (200, 200, 200)), body)


def _draw_player(screen: Any, position: tuple[float, float], size: int) -> None:
    px = int(position[0] * size)
    py = int(position[1] * size)
    pygame.draw.rect(screen, PLAYER_OUTLINE, pygame.Rect(px + 3, py + 3, size - 6, size - 6))
    pygame.draw.rect(screen, PLAYER_COLOR, pygame.Rect(px + 4, py + 4, size - 8, size - 8))


def _draw_hud(screen: Any, font: Any, snapshot: RenderSnapshot, status_message: str | None, top: int) -> None:
    keys = ", ".join(sorted(snapshot.inventory)) or "-"
    lines = [f"{snapshot.title} | {snapshot.scene.scene_id} | keys: {keys}"]
    if status_message:
        lines.append(status_message)
    for index, text in enumerate(lines):
        screen.blit(font.render(text, True, HUD_TEXT_COLOR), (8, top + 6 + index * 22))


def run_pygame_viewer(
    story_path: str = DEFAULT_STORY_PATH,
    *,
    headless: bool = False,
    tween: bool = True,
) -> int:
    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[closedroom.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()
    pygame_module = _ensure_pygame_imported()

    try:
        pygame_module.init()
    except Exception as exc:
        print(
            "[closedroom.viewer] failed during pygame.init(): "
            f"{exc}. Hint: set SDL_VIDEODRIVER=dummy for headless mode.",
            file=sys.stderr,
        )
        return 1

    status_message: str | None = None

    def on_feedback(feedback: Feedback) -> None:
        nonlocal status_message
        status_message = feedback.message

    try:
        session = GameSession.load(story_path, on_feedback=on_feedback)
    except (ContentLoadError, ValueError, UnknownSceneError) as exc:
        print(f"[closedroom.viewer] failed to load story: {exc}", file=sys.stderr)
        pygame_module.quit()
        return 1

    world = session.state.world
    tileset = grid_tileset(world)
    snapshot = session.snapshot()
    if tileset is None or not isinstance(snapshot.scene, Scene):
        print(f"[closedroom.viewer] {NO_GRID_MESSAGE}", file=sys.stderr)
        pygame_module.quit()
        return 1

    try:
        pygame_module.display.set_caption(world.title or "closedroom")
        screen = pygame_module.display.set_mode(window_size(snapshot.scene, tileset))
    except Exception as exc:
        print(
            "[closedroom.viewer] failed during pygame.display.set_mode(...): "
            f"{exc}. Hint: use --headless or {HEADLESS_ENV_VAR}=1 without a display.",
            file=sys.stderr,
        )
        pygame_module.quit()
        return 1

    print(f"[closedroom.viewer] display initialized: {pygame_module.display.get_driver()}")
    frames = _load_tileset_frames(tileset)
    font = pygame_module.font.SysFont("consolas", 18)
    active_tween: MoveTween | None = None

    def draw() -> None:
        current = session.snapshot()
        scene = current.scene
        if screen.get_size() != window_size(scene, tileset):
            pygame_module.display.set_mode(window_size(scene, tileset))
        screen.fill(BACKGROUND_COLOR)
        _draw_scene(screen, current, tileset, frames)
        position = active_tween.position() if active_tween is not None else (current.player.x, current.player.y)
        _draw_player(screen, position, tileset.tile_size)
        _draw_hud(screen, font, current, status_message, scene.height * tileset.tile_size)
        pygame_module.display.flip()

    if headless:
        draw()
        pygame_module.quit()
        return 0

    clock = pygame_module.time.Clock()
    running = True
    while running:
        dt = clock.tick(60) / 1000.0
        if active_tween is not None:
            active_tween.advance(dt)
            if active_tween.done:
                active_tween = None

        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_ESCAPE:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_F9:
                try:
                    tileset = reload_grid_story(session)
                except (ContentLoadError, ValueError, UnknownSceneError) as exc:
                    status_message = f"reload failed: {exc}"
                    print(f"[closedroom.viewer] reload failed: {exc}", file=sys.stderr)
                else:
                    frames = _load_tileset_frames(tileset)
                    active_tween = None
                    status_message = "reloaded"
                    pygame_module.display.set_caption(session.state.world.title or "closedroom")
            elif event.type == pygame_module.KEYDOWN:
                key = session_key_for(pygame_module.key.name(event.key))
                is_move = direction_for_key(key) is not None
                if is_move and active_tween is not None:
                    continue
                before = session.state
                status_message = None
                session.handle_key(key)
                after = session.state
                if tween and is_move and after.player != before.player:
                    active_tween = MoveTween(start=(before.player.x, before.player.y), end=(after.player.x, after.player.y))

        draw()

    pygame_module.quit()
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level)
    headless = args.headless or env_flag_enabled(HEADLESS_ENV_VAR)
    raise SystemExit(run_pygame_viewer(args.story, headless=headless, tween=not args.no_tween))


if __name__ == "__main__":
    main()
