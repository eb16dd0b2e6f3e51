from closedroom.cli.play import DEFAULT_SHELL, main
from closedroom.content.io import DEFAULT_STORY_PATH


def test_play_launcher_defaults_to_pygame_shell(monkeypatch) -> None:
    captured = {}

    def fake_run(story_path, **kwargs):
        captured["story_path"] = story_path
        captured.update(kwargs)
        return 0

    monkeypatch.setattr("closedroom.cli.play.run_pygame_viewer", fake_run)

    result = main(["--headless"])

    assert DEFAULT_SHELL == "pygame"
    assert result == 0
    assert captured == {"story_path": DEFAULT_STORY_PATH, "headless": True}


def test_play_launcher_headless_from_environment(monkeypatch) -> None:
    captured = {}

    def fake_run(story_path, **kwargs):
        captured.update(kwargs)
        return 0

    monkeypatch.setenv("CLOSEDROOM_HEADLESS", "1")
    monkeypatch.setattr("closedroom.cli.play.run_pygame_viewer", fake_run)

    assert main([]) == 0
    assert captured["headless"] is True


def test_play_launcher_forwards_to_text_shell(monkeypatch) -> None:
    forwarded = []

    def fake_text_main(argv):
        forwarded.append(list(argv))
        return 0

    monkeypatch.setattr("closedroom.cli.play.run_text_main", fake_text_main)

    result = main(["--shell", "text", "--story", "content/examples/manor_rooms.json", "--log-level", "debug"])

    assert result == 0
    assert forwarded == [["--story", "content/examples/manor_rooms.json", "--log-level", "debug"]]
