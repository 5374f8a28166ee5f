"""Tests for building and running user commands."""

import os
import sys

from mpris_notifier.commands import Command, build_commands
from mpris_notifier.configuration import Configuration


def append_line(path, text):
    return [sys.executable, "-c", f"open({str(path)!r}, 'a').write({text!r} + '\\n')"]


def test_build_skips_empty_commands():
    configuration = Configuration(commands=(("pkill", "-RTMIN+2", "waybar"), (), ("notify-hook",)))
    assert build_commands(configuration) == [Command(["pkill", "-RTMIN+2", "waybar"]), Command(["notify-hook"])]


def test_program_home_is_expanded():
    command = Command(["~/script.sh", "~/not-expanded"])
    assert command.args == [os.path.expanduser("~/script.sh"), "~/not-expanded"]


def test_commands_run_in_order(tmp_path):
    out = tmp_path / "out.txt"
    configuration = Configuration(commands=(tuple(append_line(out, "first")), tuple(append_line(out, "second"))))

    results = [command.run() for command in build_commands(configuration)]

    assert results == [True, True]
    assert out.read_text() == "first\nsecond\n"


def test_missing_program_is_logged_not_raised(tmp_path, capsys):
    assert not Command([str(tmp_path / "does-not-exist")]).run()
    assert "[Command] Warning" in capsys.readouterr().err


def test_failing_program_does_not_stop_the_next(tmp_path):
    out = tmp_path / "out.txt"
    commands = [
        Command([sys.executable, "-c", "import sys; sys.exit(3)"]),
        Command(append_line(out, "after")),
    ]

    assert [command.run() for command in commands] == [False, True]
    assert out.read_text() == "after\n"
