"""
Tests for the clubsync command line.
"""

import sys

import pytest

from clubsync import cli


class TestCli:

    def test_reset_requires_confirmation(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["clubsync", "reset"])
        monkeypatch.setattr(cli, "_run", lambda args: pytest.fail("reset ran without --yes"))

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 2

    def test_exit_code_from_run(self, monkeypatch):
        seen = {}

        async def fake_run(args):
            seen["command"] = args.command
            seen["code"] = args.code
            return 0

        monkeypatch.setattr(sys, "argv", ["clubsync", "import-clubs", "--code", "abc"])
        monkeypatch.setattr(cli, "_run", fake_run)

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 0
        assert seen == {"command": "import-clubs", "code": "abc"}

    def test_command_required(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["clubsync"])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 2
