"""Tests for the command-line interface."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from pagelens.cli import _probe, parse_args
from pagelens.config.settings import Settings
from pagelens.domain.models import TerminalCapability, TerminalProtocol


class TestParseArgs:
    def test_screenshot_options(self) -> None:
        args = parse_args(
            ["-c", "custom.yaml", "screenshot", "https://example.com", "--full-page", "-o", "shot.png"]
        )
        assert args.command == "screenshot"
        assert args.config == Path("custom.yaml")
        assert args.url == "https://example.com"
        assert args.full_page is True
        assert args.wait_until is None
        assert args.output == Path("shot.png")

    def test_wait_until_choices(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["screenshot", "https://example.com", "--wait-until", "commit"])

    def test_no_command(self) -> None:
        assert parse_args([]).command is None


class TestProbeCommand:
    def test_supported_protocol(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("pagelens.terminal.probe.CapabilityProbe") as probe_cls:
            probe_cls.return_value.detect.return_value = TerminalCapability(protocol=TerminalProtocol.KITTY)
            assert _probe(Settings()) == 0
        assert "Graphics protocol: kitty" in capsys.readouterr().out

    def test_unsupported_protocol(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("pagelens.terminal.probe.CapabilityProbe") as probe_cls:
            probe_cls.return_value.detect.return_value = TerminalCapability(
                protocol=TerminalProtocol.NONE, reason="No supported graphics protocol detected."
            )
            assert _probe(Settings()) == 1
        out = capsys.readouterr().out
        assert "No supported graphics protocol detected." in out
        assert "Kitty" in out
