"""Tests for terminal capability detection."""

from __future__ import annotations

import termios
from unittest.mock import MagicMock, patch

import pytest

from pagelens.domain.models import TerminalProtocol
from pagelens.terminal.probe import (
    KITTY_QUERY,
    CapabilityProbe,
    raw_mode,
    recommended_terminals_text,
)

SAVED_ATTRS = ["saved-terminal-attributes"]


@pytest.fixture
def mock_termios():
    with patch("pagelens.terminal.probe.termios") as m:
        m.error = termios.error
        m.TCSADRAIN = termios.TCSADRAIN
        m.TCSANOW = termios.TCSANOW
        m.tcgetattr.return_value = SAVED_ATTRS
        yield m


@pytest.fixture
def mock_tty():
    with patch("pagelens.terminal.probe.tty") as m:
        yield m


@pytest.fixture
def mock_select():
    with patch("pagelens.terminal.probe.select") as m:
        m.select.return_value = ([0], [], [])
        yield m


@pytest.fixture
def mock_os():
    with patch("pagelens.terminal.probe.os") as m:
        yield m


def _assert_restored(mock_termios: MagicMock) -> None:
    mock_termios.tcsetattr.assert_called_once_with(0, termios.TCSADRAIN, SAVED_ATTRS)


class TestQueryProbe:
    def test_kitty_response_wins_without_env_lookup(
        self, fake_terminal, mock_termios, mock_tty, mock_select, mock_os
    ) -> None:
        mock_os.read.return_value = b"\x1b_Gi=31;OK\x1b\\"
        environ = MagicMock()
        stdout = fake_terminal(tty=True, fd=1)
        probe = CapabilityProbe(stdin=fake_terminal(tty=True), stdout=stdout, environ=environ)

        capability = probe.detect()

        assert capability.protocol is TerminalProtocol.KITTY
        assert capability.supported
        assert stdout.getvalue() == KITTY_QUERY
        environ.get.assert_not_called()
        mock_tty.setraw.assert_called_once_with(0, termios.TCSANOW)
        _assert_restored(mock_termios)

    def test_response_split_across_reads(
        self, fake_terminal, mock_termios, mock_tty, mock_select, mock_os
    ) -> None:
        mock_os.read.side_effect = [b"\x1b_G", b"i=31;OK\x1b\\"]
        probe = CapabilityProbe(
            stdin=fake_terminal(tty=True), stdout=fake_terminal(tty=True), environ={}
        )
        assert probe.detect().protocol is TerminalProtocol.KITTY
        _assert_restored(mock_termios)

    def test_timeout_falls_back_to_environment(
        self, fake_terminal, mock_termios, mock_tty, mock_select, mock_os
    ) -> None:
        mock_select.select.return_value = ([], [], [])
        probe = CapabilityProbe(
            stdin=fake_terminal(tty=True),
            stdout=fake_terminal(tty=True),
            environ={"TERM_PROGRAM": "iTerm.app"},
            timeout=0.01,
        )

        assert probe.detect().protocol is TerminalProtocol.ITERM2
        mock_os.read.assert_not_called()
        _assert_restored(mock_termios)

    def test_device_attributes_only_means_unsupported(
        self, fake_terminal, mock_termios, mock_tty, mock_select, mock_os
    ) -> None:
        mock_os.read.return_value = b"\x1b[?62;22c"
        probe = CapabilityProbe(
            stdin=fake_terminal(tty=True), stdout=fake_terminal(tty=True), environ={}, timeout=5.0
        )

        capability = probe.detect()

        assert capability.protocol is TerminalProtocol.NONE
        assert mock_os.read.call_count == 1
        _assert_restored(mock_termios)

    def test_read_error_restores_terminal(
        self, fake_terminal, mock_termios, mock_tty, mock_select, mock_os
    ) -> None:
        mock_os.read.side_effect = OSError("input/output error")
        probe = CapabilityProbe(
            stdin=fake_terminal(tty=True),
            stdout=fake_terminal(tty=True),
            environ={"TERM": "xterm-256color"},
        )

        assert probe.detect().protocol is TerminalProtocol.SIXEL
        _assert_restored(mock_termios)

    def test_no_tty_skips_query(self, fake_terminal, mock_termios, mock_tty) -> None:
        stdout = fake_terminal(tty=False)
        probe = CapabilityProbe(
            stdin=fake_terminal(tty=False), stdout=stdout, environ={"TERM_PROGRAM": "iTerm.app"}
        )

        assert probe.detect().protocol is TerminalProtocol.ITERM2
        assert stdout.getvalue() == ""
        mock_termios.tcgetattr.assert_not_called()
        mock_tty.setraw.assert_not_called()


class TestEnvironmentProbe:
    @pytest.fixture
    def detect(self, fake_terminal):
        def _detect(environ: dict[str, str]):
            return CapabilityProbe(
                stdin=fake_terminal(), stdout=fake_terminal(), environ=environ
            ).detect()
        return _detect

    def test_lc_terminal_iterm2(self, detect) -> None:
        assert detect({"LC_TERMINAL": "iTerm2"}).protocol is TerminalProtocol.ITERM2

    def test_iterm2_beats_sixel_heuristic(self, detect) -> None:
        capability = detect({"TERM_PROGRAM": "iTerm.app", "TERM": "xterm-256color"})
        assert capability.protocol is TerminalProtocol.ITERM2

    def test_xterm_term_is_sixel(self, detect) -> None:
        assert detect({"TERM": "xterm-256color"}).protocol is TerminalProtocol.SIXEL

    @pytest.mark.parametrize("term", ["mlterm", "yaft-256color"])
    def test_other_sixel_terms(self, detect, term: str) -> None:
        assert detect({"TERM": term}).protocol is TerminalProtocol.SIXEL

    def test_xterm_version_is_sixel(self, detect) -> None:
        assert detect({"TERM": "dumb", "XTERM_VERSION": "XTerm(388)"}).protocol is TerminalProtocol.SIXEL

    def test_nothing_recognized(self, detect) -> None:
        capability = detect({"TERM": "linux"})
        assert capability.protocol is TerminalProtocol.NONE
        assert not capability.supported
        for name in ("Kitty", "Ghostty", "iTerm2", "WezTerm", "Sixel"):
            assert name in capability.reason


class TestCaching:
    def test_detect_runs_once(self, fake_terminal) -> None:
        environ = {"TERM_PROGRAM": "iTerm.app"}
        probe = CapabilityProbe(stdin=fake_terminal(), stdout=fake_terminal(), environ=environ)
        first = probe.detect()
        environ["TERM_PROGRAM"] = "Apple_Terminal"
        assert probe.detect() is first
        assert probe.capability is first

    def test_reset_probes_again(self, fake_terminal) -> None:
        environ = {"TERM_PROGRAM": "iTerm.app"}
        probe = CapabilityProbe(stdin=fake_terminal(), stdout=fake_terminal(), environ=environ)
        probe.detect()
        environ.clear()
        probe.reset()
        assert probe.capability is None
        assert probe.detect().protocol is TerminalProtocol.NONE


class TestRawMode:
    def test_restores_on_exception(self, mock_termios, mock_tty) -> None:
        with pytest.raises(RuntimeError):
            with raw_mode(0):
                raise RuntimeError("boom")
        _assert_restored(mock_termios)

    def test_enters_raw_mode_without_flushing_input(self, mock_termios, mock_tty) -> None:
        with raw_mode(0):
            mock_tty.setraw.assert_called_once_with(0, termios.TCSANOW)
        _assert_restored(mock_termios)

    def test_recommended_terminals_lists_urls(self) -> None:
        text = recommended_terminals_text()
        assert "https://sw.kovidgoyal.net/kitty/" in text
        assert "Ghostty" in text
