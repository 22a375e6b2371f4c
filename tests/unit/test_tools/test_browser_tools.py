"""Tests for the agent-facing BrowserTools."""

from __future__ import annotations

import io
import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from pagelens.browser.logs import LogWriter
from pagelens.browser.session import BrowserSession
from pagelens.config.settings import Settings
from pagelens.domain.models import TerminalCapability, TerminalProtocol
from pagelens.terminal.display import TerminalDisplay
from pagelens.tools import BrowserTools, create_tools


@pytest.fixture
def terminal_out() -> io.StringIO:
    return io.StringIO()


@pytest_asyncio.fixture
async def tools(fake_driver, tmp_path: Path, terminal_out: io.StringIO) -> BrowserTools:
    probe = MagicMock()
    probe.detect.return_value = TerminalCapability(protocol=TerminalProtocol.ITERM2)
    t = BrowserTools(
        session=BrowserSession(fake_driver, state_dir=tmp_path / "state"),
        display=TerminalDisplay(tmp_path / "shots", probe=probe, out=terminal_out),
        logs=LogWriter(tmp_path / "logs"),
        cell_size=(100, 50),
    )
    await t.startup()
    return t


class TestBrowserTools:
    @pytest.mark.asyncio
    async def test_navigate_reports_title(self, tools, fake_driver) -> None:
        text = await tools.navigate("https://example.com")
        assert text == "Navigated to https://example.com\nPage title: Example Domain"
        assert ("goto", "https://example.com", "load") in fake_driver.calls

    @pytest.mark.asyncio
    async def test_screenshot_displays_inline(self, tools, terminal_out, png_bytes) -> None:
        text = await tools.screenshot()
        assert text.startswith(f"Screenshot captured ({len(png_bytes)} bytes)")
        assert "iterm2" in text
        assert "width=100;height=50:" in terminal_out.getvalue()

    @pytest.mark.asyncio
    async def test_console_logs_written_to_file(self, tools, fake_driver) -> None:
        fake_driver.emit("console", type="error", text="boom")
        fake_driver.emit("console", type="log", text="fine")

        text = await tools.console_logs("error")

        path = tools.logs.console_log_path
        assert f"Console logs written to: {path}" in text
        assert "Total logs: 1" in text
        assert path.read_text().rstrip().endswith("[ERROR] boom")

    @pytest.mark.asyncio
    async def test_network_requests_written_to_file(self, tools, fake_driver) -> None:
        fake_driver.emit("request", url="https://example.com/api", method="POST")
        fake_driver.emit("response", url="https://example.com/api", status=500)

        text = await tools.network_requests("api")

        assert "Total requests: 1" in text
        assert tools.logs.network_log_path.read_text().rstrip().endswith(
            "POST [500] https://example.com/api"
        )

    @pytest.mark.asyncio
    async def test_evaluate_pretty_prints(self, tools, fake_driver) -> None:
        fake_driver.evaluate_result = {"answer": 42}
        assert await tools.evaluate("() => ({answer: 42})") == (
            "Result: " + json.dumps({"answer": 42}, indent=2)
        )

    @pytest.mark.asyncio
    async def test_storage_and_url(self, tools) -> None:
        assert await tools.storage_set("k", "v") == "Set localStorage['k'] = 'v'"
        assert await tools.current_url() == "Current URL: about:blank"

    @pytest.mark.asyncio
    async def test_clear_logs(self, tools, fake_driver) -> None:
        fake_driver.emit("console", type="log", text="x")
        assert await tools.clear_logs() == "Logs cleared"
        assert tools.session.get_console_logs() == []

    @pytest.mark.asyncio
    async def test_shutdown_closes_session(self, tools, fake_driver) -> None:
        await tools.shutdown()
        assert fake_driver.closed
        assert tools.session.state_file.exists()


class TestCreateTools:
    def test_renderer_disabled(self, tmp_path: Path) -> None:
        settings = Settings(workspace={"directory": tmp_path}, renderer={"enabled": False})
        tools = create_tools(settings)
        assert tools.session.renderer is None
        assert tools.session.state_file == tmp_path / ".pagelens/browser/session-state.json"
        assert tools.logs.console_log_path == tmp_path / ".pagelens/browser/logs/console.log"

    def test_renderer_enabled(self, tmp_path: Path) -> None:
        settings = Settings(
            workspace={"directory": tmp_path},
            renderer={"enabled": True, "path": "/opt/awrit/awrit", "settle_delay": 0.5},
        )
        tools = create_tools(settings)
        assert tools.session.renderer is not None
        assert tools.session.renderer._path == "/opt/awrit/awrit"
