"""FastAPI HTTP server exposing the browser tools.

Lets an agent or script drive the browser session over HTTP. Each route
maps onto one BrowserTools operation and returns its report as
``{"result": ...}``. The lifespan starts the session and closes it
(saving storage state) on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from pagelens.browser.base import BrowserOperationError, SessionNotInitializedError
from pagelens.domain.models import ConsoleSeverity, WaitCondition
from pagelens.tools import BrowserTools

logger = logging.getLogger(__name__)


class NavigateRequest(BaseModel):
    url: str = Field(description="The URL to navigate to")
    wait_until: WaitCondition | None = Field(default=None, description="load or networkidle")


class SelectorRequest(BaseModel):
    selector: str = Field(description="CSS selector for the element")


class TypeRequest(BaseModel):
    selector: str = Field(description="CSS selector for the input element")
    text: str = Field(description="Text to type into the input")


class ScreenshotRequest(BaseModel):
    full_page: bool = Field(default=False)


class EvaluateRequest(BaseModel):
    script: str = Field(description="JavaScript to run in the page")


class StorageSetRequest(BaseModel):
    key: str
    value: str


class ScrollRequest(BaseModel):
    delta_x: float = 0
    delta_y: float = 0


class ScrollToRequest(BaseModel):
    x: float
    y: float


class ToolResult(BaseModel):
    result: str


class EndpointStatus(BaseModel):
    status: str = "ok"
    session_active: bool = False
    protocol: str = "none"
    renderer: str | None = None


def create_app(tools: BrowserTools) -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await tools.startup()
        logger.info("Endpoint started")
        yield
        await tools.shutdown()
        logger.info("Endpoint stopped")

    app = FastAPI(
        title="pagelens Endpoint",
        description="HTTP tool endpoint for agent-driven browser sessions",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(SessionNotInitializedError)
    async def _not_initialized(request: Request, exc: SessionNotInitializedError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc), "operation": exc.operation})

    @app.exception_handler(BrowserOperationError)
    async def _operation_failed(request: Request, exc: BrowserOperationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc), "operation": exc.operation})

    @app.get("/health")
    async def health_check() -> EndpointStatus:
        renderer = tools.session.renderer
        return EndpointStatus(
            status="ok",
            session_active=tools.session.is_initialized,
            protocol=tools.display.protocol.value,
            renderer=renderer.state.value if renderer is not None else None,
        )

    @app.get("/page")
    async def page_info() -> dict:
        return await tools.session.page_info()

    @app.post("/navigate")
    async def navigate(request: NavigateRequest) -> ToolResult:
        return ToolResult(result=await tools.navigate(request.url, request.wait_until))

    @app.post("/click")
    async def click(request: SelectorRequest) -> ToolResult:
        return ToolResult(result=await tools.click(request.selector))

    @app.post("/type")
    async def type_text(request: TypeRequest) -> ToolResult:
        return ToolResult(result=await tools.type(request.selector, request.text))

    @app.post("/screenshot")
    async def screenshot(request: ScreenshotRequest) -> ToolResult:
        return ToolResult(result=await tools.screenshot(request.full_page))

    @app.get("/screenshot.png")
    async def screenshot_png(full_page: bool = False) -> Response:
        data = await tools.session.screenshot(full_page)
        return Response(content=data, media_type="image/png")

    @app.get("/console")
    async def console_logs(severity: ConsoleSeverity | None = None) -> ToolResult:
        return ToolResult(result=await tools.console_logs(severity))

    @app.get("/network")
    async def network_requests(url_filter: str | None = None) -> ToolResult:
        return ToolResult(result=await tools.network_requests(url_filter))

    @app.post("/evaluate")
    async def evaluate(request: EvaluateRequest) -> ToolResult:
        return ToolResult(result=await tools.evaluate(request.script))

    @app.get("/storage")
    async def storage_get() -> ToolResult:
        return ToolResult(result=await tools.storage_get())

    @app.post("/storage")
    async def storage_set(request: StorageSetRequest) -> ToolResult:
        return ToolResult(result=await tools.storage_set(request.key, request.value))

    @app.get("/url")
    async def current_url() -> ToolResult:
        return ToolResult(result=await tools.current_url())

    @app.post("/clear-logs")
    async def clear_logs() -> ToolResult:
        return ToolResult(result=await tools.clear_logs())

    @app.post("/scroll")
    async def scroll(request: ScrollRequest) -> ToolResult:
        return ToolResult(result=await tools.scroll(request.delta_x, request.delta_y))

    @app.post("/scroll-to")
    async def scroll_to(request: ScrollToRequest) -> ToolResult:
        return ToolResult(result=await tools.scroll_to(request.x, request.y))

    @app.post("/scroll-to-element")
    async def scroll_to_element(request: SelectorRequest) -> ToolResult:
        return ToolResult(result=await tools.scroll_to_element(request.selector))

    @app.post("/page-up")
    async def page_up() -> ToolResult:
        return ToolResult(result=await tools.page_up())

    @app.post("/page-down")
    async def page_down() -> ToolResult:
        return ToolResult(result=await tools.page_down())

    @app.post("/session/save")
    async def save_session() -> ToolResult:
        await tools.session.save()
        return ToolResult(result=f"Session saved to {tools.session.state_file}")

    return app


def main() -> None:
    """Entry point for running the endpoint server standalone."""
    from pagelens.config.settings import load_settings
    from pagelens.tools import create_tools

    settings = load_settings()
    app = create_app(create_tools(settings))
    uvicorn.run(app, host=settings.endpoint.host, port=settings.endpoint.port)


if __name__ == "__main__":
    main()
