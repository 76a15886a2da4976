from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse

# --- Project imports ---
from common.utils import _iso_now
from services.container import ServiceContainer
from tools.voice_tools import SERVER_NAME, VoiceTools

# errorType -> HTTP status; business failures stay 200 with success=false
_STATUS_BY_ERROR = {
    "unknown_tool": 404,
    "validation_error": 422,
}


def create_app(tools: Optional[VoiceTools] = None, container: Optional[ServiceContainer] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: Optional[ServiceContainer] = None
        if getattr(app.state, "tools", None) is None:
            owned = container or ServiceContainer.from_env()
            app.state.tools = owned.voice_tools()
        yield
        # Optional: close the engine cleanly on shutdown
        if owned is not None:
            await owned.aclose()

    app = FastAPI(
        lifespan=lifespan,
        title="Voice Booking API",
        version="1.0.0",
    )
    app.state.tools = tools

    def _tools(request: Request) -> VoiceTools:
        return request.app.state.tools

    @app.get("/healthz")
    async def healthz() -> Dict[str, Any]:
        return {"status": "ok", "server": SERVER_NAME, "timestamp": _iso_now()}

    @app.get("/tools")
    async def list_tools(request: Request) -> Dict[str, Any]:
        return {"tools": _tools(request).list_tools()}

    @app.post("/tools/{name}")
    async def call_tool(
        name: str,
        request: Request,
        arguments: Optional[Dict[str, Any]] = Body(default=None),
    ) -> JSONResponse:
        result = await _tools(request).call_tool(name, arguments or {})
        status = _STATUS_BY_ERROR.get(result.get("errorType"), 200)
        return JSONResponse(result, status_code=status)

    return app


app = create_app()
