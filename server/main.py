import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from fastapi import Body, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from server.runtime import Runtime, build_runtime
from tools import list_tools

# error code -> HTTP status for POST /tools/{name}
_ERROR_STATUS = {
    "VALIDATION_ERROR": 422,
    "UNKNOWN_TOOL": 404,
    "AUTHENTICATION_ERROR": 502,
    "UPSTREAM_ERROR": 502,
}


def create_app(runtime: Optional[Runtime] = None) -> FastAPI:
    """
    Builds the HTTP surface. When no runtime is passed one is built from the
    environment at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = runtime is None
        app.state.runtime = runtime or build_runtime()
        try:
            yield
        finally:
            if owned:
                await app.state.runtime.aclose()

    app = FastAPI(
        title="Closing Cost Tools",
        description="LodeStar closing cost, title fee and property tax tools with a credential-free demo mode",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request):
        rt: Runtime = request.app.state.runtime
        return {
            "status": "ok",
            "mode": rt.mode.value,
            "session": rt.session_manager.get_session_info(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/session")
    async def session_info(request: Request):
        return request.app.state.runtime.session_manager.get_session_info()

    @app.delete("/session")
    async def clear_session(request: Request):
        rt: Runtime = request.app.state.runtime
        rt.session_manager.clear_session()
        return rt.session_manager.get_session_info()

    @app.get("/tools")
    async def tools_catalog():
        tools = list_tools()
        return {"tools": tools, "count": len(tools)}

    @app.get("/tools/log")
    async def tools_log(request: Request):
        """
        In-memory tool invocation log. Each entry: timestamp, tool, mode,
        duration_ms, success. Arguments are never recorded.
        """
        log = request.app.state.runtime.api.get_invocation_log()
        successes = sum(1 for e in log if e["success"])
        return {
            "total_invocations": len(log),
            "success_count": successes,
            "failure_count": len(log) - successes,
            "entries": log[-50:],
        }

    @app.post("/tools/{tool_name}")
    async def call_tool(tool_name: str, request: Request, arguments: Optional[dict] = Body(default=None)):
        rt: Runtime = request.app.state.runtime
        result = await rt.api.call_tool(tool_name, arguments or {})
        if result["success"]:
            return result
        status = _ERROR_STATUS.get(result["error"]["code"], 500)
        return JSONResponse(status_code=status, content=result)

    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(
        "server.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
