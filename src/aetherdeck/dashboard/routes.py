"""FastAPI routes: REST API over the orchestrator plus the terminal WebSocket."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from aetherdeck.dashboard.websocket import ConnectionManager
from aetherdeck.logging import get_logger
from aetherdeck.remote.errors import RemoteError, RemoteTimeoutError
from aetherdeck.session.orchestrator import SessionOrchestrator

log = get_logger("dashboard.routes")


class EdictRequest(BaseModel):
    context: dict[str, Any] = Field(default_factory=dict)


class ConsciousnessQuery(BaseModel):
    query: str
    context: dict[str, Any] = Field(default_factory=dict)


class ChatRequest(BaseModel):
    message: str


class TerminalInput(BaseModel):
    data: str


class TerminalResize(BaseModel):
    cols: int
    rows: int


class TaskModel(BaseModel):
    title: str
    priority: str | None = None


class StartClaudeRequest(BaseModel):
    task: TaskModel | None = None
    context_data: str | None = None
    include_screen_context: bool = False


def create_app(orchestrator: SessionOrchestrator) -> FastAPI:
    """Create the dashboard application bound to ``orchestrator``."""
    app = FastAPI(
        title="aetherdeck",
        description="Control panel backend for the Aether service and the assistant terminal",
        version="0.1.0",
    )
    connections = ConnectionManager()
    app.state.orchestrator = orchestrator
    app.state.connections = connections
    orchestrator.add_sink(connections.broadcast)

    _register_error_handlers(app)
    _register_routes(app)
    _register_websocket(app)
    return app


def _orchestrator(request: Request) -> SessionOrchestrator:
    return request.app.state.orchestrator


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RemoteTimeoutError)
    async def remote_timeout(request: Request, exc: RemoteTimeoutError) -> JSONResponse:
        return JSONResponse(status_code=504, content={"detail": str(exc)})

    @app.exception_handler(RemoteError)
    async def remote_failure(request: Request, exc: RemoteError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})


def _register_routes(app: FastAPI) -> None:
    @app.get("/api/status")
    async def api_status(request: Request) -> dict[str, Any]:
        """Local status: session token, terminal state, connected clients."""
        status = _orchestrator(request).status()
        status["connections"] = request.app.state.connections.get_connection_count()
        return status

    # -- remote service passthrough -----------------------------------------

    @app.get("/api/aether/health")
    async def aether_health(request: Request) -> Any:
        return await _orchestrator(request).client.get_health()

    @app.get("/api/aether/edicts")
    async def aether_edicts(request: Request) -> Any:
        return await _orchestrator(request).client.get_edicts()

    @app.post("/api/aether/edicts/{name}")
    async def aether_execute_edict(
        request: Request, name: str, body: EdictRequest | None = None
    ) -> Any:
        context = body.context if body else {}
        return await _orchestrator(request).client.execute_edict(name, context)

    @app.get("/api/aether/stats")
    async def aether_stats(request: Request) -> Any:
        return await _orchestrator(request).client.get_stats()

    @app.get("/api/aether/cron")
    async def aether_cron(request: Request) -> Any:
        return await _orchestrator(request).client.get_cron_jobs()

    @app.get("/api/aether/consciousness")
    async def aether_consciousness(request: Request) -> Any:
        return await _orchestrator(request).client.get_consciousness()

    @app.post("/api/aether/consciousness/query")
    async def aether_consciousness_query(request: Request, body: ConsciousnessQuery) -> Any:
        return await _orchestrator(request).client.query_consciousness(body.query, body.context)

    @app.get("/api/aether/logs")
    async def aether_logs(request: Request, limit: int = Query(50, ge=1)) -> Any:
        return await _orchestrator(request).client.get_logs(limit)

    @app.get("/api/aether/wekan")
    async def aether_wekan(request: Request) -> Any:
        return await _orchestrator(request).client.get_wekan_status()

    @app.get("/api/aether/foundry/cards")
    async def aether_foundry_cards(request: Request) -> Any:
        return await _orchestrator(request).client.get_foundry_cards()

    @app.get("/api/aether/foundry/stats")
    async def aether_foundry_stats(request: Request) -> Any:
        return await _orchestrator(request).client.get_foundry_stats()

    @app.get("/api/aether/foundry/reports")
    async def aether_foundry_reports(request: Request) -> Any:
        return await _orchestrator(request).client.get_foundry_reports()

    # -- chat and session ----------------------------------------------------

    @app.post("/api/chat")
    async def chat(request: Request, body: ChatRequest) -> JSONResponse:
        """Send a chat message. A concurrent send is rejected with 409."""
        result = await _orchestrator(request).client.send_chat_message(body.message)
        status_code = 409 if result.error_kind == "in_flight" else 200
        return JSONResponse(status_code=status_code, content=result.to_dict())

    @app.get("/api/chat/history")
    async def chat_history(request: Request) -> dict[str, Any]:
        history = await _orchestrator(request).client.get_chat_history()
        return history.to_dict()

    @app.post("/api/session/reset")
    async def session_reset(request: Request) -> dict[str, Any]:
        return {"session_id": _orchestrator(request).client.clear_session()}

    @app.get("/api/connection")
    async def connection(request: Request) -> dict[str, Any]:
        status = await _orchestrator(request).client.test_connection()
        return status.to_dict()

    # -- terminal ------------------------------------------------------------

    @app.post("/api/terminal/start")
    async def terminal_start(request: Request) -> dict[str, Any]:
        return {"running": _orchestrator(request).start_terminal()}

    @app.post("/api/terminal/input")
    async def terminal_input(request: Request, body: TerminalInput) -> dict[str, Any]:
        _orchestrator(request).write(body.data)
        return {"ok": True}

    @app.post("/api/terminal/resize")
    async def terminal_resize(request: Request, body: TerminalResize) -> dict[str, Any]:
        _orchestrator(request).resize(body.cols, body.rows)
        return {"ok": True}

    @app.post("/api/terminal/start-claude")
    async def terminal_start_claude(request: Request, body: StartClaudeRequest) -> dict[str, Any]:
        running = await _orchestrator(request).start_claude(
            body.task.model_dump() if body.task else None,
            body.context_data,
            include_screen_context=body.include_screen_context,
        )
        return {"running": running}

    @app.post("/api/terminal/kill")
    async def terminal_kill(request: Request) -> dict[str, Any]:
        _orchestrator(request).kill()
        return {"ok": True}

    @app.get("/api/context")
    async def screen_context(request: Request) -> dict[str, Any]:
        result = await _orchestrator(request).capture_context()
        return result.to_dict()


def _register_websocket(app: FastAPI) -> None:
    @app.websocket("/ws/terminal")
    async def terminal_socket(websocket: WebSocket) -> None:
        """Stream terminal events out and accept input/resize messages in."""
        orchestrator: SessionOrchestrator = websocket.app.state.orchestrator
        connections: ConnectionManager = websocket.app.state.connections
        await connections.connect(websocket)

        try:
            await websocket.send_json({"type": "status", **orchestrator.status()})
            while True:
                try:
                    message = await websocket.receive_json()
                except WebSocketDisconnect:
                    break
                except ValueError:
                    await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                    continue
                await _handle_socket_message(websocket, orchestrator, message)
        finally:
            await connections.disconnect(websocket)


async def _handle_socket_message(
    websocket: WebSocket, orchestrator: SessionOrchestrator, message: Any
) -> None:
    kind = message.get("type") if isinstance(message, dict) else None
    if kind == "input":
        orchestrator.write(str(message.get("data", "")))
    elif kind == "resize":
        try:
            orchestrator.resize(int(message["cols"]), int(message["rows"]))
        except (KeyError, TypeError, ValueError):
            await websocket.send_json({"type": "error", "message": "Invalid resize"})
    elif kind == "start":
        orchestrator.start_terminal()
    elif kind == "kill":
        orchestrator.kill()
    elif kind == "ping":
        await websocket.send_json({"type": "pong"})
    else:
        log.debug("Ignoring terminal socket message: %r", message)
        await websocket.send_json({"type": "error", "message": f"Unknown message type: {kind}"})
