"""FastAPI app: match loop, frame streaming and tweak authoring endpoints."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncIterator
from itertools import count

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from . import config
from .authoring import AuthoringSession, TweakAuthor, TweakAuthoringError
from .match import MatchController
from .tweaks.declarative import TweakCompileError

logger = logging.getLogger(__name__)


class StartMatchRequest(BaseModel):
    tweak1: str = "none"
    tweak2: str = "none"


class InstallTweakRequest(BaseModel):
    code: str = Field(min_length=1)


class GenerateTweakRequest(BaseModel):
    prompt: str = ""


class RealtimeServer:
    def __init__(self, controller: MatchController | None = None, author: TweakAuthor | None = None) -> None:
        self.controller = controller or MatchController()
        self.author = author
        self.connections: dict[str, WebSocket] = {}
        self._connection_ids = count(1)
        self.lock = asyncio.Lock()
        self.pending_authoring: AuthoringSession | None = None
        self._tick_task: asyncio.Task[None] | None = None

    def get_author(self) -> TweakAuthor:
        if self.author is None:
            self.author = TweakAuthor()
        return self.author

    async def start(self) -> None:
        if self._tick_task is None:
            self._tick_task = asyncio.create_task(self._tick_loop())

    async def stop(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._tick_task
            self._tick_task = None

    async def connect(self, websocket: WebSocket) -> dict:
        async with self.lock:
            connection_id = f"c{next(self._connection_ids)}"
            self.connections[connection_id] = websocket
            arena = self.controller.arena
        return {
            "type": "welcome",
            "connectionId": connection_id,
            "tickRate": config.TICK_RATE,
            "canvas": {"w": config.CANVAS_WIDTH, "h": config.CANVAS_HEIGHT},
            "arena": {"vertices": [{"x": v.x, "y": v.y} for v in arena.vertices]},
        }

    async def disconnect(self, connection_id: str | None) -> None:
        async with self.lock:
            if connection_id is not None:
                self.connections.pop(connection_id, None)

    async def start_match(self, tweak1: str, tweak2: str) -> dict:
        async with self.lock:
            if self.pending_authoring is not None:
                # A match never starts while an authoring request is still open.
                self.pending_authoring.cancel()
                self.pending_authoring = None
            self.controller.start_match(tweak1, tweak2, now=time.perf_counter())
            return self.controller.describe()

    async def reset(self) -> dict:
        async with self.lock:
            self.controller.reset_to_pre_match()
            return self.controller.describe()

    async def status(self) -> dict:
        now = time.perf_counter()
        async with self.lock:
            result = self.controller.is_over()
            status = self.controller.describe()
            status["result"] = {"over": result.over, "winner": result.winner, "draw": result.draw}
            status["elapsed"] = round(self.controller.get_elapsed_time(now=now), 3)
            return status

    async def install_tweak(self, code: str) -> str:
        async with self.lock:
            return self.controller.install_authored_tweak(code)

    async def generate_tweak(self, prompt: str) -> dict | None:
        async with self.lock:
            world = self.controller.world
            if world is not None and world.state.running:
                raise RuntimeError("Tweaks can only be authored between matches")
            if self.pending_authoring is not None:
                self.pending_authoring.cancel()
            session = AuthoringSession(self.get_author())
            self.pending_authoring = session

        try:
            result = await session.run(prompt)
        finally:
            async with self.lock:
                if self.pending_authoring is session:
                    self.pending_authoring = None
        return result.to_dict() if result is not None else None

    async def cancel_authoring(self) -> bool:
        async with self.lock:
            if self.pending_authoring is None:
                return False
            self.pending_authoring.cancel()
            self.pending_authoring = None
            return True

    async def _tick_loop(self) -> None:
        interval = 1.0 / config.TICK_RATE

        while True:
            tick_start = time.perf_counter()

            async with self.lock:
                self.controller.tick(now=tick_start)
                snapshot = self.controller.snapshot(now=tick_start) if self.connections else None
                targets = list(self.connections.items()) if snapshot is not None else []

            if targets:
                results = await asyncio.gather(
                    *(self._safe_send_json(websocket, snapshot) for _, websocket in targets),
                    return_exceptions=True,
                )
                for (connection_id, _), result in zip(targets, results):
                    if result is False or isinstance(result, Exception):
                        await self.disconnect(connection_id)

            elapsed = time.perf_counter() - tick_start
            await asyncio.sleep(max(0.0, interval - elapsed))

    async def _safe_send_json(self, websocket: WebSocket, payload: dict) -> bool:
        try:
            await websocket.send_json(payload)
            return True
        except Exception:
            return False


def create_app(server: RealtimeServer | None = None, *, run_loop: bool = True) -> FastAPI:
    state = server or RealtimeServer()

    @contextlib.asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if run_loop:
            await state.start()
        try:
            yield
        finally:
            await state.stop()

    app = FastAPI(title="Heel Arena", lifespan=lifespan)
    app.state.arena = state

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "OK", "message": "Bot Arena service is running"}

    @app.get("/api/tweaks")
    async def list_tweaks() -> dict:
        return {"tweaks": [plugin.describe() for plugin in state.controller.registry.plugins()]}

    @app.post("/api/tweaks")
    async def install_tweak(body: InstallTweakRequest) -> dict:
        try:
            tweak_id = await state.install_tweak(body.code)
        except TweakCompileError as exc:
            raise HTTPException(status_code=400, detail={"error": "Tweak rejected", "details": str(exc)}) from exc
        return {"id": tweak_id}

    @app.get("/api/match")
    async def match_status() -> dict:
        return await state.status()

    @app.post("/api/match/start")
    async def start_match(body: StartMatchRequest) -> dict:
        return await state.start_match(body.tweak1, body.tweak2)

    @app.post("/api/match/reset")
    async def reset_match() -> dict:
        return await state.reset()

    @app.post("/api/generate-tweak")
    async def generate_tweak(body: GenerateTweakRequest) -> dict:
        if not body.prompt.strip():
            raise HTTPException(status_code=400, detail={"error": "Prompt is required"})
        try:
            result = await state.generate_tweak(body.prompt)
        except TweakAuthoringError as exc:
            raise HTTPException(
                status_code=500,
                detail={"error": "Failed to generate tweak", "details": str(exc), "requestId": exc.request_id},
            ) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=409, detail={"error": str(exc)}) from exc
        if result is None:
            raise HTTPException(status_code=409, detail={"error": "Authoring was cancelled"})
        return result

    @app.post("/api/generate-tweak/cancel")
    async def cancel_generation() -> dict:
        return {"cancelled": await state.cancel_authoring()}

    @app.websocket("/ws")
    async def websocket_handler(websocket: WebSocket) -> None:
        await websocket.accept()
        connection_id: str | None = None

        try:
            welcome = await state.connect(websocket)
            connection_id = welcome["connectionId"]
            await websocket.send_json(welcome)

            while True:
                msg = await websocket.receive_json()
                if msg.get("type") == "ping":
                    await websocket.send_json({"type": "pong", "ts": msg.get("ts")})
        except WebSocketDisconnect:
            pass
        finally:
            await state.disconnect(connection_id)

    return app


app = create_app()
