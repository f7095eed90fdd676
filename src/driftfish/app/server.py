from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Set, Union

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import AppConfig
from ..logging_config import configure_logging
from ..sim.core.simulation import Simulation
from ..sim.core.timers import AsyncioTimers

logger = logging.getLogger(__name__)


class OpacityPayload(BaseModel):
    opacity: float


class DensityPayload(BaseModel):
    level: Union[int, float, str]


class ViewportPayload(BaseModel):
    width: float
    height: float
    inner_width: float = 0.0
    inner_height: float = 0.0


class PointerPayload(BaseModel):
    x: float
    y: float


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SimulationController:
    def __init__(self, config: AppConfig):
        self.config = config
        self.timers = AsyncioTimers()
        self.simulation = Simulation(config.fish, self.timers, config.viewport_width, config.viewport_height)
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.clients: Set[WebSocket] = set()
        self._frame_task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._frame_task is not None and not self._frame_task.done()

    async def start(self) -> None:
        if self._frame_task is None:
            self.simulation.loop.restart(self.timers.now())
            self.simulation.start()
            self._frame_task = asyncio.create_task(self._loop())
            logger.info("Frame loop started at %.1f ms per frame", self.config.frame_interval_ms)

    async def stop(self) -> None:
        task = self._frame_task
        self._frame_task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.simulation.shutdown()

    async def _loop(self) -> None:
        interval = self.config.frame_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            try:
                metrics = self.simulation.frame(self.timers.now())
                if metrics.frame % self.broadcast_interval == 0:
                    await self._broadcast_frame()
            except Exception:
                logger.exception("Frame %d failed", self.simulation.loop.frames)

    def status(self) -> Dict[str, Any]:
        sim = self.simulation
        return {
            "running": self.running,
            "paused": sim.paused,
            "frame": sim.loop.frames,
            "population": sim.registry.size(),
            "max_concurrent": sim.get_max_concurrent(),
            "spawn_pending": sim.scheduler.pending,
            "viewport": {"width": sim.viewport.current.width, "height": sim.viewport.current.height},
        }

    def handle_message(self, payload: Dict[str, Any]) -> None:
        kind = payload.get("type")
        sim = self.simulation
        if kind == "pointer":
            x, y = payload.get("x"), payload.get("y")
            if _is_number(x) and _is_number(y):
                sim.observe_pointer(x, y)
        elif kind == "pointer_leave":
            sim.forget_pointer()
        elif kind == "resize":
            width, height = payload.get("width"), payload.get("height")
            inner_width = payload.get("inner_width", 0.0)
            inner_height = payload.get("inner_height", 0.0)
            inner_width = 0.0 if inner_width is None else inner_width
            inner_height = 0.0 if inner_height is None else inner_height
            if all(_is_number(value) for value in (width, height, inner_width, inner_height)):
                sim.on_resize(width, height, inner_width, inner_height)
            else:
                logger.debug("Ignoring malformed resize message %r", payload)

    def serialize_frame(self) -> str:
        snapshot = self.simulation.snapshot()
        payload = {
            "type": "frame",
            "frame": snapshot.frame,
            "payload": {
                "viewport": asdict(snapshot.viewport),
                "metrics": asdict(snapshot.metrics),
                "sprites": snapshot.sprites,
            },
        }
        return json.dumps(payload)

    async def _broadcast_frame(self) -> None:
        if not self.clients:
            return
        message = self.serialize_frame()
        stale: Set[WebSocket] = set()
        for client in list(self.clients):
            try:
                await client.send_text(message)
            except (WebSocketDisconnect, RuntimeError):
                stale.add(client)
        for client in stale:
            self.clients.discard(client)


def _load_app_config() -> AppConfig:
    path = os.getenv("DRIFTFISH_CONFIG")
    if path:
        return AppConfig.from_yaml(Path(path))
    return AppConfig()


app = FastAPI(title="Drifting Fish Background")
controller = SimulationController(_load_app_config())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.on_event("shutdown")
async def _shutdown() -> None:
    await controller.stop()


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(controller.status())


@app.post("/api/control/pause")
async def pause() -> JSONResponse:
    controller.simulation.pause()
    return JSONResponse({"paused": True})


@app.post("/api/control/resume")
async def resume() -> JSONResponse:
    controller.simulation.resume()
    return JSONResponse({"paused": False})


@app.post("/api/control/opacity")
async def set_opacity(payload: OpacityPayload) -> JSONResponse:
    controller.simulation.set_opacity(payload.opacity)
    return JSONResponse({"opacity": max(0.0, min(1.0, payload.opacity))})


@app.post("/api/control/density")
async def set_density(payload: DensityPayload) -> JSONResponse:
    controller.simulation.set_density(payload.level)
    return JSONResponse({"max_concurrent": controller.simulation.config.max_concurrent})


@app.post("/api/viewport")
async def resize(payload: ViewportPayload) -> JSONResponse:
    controller.simulation.on_resize(payload.width, payload.height, payload.inner_width, payload.inner_height)
    return JSONResponse({"resize_pending": controller.simulation.viewport.resize_pending})


@app.post("/api/pointer")
async def pointer(payload: PointerPayload) -> JSONResponse:
    controller.simulation.observe_pointer(payload.x, payload.y)
    return JSONResponse({"x": payload.x, "y": payload.y})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    try:
        await websocket.send_text(controller.serialize_frame())
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict):
                controller.handle_message(payload)
    except WebSocketDisconnect:
        pass
    finally:
        controller.clients.discard(websocket)


def main() -> None:
    configure_logging()
    port = int(os.getenv("DRIFTFISH_PORT", "8000"))
    uvicorn.run("driftfish.app.server:app", host="0.0.0.0", port=port, log_level="info")


__all__ = ["app", "controller", "main"]
