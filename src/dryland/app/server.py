from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from ..sim.core.config import SimulationConfig
from ..sim.core.errors import ConfigurationError
from ..sim.core.grid import FieldView
from ..sim.core.parameters import ParameterSet
from ..sim.core.simulation import Simulation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    """Runs a Simulation from one asyncio task and fans snapshots out to clients.

    Stepping, resets and parameter changes are serialized by ``_lock``.
    Snapshots stay queued until a client acknowledges their tick.
    """

    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.simulation = Simulation(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.view = FieldView.VEGETATION
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._frames = 0
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=config.history_capacity)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    @property
    def tick(self) -> int:
        return self.simulation.tick

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self, seed: int | None = None, density: float | None = None) -> None:
        async with self._lock:
            self.simulation.reset(seed=seed, density=density)
            self._frames = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def step_once(self) -> None:
        async with self._lock:
            self.simulation.step()
        await self._broadcast_snapshot()

    async def set_view(self, view: str) -> FieldView:
        self.view = FieldView(view)
        await self._broadcast_snapshot()
        return self.view

    async def update_parameters(self, changes: Dict[str, Any]) -> ParameterSet:
        async with self._lock:
            params = self.simulation.parameters.with_changes(**changes)
            self.simulation.set_parameters(params)
        logger.info("parameters updated: %s", ", ".join(sorted(changes)))
        return params

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.frame_interval / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.simulation.advance_frame()
                self._frames += 1
            if self._frames % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.simulation.snapshot(self.view)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": asdict(snapshot),
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            if self._snapshot_queue and self._snapshot_queue[-1].tick == queued.tick:
                self._snapshot_queue.pop()
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app = FastAPI(title="Dryland Vegetation Simulation")
controller = SimulationController(SimulationConfig())
static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/")
async def index() -> FileResponse:
    return FileResponse(static_dir / "index.html")


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "view": controller.view.value,
            "metrics": asdict(controller.simulation.metrics()),
            "history": [asdict(record) for record in controller.simulation.history],
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/step")
async def step_simulation() -> JSONResponse:
    await controller.step_once()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/reset")
async def reset_simulation(payload: dict | None = None) -> JSONResponse:
    payload = payload or {}
    try:
        await controller.reset(seed=payload.get("seed"), density=payload.get("density"))
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/view")
async def set_view(payload: dict) -> JSONResponse:
    try:
        view = await controller.set_view(payload.get("view", ""))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"unknown view: {payload.get('view')!r}") from exc
    return JSONResponse({"view": view.value})


@app.get("/api/parameters")
async def get_parameters() -> JSONResponse:
    return JSONResponse(controller.simulation.parameters.to_dict())


@app.post("/api/parameters")
async def set_parameters(payload: dict) -> JSONResponse:
    try:
        params = await controller.update_parameters(payload)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse(params.to_dict())


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
