import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from driftfish.app import server
from driftfish.app.server import SimulationController
from driftfish.config import AppConfig, FishConfig


class _RecordingSocket:
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send_text(self, message: str) -> None:
        self.sent.append(message)


class _ClosedSocket:
    async def send_text(self, message: str) -> None:
        raise WebSocketDisconnect()


class _SendAfterCloseSocket:
    async def send_text(self, message: str) -> None:
        raise RuntimeError('Cannot call "send" once a close message has been sent.')


class _FailingSocket:
    def __init__(self) -> None:
        self.calls = 0

    async def send_text(self, message: str) -> None:
        self.calls += 1
        raise ValueError("encoder failure")


def _controller(**overrides) -> SimulationController:
    fish = FishConfig(seed=8, mouse_radius=160.0, mouse_force=0.35)
    return SimulationController(AppConfig(fish=fish, **overrides))


def test_frame_payload_contains_sprites_and_metrics() -> None:
    controller = _controller()
    controller.simulation.scheduler.spawn()

    payload = json.loads(controller.serialize_frame())

    assert payload["type"] == "frame"
    body = payload["payload"]
    assert body["viewport"] == {"width": 1280, "height": 800}
    assert body["metrics"]["population"] == 1
    sprite = body["sprites"][0]
    assert sprite["transform"] == "scaleX(-1)"
    assert sprite["pointerEvents"] == "none"


def test_client_messages_drive_pointer_and_resize() -> None:
    controller = _controller()
    sim = controller.simulation

    async def exercise() -> None:
        controller.handle_message({"type": "pointer", "x": 12, "y": 34})
        assert tuple(sim.pointer.position) == (12, 34)
        controller.handle_message({"type": "pointer", "x": "nope", "y": 1})
        assert tuple(sim.pointer.position) == (12, 34)
        controller.handle_message({"type": "pointer_leave"})
        assert not sim.pointer.has_position

        controller.handle_message({"type": "resize", "width": 375, "height": 600})
        assert sim.viewport.resize_pending
        assert sim.viewport.current.min_dimension == 375
        controller.handle_message({"type": "unknown"})
        sim.viewport.cancel()

        controller.handle_message({"type": "resize", "width": 900, "height": 700, "inner_width": "abc"})
        controller.handle_message({"type": "resize", "width": 900, "height": 700, "inner_height": [1]})
        controller.handle_message({"type": "resize", "width": True, "height": 700})
        assert not sim.viewport.resize_pending
        assert sim.viewport.current.width == 375

        controller.handle_message({"type": "resize", "width": 900, "height": 700, "inner_width": None})
        assert sim.viewport.current.width == 900
        sim.viewport.cancel()

    asyncio.run(exercise())


def test_broadcast_drops_disconnected_clients() -> None:
    controller = _controller()
    good = _RecordingSocket()
    controller.clients = {good, _ClosedSocket(), _SendAfterCloseSocket()}

    asyncio.run(controller._broadcast_frame())

    assert len(good.sent) == 1
    assert controller.clients == {good}


def test_frame_loop_runs_until_stopped() -> None:
    controller = _controller(frame_interval_ms=5.0)

    async def exercise() -> dict:
        await controller.start()
        await controller.start()
        await asyncio.sleep(0.1)
        status = controller.status()
        await controller.stop()
        return status

    status = asyncio.run(exercise())

    assert status["running"]
    assert status["frame"] >= 1
    assert status["max_concurrent"] == 10
    assert not controller.running
    assert controller.simulation.registry.size() == 0


def test_status_reports_control_changes() -> None:
    controller = _controller()
    sim = controller.simulation
    sim.pause()
    sim.set_density("high")

    status = controller.status()

    assert status["paused"]
    assert status["max_concurrent"] == 6
    assert status["viewport"] == {"width": 1280, "height": 800}


def test_frame_loop_keeps_running_after_a_failed_frame() -> None:
    controller = _controller(frame_interval_ms=5.0)
    failing = _FailingSocket()
    controller.clients = {failing}

    async def exercise() -> bool:
        await controller.start()
        await asyncio.sleep(0.1)
        running = controller.running
        await controller.stop()
        return running

    assert asyncio.run(exercise())
    assert failing.calls >= 2


@pytest.fixture
def app_controller(monkeypatch) -> SimulationController:
    fresh = _controller()
    monkeypatch.setattr(server, "controller", fresh)
    return fresh


@pytest.fixture
def client(app_controller):
    with TestClient(server.app) as test_client:
        yield test_client


def test_status_route(client, app_controller) -> None:
    response = client.get("/api/status")
    assert response.status_code == 200
    body = response.json()
    assert body["running"]
    assert body["viewport"] == {"width": 1280, "height": 800}


def test_pause_and_resume_routes(client, app_controller) -> None:
    response = client.post("/api/control/pause")
    assert response.json() == {"paused": True}
    assert app_controller.simulation.paused
    assert not app_controller.simulation.scheduler.pending

    response = client.post("/api/control/resume")
    assert response.json() == {"paused": False}
    assert not app_controller.simulation.paused
    assert app_controller.simulation.scheduler.pending


def test_opacity_route_clamps_and_rejects_bad_bodies(client, app_controller) -> None:
    client.post("/api/control/pause")
    response = client.post("/api/control/opacity", json={"opacity": 1.5})
    assert response.json() == {"opacity": 1.0}

    response = client.post("/api/control/opacity", json={"opacity": 0.4})
    assert response.json() == {"opacity": 0.4}
    for fish in app_controller.simulation.registry.snapshot():
        assert fish.sprite.opacity == 0.4

    assert client.post("/api/control/opacity", json={"opacity": "abc"}).status_code == 422
    assert client.post("/api/control/opacity", json={}).status_code == 422


def test_density_route_accepts_presets_and_numbers(client, app_controller) -> None:
    assert client.post("/api/control/density", json={"level": "HIGH"}).json() == {"max_concurrent": 6}
    assert client.post("/api/control/density", json={"level": 4.6}).json() == {"max_concurrent": 5}
    assert client.post("/api/control/density", json={"level": "huge"}).json() == {"max_concurrent": 5}
    assert client.post("/api/control/density", json={"level": [1]}).status_code == 422


def test_viewport_route_measures_and_debounces(client, app_controller) -> None:
    response = client.post("/api/viewport", json={"width": 375, "height": 600, "inner_width": 390})
    assert response.json() == {"resize_pending": True}
    assert app_controller.simulation.viewport.current.width == 390
    assert client.get("/api/status").json()["max_concurrent"] == 2

    assert client.post("/api/viewport", json={"width": "wide", "height": 600}).status_code == 422


def test_pointer_route_moves_pointer(client, app_controller) -> None:
    response = client.post("/api/pointer", json={"x": 10, "y": 20})
    assert response.json() == {"x": 10.0, "y": 20.0}
    assert tuple(app_controller.simulation.pointer.position) == (10, 20)

    assert client.post("/api/pointer", json={"x": 10}).status_code == 422


def test_websocket_ignores_malformed_resize_and_releases_client(client, app_controller) -> None:
    with client.websocket_connect("/ws") as websocket:
        first = json.loads(websocket.receive_text())
        assert first["type"] == "frame"
        assert len(app_controller.clients) == 1

        websocket.send_text(json.dumps({"type": "resize", "width": 375, "height": 600, "inner_width": "abc"}))
        websocket.send_text("not json")
        websocket.send_text(json.dumps([1, 2]))
        websocket.send_text(json.dumps({"type": "pointer", "x": 5, "y": 6}))
        websocket.send_text(json.dumps({"type": "pointer_leave"}))
        websocket.send_text(json.dumps({"type": "pointer", "x": 7, "y": 8}))

    assert app_controller.clients == set()
    assert tuple(app_controller.simulation.pointer.position) == (7, 8)
    assert app_controller.simulation.viewport.current.width == 1280
    assert app_controller.running
