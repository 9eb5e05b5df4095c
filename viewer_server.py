"""
Headless viewer service.

A detector process posts hand observations, an operator posts the
high-energy toggle, and any number of browser viewers receive the particle
snapshot over a WebSocket:

  GET  /ws       -> {"type": "particles", "tick": n, "count": N, "positions": [...], "gestures": {...}}
  POST /hand     <- {"hands": [[[x, y, z], ...21], ...]}   ([] when tracking is lost)
                    points may also be {"x": .., "y": .., "z": ..} objects
                    (MediaPipe JS `results.landmarks` serialised as-is)
  POST /energy   <- {"active": true|false}  or  {} to toggle
  GET  /state    -> current gesture state + counters

Bad JSON bodies get a 400. Errors inside a tick are logged and the loop keeps
running.
"""

import asyncio
import json
import logging

from aiohttp import web

from driver import Simulation
from params import Params

logger = logging.getLogger(__name__)

HOST = "0.0.0.0"
PORT = 8765

SIMULATION = web.AppKey("simulation", Simulation)
CLIENTS = web.AppKey("clients", set)
HANDS = web.AppKey("hands", list)
SETTINGS = web.AppKey("settings", dict)


async def ws_handler(request):
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    clients = request.app[CLIENTS]
    clients.add(ws)
    logger.info("Viewer connected: %d", len(clients))

    try:
        async for _ in ws:
            pass
    finally:
        clients.discard(ws)
        logger.info("Viewer disconnected: %d", len(clients))

    return ws


async def _broadcast(app, data: dict):
    clients = app[CLIENTS]
    if not clients:
        return
    payload = json.dumps(data)
    dead = []
    for ws in list(clients):
        try:
            await ws.send_str(payload)
        except (ConnectionError, RuntimeError) as e:
            logger.debug("Dropping viewer: %s", e)
            dead.append(ws)
    for ws in dead:
        clients.discard(ws)


async def _read_json(request) -> dict:
    if not request.can_read_body:
        return {}
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise web.HTTPBadRequest(text="body is not valid JSON")
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(text="body must be a JSON object")
    return data


async def post_hand(request):
    data = await _read_json(request)
    hands = data.get("hands", [])
    if not isinstance(hands, list):
        raise web.HTTPBadRequest(text="'hands' must be a list")
    request.app[HANDS][:] = hands
    return web.json_response({"ok": True, "hands": len(hands), "viewers": len(request.app[CLIENTS])})


async def post_energy(request):
    data = await _read_json(request)
    sim = request.app[SIMULATION]
    if "active" in data:
        if not isinstance(data["active"], bool):
            raise web.HTTPBadRequest(text="'active' must be true or false")
        sim.set_high_energy(data["active"])
    else:
        sim.toggle_high_energy()
    return web.json_response({"ok": True, "high_energy": sim.high_energy})


async def get_state(request):
    sim = request.app[SIMULATION]
    return web.json_response({
        "gestures": sim.last_gestures.to_dict(),
        "high_energy": sim.high_energy,
        "ticks": sim.integrator.ticks,
        "count": sim.field.count,
        "viewers": len(request.app[CLIENTS]),
    })


def particles_message(sim: Simulation) -> dict:
    return {
        "type": "particles",
        "tick": sim.integrator.ticks,
        "count": sim.field.count,
        "positions": sim.snapshot().round(4).tolist(),
        "gestures": sim.last_gestures.to_dict(),
    }


async def _tick_loop(app):
    sim = app[SIMULATION]
    settings = app[SETTINGS]
    dt = 1.0 / sim.params.tick_hz
    every = max(1, int(settings["broadcast_every"]))
    loop = asyncio.get_running_loop()
    last = loop.time()

    while True:
        await asyncio.sleep(dt)
        now = loop.time()
        ticks_before = sim.integrator.ticks
        try:
            sim.advance(list(app[HANDS]), now - last)
            if sim.integrator.ticks // every != ticks_before // every:
                await _broadcast(app, particles_message(sim))
        except Exception:
            logger.exception("Tick failed, keeping the loop alive")
        last = now


async def _simulation_ctx(app):
    task = asyncio.create_task(_tick_loop(app))
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    app[SIMULATION].close()


def make_app(simulation=None, run_loop=True, broadcast_every=2):
    app = web.Application()
    app[SIMULATION] = simulation if simulation is not None else Simulation(Params())
    app[CLIENTS] = set()
    app[HANDS] = []
    app[SETTINGS] = {"broadcast_every": broadcast_every}

    app.router.add_get("/ws", ws_handler)
    app.router.add_post("/hand", post_hand)
    app.router.add_post("/energy", post_energy)
    app.router.add_get("/state", get_state)

    if run_loop:
        app.cleanup_ctx.append(_simulation_ctx)
    return app


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    web.run_app(make_app(), host=HOST, port=PORT)


if __name__ == "__main__":
    main()
