"""
Frame driver: landmarks -> classify -> high-energy override -> tick.

The core (gestures.classify, ForceFieldIntegrator.tick) never schedules itself;
whoever owns the frame loop (app.py, viewer_server.py) calls step() or
advance() once per frame.
"""

import logging
import math

from field import ParticleField
from gestures import GestureState, classify
from params import Params
from sim import ForceFieldIntegrator

logger = logging.getLogger(__name__)


class Simulation:
    def __init__(self, params=None, integrator=None, field=None):
        self.params = params or Params()
        self.field = field if field is not None else ParticleField.from_params(self.params)
        self.integrator = integrator if integrator is not None else ForceFieldIntegrator(self.params)
        self.last_gestures = GestureState.idle()
        self._high_energy = False
        self._accum = 0.0

    # ---------------- high-energy override ----------------

    @property
    def high_energy(self) -> bool:
        return self._high_energy

    def set_high_energy(self, active: bool):
        active = bool(active)
        if active != self._high_energy:
            logger.info("High-energy mode %s", "ON" if active else "OFF")
        self._high_energy = active

    def toggle_high_energy(self) -> bool:
        self.set_high_energy(not self._high_energy)
        return self._high_energy

    # ---------------- stepping ----------------

    def gestures_for(self, hands) -> GestureState:
        """Frozen control state for the next tick(s)."""
        return classify(hands, self.params).with_high_energy(self._high_energy)

    def step(self, hands) -> GestureState:
        """Exactly one tick driven by this frame's hands."""
        gestures = self.gestures_for(hands)
        self._note(gestures)
        self.integrator.tick(self.field, gestures)
        return gestures

    def advance(self, hands, elapsed: float) -> int:
        """
        Fixed-rate ticks for `elapsed` seconds of wall time.

        Classifies once, then runs floor(accumulated * tick_hz) ticks, capped at
        max_ticks_per_frame (the rest of a long stall is dropped).
        """
        p = self.params
        if not math.isfinite(elapsed) or elapsed < 0:
            elapsed = 0.0
        self._accum += elapsed

        dt = 1.0 / p.tick_hz
        n = int(math.floor(self._accum / dt + 1e-9))
        if n <= 0:
            return 0
        if n > p.max_ticks_per_frame:
            n = int(p.max_ticks_per_frame)
            self._accum = 0.0
        else:
            self._accum = max(0.0, self._accum - n * dt)

        gestures = self.gestures_for(hands)
        self._note(gestures)
        for _ in range(n):
            self.integrator.tick(self.field, gestures)
        return n

    def snapshot(self):
        return self.field.snapshot()

    def reset(self):
        self.field.reset()
        self._accum = 0.0
        self.last_gestures = GestureState.idle().with_high_energy(self._high_energy)

    def close(self):
        close = getattr(self.integrator, "close", None)
        if close is not None:
            close()

    def _note(self, gestures: GestureState):
        before = set(self.last_gestures.active_names())
        after = set(gestures.active_names())
        for name in sorted(after - before):
            logger.info("Gesture on: %s", name)
        for name in sorted(before - after):
            logger.info("Gesture off: %s", name)
        self.last_gestures = gestures
