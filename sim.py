"""
Acoustic trap simulation (numpy backend).

Every particle is pulled by a spring toward a target derived from its rest
position and the current GestureState:

- extrude: target.y = base.y * (1 + 2 * strength)      (pillars)
- curve:   (x, z) rotated by angle * target.y           (helical bend)
- snap:    target.y quantized to 0.5 strata
- high energy: stiffer spring + bounded jitter on the target

Then one explicit Euler step with drag applied after the force update, and a
floor bounce. Particles never interact, so the field can be split into
disjoint slices and ticked on worker threads with one join per tick.
"""

from concurrent.futures import ThreadPoolExecutor
import logging

import numpy as np

from params import Params

logger = logging.getLogger(__name__)


class ForceFieldIntegrator:
    def __init__(self, params=None, rng=None):
        self.params = params or Params()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.ticks = 0
        self._pool = None
        self._pool_size = 0

    # ---------------- stage 1: targets ----------------

    def targets(self, base, gestures) -> np.ndarray:
        """Gesture-modulated targets for `base` (Nx3). Does not touch `base`."""
        p = self.params
        target = np.array(base, dtype=np.float32, copy=True)

        if gestures.extrude.active:
            factor = np.float32(1.0 + p.extrude_scale * max(0.0, gestures.extrude.strength))
            target[:, 1] = target[:, 1] * factor

        if gestures.curve.active:
            # Twist grows with height
            theta = np.float32(gestures.curve.angle) * target[:, 1]
            c = np.cos(theta)
            s = np.sin(theta)
            x = target[:, 0].copy()
            z = target[:, 2].copy()
            target[:, 0] = x * c - z * s
            target[:, 2] = x * s + z * c

        if gestures.snap.active:
            step = np.float32(p.snap_step)
            target[:, 1] = np.floor(target[:, 1] / step + np.float32(0.5)) * step

        return target

    # ---------------- stage 2: stiffness + jitter ----------------

    def stiffness(self, gestures) -> float:
        if gestures.high_energy.active:
            return self.params.spring_k_high
        return self.params.spring_k

    def jitter(self, n: int) -> np.ndarray:
        j = self.params.jitter
        return self.rng.uniform(-j, j, size=(int(n), 3))

    # ---------------- stages 3 + 4 ----------------

    def tick(self, field, gestures):
        """Advance every particle of `field` by one tick, in place."""
        k = self.stiffness(gestures)

        # Drawn up front so worker slices only read shared state
        jit = self.jitter(field.count) if gestures.high_energy.active else None

        parts = field.slices(self.params.workers)
        if len(parts) == 1:
            self._tick_slice(field, gestures, k, jit, parts[0])
        else:
            pool = self._executor(len(parts))
            futures = [pool.submit(self._tick_slice, field, gestures, k, jit, s) for s in parts]
            for f in futures:
                f.result()

        self.ticks += 1

    def _tick_slice(self, field, gestures, k, jit, s):
        p = self.params
        target = self.targets(field.base[s], gestures)
        if jit is not None:
            target = target + jit[s]

        pos = field.position[s]
        vel = field.velocity[s]

        vel += (target - pos) * k
        vel *= p.drag
        pos += vel

        below = pos[:, 1] < p.floor_y
        if np.any(below):
            pos[below, 1] = p.floor_y
            vel[below, 1] *= -p.floor_restitution

    def _executor(self, n):
        if self._pool is None or self._pool_size < n:
            self.close()
            logger.debug("Starting integrator pool with %d workers", n)
            self._pool = ThreadPoolExecutor(max_workers=n, thread_name_prefix="field")
            self._pool_size = n
        return self._pool

    def close(self):
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None
            self._pool_size = 0
