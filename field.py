"""
Particle field storage.

State (structure of arrays, float32, shape Nx3):
- position: current world-space location
- velocity: world units / tick
- base:     rest location ("formation"), frozen at creation

Only the integrator writes position/velocity. Renderers read snapshot().
"""

import numpy as np


class ParticleField:
    def __init__(self, count=5000, spread=2.0, base_height=0.5, rng=None):
        self.rng = rng if rng is not None else np.random.default_rng()
        n = int(count)
        if n <= 0:
            raise ValueError("count must be positive")

        # Scatter in a cuboid floating above the floor
        pos = np.empty((n, 3), dtype=np.float32)
        pos[:, 0] = (self.rng.random(n) - 0.5) * spread
        pos[:, 1] = self.rng.random(n) * spread * 0.5 + base_height
        pos[:, 2] = (self.rng.random(n) - 0.5) * spread

        self.position = pos
        self.velocity = np.zeros((n, 3), dtype=np.float32)

        self._base = pos.copy()
        self._base.flags.writeable = False

    @classmethod
    def from_params(cls, params, rng=None):
        if rng is None:
            rng = np.random.default_rng(params.seed)
        return cls(params.num_particles, params.spread, params.base_height, rng=rng)

    @classmethod
    def from_positions(cls, base, position=None, velocity=None):
        """Field with an explicit formation (tests, presets)."""
        base = np.asarray(base, dtype=np.float32).reshape(-1, 3)
        obj = cls.__new__(cls)
        obj.rng = np.random.default_rng()
        obj._base = base.copy()
        obj._base.flags.writeable = False
        obj.position = (base.copy() if position is None
                        else np.array(position, dtype=np.float32).reshape(-1, 3))
        obj.velocity = (np.zeros_like(obj.position) if velocity is None
                        else np.array(velocity, dtype=np.float32).reshape(-1, 3))
        if obj.position.shape != base.shape or obj.velocity.shape != base.shape:
            raise ValueError("position/velocity must match base shape")
        return obj

    @property
    def base(self) -> np.ndarray:
        return self._base

    @property
    def count(self) -> int:
        return self._base.shape[0]

    def __len__(self):
        return self.count

    def positions(self) -> np.ndarray:
        view = self.position.view()
        view.flags.writeable = False
        return view

    def snapshot(self) -> np.ndarray:
        """Flat [x0, y0, z0, x1, ...] copy, stable particle order."""
        return self.position.reshape(-1).copy()

    def slices(self, parts: int):
        """Disjoint contiguous ranges covering every particle."""
        parts = max(1, min(int(parts), self.count))
        edges = np.linspace(0, self.count, parts + 1).astype(np.int64)
        return [slice(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]

    def reset(self):
        self.position[:] = self._base
        self.velocity[:] = 0.0

    # -------- diagnostics --------

    def kinetic_energy(self) -> float:
        return float(0.5 * np.sum(self.velocity.astype(np.float64) ** 2))

    def displacement(self) -> float:
        """Mean distance from the rest formation."""
        d = self.position.astype(np.float64) - self._base
        return float(np.mean(np.linalg.norm(d, axis=1)))
