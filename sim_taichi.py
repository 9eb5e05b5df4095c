# pyright: reportInvalidTypeForm=false
import numpy as np
import taichi as ti

from params import Params

_TAICHI_READY = False


def ensure_ti(arch=None):
    global _TAICHI_READY
    if _TAICHI_READY:
        return
    if arch is not None:
        ti.init(arch=arch)
    else:
        try:
            ti.init(arch=ti.gpu)
            print("✅ Taichi GPU (field)")
        except Exception:
            ti.init(arch=ti.cpu)
            print("⚠️ Taichi CPU fallback (field)")
    _TAICHI_READY = True


@ti.data_oriented
class TaichiIntegrator:
    """
    Same tick as sim.ForceFieldIntegrator, one Taichi kernel per tick.

    Keeps the numpy API:
      integ = TaichiIntegrator(field.count, params=params)
      integ.tick(field, gestures)   # uploads, runs, writes back into field

    The ParticleField stays the owner of the state; the Taichi fields are a
    per-tick working copy.
    """

    def __init__(self, count, params=None, arch=None):
        ensure_ti(arch)
        self.params = params or Params()
        self.count = int(count)
        self.ticks = 0

        p = self.params
        self.drag = float(p.drag)
        self.jitter = float(p.jitter)
        self.extrude_scale = float(p.extrude_scale)
        self.snap_step = float(p.snap_step)
        self.floor_y = float(p.floor_y)
        self.restitution = float(p.floor_restitution)

        self.pos = ti.Vector.field(3, dtype=ti.f32, shape=self.count)
        self.vel = ti.Vector.field(3, dtype=ti.f32, shape=self.count)
        self.base = ti.Vector.field(3, dtype=ti.f32, shape=self.count)
        self._bound = None

    def stiffness(self, gestures) -> float:
        if gestures.high_energy.active:
            return self.params.spring_k_high
        return self.params.spring_k

    def tick(self, field, gestures):
        if field.count != self.count:
            raise ValueError(f"field has {field.count} particles, integrator was built for {self.count}")

        if self._bound is not field:
            self.base.from_numpy(np.ascontiguousarray(field.base, dtype=np.float32))
            self._bound = field
        self.pos.from_numpy(np.ascontiguousarray(field.position, dtype=np.float32))
        self.vel.from_numpy(np.ascontiguousarray(field.velocity, dtype=np.float32))

        self._tick_kernel(
            int(gestures.extrude.active), float(max(0.0, gestures.extrude.strength)),
            int(gestures.curve.active), float(gestures.curve.angle),
            int(gestures.snap.active),
            int(gestures.high_energy.active),
            float(self.stiffness(gestures)),
        )

        field.position[:] = self.pos.to_numpy()
        field.velocity[:] = self.vel.to_numpy()
        self.ticks += 1

    @ti.kernel
    def _tick_kernel(self, extrude: ti.i32, strength: ti.f32, curve: ti.i32, angle: ti.f32,
                     snap: ti.i32, high: ti.i32, k: ti.f32):
        for i in self.pos:
            b = self.base[i]
            tx = b[0]
            ty = b[1]
            tz = b[2]

            if extrude != 0:
                ty = b[1] * (1.0 + self.extrude_scale * strength)

            if curve != 0:
                theta = angle * ty
                c = ti.cos(theta)
                s = ti.sin(theta)
                nx = tx * c - tz * s
                nz = tx * s + tz * c
                tx = nx
                tz = nz

            if snap != 0:
                ty = ti.floor(ty / self.snap_step + 0.5) * self.snap_step

            if high != 0:
                tx += (ti.random(ti.f32) * 2.0 - 1.0) * self.jitter
                ty += (ti.random(ti.f32) * 2.0 - 1.0) * self.jitter
                tz += (ti.random(ti.f32) * 2.0 - 1.0) * self.jitter

            p = self.pos[i]
            v = self.vel[i]
            v = (v + (ti.Vector([tx, ty, tz]) - p) * k) * self.drag
            p = p + v

            if p[1] < self.floor_y:
                p[1] = self.floor_y
                v[1] = -v[1] * self.restitution

            self.pos[i] = p
            self.vel[i] = v
