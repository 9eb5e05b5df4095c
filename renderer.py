from __future__ import annotations
import math
import numpy as np
import cv2

SILVER = (170, 170, 170)
HOT = (255, 210, 140)
LASER = (255, 255, 0)
LASER_DIM = (68, 51, 0)


class Renderer3D:
    """Lightweight renderer that projects the particle snapshot into a viewport.

    Read-only: takes the flat [x0, y0, z0, ...] snapshot and never writes to it.
    """

    def __init__(self, width: int = 480, height: int = 480, lattice_size: float = 4.0, divisions: int = 10):
        self.width = int(width)
        self.height = int(height)
        self.zoom = 1.0
        self.yaw = 0.0
        self.pitch = 0.38           # ~camera at (0, 2, 5) looking at the cloud
        self.look_y = 1.0
        self.cam_dist = 5.0
        self.lattice_size = float(lattice_size)
        self.divisions = int(divisions)

    # ---------------- orbit controls ----------------

    def orbit(self, d_yaw: float = 0.0, d_pitch: float = 0.0):
        self.yaw = (self.yaw + float(d_yaw)) % (2.0 * math.pi)
        # Never below the floor
        self.pitch = min(math.pi / 2 - 0.05, max(0.0, self.pitch + float(d_pitch)))

    def set_zoom(self, zoom: float):
        self.zoom = min(3.0, max(0.3, float(zoom)))

    # ---------------- projection ----------------

    def _rotation(self):
        cyaw, syaw = math.cos(self.yaw), math.sin(self.yaw)
        cp, sp = math.cos(self.pitch), math.sin(self.pitch)
        Ry = np.array([[cyaw, 0, syaw], [0, 1, 0], [-syaw, 0, cyaw]], dtype=np.float32)
        # camera above the floor looking down
        Rx = np.array([[1, 0, 0], [0, cp, sp], [0, -sp, cp]], dtype=np.float32)
        return Rx @ Ry

    def project(self, pts: np.ndarray):
        """World Nx3 -> (sx, sy, depth, visible)."""
        pts = np.asarray(pts, dtype=np.float32).reshape(-1, 3)
        cam = (pts - np.array([0.0, self.look_y, 0.0], dtype=np.float32)) @ self._rotation().T
        zz = cam[:, 2] + self.cam_dist
        f = self.width * (0.55 + 0.45 * self.zoom)
        visible = zz > 0.1
        safe = np.where(visible, zz, 1.0)
        sx = self.width * 0.5 + (cam[:, 0] / safe) * f
        sy = self.height * 0.55 - (cam[:, 1] / safe) * f
        return sx, sy, zz, visible

    def _line(self, img, a, b, color):
        sx, sy, _, vis = self.project(np.array([a, b], dtype=np.float32))
        if not vis.all():
            return
        cv2.line(img, (int(sx[0]), int(sy[0])), (int(sx[1]), int(sy[1])), color, 1, cv2.LINE_AA)

    def _draw_lattice(self, img):
        half = self.lattice_size / 2
        for i in range(self.divisions + 1):
            t = -half + i * (self.lattice_size / self.divisions)
            color = LASER if i == self.divisions // 2 else LASER_DIM
            self._line(img, (t, 0.0, -half), (t, 0.0, half), color)
            self._line(img, (-half, 0.0, t), (half, 0.0, t), color)

        # Laser pillars at the corners
        for x, z in ((-half, half), (half, half), (half, -half), (-half, -half)):
            self._line(img, (x, 0.0, z), (x, self.lattice_size, z), LASER)

    # ---------------- render ----------------

    def render(self, snapshot, high_energy: bool = False, gestures=None, glow: bool = True):
        img = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        self._draw_lattice(img)

        pts = np.asarray(snapshot, dtype=np.float32).reshape(-1, 3)
        if len(pts):
            sx, sy, _, vis = self.project(pts)
            xs = sx.astype(np.int32)
            ys = sy.astype(np.int32)
            inside = vis & (xs >= 0) & (xs < self.width) & (ys >= 0) & (ys < self.height)
            img[ys[inside], xs[inside]] = HOT if high_energy else SILVER

        if glow:
            blur = cv2.GaussianBlur(img, (0, 0), 3)
            img = cv2.addWeighted(img, 0.8, blur, 0.6, 0)

        if gestures is not None:
            names = gestures.active_names()
            label = " + ".join(names) if names else "idle"
            cv2.putText(img, label, (10, 24), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1, cv2.LINE_AA)

        cv2.rectangle(img, (6, 6), (self.width - 6, self.height - 6), (90, 140, 160), 1, cv2.LINE_AA)
        return img
