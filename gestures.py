# gestures.py
"""
Hand landmarks -> control signals.

classify(hands) turns one frame of hand observations (0, 1 or 2 hands) into a
GestureState. It keeps no history: every frame starts from the idle state and
only the gestures asserted by the current frame are active.

  two hands : extrude (palms stacked and pulled apart), snap (palms together)
  one hand  : curve (index tip swept sideways relative to the wrist)
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
import logging
import math

from params import Params

logger = logging.getLogger(__name__)

_DEFAULT_PARAMS = None


def _defaults() -> Params:
    global _DEFAULT_PARAMS
    if _DEFAULT_PARAMS is None:
        _DEFAULT_PARAMS = Params()
    return _DEFAULT_PARAMS


@dataclass(frozen=True)
class ExtrudeGesture:
    active: bool = False
    strength: float = 0.0
    axis_value: float = 0.0     # y1 + y2, opaque vertical reference


@dataclass(frozen=True)
class CurveGesture:
    active: bool = False
    angle: float = 0.0


@dataclass(frozen=True)
class SnapGesture:
    active: bool = False


@dataclass(frozen=True)
class HighEnergyMode:
    active: bool = False


@dataclass(frozen=True)
class GestureState:
    """Control signals for one tick. Replaced wholesale, never mutated."""
    extrude: ExtrudeGesture = field(default_factory=ExtrudeGesture)
    curve: CurveGesture = field(default_factory=CurveGesture)
    snap: SnapGesture = field(default_factory=SnapGesture)
    high_energy: HighEnergyMode = field(default_factory=HighEnergyMode)

    @classmethod
    def idle(cls) -> "GestureState":
        return cls()

    def with_high_energy(self, active: bool) -> "GestureState":
        return replace(self, high_energy=HighEnergyMode(bool(active)))

    @property
    def any_active(self) -> bool:
        return (self.extrude.active or self.curve.active or self.snap.active
                or self.high_energy.active)

    def active_names(self) -> tuple[str, ...]:
        names = []
        if self.extrude.active:
            names.append("extrude")
        if self.curve.active:
            names.append("curve")
        if self.snap.active:
            names.append("snap")
        if self.high_energy.active:
            names.append("high_energy")
        return tuple(names)

    def to_dict(self) -> dict:
        return {
            "extrude": {
                "active": self.extrude.active,
                "strength": self.extrude.strength,
                "axis_value": self.extrude.axis_value,
            },
            "curve": {"active": self.curve.active, "angle": self.curve.angle},
            "snap": {"active": self.snap.active},
            "high_energy": {"active": self.high_energy.active},
        }


# ---------------- landmark access ----------------

def _landmarks_of(hand):
    if hand is None:
        return None
    if isinstance(hand, dict):
        return hand.get("landmarks", hand.get("landmark", None))
    lms = getattr(hand, "landmark", None)    # MediaPipe NormalizedLandmarkList
    if lms is not None:
        return lms
    return hand


def landmark_xy(hand, index: int):
    """(x, y) of keypoint `index`, or None if it can't be read."""
    lms = _landmarks_of(hand)
    try:
        pt = lms[index]
        if hasattr(pt, "x"):
            x, y = float(pt.x), float(pt.y)
        elif isinstance(pt, Mapping):       # {"x": .., "y": .., "z": ..} as posted as JSON
            x, y = float(pt["x"]), float(pt["y"])
        else:
            x, y = float(pt[0]), float(pt[1])
    except (TypeError, IndexError, KeyError, ValueError, OverflowError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return x, y


def _read_hand(hand, p: Params):
    wrist = landmark_xy(hand, p.wrist)
    index = landmark_xy(hand, p.index_tip)
    palm = landmark_xy(hand, p.palm_ref)
    if wrist is None or index is None or palm is None:
        return None
    return wrist, index, palm


def _clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


# ---------------- rules ----------------

def _two_hands(palm1, palm2, p: Params) -> GestureState:
    dx = abs(palm1[0] - palm2[0])
    dy = abs(palm1[1] - palm2[1])

    extrude = ExtrudeGesture()
    if dy > p.extrude_threshold and dy > dx:
        strength = (dy - p.extrude_threshold) * p.extrude_gain
        extrude = ExtrudeGesture(
            active=True,
            strength=_clamp(strength, 0.0, p.max_extrude_strength),
            axis_value=palm1[1] + palm2[1],
        )

    snap = SnapGesture(active=math.sqrt(dx * dx + dy * dy) < p.snap_distance)
    return GestureState(extrude=extrude, snap=snap)


def _one_hand(wrist, index, p: Params) -> GestureState:
    twist = index[0] - wrist[0]
    if abs(twist) > p.curve_threshold:
        angle = _clamp(twist * p.curve_gain, -p.max_curve_angle, p.max_curve_angle)
        return GestureState(curve=CurveGesture(active=True, angle=angle))
    return GestureState.idle()


def classify(hands, params: Params | None = None) -> GestureState:
    """
    One frame of hand observations -> GestureState.

    Never raises. Hands missing a required keypoint count as not observed;
    anything unreadable yields the idle state. high_energy is always off here,
    it is layered on by the caller.
    """
    p = params or _defaults()
    if hands is None:
        return GestureState.idle()

    try:
        observed = list(hands)
    except TypeError:
        return GestureState.idle()
    if not observed:
        return GestureState.idle()

    valid = []
    for i, hand in enumerate(observed):
        read = _read_hand(hand, p)
        if read is None:
            logger.debug("Dropping malformed hand observation #%d", i)
            continue
        valid.append(read)

    if len(valid) >= 2:
        (_, _, palm1), (_, _, palm2) = valid[0], valid[1]
        return _two_hands(palm1, palm2, p)
    if len(valid) == 1:
        wrist, index, _ = valid[0]
        return _one_hand(wrist, index, p)
    return GestureState.idle()
