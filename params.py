import math


class Params:
    """
    All tunable knobs live here so you don't hunt through code.

    Any knob can be overridden by keyword:
        Params(num_particles=2000, drag=0.9)
    """

    def __init__(self, **overrides):
        # Particle cloud
        self.num_particles = 5000
        self.spread = 2.0           # side of the scatter cuboid (x/z)
        self.base_height = 0.5      # lowest y of the scatter, above the floor
        self.seed = None            # None = fresh scatter every run

        # Acoustic trap (spring-damper)
        self.spring_k = 0.05        # default trap stiffness
        self.spring_k_high = 0.2    # stiffness in high-energy mode
        self.drag = 0.95            # velocity multiplier per tick
        self.jitter = 0.005         # half-width of high-energy target jitter

        # Floor (acoustic anchors)
        self.floor_y = 0.0
        self.floor_restitution = 0.5

        # Two-hand extrude: vertical separation of the palms
        self.extrude_threshold = 0.2
        self.extrude_gain = 5.0
        self.extrude_scale = 2.0    # target.y = base.y * (1 + scale * strength)

        # Two-hand snap: palms brought together
        self.snap_distance = 0.1
        self.snap_step = 0.5        # strata spacing

        # One-hand curve: index tip x relative to wrist x
        self.curve_threshold = 0.15
        self.curve_gain = 10.0

        # Landmark indices (21-point hand skeleton)
        self.wrist = 0
        self.index_tip = 8
        self.palm_ref = 9           # middle finger MCP

        # Input hardening (noisy detector spikes)
        self.max_extrude_strength = 5.0
        self.max_curve_angle = 10.0

        # Runtime
        self.workers = 1            # numpy slices per tick (fork/join)
        self.tick_hz = 60.0
        self.max_ticks_per_frame = 4

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise ValueError(f"Unknown parameter: {key}")
            setattr(self, key, value)

        self.validate()

    def validate(self):
        if int(self.num_particles) <= 0:
            raise ValueError("num_particles must be positive")
        if self.spread <= 0:
            raise ValueError("spread must be positive")
        if not 0.0 < self.drag <= 1.0:
            raise ValueError("drag must be in (0, 1]")
        if self.spring_k <= 0 or self.spring_k_high <= 0:
            raise ValueError("spring constants must be positive")
        if self.snap_step <= 0:
            raise ValueError("snap_step must be positive")
        for name in ("jitter", "floor_restitution", "extrude_threshold",
                     "snap_distance", "curve_threshold",
                     "max_extrude_strength", "max_curve_angle"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite value >= 0")
        if int(self.workers) < 1:
            raise ValueError("workers must be >= 1")
        if self.tick_hz <= 0 or int(self.max_ticks_per_frame) < 1:
            raise ValueError("tick_hz and max_ticks_per_frame must be positive")

    def to_dict(self):
        return dict(vars(self))

    @classmethod
    def from_dict(cls, data):
        return cls(**dict(data))

    def __repr__(self):
        return f"Params(num_particles={self.num_particles}, spring_k={self.spring_k}, drag={self.drag})"
