"""
Cart-Pole simulation parameters.

Defaults follow Barto, Sutton, and Anderson (1983), with the corrected
mechanics of Florian (2007) selected unless a classic preset is applied.

Presets flip only the gravity sign and the model selector:
    correct                  gravity > 0, corrected model (default)
    classic_correct_gravity  gravity > 0, classic model
    classic                  gravity < 0, classic model (historical, pole
                             "bounces" near +/- pi/2)
"""

import math
from typing import Optional

import yaml


PRESET_CORRECT = "correct"
PRESET_CLASSIC = "classic"
PRESET_CLASSIC_CORRECT_GRAVITY = "classic_correct_gravity"

PRESETS = (PRESET_CORRECT, PRESET_CLASSIC, PRESET_CLASSIC_CORRECT_GRAVITY)

# Fields that must be strictly positive
_POSITIVE_FIELDS = (
    "half_track_length",
    "angle_range",
    "cart_mass",
    "pole_mass",
    "half_pole_length",
    "time_delta",
    "max_cart_speed",
    "max_angle_speed",
)

# Fields that must be non-negative
_NON_NEGATIVE_FIELDS = (
    "cart_friction",
    "pole_friction",
    "force_mag",
)


class CartPoleParams:
    """
    Physical and integration parameters for one cart-pole simulation.

    Parameters are validated once at construction. They may be switched
    between presets between episodes but should not change mid-episode.

    Preconditions of the dynamics (guaranteed by validation for realistic
    values): total mass, half pole length and the angular denominator
    term 4/3 - m*cos^2(theta)/(M+m) are strictly positive.
    """

    def __init__(
        self,
        half_track_length: float = 2.4,
        angle_range: float = math.pi / 2,
        gravity: float = 9.8,
        cart_mass: float = 1.0,
        pole_mass: float = 0.1,
        half_pole_length: float = 0.5,
        cart_friction: float = 0.0005,
        pole_friction: float = 0.000002,
        force_mag: float = 10.0,
        time_delta: float = 0.02,
        max_cart_speed: float = 6.81,
        max_angle_speed: float = 10.47,  # 12 degrees per 0.02s step
        finite_track: bool = True,
        use_correct_model: bool = True,
    ):
        """
        Initialize cart-pole parameters.

        Args:
            half_track_length: Half length of the track (m)
            angle_range: Maximum pole angle magnitude (rad)
            gravity: Gravitational acceleration (m/s^2), sign selects the
                historical variant
            cart_mass: Cart mass M (kg)
            pole_mass: Pole mass m (kg)
            half_pole_length: Distance from pivot to pole CoM (m)
            cart_friction: Cart/track friction coefficient
            pole_friction: Pole/joint friction coefficient
            force_mag: Magnitude of the force applied by an action (N)
            time_delta: Integration time step (s)
            max_cart_speed: Cart speed clamp (m/s)
            max_angle_speed: Pole angular speed clamp (rad/s)
            finite_track: If False the cart position never changes
            use_correct_model: Corrected (Florian) vs classic dynamics
        """
        self.half_track_length = float(half_track_length)
        self.angle_range = float(angle_range)
        self.gravity = float(gravity)
        self.cart_mass = float(cart_mass)
        self.pole_mass = float(pole_mass)
        self.half_pole_length = float(half_pole_length)
        self.cart_friction = float(cart_friction)
        self.pole_friction = float(pole_friction)
        self.force_mag = float(force_mag)
        self.time_delta = float(time_delta)
        self.max_cart_speed = float(max_cart_speed)
        self.max_angle_speed = float(max_angle_speed)
        self.finite_track = bool(finite_track)
        self.use_correct_model = bool(use_correct_model)

        self._validate()

    def _validate(self):
        for name in _POSITIVE_FIELDS:
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be > 0, got {value}")
        for name in _NON_NEGATIVE_FIELDS:
            value = getattr(self, name)
            if not value >= 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if not math.isfinite(self.gravity):
            raise ValueError(f"gravity must be finite, got {self.gravity}")

    @property
    def total_mass(self) -> float:
        """Cart mass plus pole mass."""
        return self.cart_mass + self.pole_mass

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    def set_to_correct_model(self):
        """Use the corrected mechanics with positive gravity."""
        self.gravity = abs(self.gravity)
        self.use_correct_model = True

    def set_to_incorrect_classic_model(self):
        """Use the classic mechanics with gravity in the wrong direction."""
        self.gravity = -abs(self.gravity)
        self.use_correct_model = False

    def set_to_incorrect_classic_model_with_correct_gravity(self):
        """Use the classic friction terms but positive gravity."""
        self.gravity = abs(self.gravity)
        self.use_correct_model = False

    def apply_preset(self, name: str):
        """Apply one of PRESETS by name."""
        if name == PRESET_CORRECT:
            self.set_to_correct_model()
        elif name == PRESET_CLASSIC:
            self.set_to_incorrect_classic_model()
        elif name == PRESET_CLASSIC_CORRECT_GRAVITY:
            self.set_to_incorrect_classic_model_with_correct_gravity()
        else:
            raise ValueError(f"Unknown preset {name!r}, expected one of {PRESETS}")

    @property
    def preset(self) -> str:
        """Name of the preset matching the current gravity sign and model flag."""
        if self.use_correct_model:
            return PRESET_CORRECT
        if self.gravity < 0:
            return PRESET_CLASSIC
        return PRESET_CLASSIC_CORRECT_GRAVITY

    def max_cart_speed_upper_bound(self) -> float:
        """
        Upper bound on cart speed after a push from one end of the track to the other.

        Uses simplified mechanics: a = F / (M + m), t = sqrt(2 * track / a),
        v = a * t. Does not modify max_cart_speed.
        """
        cart_acceleration = self.force_mag / self.total_mass
        t = math.sqrt(2.0 * (2.0 * self.half_track_length) / cart_acceleration)
        return cart_acceleration * t

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def get_state_dict(self) -> dict:
        return {
            "half_track_length": self.half_track_length,
            "angle_range": self.angle_range,
            "gravity": self.gravity,
            "cart_mass": self.cart_mass,
            "pole_mass": self.pole_mass,
            "half_pole_length": self.half_pole_length,
            "cart_friction": self.cart_friction,
            "pole_friction": self.pole_friction,
            "force_mag": self.force_mag,
            "time_delta": self.time_delta,
            "max_cart_speed": self.max_cart_speed,
            "max_angle_speed": self.max_angle_speed,
            "finite_track": self.finite_track,
            "use_correct_model": self.use_correct_model,
        }

    def load_state_dict(self, state: dict):
        """Overwrite parameters from a dict; unspecified keys are kept."""
        unknown = set(state) - set(self.get_state_dict())
        if unknown:
            raise ValueError(f"Unknown cart-pole parameters: {sorted(unknown)}")
        merged = self.get_state_dict()
        merged.update(state)
        # Validate before touching self
        validated = CartPoleParams(**merged)
        self.__dict__.update(validated.__dict__)

    @classmethod
    def from_dict(cls, config: Optional[dict]) -> "CartPoleParams":
        params = cls()
        if config:
            params.load_state_dict(config)
        return params

    @classmethod
    def from_yaml(cls, path: str) -> "CartPoleParams":
        """Load parameters from a YAML file (missing keys keep defaults)."""
        with open(path, "r") as f:
            config = yaml.safe_load(f)
        return cls.from_dict(config)

    def save_yaml(self, path: str):
        with open(path, "w") as f:
            yaml.dump(self.get_state_dict(), f, default_flow_style=False)

    def __repr__(self):
        return (
            f"CartPoleParams(preset={self.preset!r}, gravity={self.gravity}, "
            f"dt={self.time_delta}, force_mag={self.force_mag}, "
            f"finite_track={self.finite_track})"
        )
