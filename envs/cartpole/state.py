"""
Cart-Pole state container.

A single cart-pole object with four visible real-valued attributes and one
hidden solver attribute:
    x          cart position (m)
    x_dot      cart velocity (m/s)
    theta      pole angle from vertical (rad), 0 = upright
    theta_dot  pole angular velocity (rad/s)
    normal_sign  sign (+/-1) of the cart/track normal force in the last
                 step; seeds the corrected model, ignored by the classic one
"""

from collections import OrderedDict
from typing import Dict, Tuple

import numpy as np
import torch

from .params import CartPoleParams


ATT_X = "x"
ATT_X_DOT = "x_dot"
ATT_THETA = "theta"
ATT_THETA_DOT = "theta_dot"
ATT_NORMAL_SIGN = "normal_sign"

ATTRIBUTE_NAMES = (ATT_X, ATT_X_DOT, ATT_THETA, ATT_THETA_DOT, ATT_NORMAL_SIGN)

# Observation ordering used by agents: [x, theta, x_dot, theta_dot]
OBSERVATION_NAMES = (ATT_X, ATT_THETA, ATT_X_DOT, ATT_THETA_DOT)


class Attribute:
    """Metadata for one real-valued state attribute."""

    def __init__(self, name: str, lower: float, upper: float, hidden: bool = False):
        self.name = name
        self.lower = float(lower)
        self.upper = float(upper)
        self.hidden = hidden

    @property
    def limits(self) -> Tuple[float, float]:
        return self.lower, self.upper

    def __repr__(self):
        return f"Attribute({self.name!r}, [{self.lower}, {self.upper}], hidden={self.hidden})"


def cart_pole_attributes(params: CartPoleParams) -> Dict[str, Attribute]:
    """Build the attribute table for the given parameters."""
    return OrderedDict([
        (ATT_X, Attribute(ATT_X, -params.half_track_length, params.half_track_length)),
        (ATT_X_DOT, Attribute(ATT_X_DOT, -params.max_cart_speed, params.max_cart_speed)),
        (ATT_THETA, Attribute(ATT_THETA, -params.angle_range, params.angle_range)),
        (ATT_THETA_DOT, Attribute(ATT_THETA_DOT, -params.max_angle_speed, params.max_angle_speed)),
        (ATT_NORMAL_SIGN, Attribute(ATT_NORMAL_SIGN, -1.0, 1.0, hidden=True)),
    ])


def _checked_normal_sign(value: float) -> float:
    if value != 1.0 and value != -1.0:
        raise ValueError(f"normal_sign must be +1 or -1, got {value}")
    return value


class CartPoleState:
    """
    Mutable cart-pole state.

    Values live in a float64 numpy array indexed by ATTRIBUTE_NAMES.
    The attribute table supplies the (lower, upper) limits consumed by the
    terminal and reward functions. A state is owned by one simulation at
    a time; use copy() to branch.
    """

    def __init__(
        self,
        attributes: Dict[str, Attribute],
        x: float = 0.0,
        x_dot: float = 0.0,
        theta: float = 0.0,
        theta_dot: float = 0.0,
        normal_sign: float = 1.0,
    ):
        self.attributes = attributes
        self.values = np.array([x, x_dot, theta, theta_dot, 1.0], dtype=np.float64)
        self.normal_sign = normal_sign

    def _index(self, name: str) -> int:
        try:
            return ATTRIBUTE_NAMES.index(name)
        except ValueError:
            raise KeyError(f"Unknown cart-pole attribute {name!r}") from None

    def get(self, name: str) -> float:
        return float(self.values[self._index(name)])

    def set(self, name: str, value: float):
        index = self._index(name)
        if name == ATT_NORMAL_SIGN:
            value = _checked_normal_sign(value)
        self.values[index] = value

    def limits(self, name: str) -> Tuple[float, float]:
        """(lower, upper) limits of an attribute."""
        if name not in self.attributes:
            raise KeyError(f"Unknown cart-pole attribute {name!r}")
        return self.attributes[name].limits

    @property
    def x(self) -> float:
        return float(self.values[0])

    @x.setter
    def x(self, value: float):
        self.values[0] = value

    @property
    def x_dot(self) -> float:
        return float(self.values[1])

    @x_dot.setter
    def x_dot(self, value: float):
        self.values[1] = value

    @property
    def theta(self) -> float:
        return float(self.values[2])

    @theta.setter
    def theta(self, value: float):
        self.values[2] = value

    @property
    def theta_dot(self) -> float:
        return float(self.values[3])

    @theta_dot.setter
    def theta_dot(self, value: float):
        self.values[3] = value

    @property
    def normal_sign(self) -> float:
        return float(self.values[4])

    @normal_sign.setter
    def normal_sign(self, value: float):
        self.values[4] = _checked_normal_sign(value)

    def copy(self) -> "CartPoleState":
        state = CartPoleState(self.attributes)
        state.values = self.values.copy()
        return state

    def as_array(self) -> np.ndarray:
        """All five values, hidden attribute included."""
        return self.values.copy()

    def observation(self, device: str = "cpu") -> torch.Tensor:
        """Visible attributes as [x, theta, x_dot, theta_dot]."""
        obs = [self.get(name) for name in OBSERVATION_NAMES]
        return torch.tensor(obs, dtype=torch.float64, device=device)

    def __repr__(self):
        return (
            f"CartPoleState(x={self.x:.4f}, x_dot={self.x_dot:.4f}, "
            f"theta={self.theta:.4f}, theta_dot={self.theta_dot:.4f}, "
            f"normal_sign={self.normal_sign:+.0f})"
        )


def initial_state(
    params: CartPoleParams,
    x: float = 0.0,
    x_dot: float = 0.0,
    theta: float = 0.0,
    theta_dot: float = 0.0,
) -> CartPoleState:
    """
    Create an initial state for the given parameters.

    Defaults to the cart centered and at rest with the pole vertical.
    The normal force sign starts at +1.
    """
    return CartPoleState(
        cart_pole_attributes(params),
        x=x,
        x_dot=x_dot,
        theta=theta,
        theta_dot=theta_dot,
        normal_sign=1.0,
    )
