"""
Cart-pole balancing environment.

Classic (Barto, Sutton, Anderson) and corrected (Florian) mechanics,
integrated with one Euler step per action.
"""

from .params import CartPoleParams, PRESETS
from .state import Attribute, CartPoleState, cart_pole_attributes, initial_state
from .dynamics import ClassicDynamics, CorrectedDynamics, make_dynamics, simulate_step
from .cartpole_env import (
    ACTION_LEFT,
    ACTION_RIGHT,
    CartPoleEnv,
    CartPoleRewardFunction,
    CartPoleTerminalFunction,
    MovementAction,
    PDCartPolePolicy,
    movement_actions,
)

__all__ = [
    "CartPoleParams", "PRESETS",
    "Attribute", "CartPoleState", "cart_pole_attributes", "initial_state",
    "ClassicDynamics", "CorrectedDynamics", "make_dynamics", "simulate_step",
    "ACTION_LEFT", "ACTION_RIGHT", "CartPoleEnv", "CartPoleRewardFunction",
    "CartPoleTerminalFunction", "MovementAction", "PDCartPolePolicy", "movement_actions",
]
