"""
Cart-Pole dynamics and one-step Euler simulation.

Two interchangeable models compute (x_ddot, theta_ddot, normal_sign):

ClassicDynamics (Barto, Sutton, Anderson 1983):
    theta_ddot = [g*sin(theta)
                  + cos(theta) * (-F - m*l*theta_dot^2*sin(theta) + mu_c*sgn(x_dot)) / (M+m)
                  - mu_p*theta_dot / (m*l)]
                 / [l * (4/3 - m*cos^2(theta)/(M+m))]
    x_ddot = [F + m*l*(theta_dot^2*sin(theta) - theta_ddot*cos(theta)) - mu_c*sgn(x_dot)] / (M+m)

CorrectedDynamics (Florian 2007): friction is gated by sgn(N * x_dot), where
the normal force N depends on theta_ddot. The previous step's sign of N is
used as a trial; if the resulting N disagrees, theta_ddot is recomputed once
with the new sign. No further iterations are made.

Sign conventions differ on purpose:
    sgn(...) in friction terms is the mathematical sign (0 at 0)
    the resolved normal sign is +1 for N >= 0, else -1 (never 0)
"""

import math
from typing import NamedTuple, Optional, Union

import numpy as np

from .params import CartPoleParams
from .state import CartPoleState


class Derivatives(NamedTuple):
    x_ddot: float
    theta_ddot: float
    normal_sign: float


def math_sign(value: float) -> float:
    """Mathematical sign: -1, 0 or +1."""
    return float(np.sign(value))


def normal_sign_of(value: float) -> float:
    """Sign of a normal force: +1 for value >= 0, otherwise -1."""
    return 1.0 if value >= 0 else -1.0


class ClassicDynamics:
    """Classic (physically incorrect) cart-pole model. Single evaluation."""

    def __init__(self, params: CartPoleParams):
        self.params = params

    def derivatives(self, state: CartPoleState, force: float) -> Derivatives:
        """
        Compute accelerations at the current state.

        Args:
            state: Current state (position unused)
            force: Signed force on the cart (N)

        Returns:
            Derivatives; normal_sign is passed through unchanged
        """
        p = self.params
        x_dot = state.x_dot
        theta = state.theta
        theta_dot = state.theta_dot

        total_mass = p.total_mass
        ml = p.pole_mass * p.half_pole_length
        sin_theta = math.sin(theta)
        cos_theta = math.cos(theta)
        friction = p.cart_friction * math_sign(x_dot)

        cos_factor = (-force - ml * theta_dot ** 2 * sin_theta + friction) / total_mass
        pole_friction_term = (p.pole_friction * theta_dot) / ml

        numerator = p.gravity * sin_theta + cos_theta * cos_factor - pole_friction_term
        denominator = p.half_pole_length * (4.0 / 3.0 - p.pole_mass * cos_theta ** 2 / total_mass)
        theta_ddot = numerator / denominator

        x_num = force + ml * (theta_dot ** 2 * sin_theta - theta_ddot * cos_theta) - friction
        x_ddot = x_num / total_mass

        return Derivatives(x_ddot, theta_ddot, state.normal_sign)


class CorrectedDynamics:
    """Corrected cart-pole model with normal-force sign resolution."""

    def __init__(self, params: CartPoleParams):
        self.params = params

    def angle_accel(self, x_dot: float, theta: float, theta_dot: float,
                    normal_sign: float, force: float) -> float:
        """Pole angular acceleration for an assumed normal force sign."""
        p = self.params
        total_mass = p.total_mass
        ml = p.pole_mass * p.half_pole_length
        sin_theta = math.sin(theta)
        cos_theta = math.cos(theta)
        friction_sign = math_sign(normal_sign * x_dot)

        cos_factor = (
            -force
            - ml * theta_dot ** 2 * (sin_theta + p.cart_friction * friction_sign * cos_theta)
        ) / total_mass
        friction_term = p.cart_friction * p.gravity * friction_sign

        numerator = p.gravity * sin_theta + cos_theta * cos_factor + friction_term
        denominator = p.half_pole_length * (
            4.0 / 3.0
            - (p.pole_mass * cos_theta / total_mass) * (cos_theta - p.cart_mass * friction_sign)
        )
        return numerator / denominator

    def normal_force(self, theta: float, theta_dot: float, theta_ddot: float) -> float:
        """Normal force between cart and track."""
        p = self.params
        return p.total_mass * p.gravity - p.pole_mass * p.half_pole_length * (
            theta_ddot * math.sin(theta) + theta_dot ** 2 * math.cos(theta)
        )

    def linear_accel(self, x_dot: float, theta: float, theta_dot: float,
                     normal: float, force: float, theta_ddot: float) -> float:
        """Cart acceleration given the normal force and pole acceleration."""
        p = self.params
        x_num = (
            force
            + p.pole_mass * p.half_pole_length
            * (theta_dot ** 2 * math.sin(theta) - theta_ddot * math.cos(theta))
            - p.cart_friction * normal * math_sign(normal * x_dot)
        )
        return x_num / p.total_mass

    def derivatives(self, state: CartPoleState, force: float) -> Derivatives:
        """
        Compute accelerations, resolving the normal force sign.

        The state's normal_sign is the trial sign. At most one
        re-evaluation of theta_ddot is made when the trial is wrong.
        """
        x_dot = state.x_dot
        theta = state.theta
        theta_dot = state.theta_dot
        trial_sign = state.normal_sign

        theta_ddot = self.angle_accel(x_dot, theta, theta_dot, trial_sign, force)
        normal = self.normal_force(theta, theta_dot, theta_ddot)
        new_sign = normal_sign_of(normal)
        if new_sign != trial_sign:
            theta_ddot = self.angle_accel(x_dot, theta, theta_dot, new_sign, force)
        x_ddot = self.linear_accel(x_dot, theta, theta_dot, normal, force, theta_ddot)

        return Derivatives(x_ddot, theta_ddot, new_sign)


def make_dynamics(params: CartPoleParams) -> Union[ClassicDynamics, CorrectedDynamics]:
    """Select the dynamics model for the current preset."""
    if params.use_correct_model:
        return CorrectedDynamics(params)
    return ClassicDynamics(params)


def simulate_step(
    params: CartPoleParams,
    state: CartPoleState,
    direction: float,
    dynamics: Optional[Union[ClassicDynamics, CorrectedDynamics]] = None,
) -> CartPoleState:
    """
    Advance the state by one time step using forward Euler.

    The state is modified in place and returned. Position and angle are
    clamped to their ranges; hitting either limit zeroes the matching
    velocity. Otherwise velocities are clamped to their max speeds. With an
    infinite track the position is never written.

    Args:
        params: Simulation parameters
        state: State to advance (mutated)
        direction: Force direction, multiplied by params.force_mag
            (normally -1 or +1; 0 applies no force)
        dynamics: Model to use (selected from params if None)

    Returns:
        The same state object, now holding the successor state
    """
    if dynamics is None:
        dynamics = make_dynamics(params)

    force = direction * params.force_mag
    x0 = state.x
    x_dot0 = state.x_dot
    theta0 = state.theta
    theta_dot0 = state.theta_dot

    derivs = dynamics.derivatives(state, force)

    dt = params.time_delta
    x = x0 + dt * x_dot0
    x_dot = x_dot0 + dt * derivs.x_ddot
    theta = theta0 + dt * theta_dot0
    theta_dot = theta_dot0 + dt * derivs.theta_ddot

    # Inelastic collision with the track ends
    if abs(x) > params.half_track_length:
        x = math.copysign(params.half_track_length, x)
        x_dot = 0.0

    if abs(x_dot) > params.max_cart_speed:
        x_dot = math.copysign(params.max_cart_speed, x_dot)

    if abs(theta) > params.angle_range:
        theta = math.copysign(params.angle_range, theta)
        theta_dot = 0.0

    if abs(theta_dot) > params.max_angle_speed:
        theta_dot = math.copysign(params.max_angle_speed, theta_dot)

    if params.finite_track:
        state.x = x
    state.x_dot = x_dot
    state.theta = theta
    state.theta_dot = theta_dot
    state.normal_sign = derivs.normal_sign

    return state
