"""
Cart-Pole Balancing Environment

The classic cart-pole task of Barto, Sutton, and Anderson (1983), with the
corrected mechanics of Florian (2007) by default:
- Action: push left or right with a fixed force magnitude
- State: [x, x_dot, theta, theta_dot] plus a hidden normal force sign
- Reward: 0 every step, -1 on failure
- Termination: cart at either end of the track, or |theta| >= 12 degrees

Physics are integrated with one forward Euler step per action (see
dynamics.py). The track can be made infinite, in which case the cart
position never changes.

References:
    Barto, Sutton, Anderson. "Neuronlike adaptive elements that can solve
    difficult learning control problems." IEEE SMC (1983).
    Florian. "Correct equations for the dynamics of the cart-pole system."
    Coneural (2007).
"""

import math
import numpy as np
import torch
from typing import Callable, Dict, Optional, Tuple

from .dynamics import simulate_step
from .params import CartPoleParams
from .state import ATT_X, CartPoleState, cart_pole_attributes, initial_state


ACTION_LEFT = "left"
ACTION_RIGHT = "right"

DEFAULT_MAX_ABSOLUTE_ANGLE = 12.0 * (math.pi / 180.0)  # ~0.2094 rad

FAIL_REWARD = -1.0


class MovementAction:
    """Applies force to the cart in a fixed direction."""

    def __init__(self, name: str, direction: float, params: CartPoleParams):
        """
        Args:
            name: Action name
            direction: Multiplier on params.force_mag (-1 left, +1 right)
            params: Parameters shared with the environment
        """
        self.name = name
        self.direction = direction
        self.params = params

    def perform(self, state: CartPoleState) -> CartPoleState:
        """Simulate one step with the model chosen by the current preset."""
        return simulate_step(self.params, state, self.direction)

    def __repr__(self):
        return f"MovementAction({self.name!r}, direction={self.direction:+g})"


def movement_actions(params: CartPoleParams) -> Dict[str, MovementAction]:
    return {
        ACTION_LEFT: MovementAction(ACTION_LEFT, -1.0, params),
        ACTION_RIGHT: MovementAction(ACTION_RIGHT, 1.0, params),
    }


def _is_failure(state: CartPoleState, max_absolute_angle: float) -> bool:
    x_min, x_max = state.limits(ATT_X)
    x = state.x
    if x <= x_min or x >= x_max:
        return True
    return abs(state.theta) >= max_absolute_angle


class CartPoleTerminalFunction:
    """
    Terminates when the cart reaches either end of the track or the pole
    angle reaches max_absolute_angle (default 12 degrees).

    Track ends are read from the state's x attribute limits.
    """

    def __init__(self, max_absolute_angle: float = DEFAULT_MAX_ABSOLUTE_ANGLE):
        self.max_absolute_angle = max_absolute_angle

    def is_terminal(self, state: CartPoleState) -> bool:
        return _is_failure(state, self.max_absolute_angle)

    __call__ = is_terminal


class CartPoleRewardFunction:
    """Returns -1 on the same failure conditions as the terminal function, else 0."""

    def __init__(self, max_absolute_angle: float = DEFAULT_MAX_ABSOLUTE_ANGLE):
        self.max_absolute_angle = max_absolute_angle

    def reward(self, state: Optional[CartPoleState], action, next_state: CartPoleState) -> float:
        """Only next_state is used; state and action are accepted for signature compatibility."""
        if _is_failure(next_state, self.max_absolute_angle):
            return FAIL_REWARD
        return 0.0

    __call__ = reward


class CartPoleEnv:
    """
    Cart-Pole environment with a Gym-style step interface.

    Observation: [x, theta, x_dot, theta_dot] (float64 tensor)
    Action: direction in {-1, +1} (a number, a tensor whose sign is used,
        or a MovementAction)
    Reward: 0, or -1 on failure
    """

    def __init__(
        self,
        params: Optional[CartPoleParams] = None,
        max_absolute_angle: float = DEFAULT_MAX_ABSOLUTE_ANGLE,
        max_steps: int = 1000,
        device: str = "cpu",
    ):
        """
        Initialize cart-pole environment.

        Args:
            params: Simulation parameters (defaults if None)
            max_absolute_angle: Failure angle threshold (rad)
            max_steps: Episode length before truncation
            device: Torch device for observations
        """
        self.params = params if params is not None else CartPoleParams()
        self.device = device
        self.max_steps = max_steps

        self.terminal_fn = CartPoleTerminalFunction(max_absolute_angle)
        self.reward_fn = CartPoleRewardFunction(max_absolute_angle)
        self.actions = movement_actions(self.params)

        self.state = initial_state(self.params)

        # Episode tracking
        self.steps = 0
        self.terminated = False

        # Dimensions
        self.obs_dim = 4
        self.act_dim = 1

    @property
    def episode_in_progress(self) -> bool:
        return self.steps > 0 and not self.terminated and self.steps < self.max_steps

    def apply_preset(self, name: str):
        """Switch preset between episodes. Does not reset the state."""
        if self.episode_in_progress:
            raise RuntimeError("Cannot change cart-pole preset during an episode")
        self.params.apply_preset(name)

    def reset(
        self,
        noise_scale: float = 0.0,
        initial: Optional[CartPoleState] = None,
    ) -> torch.Tensor:
        """
        Reset the environment.

        Args:
            noise_scale: If > 0, each visible attribute is drawn uniformly
                from [-noise_scale, noise_scale]
            initial: Explicit starting state (copied; attribute limits
                are rebuilt from this environment's params)

        Returns:
            Initial observation
        """
        self.steps = 0
        self.terminated = False

        if initial is not None:
            self.state = initial.copy()
            # Track bounds for terminal/reward must match the stepper
            self.state.attributes = cart_pole_attributes(self.params)
        elif noise_scale > 0:
            self.state = initial_state(
                self.params,
                x=np.random.uniform(-noise_scale, noise_scale),
                x_dot=np.random.uniform(-noise_scale, noise_scale),
                theta=np.random.uniform(-noise_scale, noise_scale),
                theta_dot=np.random.uniform(-noise_scale, noise_scale),
            )
        else:
            self.state = initial_state(self.params)

        return self._get_obs()

    def _get_obs(self) -> torch.Tensor:
        return self.state.observation(self.device)

    def _direction(self, action) -> float:
        if isinstance(action, MovementAction):
            return action.direction
        if isinstance(action, str):
            return self.actions[action].direction
        if isinstance(action, torch.Tensor):
            value = action.squeeze().item()
            return 1.0 if value >= 0 else -1.0
        return float(action)

    def step(self, action) -> Tuple[torch.Tensor, torch.Tensor, bool, bool, dict]:
        """
        Take a step in the environment.

        Args:
            action: Direction, action name, tensor or MovementAction

        Returns:
            obs: Observation after step
            reward: 0, or -1 on failure
            terminated: True if the cart hit the track end or the pole fell
            truncated: True if max steps reached
            info: Additional information
        """
        if self.terminated:
            # Environment already terminated, return zero reward
            return self._get_obs(), torch.tensor(0.0, dtype=torch.float64), True, False, {}

        direction = self._direction(action)
        prev_state = self.state.copy()
        simulate_step(self.params, self.state, direction)
        self.steps += 1

        self.terminated = self.terminal_fn.is_terminal(self.state)
        truncated = self.steps >= self.max_steps
        reward = torch.tensor(
            self.reward_fn.reward(prev_state, direction, self.state),
            dtype=torch.float64,
            device=self.device,
        )

        info = {
            "x": self.state.x,
            "x_dot": self.state.x_dot,
            "theta": self.state.theta,
            "theta_deg": math.degrees(self.state.theta),
            "theta_dot": self.state.theta_dot,
            "normal_sign": self.state.normal_sign,
            "force": direction * self.params.force_mag,
            "terminated": self.terminated,
            "steps": self.steps,
        }

        return self._get_obs(), reward, self.terminated, truncated, info

    def rollout(
        self,
        policy_fn: Callable[[torch.Tensor], float],
        horizon: int,
        noise_scale: float = 0.0,
        initial: Optional[CartPoleState] = None,
    ) -> dict:
        """
        Run one episode with a fixed policy.

        Args:
            policy_fn: Maps an observation to an action
            horizon: Maximum rollout steps
            noise_scale: Initial state noise
            initial: Explicit starting state

        Returns:
            Dictionary with total_return, trajectory and episode_length
        """
        obs = self.reset(noise_scale, initial)
        total_return = 0.0
        trajectory = []

        for t in range(horizon):
            action = policy_fn(obs)
            obs, reward, terminated, truncated, info = self.step(action)
            total_return += reward.item()
            trajectory.append(info)
            if terminated or truncated:
                break

        return {
            "total_return": total_return,
            "trajectory": trajectory,
            "episode_length": len(trajectory),
            "terminated": self.terminated,
            "final_theta": trajectory[-1]["theta"] if trajectory else self.state.theta,
        }


class PDCartPolePolicy:
    """
    Bang-bang PD controller for cart-pole balancing.

    Pushes in the direction of:
        s = Kp_theta * theta + Kd_theta * theta_dot - Kp_x * x - Kd_x * x_dot
    Pushing right gives the pole a negative angular acceleration, so a
    pole leaning right (theta > 0) is caught by pushing right.
    """

    def __init__(
        self,
        Kp_x: float = 0.05,
        Kd_x: float = 0.2,
        Kp_theta: float = 10.0,
        Kd_theta: float = 1.0,
    ):
        """
        Args:
            Kp_x: Proportional gain for cart position
            Kd_x: Derivative gain for cart velocity
            Kp_theta: Proportional gain for pole angle
            Kd_theta: Derivative gain for pole angular velocity
        """
        self.Kp_x = Kp_x
        self.Kd_x = Kd_x
        self.Kp_theta = Kp_theta
        self.Kd_theta = Kd_theta

    def __call__(self, obs: torch.Tensor) -> float:
        """
        Args:
            obs: Observation [x, theta, x_dot, theta_dot]

        Returns:
            Direction, -1.0 or +1.0
        """
        x = obs[0].item()
        theta = obs[1].item()
        x_dot = obs[2].item()
        theta_dot = obs[3].item()

        s = (
            self.Kp_theta * theta
            + self.Kd_theta * theta_dot
            - self.Kp_x * x
            - self.Kd_x * x_dot
        )
        return 1.0 if s >= 0 else -1.0


if __name__ == "__main__":
    print("Testing CartPoleEnv...")

    env = CartPoleEnv()
    policy = PDCartPolePolicy()

    print(f"Preset: {env.params.preset}")
    print(f"Cart mass M: {env.params.cart_mass:.2f} kg")
    print(f"Pole mass m: {env.params.pole_mass:.2f} kg")
    print(f"Cart speed upper bound: {env.params.max_cart_speed_upper_bound():.2f} m/s")

    obs = env.reset(noise_scale=0.01)
    total_reward = 0.0

    for step in range(500):
        action = policy(obs)
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += reward.item()

        if step % 100 == 0:
            print(f"Step {step}: x={info['x']:.3f}, theta={info['theta_deg']:.1f}deg, reward={total_reward:.0f}")

        if terminated or truncated:
            print(f"Episode ended at step {step}: terminated={terminated}, truncated={truncated}")
            break

    print(f"\nTotal reward: {total_reward:.0f}")
