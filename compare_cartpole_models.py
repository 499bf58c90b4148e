#!/usr/bin/env python3
"""
Compare Cart-Pole Mechanics Presets

Runs the same initial state under the three presets:
- correct: Florian's corrected mechanics
- classic_correct_gravity: classic friction terms, positive gravity
- classic: classic mechanics with gravity in the wrong direction

Starting near 90 degrees makes the difference obvious: with the historical
gravity sign the pole "bounces" back before reaching the angle limit.

Usage:
    python compare_cartpole_models.py [--steps 50] [--theta-init 1.52] [--no-plot]
"""

import argparse
import math
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np

from envs.cartpole import PRESETS, CartPoleParams, initial_state, simulate_step


def run_preset(
    base_params: CartPoleParams,
    preset: str,
    theta_init: float,
    theta_dot_init: float,
    direction: float,
    steps: int,
) -> Dict[str, List[float]]:
    """Simulate one preset from the given initial pole state."""
    params = CartPoleParams.from_dict(base_params.get_state_dict())
    params.apply_preset(preset)
    state = initial_state(params, theta=theta_init, theta_dot=theta_dot_init)

    history = {"t": [0.0], "x": [state.x], "theta": [state.theta], "theta_dot": [state.theta_dot]}
    for k in range(1, steps + 1):
        simulate_step(params, state, direction)
        history["t"].append(k * params.time_delta)
        history["x"].append(state.x)
        history["theta"].append(state.theta)
        history["theta_dot"].append(state.theta_dot)

    return history


def count_reversals(values: List[float]) -> int:
    """Number of strict sign changes, ignoring zeros."""
    signs = np.sign(np.asarray(values))
    signs = signs[signs != 0]
    return int(np.sum(signs[1:] != signs[:-1]))


def plot_histories(histories: Dict[str, Dict[str, List[float]]], angle_range: float,
                   save_path: Optional[str] = None):
    """Plot pole angle and angular velocity for each preset."""
    fig, axes = plt.subplots(1, 2, figsize=(12, 4))
    fig.suptitle("Cart-Pole Mechanics Presets", fontsize=14)

    ax = axes[0]
    for name, h in histories.items():
        ax.plot(h["t"], np.degrees(h["theta"]), label=name)
    ax.axhline(y=math.degrees(angle_range), color='gray', linestyle='--', alpha=0.5)
    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Pole Angle (deg)")
    ax.set_title("Angle")
    ax.legend()
    ax.grid(True, alpha=0.3)

    ax = axes[1]
    for name, h in histories.items():
        ax.plot(h["t"], h["theta_dot"], label=name)
    ax.axhline(y=0, color='gray', linestyle='--', alpha=0.5)
    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Angular Velocity (rad/s)")
    ax.set_title("Angular Velocity")
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150)
        print(f"Saved plot to {save_path}")

    plt.show()


def main():
    parser = argparse.ArgumentParser(description="Compare cart-pole mechanics presets")
    parser.add_argument("--config", type=str, default=None, help="YAML parameter file")
    parser.add_argument("--steps", type=int, default=50, help="Simulation steps")
    parser.add_argument("--theta-init", type=float, default=math.pi / 2 - 0.05, help="Initial pole angle (rad)")
    parser.add_argument("--theta-dot-init", type=float, default=0.5, help="Initial angular velocity (rad/s)")
    parser.add_argument("--direction", type=float, default=0.0, help="Force direction each step")
    parser.add_argument("--save-plot", type=str, default=None, help="Save plot path")
    parser.add_argument("--no-plot", action="store_true", help="Skip plotting")
    args = parser.parse_args()

    if args.config:
        params = CartPoleParams.from_yaml(args.config)
    else:
        params = CartPoleParams()

    print("Cart-Pole Preset Comparison")
    print("=" * 50)
    print(f"Initial theta: {math.degrees(args.theta_init):.1f} deg, theta_dot: {args.theta_dot_init:.2f} rad/s")
    print(f"Direction: {args.direction:+g}, steps: {args.steps}, dt: {params.time_delta}")
    print()

    histories = {}
    for preset in PRESETS:
        h = run_preset(params, preset, args.theta_init, args.theta_dot_init, args.direction, args.steps)
        histories[preset] = h
        at_limit = sum(1 for th in h["theta"] if abs(th) >= params.angle_range)
        print(
            f"{preset:<24} final theta={math.degrees(h['theta'][-1]):7.2f} deg  "
            f"theta_dot reversals={count_reversals(h['theta_dot'])}  "
            f"steps at angle limit={at_limit}"
        )

    if not args.no_plot:
        plot_histories(histories, params.angle_range, save_path=args.save_plot)


if __name__ == "__main__":
    main()
