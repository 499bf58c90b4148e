#!/usr/bin/env python3
"""
Cart-Pole Dynamics Tests

Verifies the physics core:
- D1: Classic model (mathematical sign, closed form)
- D2: Corrected model (normal force sign resolution)
- D3: Euler step and clamping
- D4: Reference scenarios (equilibrium, single push, wall, bounce)

Usage:
    python test_cartpole_dynamics.py
"""

import math
import sys

import numpy as np

from envs.cartpole import (
    CartPoleParams,
    CartPoleTerminalFunction,
    ClassicDynamics,
    CorrectedDynamics,
    initial_state,
    make_dynamics,
    simulate_step,
)
from envs.cartpole.dynamics import math_sign, normal_sign_of

# Global counters
TESTS_PASSED = 0
TESTS_FAILED = 0

TOL = 1e-12


def check(name, passed, message=""):
    """Record a check result and fail the enclosing test if it did not pass."""
    global TESTS_PASSED, TESTS_FAILED
    if passed:
        TESTS_PASSED += 1
        print(f"  [PASS] {name}")
    else:
        TESTS_FAILED += 1
        print(f"  [FAIL] {name}: {message}")
    assert passed, f"{name}: {message}"


def test_D1_classic_model():
    print("\n" + "="*50)
    print("Test D1: Classic Model")
    print("="*50)

    # D1.1: sign conventions
    check(
        "D1.1 Mathematical sign is 0 at 0",
        math_sign(0.0) == 0.0 and math_sign(-2.5) == -1.0 and math_sign(3.0) == 1.0,
        f"got {math_sign(0.0)}, {math_sign(-2.5)}, {math_sign(3.0)}"
    )
    check(
        "D1.2 Normal sign is +1 at 0",
        normal_sign_of(0.0) == 1.0 and normal_sign_of(-1e-9) == -1.0,
        f"got {normal_sign_of(0.0)}, {normal_sign_of(-1e-9)}"
    )

    # D1.3: no friction contribution when the cart is stationary
    params = CartPoleParams()
    params.set_to_incorrect_classic_model_with_correct_gravity()
    model = ClassicDynamics(params)
    d = model.derivatives(initial_state(params), 0.0)
    check(
        "D1.3 Stationary upright state has zero accelerations",
        d.x_ddot == 0.0 and d.theta_ddot == 0.0,
        f"x_ddot={d.x_ddot}, theta_ddot={d.theta_ddot}"
    )

    # D1.4: closed form with moving cart and pole
    x_dot, theta, theta_dot, force = 0.7, 0.1, -0.4, 10.0
    state = initial_state(params, x_dot=x_dot, theta=theta, theta_dot=theta_dot)
    d = model.derivatives(state, force)

    m, l, M, g = params.pole_mass, params.half_pole_length, params.cart_mass, params.gravity
    mu_c, mu_p = params.cart_friction, params.pole_friction
    s_mass = M + m
    num = (g * math.sin(theta)
           + math.cos(theta) * (-force - m * l * theta_dot ** 2 * math.sin(theta) + mu_c) / s_mass
           - mu_p * theta_dot / (m * l))
    expected_a2 = num / (l * (4.0 / 3.0 - m * math.cos(theta) ** 2 / s_mass))
    expected_x2 = (force + m * l * (theta_dot ** 2 * math.sin(theta) - expected_a2 * math.cos(theta)) - mu_c) / s_mass
    check(
        "D1.4 Classic accelerations match closed form",
        abs(d.theta_ddot - expected_a2) < TOL and abs(d.x_ddot - expected_x2) < TOL,
        f"got ({d.x_ddot}, {d.theta_ddot}), expected ({expected_x2}, {expected_a2})"
    )

    # D1.5: classic model passes the normal sign through
    state.normal_sign = -1.0
    d = model.derivatives(state, force)
    check(
        "D1.5 Classic model leaves normal sign unchanged",
        d.normal_sign == -1.0,
        f"normal_sign={d.normal_sign}"
    )

    print(f"\nClassic Model: 5 checks completed")


def test_D2_corrected_model():
    print("\n" + "="*50)
    print("Test D2: Corrected Model")
    print("="*50)

    params = CartPoleParams()

    # D2.1: upright rest has positive normal force
    model = CorrectedDynamics(params)
    d = model.derivatives(initial_state(params), 0.0)
    check(
        "D2.1 Upright rest: zero accelerations, positive normal sign",
        d.x_ddot == 0.0 and d.theta_ddot == 0.0 and d.normal_sign == 1.0,
        f"{d}"
    )

    # D2.2: fast spinning pole lifts off the track (negative normal force)
    state = initial_state(params, theta_dot=20.0)
    d = model.derivatives(state, 0.0)
    n = model.normal_force(0.0, 20.0, d.theta_ddot)
    check(
        "D2.2 Fast pole spin gives negative normal sign",
        n < 0 and d.normal_sign == -1.0,
        f"normal={n}, normal_sign={d.normal_sign}"
    )

    # D2.3: a wrong trial sign triggers exactly one re-evaluation
    model = CorrectedDynamics(params)
    trial_signs = []
    angle_accel = model.angle_accel

    def counting_angle_accel(x_dot, theta, theta_dot, normal_sign, force):
        trial_signs.append(normal_sign)
        return angle_accel(x_dot, theta, theta_dot, normal_sign, force)

    model.angle_accel = counting_angle_accel

    state = initial_state(params, x_dot=1.0)
    state.normal_sign = -1.0
    d = model.derivatives(state, 0.0)
    check(
        "D2.3 Sign flip re-evaluates once",
        trial_signs == [-1.0, 1.0] and d.normal_sign == 1.0,
        f"trial signs={trial_signs}, resolved={d.normal_sign}"
    )
    check(
        "D2.4 Final theta_ddot uses resolved sign",
        d.theta_ddot == angle_accel(1.0, 0.0, 0.0, 1.0, 0.0),
        f"theta_ddot={d.theta_ddot}"
    )
    check(
        "D2.5 Wrong and right trial signs differ when cart moves",
        angle_accel(1.0, 0.0, 0.0, -1.0, 0.0) != angle_accel(1.0, 0.0, 0.0, 1.0, 0.0),
        "friction gating had no effect"
    )

    # D2.6: feeding the resolved sign back is stable
    del trial_signs[:]
    state.normal_sign = d.normal_sign
    d2 = model.derivatives(state, 0.0)
    check(
        "D2.6 Resolved sign reproduces itself without re-evaluation",
        trial_signs == [1.0] and d2.normal_sign == d.normal_sign,
        f"trial signs={trial_signs}, resolved={d2.normal_sign}"
    )

    # D2.7: the step persists the resolved sign
    state = initial_state(params)
    state.normal_sign = -1.0
    simulate_step(params, state, 0.0)
    check(
        "D2.7 Step stores resolved normal sign",
        state.normal_sign == 1.0,
        f"normal_sign={state.normal_sign}"
    )

    # D2.8: linear acceleration uses normal force for friction
    n = 10.0
    x2 = model.linear_accel(2.0, 0.0, 0.0, n, 0.0, 0.0)
    expected = -params.cart_friction * n / params.total_mass
    check(
        "D2.8 Cart friction scales with normal force",
        abs(x2 - expected) < TOL,
        f"x_ddot={x2}, expected={expected}"
    )

    print(f"\nCorrected Model: 8 checks completed")


def test_D3_step_and_clamping():
    print("\n" + "="*50)
    print("Test D3: Euler Step and Clamping")
    print("="*50)

    # D3.1: clamp invariant over random states, both models
    rng = np.random.default_rng(0)
    violations = []
    for preset in ("correct", "classic", "classic_correct_gravity"):
        params = CartPoleParams()
        params.apply_preset(preset)
        for _ in range(300):
            state = initial_state(
                params,
                x=rng.uniform(-params.half_track_length, params.half_track_length),
                x_dot=rng.uniform(-params.max_cart_speed, params.max_cart_speed),
                theta=rng.uniform(-params.angle_range, params.angle_range),
                theta_dot=rng.uniform(-params.max_angle_speed, params.max_angle_speed),
            )
            state.normal_sign = rng.choice([-1.0, 1.0])
            direction = rng.choice([-1.0, 0.0, 1.0, 3.0])
            simulate_step(params, state, direction)
            if (abs(state.x) > params.half_track_length
                    or abs(state.x_dot) > params.max_cart_speed
                    or abs(state.theta) > params.angle_range
                    or abs(state.theta_dot) > params.max_angle_speed
                    or state.normal_sign not in (-1.0, 1.0)):
                violations.append((preset, state))
    check(
        "D3.1 All attributes within limits after a step",
        not violations,
        f"{len(violations)} violations, first: {violations[:1]}"
    )

    params = CartPoleParams()

    # D3.2: wall collision zeroes velocity
    state = initial_state(params, x=2.39, x_dot=1.0)
    simulate_step(params, state, 1.0)
    check(
        "D3.2 Wall collision clamps position and stops cart",
        state.x == params.half_track_length and state.x_dot == 0.0,
        f"x={state.x}, x_dot={state.x_dot}"
    )
    state = initial_state(params, x=-2.39, x_dot=-1.0)
    simulate_step(params, state, -1.0)
    check(
        "D3.3 Left wall collision is symmetric",
        state.x == -params.half_track_length and state.x_dot == 0.0,
        f"x={state.x}, x_dot={state.x_dot}"
    )

    # D3.4: angle limit zeroes angular velocity
    state = initial_state(params, theta=1.56, theta_dot=1.0)
    simulate_step(params, state, 0.0)
    check(
        "D3.4 Angle limit clamps angle and stops pole",
        state.theta == params.angle_range and state.theta_dot == 0.0,
        f"theta={state.theta}, theta_dot={state.theta_dot}"
    )

    # D3.5: speed clamps
    state = initial_state(params, x_dot=params.max_cart_speed)
    simulate_step(params, state, 1.0)
    check(
        "D3.5 Cart speed clamped",
        state.x_dot == params.max_cart_speed,
        f"x_dot={state.x_dot}"
    )
    state = initial_state(params, theta_dot=params.max_angle_speed)
    simulate_step(params, state, -1.0)
    check(
        "D3.6 Angular speed clamped",
        state.theta_dot == params.max_angle_speed,
        f"theta_dot={state.theta_dot}"
    )

    # D3.7: infinite track never moves the cart
    params = CartPoleParams(finite_track=False)
    state = initial_state(params, x=0.5, x_dot=3.0)
    for _ in range(200):
        simulate_step(params, state, 1.0)
    check(
        "D3.7 Infinite track keeps position bit-identical",
        state.x == 0.5 and state.x_dot != 0.0,
        f"x={state.x!r}, x_dot={state.x_dot}"
    )

    # D3.8: strategy selection follows the preset
    params = CartPoleParams()
    is_corrected = isinstance(make_dynamics(params), CorrectedDynamics)
    params.set_to_incorrect_classic_model()
    is_classic = isinstance(make_dynamics(params), ClassicDynamics)
    check(
        "D3.8 Dynamics model selected by preset",
        is_corrected and is_classic,
        f"corrected={is_corrected}, classic={is_classic}"
    )

    print(f"\nStep and Clamping: 8 checks completed")


def test_D4_scenarios():
    print("\n" + "="*50)
    print("Test D4: Reference Scenarios")
    print("="*50)

    # D4.1: unstable equilibrium is preserved without perturbation
    params = CartPoleParams()
    state = initial_state(params)
    for _ in range(100):
        simulate_step(params, state, 0.0)
    check(
        "D4.1 Upright equilibrium preserved for 100 steps",
        all(abs(v) < TOL for v in (state.x, state.x_dot, state.theta, state.theta_dot)),
        f"{state}"
    )

    # D4.2: one push from rest matches a hand-computed Euler step
    state = initial_state(params)
    simulate_step(params, state, 1.0)

    m, l, M = params.pole_mass, params.half_pole_length, params.cart_mass
    s_mass = M + m
    dt = params.time_delta
    a2 = (-params.force_mag / s_mass) / (l * (4.0 / 3.0 - m / s_mass))
    x2 = (params.force_mag - m * l * a2) / s_mass
    check(
        "D4.2 One push: only velocities change",
        state.x == 0.0 and state.theta == 0.0,
        f"x={state.x}, theta={state.theta}"
    )
    check(
        "D4.3 One push: velocities match reference",
        abs(state.x_dot - dt * x2) < TOL and abs(state.theta_dot - dt * a2) < TOL,
        f"x_dot={state.x_dot} (expected {dt * x2}), theta_dot={state.theta_dot} (expected {dt * a2})"
    )
    check(
        "D4.4 One push: cart accelerates right, pole rotates back",
        state.x_dot > 0 and state.theta_dot < 0,
        f"x_dot={state.x_dot}, theta_dot={state.theta_dot}"
    )

    x_dot1, theta_dot1 = state.x_dot, state.theta_dot
    simulate_step(params, state, 1.0)
    check(
        "D4.5 Second push: cart moved right, pole tipped back",
        state.x == dt * x_dot1 and state.theta == dt * theta_dot1 and state.x > 0 and state.theta < 0,
        f"x={state.x}, theta={state.theta}"
    )

    # D4.6: terminal fires exactly on the step the wall clamp triggers
    params = CartPoleParams()
    terminal = CartPoleTerminalFunction(max_absolute_angle=math.pi)
    state = initial_state(params)
    mismatches = []
    hit_wall = False
    for k in range(1000):
        overshoot = abs(state.x + params.time_delta * state.x_dot) > params.half_track_length
        simulate_step(params, state, 1.0)
        if terminal.is_terminal(state) != overshoot:
            mismatches.append(k)
        if overshoot:
            hit_wall = True
            break
    check(
        "D4.6 Terminal exactly when wall clamp triggers",
        hit_wall and not mismatches and state.x == params.half_track_length,
        f"hit_wall={hit_wall}, mismatched steps={mismatches}, x={state.x}"
    )

    # D4.7: historical gravity makes the pole bounce before the limit
    theta0 = math.pi / 2 - 0.05
    classic = CartPoleParams()
    classic.set_to_incorrect_classic_model()
    state = initial_state(classic, theta=theta0, theta_dot=0.5)
    classic_thetas, classic_rates = [], []
    for _ in range(10):
        simulate_step(classic, state, 0.0)
        classic_thetas.append(state.theta)
        classic_rates.append(state.theta_dot)
    check(
        "D4.7 Classic preset: angular velocity reverses without clamping",
        min(classic_rates) < 0 and max(classic_thetas) < classic.angle_range,
        f"rates={classic_rates}, max theta={max(classic_thetas)}"
    )

    correct = CartPoleParams()
    state = initial_state(correct, theta=theta0, theta_dot=0.5)
    correct_thetas, correct_rates = [], []
    for _ in range(10):
        simulate_step(correct, state, 0.0)
        correct_thetas.append(state.theta)
        correct_rates.append(state.theta_dot)
    check(
        "D4.8 Corrected preset: pole keeps falling to the angle limit",
        min(correct_rates) >= 0 and max(correct_thetas) == correct.angle_range,
        f"rates={correct_rates}, max theta={max(correct_thetas)}"
    )

    print(f"\nReference Scenarios: 8 checks completed")


def run_all_tests():
    """Run all dynamics tests."""
    global TESTS_PASSED, TESTS_FAILED

    print("\n" + "#"*60)
    print("# CART-POLE DYNAMICS TESTS")
    print("#"*60)

    for test_fn in (test_D1_classic_model, test_D2_corrected_model,
                    test_D3_step_and_clamping, test_D4_scenarios):
        try:
            test_fn()
        except AssertionError:
            print(f"  {test_fn.__name__} stopped at first failure")

    # Summary
    print("\n" + "="*60)
    print("DYNAMICS TEST SUMMARY")
    print("="*60)
    total = TESTS_PASSED + TESTS_FAILED
    print(f"Total:  {total}")
    print(f"Passed: {TESTS_PASSED}")
    print(f"Failed: {TESTS_FAILED}")

    if TESTS_FAILED == 0:
        print("\nAll dynamics tests PASSED!")
        return 0
    else:
        print(f"\n{TESTS_FAILED} test(s) FAILED!")
        return 1


if __name__ == "__main__":
    exit_code = run_all_tests()
    sys.exit(exit_code)
