"""
Environments package.

Contains:
- cartpole: Cart-pole balancing with classic and corrected mechanics
"""

from .cartpole import CartPoleEnv, CartPoleParams, CartPoleState

__all__ = ["CartPoleEnv", "CartPoleParams", "CartPoleState"]
