"""Human-control gate and its stores."""

from .human_control import (
    HumanControlGate,
    InMemoryHumanControlStore,
    PostgresHumanControlStore,
)

__all__ = [
    "HumanControlGate",
    "InMemoryHumanControlStore",
    "PostgresHumanControlStore",
]
