"""
Edge-triggered behavior support.

An EdgeTrigger is the configuration : which port, and which edge.
An EdgeDetector is the per-component runtime latch of the previously sampled value.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Literal, TypeAlias

from partsim.value import UNKNOWN, SignalValue

__all__ = ["EdgeDetector", "EdgeTrigger", "FallingEdge", "RisingEdge"]

EdgeKind: TypeAlias = Literal["rising", "falling"]


@dataclass(frozen=True)
class EdgeTrigger:
    port: str
    edge: EdgeKind = "rising"

    def __post_init__(self):
        if self.edge not in ("rising", "falling"):
            raise ValueError(f"Unexpected edge kind: {self.edge!r}")

    def fires(self, previous: SignalValue, current: SignalValue) -> bool:
        """Whether a previous -> current transition is this edge.

        UNKNOWN at either end is never an edge.
        """
        if previous.is_unknown or current.is_unknown:
            return False
        match self.edge:
            case "rising":
                return not previous.is_asserted and current.is_asserted
            case "falling":
                return previous.is_asserted and not current.is_asserted


def RisingEdge(port: str) -> EdgeTrigger:
    return EdgeTrigger(port, "rising")


def FallingEdge(port: str) -> EdgeTrigger:
    return EdgeTrigger(port, "falling")


class EdgeDetector:
    def __init__(self, trigger: EdgeTrigger):
        self.trigger = trigger
        self.previous: SignalValue = UNKNOWN

    def __repr__(self):
        edge, port = self.trigger.edge, self.trigger.port
        return f"EdgeDetector({edge} {port}, previous={self.previous!r})"

    def check(self, current: SignalValue) -> bool:
        """Test for the edge, without updating the latch."""
        return self.trigger.fires(self.previous, current)

    def latch(self, current: SignalValue):
        self.previous = current

    def reset(self):
        self.previous = UNKNOWN
