"""
Bounded event queues.

An EventQueue is an input channel of a Component, carrying externally timed events
into the simulation.  Events are put in from outside the stepping loop with
'enqueue', and taken out inside a step, either by the owning component's behavior
('Component.pop') or by the wiring table when the queue is wired to a port.

One producer + one consumer may run in different threads.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
import threading
from typing import TYPE_CHECKING

from partsim.errors import QueueOverflowError
from partsim.port import IN, Direction
from partsim.value import LOGIC, SignalType, SignalValue, ValueTypes

if TYPE_CHECKING:
    from partsim.component import Component

__all__ = ["NO_EVENT", "EventQueue", "QueueSpec", "QueuedEvent"]


@dataclass(frozen=True)
class QueueSpec:
    """Declaration of an event queue."""

    name: str
    capacity: int = 1
    type: SignalType = LOGIC
    direction: Direction = IN

    def __post_init__(self):
        if self.direction != IN:
            raise ValueError(f"Event queue {self.name!r} must be an input.")
        if self.capacity < 1:
            raise ValueError(f"Event queue {self.name!r} needs a positive capacity.")
        if "." in self.name or not self.name:
            raise ValueError(f"Bad event queue name : {self.name!r}.")


@dataclass(frozen=True)
class QueuedEvent:
    time: float
    value: SignalValue


# What dequeue returns from an empty queue.
NO_EVENT = None


class EventQueue:
    def __init__(self, spec: QueueSpec, owner: Component):
        self.spec = spec
        self.owner = owner
        self.name = spec.name
        self.capacity = spec.capacity
        self.type = spec.type
        self.direction = spec.direction
        self._events: deque[QueuedEvent] = deque()
        self._lock = threading.Lock()

    def __repr__(self):
        return f"EventQueue({self.path!r}, {len(self)}/{self.capacity})"

    def __len__(self):
        with self._lock:
            return len(self._events)

    @property
    def path(self) -> str:
        return f"{self.owner.path}.{self.name}"

    @property
    def pending(self) -> bool:
        return len(self) > 0

    def enqueue(self, value: ValueTypes, time: float = 0.0):
        """Add an event at the tail.

        Raises QueueOverflowError if the queue is already at capacity : the queue is
        then left unchanged.
        """
        value = SignalValue(value)
        if not self.type.accepts(value):
            raise ValueError(f"{self.path}: {value!r} is not a valid {self.type}.")
        with self._lock:
            if len(self._events) >= self.capacity:
                msg = f"{self.path}: queue full, capacity={self.capacity}."
                raise QueueOverflowError(msg)
            self._events.append(QueuedEvent(time, value))

    def dequeue(self) -> QueuedEvent | None:
        """Pop the head event, or return NO_EVENT if empty."""
        with self._lock:
            if not self._events:
                return NO_EVENT
            return self._events.popleft()

    def peek(self) -> QueuedEvent | None:
        with self._lock:
            if not self._events:
                return NO_EVENT
            return self._events[0]

    def clear(self):
        with self._lock:
            self._events.clear()
