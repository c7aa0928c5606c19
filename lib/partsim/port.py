"""
Port support.

A Port is a typed, directional endpoint owned by exactly one Component.
It has a committed "value", which is what all readers see, and a "pending" value,
which is what the owner's behavior has written during the current step.
The owner's commit publishes the pending value, after which the wiring table
delivers it to connected input ports.

PERSISTENT ports keep their last value when not rewritten.
TRANSIENT ports go back to their initial value at any commit where they were not
rewritten.

Like a Signal, a port has a list of connections which are notified whenever its
committed value changes.  We use these for tracing : see Port.trace/untrace().
The trace operation is configurable by changing the value of TRACE_HANDLER_CLIENT :
its default is the 'default_trace_action' function, which prints to the terminal.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Literal, TypeAlias

from partsim.errors import SchedulingViolation
from partsim.value import LOGIC, UNKNOWN, SignalType, SignalValue, ValueTypes

if TYPE_CHECKING:
    from partsim.component import Component
    from partsim.eventqueue import EventQueue

Direction: TypeAlias = Literal["in", "out"]
Semantic: TypeAlias = Literal["persistent", "transient"]

IN: Direction = "in"
OUT: Direction = "out"
PERSISTENT: Semantic = "persistent"
TRANSIENT: Semantic = "transient"

PortClient = Callable[[int, SignalValue, Any], None]


@dataclass(frozen=True)
class PortSpec:
    """Declaration of a port.

    Examples
    --------
    >>> PortSpec("clk", IN)
    >>> PortSpec("count", OUT, word(8), initial=0)
    """

    name: str
    direction: Direction
    type: SignalType = LOGIC
    initial: ValueTypes = None
    semantic: Semantic = PERSISTENT

    def __post_init__(self):
        if self.direction not in (IN, OUT):
            msg = f"Port {self.name!r} has bad direction {self.direction!r}."
            raise ValueError(msg)
        if self.semantic not in (PERSISTENT, TRANSIENT):
            raise ValueError(f"Port {self.name!r} has bad semantic {self.semantic!r}.")
        if "." in self.name or not self.name:
            raise ValueError(f"Bad port name : {self.name!r}.")
        if not self.type.accepts(self.initial):
            msg = (
                f"Initial value {self.initial!r} of port {self.name!r} "
                f"is not a valid {self.type}."
            )
            raise ValueError(msg)


@dataclass
class PortConnection:
    """A client associated with a specific per-connection context."""

    call: PortClient
    call_context: Any


def default_trace_action(step: int, value: SignalValue, port: Port):
    """The default trace operation = print port change details to the terminal.

    N.B. the passed 'context' argument is always the port which this is a trace of.
    """
    msg = f"@{step}: Port<{port.path}> : {port.previous_value} ==> {value}"
    print(msg)


# : A single common definition for what trace actions do.
TRACE_HANDLER_CLIENT: PortClient = default_trace_action


class Port:
    def __init__(self, spec: PortSpec, owner: Component):
        self.spec = spec
        self.owner = owner
        self.name = spec.name
        self.direction = spec.direction
        self.type = spec.type
        self.semantic = spec.semantic
        self.initial = SignalValue(spec.initial)
        # The single upstream connection, set by wiring.
        self.driver: Port | EventQueue | None = None
        # Index in the simulation port arena, set when a Simulation is built.
        self.id: int | None = None
        self.connected_clients: list[PortConnection] = []
        self._trace_connection: PortConnection | None = None
        self.reset()

    def reset(self):
        self.value: SignalValue = self.initial
        self.previous_value: SignalValue = UNKNOWN
        self.ever_defined = not self.initial.is_unknown
        self._pending: SignalValue | None = None

    def __str__(self):
        return f"Port<{self.path} = {self.value!s}>"

    def __repr__(self):
        return f"Port({self.path!r}, {self.direction!r}, {self.type}, {self.value!r})"

    @property
    def path(self) -> str:
        return f"{self.owner.path}.{self.name}"

    @property
    def written(self) -> bool:
        return self._pending is not None

    def stage(self, value: ValueTypes):
        """Record a pending value, to be published at the next commit."""
        value = SignalValue(value)
        if not self.type.accepts(value):
            msg = f"value {value!r} written to {self.name!r} is not a valid {self.type}"
            raise SchedulingViolation(self.owner.path, msg)
        self._pending = value

    def commit(self, step: int) -> bool:
        """Publish the pending value.  Return whether the value changed."""
        if self._pending is not None:
            new_value, self._pending = self._pending, None
        elif self.semantic == TRANSIENT:
            new_value = self.initial
        else:
            return False
        return self._set(step, new_value)

    def deliver(self, step: int, value: SignalValue) -> bool:
        """Set the value directly, as done by wiring for input ports."""
        return self._set(step, SignalValue(value))

    def _set(self, step: int, value: SignalValue) -> bool:
        if value == self.value:
            return False
        self.previous_value = self.value
        self.value = value
        if not value.is_unknown:
            self.ever_defined = True
        for connection in self.connected_clients:
            connection.call(step, value, connection.call_context)
        return True

    def connect(
        self, call: PortClient, call_context=None, index: int = -1
    ) -> PortConnection:
        """Create a connection to this port.

        The 'call' callback (aka 'client') is invoked whenever the committed value
        changes.
        The index governs where the connection is installed in the (current)
        connections list, for ordering control: -1[default] --> last; 0 --> first.
        """
        connection = PortConnection(call, call_context)
        if index < 0:
            index = len(self.connected_clients) + index + 1
        self.connected_clients[index:index] = [connection]
        return connection

    def disconnect(self, connection: PortConnection):
        """Remove a given connection."""
        while connection in self.connected_clients:
            self.connected_clients.remove(connection)

    # Tracing
    #   This operates via the public 'connection' mechanism, and uses a private
    #   instance variable "self._trace_connection", which is created in init.

    @staticmethod
    def _call_trace(step: int, value: SignalValue, port: Port):
        """The client callback for trace connections.

        All traces call this, which then calls TRACE_HANDLER_CLIENT.
        This enables you to modify **all** trace operations by setting
        TRACE_HANDLER_CLIENT.
        """
        TRACE_HANDLER_CLIENT(step, value, port)  # N.B. the port is the context

    def trace(self):
        """Start tracing this port."""
        if self._trace_connection is None:
            # N.B. always insert trace at **start** of connections.
            self._trace_connection = self.connect(self._call_trace, self, index=0)

    def untrace(self):
        """Stop tracing this port."""
        if self._trace_connection is not None:
            self.disconnect(self._trace_connection)
        self._trace_connection = None
