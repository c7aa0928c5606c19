"""
Discrete Event Simulation of hardware Parts.

Provides Components, with ports, event queues, sub-components and behaviour, which
communicate via wires between their Ports.

A Port has a SignalValue, which is one of ZERO, ONE, a multi-bit word or time value,
or UNKNOWN, and a SignalType which wiring checks for compatibility.
Input ports are only ever set by their one driving wire : output ports are only ever
set by the owning component's behavior, with 'write'.

A component's behavior runs in a step only when its scheduling Condition holds, and,
if it has an EdgeTrigger, when the trigger port has just made that transition.
A composite component steps its children with an ExecutionStrategy : either
Sequential, where each child sees its earlier siblings' new outputs, or Concurrent,
where all children see only the values from before the step.

EventQueues carry externally timed events into the simulation.

A Simulation steps a root component, for a number of steps or until a condition.
VcdMonitors record value changes of chosen ports, against a time-reference port.

"""

# Import the major commonly used definitions into the root module.
from .value import LOGIC, ONE, TIME, UNKNOWN, ZERO, SignalType, SignalValue, word
from .errors import QueueOverflowError, SchedulingViolation, TopologyError
from .port import IN, OUT, PERSISTENT, TRANSIENT, Port, PortSpec
from .eventqueue import NO_EVENT, EventQueue, QueueSpec
from .condition import AllDefined, AllOf, Always, Condition, Predicate, QueuePending
from .edge import EdgeTrigger, FallingEdge, RisingEdge
from .strategy import Concurrent, ExecutionStrategy, Sequential
from .component import Component
from .waveform import VcdMonitor, WaveRecord
from .simulation import Simulation

__all__ = [
    "AllDefined",
    "AllOf",
    "Always",
    "Component",
    "Concurrent",
    "Condition",
    "EdgeTrigger",
    "EventQueue",
    "ExecutionStrategy",
    "FallingEdge",
    "IN",
    "LOGIC",
    "NO_EVENT",
    "ONE",
    "OUT",
    "PERSISTENT",
    "Port",
    "PortSpec",
    "Predicate",
    "QueueOverflowError",
    "QueuePending",
    "QueueSpec",
    "RisingEdge",
    "SchedulingViolation",
    "Sequential",
    "SignalType",
    "SignalValue",
    "Simulation",
    "TIME",
    "TRANSIENT",
    "TopologyError",
    "UNKNOWN",
    "VcdMonitor",
    "WaveRecord",
    "ZERO",
    "word",
]
