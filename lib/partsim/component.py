import logging
from typing import Callable, Iterator

from partsim.condition import Always, Condition
from partsim.edge import EdgeDetector, EdgeTrigger
from partsim.errors import SchedulingViolation, TopologyError
from partsim.eventqueue import EventQueue, QueuedEvent, QueueSpec
from partsim.port import IN, OUT, Port, PortSpec
from partsim.strategy import ExecutionStrategy, Sequential
from partsim.value import SignalValue, ValueTypes

__all__ = ["Component"]

logger = logging.getLogger(__name__)

BehaviorType = Callable[["Component"], None]


class Component:
    """
    Object to simulate a hardware part, with ports, behaviour and sub-parts.

    Component.ports are the named Ports : inputs are delivered by wiring, outputs are
        written by the behavior.
    Component.queues are EventQueues, which carry externally timed events in.
    Component.children are sub-components, stepped by the Execution Strategy.
    The behavior is either the 'behavior' argument, or the 'behave' method of a
        subclass.  It can call :
        * 'read' to get the current value of one of its own ports
        * 'write' to set a new value of one of its own outputs
        * 'pop' to take the next event from one of its own queues

    The declarations can also be given as class attributes of a subclass, which any
    keyword arguments override.
    """

    PORTS: list[PortSpec] = []
    QUEUES: list[QueueSpec] = []
    CONDITION: Condition = Always()
    EDGE: EdgeTrigger | None = None
    STRATEGY: ExecutionStrategy = Sequential()

    def __init__(
        self,
        name: str,
        *,
        ports: list[PortSpec] | None = None,
        queues: list[QueueSpec] | None = None,
        children: "list[Component] | dict[str, Component] | None" = None,
        condition: Condition | None = None,
        edge: EdgeTrigger | None = None,
        strategy: ExecutionStrategy | None = None,
        behavior: BehaviorType | None = None,
        monitors: list | None = None,
    ):
        if not name or "." in name:
            msg = "component names must be non-empty, without '.'."
            raise TopologyError(repr(name), msg)
        self.name = name
        # Read-only back-reference, only used to make paths.
        self.parent: Component | None = None
        self.ports: dict[str, Port] = {}
        self.queues: dict[str, EventQueue] = {}
        self.children: dict[str, Component] = {}
        self.monitors = list(monitors or [])
        self.wires: list[tuple[Port | EventQueue, Port]] = []
        self._frozen = False
        # Set while the behavior runs : enables write + pop, and error context.
        self._active = False
        self._ran = False
        self.step: int | None = None

        for spec in self.PORTS if ports is None else ports:
            self.add_port(spec)
        for spec in self.QUEUES if queues is None else queues:
            self.add_queue(spec)
        match children:
            case None:
                pass
            case dict():
                for child_name, child in children.items():
                    if child_name != child.name:
                        msg = (
                            f"child {child.name!r} is declared under name "
                            f"{child_name!r}."
                        )
                        raise TopologyError(self.path, msg)
                    self.add_child(child)
            case _:
                for child in children:
                    self.add_child(child)

        self.condition = self.CONDITION if condition is None else condition
        for kind, arg in self.condition.arg_names():
            names = self.ports if kind == "port" else self.queues
            if arg not in names:
                msg = f"condition {self.condition!r} reads unknown {kind} {arg!r}."
                raise TopologyError(self.path, msg)

        self.edge = self.EDGE if edge is None else edge
        self._edge_detector: EdgeDetector | None = None
        if self.edge is not None:
            port = self.ports.get(self.edge.port)
            if port is None or port.direction != IN:
                msg = f"edge trigger {self.edge.port!r} is not an input port."
                raise TopologyError(self.path, msg)
            self._edge_detector = EdgeDetector(self.edge)

        self.strategy = self.STRATEGY if strategy is None else strategy
        self._behavior = behavior

    def __repr__(self):
        return f"{self.__class__.__name__}({self.path!r})"

    @property
    def path(self) -> str:
        if self.parent is None:
            return self.name
        return f"{self.parent.path}.{self.name}"

    def walk(self) -> Iterator["Component"]:
        """This component and all descendants, parents first, in declaration order."""
        yield self
        for child in self.children.values():
            yield from child.walk()

    # Construction.
    # All of these are only possible before a Simulation is built on the design.

    def _check_unfrozen(self):
        if self._frozen:
            msg = "topology is fixed once simulation is built."
            raise TopologyError(self.path, msg)

    def _check_unique(self, name: str, what: str):
        if name in self.ports or name in self.queues or name in self.children:
            raise TopologyError(self.path, f"duplicate {what} name {name!r}.")

    def add_port(self, spec: PortSpec) -> Port:
        """Create a port.

        Ports are normally created in init, from the 'ports' argument or class PORTS.

        Examples
        --------
        >>> self.add_port(PortSpec("out1", OUT, initial=0))
        """
        self._check_unfrozen()
        self._check_unique(spec.name, "port")
        port = Port(spec, self)
        self.ports[spec.name] = port
        return port

    def add_queue(self, spec: QueueSpec) -> EventQueue:
        self._check_unfrozen()
        self._check_unique(spec.name, "event queue")
        queue = EventQueue(spec, self)
        self.queues[spec.name] = queue
        return queue

    def add_child(self, child: "Component") -> "Component":
        self._check_unfrozen()
        if not isinstance(child, Component):
            msg = f"Unexpected type {type(child)} for child : {child!r}."
            raise ValueError(msg)
        if child.parent is not None:
            msg = f"already a child of {child.parent.path!r}."
            raise TopologyError(child.path, msg)
        self._check_unique(child.name, "child")
        child.parent = self
        self.children[child.name] = child
        return child

    def resolve(self, path: "str | Port | EventQueue | Component"):
        """Find a port, event queue or sub-component from a dotted relative path.

        Examples
        --------
        >>> top.resolve("cpu.alu.result")
        """
        if not isinstance(path, str):
            return path
        *component_names, last = path.split(".")
        component = self
        for name in component_names:
            child = component.children.get(name)
            if child is None:
                msg = f"no such component {name!r}."
                raise TopologyError(f"{self.path}.{path}", msg)
            component = child
        for table in (component.ports, component.queues, component.children):
            if last in table:
                return table[last]
        msg = f"no port, queue or child {last!r}."
        raise TopologyError(f"{self.path}.{path}", msg)

    def _check_wire_type(self, source: Port | EventQueue, destination: Port):
        if destination.driver is not None:
            msg = (
                f"input {destination.path!r} is already driven by "
                f"{destination.driver.path!r}, cannot also connect {source.path!r}."
            )
            raise TopologyError(self.path, msg)
        if not source.type.compatible(destination.type):
            msg = (
                f"type mismatch : {source.path!r} is {source.type}, "
                f"{destination.path!r} is {destination.type}."
            )
            raise TopologyError(self.path, msg)

    def wire(self, source: "str | Port", destination: "str | Port"):
        """Connect a source port to a destination port.

        Paths are relative to this component.  The allowed connections are :
          * a child output to a child input (siblings, or a child back to itself)
          * one of our inputs to a child input (passing an input down)
          * a child output to one of our outputs (passing an output up)

        Examples
        --------
        >>> top.wire("counter.count", "display.value")
        """
        self._check_unfrozen()
        src, dst = self.resolve(source), self.resolve(destination)
        if not isinstance(src, Port) or not isinstance(dst, Port):
            msg = f"cannot wire {source!r} -> {destination!r} : both must be ports."
            raise TopologyError(self.path, msg)

        def relation(port: Port) -> str:
            if port.owner is self:
                return "self"
            if port.owner in self.children.values():
                return "child"
            return "other"

        pairing = (src.direction, relation(src), dst.direction, relation(dst))
        match pairing:
            case ("out", "child", "in", "child"):
                pass  # siblings
            case ("in", "self", "in", "child"):
                pass  # passed down
            case ("out", "child", "out", "self"):
                pass  # passed up
            case _:
                msg = (
                    f"cannot wire {src.direction} port {src.path!r} to "
                    f"{dst.direction} port {dst.path!r}."
                )
                raise TopologyError(self.path, msg)
        self._check_wire_type(src, dst)
        dst.driver = src
        self.wires.append((src, dst))
        logger.debug("wired %s -> %s", src.path, dst.path)

    def wire_event(self, queue: "str | EventQueue", target: "str | Port"):
        """Deliver the events of a queue to an input port, one per step.

        Examples
        --------
        >>> top.wire_event("ticks", "clock.tick")
        """
        self._check_unfrozen()
        src, dst = self.resolve(queue), self.resolve(target)
        if not isinstance(src, EventQueue):
            raise TopologyError(self.path, f"{queue!r} is not an event queue.")
        local = [self, *self.children.values()]
        if src.owner not in local:
            msg = f"queue {src.path!r} is not ours, or a child's."
            raise TopologyError(self.path, msg)
        if not isinstance(dst, Port) or dst.direction != IN or dst.owner not in local:
            msg = f"{target!r} is not an input port of ours, or of a child."
            raise TopologyError(self.path, msg)
        self._check_wire_type(src, dst)
        dst.driver = src
        self.wires.append((src, dst))
        logger.debug("wired events %s -> %s", src.path, dst.path)

    def interface(self) -> list[PortSpec]:
        """The declared ports, with their reset values, in declaration order.

        This is what an external HDL generator maps onto an entity port list.
        """
        return [port.spec for port in self.ports.values()]

    # Behavior + the calls it can make.

    def behave(self):
        """The component behavior : override in subclasses."""
        if self._behavior is not None:
            self._behavior(self)

    def _own_port(self, name: str, action: str) -> Port:
        port = self.ports.get(name)
        if port is None:
            msg = f"cannot {action} {name!r} : not a port of this component."
            raise SchedulingViolation(self.path, msg, self.step)
        return port

    def read(self, name: str) -> SignalValue:
        """The current value of one of our ports."""
        return self._own_port(name, "read").value

    def write(self, name: str, value: ValueTypes):
        """Set a new value on one of our outputs.

        The new value is published when this component commits, at the end of its
        evaluation.  Only possible from within the behavior.

        Examples
        --------
        >>> self.write("out_0", ONE)
        """
        port = self._own_port(name, "write")
        if not self._active:
            msg = f"write to {name!r} from outside the component behavior."
            raise SchedulingViolation(self.path, msg, self.step)
        if port.direction != OUT:
            msg = f"write to input port {name!r}."
            raise SchedulingViolation(self.path, msg, self.step)
        port.stage(value)

    def pop(self, name: str) -> QueuedEvent | None:
        """Take the next event from one of our queues, or None if it is empty."""
        queue = self.queues.get(name)
        if queue is None:
            msg = f"cannot pop {name!r} : not a queue of this component."
            raise SchedulingViolation(self.path, msg, self.step)
        if not self._active:
            msg = f"pop from {name!r} outside the component behavior."
            raise SchedulingViolation(self.path, msg, self.step)
        return queue.dequeue()

    # Stepping, called by the simulation + execution strategies.

    def evaluate(self, sim, step: int) -> bool:
        """Run one step of this component : the behavior, then the children.

        Returns whether the component was scheduled, i.e. whether its outputs need a
        commit.
        """
        self.step = step
        self._ran = False
        if not self.condition(self):
            return False
        run_body = True
        detector = self._edge_detector
        if detector is not None:
            sampled = self.ports[detector.trigger.port].value
            run_body = detector.check(sampled)
        if run_body:
            self._active = True
            try:
                self.behave()
            finally:
                self._active = False
        if detector is not None:
            detector.latch(sampled)
        if self.children:
            self.strategy.run(sim, self, step)
        # N.B. an edge that did not fire leaves the outputs alone.
        self._ran = run_body or bool(self.children)
        return self._ran

    def commit(self, step: int) -> list[Port]:
        """Publish pending outputs.  Return the outputs, for propagation."""
        outputs = [port for port in self.ports.values() if port.direction == OUT]
        if self._ran:
            for port in outputs:
                port.commit(step)
        return outputs

    def reset(self):
        for port in self.ports.values():
            port.reset()
        for queue in self.queues.values():
            queue.clear()
        if self._edge_detector is not None:
            self._edge_detector.reset()
        self.step = None
        self._ran = False
