import logging
import threading
from typing import Callable

from partsim.component import Component
from partsim.errors import SchedulingViolation, TopologyError
from partsim.eventqueue import EventQueue
from partsim.port import Port
from partsim.value import SignalValue, ValueTypes
from partsim.waveform import VcdMonitor
from partsim.wiring import WiringTable

__all__ = ["Simulation"]

logger = logging.getLogger(__name__)


class Simulation:
    """
    Steps a design : a root Component and all its descendants.

    Building a Simulation fixes the design topology.  All the components are placed
    in an arena (indexed by integer id, with a path -> id lookup), and all the wires
    in a WiringTable.

    Each step :
      * delivers one event from each wired event queue
      * evaluates the root, which evaluates its children by its execution strategy
      * commits the root outputs
      * samples the waveform monitors

    A simulation can run : for a number of steps; until a stop condition; or until
    'stop' is called (from another thread, or a behavior).  It only ever stops between
    steps.
    """

    def __init__(self, root: Component):
        if root.parent is not None:
            msg = "a simulation root must not have a parent."
            raise TopologyError(root.path, msg)
        self.root = root
        self.components: list[Component] = list(root.walk())
        self._ids: dict[str, int] = {}
        for i_comp, component in enumerate(self.components):
            if component._frozen:
                raise TopologyError(component.path, "already part of a simulation.")
            component._frozen = True
            self._ids[component.path] = i_comp
        self.wiring = WiringTable(self.components)
        self.monitors: list[VcdMonitor] = []
        for component in self.components:
            for monitor in component.monitors:
                monitor.bind(component)
                self.monitors.append(monitor)
        self.step_index = 0
        self._stop_request = threading.Event()
        self.verbose = False
        self.wiring.settle()
        for monitor in self.monitors:
            monitor.open()
        logger.debug(
            "built simulation of %s : %d components, %d ports, %d wires.",
            root.path,
            len(self.components),
            len(self.wiring.ports),
            len(self.wiring),
        )

    def __repr__(self):
        return f"Simulation({self.root.path!r}, step={self.step_index})"

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        """Close any waveform files, and shut down any strategy thread pools."""
        for monitor in self.monitors:
            monitor.close()
        for component in self.components:
            component.strategy.close()

    # Host-side access.

    def component(self, i_component: int) -> Component:
        return self.components[i_component]

    def lookup(self, path: str) -> Component | Port | EventQueue:
        """Find a component, port or queue from its full dotted path.

        Examples
        --------
        >>> sim.lookup("top.reg.out_0")
        """
        i_comp = self._ids.get(path)
        if i_comp is not None:
            return self.components[i_comp]
        root_name, _, relative = path.partition(".")
        if root_name != self.root.name or not relative:
            msg = f"not within simulation root {self.root.name!r}."
            raise TopologyError(path, msg)
        return self.root.resolve(relative)

    def value(self, path: str) -> SignalValue:
        port = self.lookup(path)
        if not isinstance(port, Port):
            raise ValueError(f"{path!r} is not a port.")
        return port.value

    def enqueue(self, path: str, value: ValueTypes, time: float = 0.0):
        """Put an event on a queue, by path."""
        queue = self.lookup(path)
        if not isinstance(queue, EventQueue):
            raise ValueError(f"{path!r} is not an event queue.")
        queue.enqueue(value, time)

    def trace(self, path: str):
        port = self.lookup(path)
        if not isinstance(port, Port):
            raise ValueError(f"Cannot trace {path!r} : not a port.")
        port.trace()

    def untrace(self, path: str):
        port = self.lookup(path)
        if isinstance(port, Port):
            port.untrace()

    # Stepping.

    def commit(self, component: Component, step: int):
        """Publish a component's outputs + propagate them.  Called by strategies."""
        outputs = component.commit(step)
        self.wiring.propagate(outputs, step)

    def step(self):
        step = self.step_index
        logger.debug("step %d", step)
        try:
            self.wiring.deliver_events(step)
            if self.root.evaluate(self, step):
                self.commit(self.root, step)
        except SchedulingViolation as err:
            if err.step is None:
                err.step = step
            logger.error("halted at %s", err)
            self.close()
            raise
        except Exception:
            # A failing behavior also halts the run.
            self.close()
            raise
        # The step is complete : the monitors only observe it.
        self.step_index += 1
        for monitor in self.monitors:
            monitor.sample(step)

    def stop(self):
        """Request a halt.

        Takes effect at the end of the current step, or if no run is in progress, at
        the start of the next one.
        """
        self._stop_request.set()

    def run(
        self,
        steps: int | None = None,
        *,
        stop_when: Callable[["Simulation"], bool] | None = None,
        verbose: bool = False,
    ) -> int:
        """Run for a number of steps, or until a stop condition.

        If neither is given, runs until 'stop' is called.
        Returns the number of steps run.
        """
        verbose |= self.verbose
        n_steps = 0
        while True:
            if steps is not None and n_steps >= steps:
                if verbose:
                    logger.info("Halted after %d steps.", n_steps)
                break
            if self._stop_request.is_set():
                self._stop_request.clear()
                if verbose:
                    msg = "Halted by stop request at step %d."
                    logger.info(msg, self.step_index)
                break
            self.step()
            n_steps += 1
            if stop_when is not None and stop_when(self):
                if verbose:
                    msg = "Halted on stop condition at step %d."
                    logger.info(msg, self.step_index)
                break
        return n_steps

    def until(self, path: str, value: ValueTypes, max_steps: int | None = None) -> int:
        """Run until a port holds a given value, e.g. a cycle count."""
        port = self.lookup(path)
        if not isinstance(port, Port):
            raise ValueError(f"{path!r} is not a port.")
        target = SignalValue(value)
        return self.run(max_steps, stop_when=lambda sim: port.value == target)

    def reset(self):
        """Return to the initial state, at step 0."""
        for component in self.components:
            component.reset()
        self.step_index = 0
        self.wiring.settle()
        for monitor in self.monitors:
            monitor.reset()
