"""
The wiring table of a simulation.

All the wires declared on the components of a design are gathered once, when the
simulation is built, into a port arena (a list, indexed by Port.id) and a fan-out
table of integer ids.  Paths are never re-resolved while stepping.
"""

from partsim.component import Component
from partsim.eventqueue import NO_EVENT, EventQueue
from partsim.port import IN, TRANSIENT, Port

__all__ = ["WiringTable"]


class WiringTable:
    def __init__(self, components: list[Component]):
        self.ports: list[Port] = []
        for component in components:
            for port in component.ports.values():
                port.id = len(self.ports)
                self.ports.append(port)
        self._fanout: dict[int, list[int]] = {}
        self.queue_edges: list[tuple[EventQueue, Port]] = []
        for component in components:
            for source, destination in component.wires:
                match source:
                    case EventQueue():
                        self.queue_edges.append((source, destination))
                    case Port():
                        fanout = self._fanout.setdefault(source.id, [])
                        fanout.append(destination.id)

    def __len__(self):
        return sum(len(ids) for ids in self._fanout.values()) + len(self.queue_edges)

    def destinations(self, port: Port) -> list[Port]:
        return [self.ports[i_port] for i_port in self._fanout.get(port.id, [])]

    def propagate(self, sources: list[Port], step: int):
        """Copy the committed values of some ports to everything they drive.

        Inputs take the value immediately (and pass it on, to any inputs of
        sub-components).  Outputs of an enclosing component only get a pending value,
        published when that component commits.
        """
        for source in sources:
            for destination in self.destinations(source):
                if destination.direction == IN:
                    destination.deliver(step, source.value)
                    self.propagate([destination], step)
                else:
                    destination.stage(source.value)

    def deliver_events(self, step: int) -> int:
        """Deliver one event from each wired queue.  Return the number delivered.

        With no event waiting, a TRANSIENT target reverts to its initial value, and a
        PERSISTENT one keeps its value.
        """
        n_delivered = 0
        for queue, port in self.queue_edges:
            event = queue.dequeue()
            if event is NO_EVENT:
                if port.semantic != TRANSIENT:
                    continue
                value = port.initial
            else:
                value = event.value
                n_delivered += 1
            port.deliver(step, value)
            self.propagate([port], step)
        return n_delivered

    def settle(self, step: int = 0):
        """Give every driven port the current value of its driver.

        Used at the start of a simulation, so inputs see the initial values of the
        outputs which drive them.
        """

        def copy_down(source: Port):
            for destination in self.destinations(source):
                destination.deliver(step, source.value)
                copy_down(destination)

        for port in self.ports:
            copy_down(port)
