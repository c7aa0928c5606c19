"""
Execution strategies : how a composite component steps its children.

Each child step is an evaluate (the child's behavior writes pending output values)
followed by a commit (the outputs are published + propagated by the wiring table).

  * Sequential : each child evaluates + commits before the next one evaluates, so a
    later child sees an earlier sibling's output from the same step.
  * Concurrent : all children evaluate first, against the values as they were at the
    start of the step, then all commit together.

"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from partsim.component import Component
    from partsim.simulation import Simulation

__all__ = ["Concurrent", "ExecutionStrategy", "Sequential"]


class ExecutionStrategy:
    def __repr__(self):
        return f"{self.__class__.__name__}()"

    def run(self, sim: Simulation, component: Component, step: int):
        raise NotImplementedError

    def close(self):
        """Release any resources : called when a simulation closes."""


class Sequential(ExecutionStrategy):
    def run(self, sim: Simulation, component: Component, step: int):
        for child in component.children.values():
            if child.evaluate(sim, step):
                sim.commit(child, step)


class Concurrent(ExecutionStrategy):
    """Evaluate all children against the pre-step snapshot, then commit.

    If 'max_workers' is set, the children evaluate in parallel on a thread pool.
    The pool is created on first use, and kept until 'close'.  Any composite which
    is evaluated on that same pool evaluates its own children inline.
    Commits always happen in declaration order, after every child has evaluated.
    """

    def __init__(self, max_workers: int | None = None):
        self.max_workers = max_workers
        self._pool: ThreadPoolExecutor | None = None
        self._pool_lock = threading.Lock()
        self._thread_state = threading.local()

    def __repr__(self):
        if self.max_workers is None:
            return "Concurrent()"
        return f"Concurrent(max_workers={self.max_workers})"

    def _mark_worker(self):
        self._thread_state.in_pool = True

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="partsim",
                    initializer=self._mark_worker,
                )
            return self._pool

    def run(self, sim: Simulation, component: Component, step: int):
        children = list(component.children.values())
        in_pool = getattr(self._thread_state, "in_pool", False)
        if self.max_workers is None or len(children) < 2 or in_pool:
            ran = [child.evaluate(sim, step) for child in children]
        else:
            pool = self._get_pool()
            # N.B. list() re-raises the first exception from any child.
            ran = list(pool.map(lambda child: child.evaluate(sim, step), children))
        for child, child_ran in zip(children, ran):
            if child_ran:
                sim.commit(child, step)

    def close(self):
        with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown()
