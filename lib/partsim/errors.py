"""Exceptions raised by the simulation kernel."""

__all__ = ["QueueOverflowError", "SchedulingViolation", "TopologyError"]


class TopologyError(ValueError):
    """A design construction error : the simulation cannot start."""

    def __init__(self, path: str, msg: str):
        self.path = path
        super().__init__(f"{path}: {msg}")


class QueueOverflowError(OverflowError):
    """Enqueue on a full event queue."""


class SchedulingViolation(RuntimeError):
    """A behavior broke the port access rules.

    The 'step' is filled in by the simulation when the error passes out of a step.
    """

    def __init__(self, path: str, msg: str, step: int | None = None):
        self.path = path
        self.msg = msg
        self.step = step
        super().__init__(msg)

    def __str__(self):
        where = self.path if self.step is None else f"step {self.step}, {self.path}"
        return f"{where}: {self.msg}"
