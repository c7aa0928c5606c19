"""
Scheduling conditions.

A condition is a pure predicate over some named ports and/or event queues of a
component, which decides whether the component's behavior runs in a step.
The 'args' are the names it reads : these are checked against the component when it
is constructed.

Conditions combine by conjunction, with AllOf(...) or the '&' operator.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from partsim.component import Component

__all__ = ["AllDefined", "AllOf", "Always", "Condition", "Predicate", "QueuePending"]


class Condition:
    """Base class : a predicate with a fixed argument list."""

    # which of the component's ports ("port") or queues ("queue") the args name.
    ARG_KIND = "port"

    def __init__(self, *args: str):
        self.args: tuple[str, ...] = tuple(args)

    def __repr__(self):
        args = ", ".join(repr(arg) for arg in self.args)
        return f"{self.__class__.__name__}({args})"

    def __and__(self, other: Condition) -> AllOf:
        return AllOf(self, other)

    def arg_names(self) -> list[tuple[str, str]]:
        """The (kind, name) pairs this condition reads."""
        return [(self.ARG_KIND, name) for name in self.args]

    def __call__(self, component: Component) -> bool:
        raise NotImplementedError


class Always(Condition):
    def __call__(self, component: Component) -> bool:
        return True


class AllDefined(Condition):
    """True once all the named ports have held a non-unknown value at least once."""

    def __call__(self, component: Component) -> bool:
        return all(component.ports[name].ever_defined for name in self.args)


class QueuePending(Condition):
    """True when all the named event queues have an event waiting."""

    ARG_KIND = "queue"

    def __call__(self, component: Component) -> bool:
        return all(component.queues[name].pending for name in self.args)


class Predicate(Condition):
    """A user function of the current values of the named ports.

    Examples
    --------
    >>> Predicate(lambda en: en == ONE, "enable")
    """

    def __init__(self, func: Callable[..., bool], *args: str):
        super().__init__(*args)
        self.func = func

    def __call__(self, component: Component) -> bool:
        values = [component.ports[name].value for name in self.args]
        return bool(self.func(*values))


class AllOf(Condition):
    def __init__(self, *conditions: Condition):
        self.conditions = list(conditions)
        super().__init__(*[arg for cond in conditions for arg in cond.args])

    def __repr__(self):
        return " & ".join(repr(cond) for cond in self.conditions)

    def arg_names(self) -> list[tuple[str, str]]:
        return [pair for cond in self.conditions for pair in cond.arg_names()]

    def __call__(self, component: Component) -> bool:
        return all(cond(component) for cond in self.conditions)
