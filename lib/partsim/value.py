"""
Fundamental signal value and type classes.

SignalValue is the unit of data carried by a port : a closed variant which is either
a defined int/float, or UNKNOWN.
SignalType is the port type tag : ports are compatible when their types match
structurally (same kind and width), never by class identity.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TypeAlias

ValueTypes: TypeAlias = "SignalValue | int | float | bool | None"


class SignalValue:
    """Class to ensure uniform representation of signal values.

    These are comparable with the original int / float values contained, and print
    in a similar way.  The value None represents UNKNOWN.
    Arithmetic is *not* defined, and there is no sort order.
    """

    value: int | float | None = None

    def __init__(self, value: ValueTypes = None):
        match value:
            case SignalValue():
                self.value = value.value
            case bool():
                self.value = int(value)
            case int() | float() | None:
                self.value = value
            case _:
                raise TypeError(f"Argument 'value', {value!r} has unsupported type.")

    def __repr__(self):
        if self.value is None:
            return "UNKNOWN"
        return f"SignalValue({self.value!r})"

    def __str__(self):
        if self.value is None:
            return "X"
        return str(self.value)

    def __eq__(self, other):
        try:
            other = SignalValue(other)
        except TypeError:
            return NotImplemented
        return self.value == other.value

    def __hash__(self):
        return hash(self.value)

    @property
    def is_unknown(self) -> bool:
        return self.value is None

    @property
    def is_asserted(self) -> bool:
        """Defined and non-zero."""
        return self.value is not None and self.value != 0


# Pre-defined constant values
ZERO = SignalValue(0)
ONE = SignalValue(1)
UNKNOWN = SignalValue(None)


@dataclass(frozen=True)
class SignalType:
    """A port type tag.

    'kind' is one of "logic", "word" or "time".
    'width' is the bit width for logic + words, and None for time values.
    """

    kind: str
    width: int | None = None

    def __post_init__(self):
        if self.kind not in ("logic", "word", "time"):
            raise ValueError(f"Unrecognised signal kind: {self.kind!r}.")
        if self.kind != "time" and (self.width is None or self.width < 1):
            raise ValueError(f"A {self.kind} type needs a positive width.")

    def __str__(self):
        if self.width is None:
            return self.kind
        return f"{self.kind}[{self.width}]"

    def compatible(self, other: SignalType) -> bool:
        return self.kind == other.kind and self.width == other.width

    def accepts(self, value: ValueTypes) -> bool:
        """Check that a value can be carried by a port of this type."""
        value = SignalValue(value)
        if value.is_unknown:
            return True
        match self.kind:
            case "logic" | "word":
                return isinstance(value.value, int) and 0 <= value.value < (
                    1 << self.width
                )
            case _:
                return True


LOGIC = SignalType("logic", 1)
TIME = SignalType("time")


def word(width: int) -> SignalType:
    """Return a multi-bit word type.

    Examples
    --------
    >>> PortSpec("data", IN, word(8))
    """
    return SignalType("word", width)
