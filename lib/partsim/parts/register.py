from partsim import (
    IN,
    LOGIC,
    OUT,
    PERSISTENT,
    ZERO,
    AllDefined,
    Component,
    PortSpec,
    RisingEdge,
    word,
)


class Register(Component):
    """
    A D flip-flop, with a synchronous active-high reset.

    On each rising edge of 'clk' : if 'rst' is ONE, 'out_0' takes the reset value;
    if 'rst' is ZERO, it takes the value of 'in_0'.  An unknown reset leaves the
    output alone.
    """

    CONDITION = AllDefined("clk")
    EDGE = RisingEdge("clk")

    def __init__(self, name: str, width: int = 1, reset_value: int = 0, **kwargs):
        signal_type = LOGIC if width == 1 else word(width)
        self.reset_value = reset_value
        ports = [
            PortSpec("clk", IN),
            PortSpec("rst", IN),
            PortSpec("in_0", IN, signal_type),
            PortSpec(
                "out_0", OUT, signal_type, initial=reset_value, semantic=PERSISTENT
            ),
        ]
        kwargs.setdefault("ports", ports)
        super().__init__(name, **kwargs)

    def behave(self):
        rst = self.read("rst")
        if rst.is_asserted:
            self.write("out_0", self.reset_value)
        elif rst == ZERO:
            self.write("out_0", self.read("in_0"))
