from partsim import ONE, OUT, TIME, UNKNOWN, ZERO, Component, PortSpec


class Clock(Component):
    """
    A free-running clock, which toggles 'clk' on every step.

    The first step sets clk to ZERO, and every following ZERO -> ONE transition counts
    one 'cycle', starting from 0 : so cycle N begins at step 2N + 1.
    The 'cycle' output is a suitable waveform time reference.
    """

    PORTS = [
        PortSpec("clk", OUT, initial=UNKNOWN),
        PortSpec("cycle", OUT, TIME, initial=UNKNOWN),
    ]

    def behave(self):
        match self.read("clk"):
            case clk if clk == ZERO:
                cycle = self.read("cycle")
                self.write("clk", ONE)
                self.write("cycle", 0 if cycle.is_unknown else cycle.value + 1)
            case _:
                self.write("clk", ZERO)
