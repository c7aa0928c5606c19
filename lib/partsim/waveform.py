"""
Waveform recording.

A VcdMonitor watches some ports of a design, and after each simulation step records
any which changed, timestamped with the value of a chosen time-reference port.
It never changes the simulation state.

The records are kept in memory, and also written as a value change dump (VCD) text
file, if an output path was given.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from pathlib import Path
import re
from typing import IO, TYPE_CHECKING

from partsim.errors import TopologyError
from partsim.port import Port
from partsim.value import SignalValue

if TYPE_CHECKING:
    from partsim.component import Component

__all__ = ["VcdMonitor", "WaveRecord"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaveRecord:
    time: int | float
    signal: str
    value: SignalValue


_TIME_EXPONENTS = {"s": 0, "ms": -3, "us": -6, "ns": -9, "ps": -12, "fs": -15}
_TIME_PATTERN = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([munpf]?s)\s*")


def _parse_time(text: str) -> tuple[float, int]:
    """Split e.g. "100 ps" into (100.0, -12)."""
    match = _TIME_PATTERN.fullmatch(text)
    if match is None or float(match[1]) == 0:
        raise ValueError(f"Bad time unit : {text!r}.")
    return float(match[1]), _TIME_EXPONENTS[match[2]]


def _id_code(index: int) -> str:
    """VCD identifier codes : printable characters from '!' to '~'."""
    chars = ""
    while True:
        index, digit = divmod(index, 94)
        chars += chr(33 + digit)
        if index == 0:
            return chars
        index -= 1


class VcdMonitor:
    """
    Configuration + state for recording a waveform.

    The signal + time paths are relative to the component the monitor is attached to.

    Time reference values are in units of 'time_unit' (by default, the same as the
    'timescale'), and are written to a VCD file as a whole number of timescale
    ticks.

    Examples
    --------
    >>> monitor = VcdMonitor("top.vcd", {"q": "reg.out_0"}, "clock.cycle")
    >>> monitor = VcdMonitor("fine.vcd", {"q": "q"}, "t", "100 ps", time_unit="1 ns")
    >>> top = Component("top", children=[...], monitors=[monitor])
    """

    def __init__(
        self,
        output_path: str | Path | None,
        signals: dict[str, str],
        time_path: str,
        timescale: str = "1 ns",
        time_unit: str | None = None,
    ):
        tick, tick_exponent = _parse_time(timescale)
        if tick not in (1, 10, 100):
            raise ValueError(f"Bad VCD timescale : {timescale!r}.")
        unit, unit_exponent = _parse_time(time_unit or timescale)
        self._ticks_per_unit = unit * 10.0 ** (unit_exponent - tick_exponent) / tick
        self.output_path = None if output_path is None else Path(output_path)
        self.signal_paths = dict(signals)
        self.time_path = time_path
        self.timescale = timescale
        self.time_unit = time_unit or timescale
        self.records: list[WaveRecord] = []
        self.scope = "top"
        self._ports: dict[str, Port] = {}
        self._time_port: Port | None = None
        self._codes: dict[str, str] = {}
        self._last: dict[str, SignalValue] = {}
        self._last_time: int | float | None = None
        self._last_stamp: int | None = None
        self._file: IO[str] | None = None

    def __repr__(self):
        return (
            f"VcdMonitor({self.output_path!s}, {self.signal_paths!r}, "
            f"{self.time_path!r})"
        )

    def bind(self, base: Component):
        """Resolve the paths : called when a simulation is built."""

        def find_port(path: str) -> Port:
            port = base.resolve(path)
            if not isinstance(port, Port):
                msg = "monitored path is not a port."
                raise TopologyError(f"{base.path}.{path}", msg)
            return port

        self.scope = base.name
        self._time_port = find_port(self.time_path)
        self._ports = {
            name: find_port(path) for name, path in self.signal_paths.items()
        }
        self._codes = {name: _id_code(i) for i, name in enumerate(self._ports)}

    def open(self):
        if self.output_path is None:
            return
        self._file = open(self.output_path, "w")
        lines = [
            "$version partsim $end",
            f"$timescale {self.timescale} $end",
            f"$scope module {self.scope} $end",
        ]
        for name, port in self._ports.items():
            if port.type.kind == "time":
                var = "real 64"
            else:
                var = f"wire {port.type.width}"
            lines.append(f"$var {var} {self._codes[name]} {name} $end")
        lines += ["$upscope $end", "$enddefinitions $end"]
        self._file.write("\n".join(lines) + "\n")

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None

    def reset(self):
        """Forget all samples, and restart any output file."""
        self.close()
        self.records = []
        self._last = {}
        self._last_time = None
        self._last_stamp = None
        self.open()

    def _stamp(self, time: int | float) -> int:
        """A VCD timestamp : the time as a whole number of timescale ticks."""
        ticks = time * self._ticks_per_unit
        stamp = round(ticks)
        if abs(ticks - stamp) > 1e-6 * max(1.0, abs(ticks)):
            logger.warning(
                "time %s is not a whole number of %s : written as #%d.",
                time,
                self.timescale,
                stamp,
            )
        return stamp

    def _format(self, name: str, value: SignalValue) -> str | None:
        port, code = self._ports[name], self._codes[name]
        match port.type.kind, value.value:
            case "time", None:
                # N.B. VCD has no unknown real value
                return None
            case "time", val:
                return f"r{float(val)!r} {code}"
            case _, None if port.type.width == 1:
                return f"x{code}"
            case _, None:
                return f"bx {code}"
            case _, val if port.type.width == 1:
                return f"{val}{code}"
            case _, val:
                return f"b{val:b} {code}"

    def sample(self, step: int) -> list[WaveRecord]:
        """Record the changes since the last sample.  Called after each step's commit.

        Nothing is recorded while the time reference is unknown, or if it has gone
        backwards, which is logged as an error.
        The first recorded sample includes every signal.
        """
        time_value = self._time_port.value
        if time_value.is_unknown:
            return []
        time = time_value.value
        if self._last_time is not None and time < self._last_time:
            logger.error(
                "Time reference %s went backwards at step %d : %s --> %s.",
                self._time_port.path,
                step,
                self._last_time,
                time,
            )
            return []
        new_records = [
            WaveRecord(time, name, port.value)
            for name, port in self._ports.items()
            if name not in self._last or self._last[name] != port.value
        ]
        if not new_records:
            return []
        if self._file is not None:
            lines = []
            stamp = self._stamp(time)
            if stamp != self._last_stamp:
                lines.append(f"#{stamp}")
                self._last_stamp = stamp
            for record in new_records:
                line = self._format(record.signal, record.value)
                if line is not None:
                    lines.append(line)
            if lines:
                self._file.write("\n".join(lines) + "\n")
        for record in new_records:
            self._last[record.signal] = record.value
        self._last_time = time
        self.records.extend(new_records)
        logger.debug(
            "step %d: recorded %d changes at time %s", step, len(new_records), time
        )
        return new_records

    def changes(self, name: str) -> list[tuple[int | float, SignalValue]]:
        """The (time, value) records of one signal."""
        return [(rec.time, rec.value) for rec in self.records if rec.signal == name]
