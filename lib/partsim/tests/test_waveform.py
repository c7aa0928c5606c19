import pytest

from partsim import (
    ONE,
    OUT,
    TIME,
    ZERO,
    Component,
    PortSpec,
    SchedulingViolation,
    Simulation,
    TopologyError,
    VcdMonitor,
    word,
)


class TimeSource(Component):
    """Drives 't' with a given sequence of times, one per step."""

    PORTS = [PortSpec("t", OUT, TIME)]

    def __init__(self, name: str, times: list, **kwargs):
        super().__init__(name, **kwargs)
        self.times = times

    def behave(self):
        time = self.times[self.step]
        if time is not None:
            self.write("t", time)


class ChangesAt(Component):
    """Output 's' goes ONE at a given step, and 'w' counts steps."""

    PORTS = [PortSpec("s", OUT, initial=0), PortSpec("w", OUT, word(4), initial=0)]

    def __init__(self, name: str, change_step: int, **kwargs):
        super().__init__(name, **kwargs)
        self.change_step = change_step

    def behave(self):
        if self.step >= self.change_step:
            self.write("s", ONE)
        self.write("w", self.step)


def make_sim(times, change_step=2, output_path=None, signals=None, **kwargs):
    if signals is None:
        signals = {"s": "sig.s"}
    monitor = VcdMonitor(output_path, signals, "ts.t", **kwargs)
    top = Component(
        "top",
        children=[TimeSource("ts", times), ChangesAt("sig", change_step)],
        monitors=[monitor],
    )
    return Simulation(top), monitor


class TestRecords:
    def test_only_changes(self):
        sim, monitor = make_sim([0, 1, 2, 3])
        sim.run(4)
        assert monitor.changes("s") == [(0, ZERO), (2, ONE)]
        assert len(monitor.records) == 2

    def test_unknown_time_reference(self):
        sim, monitor = make_sim([None, None, 2, 3], change_step=3)
        sim.run(2)
        assert monitor.records == []
        sim.run(2)
        # The first defined time gets an initial record.
        assert monitor.changes("s") == [(2, ZERO), (3, ONE)]

    def test_all_signals_initial_record(self):
        sim, monitor = make_sim([0, 1, 2], signals={"s": "sig.s", "w": "sig.w"})
        sim.run(1)
        assert [(rec.time, rec.signal) for rec in monitor.records] == [(0, "s"), (0, "w")]

    def test_backwards_time(self, caplog):
        sim, monitor = make_sim([5, 3, 7, 8], signals={"s": "sig.s", "w": "sig.w"})
        sim.run(2)
        assert "went backwards at step 1 : 5 --> 3" in caplog.text
        # The step itself completed : only the sample was dropped.
        assert sim.step_index == 2
        assert sim.value("top.ts.t") == 3
        assert sim.value("top.sig.w") == 1
        sim.run(2)
        assert sim.step_index == 4
        assert monitor.changes("w") == [(5, 0), (7, 2), (8, 3)]
        assert monitor.changes("s") == [(5, ZERO), (7, ONE)]

    def test_repeated_time(self):
        sim, monitor = make_sim([0, 0, 0, 1], change_step=1)
        sim.run(4)
        assert monitor.changes("s") == [(0, ZERO), (0, ONE)]

    def test_read_only(self):
        sim_a, _ = make_sim([0, 1, 2, 3], signals={"s": "sig.s", "w": "sig.w"})
        top = Component("top", children=[TimeSource("ts", [0, 1, 2, 3]), ChangesAt("sig", 2)])
        sim_b = Simulation(top)
        sim_a.run(4)
        sim_b.run(4)
        for path in ("top.sig.s", "top.sig.w", "top.ts.t"):
            assert sim_a.value(path) == sim_b.value(path)

    def test_reset(self):
        sim, monitor = make_sim([0, 1, 2, 3, 0, 1])
        sim.run(4)
        sim.reset()
        assert monitor.records == []


class TestBind:
    def test_unresolved(self):
        with pytest.raises(TopologyError, match="no port, queue or child 'nope'"):
            make_sim([0], signals={"s": "sig.nope"})

    def test_not_a_port(self):
        with pytest.raises(TopologyError, match="monitored path is not a port"):
            make_sim([0], signals={"s": "sig"})

    def test_relative_to_owner(self):
        monitor = VcdMonitor(None, {"s": "s"}, "t")
        inner = Component(
            "inner",
            ports=[PortSpec("s", OUT, initial=0), PortSpec("t", OUT, TIME, initial=0)],
            monitors=[monitor],
        )
        Simulation(Component("top", children=[inner])).run(1)
        assert monitor.changes("s") == [(0, ZERO)]


class TestVcdFile:
    def test_file(self, tmp_path):
        path = tmp_path / "wave.vcd"
        sim, monitor = make_sim(
            [0, 1, 2, 3], output_path=path, signals={"s": "sig.s", "w": "sig.w"}
        )
        with sim:
            sim.run(4)
        lines = path.read_text().splitlines()
        header_end = lines.index("$enddefinitions $end")
        header, body = lines[:header_end], lines[header_end + 1 :]
        assert "$scope module top $end" in header
        assert "$var wire 1 ! s $end" in header
        assert '$var wire 4 " w $end' in header
        assert body == [
            "#0",
            "0!",
            'b0 "',
            "#1",
            'b1 "',
            "#2",
            "1!",
            'b10 "',
            "#3",
            'b11 "',
        ]

    def test_timestamps_non_decreasing(self, tmp_path):
        path = tmp_path / "wave.vcd"
        sim, _ = make_sim([0, 0, 1, 4, 4, 9], change_step=3, output_path=path)
        sim.run(6)
        sim.close()
        times = [int(line[1:]) for line in path.read_text().splitlines() if line.startswith("#")]
        assert times == sorted(times)
        assert times == [0, 4]

    def test_float_times(self, tmp_path):
        path = tmp_path / "wave.vcd"
        sim, monitor = make_sim(
            [0.2, 0.7, 0.9, 1.5],
            change_step=1,
            output_path=path,
            signals={"s": "sig.s", "w": "sig.w"},
            timescale="100 ps",
            time_unit="1 ns",
        )
        with sim:
            sim.run(4)
        lines = path.read_text().splitlines()
        assert "$timescale 100 ps $end" in lines
        stamps = [line for line in lines if line.startswith("#")]
        assert stamps == ["#2", "#7", "#9", "#15"]
        assert monitor.changes("s") == [(0.2, ZERO), (0.7, ONE)]

    def test_rounded_times_share_stamp(self, tmp_path, caplog):
        path = tmp_path / "wave.vcd"
        sim, monitor = make_sim([0, 0.2, 1], output_path=path, signals={"w": "sig.w"})
        with sim:
            sim.run(3)
        body = path.read_text().splitlines()
        body = body[body.index("$enddefinitions $end") + 1 :]
        assert body == ["#0", "b0 !", "b1 !", "#1", "b10 !"]
        assert "time 0.2 is not a whole number of 1 ns" in caplog.text
        assert monitor.changes("w")[1] == (0.2, 1)

    @pytest.mark.parametrize("timescale", ["3 ns", "1 parsec", "0 ns", ""])
    def test_bad_timescale(self, timescale):
        with pytest.raises(ValueError, match="Bad"):
            VcdMonitor(None, {}, "t", timescale)

    def test_closed_on_failed_step(self, tmp_path):
        def fail_late(comp):
            if comp.step == 1:
                comp.write("missing", ONE)

        path = tmp_path / "wave.vcd"
        monitor = VcdMonitor(path, {"s": "sig.s"}, "ts.t")
        top = Component(
            "top",
            children=[
                TimeSource("ts", [0, 1, 2]),
                ChangesAt("sig", 5),
                Component("bad", behavior=fail_late),
            ],
            monitors=[monitor],
        )
        sim = Simulation(top)
        with pytest.raises(SchedulingViolation):
            sim.run(3)
        # Flushed without any explicit close.
        assert path.read_text().splitlines()[-2:] == ["#0", "0!"]
