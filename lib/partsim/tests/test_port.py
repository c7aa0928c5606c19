import pytest

from partsim import port as port_module
from partsim import (
    IN,
    OUT,
    TRANSIENT,
    UNKNOWN,
    Component,
    PortSpec,
    SchedulingViolation,
    word,
)


@pytest.fixture
def dev():
    return Component(
        "dev",
        ports=[
            PortSpec("a", IN),
            PortSpec("b", OUT, word(8), initial=3),
            PortSpec("pulse", OUT, initial=0, semantic=TRANSIENT),
        ],
    )


class TestSpec:
    def test_defaults(self):
        spec = PortSpec("x", IN)
        assert spec.initial is None
        assert spec.semantic == "persistent"

    def test_bad_direction(self):
        with pytest.raises(ValueError, match="bad direction"):
            PortSpec("x", "inout")

    def test_bad_semantic(self):
        with pytest.raises(ValueError, match="bad semantic"):
            PortSpec("x", IN, semantic="sticky")

    @pytest.mark.parametrize("name", ["", "a.b"])
    def test_bad_name(self, name):
        with pytest.raises(ValueError, match="Bad port name"):
            PortSpec(name, IN)

    def test_bad_initial(self):
        with pytest.raises(ValueError, match="is not a valid word"):
            PortSpec("x", OUT, word(2), initial=4)


class TestCreate:
    def test(self, dev):
        port = dev.ports["b"]
        assert port.name == "b"
        assert port.path == "dev.b"
        assert port.value == 3
        assert port.previous_value == UNKNOWN
        assert port.ever_defined
        assert port.driver is None
        assert port.connected_clients == []
        assert port._trace_connection is None

    def test_unknown_initial(self, dev):
        port = dev.ports["a"]
        assert port.value == UNKNOWN
        assert not port.ever_defined

    def test_str(self, dev):
        assert str(dev.ports["b"]) == "Port<dev.b = 3>"


class TestCommit:
    def test_persistent(self, dev):
        port = dev.ports["b"]
        port.stage(7)
        assert port.value == 3
        assert port.written
        assert port.commit(0)
        assert port.value == 7
        assert port.previous_value == 3
        # Not rewritten : keeps its value
        assert not port.commit(1)
        assert port.value == 7

    def test_transient(self, dev):
        port = dev.ports["pulse"]
        port.stage(1)
        port.commit(0)
        assert port.value == 1
        # Not rewritten : goes back to its initial value
        assert port.commit(1)
        assert port.value == 0

    def test_same_value_no_change(self, dev):
        port = dev.ports["b"]
        port.stage(3)
        assert not port.commit(0)

    def test_bad_value(self, dev):
        with pytest.raises(SchedulingViolation, match="is not a valid word"):
            dev.ports["b"].stage(300)

    def test_deliver(self, dev):
        port = dev.ports["a"]
        assert port.deliver(0, 1)
        assert port.value == 1
        assert port.ever_defined


class TestConnect:
    @pytest.fixture
    def call_and_callrecords(self):
        call_records = []

        def call(step, value, context):
            call_records.append((step, value, context))

        return call, call_records

    def test_connect_basic(self, dev, call_and_callrecords):
        call, call_records = call_and_callrecords
        port = dev.ports["b"]
        port.connect(call)
        assert call_records == []
        port.stage(4)
        port.commit(1)
        port.stage(4)
        port.commit(2)
        port.stage(5)
        port.commit(3)
        assert call_records == [(1, 4, None), (3, 5, None)]

    def test_connect_callcontext(self, dev, call_and_callrecords):
        call, call_records = call_and_callrecords
        port = dev.ports["a"]
        port.connect(call, call_context={"a": 1})
        port.deliver(6, 1)
        assert call_records == [(6, 1, {"a": 1})]

    def test_disconnect(self, dev, call_and_callrecords):
        call, call_records = call_and_callrecords
        port = dev.ports["a"]
        connection = port.connect(call)
        port.disconnect(connection)
        port.deliver(0, 1)
        assert call_records == []

    def test_ordering(self, dev):
        port = dev.ports["a"]
        first = port.connect(lambda *args: None)
        second = port.connect(lambda *args: None)
        zeroth = port.connect(lambda *args: None, index=0)
        assert port.connected_clients == [zeroth, first, second]


class TestTrace:
    @pytest.fixture(autouse=True)
    def trace_records(self):
        trace_records = []

        def my_trace(step, value, port):
            trace_records.append((step, port, port.value, port.previous_value))

        old_client = port_module.TRACE_HANDLER_CLIENT
        port_module.TRACE_HANDLER_CLIENT = my_trace
        try:
            yield trace_records
        finally:
            port_module.TRACE_HANDLER_CLIENT = old_client

    def test_trace(self, dev, trace_records):
        port = dev.ports["a"]
        port.deliver(0, 0)
        assert trace_records == []
        port.trace()
        port.deliver(1, 1)
        port.deliver(2, 0)
        assert trace_records == [(1, port, 1, 0), (2, port, 0, 1)]

    def test_untrace(self, dev, trace_records):
        port = dev.ports["a"]
        port.trace()
        port.deliver(2, 1)
        port.untrace()
        port.deliver(3, 0)
        assert trace_records == [(2, port, 1, UNKNOWN)]

    def test_default_trace(self, dev, capsys):
        port = dev.ports["a"]
        port_module.default_trace_action(4, port.value, port)
        assert capsys.readouterr().out == "@4: Port<dev.a> : X ==> X\n"
