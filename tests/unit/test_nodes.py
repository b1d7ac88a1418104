"""
Tests for the built-in node types.
"""

import math

import pytest

from patch_studio.core.data_types import DataType, Vector3
from patch_studio.core.node import FrameContext, NodeState, PatchNode
from patch_studio.host.scene import SceneObject
from patch_studio.nodes.animation import FadeNode, FloatNode, PulseNode, SpinNode
from patch_studio.nodes.arithmetic import AddNode, DivideNode, MultiplyNode, SubtractNode
from patch_studio.nodes.timing import ClockNode, TimeNode


def frame(delta_time, time=0.0, number=1):
    return FrameContext(frame=number, delta_time=delta_time, time=time)


class TestPatchNode:
    """Tests for the node base class."""

    def test_ids_are_unique(self):
        assert PatchNode().id != PatchNode().id
        assert PatchNode().id.startswith("node_")

    def test_id_is_read_only(self):
        node = PatchNode()
        with pytest.raises(AttributeError):
            node.id = "node_other"

    def test_unknown_socket(self):
        node = AddNode()
        with pytest.raises(KeyError):
            node.get_input_value("c")
        with pytest.raises(KeyError):
            node.get_output_value("sum")

    def test_duplicate_socket(self):
        node = AddNode()
        with pytest.raises(ValueError):
            node.add_input("a")

    def test_sockets_fixed_after_attach(self):
        node = AddNode()
        node.attach()
        with pytest.raises(RuntimeError):
            node.add_output("extra", DataType.NUMBER)

    def test_lifecycle_does_not_skip_states(self):
        node = AddNode()
        with pytest.raises(RuntimeError):
            node.destroy()
        node.attach()
        node.detach()
        node.destroy()
        assert node.state is NodeState.DESTROYED

    def test_detached_outputs_frozen(self):
        node = AddNode()
        node.attach()
        node.set_output_value("result", 3.0)
        node.detach()
        node.set_output_value("result", 4.0)
        assert node.get_output_value("result") == 3.0

    def test_socket_values_are_copies(self):
        node = PatchNode()
        default = Vector3(1, 2, 3)
        socket = node.add_input("offset", DataType.VECTOR3, default)
        default.x = 9
        assert socket.value.x == 1
        socket.value.x = 5
        socket.reset()
        assert socket.value.x == 9


class TestTimingNodes:
    """Tests for Clock and Time."""

    def test_clock_accumulates(self):
        clock = ClockNode()
        clock.process(frame(0.5))
        clock.process(frame(0.75))
        assert clock.get_output_value("time") == pytest.approx(1.25)
        assert clock.get_output_value("seconds") == 1.0
        assert clock.get_output_value("milliseconds") == pytest.approx(1250.0)

    def test_clock_speed(self):
        clock = ClockNode()
        clock.set_input_value("speed", 2.0)
        clock.process(frame(0.5))
        assert clock.get_output_value("time") == pytest.approx(1.0)

    def test_clock_pause_and_reset(self):
        clock = ClockNode()
        clock.process(frame(1.0))
        clock.pause()
        clock.process(frame(1.0))
        assert clock.get_output_value("time") == pytest.approx(1.0)
        assert clock.display_name == "Clock (paused)"
        clock.reset()
        clock.play()
        clock.process(frame(0.25))
        assert clock.get_output_value("time") == pytest.approx(0.25)

    def test_clock_running_state_saved(self):
        clock = ClockNode()
        clock.pause()
        clock.process(frame(1.0))
        data = clock.serialize()
        assert data["isRunning"] is False

        restored = ClockNode(node_id=clock.id)
        restored.deserialize(data)
        assert restored.is_running is False
        assert restored.elapsed == 0.0

    def test_time_outputs(self):
        node = TimeNode()
        node.process(frame(0.5))
        assert node.get_output_value("time") == pytest.approx(0.5)
        assert node.get_output_value("deltaTime") == pytest.approx(0.5)
        assert node.get_output_value("sin") == pytest.approx(math.sin(0.5))
        assert node.get_output_value("cos") == pytest.approx(math.cos(0.5))


class TestMathNodes:
    """Tests for arithmetic nodes."""

    @pytest.mark.parametrize("node_class, a, b, expected", [
        (AddNode, 2, 3, 5),
        (SubtractNode, 2, 3, -1),
        (MultiplyNode, 2, 3, 6),
        (DivideNode, 3, 2, 1.5),
    ])
    def test_operations(self, node_class, a, b, expected):
        node = node_class()
        node.set_input_value("a", a)
        node.set_input_value("b", b)
        node.process(frame(0.0))
        assert node.get_output_value("result") == pytest.approx(expected)

    def test_defaults(self):
        assert AddNode().get_input_value("b") == 0.0
        assert MultiplyNode().get_input_value("b") == 1.0
        assert DivideNode().get_input_value("b") == 1.0

    def test_divide_by_zero_raises(self):
        node = DivideNode()
        node.set_input_value("b", 0.0)
        with pytest.raises(ZeroDivisionError):
            node.process(frame(0.0))

    def test_display_name(self):
        assert AddNode().display_name == "Add (a + b)"


class TestAnimationNodes:
    """Tests for behaviour nodes."""

    def test_spin_one_revolution(self):
        spin = SpinNode()
        spin.process(frame(1.0))
        assert spin.get_output_value("rotation") == pytest.approx(2 * math.pi)

    def test_spin_counter_clockwise(self):
        spin = SpinNode()
        spin.set_input_value("clockwise", False)
        spin.process(frame(0.5))
        assert spin.get_output_value("rotation") == pytest.approx(-math.pi)

    def test_spin_display_name(self):
        spin = SpinNode()
        assert spin.display_name == "Spin (60 rpm CW)"
        spin.set_input_value("clockwise", False)
        assert spin.display_name == "Spin (60 rpm CCW)"

    def test_spin_rotation_saved(self):
        spin = SpinNode()
        spin.process(frame(0.25))
        restored = SpinNode(node_id=spin.id)
        restored.deserialize(spin.serialize())
        assert restored.rotation == pytest.approx(spin.rotation)

    def test_pulse_range(self):
        pulse = PulseNode()
        pulse.process(frame(0.0))
        assert pulse.get_output_value("scale") == pytest.approx(0.8)
        # 20 bpm: half a cycle takes 1.5 s
        pulse.process(frame(1.5))
        assert pulse.get_output_value("scale") == pytest.approx(1.2)

    def test_pulse_display_name(self):
        assert PulseNode().display_name == "Pulse (20 bpm, 20%)"

    def test_float_offset(self):
        node = FloatNode()
        node.process(frame(0.5))
        assert node.get_output_value("position") == pytest.approx(0.5)

    def test_fade_between_min_and_max(self):
        fade = FadeNode()
        fade.process(frame(0.0))
        assert fade.get_output_value("opacity") == pytest.approx(0.0)
        fade.process(frame(0.75))
        assert fade.get_output_value("opacity") == pytest.approx(1.0)

    def test_fade_clamped(self):
        fade = FadeNode()
        fade.set_input_value("min", -1.0)
        fade.set_input_value("max", 2.0)
        fade.process(frame(0.0))
        assert fade.get_output_value("opacity") == 0.0
        fade.process(frame(0.75))
        assert fade.get_output_value("opacity") == 1.0

    def test_fade_display_name(self):
        assert FadeNode().display_name == "Fade (40 bpm, 0%-100%)"

    def test_phase_saved(self):
        pulse = PulseNode()
        pulse.process(frame(1.0))
        restored = PulseNode()
        restored.deserialize(pulse.serialize())
        assert restored.phase == pytest.approx(pulse.phase)

    def test_speed_change_keeps_phase(self):
        node = FloatNode()
        node.process(frame(0.5))
        before = node.get_output_value("position")
        node.set_input_value("speed", 120.0)
        node.process(frame(0.0))
        assert node.get_output_value("position") == pytest.approx(before)


class TestObjectNodes:
    """Tests for nodes bound to scene objects."""

    def test_position_picks_up_object_values(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube", position=Vector3(1, 2, 3)))
        node = graph.create_node("Position", object_id=cube.uuid)
        assert [node.get_input_value(a) for a in "xyz"] == [1.0, 2.0, 3.0]
        assert node.get_input("x").default_value == 1.0
        assert node.display_name == "Cube Position"

    def test_position_writes_object(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube"))
        node = graph.create_node("Position", object_id=cube.uuid)
        graph.set_input_value(node.id, "y", 4.0)
        report = graph.evaluate(0.0)
        assert cube.position == Vector3(0.0, 4.0, 0.0)
        assert report.changed_objects == {cube.uuid}
        assert node.get_output_value("position") == Vector3(0.0, 4.0, 0.0)
        assert node.get_output_value("y") == 4.0

    def test_unchanged_values_do_not_notify(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube"))
        graph.create_node("Position", object_id=cube.uuid)
        changed = []
        editor.add_object_listener(changed.append)
        report = graph.evaluate(0.0)
        assert report.changed_objects == set()
        assert changed == []

    def test_change_notifies_bridge(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube"))
        node = graph.create_node("Scale", object_id=cube.uuid)
        changed = []
        editor.add_object_listener(changed.append)
        graph.set_input_value(node.id, "x", 2.0)
        graph.evaluate(0.0)
        assert changed == [cube]
        assert cube.scale == Vector3(2.0, 1.0, 1.0)

    def test_missing_object_is_noop(self, graph):
        node = graph.create_node("Rotation", object_id="gone")
        report = graph.evaluate(0.0)
        assert report.processed == [node.id]
        assert report.changed_objects == set()
        assert node.get_output_value("rotation") is None
        assert node.display_name == "Object Rotation"

    def test_rebinds_when_object_reappears(self, editor, graph):
        node = graph.create_node("Position", object_id="late")
        graph.set_input_value(node.id, "x", 3.0)
        graph.evaluate(0.0)
        obj = editor.add_object(SceneObject(name="Late", uuid="late"))
        graph.evaluate(0.0)
        assert obj.position.x == 3.0

    def test_opacity_clamped(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube"))
        node = graph.create_node("Opacity", object_id=cube.uuid)
        graph.set_input_value(node.id, "opacity", 1.5)
        graph.evaluate(0.0)
        assert cube.opacity == 1.0
        graph.set_input_value(node.id, "opacity", 0.25)
        graph.evaluate(0.0)
        assert cube.opacity == 0.25
        assert node.get_output_value("opacity") == 0.25

    def test_scene_object_node(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube", scale=Vector3(2, 2, 2)))
        node = graph.create_node("SceneObject", object_id=cube.uuid)
        assert node.get_input_value("scale.y") == 2.0
        assert node.display_name == "Cube"

        graph.set_input_value(node.id, "position.z", -1.0)
        graph.set_input_value(node.id, "visible", False)
        graph.evaluate(0.0)
        assert cube.position.z == -1.0
        assert cube.visible is False
        assert node.get_output_value("object") == cube.uuid
        assert node.get_output_value("scale") == Vector3(2.0, 2.0, 2.0)
        assert node.get_output_value("visible") is False

    def test_bind_resyncs(self, editor, graph):
        a = editor.add_object(SceneObject(name="A", position=Vector3(1, 1, 1)))
        b = editor.add_object(SceneObject(name="B", position=Vector3(5, 6, 7)))
        node = graph.create_node("Position", object_id=a.uuid)
        node.bind(b.uuid)
        assert node.get_input_value("z") == 7.0
        assert node.display_name == "B Position"

    def test_disconnect_resyncs_from_object(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube"))
        spin = graph.create_node("Spin")
        rotation = graph.create_node("Rotation", object_id=cube.uuid)
        conn = graph.add_connection(spin.id, 0, rotation.id, rotation.input_index("y"))
        graph.evaluate(0.25)
        angle = cube.rotation.y
        assert angle == pytest.approx(math.pi / 2)

        graph.remove_connection(conn.id)
        assert rotation.get_input_value("y") == pytest.approx(angle)

    def test_vector_node(self, graph):
        node = graph.create_node("Vector")
        graph.set_input_value(node.id, "x", 1.0)
        graph.set_input_value(node.id, "z", 3.0)
        graph.evaluate(0.0)
        assert node.get_output_value("vector") == Vector3(1.0, 0.0, 3.0)
        assert node.get_output_value("z") == 3.0
