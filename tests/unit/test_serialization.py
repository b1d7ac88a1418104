"""
Tests for graph save and load.
"""

import json
import logging

import pytest

from patch_studio.core.data_types import Vector3
from patch_studio.core.graph import GRAPH_FORMAT_VERSION, GraphChange
from patch_studio.host.scene import SceneObject


def build_demo(editor, graph):
    cube = editor.add_object(SceneObject(name="Cube"))
    clock = graph.create_node("Clock", 10, 20)
    spin = graph.create_node("Spin", 200, 20)
    rotation = graph.create_node("Rotation", 400, 20, object_id=cube.uuid)
    graph.set_input_value(spin.id, "speed", 30.0)
    graph.add_connection(spin.id, 0, rotation.id, rotation.input_index("y"))
    return cube, clock, spin, rotation


class TestSerialize:
    """Tests for InteractionGraph.serialize()."""

    def test_format(self, editor, graph):
        cube, clock, spin, rotation = build_demo(editor, graph)
        data = graph.serialize()

        assert data["metadata"] == {"version": GRAPH_FORMAT_VERSION}
        assert [n["id"] for n in data["nodes"]] == [clock.id, spin.id, rotation.id]
        assert data["connections"] == [{
            "fromNodeId": spin.id,
            "fromOutputIndex": 0,
            "toNodeId": rotation.id,
            "toInputIndex": 1,
        }]
        node_data = data["nodes"][2]
        assert node_data["type"] == "Rotation"
        assert node_data["objectId"] == cube.uuid
        assert node_data["objectName"] == "Cube"
        assert (node_data["x"], node_data["y"]) == (400.0, 20.0)

    def test_is_json(self, editor, graph):
        build_demo(editor, graph)
        graph.evaluate(0.1)
        json.dumps(graph.serialize())

    def test_vector_values_encode_as_lists(self, editor, graph):
        graph.registry.register("VectorInput", _vector_input_node)
        graph.create_node("VectorInput")
        data = graph.serialize()
        assert data["nodes"][0]["inputs"]["offset"] == [1.0, 2.0, 3.0]


def _vector_input_node(x=0.0, y=0.0, **kwargs):
    from patch_studio.core.data_types import DataType
    from patch_studio.core.node import PatchNode

    node = PatchNode(x, y, **kwargs)
    node.add_input("offset", DataType.VECTOR3, Vector3(1, 2, 3))
    return node


class TestRoundTrip:
    """Tests for serialize() followed by deserialize()."""

    def test_round_trip(self, editor, graph):
        build_demo(editor, graph)
        graph.evaluate(0.1)
        data = graph.serialize()

        report = graph.deserialize(json.loads(json.dumps(data)))
        assert report.ok
        assert report.nodes_loaded == 3
        assert report.connections_loaded == 1

        again = graph.serialize()
        assert [n["id"] for n in again["nodes"]] == [n["id"] for n in data["nodes"]]
        assert again["connections"] == data["connections"]
        for before, after in zip(data["nodes"], again["nodes"]):
            assert after["inputs"] == before["inputs"]
            assert after["type"] == before["type"]

    def test_subclass_state_restored(self, editor, graph):
        _, clock, spin, _ = build_demo(editor, graph)
        clock.pause()
        graph.evaluate(0.2)
        data = graph.serialize()
        graph.deserialize(data)

        restored_clock = graph.get_node(clock.id)
        restored_spin = graph.get_node(spin.id)
        assert restored_clock is not clock
        assert restored_clock.is_running is False
        assert restored_clock.elapsed == 0.0
        assert restored_spin.rotation == pytest.approx(spin.rotation)

    def test_load_resets_frame_counter(self, editor, graph):
        build_demo(editor, graph)
        graph.evaluate(0.1)
        graph.deserialize(graph.serialize())
        assert graph.frame == 0

    def test_loaded_graph_evaluates(self, editor, graph):
        cube, *_ = build_demo(editor, graph)
        graph.deserialize(graph.serialize())
        graph.evaluate(0.25)
        assert cube.rotation.y > 0.0

    def test_load_emits_event(self, editor, graph):
        build_demo(editor, graph)
        data = graph.serialize()
        events = []
        graph.add_listener(events.append)
        graph.deserialize(data)
        assert [e.change for e in events] == [GraphChange.LOADED]


class TestResync:
    """Property nodes trust the live object after a load."""

    def test_position_resync_on_load(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube", position=Vector3(1, 2, 3)))
        node = graph.create_node("Position", object_id=cube.uuid)
        data = graph.serialize()
        assert data["nodes"][0]["inputs"] == {"x": 1.0, "y": 2.0, "z": 3.0}

        cube.position.set(9, 9, 9)
        graph.deserialize(data)

        restored = graph.get_node(node.id)
        assert [restored.get_input_value(a) for a in "xyz"] == [9.0, 9.0, 9.0]
        graph.evaluate(0.0)
        assert cube.position == Vector3(9.0, 9.0, 9.0)

    def test_resync_becomes_disconnect_fallback(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube", position=Vector3(1, 2, 3)))
        node = graph.create_node("Position", object_id=cube.uuid)
        data = graph.serialize()
        cube.position.set(9, 9, 9)
        graph.deserialize(data)

        restored = graph.get_node(node.id)
        assert [restored.get_input(a).default_value for a in "xyz"] == [9.0, 9.0, 9.0]

        vector = graph.create_node("Vector")
        conn = graph.add_connection(vector.id, vector.output_index("x"),
                                    restored.id, restored.input_index("x"))
        graph.evaluate(0.0)
        editor.remove_object(cube.uuid)
        graph.remove_connection(conn.id)
        assert restored.get_input_value("x") == 9.0

    def test_missing_object_keeps_id(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube"))
        node = graph.create_node("Scale", object_id=cube.uuid)
        data = graph.serialize()
        editor.remove_object(cube.uuid)

        report = graph.deserialize(data)
        assert report.unbound == [node.id]
        assert not report.ok
        assert graph.get_node(node.id).object_id == cube.uuid

        editor.add_object(SceneObject(name="Cube", uuid=cube.uuid))
        assert graph.get_node(node.id).bound_object is not None


class TestTolerantLoad:
    """Tests for loading damaged or foreign data."""

    def _data(self):
        return {
            "nodes": [
                {"id": "node_a", "type": "Add", "x": 0, "y": 0, "inputs": {"a": 2, "b": 3}},
                {"id": "node_t", "type": "Teleport", "x": 0, "y": 0},
                {"id": "node_m", "type": "Multiply", "x": 0, "y": 0, "inputs": {"b": 4}},
                {"id": "node_s", "type": "Subtract", "x": 0, "y": 0},
            ],
            "connections": [
                {"fromNodeId": "node_a", "fromOutputIndex": 0, "toNodeId": "node_m", "toInputIndex": 0},
                {"fromNodeId": "node_t", "fromOutputIndex": 0, "toNodeId": "node_m", "toInputIndex": 1},
                {"fromNodeId": "node_s", "fromOutputIndex": 0, "toNodeId": "node_m", "toInputIndex": 0},
                {"fromNodeId": "node_a", "fromOutputIndex": 5, "toNodeId": "node_s", "toInputIndex": 0},
                {"fromNodeId": "node_m"},
            ],
        }

    def test_unknown_type_skipped(self, graph):
        report = graph.deserialize(self._data())
        assert report.nodes_loaded == 3
        assert report.skipped_nodes == ["node_t (Teleport)"]
        assert "node_t" not in graph

    def test_bad_connections_dropped(self, graph):
        report = graph.deserialize(self._data())
        assert report.connections_loaded == 1
        assert len(report.dropped_connections) == 4
        assert [c.id for c in graph.connections] == ["node_a-0-node_m-0"]

    def test_rest_of_graph_works(self, graph):
        graph.deserialize(self._data())
        graph.evaluate(0.0)
        assert graph.get_node("node_m").get_output_value("result") == pytest.approx(20.0)

    def test_summary_logged_once_at_warning(self, graph, caplog):
        with caplog.at_level(logging.INFO, logger="patch_studio.core.graph"):
            graph.deserialize(self._data())
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "skipped 1 nodes" in warnings[0].getMessage()
        assert any(r.levelno == logging.INFO for r in caplog.records)

    def test_malformed_and_duplicate_nodes(self, graph):
        report = graph.deserialize({"nodes": [
            "garbage",
            {"type": "Add"},
            {"id": "node_a", "type": "Add"},
            {"id": "node_a", "type": "Add"},
        ]})
        assert report.nodes_loaded == 1
        assert len(report.skipped_nodes) == 3

    def test_nodes_keyed_by_id(self, graph):
        report = graph.deserialize({"nodes": {
            "node_a": {"id": "node_a", "type": "Add"},
        }})
        assert report.nodes_loaded == 1

    def test_bad_input_value_keeps_default(self, graph):
        graph.deserialize({"nodes": [
            {"id": "node_a", "type": "Multiply", "inputs": {"a": "lots", "c": 1, "b": 5}},
        ]})
        node = graph.get_node("node_a")
        assert node.get_input_value("a") == 1.0
        assert node.get_input_value("b") == 5.0

    def test_empty_data(self, graph):
        graph.create_node("Add")
        report = graph.deserialize({})
        assert report.ok
        assert len(graph) == 0

    def test_load_replaces_contents(self, graph):
        old = graph.create_node("Add")
        graph.deserialize({"nodes": [{"id": "node_n", "type": "Spin"}]})
        assert old.id not in graph
        assert [n.id for n in graph.nodes] == ["node_n"]


class TestLegacySaves:
    """Tests for entries written by the first patch editor."""

    def test_object_property_entry(self, editor, graph):
        cube = editor.add_object(SceneObject(name="Cube", rotation=Vector3(0, 1, 0)))
        data = {
            "nodes": [{
                "id": "patch_1",
                "type": "ObjectProperty",
                "propertyType": "rotation",
                "objectUuid": cube.uuid,
                "objectName": "Cube",
                "position": {"x": 120, "y": 80},
                "properties": {},
            }],
            "connections": [],
        }
        report = graph.deserialize(data)
        assert report.ok

        node = graph.get_node("patch_1")
        assert node.type_name == "Rotation"
        assert node.object_id == cube.uuid
        assert (node.position.x, node.position.y) == (120.0, 80.0)
        assert node.get_input_value("y") == 1.0

    def test_each_property_type(self, graph):
        nodes = [
            {"id": f"patch_{kind}", "type": "ObjectProperty", "propertyType": kind}
            for kind in ("position", "rotation", "scale")
        ]
        graph.deserialize({"nodes": nodes})
        assert [n.type_name for n in graph.nodes] == ["Position", "Rotation", "Scale"]

    def test_unsupported_property_skipped(self, graph):
        report = graph.deserialize({
            "nodes": [{"id": "patch_c", "type": "ObjectProperty", "propertyType": "color"}],
        })
        assert report.skipped_nodes == ["patch_c (ObjectProperty)"]
        assert len(graph) == 0
