"""
Tests for the node registry.
"""

import pytest

from patch_studio.core.errors import GraphError, UnknownNodeTypeError
from patch_studio.core.node import PatchNode
from patch_studio.core.node_types import NodeCategory, NodeRegistry
from patch_studio.nodes import register_all_nodes


BUILT_IN_TYPES = {
    "Clock", "Time",
    "Add", "Subtract", "Multiply", "Divide",
    "Spin", "Pulse", "Float", "Fade",
    "Position", "Rotation", "Scale", "Opacity", "SceneObject", "Vector",
}


class TestNodeRegistry:
    """Tests for NodeRegistry."""

    def test_register_all_nodes(self, registry):
        assert set(registry.types()) == BUILT_IN_TYPES
        assert len(registry) == len(BUILT_IN_TYPES)

    def test_create(self, registry):
        node = registry.create("Spin", 10, 20)
        assert node.type_name == "Spin"
        assert node.position.x == 10
        assert node.position.y == 20

    def test_create_passes_node_id(self, registry):
        node = registry.create("Add", node_id="node_fixed")
        assert node.id == "node_fixed"

    def test_create_unknown(self, registry):
        with pytest.raises(UnknownNodeTypeError) as exc_info:
            registry.create("Teleport")
        assert exc_info.value.type_name == "Teleport"
        assert isinstance(exc_info.value, GraphError)
        assert isinstance(exc_info.value, KeyError)

    def test_category_from_class(self, registry):
        assert registry.get("Clock").category == NodeCategory.TIMING
        assert registry.get("Position").needs_object is True
        assert registry.get("Vector").needs_object is False

    def test_register_callable_with_explicit_category(self):
        reg = NodeRegistry()
        reg.register("Blank", lambda x, y, **kw: PatchNode(x, y, **kw),
                     category=NodeCategory.CUSTOM, description="Nothing")
        node = reg.create("Blank", 1, 2)
        assert isinstance(node, PatchNode)
        assert reg.get("Blank").description == "Nothing"

    def test_reregister_replaces(self, registry):
        registry.register("Add", registry.get("Subtract").constructor)
        assert registry.create("Add").type_name == "Subtract"

    def test_unregister(self, registry):
        assert registry.unregister("Fade") is not None
        assert "Fade" not in registry
        assert registry.unregister("Fade") is None

    def test_by_category(self, registry):
        names = {t.type_name for t in registry.by_category(NodeCategory.ANIMATION)}
        assert names == {"Spin", "Pulse", "Float", "Fade"}

    def test_search(self, registry):
        names = {t.type_name for t in registry.search("rpm")}
        assert names == {"Spin"}
        assert {t.type_name for t in registry.search("OPACITY")} >= {"Opacity", "Fade"}

    def test_fresh_registry_is_empty_and_separate(self):
        reg = NodeRegistry()
        assert len(reg) == 0
        assert reg is not NodeRegistry.instance()

    def test_register_all_nodes_returns_given_registry(self):
        reg = NodeRegistry()
        assert register_all_nodes(reg) is reg

    def test_shared_instance(self):
        assert NodeRegistry.instance() is NodeRegistry.instance()


class TestUpgrades:
    """Tests for rewriting saved entries of retired types."""

    def test_current_types_untouched(self, registry):
        entry = {"id": "n", "type": "Spin"}
        assert registry.upgrade(entry) is entry

    def test_unknown_types_untouched(self, registry):
        entry = {"id": "n", "type": "Teleport"}
        assert registry.upgrade(entry) is entry

    def test_registered_upgrade(self):
        reg = NodeRegistry()
        reg.register_upgrade("Old", lambda data: {**data, "type": "New"})
        assert reg.upgrade({"id": "n", "type": "Old"}) == {"id": "n", "type": "New"}

    def test_object_property_upgrade_registered(self, registry):
        entry = {"id": "n", "type": "ObjectProperty", "propertyType": "scale", "objectUuid": "obj"}
        upgraded = registry.upgrade(entry)
        assert upgraded["type"] == "Scale"
        assert upgraded["objectId"] == "obj"
        assert "propertyType" not in upgraded
