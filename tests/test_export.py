"""Tests for export functionality (dict, JSON)."""

import json

import pytest

from family_layout import (
    EdgeKind,
    FamilyTreeLayout,
    LayoutResult,
    Person,
    RoutedPath,
    Segment,
    compute_layout,
)
from family_layout.export import to_dict, to_json

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def family_layout():
    """A small three-generation family after run()."""
    persons = [
        Person("gp1", first_name="Ada", last_name="Lind", partner_id="gp2", children_ids=["p1"]),
        Person("gp2", partner_id="gp1", children_ids=["p1"]),
        Person("p1", first_name="Bo", parent_ids=["gp1", "gp2"], partner_id="p2"),
        Person("p2", partner_id="p1"),
    ]
    return FamilyTreeLayout(persons=persons).run()


# =============================================================================
# Dict Export
# =============================================================================


class TestToDict:
    """Tests for dict export."""

    def test_structure(self, family_layout):
        """Top-level keys and cluster shape."""
        data = to_dict(family_layout)

        assert set(data) == {"clusters", "paths"}
        assert len(data["clusters"]) == 1
        cluster = data["clusters"][0]
        assert cluster["id"] == "cluster-0"
        assert set(cluster["center"]) == {"x", "y"}
        assert [n["id"] for n in cluster["nodes"]] == ["gp1", "gp2", "p1", "p2"]

    def test_node_fields(self, family_layout):
        """Nodes carry name, position, generation and cluster id."""
        nodes = {n["id"]: n for n in to_dict(family_layout)["clusters"][0]["nodes"]}

        assert nodes["gp1"]["name"] == "Ada Lind"
        assert nodes["p1"]["name"] == "Bo"
        assert nodes["gp2"]["name"] == ""
        assert nodes["p1"]["generation"] == 1
        assert nodes["p1"]["clusterId"] == "cluster-0"
        assert nodes["gp2"]["x"] - nodes["gp1"]["x"] == pytest.approx(170)

    def test_path_fields(self, family_layout):
        """Paths carry kind, endpoints, group and segments."""
        paths = {p["id"]: p for p in to_dict(family_layout)["paths"]}

        bar = paths["family-0:bar"]
        assert bar["kind"] == "bus-bar"
        assert bar["sourceIds"] == ["gp1", "gp2"]
        assert bar["targetIds"] == ["p1"]
        assert bar["groupId"] == "family-0"
        assert bar["lane"] == 0
        assert bar["path"].startswith("M ")
        assert bar["segments"][0]["orientation"] == "horizontal"
        assert bar["segments"][0]["jumps"] == []

        assert paths["partner-0"]["kind"] == "partner-link"
        assert paths["partner-0"]["groupId"] is None

    def test_without_segments(self, family_layout):
        """include_segments=False keeps only the path string."""
        for path in to_dict(family_layout, include_segments=False)["paths"]:
            assert "segments" not in path
            assert path["path"]

    def test_precision(self):
        """Coordinates are rounded to the requested precision."""
        result = compute_layout(
            [Person("a"), Person("b")],
            cluster_spacing=100.0 / 3,
        )
        nodes = [n for c in to_dict(result, precision=1)["clusters"] for n in c["nodes"]]
        assert [n["x"] for n in nodes] == [-33.3, 0.0]

        nodes = [n for c in to_dict(result, precision=None)["clusters"] for n in c["nodes"]]
        assert nodes[0]["x"] == pytest.approx(-100.0 / 3)

    def test_custom_node_attrs(self, family_layout):
        """get_node_attrs adds fields to every node."""
        data = to_dict(family_layout, get_node_attrs=lambda n: {"initial": n.id[0]})
        assert {n["initial"] for n in data["clusters"][0]["nodes"]} == {"g", "p"}

    def test_layout_result_accepted(self):
        """A LayoutResult exports like a layout."""
        data = to_dict(compute_layout([{"id": "a"}]))
        assert data["clusters"][0]["nodes"][0]["id"] == "a"
        assert data["paths"] == []

    def test_segment_jumps(self):
        """Jump points are listed with their segment and drawn in the path string."""
        segment = Segment.between((0, 0), (100, 0))
        segment.jumps.append((50.0, 0.0))
        result = LayoutResult(paths=[RoutedPath("h", EdgeKind.PARENT_LINK, [segment])])

        path = to_dict(result)["paths"][0]
        assert path["segments"][0]["jumps"] == [[50.0, 0.0]]
        assert " Q " in path["path"]


# =============================================================================
# JSON Export
# =============================================================================


class TestToJson:
    """Tests for JSON export."""

    def test_valid_json(self, family_layout):
        """Output parses back to the dict export."""
        text = to_json(family_layout)
        assert json.loads(text) == to_dict(family_layout)

    def test_compact(self, family_layout):
        """indent=None produces a single line."""
        assert "\n" not in to_json(family_layout, indent=None)

    def test_empty_layout(self):
        """An empty layout exports empty lists."""
        layout = FamilyTreeLayout(persons=[]).run()
        assert json.loads(to_json(layout)) == {"clusters": [], "paths": []}
