"""
Tests for orthogonal connector routing.
"""

import pytest

from family_layout import FamilyTreeLayout, LayoutSpacing, Person, Position, TreeNode
from family_layout.hierarchical.arrangement import cluster_center
from family_layout.orthogonal import (
    CardBox,
    EdgeKind,
    Orientation,
    RoutedPath,
    Segment,
    add_jumps,
    build_bus_path,
    find_crossings,
    route_family_edges,
    route_orthogonal,
    route_parent_links,
    route_partner,
)
from family_layout.orthogonal.edge_routing import (
    assign_lanes,
    family_groups,
    points_to_segments,
)
from family_layout.preprocessing import PersonIndex
from family_layout.types import Cluster

# =============================================================================
# Test Fixtures
# =============================================================================


def create_three_generations():
    """Grandparents G1 x G2, parent P1 x P2, three children."""
    return [
        Person("gp1", partner_id="gp2", children_ids=["p1"]),
        Person("gp2", partner_id="gp1", children_ids=["p1"]),
        Person("p1", parent_ids=["gp1", "gp2"], partner_id="p2", children_ids=["e1", "e2", "e3"]),
        Person("p2", partner_id="p1", children_ids=["e1", "e2", "e3"]),
        Person("e1", parent_ids=["p1", "p2"]),
        Person("e2", parent_ids=["p1", "p2"]),
        Person("e3", parent_ids=["p1", "p2"]),
    ]


def routed_three_generations(**kwargs):
    layout = FamilyTreeLayout(persons=create_three_generations(), **kwargs)
    layout.run()
    return {path.id: path for path in layout.paths}


def make_cluster(index, placements):
    """Cluster from {id: (x, y)} using the persons of index."""
    nodes = [
        TreeNode(person=index[pid], position=Position(x, y), cluster_id="cluster-0")
        for pid, (x, y) in placements.items()
    ]
    return Cluster(id="cluster-0", nodes=nodes, center=cluster_center(nodes))


def box(box_id, x, y):
    return CardBox(id=box_id, x=x, y=y, width=150, height=130)


# =============================================================================
# Segments and Paths
# =============================================================================


class TestSegments:
    """Tests for segment construction and path strings."""

    def test_orientation_inferred(self):
        """Orientation follows the changing coordinate."""
        assert Segment.between((0, 0), (10, 0)).orientation is Orientation.HORIZONTAL
        assert Segment.between((0, 0), (0, 10)).orientation is Orientation.VERTICAL

    def test_diagonal_raises(self):
        """Diagonal segments are rejected."""
        with pytest.raises(ValueError, match="not axis aligned"):
            Segment.between((0, 0), (10, 10))
        with pytest.raises(ValueError):
            points_to_segments([(0, 0), (5, 5)])

    def test_simplify_collinear(self):
        """Duplicate and collinear points collapse."""
        segments = points_to_segments([(0, 0), (0, 0), (5, 0), (10, 0), (10, 20)])
        assert [(s.start, s.end) for s in segments] == [
            ((0.0, 0.0), (10.0, 0.0)),
            ((10.0, 0.0), (10.0, 20.0)),
        ]

    def test_path_string(self):
        """Connected segments render as one subpath."""
        path = RoutedPath(
            id="p",
            kind=EdgeKind.PARENT_LINK,
            segments=points_to_segments([(0, 0), (0, 30), (20.25, 30)]),
        )
        assert path.path == "M 0.0 0.0 L 0.0 30.0 L 20.2 30.0"
        assert path.points == [(0.0, 0.0), (0.0, 30.0), (20.25, 30.0)]
        assert path.length == pytest.approx(50.25)

    def test_discontinuous_path_string(self):
        """A gap between segments opens a new subpath."""
        path = RoutedPath(
            id="p",
            kind=EdgeKind.BUS_BAR,
            segments=[Segment.between((0, 0), (10, 0)), Segment.between((20, 0), (20, 10))],
        )
        assert path.path == "M 0.0 0.0 L 10.0 0.0 M 20.0 0.0 L 20.0 10.0"

    def test_card_box_edges(self):
        """Card boxes are centered on the position."""
        card = box("a", 0, 0)
        assert (card.left, card.right, card.top, card.bottom) == (-75, 75, -65, 65)


# =============================================================================
# Point-to-point Routing
# =============================================================================


class TestRouteOrthogonal:
    """Tests for the generic orthogonal router."""

    def test_aligned_single_segment(self):
        """Aligned points are joined directly."""
        segments = route_orthogonal((0, 0), (0, 50))
        assert len(segments) == 1
        assert segments[0].orientation is Orientation.VERTICAL

    def test_same_point_empty(self):
        """Coinciding points need no segment."""
        assert route_orthogonal((3, 4), (3, 4)) == []

    def test_vertical_first_with_lane(self):
        """A mostly vertical route bends at the lane-offset middle y."""
        segments = route_orthogonal((0, 0), (100, 300), lane=1, lane_spacing=6)
        assert [(s.start, s.end) for s in segments] == [
            ((0.0, 0.0), (0.0, 156.0)),
            ((0.0, 156.0), (100.0, 156.0)),
            ((100.0, 156.0), (100.0, 300.0)),
        ]
        assert all(s.lane == 1 for s in segments)

    def test_horizontal_first(self):
        """A mostly horizontal route bends at the middle x."""
        segments = route_orthogonal((0, 0), (300, 100))
        assert [s.orientation for s in segments] == [
            Orientation.HORIZONTAL,
            Orientation.VERTICAL,
            Orientation.HORIZONTAL,
        ]
        assert segments[1].start == (150.0, 0.0)

    def test_all_segments_axis_aligned(self):
        """Every produced segment is horizontal or vertical and connected."""
        segments = route_orthogonal((-37, 12), (91, -250), lane=2, edge_id="e")
        for a, b in zip(segments, segments[1:]):
            assert a.end == b.start
        assert all(s.edge_id == "e" for s in segments)


# =============================================================================
# Family Connectors
# =============================================================================


class TestBuildBusPath:
    """Tests for bus construction."""

    def test_pieces(self):
        """Trunks, bar and branches with shared group id."""
        parents = [box("m", 0, 0), box("f", 170, 0)]
        children = [box("a", -10, 190), box("b", 350, 190)]
        paths = build_bus_path(parents, children, 95, group_id="family-3")

        assert [p.kind for p in paths] == [
            EdgeKind.PARENT_TRUNK,
            EdgeKind.PARENT_TRUNK,
            EdgeKind.BUS_BAR,
            EdgeKind.CHILD_BRANCH,
            EdgeKind.CHILD_BRANCH,
        ]
        assert all(p.group_id == "family-3" for p in paths)
        assert paths[0].id == "family-3:trunk:m"
        assert paths[2].id == "family-3:bar"
        assert paths[4].id == "family-3:branch:b"

    def test_geometry(self):
        """Trunks start at the parent bottom edge, branches end at the child top edge."""
        paths = build_bus_path([box("m", 0, 0)], [box("a", 200, 190)], 95)
        trunk, bar, branch = paths

        assert trunk.path == "M 0.0 65.0 L 0.0 95.0"
        assert bar.path == "M -10.0 95.0 L 210.0 95.0"
        assert branch.path == "M 200.0 95.0 L 200.0 125.0"
        assert trunk.target_ids == ["a"]
        assert branch.source_ids == ["m"]

    def test_bar_spans_parents_and_children(self):
        """The bar reaches past the outermost parent or child."""
        paths = build_bus_path([box("m", 100, 0)], [box("a", 0, 190), box("b", 50, 190)], 95)
        bar = next(p for p in paths if p.kind is EdgeKind.BUS_BAR)
        assert (bar.segments[0].min_x, bar.segments[0].max_x) == (-10.0, 110.0)

    def test_custom_overhang(self):
        """overhang=0 ends the bar at the outermost card centers."""
        paths = build_bus_path([box("m", 100, 0)], [box("a", 0, 190)], 95, overhang=0)
        bar = next(p for p in paths if p.kind is EdgeKind.BUS_BAR)
        assert bar.path == "M 0.0 95.0 L 100.0 95.0"


class TestRoutePartner:
    """Tests for partner links."""

    def test_same_row(self):
        """Partners on one row are joined between their facing edges."""
        path = route_partner(box("a", 0, 0), box("b", 170, 0), edge_id="partner-5")
        assert path.kind is EdgeKind.PARTNER_LINK
        assert path.id == "partner-5"
        assert path.points == [(75.0, 0.0), (95.0, 0.0)]

    def test_same_row_right_to_left(self):
        """Argument order does not change the geometry."""
        path = route_partner(box("a", 170, 0), box("b", 0, 0))
        assert path.points == [(75.0, 0.0), (95.0, 0.0)]
        assert path.source_ids == ["a"]

    def test_overlapping_cards(self):
        """Overlapping cards are joined center to center."""
        path = route_partner(box("a", 0, 0), box("b", 100, 0))
        assert path.points == [(0.0, 0.0), (100.0, 0.0)]

    def test_different_rows(self):
        """Partners on different rows get a three-segment path."""
        path = route_partner(box("a", 0, 0), box("b", 200, 190))
        assert path.points == [(0.0, 65.0), (0.0, 95.0), (200.0, 95.0), (200.0, 125.0)]

    def test_different_rows_starts_at_first_partner(self):
        """The path starts at the first partner even when it is lower."""
        path = route_partner(box("b", 200, 190), box("a", 0, 0))
        assert path.points[0] == (200.0, 125.0)
        assert path.points[-1] == (0.0, 65.0)


class TestAssignLanes:
    """Tests for greedy bar lane assignment."""

    def test_overlap_in_row(self):
        """Overlapping bars in one row get different lanes; free lanes are reused."""
        spans = [(100, 0, 200), (100, 150, 300), (100, 400, 500), (300, 0, 200)]
        assert assign_lanes(spans, 95) == [0, 1, 0, 0]

    def test_touching_bars_overlap(self):
        """A bar starting where another ends still needs its own lane."""
        assert assign_lanes([(0, 0, 100), (0, 100, 200)], 95) == [0, 1]

    def test_rows_within_tolerance(self):
        """Bars a few units apart in y share a row."""
        assert assign_lanes([(95, 0, 100), (101, 50, 150)], 95) == [0, 1]

    def test_empty(self):
        assert assign_lanes([], 95) == []


# =============================================================================
# Crossings
# =============================================================================


def single_segment_path(path_id, start, end, group_id=None):
    return RoutedPath(
        id=path_id,
        kind=EdgeKind.PARENT_LINK,
        segments=[Segment.between(start, end)],
        group_id=group_id,
    )


class TestFindCrossings:
    """Tests for crossing detection."""

    def test_proper_crossing(self):
        """An interior intersection is reported at its point."""
        h = single_segment_path("h", (0, 0), (100, 0))
        v = single_segment_path("v", (50, -10), (50, 10))
        crossings = find_crossings([h, v])

        assert len(crossings) == 1
        assert crossings[0].point == (50.0, 0.0)
        assert crossings[0].horizontal is h.segments[0]
        assert crossings[0].vertical is v.segments[0]

    def test_touching_is_not_crossing(self):
        """Meeting at an endpoint is not a crossing."""
        h = single_segment_path("h", (0, 0), (100, 0))
        v = single_segment_path("v", (50, 0), (50, 10))
        assert find_crossings([h, v]) == []

    def test_same_group_ignored(self):
        """Pieces of one bus never cross each other."""
        h = single_segment_path("h", (0, 0), (100, 0), group_id="family-0")
        v = single_segment_path("v", (50, -10), (50, 10), group_id="family-0")
        assert find_crossings([h, v]) == []

    def test_same_path_ignored(self):
        """A path does not cross itself."""
        path = RoutedPath(
            id="p",
            kind=EdgeKind.PARENT_LINK,
            segments=[Segment.between((0, 0), (100, 0)), Segment.between((50, -10), (50, 10))],
        )
        assert find_crossings([path]) == []


class TestAddJumps:
    """Tests for line jumps at crossings."""

    def test_horizontal_jumps_by_default(self):
        """The horizontal segment hops over the vertical one."""
        h = single_segment_path("h", (0, 0), (100, 0))
        v = single_segment_path("v", (50, -10), (50, 10))
        jumped_h, jumped_v = add_jumps([h, v], find_crossings([h, v]))

        assert jumped_h.path == (
            "M 0.0 0.0 L 44.0 0.0 Q 50.0 0.0 50.0 -4.0 Q 50.0 0.0 56.0 0.0 L 100.0 0.0"
        )
        assert jumped_v is v
        assert jumped_v.path == "M 50.0 -10.0 L 50.0 10.0"

    def test_jump_vertical(self):
        """jump_vertical moves the arc onto the vertical segment."""
        h = single_segment_path("h", (0, 0), (100, 0))
        v = single_segment_path("v", (50, -10), (50, 10))
        jumped_h, jumped_v = add_jumps([h, v], find_crossings([h, v]), jump_vertical=True)

        assert jumped_h is h
        assert jumped_v.path == (
            "M 50.0 -10.0 L 50.0 -6.0 Q 50.0 0.0 54.0 0.0 Q 50.0 0.0 50.0 6.0 L 50.0 10.0"
        )

    def test_right_to_left_segment(self):
        """Jumps follow the drawing direction of the segment."""
        h = single_segment_path("h", (100, 0), (0, 0))
        v = single_segment_path("v", (50, -10), (50, 10))
        jumped_h, _ = add_jumps([h, v], find_crossings([h, v]))

        assert jumped_h.path == (
            "M 100.0 0.0 L 56.0 0.0 Q 50.0 0.0 50.0 -4.0 Q 50.0 0.0 44.0 0.0 L 0.0 0.0"
        )

    def test_inputs_untouched(self):
        """The original paths keep their plain segments."""
        h = single_segment_path("h", (0, 0), (100, 0))
        v = single_segment_path("v", (50, -10), (50, 10))
        add_jumps([h, v], find_crossings([h, v]))

        assert h.segments[0].jumps == []
        assert h.path == "M 0.0 0.0 L 100.0 0.0"

    def test_crowded_jumps_dropped(self):
        """A jump too close to the segment end or to the previous jump is skipped."""
        h = single_segment_path("h", (0, 0), (100, 0))
        verticals = [single_segment_path(f"v{x}", (x, -10), (x, 10)) for x in (3, 50, 52)]
        paths = [h] + verticals
        jumped = add_jumps(paths, find_crossings(paths))[0]

        assert jumped.segments[0].jumps == [(3.0, 0.0), (50.0, 0.0), (52.0, 0.0)]
        assert jumped.path.count("Q") == 2

    def test_custom_radius(self):
        """radius sets the arc size."""
        h = single_segment_path("h", (0, 0), (100, 0))
        v = single_segment_path("v", (50, -10), (50, 10))
        jumped_h, _ = add_jumps([h, v], find_crossings([h, v]), radius=8)

        assert jumped_h.jump_radius == 8
        assert "L 38.0 0.0 Q 50.0 0.0 50.0 -8.0" in jumped_h.path


# =============================================================================
# Layout-wide Routing
# =============================================================================


class TestRouteFamilyEdges:
    """Tests for bus routing of a whole layout."""

    def test_three_generations_paths(self):
        """Two buses and two partner links."""
        paths = routed_three_generations()

        assert len(paths) == 12
        assert paths["family-0:trunk:gp1"].path == "M -242.5 -125.0 L -242.5 -95.0"
        assert paths["family-0:bar"].path == "M -252.5 -95.0 L -62.5 -95.0"
        assert paths["family-0:branch:p1"].path == "M -157.5 -95.0 L -157.5 -65.0"
        assert paths["family-1:bar"].path == "M -167.5 95.0 L 252.5 95.0"
        assert paths["family-1:branch:e3"].path == "M 242.5 95.0 L 242.5 125.0"
        assert paths["partner-0"].path == "M -167.5 -190.0 L -147.5 -190.0"
        assert paths["partner-1"].path == "M -82.5 0.0 L -62.5 0.0"

    def test_three_generations_no_crossings(self):
        """The three-generation family routes without crossings."""
        paths = list(routed_three_generations().values())
        assert find_crossings(paths) == []

    def test_bus_connects_all_children(self):
        """Every child of a group has a branch."""
        paths = routed_three_generations()
        branches = [p for p in paths.values() if p.kind is EdgeKind.CHILD_BRANCH]
        assert sorted(p.target_ids[0] for p in branches) == ["e1", "e2", "e3", "p1"]

    def test_custom_bus_gap(self):
        """bus_gap moves the bar below the parents."""
        paths = routed_three_generations(bus_gap=10)
        assert paths["family-1:bar"].segments[0].start[1] == pytest.approx(75)

    def test_overlapping_bars_get_lanes(self):
        """Two sibling groups with overlapping bars in one row are offset."""
        persons = [
            Person("m1", partner_id="f1", children_ids=["c1"]),
            Person("f1", partner_id="m1", children_ids=["c1"]),
            Person("m2", children_ids=["c2"]),
            Person("c1"),
            Person("c2"),
        ]
        index = PersonIndex(persons)
        cluster = make_cluster(
            index,
            {"m1": (0, 0), "f1": (170, 0), "m2": (100, 0), "c1": (85, 190), "c2": (300, 190)},
        )
        paths = route_family_edges([cluster], index, LayoutSpacing())
        bars = [p for p in paths if p.kind is EdgeKind.BUS_BAR]

        assert [bar.lane for bar in bars] == [0, 1]
        assert [bar.segments[0].start[1] for bar in bars] == pytest.approx([95, 101])

    def test_jump_hook(self):
        """The hook sees all paths and crossings and its result is used."""
        calls = []

        def hook(paths, crossings):
            calls.append((len(paths), crossings))
            return paths[:1]

        layout = FamilyTreeLayout(persons=create_three_generations(), jump_hook=hook)
        layout.run()

        assert calls == [(12, [])]
        assert len(layout.paths) == 1

    def test_add_jumps_as_hook(self):
        """A branch crossing another family's bar makes the bar jump."""
        persons = [
            Person("m1", partner_id="f1", children_ids=["c1"]),
            Person("f1", partner_id="m1", children_ids=["c1"]),
            Person("m2", children_ids=["c2"]),
            Person("c1"),
            Person("c2"),
        ]
        index = PersonIndex(persons)
        cluster = make_cluster(
            index,
            {"m1": (0, 0), "f1": (170, 0), "m2": (400, -190), "c1": (85, 190), "c2": (0, 190)},
        )
        plain = route_family_edges([cluster], index, LayoutSpacing())
        crossings = find_crossings(plain)
        assert [c.point for c in crossings] == [(0.0, 95.0)]

        jumped = route_family_edges([cluster], index, LayoutSpacing(), jump_hook=add_jumps)
        paths = {p.id: p for p in jumped}
        assert paths["family-0:bar"].path == (
            "M -10.0 95.0 L -6.0 95.0 Q 0.0 95.0 0.0 91.0 Q 0.0 95.0 6.0 95.0 L 180.0 95.0"
        )
        assert paths["family-1:branch:c2"].path == "M 0.0 -95.0 L 0.0 125.0"

    def test_bus_overhang_option(self):
        """bus_overhang reaches the layout's bars."""
        paths = routed_three_generations(bus_overhang=0)
        assert paths["family-1:bar"].path == "M -157.5 95.0 L 242.5 95.0"

    def test_family_groups_sorted(self):
        """Parents and children are listed left to right."""
        index = PersonIndex(create_three_generations())
        cluster = make_cluster(
            index,
            {
                "gp1": (0, 0),
                "gp2": (170, 0),
                "p1": (85, 190),
                "p2": (255, 190),
                "e1": (350, 380),
                "e2": (-10, 380),
                "e3": (170, 380),
            },
        )
        groups = family_groups([cluster], index)
        assert groups == [(["gp1", "gp2"], ["p1"]), (["p1", "p2"], ["e2", "e3", "e1"])]


class TestRouteParentLinks:
    """Tests for direct parent -> child routing."""

    def test_one_link_per_parent_child(self):
        """Each parent/child pair gets its own connector."""
        paths = routed_three_generations(edge_style="direct")
        links = [p for p in paths.values() if p.kind is EdgeKind.PARENT_LINK]

        assert len(links) == 8
        assert "link:gp1:p1" in paths
        assert "link:p2:e3" in paths
        assert paths["link:gp2:p1"].lane == 1
        assert len(paths) == 10

    def test_link_endpoints(self):
        """Links run from the parent bottom edge to the child top edge."""
        index = PersonIndex([Person("p", children_ids=["c"]), Person("c")])
        cluster = make_cluster(index, {"p": (0, 0), "c": (0, 190)})
        paths = route_parent_links([cluster], index, LayoutSpacing())

        assert len(paths) == 1
        assert paths[0].points == [(0.0, 65.0), (0.0, 125.0)]
