"""Unit tests for NavigationGraph.

Tests cover:
- Node and edge operations (designated edge per pair, frozen graph)
- Query operations (reachability, shortest path, all paths)
- Analysis operations (unreachable and dead-end screens, statistics)
- Node-link export
"""

import json

import networkx as nx
import pytest

from appnav.exceptions import GraphConfigError
from appnav.lib.gui.locators import LocatorFactory
from appnav.lib.gui.navigation_graph import NavigationGraph, Transition
from appnav.lib.gui.screen_actions import Tap

find = LocatorFactory()


def tap(key):
    return Tap(find.by_key(key))


@pytest.fixture
def graph():
    """boot -> introduction -> pin -> dashboard, with a boot -> pin shortcut."""
    graph = NavigationGraph(start="boot")
    for name in ("boot", "introduction", "pin", "dashboard", "settings"):
        graph.add_state(name)
    graph.add_transition("boot", "introduction", tap("next"))
    graph.add_transition("introduction", "pin", tap("next"))
    graph.add_transition("pin", "dashboard", tap("unlock"))
    graph.add_transition("boot", "pin", tap("skip"))
    return graph


class TestNodeOperations:
    """Test adding screens and transitions."""

    def test_add_state(self):
        """Test adding a screen node."""
        graph = NavigationGraph(start="boot")
        node_id = graph.add_state("boot", description="First page")

        assert node_id == "boot"
        assert graph.G.nodes["boot"]["node_type"] == "Screen"
        assert graph.G.nodes["boot"]["description"] == "First page"

    def test_add_transition(self):
        """Test edge carries its transition."""
        graph = NavigationGraph(start="boot")
        graph.add_state("boot")
        graph.add_state("introduction")
        action = tap("next")

        transition = graph.add_transition("boot", "introduction", action)

        assert transition == Transition("boot", "introduction", action)
        assert graph.G["boot"]["introduction"]["edge_type"] == "NAVIGATES_TO"
        assert graph.G["boot"]["introduction"]["transition"] is transition

    def test_transition_str_names_action(self):
        """Test readable transition form used in logs."""
        transition = Transition("boot", "introduction", tap("next"))

        assert str(transition) == "boot -> introduction (tap [accessibility id='next'])"

    def test_duplicate_transition_rejected(self, graph):
        """Test only one designated edge per pair."""
        with pytest.raises(GraphConfigError, match="Duplicate transition"):
            graph.add_transition("boot", "introduction", tap("other"))

    def test_unknown_screen_rejected(self, graph):
        """Test transitions must reference registered screens."""
        with pytest.raises(GraphConfigError, match="unknown screen 'nowhere'"):
            graph.add_transition("boot", "nowhere", tap("next"))

    def test_self_transition_rejected(self, graph):
        """Test self loops are not allowed."""
        with pytest.raises(GraphConfigError, match="Self transition"):
            graph.add_transition("boot", "boot", tap("next"))

    def test_frozen_graph_is_read_only(self, graph):
        """Test freeze returns the graph and blocks changes."""
        assert graph.freeze() is graph
        assert graph.is_frozen

        with pytest.raises(GraphConfigError, match="frozen"):
            graph.add_state("menu")
        with pytest.raises(GraphConfigError, match="frozen"):
            graph.add_transition("dashboard", "settings", tap("settings"))


class TestQueryOperations:
    """Test graph queries."""

    def test_get_states(self, graph):
        assert graph.get_states() == ["boot", "introduction", "pin", "dashboard", "settings"]

    def test_get_transition(self, graph):
        """Test direct edge lookup."""
        transition = graph.get_transition("pin", "dashboard")

        assert transition.from_state == "pin"
        assert transition.to_state == "dashboard"
        assert graph.get_transition("dashboard", "pin") is None

    def test_get_outgoing(self, graph):
        targets = sorted(t.to_state for t in graph.get_outgoing("boot"))

        assert targets == ["introduction", "pin"]
        assert graph.get_outgoing("nowhere") == []

    def test_get_transitions(self, graph):
        assert len(graph.get_transitions()) == 4

    def test_reachable_from_start(self, graph):
        """Test start-reachable set excludes isolated screens."""
        assert graph.reachable_from() == ["boot", "dashboard", "introduction", "pin"]

    def test_reachable_from_state(self, graph):
        assert graph.reachable_from("pin") == ["pin", "dashboard"]
        assert graph.reachable_from("nowhere") == []

    def test_shortest_path_takes_fewest_transitions(self, graph):
        """Test BFS prefers the shortcut over the longer route."""
        path = graph.find_shortest_path("boot", "dashboard")

        assert [(t.from_state, t.to_state) for t in path] == [
            ("boot", "pin"),
            ("pin", "dashboard"),
        ]

    def test_shortest_path_same_screen(self, graph):
        """Test empty path when already at the target."""
        assert graph.find_shortest_path("pin", "pin") == []

    def test_shortest_path_unreachable(self, graph):
        """Test no path to an isolated screen."""
        assert graph.find_shortest_path("boot", "settings") is None

    def test_shortest_path_unknown_screen(self, graph):
        assert graph.find_shortest_path("boot", "nowhere") is None

    def test_find_all_paths_shortest_first(self, graph):
        paths = graph.find_all_paths("boot", "dashboard")

        assert [len(path) for path in paths] == [2, 3]
        assert paths[1][0].to_state == "introduction"

    def test_find_all_paths_respects_max_length(self, graph):
        paths = graph.find_all_paths("boot", "dashboard", max_length=2)

        assert len(paths) == 1


class TestAnalysisOperations:
    """Test graph analysis."""

    def test_find_unreachable_states(self, graph):
        assert graph.find_unreachable_states() == ["settings"]

    def test_find_dead_end_states(self, graph):
        assert graph.find_dead_end_states() == ["dashboard", "settings"]

    def test_validate_accepts_unreachable_screens(self, graph):
        """Test screens reached only by test steps are allowed."""
        graph.validate()

    def test_validate_missing_start(self):
        graph = NavigationGraph(start="boot")
        graph.add_state("dashboard")

        with pytest.raises(GraphConfigError, match="Start screen 'boot'"):
            graph.validate()

    def test_get_statistics(self, graph):
        stats = graph.get_statistics()

        assert stats["state_count"] == 5
        assert stats["transition_count"] == 4
        assert stats["unreachable_states"] == ["settings"]
        assert stats["is_weakly_connected"] is False

    def test_get_statistics_empty_graph(self):
        stats = NavigationGraph(start="boot").get_statistics()

        assert stats["state_count"] == 0
        assert stats["is_weakly_connected"] is False


class TestExportOperations:
    """Test node-link export."""

    def test_export_node_link_is_json_serializable(self, graph):
        data = graph.export_node_link()

        json.dumps(data)
        assert data["graph"]["start"] == "boot"
        assert len(data["nodes"]) == 5
        assert len(data["edges"]) == 4

    def test_export_node_link_round_trips_structure(self, graph):
        """Test exported data can be loaded back by NetworkX."""
        data = graph.export_node_link()
        loaded = nx.node_link_graph(data, edges="edges")

        assert loaded.has_edge("boot", "pin")
        assert loaded["boot"]["pin"]["action"] == "tap [accessibility id='skip']"
