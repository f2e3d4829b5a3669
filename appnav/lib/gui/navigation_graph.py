"""NetworkX-based navigation graph of app screens.

Screens are nodes (keyed by screen name) and every edge carries the
:class:`Transition` whose action moves the app from one screen to the next.
The graph is static configuration: build it once at start, call
:meth:`NavigationGraph.freeze` and share it read-only between tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import networkx as nx

from appnav.exceptions import GraphConfigError

if TYPE_CHECKING:
    from appnav.lib.gui.screen_actions import ScreenAction

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """Edge of the navigation graph.

    Attributes:
        from_state: Source screen name
        to_state: Destination screen name
        action: Action that moves the app from source to destination
    """

    from_state: str
    to_state: str
    action: ScreenAction

    def __str__(self) -> str:
        return f"{self.from_state} -> {self.to_state} ({self.action.describe()})"


class NavigationGraph:
    """Directed graph of screens and the actions connecting them.

    The graph need not be connected, but holds at most one designated
    transition per ``(from, to)`` pair: that is the edge the path finder uses.

    Example:
        >>> graph = NavigationGraph(start="boot")
        >>> graph.add_state("boot")
        >>> graph.add_state("introduction")
        >>> graph.add_transition("boot", "introduction", Tap(find.by_key("start")))
        >>> graph.find_shortest_path("boot", "introduction")
        [Transition(from_state='boot', to_state='introduction', ...)]

    Attributes:
        G: The underlying NetworkX directed graph
        start: Conventional app-boot screen
    """

    def __init__(self, start: str):
        """Initialize an empty graph.

        Args:
            start: Name of the screen the app shows after boot
        """
        self.G = nx.DiGraph()
        self.start = start

    # ========== Node / Edge Operations ==========

    def add_state(self, name: str, **attrs) -> str:
        """Add a screen node.

        Args:
            name: Screen name (used as node ID)
            **attrs: Additional attributes (description, etc.)

        Returns:
            Node ID

        Raises:
            GraphConfigError: If the graph is frozen
        """
        if self.is_frozen:
            raise GraphConfigError("Navigation graph is frozen")
        self.G.add_node(name, node_type="Screen", **attrs)
        return name

    def add_transition(self, from_state: str, to_state: str, action: ScreenAction) -> Transition:
        """Add the designated transition between two screens.

        Args:
            from_state: Source screen name
            to_state: Destination screen name
            action: Action performed on the source screen

        Returns:
            The stored transition

        Raises:
            GraphConfigError: If a screen is unknown, the edge is a self
                loop, the pair already has a designated transition or the
                graph is frozen
        """
        if self.is_frozen:
            raise GraphConfigError("Navigation graph is frozen")
        for name in (from_state, to_state):
            if name not in self.G:
                raise GraphConfigError(f"Transition references unknown screen '{name}'")
        if from_state == to_state:
            raise GraphConfigError(f"Self transition on '{from_state}' is not allowed")
        if self.G.has_edge(from_state, to_state):
            raise GraphConfigError(
                f"Duplicate transition '{from_state}' -> '{to_state}'"
            )

        transition = Transition(from_state, to_state, action)
        self.G.add_edge(from_state, to_state, edge_type="NAVIGATES_TO", transition=transition)
        return transition

    def freeze(self) -> NavigationGraph:
        """Make the graph read-only so it can be shared between tests."""
        nx.freeze(self.G)
        return self

    @property
    def is_frozen(self) -> bool:
        return nx.is_frozen(self.G)

    # ========== Query Operations ==========

    def get_states(self) -> list[str]:
        """Get all screen names."""
        return list(self.G.nodes())

    def get_transitions(self) -> list[Transition]:
        """Get all transitions."""
        return [data["transition"] for _, _, data in self.G.edges(data=True)]

    def get_transition(self, from_state: str, to_state: str) -> Transition | None:
        """Get the direct transition between two screens, if any."""
        if not self.G.has_edge(from_state, to_state):
            return None
        return self.G[from_state][to_state]["transition"]

    def get_outgoing(self, state: str) -> list[Transition]:
        """Get transitions leaving a screen."""
        if state not in self.G:
            return []
        return [data["transition"] for _, _, data in self.G.out_edges(state, data=True)]

    def reachable_from(self, state: str | None = None) -> list[str]:
        """Screens reachable from ``state`` (the start screen by default), itself included.

        The start-reachable set bounds current-screen detection.
        """
        origin = state or self.start
        if origin not in self.G:
            return []
        return [origin] + sorted(nx.descendants(self.G, origin))

    def find_shortest_path(self, from_state: str, to_state: str) -> list[Transition] | None:
        """Find the path with the fewest transitions.

        Edges are unweighted, so NetworkX runs a breadth-first search.

        Args:
            from_state: Start screen
            to_state: Target screen

        Returns:
            Transitions in execution order, empty list if both screens are
            the same, None if no path exists
        """
        try:
            nodes = nx.shortest_path(self.G, from_state, to_state)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None
        return [
            self.G[source][target]["transition"]
            for source, target in zip(nodes, nodes[1:])
        ]

    def find_all_paths(
        self,
        from_state: str,
        to_state: str,
        max_length: int = 10,
    ) -> list[list[Transition]]:
        """Find all simple paths between two screens, shortest first."""
        try:
            node_paths = list(nx.all_simple_paths(self.G, from_state, to_state, cutoff=max_length))
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return []
        node_paths.sort(key=len)
        return [
            [self.G[source][target]["transition"] for source, target in zip(path, path[1:])]
            for path in node_paths
        ]

    # ========== Analysis Operations ==========

    def find_unreachable_states(self) -> list[str]:
        """Screens that cannot be reached from the start screen."""
        reachable = set(self.reachable_from())
        return [state for state in self.G.nodes() if state not in reachable]

    def find_dead_end_states(self) -> list[str]:
        """Screens with no outgoing transition."""
        return [state for state in self.G.nodes() if self.G.out_degree(state) == 0]

    def validate(self) -> None:
        """Check the start screen exists.

        Unreachable screens are allowed (e.g. screens only reachable by
        test-specific steps) and logged.

        Raises:
            GraphConfigError: If the start screen is not in the graph
        """
        if self.start not in self.G:
            raise GraphConfigError(f"Start screen '{self.start}' is not in the graph")
        unreachable = self.find_unreachable_states()
        if unreachable:
            _LOGGER.info("Screens not reachable from '%s': %s", self.start, unreachable)

    def get_statistics(self) -> dict[str, Any]:
        """Get graph statistics.

        Returns:
            Dictionary with state_count, transition_count, unreachable_states,
            dead_end_states and is_weakly_connected
        """
        return {
            "state_count": self.G.number_of_nodes(),
            "transition_count": self.G.number_of_edges(),
            "unreachable_states": self.find_unreachable_states(),
            "dead_end_states": self.find_dead_end_states(),
            "is_weakly_connected": (
                nx.is_weakly_connected(self.G) if self.G.number_of_nodes() > 0 else False
            ),
        }

    # ========== Export Operations ==========

    def export_node_link(self) -> dict[str, Any]:
        """Export the graph as JSON-compatible node-link data.

        Transition objects are replaced by their readable action description.
        """
        export = nx.DiGraph()
        export.add_nodes_from(self.G.nodes(data=True))
        for source, target, data in self.G.edges(data=True):
            export.add_edge(
                source,
                target,
                edge_type=data["edge_type"],
                action=data["transition"].action.describe(),
            )
        data = nx.node_link_data(export, edges="edges")
        data["graph"]["start"] = self.start
        return data
