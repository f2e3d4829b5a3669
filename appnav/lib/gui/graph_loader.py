"""Load the screen catalogue and navigation graph from YAML.

Example document::

    start: boot
    states:
      boot:
        description: First introduction page
        anchor: {key: introductionPage1}
        actions:
          next: {tap: {text: introductionNextPageCta}}
      dashboard:
        anchors:                       # every anchor must be visible
          - {key: dashboardScreen}
          - {text: dashboardScreenTitle}
    transitions:
      - from: boot
        to: introduction
        action: {screen_action: next}  # action declared on 'boot'
      - from: pin
        to: confirm_pin
        action: {pin: "000000"}

Both structures are built once and then shared read-only.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from appnav.exceptions import GraphConfigError
from appnav.lib.gui.locators import LocatorFactory
from appnav.lib.gui.navigation_graph import NavigationGraph
from appnav.lib.gui.screen_actions import action_from_config
from appnav.lib.gui.screen_state import AllVisible, AnchorVisible, ScreenRegistry, ScreenState
from appnav.lib.l10n import L10n

_LOGGER = logging.getLogger(__name__)


def load_navigation_model(
    model_file: str | Path,
    l10n: L10n | None = None,
) -> tuple[ScreenRegistry, NavigationGraph]:
    """Load a navigation model file.

    Args:
        model_file: Path to the YAML model
        l10n: String table used to resolve ``text`` locators

    Returns:
        (registry, frozen graph)

    Raises:
        FileNotFoundError: If model_file doesn't exist
        GraphConfigError: If the model is inconsistent
    """
    model_path = Path(model_file)
    if not model_path.exists():
        raise FileNotFoundError(f"Navigation model not found: {model_file}")

    _LOGGER.info("Loading navigation model from: %s", model_file)
    with model_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return build_navigation_model(data, l10n)


def build_navigation_model(
    data: dict[str, Any],
    l10n: L10n | None = None,
) -> tuple[ScreenRegistry, NavigationGraph]:
    """Build registry and graph from an already parsed model document.

    Raises:
        GraphConfigError: If the model is inconsistent
    """
    if not isinstance(data, dict) or "start" not in data or "states" not in data:
        raise GraphConfigError("Invalid navigation model: 'start' and 'states' are required")
    if not isinstance(data["start"], str):
        raise GraphConfigError(f"'start' must be a screen name, got {data['start']!r}")
    if not isinstance(data["states"], dict):
        raise GraphConfigError("'states' must map screen names to screen definitions")
    transitions = data.get("transitions") or []
    if not isinstance(transitions, list):
        raise GraphConfigError("'transitions' must be a list")

    find = LocatorFactory(l10n)

    # Step 1: screens
    states = []
    for name, state_data in data["states"].items():
        try:
            states.append(_parse_state(name, state_data or {}, find))
        except (KeyError, TypeError, ValueError) as e:
            raise GraphConfigError(f"Invalid screen '{name}': {e}") from e
    try:
        registry = ScreenRegistry(states)
    except ValueError as e:
        raise GraphConfigError(str(e)) from e

    # Step 2: transitions
    graph = NavigationGraph(start=data["start"])
    for state in registry:
        graph.add_state(state.name, description=state.description)

    for edge in transitions:
        if not isinstance(edge, dict):
            raise GraphConfigError(f"Transition must be a mapping, got {edge!r}")
        source, target = edge.get("from"), edge.get("to")
        if source not in registry or target not in registry:
            raise GraphConfigError(
                f"Transition {source!r} -> {target!r} references an unknown screen"
            )
        try:
            action = action_from_config(
                edge.get("action", {}), find, named=dict(registry[source].actions)
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GraphConfigError(f"Invalid transition '{source}' -> '{target}': {e}") from e
        graph.add_transition(source, target, action)

    graph.validate()
    graph.freeze()

    _LOGGER.info(
        "Navigation model loaded: %d screens, %d transitions, start '%s'",
        len(registry),
        graph.G.number_of_edges(),
        graph.start,
    )
    return registry, graph


def _parse_state(name: str, state_data: dict[str, Any], find: LocatorFactory) -> ScreenState:
    if not isinstance(state_data, dict):
        raise ValueError(f"expected a mapping, got {state_data!r}")
    if "anchors" in state_data:
        if not isinstance(state_data["anchors"], list):
            raise ValueError("'anchors' must be a list")
        predicate = AllVisible(tuple(find.from_config(item) for item in state_data["anchors"]))
    elif "anchor" in state_data:
        predicate = AnchorVisible(find.from_config(state_data["anchor"]))
    else:
        raise ValueError("missing 'anchor' or 'anchors'")

    action_data = state_data.get("actions") or {}
    if not isinstance(action_data, dict):
        raise ValueError("'actions' must map action names to actions")
    actions = {
        action_name: action_from_config(config, find)
        for action_name, config in action_data.items()
    }
    return ScreenState(
        name=name,
        predicate=predicate,
        description=state_data.get("description", ""),
        actions=actions,
    )
