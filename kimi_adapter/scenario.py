from __future__ import annotations

from enum import Enum
from typing import List, NamedTuple


class Scenario(str, Enum):
    K2 = "SCENARIO_K2"
    SEARCH = "SCENARIO_SEARCH"
    RESEARCH = "SCENARIO_RESEARCH"
    K1 = "SCENARIO_K1"


class ScenarioSelection(NamedTuple):
    scenario: Scenario
    thinking: bool


# Advertised on /v1/models; resolve_scenario accepts any name.
SUPPORTED_MODELS: List[str] = [
    "kimi-k2.5",
    "kimi-k2.5-thinking",
    "kimi-k1",
    "kimi-search",
    "kimi-research",
]


def resolve_scenario(model: str) -> ScenarioSelection:
    """Map a client-facing model name onto a backend scenario.

    Substring rules are checked in order and the first hit wins, so
    ``kimi-k2.5-search`` stays on K2. ``research`` also contains ``search``
    and therefore resolves to SEARCH; unknown names fall back to K2.
    """
    thinking = "thinking" in model

    if "k2.5" in model:
        # the backend serves K2.5 as the latest K2-series model
        return ScenarioSelection(Scenario.K2, thinking)
    elif "search" in model:
        return ScenarioSelection(Scenario.SEARCH, thinking)
    elif "research" in model:
        return ScenarioSelection(Scenario.RESEARCH, thinking)
    elif "k1" in model:
        return ScenarioSelection(Scenario.K1, thinking)
    return ScenarioSelection(Scenario.K2, thinking)
