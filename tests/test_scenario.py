import pytest

from kimi_adapter.scenario import SUPPORTED_MODELS, Scenario, resolve_scenario


@pytest.mark.parametrize(
    "model,scenario,thinking",
    [
        ("kimi-k2.5", Scenario.K2, False),
        ("kimi-k2.5-thinking", Scenario.K2, True),
        ("kimi-k2.5-search", Scenario.K2, False),
        ("kimi-search", Scenario.SEARCH, False),
        ("kimi-k1", Scenario.K1, False),
        ("kimi-k1-thinking", Scenario.K1, True),
        ("kimi-unknown", Scenario.K2, False),
        ("", Scenario.K2, False),
    ],
)
def test_resolve_scenario(model, scenario, thinking):
    selection = resolve_scenario(model)
    assert selection.scenario is scenario
    assert selection.thinking is thinking


def test_first_matching_rule_wins():
    # every later keyword is present, k2.5 is checked first
    assert resolve_scenario("kimi-k2.5-search-research-k1").scenario is Scenario.K2
    # search beats k1
    assert resolve_scenario("kimi-k1-search").scenario is Scenario.SEARCH


def test_research_is_shadowed_by_search():
    assert resolve_scenario("kimi-research").scenario is Scenario.SEARCH


def test_matching_is_case_sensitive():
    assert resolve_scenario("KIMI-SEARCH").scenario is Scenario.K2
    assert resolve_scenario("kimi-THINKING").thinking is False


def test_scenario_values_are_backend_tags():
    assert Scenario.K2.value == "SCENARIO_K2"
    assert Scenario.RESEARCH == "SCENARIO_RESEARCH"


def test_advertised_models_resolve():
    assert resolve_scenario(SUPPORTED_MODELS[0]) == (Scenario.K2, False)
    assert len(set(SUPPORTED_MODELS)) == len(SUPPORTED_MODELS)
