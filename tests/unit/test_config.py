"""Unit tests for settings and reward configuration"""
import pytest
from pydantic import ValidationError

from habitquest.core.config import Settings
from habitquest.gamification.reward_config import RewardConfig, SourceRule


def test_default_settings_build_default_rules():
    config = RewardConfig.from_settings(Settings())

    assert config.reward_tiers == (10, 20, 30, 40, 50, 60)
    assert config.rule_for("habit").flat_xp == 10
    assert config.rule_for("habit").flat_coins == 5
    assert config.rule_for("game").xp_rates["breakthrough"] == 0.2
    assert config.rule_for("quiz").flat_xp == 10
    assert config.default_xp == 5
    assert config.level_curve == "linear"
    assert config.level_up_coin_bonus == 50
    assert config.max_achievement_passes == 10
    assert config.streak_sources == frozenset({"habit"})


def test_reward_tiers_accept_comma_separated_string():
    settings = Settings(SPIN_REWARD_TIERS="5, 15")
    assert settings.SPIN_REWARD_TIERS == [5, 15]


def test_comma_separated_lists_from_environment(monkeypatch):
    monkeypatch.setenv("SPIN_REWARD_TIERS", "10,20")
    monkeypatch.setenv("STREAK_SOURCES", "habit, quiz")

    settings = Settings()

    assert settings.SPIN_REWARD_TIERS == [10, 20]
    assert settings.STREAK_SOURCES == ["habit", "quiz"]


def test_event_xp_cap_from_settings():
    assert RewardConfig.from_settings(Settings(MAX_EVENT_XP=250)).max_event_xp == 250
    with pytest.raises(ValidationError):
        Settings(MAX_EVENT_XP=0)


def test_reward_tiers_from_environment(monkeypatch):
    monkeypatch.setenv("SPIN_REWARD_TIERS", "[1, 2, 3]")
    monkeypatch.setenv("LEVEL_CURVE", "quadratic")

    config = RewardConfig.from_settings(Settings())

    assert config.reward_tiers == (1, 2, 3)
    assert config.level_curve == "quadratic"


@pytest.mark.parametrize("tiers", [[], [10, 0], [-5]])
def test_invalid_reward_tiers_rejected(tiers):
    with pytest.raises(ValidationError):
        Settings(SPIN_REWARD_TIERS=tiers)


def test_unknown_level_curve_rejected():
    with pytest.raises(ValidationError):
        Settings(LEVEL_CURVE="cubic")


def test_reward_config_validation():
    with pytest.raises(ValueError):
        RewardConfig(xp_per_source={}, reward_tiers=())
    with pytest.raises(ValueError):
        RewardConfig(xp_per_source={}, level_xp_base=0)
    with pytest.raises(ValueError):
        RewardConfig(xp_per_source={}, max_achievement_passes=0)


def test_reward_config_rules_are_read_only():
    config = RewardConfig(xp_per_source={"habit": SourceRule(flat_xp=1)})

    with pytest.raises(TypeError):
        config.xp_per_source["quiz"] = SourceRule(flat_xp=2)
