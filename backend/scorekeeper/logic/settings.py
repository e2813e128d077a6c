"""Centralized game settings - all configurable scoring and progression rules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from scorekeeper.logic.exceptions import UnsupportedSettingsError

DEFAULT_XP_PER_LEVEL = 10

DEFAULT_EMOJIS = ("🐱", "🐶", "🦊", "🐼", "🐸", "🦁", "🐵", "🐧")


class GameSettings(BaseModel):
    """
    Centralized configuration for scoring, history and progression rules.

    All fields default to the behavior of the classic table game.
    """

    model_config = ConfigDict(frozen=True)

    # --- Game Structure ---
    default_threshold: int = 100
    min_players: int = 2
    max_players: int = 8

    # --- History ---
    history_cap: int = 50
    evolution_window: int = 5  # recent games included in the score evolution series

    # --- Progression ---
    xp_per_level: int = DEFAULT_XP_PER_LEVEL
    placement_xp: tuple[int, ...] = (1,)  # XP by placement, 1st first; missing placements earn 0


def validate_settings(settings: GameSettings) -> None:
    """Validate that all settings values are supported by the engine.

    Raises UnsupportedSettingsError listing every offending value.
    """
    errors: list[str] = []

    if settings.default_threshold <= 0:
        errors.append(f"default_threshold={settings.default_threshold} must be positive")

    if not (1 <= settings.min_players <= settings.max_players):
        errors.append(f"min_players={settings.min_players} must be between 1 and max_players={settings.max_players}")

    if settings.history_cap < 1:
        errors.append(f"history_cap={settings.history_cap} must be at least 1")

    if settings.xp_per_level < 1:
        errors.append(f"xp_per_level={settings.xp_per_level} must be at least 1")

    if any(xp < 0 for xp in settings.placement_xp):
        errors.append("placement_xp must not contain negative awards")

    if any(better < worse for better, worse in zip(settings.placement_xp, settings.placement_xp[1:], strict=False)):
        errors.append("placement_xp must not reward a worse placement more than a better one")

    if errors:
        raise UnsupportedSettingsError("; ".join(errors))


def xp_for_placement(settings: GameSettings, placement: int) -> int:
    """Return the XP awarded for a 0-based placement (0 = winner)."""
    if 0 <= placement < len(settings.placement_xp):
        return settings.placement_xp[placement]
    return 0
