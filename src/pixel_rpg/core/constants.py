"""Game balance and storage constants for Pixel RPG.

These are the defaults behind ``GameSettings``; every one of them can be
overridden through environment variables or by passing a custom settings
object, so code should read the settings rather than these names directly.
"""

from __future__ import annotations

# =============================================================================
# Combat
# =============================================================================

PLAYER_ATTACK_BONUS_RANGE = 5
"""Player attack bonus is drawn uniformly from [0, range)."""

ENEMY_ATTACK_BONUS_RANGE = 3
"""Enemy counter-attack bonus is drawn uniformly from [0, range)."""

MIN_DAMAGE = 1
"""Every hit deals at least this much damage."""

VICTORY_HP_RECOVERY = 10
"""HP restored to the player after defeating an enemy."""

HEAL_AMOUNT = 30
"""HP restored by the Heal spell."""

HEAL_MP_COST = 10
"""MP spent to cast Heal."""

# =============================================================================
# Timing
# =============================================================================

ENEMY_TURN_DELAY_SECONDS = 1.5
"""How long the enemy 'thinks' before its counter-attack lands."""

TRAVEL_ENCOUNTER_DELAY_SECONDS = 0.8
"""Delay between arriving somewhere and the encounter draw."""

# =============================================================================
# Dialogue
# =============================================================================

DIALOGUE_HISTORY_WINDOW = 20
"""Number of most recent chat turns sent to the generation service."""

SILENCE_MARKER = "...silence..."
"""Reply recorded when the NPC fails to answer."""

PLAYER_SPEAKER = "Hero"
"""Speaker name used for the player's own chat lines."""

# =============================================================================
# Player Defaults
# =============================================================================

DEFAULT_PLAYER_NAME = "Hero"
DEFAULT_PLAYER_HP = 100
DEFAULT_PLAYER_MP = 100
DEFAULT_PLAYER_ATK = 10
DEFAULT_PLAYER_DEF = 10

# =============================================================================
# Library & Saves
# =============================================================================

DEFAULT_LABELS = ("Fantasy", "Sci-Fi", "Cute", "Dark", "Boss")
"""Label vocabulary used when nothing has been persisted yet."""

SAVE_SLOT_COUNT = 3
"""Number of numbered save slots."""

AUTOSAVE_SLOT = 1
"""Slot reserved for autosave."""

DEFAULT_KEY_PREFIX = "pixel_rpg_"
"""Namespace prefix for every persisted key."""


__all__ = [
    # Combat
    "PLAYER_ATTACK_BONUS_RANGE",
    "ENEMY_ATTACK_BONUS_RANGE",
    "MIN_DAMAGE",
    "VICTORY_HP_RECOVERY",
    "HEAL_AMOUNT",
    "HEAL_MP_COST",
    # Timing
    "ENEMY_TURN_DELAY_SECONDS",
    "TRAVEL_ENCOUNTER_DELAY_SECONDS",
    # Dialogue
    "DIALOGUE_HISTORY_WINDOW",
    "SILENCE_MARKER",
    "PLAYER_SPEAKER",
    # Player
    "DEFAULT_PLAYER_NAME",
    "DEFAULT_PLAYER_HP",
    "DEFAULT_PLAYER_MP",
    "DEFAULT_PLAYER_ATK",
    "DEFAULT_PLAYER_DEF",
    # Library & saves
    "DEFAULT_LABELS",
    "SAVE_SLOT_COUNT",
    "AUTOSAVE_SLOT",
    "DEFAULT_KEY_PREFIX",
]
