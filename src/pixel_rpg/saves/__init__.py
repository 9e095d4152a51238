"""Save slots, autosave and bundle import/export."""

from __future__ import annotations

from pixel_rpg.saves.bundle import ImportSummary, export_bundle, export_json, import_bundle
from pixel_rpg.saves.manager import LoadedGame, SaveManager


__all__ = [
    "SaveManager",
    "LoadedGame",
    "ImportSummary",
    "export_bundle",
    "export_json",
    "import_bundle",
]
