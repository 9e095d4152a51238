"""Entity library, world configuration, labels and the Workshop."""

from __future__ import annotations

from pixel_rpg.library.manager import ImportResult, LibraryManager, MembershipResult
from pixel_rpg.library.workshop import Workshop


__all__ = [
    "LibraryManager",
    "MembershipResult",
    "ImportResult",
    "Workshop",
]
