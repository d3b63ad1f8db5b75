"""
XP and level progression.

A simple ledger driven by answer quality:
- xp_for_level: threshold to leave a level
- award_xp: XP earned for one SM-2 quality rating
- apply_xp: add XP and resolve (possibly multiple) level-ups
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# XP per SM-2 quality; 0 and 1 earn nothing
XP_BY_QUALITY = {5: 20, 4: 15, 3: 10, 2: 5}


def xp_for_level(level: int) -> int:
    """XP needed to go from ``level`` to ``level + 1``."""
    return 100 + (max(1, level) - 1) * 50


def award_xp(quality: int) -> int:
    """XP earned for a rating on the 0-5 SM-2 scale."""
    return XP_BY_QUALITY.get(quality, 0)


@dataclass
class Progress:
    """Level and XP accumulated on one knowledge graph."""

    level: int = 1
    current_xp: int = 0

    @property
    def xp_for_next_level(self) -> int:
        return xp_for_level(self.level)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "currentXp": self.current_xp,
            "xpForNextLevel": self.xp_for_next_level,
        }


def apply_xp(level: int, current_xp: int, gained_xp: int) -> Progress:
    """
    Add gained XP and level up while the threshold is reached.

    Args:
        level: Current level (>= 1)
        current_xp: XP accumulated inside the current level
        gained_xp: XP to add

    Returns:
        New Progress; several levels may be gained at once
    """
    new_level = max(1, level)
    new_xp = current_xp + gained_xp

    while new_xp >= xp_for_level(new_level):
        new_xp -= xp_for_level(new_level)
        new_level += 1

    return Progress(level=new_level, current_xp=new_xp)
