"""
Context calibration.

Turns raw self-reported signals into a UserContext. The hosted language
model normally does this; RuleBasedCalibrator is the deterministic stand-in
used when no such collaborator is configured.
"""

from __future__ import annotations

from typing import Protocol

from synapse.core.models import Level, SessionType, UserContext, UserSignals
from synapse.core.sanitize import clamp

SPRINT_MAX_MINUTES = 20
DEEP_WORK_MIN_MINUTES = 45

_ENERGY_POINTS = {Level.LOW: 20, Level.MEDIUM: 50, Level.HIGH: 80}
_STRESS_PENALTY = {Level.LOW: 0, Level.MEDIUM: 10, Level.HIGH: 30}


class ContextCalibrator(Protocol):
    """Anything able to qualify learner signals."""

    def calibrate(self, signals: UserSignals) -> UserContext: ...


class RuleBasedCalibrator:
    """
    Deterministic calibration from energy, stress and time budget.

    Focus score:
        energy points (20/50/80) - stress penalty (0/10/30)
        + 10 with at least 45 minutes, - 10 under 20 minutes,
        clamped to 1..100.

    Session type (first match):
        Recovery  - low energy, or high stress without high energy
        Sprint    - under 20 minutes
        DeepWork  - high energy and at least 45 minutes
        Maintenance otherwise
    """

    def focus_score(self, signals: UserSignals) -> int:
        score = _ENERGY_POINTS[signals.energy_level] - _STRESS_PENALTY[signals.stress_level]
        if signals.time_available >= DEEP_WORK_MIN_MINUTES:
            score += 10
        elif signals.time_available < SPRINT_MAX_MINUTES:
            score -= 10
        return int(clamp(score, 1, 100))

    def session_type(self, signals: UserSignals) -> SessionType:
        if signals.energy_level == Level.LOW or (
            signals.stress_level == Level.HIGH and signals.energy_level != Level.HIGH
        ):
            return SessionType.RECOVERY
        if signals.time_available < SPRINT_MAX_MINUTES:
            return SessionType.SPRINT
        if signals.energy_level == Level.HIGH and signals.time_available >= DEEP_WORK_MIN_MINUTES:
            return SessionType.DEEP_WORK
        return SessionType.MAINTENANCE

    def describe(self, signals: UserSignals) -> str:
        time_part = (
            "restricted time"
            if signals.time_available < SPRINT_MAX_MINUTES
            else "ample time"
            if signals.time_available >= DEEP_WORK_MIN_MINUTES
            else "moderate time"
        )
        return (
            f"{signals.energy_level.value.capitalize()} energy, "
            f"{signals.stress_level.value} stress, {time_part} ({signals.time_available} min)"
        )

    def calibrate(self, signals: UserSignals) -> UserContext:
        return UserContext(
            focus_score=self.focus_score(signals),
            session_type=self.session_type(signals),
            state_description=self.describe(signals),
            signals=signals,
        )
