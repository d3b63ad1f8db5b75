"""Unit tests for XP and level progression."""

import pytest

from synapse.core.progress import Progress, apply_xp, award_xp, xp_for_level


class TestThresholds:
    @pytest.mark.parametrize("level, expected", [(1, 100), (2, 150), (3, 200), (10, 550)])
    def test_xp_for_level(self, level, expected):
        assert xp_for_level(level) == expected

    def test_levels_below_one_use_first_threshold(self):
        assert xp_for_level(0) == 100
        assert xp_for_level(-4) == 100


class TestAwardXp:
    @pytest.mark.parametrize("quality, xp", [(5, 20), (4, 15), (3, 10), (2, 5), (1, 0), (0, 0)])
    def test_award_by_quality(self, quality, xp):
        assert award_xp(quality) == xp


class TestApplyXp:
    def test_single_level_up(self):
        progress = apply_xp(1, 90, 20)
        assert progress.to_dict() == {"level": 2, "currentXp": 10, "xpForNextLevel": 150}

    def test_no_level_up(self):
        assert apply_xp(2, 40, 15) == Progress(level=2, current_xp=55)

    def test_exact_threshold_levels_up(self):
        assert apply_xp(1, 80, 20) == Progress(level=2, current_xp=0)

    def test_multiple_levels_at_once(self):
        # 400 = 100 (1 -> 2) + 150 (2 -> 3) + 150 left over
        assert apply_xp(1, 0, 400) == Progress(level=3, current_xp=150)

    def test_zero_gain(self):
        assert apply_xp(4, 30, 0) == Progress(level=4, current_xp=30)

    def test_default_progress(self):
        progress = Progress()
        assert (progress.level, progress.current_xp, progress.xp_for_next_level) == (1, 0, 100)
