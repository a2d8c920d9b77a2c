# -*- coding: utf-8 -*-
########################
# score_state.py
########################
# Purpose:
# - Session aggregator: combo, max combo, score and per grade counters.
# - Derives final accuracy and the results report at end of play.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Mutated only by JudgeEngine. Everything else reads.
# - Scoring rules for a resolved note:
#   - non miss: combo += 1, max combo updated, score += base + (combo // 10) * 20
#   - bad: scored as above, then combo resets to 0
#   - miss: combo resets to 0, no score
#
########################
# Interfaces:
# Public constants:
# - BASE_SCORES: dict[Grade, int]
# - ACCURACY_WEIGHTS: dict[Grade, int]
#
# Public dataclasses:
# - SessionReport(score, max_combo, accuracy, total_notes, perfect_count, great_count, good_count,
#                 bad_count, miss_count)
#   - accuracy_percent -> float
#   - to_dict() -> dict
# - ScoreState(combo, max_combo, score, perfect_count, great_count, good_count, bad_count, miss_count,
#              total_notes)
#   - apply_resolution(grade: Grade) -> int
#   - apply_head_hit() -> None
#   - apply_hold_tick(tick_score: int) -> None
#   - count_for(grade: Grade) -> int
#   - accuracy() -> float
#   - report() -> SessionReport
#
########################

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from gameplay_models import Grade

BASE_SCORES: Dict[Grade, int] = {
    Grade.PERFECT: 500,
    Grade.GREAT: 300,
    Grade.GOOD: 100,
    Grade.BAD: 50,
    Grade.MISS: 0,
}

ACCURACY_WEIGHTS: Dict[Grade, int] = {
    Grade.PERFECT: 100,
    Grade.GREAT: 80,
    Grade.GOOD: 50,
    Grade.BAD: 20,
    Grade.MISS: 0,
}

COMBO_BONUS_STEP = 10
COMBO_BONUS_SCORE = 20


@dataclass(frozen=True)
class SessionReport:
    score: int
    max_combo: int
    accuracy: float
    total_notes: int
    perfect_count: int
    great_count: int
    good_count: int
    bad_count: int
    miss_count: int

    @property
    def accuracy_percent(self) -> float:
        return self.accuracy * 100.0

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["accuracy_percent"] = round(self.accuracy_percent, 2)
        return payload


@dataclass
class ScoreState:
    combo: int = 0
    max_combo: int = 0
    score: int = 0
    perfect_count: int = 0
    great_count: int = 0
    good_count: int = 0
    bad_count: int = 0
    miss_count: int = 0
    total_notes: int = 0

    def _bump_combo(self) -> None:
        self.combo += 1
        if self.combo > self.max_combo:
            self.max_combo = self.combo

    def apply_resolution(self, grade: Grade) -> int:
        """Record one resolved note. Returns the score awarded."""
        self.total_notes += 1
        counter_name = f"{grade.value}_count"
        setattr(self, counter_name, getattr(self, counter_name) + 1)

        if grade is Grade.MISS:
            self.combo = 0
            return 0

        self._bump_combo()
        awarded = BASE_SCORES[grade] + (self.combo // COMBO_BONUS_STEP) * COMBO_BONUS_SCORE
        self.score += awarded

        if grade is Grade.BAD:
            self.combo = 0
        return awarded

    def apply_head_hit(self) -> None:
        self._bump_combo()

    def apply_hold_tick(self, tick_score: int) -> None:
        self.score += int(tick_score)
        self._bump_combo()

    def count_for(self, grade: Grade) -> int:
        return int(getattr(self, f"{grade.value}_count"))

    def accuracy(self) -> float:
        if self.total_notes <= 0:
            return 0.0
        weighted = sum(ACCURACY_WEIGHTS[grade] * self.count_for(grade) for grade in Grade)
        return weighted / (self.total_notes * 100.0)

    def report(self) -> SessionReport:
        return SessionReport(
            score=self.score,
            max_combo=self.max_combo,
            accuracy=self.accuracy(),
            total_notes=self.total_notes,
            perfect_count=self.perfect_count,
            great_count=self.great_count,
            good_count=self.good_count,
            bad_count=self.bad_count,
            miss_count=self.miss_count,
        )


def _run_unit_tests() -> None:
    state = ScoreState()
    assert state.apply_resolution(Grade.PERFECT) == 500
    state.apply_resolution(Grade.MISS)
    assert state.combo == 0
    assert state.max_combo == 1
    assert abs(state.accuracy() - 0.5) < 1e-12

    state = ScoreState(combo=9, max_combo=9)
    # The bonus uses the combo after this hit is counted.
    assert state.apply_resolution(Grade.BAD) == 50 + 20
    assert state.combo == 0
    assert state.max_combo == 10


if __name__ == "__main__":
    _run_unit_tests()
    print("score_state.py: ok")
