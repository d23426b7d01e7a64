import pytest

from module_1_obstruction_detection.app.models import (
    ObstructionAnalysis,
    PathStatus,
    RecommendedAction,
    Severity,
)
from module_1_obstruction_detection.app.services.navigation import NavigationDecisionEngine


def build_analysis(person: int = 0, animal: int = 0, obj: int = 0) -> ObstructionAnalysis:
    total = person + animal + obj
    return ObstructionAnalysis(
        person_count=person,
        animal_count=animal,
        object_count=obj,
        total=total,
        has_obstruction=total > 0,
        severity=Severity.LOW,
        confidence=0.85,
        status="",
    )


@pytest.mark.parametrize(
    "person, animal, obj, status, action, score",
    [
        (0, 0, 0, PathStatus.CLEAR, RecommendedAction.PROCEED, 100),
        (0, 1, 0, PathStatus.CAUTION, RecommendedAction.PROCEED_WITH_CAUTION, 90),
        (0, 2, 1, PathStatus.CAUTION, RecommendedAction.PROCEED_WITH_CAUTION, 70),
        (0, 2, 2, PathStatus.BLOCKED, RecommendedAction.STOP_AND_WAIT, 60),
        (1, 0, 0, PathStatus.BLOCKED, RecommendedAction.STOP_AND_WAIT, 90),
        (0, 0, 12, PathStatus.BLOCKED, RecommendedAction.STOP_AND_WAIT, 5),
    ],
)
def test_decision_rules(person, animal, obj, status, action, score) -> None:
    decision = NavigationDecisionEngine().decide(build_analysis(person, animal, obj))

    assert decision.path_status == status
    assert decision.recommended_action == action
    assert decision.safety_score == score
    assert decision.can_proceed == (person + animal + obj == 0)


def test_decision_is_replayable() -> None:
    engine = NavigationDecisionEngine()
    analysis = build_analysis(animal=3)

    assert engine.decide(analysis) == engine.decide(analysis)
