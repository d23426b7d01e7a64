"""Navigation verdicts derived from an obstruction analysis."""
from __future__ import annotations

from ..models import NavigationDecision, ObstructionAnalysis, PathStatus, RecommendedAction

BLOCKING_TOTAL = 3
MIN_SAFETY_SCORE = 5
PENALTY_PER_OBSTRUCTION = 10

ACTIONS = {
    PathStatus.CLEAR: RecommendedAction.PROCEED,
    PathStatus.CAUTION: RecommendedAction.PROCEED_WITH_CAUTION,
    PathStatus.BLOCKED: RecommendedAction.STOP_AND_WAIT,
}


class NavigationDecisionEngine:
    """Stateless mapping from analysis to verdict; safe to replay."""

    def decide(self, analysis: ObstructionAnalysis) -> NavigationDecision:
        status = self.path_status(analysis)
        return NavigationDecision(
            can_proceed=not analysis.has_obstruction,
            path_status=status,
            recommended_action=ACTIONS[status],
            safety_score=self.safety_score(analysis),
        )

    @staticmethod
    def path_status(analysis: ObstructionAnalysis) -> PathStatus:
        if not analysis.has_obstruction:
            return PathStatus.CLEAR
        if analysis.person_count > 0 or analysis.total > BLOCKING_TOTAL:
            return PathStatus.BLOCKED
        return PathStatus.CAUTION

    @staticmethod
    def safety_score(analysis: ObstructionAnalysis) -> int:
        if not analysis.has_obstruction:
            return 100
        return max(MIN_SAFETY_SCORE, 100 - PENALTY_PER_OBSTRUCTION * analysis.total)
