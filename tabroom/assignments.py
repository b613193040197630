import logging
from typing import Optional, List

from shared.state_machine import AssignmentStateMachine, AssignmentState
from .models import db, Judge, Debate, Tournament, JudgeAssignment

logger = logging.getLogger(__name__)


class AssignmentTracker:
    """
    Tracks which judge is assigned to which debate and whether the judge
    has submitted rankings for it yet.

    Methods here never commit; callers wrap them in a transaction.
    """

    def assign(self, judge: Judge, debate: Debate) -> JudgeAssignment:
        """Assign a judge to a debate. Re-assigning an existing pair is a no-op."""
        db.session.flush()
        assignment = JudgeAssignment.query.filter_by(judge_id=judge.id, debate_id=debate.id).first()
        if assignment:
            return assignment

        assignment = JudgeAssignment(
            judge=judge,
            debate=debate,
            status=AssignmentState.PENDING.value
        )
        db.session.add(assignment)
        logger.debug(f"Assigned judge {judge.judge_id} to debate {debate.debate_id}")
        return assignment

    def get_assignment(
        self,
        judge_id: str,
        debate_id: str,
        for_update: bool = False
    ) -> Optional[JudgeAssignment]:
        """
        Look up the assignment for a (judge, debate) pair by public IDs.

        With for_update the row is locked until the transaction ends so
        concurrent submissions for the same pair run one after the other.
        """
        return self.assignment_query(judge_id, debate_id, for_update).first()

    def assignment_query(self, judge_id: str, debate_id: str, for_update: bool = False):
        query = (
            JudgeAssignment.query
            .join(Judge, JudgeAssignment.judge_id == Judge.id)
            .join(Debate, JudgeAssignment.debate_id == Debate.id)
            .filter(Judge.judge_id == judge_id, Debate.debate_id == debate_id)
        )
        if for_update:
            query = query.with_for_update()
        return query

    def mark_completed(self, assignment: JudgeAssignment) -> AssignmentState:
        sm = AssignmentStateMachine.from_state_string(assignment.status)
        if not sm.is_open:
            logger.debug(f"Judge {assignment.judge.judge_id} is resubmitting debate {assignment.debate.debate_id}")
        new_state = sm.transition('submit')
        assignment.status = new_state.value
        return new_state

    def reopen(self, assignment: JudgeAssignment) -> AssignmentState:
        """Send a completed assignment back to pending. Pending ones are left alone."""
        sm = AssignmentStateMachine.from_state_string(assignment.status)
        if not sm.can_transition('redraw'):
            return sm.state
        new_state = sm.transition('redraw')
        assignment.status = new_state.value
        logger.info(f"Reopened judge {assignment.judge.judge_id} for redrawn debate {assignment.debate.debate_id}")
        return new_state

    def get_current_assignment(self, judge_id: str, tournament_id: str) -> Optional[Debate]:
        """The judge's pending debate in the tournament's current round, if any."""
        tournament = Tournament.query.filter_by(tournament_id=tournament_id).first()
        if not tournament:
            return None

        assignment = (
            JudgeAssignment.query
            .join(Judge, JudgeAssignment.judge_id == Judge.id)
            .join(Debate, JudgeAssignment.debate_id == Debate.id)
            .filter(
                Judge.judge_id == judge_id,
                Debate.tournament_id == tournament.id,
                Debate.round_num == tournament.current_round,
                JudgeAssignment.status == AssignmentState.PENDING.value
            )
            .order_by(Debate.id)
            .first()
        )
        return assignment.debate if assignment else None

    def get_completed_assignments(self, judge_id: str) -> List[JudgeAssignment]:
        """Completed assignments for a judge, most recent round first."""
        return (
            JudgeAssignment.query
            .join(Judge, JudgeAssignment.judge_id == Judge.id)
            .join(Debate, JudgeAssignment.debate_id == Debate.id)
            .filter(
                Judge.judge_id == judge_id,
                JudgeAssignment.status == AssignmentState.COMPLETED.value
            )
            .order_by(Debate.round_num.desc(), Debate.id)
            .all()
        )
