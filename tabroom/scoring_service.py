import logging
from typing import Optional, List, Mapping

from .assignments import AssignmentTracker
from .database import atomic
from .errors import ScoringError
from .models import Debate, Tournament
from .ranking_ledger import RankingLedger
from .scoring_engine import ScoringEngine
from .standings import StandingsAggregator
from .tournament_registry import TournamentRegistry, parse_position

logger = logging.getLogger(__name__)


class ScoringService:
    """
    Entry point for everything judges and the standings page need.

    A ranking submission, the round scores it changes and the standings
    those scores feed are written in one transaction: either all of it
    lands or none of it does.
    """

    def __init__(
        self,
        registry: TournamentRegistry = None,
        assignments: AssignmentTracker = None,
        ledger: RankingLedger = None,
        engine: ScoringEngine = None,
        standings: StandingsAggregator = None
    ):
        self.assignments = assignments or AssignmentTracker()
        self.engine = engine or ScoringEngine()
        self.standings = standings or StandingsAggregator()
        self.ledger = ledger or RankingLedger(self.assignments)
        self.registry = registry or TournamentRegistry(self.assignments, self.engine, self.standings)

    def _recompute(self, debate: Debate) -> int:
        affected = self.engine.recompute_round_scores(debate)
        for speaker in affected:
            self.standings.recompute_standing(speaker, debate.tournament)
        return len(affected)

    def submit_ranking(self, judge_id: str, debate_id: str, rankings: Mapping[str, int]) -> dict:
        """
        Accept a judge's full ranking of a debate's six speakers.

        Raises a ScoringError subclass when the submission is rejected or
        the write fails; stored state is then unchanged.
        """
        try:
            with atomic("ranking submission"):
                assignment = self.ledger.submit(judge_id, debate_id, rankings)
                updated = self._recompute(assignment.debate)
        except ScoringError as e:
            logger.warning(f"Rejected rankings from judge {judge_id} for debate {debate_id}: {e.kind}: {e.detail}")
            raise

        logger.info(f"Accepted rankings from judge {judge_id} for debate {debate_id}, {updated} speakers rescored")
        return {
            'ok': True,
            'message': 'Rankings submitted successfully',
            'debate_id': debate_id,
            'speakers_scored': updated,
        }

    def recalculate_debate(self, debate_id: str) -> Optional[dict]:
        """Re-run the score and standings cascade for one debate."""
        debate = self.registry.get_debate(debate_id)
        if not debate:
            return None

        with atomic("debate recalculation"):
            updated = self._recompute(debate)

        logger.info(f"Recalculated debate {debate_id}, {updated} speakers rescored")
        return {
            'debate_id': debate_id,
            'round_scores': self.engine.get_round_scores(debate),
            'details': [rs.to_dict() for rs in sorted(debate.round_scores, key=lambda rs: rs.speaker.speaker_id)],
        }

    def get_current_assignment(self, judge_id: str, tournament_id: str) -> Optional[dict]:
        """The judge's pending debate in the current round, with its speakers."""
        debate = self.assignments.get_current_assignment(judge_id, tournament_id)
        if not debate:
            return None
        data = debate.to_dict()
        data['status'] = 'pending'
        return data

    def get_completed_assignments(self, judge_id: str) -> List[dict]:
        return [a.to_dict() for a in self.assignments.get_completed_assignments(judge_id)]

    def get_standings(self, tournament_id: str, position: str = None) -> Optional[List[dict]]:
        """
        Ordered speaker standings for a tournament.

        Returns None for an unknown tournament. Raises ValueError for an
        unknown position.
        """
        tournament: Tournament = self.registry.get_tournament(tournament_id)
        if not tournament:
            return None

        if position:
            position = parse_position(position)

        standings = []
        for i, standing in enumerate(self.standings.query_standings(tournament, position)):
            row = standing.to_dict()
            row['rank'] = i + 1
            standings.append(row)
        return standings
