import logging
from typing import Optional, List

from .models import db, Debate, RoundScore, Speaker, SpeakerStanding, Tournament

logger = logging.getLogger(__name__)


class StandingsAggregator:
    """
    Rolls a speaker's round scores within a tournament into one standing.

    Ordering policy for the standings table:
    1. higher average score
    2. higher best single round
    3. more rounds judged
    Speakers equal on all three come back in no particular order.
    """

    ORDERING = (
        SpeakerStanding.average_score.desc(),
        SpeakerStanding.highest_round_score.desc(),
        SpeakerStanding.rounds_participated.desc(),
    )

    def recompute_standing(self, speaker: Speaker, tournament: Tournament) -> Optional[SpeakerStanding]:
        """
        Rebuild the standing of one speaker in one tournament.

        A speaker without any round score has no standing; a leftover row is
        removed. Flushes but does not commit.
        """
        scores = [
            score for (score,) in (
                db.session.query(RoundScore.score)
                .join(Debate, RoundScore.debate_id == Debate.id)
                .filter(RoundScore.speaker_id == speaker.id, Debate.tournament_id == tournament.id)
                .all()
            )
        ]

        standing = SpeakerStanding.query.filter_by(
            speaker_id=speaker.id,
            tournament_id=tournament.id
        ).first()

        if not scores:
            if standing:
                db.session.delete(standing)
                db.session.flush()
            return None

        total = sum(scores)
        rounds = len(scores)

        if not standing:
            standing = SpeakerStanding(speaker_id=speaker.id, tournament_id=tournament.id)
            db.session.add(standing)

        standing.total_score = total
        standing.rounds_participated = rounds
        standing.average_score = total / rounds
        standing.highest_round_score = max(scores)

        db.session.flush()
        logger.debug(
            f"Standing for {speaker.speaker_id} in {tournament.tournament_id}: "
            f"avg {standing.average_score:.2f} over {rounds} rounds"
        )
        return standing

    def query_standings(self, tournament: Tournament, position: str = None) -> List[SpeakerStanding]:
        """Standings of a tournament in ranking order, optionally for one speaker position."""
        query = (
            SpeakerStanding.query
            .join(Speaker, SpeakerStanding.speaker_id == Speaker.id)
            .filter(SpeakerStanding.tournament_id == tournament.id)
        )

        if position:
            query = query.filter(Speaker.position == position)

        return query.order_by(*self.ORDERING).all()
