import logging
from collections import Counter
from typing import Dict, Mapping

from .assignments import AssignmentTracker
from .errors import (
    InvalidRankingSetSize,
    RankOutOfRange,
    DuplicateOrMissingRank,
    JudgeNotAssigned,
    UnknownSpeakerInRanking,
)
from .models import db, Judge, Debate, Ranking, Speaker, JudgeAssignment
from .scoring_engine import RANKED_SPEAKERS

logger = logging.getLogger(__name__)

VALID_RANKS = frozenset(range(1, RANKED_SPEAKERS + 1))


def validate_rankings(rankings: Mapping[str, int]) -> None:
    """
    Check the shape of a ranking set before touching the database.

    Raises, in this order: InvalidRankingSetSize, RankOutOfRange,
    DuplicateOrMissingRank.
    """
    if len(rankings) != RANKED_SPEAKERS:
        raise InvalidRankingSetSize(len(rankings), RANKED_SPEAKERS)

    for speaker_id, rank in rankings.items():
        # bool is an int subclass, True must not pass as rank 1
        if isinstance(rank, bool) or not isinstance(rank, int) or rank not in VALID_RANKS:
            raise RankOutOfRange(speaker_id, rank)

    ranks = list(rankings.values())
    if set(ranks) != VALID_RANKS:
        counts = Counter(ranks)
        duplicates = sorted(r for r, n in counts.items() if n > 1)
        missing = sorted(VALID_RANKS - set(ranks))
        raise DuplicateOrMissingRank(duplicates, missing)


class RankingLedger:
    """Stores exactly one complete 1-6 ranking set per judge per debate."""

    def __init__(self, assignments: AssignmentTracker = None):
        self.assignments = assignments or AssignmentTracker()

    def submit(self, judge_id: str, debate_id: str, rankings: Mapping[str, int]) -> JudgeAssignment:
        """
        Validate and store a judge's rankings for a debate.

        Replaces any earlier submission by the same judge for the same debate
        and marks the assignment completed. Flushes but does not commit.
        """
        validate_rankings(rankings)

        assignment = self.assignments.get_assignment(judge_id, debate_id, for_update=True)
        if not assignment:
            raise JudgeNotAssigned(judge_id, debate_id)

        debate = assignment.debate
        registered = {s.speaker_id: s for s in debate.speakers}

        for speaker_id in rankings:
            if speaker_id not in registered:
                raise UnknownSpeakerInRanking(speaker_id, debate_id)

        for speaker_id in registered:
            if speaker_id not in rankings:
                raise UnknownSpeakerInRanking(
                    speaker_id,
                    debate_id,
                    f"Speaker {speaker_id} of debate {debate_id} is missing from the ranking"
                )

        existing = {
            r.speaker_id: r
            for r in Ranking.query.filter_by(judge_id=assignment.judge_id, debate_id=debate.id).all()
        }

        for speaker_id, rank in rankings.items():
            speaker = registered[speaker_id]
            row = existing.pop(speaker.id, None)
            if row:
                row.rank = rank
            else:
                db.session.add(Ranking(
                    judge_id=assignment.judge_id,
                    debate_id=debate.id,
                    speaker_id=speaker.id,
                    rank=rank
                ))

        # Rows for speakers no longer in the debate
        for stale in existing.values():
            db.session.delete(stale)

        self.assignments.mark_completed(assignment)
        db.session.flush()
        logger.debug(f"Stored rankings from judge {judge_id} for debate {debate_id}: {dict(rankings)}")

        return assignment

    def get_rankings(self, judge_id: str, debate_id: str) -> Dict[str, int]:
        """The stored ranking set of one judge for one debate, keyed by speaker ID."""
        rows = (
            db.session.query(Speaker.speaker_id, Ranking.rank)
            .join(Ranking, Ranking.speaker_id == Speaker.id)
            .join(Judge, Ranking.judge_id == Judge.id)
            .join(Debate, Ranking.debate_id == Debate.id)
            .filter(Judge.judge_id == judge_id, Debate.debate_id == debate_id)
            .all()
        )
        return {speaker_id: rank for speaker_id, rank in rows}
