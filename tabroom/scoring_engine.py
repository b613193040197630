import logging
from typing import Dict, List, Sequence

from .models import db, Debate, Ranking, RoundScore, Speaker

logger = logging.getLogger(__name__)

# National-style rounds: six speakers ranked 1 (best) to 6
RANKED_SPEAKERS = 6
MAX_POINTS = RANKED_SPEAKERS - 1


def points_for_rank(rank: int) -> int:
    """
    Convert a 1-6 rank into points: 1st = 5, 2nd = 4, ... 6th = 0.
    """
    if rank < 1 or rank > RANKED_SPEAKERS:
        raise ValueError(f"Rank must be between 1 and {RANKED_SPEAKERS}, got {rank}")
    return RANKED_SPEAKERS - rank


def round_score(ranks: Sequence[int]) -> float:
    """
    Average points over every judge who ranked the speaker.

    No correction is made for panel size: one judge's ranking counts the
    same as the mean of three.
    """
    if not ranks:
        raise ValueError("Cannot score a speaker nobody has ranked")
    points = [points_for_rank(r) for r in ranks]
    return sum(points) / len(points)


class ScoringEngine:
    """
    Derives per-speaker round scores for a debate from the rankings on file.

    Scores are always rebuilt from the rankings, never edited in place, so
    running it twice over the same rankings gives the same rows.
    """

    def collect_ranks(self, debate: Debate) -> Dict[int, List[int]]:
        """Ranks from every judge, keyed by speaker primary key."""
        ranks: Dict[int, List[int]] = {}
        for r in Ranking.query.filter_by(debate_id=debate.id).all():
            ranks.setdefault(r.speaker_id, []).append(r.rank)
        return ranks

    def recompute_round_scores(self, debate: Debate) -> List[Speaker]:
        """
        Rebuild the RoundScore row of every speaker in the debate.

        Speakers nobody has ranked get no row. Returns the speakers whose
        row was written or removed. Flushes but does not commit.
        """
        ranks_by_speaker = self.collect_ranks(debate)
        existing = {
            rs.speaker_id: rs
            for rs in RoundScore.query.filter_by(debate_id=debate.id).all()
        }
        affected = []

        for speaker in debate.speakers:
            ranks = ranks_by_speaker.get(speaker.id)
            row = existing.get(speaker.id)

            if not ranks:
                if row:
                    db.session.delete(row)
                    affected.append(speaker)
                continue

            score = round_score(ranks)
            if row:
                row.score = score
                row.judge_count = len(ranks)
                row.round_num = debate.round_num
            else:
                db.session.add(RoundScore(
                    speaker_id=speaker.id,
                    debate_id=debate.id,
                    round_num=debate.round_num,
                    score=score,
                    judge_count=len(ranks)
                ))
            affected.append(speaker)

        # Scores left behind by speakers no longer in the debate
        current = {s.id for s in debate.speakers}
        for speaker_pk, row in existing.items():
            if speaker_pk not in current:
                affected.append(row.speaker)
                db.session.delete(row)

        db.session.flush()
        logger.debug(f"Recomputed round scores for debate {debate.debate_id} ({len(affected)} speakers)")
        return affected

    def get_round_scores(self, debate: Debate) -> Dict[str, float]:
        """Stored round scores for a debate, keyed by speaker ID."""
        rows = (
            db.session.query(Speaker.speaker_id, RoundScore.score)
            .join(RoundScore, RoundScore.speaker_id == Speaker.id)
            .filter(RoundScore.debate_id == debate.id)
            .all()
        )
        return {speaker_id: score for speaker_id, score in rows}
