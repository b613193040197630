"""
Unit tests for the scoring engine.
Tests: points_for_rank, round_score, ScoringEngine.recompute_round_scores
"""
import pytest
from tabroom.models import db, Ranking, RoundScore
from tabroom.scoring_engine import (
    ScoringEngine,
    points_for_rank,
    round_score,
    RANKED_SPEAKERS,
    MAX_POINTS,
)


class TestPointsForRank:
    """Tests for the rank to points conversion."""

    def test_first_place_is_five_points(self):
        assert points_for_rank(1) == 5
        assert points_for_rank(1) != 4

    def test_last_place_is_zero_points(self):
        assert points_for_rank(6) == 0

    def test_every_rank(self):
        """points(r) = 6 - r for every valid rank."""
        for rank in range(1, RANKED_SPEAKERS + 1):
            assert points_for_rank(rank) == 6 - rank

    def test_max_points_constant(self):
        assert MAX_POINTS == points_for_rank(1)

    @pytest.mark.parametrize('rank', [0, 7, -1])
    def test_out_of_range(self, rank):
        with pytest.raises(ValueError):
            points_for_rank(rank)


class TestRoundScore:
    """Tests for averaging points across judges."""

    def test_single_judge(self):
        assert round_score([1]) == 5.0

    def test_first_and_third(self):
        """Ranked 1st and 3rd gives points 5 and 3, averaging 4.0."""
        assert round_score([1, 3]) == pytest.approx(4.0)

    def test_three_judges(self):
        assert round_score([2, 2, 5]) == pytest.approx((4 + 4 + 1) / 3)

    def test_returns_float(self):
        assert isinstance(round_score([6]), float)

    def test_no_ranks(self):
        with pytest.raises(ValueError):
            round_score([])


class TestRecomputeRoundScores:
    """Tests for rebuilding RoundScore rows from stored rankings."""

    def _rank(self, judge, debate, order):
        """Store rankings for speakers of the debate in the given order (best first)."""
        speakers = {s.speaker_id: s for s in debate.speakers}
        for rank, speaker_id in enumerate(order, start=1):
            db.session.add(Ranking(
                judge_id=judge.id,
                debate_id=debate.id,
                speaker_id=speakers[speaker_id].id,
                rank=rank
            ))
        db.session.commit()

    def test_no_rankings_no_scores(self, db_session, sample_debate):
        engine = ScoringEngine()
        affected = engine.recompute_round_scores(sample_debate)

        assert affected == []
        assert RoundScore.query.count() == 0

    def test_single_judge_scores(self, db_session, sample_debate, make_judge):
        judge = make_judge('J1', sample_debate)
        self._rank(judge, sample_debate, ['A', 'B', 'C', 'D', 'E', 'F'])

        engine = ScoringEngine()
        engine.recompute_round_scores(sample_debate)

        assert engine.get_round_scores(sample_debate) == {
            'A': 5.0, 'B': 4.0, 'C': 3.0, 'D': 2.0, 'E': 1.0, 'F': 0.0
        }

    def test_scores_average_across_judges(self, db_session, sample_debate, make_judge):
        j1 = make_judge('J1', sample_debate)
        j2 = make_judge('J2', sample_debate)
        self._rank(j1, sample_debate, ['A', 'B', 'C', 'D', 'E', 'F'])
        self._rank(j2, sample_debate, ['B', 'C', 'A', 'D', 'F', 'E'])

        engine = ScoringEngine()
        engine.recompute_round_scores(sample_debate)
        scores = engine.get_round_scores(sample_debate)

        assert scores['A'] == pytest.approx(4.0)
        assert scores['B'] == pytest.approx(4.5)
        assert scores['E'] == pytest.approx(0.5)

        row = RoundScore.query.filter_by(debate_id=sample_debate.id).first()
        assert row.judge_count == 2
        assert row.round_num == 1

    def test_recompute_is_idempotent(self, db_session, sample_debate, make_judge):
        judge = make_judge('J1', sample_debate)
        self._rank(judge, sample_debate, ['F', 'E', 'D', 'C', 'B', 'A'])

        engine = ScoringEngine()
        engine.recompute_round_scores(sample_debate)
        first = engine.get_round_scores(sample_debate)

        engine.recompute_round_scores(sample_debate)
        second = engine.get_round_scores(sample_debate)

        assert first == second
        assert RoundScore.query.count() == 6

    def test_stale_score_removed_when_rankings_gone(self, db_session, sample_debate, make_judge):
        judge = make_judge('J1', sample_debate)
        self._rank(judge, sample_debate, ['A', 'B', 'C', 'D', 'E', 'F'])

        engine = ScoringEngine()
        engine.recompute_round_scores(sample_debate)
        db.session.commit()

        Ranking.query.delete()
        db.session.commit()

        affected = engine.recompute_round_scores(sample_debate)

        assert len(affected) == 6
        assert RoundScore.query.count() == 0
