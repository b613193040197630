"""
Unit tests for the ranking ledger.
Tests: validate_rankings, RankingLedger.submit, RankingLedger.get_rankings
"""
import pytest
from tabroom.errors import (
    InvalidRankingSetSize,
    RankOutOfRange,
    DuplicateOrMissingRank,
    JudgeNotAssigned,
    UnknownSpeakerInRanking,
)
from tabroom.models import db, Ranking, JudgeAssignment, Speaker
from tabroom.ranking_ledger import RankingLedger, validate_rankings


class TestValidateRankings:
    """Tests for the database-free shape checks."""

    def test_valid_permutation(self, in_order):
        validate_rankings(in_order)

    def test_too_few(self):
        with pytest.raises(InvalidRankingSetSize) as exc:
            validate_rankings({'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5})
        assert exc.value.size == 5

    def test_too_many(self, in_order):
        with pytest.raises(InvalidRankingSetSize):
            validate_rankings({**in_order, 'G': 6})

    def test_empty(self):
        with pytest.raises(InvalidRankingSetSize):
            validate_rankings({})

    @pytest.mark.parametrize('bad_rank', [0, 7, -1, 2.5, '3', None, True])
    def test_rank_out_of_range(self, in_order, bad_rank):
        with pytest.raises(RankOutOfRange) as exc:
            validate_rankings({**in_order, 'C': bad_rank})
        assert exc.value.speaker_id == 'C'

    def test_duplicate_rank(self, in_order):
        with pytest.raises(DuplicateOrMissingRank) as exc:
            validate_rankings({**in_order, 'F': 1})
        assert exc.value.duplicates == [1]
        assert exc.value.missing == [6]

    def test_size_checked_before_range(self):
        """A short set with a bad rank reports the size first."""
        with pytest.raises(InvalidRankingSetSize):
            validate_rankings({'A': 9})

    def test_range_checked_before_duplicates(self):
        with pytest.raises(RankOutOfRange):
            validate_rankings({'A': 1, 'B': 1, 'C': 1, 'D': 1, 'E': 1, 'F': 99})


class TestSubmit:
    """Tests for storing a judge's ranking set."""

    def test_stores_six_rankings(self, db_session, sample_judge, in_order):
        ledger = RankingLedger()
        ledger.submit('J1', 'D1', in_order)
        db.session.commit()

        assert ledger.get_rankings('J1', 'D1') == in_order
        assert Ranking.query.count() == 6

    def test_marks_assignment_completed(self, db_session, sample_judge, in_order):
        ledger = RankingLedger()
        assignment = ledger.submit('J1', 'D1', in_order)
        db.session.commit()

        assert assignment.status == 'completed'

    def test_resubmission_replaces_rankings(self, db_session, sample_judge, in_order):
        ledger = RankingLedger()
        ledger.submit('J1', 'D1', in_order)
        db.session.commit()

        reversed_order = {'A': 6, 'B': 5, 'C': 4, 'D': 3, 'E': 2, 'F': 1}
        assignment = ledger.submit('J1', 'D1', reversed_order)
        db.session.commit()

        assert ledger.get_rankings('J1', 'D1') == reversed_order
        assert Ranking.query.count() == 6
        assert assignment.status == 'completed'

    def test_stored_ranks_are_a_permutation(self, db_session, sample_judge):
        ledger = RankingLedger()
        ledger.submit('J1', 'D1', {'A': 3, 'B': 1, 'C': 6, 'D': 2, 'E': 5, 'F': 4})
        db.session.commit()

        assert sorted(ledger.get_rankings('J1', 'D1').values()) == [1, 2, 3, 4, 5, 6]

    def test_judge_not_assigned(self, db_session, sample_debate, make_judge, in_order):
        make_judge('J2')
        ledger = RankingLedger()

        with pytest.raises(JudgeNotAssigned):
            ledger.submit('J2', 'D1', in_order)

    def test_unknown_judge(self, db_session, sample_debate, in_order):
        with pytest.raises(JudgeNotAssigned):
            RankingLedger().submit('nobody', 'D1', in_order)

    def test_unknown_debate(self, db_session, sample_judge, in_order):
        with pytest.raises(JudgeNotAssigned):
            RankingLedger().submit('J1', 'D99', in_order)

    def test_assignment_checked_before_speakers(self, db_session, sample_debate, make_judge):
        make_judge('J2')
        bogus = {'X1': 1, 'X2': 2, 'X3': 3, 'X4': 4, 'X5': 5, 'X6': 6}

        with pytest.raises(JudgeNotAssigned):
            RankingLedger().submit('J2', 'D1', bogus)

    def test_unknown_speaker_identified(self, db_session, sample_judge, in_order):
        rankings = dict(in_order)
        del rankings['F']
        rankings['Z'] = 6

        with pytest.raises(UnknownSpeakerInRanking) as exc:
            RankingLedger().submit('J1', 'D1', rankings)

        assert exc.value.speaker_id == 'Z'
        assert 'Z' in exc.value.detail

    def test_unknown_speaker_leaves_ledger_untouched(self, db_session, sample_judge, in_order):
        ledger = RankingLedger()
        ledger.submit('J1', 'D1', in_order)
        db.session.commit()

        rankings = {'A': 6, 'B': 5, 'C': 4, 'D': 3, 'E': 2, 'Z': 1}
        with pytest.raises(UnknownSpeakerInRanking):
            ledger.submit('J1', 'D1', rankings)
        db.session.rollback()

        assert ledger.get_rankings('J1', 'D1') == in_order

    def test_speaker_from_other_debate_rejected(self, db_session, sample_judge, make_debate, in_order):
        make_debate('D2', speaker_ids=['G', 'H', 'I', 'J', 'K', 'L'])
        rankings = dict(in_order)
        del rankings['A']
        rankings['G'] = 1

        with pytest.raises(UnknownSpeakerInRanking) as exc:
            RankingLedger().submit('J1', 'D1', rankings)
        assert exc.value.speaker_id == 'G'

    def test_registry_with_extra_speaker_reports_missing_one(self, db_session, sample_judge, sample_tournament, in_order):
        extra = Speaker(
            speaker_id='G',
            tournament_id=sample_tournament.id,
            name='Speaker G',
            team='Alpha',
            position='First'
        )
        sample_judge.assignments[0].debate.speakers.append(extra)
        db.session.commit()

        with pytest.raises(UnknownSpeakerInRanking) as exc:
            RankingLedger().submit('J1', 'D1', in_order)
        assert exc.value.speaker_id == 'G'

    def test_rejection_keeps_assignment_pending(self, db_session, sample_judge, in_order):
        with pytest.raises(DuplicateOrMissingRank):
            RankingLedger().submit('J1', 'D1', {**in_order, 'B': 1})
        db.session.rollback()

        assignment = JudgeAssignment.query.first()
        assert assignment.status == 'pending'
        assert Ranking.query.count() == 0
