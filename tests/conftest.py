"""
Pytest configuration and fixtures for scoring service tests.
"""
import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from tabroom.app import create_app
from tabroom.models import db, Tournament, Judge, Speaker, Debate, JudgeAssignment
from tabroom.scoring_service import ScoringService


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Database session with every table emptied."""
    db.session.remove()

    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture
def scoring(db_session):
    return ScoringService()


@pytest.fixture
def sample_tournament(db_session):
    """A tournament sitting in round 1."""
    tournament = Tournament(
        tournament_id='test-tournament-001',
        name='Test Tournament',
        current_round=1
    )
    db.session.add(tournament)
    db.session.commit()
    return tournament


@pytest.fixture
def make_debate(db_session, sample_tournament):
    """
    Factory for a debate with six speakers.

    Speakers are reused when their ID already exists, so several rounds
    can share the same people.
    """
    def _make(debate_id, round_num=1, speaker_ids=None, tournament=None,
              aff_team='Alpha', neg_team='Beta'):
        tournament = tournament or sample_tournament
        speaker_ids = speaker_ids or [f'{debate_id}-s{i}' for i in range(1, 7)]
        positions = ['First', 'Deputy', 'Whip']

        speakers = []
        for i, speaker_id in enumerate(speaker_ids):
            speaker = Speaker.query.filter_by(speaker_id=speaker_id).first()
            if not speaker:
                speaker = Speaker(
                    speaker_id=speaker_id,
                    tournament_id=tournament.id,
                    name=f'Speaker {speaker_id}',
                    team=aff_team if i < 3 else neg_team,
                    position=positions[i % 3]
                )
                db.session.add(speaker)
            speakers.append(speaker)

        debate = Debate(
            debate_id=debate_id,
            tournament_id=tournament.id,
            round_num=round_num,
            venue='Room 1',
            aff_team=aff_team,
            neg_team=neg_team,
            speakers=speakers
        )
        db.session.add(debate)
        db.session.commit()
        return debate

    return _make


@pytest.fixture
def make_judge(db_session):
    """Factory for a judge, optionally assigned to debates."""
    def _make(judge_id, *debates, role='panelist'):
        judge = Judge.query.filter_by(judge_id=judge_id).first()
        if not judge:
            judge = Judge(judge_id=judge_id, name=f'Judge {judge_id}', role=role)
            db.session.add(judge)
        for debate in debates:
            db.session.add(JudgeAssignment(judge=judge, debate=debate, status='pending'))
        db.session.commit()
        return judge

    return _make


@pytest.fixture
def sample_debate(make_debate):
    """Debate D1 with speakers A-F: A, B, C for Alpha and D, E, F for Beta."""
    return make_debate('D1', speaker_ids=['A', 'B', 'C', 'D', 'E', 'F'])


@pytest.fixture
def sample_judge(make_judge, sample_debate):
    """Judge J1 assigned to D1."""
    return make_judge('J1', sample_debate, role='chair')


@pytest.fixture
def in_order():
    """Rankings A:1 ... F:6."""
    return {'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6}
