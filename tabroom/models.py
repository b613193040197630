from datetime import datetime
from enum import Enum
from flask_sqlalchemy import SQLAlchemy

from shared.state_machine import AssignmentState

db = SQLAlchemy()


class Position(str, Enum):
    FIRST = "First"
    DEPUTY = "Deputy"
    WHIP = "Whip"


# Speaking order within a team, used when listing speakers
POSITION_ORDER = {
    Position.FIRST.value: 1,
    Position.DEPUTY.value: 2,
    Position.WHIP.value: 3,
}


debate_speakers = db.Table(
    'debate_speakers',
    db.Column('debate_id', db.Integer, db.ForeignKey('debates.id'), primary_key=True),
    db.Column('speaker_id', db.Integer, db.ForeignKey('speakers.id'), primary_key=True),
)


class Tournament(db.Model):
    __tablename__ = 'tournaments'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.String(50), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    current_round = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    speakers = db.relationship('Speaker', back_populates='tournament', cascade='all, delete-orphan')
    debates = db.relationship('Debate', back_populates='tournament', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'tournament_id': self.tournament_id,
            'name': self.name,
            'current_round': self.current_round,
            'speaker_count': len(self.speakers),
            'debate_count': len(self.debates),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Judge(db.Model):
    __tablename__ = 'judges'

    id = db.Column(db.Integer, primary_key=True)
    judge_id = db.Column(db.String(100), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(50), nullable=False, default='panelist')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    assignments = db.relationship('JudgeAssignment', back_populates='judge', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'judge_id': self.judge_id,
            'name': self.name,
            'role': self.role,
        }


class Speaker(db.Model):
    __tablename__ = 'speakers'

    id = db.Column(db.Integer, primary_key=True)
    speaker_id = db.Column(db.String(100), unique=True, nullable=False, index=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournaments.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    team = db.Column(db.String(100), nullable=False)
    position = db.Column(db.String(20), nullable=False)  # First, Deputy or Whip
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tournament = db.relationship('Tournament', back_populates='speakers')
    debates = db.relationship('Debate', secondary=debate_speakers, back_populates='speakers')

    # Derived and dependent rows go with the speaker
    rankings = db.relationship('Ranking', back_populates='speaker', cascade='all, delete-orphan')
    round_scores = db.relationship('RoundScore', back_populates='speaker', cascade='all, delete-orphan')
    standings = db.relationship('SpeakerStanding', back_populates='speaker', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'speaker_id': self.speaker_id,
            'name': self.name,
            'team': self.team,
            'position': self.position,
            'tournament_id': self.tournament.tournament_id if self.tournament else None,
        }


class Debate(db.Model):
    __tablename__ = 'debates'

    id = db.Column(db.Integer, primary_key=True)
    debate_id = db.Column(db.String(100), unique=True, nullable=False, index=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournaments.id'), nullable=False)
    round_num = db.Column(db.Integer, nullable=False)
    venue = db.Column(db.String(100), nullable=False, default='TBA')
    aff_team = db.Column(db.String(100), nullable=False)
    neg_team = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    tournament = db.relationship('Tournament', back_populates='debates')
    speakers = db.relationship('Speaker', secondary=debate_speakers, back_populates='debates')
    assignments = db.relationship('JudgeAssignment', back_populates='debate', cascade='all, delete-orphan')
    rankings = db.relationship('Ranking', back_populates='debate', cascade='all, delete-orphan')
    round_scores = db.relationship('RoundScore', back_populates='debate', cascade='all, delete-orphan')

    def to_summary(self):
        return {
            'debate_id': self.debate_id,
            'round': self.round_num,
            'venue': self.venue,
            'aff_team': self.aff_team,
            'neg_team': self.neg_team,
        }

    def to_dict(self):
        data = self.to_summary()
        data['tournament_id'] = self.tournament.tournament_id if self.tournament else None
        data['speakers'] = [s.to_dict() for s in self.speakers]
        return data


class JudgeAssignment(db.Model):
    __tablename__ = 'judge_assignments'

    id = db.Column(db.Integer, primary_key=True)
    judge_id = db.Column(db.Integer, db.ForeignKey('judges.id'), nullable=False)
    debate_id = db.Column(db.Integer, db.ForeignKey('debates.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=AssignmentState.PENDING.value)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    judge = db.relationship('Judge', back_populates='assignments')
    debate = db.relationship('Debate', back_populates='assignments')

    __table_args__ = (
        db.UniqueConstraint('judge_id', 'debate_id', name='unique_assignment_per_debate'),
    )

    def to_dict(self):
        data = self.debate.to_summary()
        data['status'] = self.status
        return data


class Ranking(db.Model):
    __tablename__ = 'rankings'

    id = db.Column(db.Integer, primary_key=True)
    judge_id = db.Column(db.Integer, db.ForeignKey('judges.id'), nullable=False)
    debate_id = db.Column(db.Integer, db.ForeignKey('debates.id'), nullable=False)
    speaker_id = db.Column(db.Integer, db.ForeignKey('speakers.id'), nullable=False)
    rank = db.Column('ranking', db.Integer, nullable=False)  # 1 = best, 6 = last
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    judge = db.relationship('Judge')
    debate = db.relationship('Debate', back_populates='rankings')
    speaker = db.relationship('Speaker', back_populates='rankings')

    __table_args__ = (
        db.UniqueConstraint('judge_id', 'debate_id', 'speaker_id', name='unique_ranking_per_speaker'),
        db.CheckConstraint('ranking BETWEEN 1 AND 6', name='rank_in_range'),
    )


class RoundScore(db.Model):
    __tablename__ = 'round_scores'

    id = db.Column(db.Integer, primary_key=True)
    speaker_id = db.Column(db.Integer, db.ForeignKey('speakers.id'), nullable=False)
    debate_id = db.Column(db.Integer, db.ForeignKey('debates.id'), nullable=False)
    round_num = db.Column(db.Integer, nullable=False)
    score = db.Column(db.Float, nullable=False)  # mean of (6 - rank) across judges
    judge_count = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    speaker = db.relationship('Speaker', back_populates='round_scores')
    debate = db.relationship('Debate', back_populates='round_scores')

    __table_args__ = (
        db.UniqueConstraint('speaker_id', 'debate_id', name='unique_round_score'),
    )

    def to_dict(self):
        return {
            'speaker_id': self.speaker.speaker_id,
            'debate_id': self.debate.debate_id,
            'round': self.round_num,
            'score': self.score,
            'judge_count': self.judge_count,
        }


class SpeakerStanding(db.Model):
    __tablename__ = 'speaker_standings'

    id = db.Column(db.Integer, primary_key=True)
    speaker_id = db.Column(db.Integer, db.ForeignKey('speakers.id'), nullable=False)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournaments.id'), nullable=False)
    total_score = db.Column(db.Float, nullable=False)
    rounds_participated = db.Column(db.Integer, nullable=False)
    average_score = db.Column(db.Float, nullable=False)
    highest_round_score = db.Column(db.Float, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    speaker = db.relationship('Speaker', back_populates='standings')
    tournament = db.relationship('Tournament')

    __table_args__ = (
        db.UniqueConstraint('speaker_id', 'tournament_id', name='unique_standing_per_tournament'),
    )

    def to_dict(self):
        return {
            'speaker_id': self.speaker.speaker_id,
            'name': self.speaker.name,
            'team': self.speaker.team,
            'position': self.speaker.position,
            'total_score': self.total_score,
            'rounds_participated': self.rounds_participated,
            'average_score': self.average_score,
            'highest_round_score': self.highest_round_score,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
