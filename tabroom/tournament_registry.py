import uuid
import logging
from typing import Optional, Tuple, List, Iterable

from .assignments import AssignmentTracker
from .database import atomic
from .errors import InvalidImportPayload
from .models import db, Tournament, Judge, Speaker, Debate, Position, POSITION_ORDER
from .scoring_engine import RANKED_SPEAKERS, ScoringEngine
from .standings import StandingsAggregator

logger = logging.getLogger(__name__)


def parse_position(value) -> str:
    """Normalize a speaker position ('first', 'WHIP', ...) to its stored form."""
    if isinstance(value, Position):
        return value.value
    try:
        return Position(str(value).strip().capitalize()).value
    except ValueError:
        raise ValueError(
            f"Invalid position {value!r}, expected one of {', '.join(p.value for p in Position)}"
        )


class TournamentRegistry:
    """
    Holds the identity of tournaments, judges, speakers and debates:
    - Create tournaments and move them between rounds
    - Add, edit and delete speakers
    - Import a round's draw (debates, speakers, judge assignments)

    A re-imported debate whose speakers or round changed has its rankings
    and scores brought back in line inside the same transaction.
    """

    def __init__(
        self,
        assignments: AssignmentTracker = None,
        engine: ScoringEngine = None,
        standings: StandingsAggregator = None
    ):
        self.assignments = assignments or AssignmentTracker()
        self.engine = engine or ScoringEngine()
        self.standings = standings or StandingsAggregator()

    # ==================== Tournaments ====================

    def create_tournament(self, name: str, current_round: int = 0) -> Tournament:
        """Create a new tournament."""
        tournament_id = f"t_{uuid.uuid4().hex[:12]}"

        with atomic("create tournament"):
            tournament = Tournament(
                tournament_id=tournament_id,
                name=name,
                current_round=current_round
            )
            db.session.add(tournament)

        logger.info(f"Created tournament {tournament_id} ({name})")
        return tournament

    def get_tournament(self, tournament_id: str) -> Optional[Tournament]:
        """Get tournament by its public ID."""
        return Tournament.query.filter_by(tournament_id=tournament_id).first()

    def list_tournaments(self, limit: int = 50, offset: int = 0) -> List[Tournament]:
        query = Tournament.query.order_by(Tournament.created_at.desc())
        return query.offset(offset).limit(limit).all()

    def set_current_round(self, tournament_id: str, round_num: int) -> Tuple[bool, str]:
        """Move a tournament to another round."""
        tournament = self.get_tournament(tournament_id)

        if not tournament:
            return False, "Tournament not found"

        if round_num < 0:
            return False, "Round must not be negative"

        with atomic("set current round"):
            tournament.current_round = round_num

        logger.info(f"Tournament {tournament_id} moved to round {round_num}")
        return True, f"Current round updated to {round_num}"

    # ==================== Judges ====================

    def get_judge(self, judge_id: str) -> Optional[Judge]:
        return Judge.query.filter_by(judge_id=judge_id).first()

    def _upsert_judge(self, judge_id: str, name: str = None, role: str = None) -> Judge:
        judge = self.get_judge(judge_id)
        if not judge:
            judge = Judge(judge_id=judge_id, name=name or judge_id, role=role or 'panelist')
            db.session.add(judge)
        else:
            if name:
                judge.name = name
            if role:
                judge.role = role
        return judge

    def register_judge(self, judge_id: str, name: str, role: str = 'panelist') -> Judge:
        """Create a judge, or update the name and role of an existing one."""
        with atomic("register judge"):
            judge = self._upsert_judge(judge_id, name, role)
        return judge

    # ==================== Speakers ====================

    def get_speaker(self, speaker_id: str) -> Optional[Speaker]:
        return Speaker.query.filter_by(speaker_id=speaker_id).first()

    def list_speakers(self, tournament: Tournament) -> List[Speaker]:
        """Speakers of a tournament grouped by team, in First/Deputy/Whip order."""
        speakers = Speaker.query.filter_by(tournament_id=tournament.id).all()
        return sorted(speakers, key=lambda s: (s.team, POSITION_ORDER.get(s.position, len(POSITION_ORDER) + 1)))

    def add_speaker(
        self,
        tournament: Tournament,
        name: str,
        team: str,
        position: str,
        speaker_id: str = None
    ) -> Speaker:
        """Add a speaker to a tournament. Raises ValueError for an unknown position."""
        position = parse_position(position)
        speaker_id = speaker_id or f"speaker_{uuid.uuid4().hex[:12]}"

        with atomic("add speaker"):
            speaker = Speaker(
                speaker_id=speaker_id,
                tournament_id=tournament.id,
                name=name,
                team=team,
                position=position
            )
            db.session.add(speaker)

        logger.info(f"Added speaker {speaker_id} ({name}, {team}) to {tournament.tournament_id}")
        return speaker

    def update_speaker(self, speaker_id: str, **fields) -> Tuple[bool, str]:
        """Admin edit of a speaker's name, team or position."""
        speaker = self.get_speaker(speaker_id)

        if not speaker:
            return False, "Speaker not found"

        unknown = set(fields) - {'name', 'team', 'position'}
        if unknown:
            return False, f"Cannot edit {', '.join(sorted(unknown))}"

        empty = sorted(key for key, value in fields.items() if value is None or not str(value).strip())
        if empty:
            return False, f"{', '.join(empty)} must not be empty"

        if 'position' in fields:
            try:
                fields['position'] = parse_position(fields['position'])
            except ValueError as e:
                return False, str(e)

        with atomic("update speaker"):
            for key, value in fields.items():
                setattr(speaker, key, value)

        return True, "Speaker updated"

    def delete_speaker(self, speaker_id: str) -> Tuple[bool, str]:
        """
        Delete a speaker together with everything that depends on it:
        debate memberships, rankings, round scores and standings.
        """
        speaker = self.get_speaker(speaker_id)

        if not speaker:
            return False, "Speaker not found"

        with atomic("delete speaker"):
            # Association rows go with the relationship, the rest by cascade
            speaker.debates = []
            db.session.delete(speaker)

        logger.info(f"Deleted speaker {speaker_id} and its rankings, round scores and standings")
        return True, "Speaker deleted"

    # ==================== Debates ====================

    def get_debate(self, debate_id: str) -> Optional[Debate]:
        return Debate.query.filter_by(debate_id=debate_id).first()

    def _upsert_speaker(self, tournament: Tournament, data: dict) -> Speaker:
        speaker = self.get_speaker(data['id'])
        if speaker and speaker.tournament_id != tournament.id:
            raise InvalidImportPayload(f"Speaker {data['id']} belongs to another tournament")

        if not speaker:
            speaker = Speaker(speaker_id=data['id'], tournament_id=tournament.id)
            db.session.add(speaker)

        speaker.name = data['name']
        speaker.team = data['team']
        speaker.position = data['position']
        return speaker

    def _upsert_debate(self, tournament: Tournament, round_num: int, data: dict) -> Tuple[Debate, Optional[tuple]]:
        """Create or refresh a debate. Also returns its (speakers, round) from before a refresh."""
        debate = self.get_debate(data['id'])
        if debate and debate.tournament_id != tournament.id:
            raise InvalidImportPayload(f"Debate {data['id']} belongs to another tournament")

        previous = None
        if debate:
            previous = (list(debate.speakers), debate.round_num)
        else:
            debate = Debate(debate_id=data['id'], tournament_id=tournament.id)
            db.session.add(debate)

        debate.round_num = round_num
        debate.venue = data.get('venue') or 'TBA'
        debate.aff_team = data['aff_team']
        debate.neg_team = data['neg_team']
        debate.speakers = [self._upsert_speaker(tournament, s) for s in data['speakers']]
        return debate, previous

    def _redraw(self, debate: Debate, removed: List[Speaker]):
        """
        Bring a refreshed debate's rankings and derived scores back in line.

        When the speakers changed no judge's ranking set matches the debate
        any more, so every ranking is dropped and the judges are sent back
        to pending. Round scores and standings are rebuilt either way.
        """
        if removed:
            for ranking in list(debate.rankings):
                db.session.delete(ranking)
            for assignment in debate.assignments:
                self.assignments.reopen(assignment)
            db.session.flush()

        affected = self.engine.recompute_round_scores(debate)
        for speaker in {s.id: s for s in affected + removed}.values():
            self.standings.recompute_standing(speaker, debate.tournament)

        logger.info(
            f"Redrew debate {debate.debate_id}: "
            f"{len(removed)} speakers replaced, {len(affected)} round scores rebuilt"
        )

    def import_draw(self, tournament: Tournament, payload: dict) -> dict:
        """
        Load one round's draw into a tournament.

        Sets the current round, creates or refreshes the debates and their
        six speakers, registers judges and their pending assignments. All or
        nothing: a malformed payload raises InvalidImportPayload and nothing
        is written.

        Refreshing a debate with different speakers discards its rankings
        and reopens its judges; a changed round moves its round scores.
        """
        round_num, debates, judges, judge_assignments = _check_draw_payload(payload)
        assignment_count = 0
        imported = {}
        redrawn = []

        with atomic("draw import"):
            tournament.current_round = round_num

            for d in debates:
                debate, previous = self._upsert_debate(tournament, round_num, d)
                imported[d['id']] = debate
                if previous:
                    old_speakers, old_round = previous
                    removed = [s for s in old_speakers if s not in debate.speakers]
                    if removed or old_round != round_num:
                        redrawn.append((debate, removed))

            for j in judges:
                self._upsert_judge(j['id'], j.get('name'), j.get('role'))

            for judge_id, debate_id in judge_assignments.items():
                judge = self._upsert_judge(judge_id)
                if debate_id is None:
                    continue
                debate = imported.get(debate_id) or self.get_debate(debate_id)
                if not debate or debate.tournament_id != tournament.id:
                    raise InvalidImportPayload(f"Judge {judge_id} is assigned to unknown debate {debate_id}")
                self.assignments.assign(judge, debate)
                assignment_count += 1

            for debate, removed in redrawn:
                self._redraw(debate, removed)

        logger.info(
            f"Imported round {round_num} draw into {tournament.tournament_id}: "
            f"{len(debates)} debates, {assignment_count} judge assignments"
        )
        return {
            'round': round_num,
            'debates': len(debates),
            'speakers': sum(len(d['speakers']) for d in debates),
            'assignments': assignment_count,
        }


def _require(data: dict, keys: Iterable[str], where: str):
    if not isinstance(data, dict):
        raise InvalidImportPayload(f"{where} must be an object")
    missing = [k for k in keys if not data.get(k)]
    if missing:
        raise InvalidImportPayload(f"{where} is missing {', '.join(missing)}")


def _check_draw_payload(payload: dict):
    """
    Validate the shape of a draw payload.

    Returns normalized copies of the debates; the payload itself is not
    modified.
    """
    _require(payload, ['debates'], "Draw")

    round_num = payload.get('round')
    if isinstance(round_num, bool) or not isinstance(round_num, int) or round_num < 1:
        raise InvalidImportPayload(f"Draw round must be a positive integer, got {round_num!r}")

    if not isinstance(payload['debates'], list):
        raise InvalidImportPayload("Draw debates must be a list")

    debates = []
    for debate in payload['debates']:
        _require(debate, ['id', 'aff_team', 'neg_team'], "Debate")
        where = f"Debate {debate['id']}"
        speakers = debate.get('speakers') or []
        if len(speakers) != RANKED_SPEAKERS:
            raise InvalidImportPayload(f"{where} must have exactly {RANKED_SPEAKERS} speakers, got {len(speakers)}")
        if len({s.get('id') for s in speakers if isinstance(s, dict)}) != RANKED_SPEAKERS:
            raise InvalidImportPayload(f"{where} lists the same speaker twice")

        normalized = []
        for speaker in speakers:
            _require(speaker, ['id', 'name', 'team', 'position'], f"Speaker in {where}")
            try:
                normalized.append(dict(speaker, position=parse_position(speaker['position'])))
            except ValueError as e:
                raise InvalidImportPayload(f"{where}: {e}")
        debates.append(dict(debate, speakers=normalized))

    judges = payload.get('judges') or []
    for judge in judges:
        _require(judge, ['id'], "Judge")

    judge_assignments = payload.get('judge_assignments') or {}
    if not isinstance(judge_assignments, dict):
        raise InvalidImportPayload("judge_assignments must map judge IDs to debate IDs")

    return round_num, debates, judges, judge_assignments
