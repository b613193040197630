import os
from flask import Flask, request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from .config import config
from .errors import ScoringError, JudgeNotAssigned, TransactionFailure
from .models import db
from .scoring_service import ScoringService


def create_app(config_name: str = None) -> Flask:
    """Application factory for the scoring service."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)

    # Create tables
    with app.app_context():
        db.create_all()

    # Store services on app for access in routes
    app.scoring = ScoringService()
    app.registry = app.scoring.registry

    register_error_handlers(app)
    register_api_routes(app)

    from .routes import judge
    app.register_blueprint(judge.bp)

    return app


def register_error_handlers(app: Flask):

    @app.errorhandler(ScoringError)
    def handle_scoring_error(e: ScoringError):
        if isinstance(e, TransactionFailure):
            code = 503
        elif isinstance(e, JudgeNotAssigned):
            code = 403
        else:
            code = 400
        return jsonify(e.to_dict()), code


def register_api_routes(app: Flask):
    """Register API routes."""

    # ==================== Tournaments ====================

    @app.route('/api/v1/tournaments', methods=['GET'])
    def api_list_tournaments():
        limit = request.args.get('limit', 50, type=int)
        offset = request.args.get('offset', 0, type=int)

        tournaments = app.registry.list_tournaments(limit=limit, offset=offset)

        return jsonify({
            'tournaments': [t.to_dict() for t in tournaments],
            'count': len(tournaments),
            'limit': limit,
            'offset': offset
        })

    @app.route('/api/v1/tournaments', methods=['POST'])
    def api_create_tournament():
        data = request.json or {}
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be a JSON object'}), 400

        name = data.get('name')
        if not name:
            return jsonify({'error': 'Tournament name is required'}), 400

        tournament = app.registry.create_tournament(name=name)

        return jsonify({
            'message': 'Tournament created',
            'tournament': tournament.to_dict()
        }), 201

    @app.route('/api/v1/tournaments/<tournament_id>', methods=['GET'])
    def api_get_tournament(tournament_id: str):
        tournament = app.registry.get_tournament(tournament_id)
        if not tournament:
            return jsonify({'error': 'Tournament not found'}), 404

        return jsonify(tournament.to_dict())

    @app.route('/api/v1/tournaments/<tournament_id>/round', methods=['POST'])
    def api_set_current_round(tournament_id: str):
        data = request.json or {}
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be a JSON object'}), 400
        round_num = data.get('round')

        if not isinstance(round_num, int) or isinstance(round_num, bool):
            return jsonify({'error': 'round must be an integer'}), 400

        success, message = app.registry.set_current_round(tournament_id, round_num)
        if not success:
            code = 404 if 'not found' in message else 400
            return jsonify({'error': message}), code
        return jsonify({'message': message})

    # ==================== Draw import ====================

    @app.route('/api/v1/tournaments/<tournament_id>/draw', methods=['POST'])
    def api_import_draw(tournament_id: str):
        """Import a normalized draw for the next round."""
        tournament = app.registry.get_tournament(tournament_id)
        if not tournament:
            return jsonify({'error': 'Tournament not found'}), 404

        summary = app.registry.import_draw(tournament, request.json or {})

        return jsonify({
            'message': f"Imported {summary['debates']} debates for round {summary['round']}",
            **summary
        }), 201

    # ==================== Speakers ====================

    @app.route('/api/v1/tournaments/<tournament_id>/speakers', methods=['GET'])
    def api_list_speakers(tournament_id: str):
        tournament = app.registry.get_tournament(tournament_id)
        if not tournament:
            return jsonify({'error': 'Tournament not found'}), 404

        speakers = app.registry.list_speakers(tournament)
        return jsonify({
            'speakers': [s.to_dict() for s in speakers],
            'count': len(speakers)
        })

    @app.route('/api/v1/tournaments/<tournament_id>/speakers', methods=['POST'])
    def api_add_speaker(tournament_id: str):
        tournament = app.registry.get_tournament(tournament_id)
        if not tournament:
            return jsonify({'error': 'Tournament not found'}), 404

        data = request.json or {}
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be a JSON object'}), 400

        name = data.get('name')
        team = data.get('team')
        position = data.get('position')

        if not name or not team or not position:
            return jsonify({'error': 'name, team and position are required'}), 400

        try:
            speaker = app.registry.add_speaker(
                tournament,
                name=name,
                team=team,
                position=position,
                speaker_id=data.get('speaker_id')
            )
        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        return jsonify({
            'message': 'Speaker added successfully',
            'speaker': speaker.to_dict()
        }), 201

    @app.route('/api/v1/speakers/<speaker_id>', methods=['PATCH'])
    def api_update_speaker(speaker_id: str):
        data = request.json or {}
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be a JSON object'}), 400
        success, message = app.registry.update_speaker(speaker_id, **data)
        if not success:
            code = 404 if 'not found' in message else 400
            return jsonify({'error': message}), code
        return jsonify({
            'message': message,
            'speaker': app.registry.get_speaker(speaker_id).to_dict()
        })

    @app.route('/api/v1/speakers/<speaker_id>', methods=['DELETE'])
    def api_delete_speaker(speaker_id: str):
        success, message = app.registry.delete_speaker(speaker_id)
        if not success:
            return jsonify({'error': message}), 404
        return jsonify({'message': message})

    # ==================== Judges ====================

    @app.route('/api/v1/judges', methods=['POST'])
    def api_register_judge():
        data = request.json or {}
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be a JSON object'}), 400
        judge_id = data.get('judge_id')
        name = data.get('name')

        if not judge_id or not name:
            return jsonify({'error': 'judge_id and name are required'}), 400

        judge = app.registry.register_judge(judge_id, name, data.get('role') or 'panelist')
        return jsonify({
            'message': 'Judge registered',
            'judge': judge.to_dict()
        }), 201

    # ==================== Scores ====================

    @app.route('/api/v1/tournaments/<tournament_id>/standings', methods=['GET'])
    def api_standings(tournament_id: str):
        position = request.args.get('position')

        try:
            standings = app.scoring.get_standings(tournament_id, position)
        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        if standings is None:
            return jsonify({'error': 'Tournament not found'}), 404

        return jsonify({'standings': standings})

    @app.route('/api/v1/debates/<debate_id>/recalculate', methods=['POST'])
    def api_recalculate_debate(debate_id: str):
        result = app.scoring.recalculate_debate(debate_id)
        if result is None:
            return jsonify({'error': 'Debate not found'}), 404
        return jsonify(result)

    # ==================== Health Check ====================

    @app.route('/health')
    def health_check():
        try:
            db.session.execute(db.text('SELECT 1'))
            db_ok = True
        except SQLAlchemyError:
            db_ok = False

        return jsonify({
            'status': 'healthy' if db_ok else 'unhealthy',
            'database': 'connected' if db_ok else 'disconnected'
        }), 200 if db_ok else 503
