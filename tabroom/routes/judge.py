from flask import Blueprint, request, jsonify, current_app

bp = Blueprint('judge', __name__)


@bp.route('/api/v1/judges/<judge_id>')
def get_judge(judge_id):
    """Judge details with the debate to rank now and the ones already ranked."""
    judge = current_app.registry.get_judge(judge_id)
    if not judge:
        return jsonify({'error': 'Judge not found'}), 404

    tournament_id = request.args.get('tournament') or current_app.config.get('DEFAULT_TOURNAMENT_ID')

    current_debate = None
    if tournament_id:
        current_debate = current_app.scoring.get_current_assignment(judge_id, tournament_id)

    return jsonify({
        'judge': {
            'name': judge.name,
            'role': judge.role
        },
        'current_debate': current_debate,
        'completed_debates': current_app.scoring.get_completed_assignments(judge_id)
    })


@bp.route('/api/v1/rankings', methods=['POST'])
def submit_rankings():
    data = request.json or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    judge_id = data.get('judge_id')
    debate_id = data.get('debate_id')
    rankings = data.get('rankings')

    if not judge_id or not debate_id or rankings is None:
        return jsonify({'error': 'judge_id, debate_id and rankings are required'}), 400

    if not isinstance(rankings, dict):
        return jsonify({'error': 'rankings must map speaker IDs to ranks'}), 400

    # ScoringError is turned into a JSON response by the app error handler
    result = current_app.scoring.submit_ranking(judge_id, debate_id, rankings)
    return jsonify(result)
