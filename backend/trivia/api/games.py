from flask import Blueprint, jsonify, request, current_app
from pydantic import ValidationError

from trivia.errors import QuestionGenerationError, QuestionValidationError
from trivia.models import SessionState
from trivia.protocol import parse_intent


games = Blueprint('games', __name__)


def _hub():
    return current_app.extensions['trivia']


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    where = '.'.join(str(p) for p in first.get('loc', ()) if p != 'type')
    return f"{where}: {first.get('msg')}" if where else first.get('msg', 'Invalid request')


@games.route('/create', methods=['POST'])
def create_game():
    data = request.get_json(silent=True) or {}
    try:
        intent = parse_intent('create', data)
        session, created = _hub().create_session(intent)
    except ValidationError as exc:
        return jsonify({'error': _validation_message(exc)}), 400
    except QuestionValidationError as exc:
        return jsonify({'error': str(exc)}), 400
    if not created:
        return jsonify({'error': f'Session {session.code} already exists'}), 409
    return jsonify({
        'message': 'New game created!',
        'code': session.code,
        'moderator_id': session.moderator_id,
    }), 201


@games.route('/join', methods=['POST'])
def join_game():
    data = request.get_json(silent=True) or {}
    if 'player' not in data:
        # Flat form: {"code": ..., "name": ...}
        data = {'code': data.get('code'), 'player': {k: v for k, v in data.items() if k != 'code'}}
    try:
        intent = parse_intent('join', data)
    except ValidationError as exc:
        return jsonify({'error': _validation_message(exc)}), 400

    session = _hub().registry.get(intent.code)
    if not session:
        return jsonify({'error': 'Game not found'}), 404
    if session.state is not SessionState.LOBBY:
        return jsonify({'error': 'This game is not in the lobby'}), 403

    player = _hub().join_player(intent)
    if player is None:
        return jsonify({'error': 'This game is not in the lobby'}), 403
    return jsonify(player.to_dict()), 201


@games.route('/<string:code>/state', methods=['GET'])
def get_game_state(code):
    hub = _hub()
    session = hub.registry.get(code)
    if not session:
        return jsonify({'error': 'Game not found'}), 404
    with session.lock:
        payload = hub.snapshot(session.code, session)
    return jsonify(payload['session'])


@games.route('/generate-questions', methods=['POST'])
def generate_questions():
    data = request.get_json(silent=True) or {}
    prompt = data.get('prompt')
    document = data.get('document')
    if not (isinstance(prompt, str) and prompt.strip()) and not (isinstance(document, str) and document.strip()):
        return jsonify({'error': 'prompt or document is required'}), 400
    count = data.get('count')
    if not isinstance(count, int) or isinstance(count, bool) or count < 1:
        count = None

    hub = _hub()
    try:
        result = hub.run_generation(prompt, document, hub.question_count(count))
    except QuestionGenerationError as exc:
        current_app.logger.error(f"[generate-fail] {exc}")
        return jsonify({'error': str(exc)}), 500
    body = result.to_dict()
    return jsonify({'questions': body['questions'], 'warning': body['warning']})
