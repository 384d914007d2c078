from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
import json
from config import Config

socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    # Service modules log under trivia.*, which propagates to this logger
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry per process, owned by the app and reached through the hub
    from trivia.hub import SessionHub
    from trivia.services.games.generation import QuestionGenerator
    from trivia.services.games.registry import SessionRegistry
    registry = SessionRegistry(code_length=int(flask_app.config.get('SESSION_CODE_LENGTH', 4)))
    generator = QuestionGenerator.from_config(flask_app.config)
    flask_app.extensions['trivia'] = SessionHub(flask_app, registry, generator)

    from trivia.main import main
    flask_app.register_blueprint(main)

    from trivia.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers after init_app so they bind to the
    # server created for this app
    from trivia.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('generate-questions')
    @click.argument('prompt')
    @click.option('--count', default=None, type=int, help='Number of questions to generate.')
    def generate_questions_command(prompt, count):
        """Generates a question set for PROMPT and prints it as JSON."""
        hub = flask_app.extensions['trivia']
        result = hub.run_generation(prompt, None, hub.question_count(count))
        if result.warning:
            click.echo(f'Warning: {result.warning}', err=True)
        click.echo(json.dumps(result.to_dict()['questions'], indent=2, ensure_ascii=False))

    flask_app.cli.add_command(generate_questions_command)

    return flask_app
