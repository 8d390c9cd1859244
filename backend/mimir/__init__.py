from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

ROOMS_EXTENSION = 'mimir.rooms'


def get_coordinator(flask_app):
    """The room coordinator bound to this app (one per app instance)."""
    return flask_app.extensions[ROOMS_EXTENSION]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('ALLOWED_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room state lives on the app, not in a module global, so parallel test
    # apps never share rooms.
    from mimir.services.game.state import GameRules
    from mimir.services.rooms import RoomCoordinator, RoomRegistry
    rules = GameRules.from_config(flask_app.config)
    registry = RoomRegistry(
        max_players=int(flask_app.config.get('ROOM_MAX_PLAYERS', 4)),
        code_length=int(flask_app.config.get('ROOM_CODE_LENGTH', 6)),
        code_retries=int(flask_app.config.get('ROOM_CODE_RETRIES', 10)),
    )
    flask_app.extensions[ROOMS_EXTENSION] = RoomCoordinator(registry, rules, log=flask_app.logger)
    flask_app.extensions['mimir.rules'] = rules

    # Import and register blueprints here
    from mimir.main import main
    flask_app.register_blueprint(main)

    from mimir.api.quizzes import quizzes
    flask_app.register_blueprint(quizzes, url_prefix='/api/quizzes')

    from mimir.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers
    from mimir.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo quiz."""
        from mimir.models import QuizFile, QuizQuestion
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            quiz = QuizFile(
                file_name='demo.xlsx', author='Quizmaster', topic='Capitals',
                league='Demo', total_questions=4, total_rounds=2,
            )
            seed = [
                (1, 1, 'What is the capital of France?', 'Paris'),
                (1, 2, 'What is the capital of Germany?', 'Berlin'),
                (2, 1, 'What is the capital of Italy?', 'Rome'),
                (2, 2, 'What is the capital of the United Kingdom?', 'London'),
            ]
            for order, (rnd, player, question, answer) in enumerate(seed):
                quiz.questions.append(QuizQuestion(
                    round_number=rnd, player_number=player, question=question,
                    answer=answer, order_index=order,
                ))
            db.session.add(quiz)
            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
