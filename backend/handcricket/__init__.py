from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
socketio = SocketIO(cors_allowed_origins='*', async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    origins = flask_app.config.get('CORS_ORIGINS', '*')
    # A literal "*" rather than an echo of the request Origin
    CORS(flask_app, origins=origins, send_wildcard=(origins == '*'))

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # Import and register blueprints here
    from handcricket.main import main
    flask_app.register_blueprint(main)

    from handcricket.api.logs import logs
    # Query API for game logs, stats and logging config
    flask_app.register_blueprint(logs, url_prefix='/api')

    with flask_app.app_context():
        import handcricket.models  # noqa: F401
        db.create_all()

    # Per-app service objects; handlers reach them through current_app.extensions
    from handcricket.services.gamelog import GameLogger, config_from_app
    from handcricket.services.games import HandCricketService
    from handcricket.socketio_events import SocketIOChannel, register_socketio_handlers

    def dispatch(fn, *args):
        # Log writes run inline in tests for determinism, as background tasks otherwise
        if flask_app.config.get('TESTING'):
            fn(*args)
        else:
            socketio.start_background_task(fn, *args)

    game_logger = GameLogger(
        config_from_app(flask_app.config),
        logger=flask_app.logger,
        dispatch=dispatch,
        app=flask_app,
    )
    service = HandCricketService(SocketIOChannel(socketio), observers=[game_logger], logger=flask_app.logger)
    flask_app.extensions['game_logger'] = game_logger
    flask_app.extensions['handcricket'] = service

    register_socketio_handlers()

    @click.command('logs-cleanup')
    def logs_cleanup_command():
        """Deletes game log files and rows past the retention limits."""
        deleted = game_logger.cleanup_old_logs()
        print(f'Removed {len(deleted)} log file(s).')

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the game log tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(logs_cleanup_command)
    flask_app.cli.add_command(db_reset_command)

    return flask_app
