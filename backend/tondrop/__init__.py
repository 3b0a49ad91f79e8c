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

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    origins = flask_app.config.get('CORS_ORIGINS') or '*'
    if origins != '*':
        origins = [o.strip() for o in origins.split(',') if o.strip()]
    CORS(flask_app, origins=origins)

    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from tondrop.main import main
    flask_app.register_blueprint(main)

    from tondrop.api.players import players
    flask_app.register_blueprint(players, url_prefix='/api')

    # Importing here binds the handlers to the initialized socketio instance
    from tondrop.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    @click.option('--seed/--no-seed', default=True, help='Create a few demo players.')
    def db_reset_command(seed):
        """Drops, recreates, and seeds the database."""
        from tondrop.services.ledger import engine
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            if seed:
                for player_id, name, score in [('1001', 'alice', 120), ('1002', 'bob', 80), ('1003', 'cara', 40)]:
                    engine.submit_score(player_id, score, display_name=name)
            click.echo('Database has been reset' + (' and seeded!' if seed else '!'))

    @click.command('compact-epochs')
    def compact_epochs_command():
        """Zeroes epoch scores left over from previous competition periods."""
        from tondrop.services.ledger import engine
        with flask_app.app_context():
            result = engine.compact_epochs()
            click.echo(f"Compacted {result['compacted']} player(s) into epoch starting {result['epoch_start']}")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(compact_epochs_command)

    return flask_app
