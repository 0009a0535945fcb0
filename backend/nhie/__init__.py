from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from nhie.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Import and register blueprints here
    from nhie.main import main
    flask_app.register_blueprint(main, url_prefix='/api/users')

    from nhie.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from nhie.api.questions import questions
    flask_app.register_blueprint(questions, url_prefix='/api/questions')

    # Register Socket.IO event handlers against the initialized socketio instance
    from nhie.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from nhie.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from nhie.services.questions import seed_questions
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            for name in ['alice', 'bob', 'cara']:
                db.session.add(User(name=name))
            seed_questions()

            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('reset-daily-points')
    def reset_daily_points_command():
        """Zeroes every user's daily points."""
        from nhie.services.stats import reset_daily_points
        with flask_app.app_context():
            count = reset_daily_points()
            print(f'Reset daily points for {count} users')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(reset_daily_points_command)

    return flask_app
