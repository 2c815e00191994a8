from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import logging
import sys
import click
from cipherquiz.config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def _configure_logging(flask_app):
    # Service modules log under "cipherquiz.*" and propagate here
    logger = logging.getLogger('cipherquiz')
    logger.setLevel(logging.DEBUG if flask_app.debug else logging.INFO)
    if not flask_app.debug and not any(getattr(h, '_cipherquiz', False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
        handler._cipherquiz = True
        logger.addHandler(handler)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    _configure_logging(flask_app)

    origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # Admin password is only ever held hashed; an empty one disables admin login
    admin_password = flask_app.config.get('ADMIN_PASSWORD')
    flask_app.config['ADMIN_PASSWORD_HASH'] = (
        bcrypt.generate_password_hash(admin_password).decode('utf-8') if admin_password else None
    )

    from cipherquiz.services.questions import QuestionGenerator
    from cipherquiz.services.session import QuizEngine
    from cipherquiz.services.store import MemoryRoomStore, SqlCustomQuestionStore, SqlRoomStore
    from cipherquiz.socketio_events import SocketIONotifier, register_socketio_handlers

    custom_store = SqlCustomQuestionStore(flask_app)
    if flask_app.config.get('ROOM_STORE') == 'memory':
        room_store = MemoryRoomStore()
    else:
        room_store = SqlRoomStore(flask_app)
    flask_app.extensions['cipherquiz_custom_questions'] = custom_store
    flask_app.extensions['cipherquiz'] = QuizEngine(
        room_store,
        QuestionGenerator(custom_store),
        notifier=SocketIONotifier(),
        default_language=flask_app.config.get('DEFAULT_LANGUAGE', 'tr'),
    )
    flask_app.logger.info(f"[init] room_store={type(room_store).__name__}")

    from cipherquiz.main import main
    flask_app.register_blueprint(main)

    from cipherquiz.api.custom_questions import custom_questions
    flask_app.register_blueprint(custom_questions, url_prefix='/api/custom-questions')

    from cipherquiz.api.archive import archive
    flask_app.register_blueprint(archive, url_prefix='/api/archive')

    from cipherquiz.api.practice import practice
    flask_app.register_blueprint(practice, url_prefix='/api/questions')

    from cipherquiz.api.results import results
    flask_app.register_blueprint(results, url_prefix='/api/results')

    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from cipherquiz.models import AdminUser

    @login_manager.user_loader
    def load_user(user_id):
        return AdminUser() if user_id == AdminUser.id else None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Admin login required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from cipherquiz.models import CustomQuestionRecord
        from cipherquiz.domain import CustomQuestion
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed a few custom questions
            samples = [
                CustomQuestion(topic='Caesar', mode='Encrypt', key='3', text='HELLO WORLD'),
                CustomQuestion(topic='Vigenere', mode='Decrypt', key='LEMON', text='LXFOPV EF RNHR'),
                CustomQuestion(topic='Hill', mode='Encrypt', key='3,5,6,17', text='HELP'),
                CustomQuestion(topic='Transposition', mode='Encrypt', key='ZEBRA', text='WEAREDISCOVERED'),
            ]
            for cq in samples:
                db.session.add(CustomQuestionRecord.from_domain(cq))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
