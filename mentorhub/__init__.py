import logging

from flask import Flask, jsonify, redirect, request, url_for
from flask_login import current_user
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .cache import init_cache
from .extensions import db, login_manager, migrate
from .logging_setup import configure_logging

logger = logging.getLogger(__name__)


def _wants_json():
    return request.path.startswith("/api")


def register_error_handlers(app):
    from .services.accounts import DuplicateError, ValidationError
    from .services.errors import log_exception
    from .services.importer import ImportFileError

    @app.errorhandler(HTTPException)
    def http_error(e):
        if not _wants_json():
            return e
        return jsonify(message=e.description), e.code

    @app.errorhandler(ValidationError)
    @app.errorhandler(ImportFileError)
    def bad_input(e):
        db.session.rollback()
        return jsonify(message=str(e)), 400

    @app.errorhandler(DuplicateError)
    def duplicate(e):
        db.session.rollback()
        return jsonify(message=str(e)), 409

    @app.errorhandler(IntegrityError)
    def integrity_error(e):
        db.session.rollback()
        logger.warning("Integrity error on %s: %s", request.endpoint, e.orig)
        return jsonify(message="Conflicts with an existing record"), 409

    @app.errorhandler(Exception)
    def unhandled_error(e):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        user_id = current_user.id if current_user.is_authenticated else None
        log_exception(user_id, request.endpoint or request.path, e)
        return jsonify(message="Internal server error"), 500


def register_blueprints(app):
    from .blueprints.admin import bp as admin_bp
    from .blueprints.auth import bp as auth_bp
    from .blueprints.meetings import bp as meetings_bp
    from .blueprints.mentee import bp as mentee_bp
    from .blueprints.mentor import bp as mentor_bp
    from .blueprints.mentors import bp as mentors_bp
    from .blueprints.messages import bp as messages_bp
    from .blueprints.notifications import bp as notifications_bp
    from .blueprints.pages import bp as pages_bp
    from .blueprints.subjects import bp as subjects_bp
    from .blueprints.users import bp as users_bp
    app.register_blueprint(pages_bp)
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(users_bp, url_prefix="/api/user")
    app.register_blueprint(notifications_bp, url_prefix="/api/notifications")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(mentors_bp, url_prefix="/api/mentors")
    app.register_blueprint(mentor_bp, url_prefix="/api/mentor")
    app.register_blueprint(mentee_bp, url_prefix="/api/mentee")
    app.register_blueprint(subjects_bp, url_prefix="/api/subjects")
    app.register_blueprint(messages_bp, url_prefix="/api")
    app.register_blueprint(meetings_bp, url_prefix="/api/meetings")


def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    init_cache(app)

    from . import models
    from .models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        if _wants_json():
            return jsonify(message="Authentication required"), 401
        return redirect(url_for("pages.auth_page"))

    register_blueprints(app)
    register_error_handlers(app)

    from .commands import register_commands
    register_commands(app)

    logger.info("MentorHub app created (%s)", config_object)
    return app
