import logging

import click
from flask import Flask, jsonify, render_template, request
from flask.cli import with_appcontext
from pymysql import connect
from pymysql.err import MySQLError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import Config
from .constants import (
    DEFAULT_NEXT_ACTION, INTERVIEW_RATINGS, INTERVIEW_ROUNDS, JOB_CATEGORIES, JOB_STATES, NEXT_ACTIONS,
    NO_SYNC, OFFER_COLORS, OFFER_STATUSES, PIPELINE_STAGES, REVIEW_DIMENSIONS, ROLE_ADMIN, TAG_COLORS,
    stage_color,
)
from .extensions import cors, db, jwt, migrate
from .models import *
from .databases import RecordStore, now_iso, rid
from .services.feishu import FeishuClient
from .services.notifier import Notifier
from .services.storage import ResumeStorage
from .routes.auth_routes import auth_bp
from .routes.dashboard_routes import dashboard_bp
from .routes.job_routes import jobs_bp
from .routes.candidate_routes import candidates_bp
from .routes.api_routes import api_bp
from .routes.schedule_routes import schedule_bp
from .routes.offer_routes import offers_bp
from .routes.settings_routes import settings_bp
from recruit.database.seed.seed_all import seed_all

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # Allow CORS for scripted API clients
    cors.init_app(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
                  supports_credentials=True)

    if app.config["REMOTE_STORE_ENABLED"] and app.config["SQLALCHEMY_DATABASE_URI"].startswith("mysql"):
        create_database_if_not_exists(app.config)

    # extensions initialization
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    if app.config["REMOTE_STORE_ENABLED"]:
        with app.app_context():
            try:
                db.create_all()
            except SQLAlchemyError as e:
                logger.warning("Could not create remote tables: %s", e)

    app.extensions["record_store"] = RecordStore.from_config(app.config)
    app.extensions["feishu"] = FeishuClient.from_config(app.config)
    app.extensions["notifier"] = Notifier(run_async=app.config.get("NOTIFY_ASYNC", True))
    app.extensions["resume_storage"] = ResumeStorage.from_config(app.config)

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(candidates_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(schedule_bp)
    app.register_blueprint(offers_bp)
    app.register_blueprint(settings_bp)

    register_error_handlers(app)
    register_template_context(app)

    app.cli.add_command(seed_all)
    app.cli.add_command(remote_check)

    return app


def register_template_context(app):
    @app.context_processor
    def inject_vocabularies():
        return {
            "STAGES": PIPELINE_STAGES,
            "RATINGS": INTERVIEW_RATINGS,
            "ROUNDS": INTERVIEW_ROUNDS,
            "DIMENSIONS": REVIEW_DIMENSIONS,
            "NEXT_ACTIONS": NEXT_ACTIONS,
            "DEFAULT_NEXT_ACTION": DEFAULT_NEXT_ACTION,
            "JOB_CATEGORIES": JOB_CATEGORIES,
            "JOB_STATES": JOB_STATES,
            "OFFER_STATUSES": OFFER_STATUSES,
            "OFFER_COLORS": OFFER_COLORS,
            "TAG_COLORS": TAG_COLORS,
            "NO_SYNC": NO_SYNC,
            "ROLE_ADMIN": ROLE_ADMIN,
            "stage_color": stage_color,
        }


def register_error_handlers(app):
    def wants_json():
        return request.path.startswith("/api/")

    @app.errorhandler(403)
    def forbidden(e):
        if wants_json():
            return jsonify({"error": "forbidden"}), 403
        return render_template("error.html", title="Forbidden",
                               message="This page is for administrators only."), 403

    @app.errorhandler(404)
    def not_found(e):
        if wants_json():
            return jsonify({"error": "not_found"}), 404
        return render_template("error.html", title="Not found",
                               message="The page or record does not exist."), 404

    @app.errorhandler(413)
    def too_large(e):
        return "file_too_large", 413

    @app.errorhandler(Exception)
    def internal_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return render_template("error.html", title="Server error",
                               message="Something went wrong. Please try again."), 500


def create_database_if_not_exists(config):
    host_parts = (config["DB_HOST"] or "localhost").split(":")
    host = host_parts[0]
    port = int(host_parts[1]) if len(host_parts) > 1 else 3306

    logger.info("Ensuring database '%s' exists on %s:%s as '%s'", config["DB_NAME"], host, port, config["DB_USER"])
    try:
        conn = connect(host=host, port=port, user=config["DB_USER"], password=config["DB_PASSWORD"] or "")
    except MySQLError as e:
        logger.warning("Could not reach the database server: %s", e)
        return
    try:
        with conn.cursor() as cursor:
            cursor.execute(f"CREATE DATABASE IF NOT EXISTS `{config['DB_NAME']}`")
        conn.commit()
    finally:
        conn.close()


@click.command("remote-check")
@with_appcontext
def remote_check():
    """Write and read back a probe row against the remote store."""
    probe_id = rid("job")
    click.echo(f"Checking remote store with probe {probe_id}...")
    try:
        db.session.merge(Job(id=probe_id, title="remote-check", state="closed", created_at=now_iso()))
        db.session.commit()
        found = db.session.get(Job, probe_id)
        if found:
            db.session.delete(found)
            db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise click.ClickException(f"Remote store check failed: {e}")
    click.echo("Remote store OK" if found else "Probe row was not read back")
