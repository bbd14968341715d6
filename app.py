# app.py
from __future__ import annotations

import logging
import os
from datetime import date

import click
from flask import Flask, jsonify, request, Response
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_cors import CORS
from sqlalchemy import event

from config import Config, CONFIGS
from db import db, migrate
from errors import ApiError, error_response, internal_error
from utils.ids import IdConverter

# Ensure models are imported so Flask-Migrate sees them
from models.user import User
from models.bus import Bus, School
from models.route import Route
from models.student import Student
from models.route_assignment import RouteAssignment
from models.rfid_card import RFIDCard
from models.geofence import Geofence
from models.attendance import Attendance
from models.notification import Notification
from models.payment import Payment
from models.alcohol_test import AlcoholTest
from models.driver_feedback import DriverFeedback
from models.driver_rating import DriverRating
from models.location import Location

# Blueprints
from routes.auth import auth_bp
from routes.users import users_bp
from routes.route_assignments import route_assignments_bp
from routes.bus_routes import bus_routes_bp
from routes.students import students_bp
from routes.buses import buses_bp
from routes.rfid_cards import rfid_cards_bp
from routes.attendance import attendance_bp
from routes.geofences import geofences_bp
from routes.notifications import notifications_bp
from routes.schools import schools_bp
from routes.payments import payments_bp
from routes.alcohol_tests import alcohol_tests_bp
from routes.locations import locations_bp
from routes.driver_feedback import driver_feedback_bp
from routes.driver_ratings import driver_ratings_bp

# CLI
from seed import seed_demo
from services.driver_rating import month_period, previous_month_period, recalculate_all
from utils.clock import utcnow


def create_app(config_object=None) -> Flask:
    app = Flask(__name__)
    app.url_map.converters["id"] = IdConverter

    # Respect reverse proxy headers (scheme / host) for correct URL generation
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[arg-type]

    # Load config + init extensions
    if config_object is None:
        config_object = CONFIGS.get(os.environ.get("APP_ENV", "").lower(), Config)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    origins = [o.strip() for o in str(app.config.get("CORS_ORIGINS", "")).split(",") if o.strip()]
    CORS(app, resources={r"/api/*": {"origins": origins or "*"}}, supports_credentials=True)

    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
        if db.engine.dialect.name == "sqlite":
            @event.listens_for(db.engine, "connect")
            def _sqlite_fk_on(dbapi_conn, _):
                cur = dbapi_conn.cursor()
                try:
                    cur.execute("PRAGMA foreign_keys=ON")
                finally:
                    cur.close()

        # Touch models so Alembic/Flask-Migrate registers them
        _ = (User, Bus, School, Route, Student, RouteAssignment, RFIDCard, Geofence, Attendance, Notification,
             Payment, AlcoholTest, DriverFeedback, DriverRating, Location)

    # Health check
    @app.route("/api/health")
    def health_check():
        return jsonify(status="OK"), 200

    @app.errorhandler(404)
    def handle_404(e):
        return jsonify(success=False, code="NOT_FOUND", message="Not Found", path=request.path), 404

    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        return error_response(e)

    # Global error handler
    @app.errorhandler(Exception)
    def handle_any_error(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify(success=False, code=e.name.upper().replace(" ", "_"), message=e.description), e.code
        db.session.rollback()
        app.logger.exception("[app] unhandled error on %s %s", request.method, request.path)
        return internal_error()

    # --- Debug: list routes ---
    if app.debug and not app.testing:
        @app.route("/__routes")
        def __routes():
            lines = []
            for rule in app.url_map.iter_rules():
                methods = ",".join(sorted(m for m in rule.methods if m not in {"HEAD", "OPTIONS"}))
                lines.append(f"{methods:10s} {rule.rule}")
            lines.sort()
            return Response("\n".join(lines), mimetype="text/plain")

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(route_assignments_bp)
    app.register_blueprint(bus_routes_bp)
    app.register_blueprint(students_bp)
    app.register_blueprint(buses_bp)
    app.register_blueprint(rfid_cards_bp)
    app.register_blueprint(attendance_bp)
    app.register_blueprint(geofences_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(schools_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(alcohol_tests_bp)
    app.register_blueprint(locations_bp)
    app.register_blueprint(driver_feedback_bp)
    app.register_blueprint(driver_ratings_bp)

    # CLI: demo data (idempotent)
    @app.cli.command("seed")
    def seed_cmd():
        seed_demo()
        print("Seed complete.")

    # CLI: monthly driver ratings, meant for a cron job on the 1st
    @app.cli.command("recompute-ratings")
    @click.option("--month", default=None, metavar="YYYY-MM", help="Month to rate (default: previous month).")
    def recompute_ratings_cmd(month):
        if month:
            try:
                year, mon = (int(p) for p in month.split("-"))
                start, end = month_period(date(year, mon, 1))
            except ValueError:
                raise click.BadParameter("expected YYYY-MM", param_hint="--month")
        else:
            start, end = previous_month_period(utcnow().date())
        done = recalculate_all(start, end)
        print(f"Recalculated {done} driver rating(s) for {start.isoformat()}..{end.isoformat()}.")

    return app


# Optional local entrypoint (useful for quick dev runs)
if __name__ == "__main__":
    app = create_app()
    app.run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
        debug=bool(os.environ.get("FLASK_DEBUG", "")),
    )
