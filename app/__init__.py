import logging

import click
from flask import Flask, jsonify
from flask_socketio import SocketIO
from flask_wtf.csrf import CSRFProtect

from config import Config

socketio = SocketIO()
csrf = CSRFProtect()


def _configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    app.logger.setLevel(level)


def _register_error_handlers(app):
    from app.errors import FirebaseServiceError, HttpsError

    @app.errorhandler(FirebaseServiceError)
    def handle_service_error(e):
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(HttpsError)
    def handle_https_error(e):
        return jsonify(e.to_dict()), e.http_status


def _register_cli(app):
    from app.services import sync

    @app.cli.group('sync')
    def sync_cli():
        """users/students consistency tools."""

    @sync_cli.command('check')
    def check_command():
        """Report roll numbers present in only one collection."""
        report = sync.check_student_sync()
        click.echo(f"Student users: {report['usersCount']}")
        click.echo(f"Student records: {report['studentsCount']}")
        if report['isSync']:
            click.echo('Collections are in sync.')
            return
        click.echo(f"Missing from students: {', '.join(report['missingFromStudents']) or '-'}")
        click.echo(f"Missing from users: {', '.join(report['missingFromUsers']) or '-'}")
        raise SystemExit(1)

    @sync_cli.command('orphans')
    def orphans_command():
        """List student records with no matching student user."""
        orphans = sync.find_orphaned_students()
        for student in orphans:
            click.echo(f"{student['id']}\t{student.get('firstName', '')} {student.get('lastName', '')}")
        click.echo(f'{len(orphans)} orphaned student record(s).')

    @sync_cli.command('cleanup')
    @click.confirmation_option(prompt='Delete every orphaned student record?')
    def cleanup_command():
        """Delete orphaned student records."""
        deleted, failed = sync.cleanup_orphaned_students()
        click.echo(f'Deleted {len(deleted)}, failed {len(failed)}.')
        if failed:
            raise SystemExit(1)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    _configure_logging(app)
    csrf.init_app(app)

    # Initialize Firebase
    from app.firebase_init import init_firebase
    init_firebase(app.config)

    # CORS origins
    allowed_origins = []
    cors_origins = app.config.get('CORS_ALLOWED_ORIGINS', '')
    if cors_origins:
        for origin in cors_origins.split(','):
            origin = origin.strip()
            if origin:
                allowed_origins.append(origin)

    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins if allowed_origins else None,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'eventlet')
    )

    # Register current_user context processor and before_request
    from app.decorators import load_current_user, get_current_user

    @app.before_request
    def before_request():
        load_current_user()

    @app.context_processor
    def inject_globals():
        return {
            'current_user': get_current_user(),
            'school_name': app.config.get('SCHOOL_NAME', 'Maplekids'),
        }

    from app.utils import format_date
    app.jinja_env.filters['format_date'] = format_date

    # Register blueprints
    from app.routes import (
        auth, main, users, students, attendance, holidays, events,
        reports, financial, functions, whatsapp, announcements
    )
    app.register_blueprint(auth.bp)
    app.register_blueprint(main.bp)
    app.register_blueprint(users.bp)
    app.register_blueprint(students.bp)
    app.register_blueprint(attendance.bp)
    app.register_blueprint(holidays.bp)
    app.register_blueprint(events.bp)
    app.register_blueprint(reports.bp)
    app.register_blueprint(financial.bp)
    app.register_blueprint(functions.bp)
    app.register_blueprint(whatsapp.bp)
    app.register_blueprint(announcements.bp)

    # Token-authenticated / provider-called endpoints
    csrf.exempt(functions.bp)
    csrf.exempt(whatsapp.bp)

    _register_error_handlers(app)
    _register_cli(app)

    from app import events as socket_events  # noqa: F401

    app.logger.info('%s app created', app.config.get('SCHOOL_NAME'))
    return app
