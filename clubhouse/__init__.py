from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import logging
from logging.handlers import SMTPHandler, RotatingFileHandler
import os

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login = LoginManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_name='development'):
    """Application factory function"""
    app = Flask(__name__)

    # Load configuration
    from config import config
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login.init_app(app)
    limiter.init_app(app)

    # Configure logging
    configure_logging(app)

    # Register middleware
    register_middleware(app)

    # Register blueprints/routes
    register_routes(app)

    # Register CLI commands
    from clubhouse.cli import register_cli
    register_cli(app)

    return app


def configure_logging(app):
    """Configure logging for the application"""
    # Ensure instance/logs directory exists
    logs_dir = os.path.join(app.instance_path, 'logs')
    if not os.path.exists(logs_dir):
        os.makedirs(logs_dir)

    # Always log to file (even in debug mode)
    app_log_path = os.path.join(logs_dir, 'app.log')
    file_handler = RotatingFileHandler(app_log_path, maxBytes=10240, backupCount=10)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'))
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)

    # Set appropriate log level
    if app.debug:
        app.logger.setLevel(logging.DEBUG)
    else:
        app.logger.setLevel(logging.INFO)

    # Email notifications for production errors only
    if not app.debug and not app.testing and app.config.get('MAIL_SERVER'):
        auth = None
        if app.config['MAIL_USERNAME'] or app.config['MAIL_PASSWORD']:
            auth = (app.config['MAIL_USERNAME'], app.config['MAIL_PASSWORD'])
        secure = None
        if app.config['MAIL_USE_TLS']:
            secure = ()
        mail_handler = SMTPHandler(
            mailhost=(app.config['MAIL_SERVER'], app.config['MAIL_PORT']),
            fromaddr='no-reply@' + app.config['MAIL_SERVER'],
            toaddrs=app.config['ADMINS'], subject='Clubhouse Booking Failure',
            credentials=auth, secure=secure)
        mail_handler.setLevel(logging.ERROR)
        app.logger.addHandler(mail_handler)

    app.logger.info('Clubhouse booking service startup')


def register_middleware(app):
    """Register middleware functions"""

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        # The service only speaks JSON, nothing may be embedded or executed
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none';"
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Permissions-Policy'] = 'geolocation=(), microphone=(), camera=()'
        return response

    @login.unauthorized_handler
    def unauthorized():
        return jsonify({
            'success': False,
            'error': 'Authentication required'
        }), 401


def register_routes(app):
    """Register application routes via blueprints"""
    from clubhouse.members import bp as members_bp
    from clubhouse.facilities import bp as facilities_bp
    from clubhouse.slots import bp as slots_bp
    from clubhouse.bookings import bp as bookings_bp

    app.register_blueprint(members_bp, url_prefix='/members')
    app.register_blueprint(facilities_bp, url_prefix='/facilities')
    app.register_blueprint(slots_bp, url_prefix='/slots')
    app.register_blueprint(bookings_bp, url_prefix='/bookings')

    # Register error handlers
    from clubhouse.errors import register_error_handlers
    register_error_handlers(app)

    # Import models to ensure they're loaded
    from clubhouse import models
