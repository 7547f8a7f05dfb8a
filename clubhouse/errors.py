from flask import jsonify, current_app
from clubhouse import db
from clubhouse.exceptions import BookingError


def register_error_handlers(app):
    """Register error handlers with the Flask application"""

    @app.errorhandler(BookingError)
    def booking_error(error):
        db.session.rollback()
        current_app.logger.info(f"{error.error_type}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({'success': False, 'error': 'Forbidden'}), 403

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(429)
    def rate_limited_error(error):
        return jsonify({'success': False, 'error': 'Too many requests'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'success': False, 'error': 'Internal server error'}), 500
