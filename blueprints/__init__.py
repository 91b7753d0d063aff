"""
Blueprint registration for EduSmart Tracker.

All blueprints are registered without URL prefixes; each declares its full /api paths.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.core import bp as core_bp
    from blueprints.ai import bp as ai_bp
    from blueprints.export import bp as export_bp

    app.register_blueprint(core_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(export_bp)
