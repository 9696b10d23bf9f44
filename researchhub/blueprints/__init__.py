from .sessions import sessions_bp
from .studies import studies_bp
from .admin import admin_bp
from .payments import payments_bp
from .collaboration import collaboration_bp
from .export import export_bp

ALL_BLUEPRINTS = (sessions_bp, studies_bp, admin_bp, payments_bp, collaboration_bp, export_bp)

__all__ = ['sessions_bp', 'studies_bp', 'admin_bp', 'payments_bp', 'collaboration_bp', 'export_bp', 'ALL_BLUEPRINTS']
