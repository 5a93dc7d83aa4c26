from flask import Blueprint

production_bp = Blueprint('production', __name__, url_prefix='/api/production')

from . import routes  # noqa: E402,F401
