from flask import Blueprint
from flask_login import login_required

retirement_bp = Blueprint('retirement', __name__, url_prefix='/retirement')

# Require authentication for all routes in this blueprint
@retirement_bp.before_request
@login_required
def require_login():
    pass

from . import routes  # noqa: E402,F401
