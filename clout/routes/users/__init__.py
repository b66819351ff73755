from flask import Blueprint

bp = Blueprint("users", __name__)

from clout.routes.users import routes  # noqa: F401, E402
