from flask import Blueprint

bp = Blueprint("events", __name__)

from clout.routes.events import routes  # noqa: F401, E402
