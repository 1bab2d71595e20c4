from flask import Blueprint

bp = Blueprint("mentee", __name__)

from . import routes  # noqa: E402,F401
