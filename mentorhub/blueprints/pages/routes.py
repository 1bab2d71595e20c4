from flask import redirect, render_template, url_for
from flask_login import current_user

from ...models import Role
from ..auth.routes import role_home
from . import bp


def _serve(role):
    if not current_user.is_authenticated:
        return redirect(url_for("pages.auth_page"))
    if current_user.role != role:
        return redirect(role_home(current_user))
    return render_template("index.html", area=role, user=current_user)


@bp.get("/")
def index():
    return redirect(role_home(current_user))


@bp.get("/auth", endpoint="auth_page")
def auth_page():
    if current_user.is_authenticated:
        return redirect(role_home(current_user))
    return render_template("index.html", area="auth", user=None)


@bp.get("/admin")
@bp.get("/admin/<path:sub>")
def admin_page(sub=None):
    return _serve(Role.ADMIN)


@bp.get("/mentor")
@bp.get("/mentor/<path:sub>")
def mentor_page(sub=None):
    return _serve(Role.MENTOR)


@bp.get("/mentee")
@bp.get("/mentee/<path:sub>")
def mentee_page(sub=None):
    return _serve(Role.MENTEE)
