"""Shared pytest fixtures.

Every test gets a fresh app on ``config.TestConfig`` with an in-memory SQLite
database. The factories commit their rows in a short-lived app context and
return plain ``SimpleNamespace`` handles (ids, usernames, passwords), so the
test client never shares a session or ``g`` with test code.

Fixture overview
----------------
app          - application with tables created
client       - anonymous test client
login        - ``login(username, password)`` -> logged-in test client
make_admin / make_mentor / make_mentee / make_subject / make_record
             - row factories
admin_client - client logged in as a fresh admin
fetch        - ``fetch(Model, id)`` -> column snapshot of a row
"""
from types import SimpleNamespace

import pytest

from mentorhub import create_app
from mentorhub.extensions import db
from mentorhub.models import AcademicRecord, Role, Subject, User
from mentorhub.services.accounts import create_mentee, create_mentor


@pytest.fixture
def app():
    app = create_app("config.TestConfig")
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(app):
    def _login(username, password):
        c = app.test_client()
        resp = c.post("/api/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return c
    return _login


# ── Row factories ────────────────────────────────────────────────────────────


@pytest.fixture
def make_admin(app):
    def _make(username="admin", password="adminpass"):
        with app.app_context():
            u = User(username=username, role=Role.ADMIN, name="Administrator")
            u.set_password(password)
            db.session.add(u)
            db.session.commit()
            return SimpleNamespace(id=u.id, username=username, password=password)
    return _make


@pytest.fixture
def make_mentor(app):
    def _make(name="Ms Alakananda K", department="CSE", password="mentorpass", is_active=True):
        with app.app_context():
            mentor, _ = create_mentor(name=name, department=department, password=password)
            mentor.is_active = is_active
            db.session.commit()
            return SimpleNamespace(id=mentor.id, user_id=mentor.user_id,
                                   username=mentor.user.username, password=password)
    return _make


@pytest.fixture
def make_mentee(app):
    def _make(usn, name="Student", semester=1, section="A", mentor_id=None, is_active=True):
        with app.app_context():
            m = create_mentee(name=name, usn=usn, semester=semester, section=section,
                              mentor_id=mentor_id)
            m.is_active = is_active
            db.session.commit()
            return SimpleNamespace(id=m.id, user_id=m.user_id, usn=m.usn,
                                   username=m.user.username, password=m.user.username)
    return _make


@pytest.fixture
def make_subject(app):
    def _make(code="CS101", name="Programming Fundamentals", semester=1):
        with app.app_context():
            s = Subject(code=code, name=name, semester=semester)
            db.session.add(s)
            db.session.commit()
            return SimpleNamespace(id=s.id, code=code, name=name, semester=semester)
    return _make


@pytest.fixture
def make_record(app):
    def _make(mentee_id, subject_id, attendance=None, semester=1, academic_year="2024-2025",
              **marks):
        with app.app_context():
            r = AcademicRecord(mentee_id=mentee_id, subject_id=subject_id, attendance=attendance,
                               semester=semester, academic_year=academic_year, **marks)
            r.recompute()
            db.session.add(r)
            db.session.commit()
            return SimpleNamespace(id=r.id)
    return _make


@pytest.fixture
def admin_client(make_admin, login):
    admin = make_admin()
    return login(admin.username, admin.password)


@pytest.fixture
def fetch(app):
    """``fetch(Model, id)`` -> detached snapshot of column values, or None."""
    def _fetch(model, pk):
        with app.app_context():
            obj = db.session.get(model, pk)
            if obj is None:
                return None
            cols = {c.key: getattr(obj, c.key) for c in model.__table__.columns}
            return SimpleNamespace(**cols)
    return _fetch

