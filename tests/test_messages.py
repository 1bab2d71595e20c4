from datetime import datetime, timedelta, timezone

import pytest

from mentorhub.extensions import db
from mentorhub.models import Message, Notification
from mentorhub.models.user import utcnow


@pytest.fixture
def group(make_mentor, make_mentee):
    mentor = make_mentor()
    kids = [make_mentee(f"1AB21CS00{i}", name=f"Kid {i}", mentor_id=mentor.id) for i in (1, 2, 3)]
    make_mentee("1AB21CS009", name="Dropped", mentor_id=mentor.id, is_active=False)
    return mentor, kids


def _targets(app):
    with app.app_context():
        return sorted(n.target_user_id for n in Notification.query
                      if n.target_user_id is not None)


class TestDirectMessages:

    def test_mentee_messages_own_mentor(self, group, login):
        mentor, kids = group
        c = login(kids[0].username, kids[0].password)
        resp = c.post("/api/messages", json={"receiver_id": mentor.user_id, "content": "Hi"})
        assert resp.status_code == 201
        assert resp.get_json()["sender"]["role"] == "mentee"

        thread = login(mentor.username, mentor.password).get(
            f"/api/messages?with={kids[0].user_id}").get_json()
        assert [m["content"] for m in thread] == ["Hi"]

    def test_mentee_cannot_message_other_mentor(self, group, make_mentor, login):
        _, kids = group
        stranger = make_mentor(name="Dr Stranger")
        c = login(kids[0].username, kids[0].password)
        resp = c.post("/api/messages", json={"receiver_id": stranger.user_id, "content": "Hi"})
        assert resp.status_code == 403

    def test_only_receiver_marks_read(self, group, login):
        mentor, kids = group
        sender = login(kids[0].username, kids[0].password)
        mid = sender.post("/api/messages",
                          json={"receiver_id": mentor.user_id, "content": "Hi"}).get_json()["id"]
        assert sender.patch(f"/api/messages/{mid}/read").status_code == 403
        receiver = login(mentor.username, mentor.password)
        assert receiver.patch(f"/api/messages/{mid}/read").get_json()["is_read"] is True

    def test_empty_content_is_400(self, group, login):
        mentor, kids = group
        c = login(kids[0].username, kids[0].password)
        resp = c.post("/api/messages", json={"receiver_id": mentor.user_id, "content": "  "})
        assert resp.status_code == 400


class TestGroupChat:

    def test_mentee_post_notifies_mentor_and_other_mentees(self, app, group, login):
        mentor, kids = group
        c = login(kids[0].username, kids[0].password)
        assert c.post("/api/group-messages", json={"content": "Hello all"}).status_code == 201
        assert _targets(app) == sorted([mentor.user_id, kids[1].user_id, kids[2].user_id])

    def test_mentor_post_notifies_active_mentees(self, app, group, login):
        mentor, kids = group
        c = login(mentor.username, mentor.password)
        c.post("/api/group-messages", json={"content": "Meeting at 4"})
        assert _targets(app) == sorted(k.user_id for k in kids)

    def test_members_and_history(self, group, login):
        mentor, kids = group
        c = login(kids[1].username, kids[1].password)
        c.post("/api/group-messages", json={"content": "First"})

        members = c.get("/api/group-members").get_json()
        assert members[0] == {"id": mentor.user_id, "name": "Ms Alakananda K",
                              "role": "mentor", "usn": None}
        assert [m["usn"] for m in members[1:]] == ["1AB21CS001", "1AB21CS002", "1AB21CS003"]

        history = login(mentor.username, mentor.password).get("/api/group-messages").get_json()
        assert [m["content"] for m in history] == ["First"]

    def test_admin_reads_any_group(self, group, admin_client, login):
        mentor, kids = group
        login(kids[0].username, kids[0].password).post("/api/group-messages",
                                                        json={"content": "x"})
        resp = admin_client.get(f"/api/group-messages?mentor_id={mentor.id}")
        assert len(resp.get_json()) == 1
        chats = admin_client.get("/api/admin/group-chats").get_json()
        assert chats[0]["message_count"] == 1
        assert chats[0]["member_count"] == 4

    def test_unassigned_mentee_has_no_group(self, make_mentee, login):
        kid = make_mentee("1AB21CS050")
        c = login(kid.username, kid.password)
        assert c.get("/api/group-messages").status_code == 404

    def test_timestamps_are_naive_utc(self):
        now = utcnow()
        assert now.tzinfo is None
        assert abs(now - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)

    def test_cleanup_removes_old_messages(self, app, group, admin_client):
        mentor, kids = group
        with app.app_context():
            db.session.add_all([
                Message(sender_id=mentor.user_id, mentor_id=mentor.id, content="old",
                        is_group_message=True, created_at=utcnow() - timedelta(days=40)),
                Message(sender_id=mentor.user_id, mentor_id=mentor.id, content="new",
                        is_group_message=True),
            ])
            db.session.commit()
        resp = admin_client.post("/api/group-messages/cleanup")
        assert resp.get_json() == {"deleted": 1, "days": 30}
        with app.app_context():
            assert [m.content for m in Message.query] == ["new"]


class TestAdminMentorChannel:

    def test_round_trip_and_notifications(self, app, admin_client, make_mentor, login):
        mentor = make_mentor()
        c = login(mentor.username, mentor.password)
        assert c.post("/api/admin-mentor-messages",
                      json={"content": "Need a room"}).status_code == 201

        msgs = admin_client.get("/api/admin-mentor-messages").get_json()
        assert [m["content"] for m in msgs] == ["Need a room"]
        with app.app_context():
            note = Notification.query.one()
        assert note.target_roles == ["admin"]

    def test_mentees_are_kept_out(self, make_mentee, login):
        kid = make_mentee("1AB21CS060")
        c = login(kid.username, kid.password)
        assert c.get("/api/admin-mentor-messages").status_code == 403
