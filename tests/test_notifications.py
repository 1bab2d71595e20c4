from types import SimpleNamespace

from mentorhub.models import Notification


class TestVisibility:

    def _user(self, uid, role):
        return SimpleNamespace(id=uid, role=role)

    def test_role_targeting(self):
        n = Notification(message="m", target_roles=["mentor"])
        assert n.visible_to(self._user(1, "mentor"))
        assert not n.visible_to(self._user(2, "mentee"))

    def test_all_reaches_everyone(self):
        n = Notification(message="m", target_roles=["all"])
        assert all(n.visible_to(self._user(i, r)) for i, r in enumerate(("admin", "mentor",
                                                                          "mentee")))

    def test_targeted_user_only(self):
        n = Notification(message="m", target_roles=["mentee"], target_user_id=7)
        assert n.visible_to(self._user(7, "mentee"))
        assert not n.visible_to(self._user(8, "mentee"))


class TestNotificationApi:

    def test_admin_broadcast_to_role(self, admin_client, make_mentor, make_mentee, login):
        mentor = make_mentor()
        kid = make_mentee("1AB21CS001", mentor_id=mentor.id)
        resp = admin_client.post("/api/notifications",
                                 json={"message": "Exams next week", "target_roles": ["mentee"],
                                       "is_urgent": True})
        assert resp.status_code == 201

        mentee_notes = login(kid.username, kid.password).get("/api/notifications").get_json()
        mentor_notes = login(mentor.username, mentor.password).get("/api/notifications")
        assert [n["message"] for n in mentee_notes] == ["Exams next week"]
        assert mentee_notes[0]["is_urgent"] is True
        assert mentor_notes.get_json() == []

    def test_rejects_unknown_role(self, admin_client):
        resp = admin_client.post("/api/notifications",
                                 json={"message": "x", "target_roles": ["parents"]})
        assert resp.status_code == 400

    def test_only_admin_broadcasts(self, make_mentor, login):
        mentor = make_mentor()
        c = login(mentor.username, mentor.password)
        resp = c.post("/api/notifications", json={"message": "x", "target_roles": ["all"]})
        assert resp.status_code == 403

    def test_mark_read_and_delete(self, admin_client, make_mentor, login):
        mentor = make_mentor()
        nid = admin_client.post("/api/notifications",
                                json={"message": "hello", "target_roles": ["mentor"]}
                                ).get_json()["id"]
        c = login(mentor.username, mentor.password)
        assert c.post(f"/api/notifications/{nid}/read").get_json()["is_read"] is True
        assert c.delete(f"/api/notifications/{nid}").status_code == 200
        assert c.get("/api/notifications").get_json() == []

    def test_invisible_notification_is_404(self, admin_client, make_mentee, login):
        kid = make_mentee("1AB21CS002")
        nid = admin_client.post("/api/notifications",
                                json={"message": "staff only", "target_roles": ["admin"]}
                                ).get_json()["id"]
        c = login(kid.username, kid.password)
        assert c.post(f"/api/notifications/{nid}/read").status_code == 404
