from mentorhub.extensions import db
from mentorhub.models import AcademicRecord, ErrorLog, Mentee, Notification, SelfAssessment, User


class TestStudents:

    def test_create_student_auto_assigns_and_can_log_in(self, admin_client, make_mentor,
                                                        client):
        mentor = make_mentor()
        resp = admin_client.post("/api/admin/students", json={
            "usn": "1ab21cs010", "name": "Asha Rao", "semester": 3, "section": "B",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["usn"] == "1AB21CS010"
        assert body["username"] == "1ab21cs010"
        assert body["mentor_id"] == mentor.id

        login = client.post("/api/login", json={"username": "1ab21cs010",
                                                "password": "1ab21cs010"})
        assert login.status_code == 200

    def test_duplicate_usn_is_409(self, admin_client, make_mentee):
        make_mentee("1AB21CS011")
        resp = admin_client.post("/api/admin/students", json={
            "usn": "1ab21cs011", "name": "Dup", "semester": 1, "section": "A",
        })
        assert resp.status_code == 409

    def test_invalid_semester_is_400(self, admin_client):
        resp = admin_client.post("/api/admin/students", json={
            "usn": "1AB21CS012", "name": "X", "semester": 9, "section": "A",
        })
        assert resp.status_code == 400
        assert "between 1 and 8" in resp.get_json()["message"]

    def test_list_search_and_paging(self, admin_client, make_mentee):
        for i in range(1, 4):
            make_mentee(f"1AB21CS00{i}", name=f"Student {i}")

        body = admin_client.get("/api/admin/students?q=cs002").get_json()
        assert body["total"] == 1
        assert body["items"][0]["usn"] == "1AB21CS002"

        body = admin_client.get("/api/admin/students?per_page=2&sort=usn&order=desc").get_json()
        assert body["pages"] == 2
        assert [s["usn"] for s in body["items"]] == ["1AB21CS003", "1AB21CS002"]

    def test_update_student_notifies_mentee(self, admin_client, make_mentee, login):
        kid = make_mentee("1AB21CS020", name="Old Name")
        resp = admin_client.put(f"/api/admin/students/{kid.id}",
                                json={"name": "New Name", "semester": 4})
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "New Name"
        assert resp.get_json()["semester"] == 4

        notes = login(kid.username, kid.password).get("/api/notifications").get_json()
        assert notes[0]["message"] == "Your profile was updated by an administrator"

    def test_delete_student_removes_everything(self, app, admin_client, make_mentee,
                                               make_subject, make_record):
        kid = make_mentee("1AB21CS030")
        make_record(kid.id, make_subject().id, attendance=90)
        with app.app_context():
            db.session.add(SelfAssessment(
                mentee_id=kid.id, academic_goals="g", career_aspirations="c", strengths="s",
                areas_to_improve="a", study_hours_per_day=2, stress_level=3,
                academic_confidence="high", challenges="x", support_needed="y"))
            db.session.add(Notification(message="hi", target_user_id=kid.user_id))
            db.session.commit()

        assert admin_client.delete(f"/api/admin/students/{kid.id}").status_code == 200
        with app.app_context():
            assert Mentee.query.count() == 0
            assert User.query.filter_by(id=kid.user_id).count() == 0
            assert AcademicRecord.query.count() == 0
            assert SelfAssessment.query.count() == 0
            assert Notification.query.filter_by(target_user_id=kid.user_id).count() == 0

    def test_missing_student_is_404(self, admin_client):
        resp = admin_client.delete("/api/admin/students/999")
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Student not found"


class TestMentors:

    def test_create_mentor_generates_username(self, admin_client, client):
        resp = admin_client.post("/api/admin/mentors", json={
            "name": "Ms Alakananda K", "department": "CSE",
        })
        assert resp.status_code == 201
        assert resp.get_json()["username"] == "ms.alakananda.k"

        login = client.post("/api/login", json={"username": "ms.alakananda.k",
                                                "password": "1234567890"})
        assert login.status_code == 200

    def test_duplicate_mentor_is_409(self, admin_client, make_mentor):
        make_mentor(name="Ms Alakananda K")
        resp = admin_client.post("/api/admin/mentors", json={
            "name": "Ms Alakananda K", "department": "CSE",
        })
        assert resp.status_code == 409

    def test_mentor_named_like_admin_gets_own_account(self, app, admin_client):
        resp = admin_client.post("/api/admin/mentors", json={"name": "Admin", "department": "CSE"})
        assert resp.status_code == 201
        assert resp.get_json()["username"] == "admin1"
        with app.app_context():
            assert User.query.filter_by(username="admin").one().role == "admin"
        assert admin_client.get("/api/admin/dashboard/stats").status_code == 200

    def test_mentor_named_like_usn_leaves_mentee_alone(self, app, admin_client, make_mentee,
                                                       login):
        kid = make_mentee("1AB21CS001")
        resp = admin_client.post("/api/admin/mentors",
                                 json={"name": "1AB21CS001", "department": "CSE"})
        assert resp.status_code == 201
        assert resp.get_json()["username"] == "1ab21cs0011"
        with app.app_context():
            user = db.session.get(User, kid.user_id)
            assert user.role == "mentee"
            assert user.mentor is None
        assert login(kid.username, kid.password).get("/api/mentee/profile").status_code == 200

    def test_create_mentor_requires_department(self, admin_client):
        resp = admin_client.post("/api/admin/mentors", json={"name": "Dr X"})
        assert resp.status_code == 400

    def test_update_mentor_fields(self, admin_client, make_mentor):
        mentor = make_mentor()
        resp = admin_client.put(f"/api/admin/mentors/{mentor.id}",
                                json={"specialization": "Networks", "name": "Ms A K"})
        body = resp.get_json()["mentor"]
        assert body["specialization"] == "Networks"
        assert body["name"] == "Ms A K"

    def test_mentor_listing_counts_active_mentees(self, admin_client, make_mentor, make_mentee):
        mentor = make_mentor()
        make_mentee("1AB21CS040", mentor_id=mentor.id)
        make_mentee("1AB21CS041", mentor_id=mentor.id, is_active=False)
        mentors = admin_client.get("/api/mentors").get_json()
        assert mentors[0]["mentee_count"] == 1


class TestDashboard:

    def test_stats_and_at_risk(self, admin_client, make_mentor, make_mentee, make_subject,
                               make_record):
        mentor = make_mentor()
        subject = make_subject()
        low = make_mentee("1AB21CS050", mentor_id=mentor.id)
        ok = make_mentee("1AB21CS051", mentor_id=mentor.id)
        make_mentee("1AB21CS052", mentor_id=mentor.id)
        make_record(low.id, subject.id, attendance=84.9)
        make_record(ok.id, subject.id, attendance=85)

        stats = admin_client.get("/api/admin/dashboard/stats").get_json()
        assert stats == {"total_students": 3, "total_mentors": 1,
                         "avg_mentees_per_mentor": 3.0, "at_risk_students": 1}

        at_risk = admin_client.get("/api/admin/at-risk-students").get_json()
        assert [m["usn"] for m in at_risk] == ["1AB21CS050"]
        assert at_risk[0]["at_risk"] is True

    def test_activities_are_latest_ten(self, app, admin_client):
        with app.app_context():
            for i in range(12):
                db.session.add(Notification(message=f"n{i}", target_roles=["admin"],
                                            is_urgent=i == 11))
            db.session.commit()
        items = admin_client.get("/api/admin/activities").get_json()
        assert len(items) == 10
        assert items[0]["message"] == "n11"
        assert items[0]["type"] == "warning"
        assert items[1]["type"] == "info"


class TestSubjects:

    def test_crud_with_audit(self, app, admin_client):
        resp = admin_client.post("/api/admin/subjects",
                                 json={"code": "cs301", "name": "Data Structures", "semester": 3})
        assert resp.status_code == 201
        sid = resp.get_json()["id"]
        assert resp.get_json()["code"] == "CS301"

        resp = admin_client.put(f"/api/admin/subjects/{sid}", json={"name": "DSA"})
        assert resp.get_json()["name"] == "DSA"
        assert admin_client.get("/api/subjects?semester=3").get_json()[0]["name"] == "DSA"

        assert admin_client.delete(f"/api/admin/subjects/{sid}").status_code == 200
        with app.app_context():
            actions = sorted(e.action for e in ErrorLog.query)
        assert actions == ["create_subject", "delete_subject", "update_subject"]

    def test_duplicate_code_is_409(self, admin_client, make_subject):
        make_subject(code="CS101")
        resp = admin_client.post("/api/admin/subjects",
                                 json={"code": "CS101", "name": "Again", "semester": 1})
        assert resp.status_code == 409

    def test_subject_in_use_cannot_be_deleted(self, admin_client, make_subject, make_mentee,
                                              make_record):
        subject = make_subject()
        make_record(make_mentee("1AB21CS060").id, subject.id, attendance=90)
        resp = admin_client.delete(f"/api/admin/subjects/{subject.id}")
        assert resp.status_code == 409
