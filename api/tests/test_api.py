"""End-to-end route tests against the in-memory services."""

from fastapi.testclient import TestClient

from src.progress.models import ProgressRecord
from src.utils import utc_now


def complete_intro(store, principal) -> None:
    for chapter_id in (1, 2, 3, 4):
        store.records[(principal.id, chapter_id)] = ProgressRecord(
            principal.id, chapter_id, 1, completed=True, score=100, completed_at=utc_now()
        )


def correct_answers(curriculum) -> dict[str, int]:
    return {str(q.question_id): q.correct_option for q in curriculum.questions[1]}


class TestAuthentication:
    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/v1/progress/me")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] is True
        assert body["status_code"] == 401

    def test_garbage_token(self, client: TestClient) -> None:
        response = client.get(
            "/v1/progress/me", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    def test_student_cannot_reach_admin_routes(
        self, client: TestClient, auth_headers, student
    ) -> None:
        for path in ("/v1/admin/reviews/submissions", "/v1/admin/students"):
            assert client.get(path, headers=auth_headers(student)).status_code == 403


class TestGating:
    def test_new_student_sees_only_first_module_open(
        self, client: TestClient, auth_headers, student
    ) -> None:
        response = client.get("/v1/progress/me", headers=auth_headers(student))

        assert response.status_code == 200
        modules = response.json()["modules"]
        assert [m["locked"] for m in modules] == [False, True, True, True, True]

    def test_locked_module_activity_is_forbidden(
        self, client: TestClient, auth_headers, student
    ) -> None:
        response = client.put(
            "/v1/activities/chapters/11",
            json={"module_id": 2, "step": 0, "responses": {}},
            headers=auth_headers(student),
        )

        assert response.status_code == 403

    def test_claiming_an_open_module_does_not_bypass_the_gate(
        self, client: TestClient, auth_headers, student, store
    ) -> None:
        response = client.put(
            "/v1/activities/chapters/11",
            json={"module_id": 1, "step": 0, "responses": {"quiz": {"q1": "x"}}},
            headers=auth_headers(student),
        )

        assert response.status_code == 422
        assert store.records == {}

    def test_staff_are_not_gated(self, client: TestClient, auth_headers, admin) -> None:
        response = client.put(
            "/v1/activities/chapters/11",
            json={"module_id": 2, "step": 0, "responses": {}},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200

    def test_passing_quiz_unlocks_next_chapter(
        self, client: TestClient, auth_headers, student, curriculum
    ) -> None:
        response = client.post(
            "/v1/quizzes/chapters/1/attempts",
            json={"answers": correct_answers(curriculum)},
            headers=auth_headers(student),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["score"] == 100
        assert body["passed"] is True
        assert body["unlocked_chapter_id"] == 2

    def test_incomplete_quiz_is_rejected(
        self, client: TestClient, auth_headers, student, store
    ) -> None:
        response = client.post(
            "/v1/quizzes/chapters/1/attempts",
            json={"answers": {}},
            headers=auth_headers(student),
        )

        assert response.status_code == 422
        assert store.records == {}


class TestActivityFlow:
    def test_save_restore_submit_grade(
        self, client: TestClient, auth_headers, student, admin, store
    ) -> None:
        complete_intro(store, student)
        draft = {"quiz": {"q1": "Use delimiters"}, "notes": {"open": True}}

        saved = client.put(
            "/v1/activities/chapters/11",
            json={"module_id": 2, "step": 2, "responses": draft},
            headers=auth_headers(student),
        )
        assert saved.status_code == 200
        assert saved.json()["saved"] is True

        restored = client.get("/v1/activities/chapters/11", headers=auth_headers(student))
        assert restored.json() == {"step": 2, "responses": draft}

        submitted = client.post(
            "/v1/activities/modules/prompt-engineering/submit",
            headers=auth_headers(student),
        )
        assert submitted.status_code == 200
        assert submitted.json()["status"] == "submitted"

        locked = client.put(
            "/v1/activities/chapters/11",
            json={"module_id": 2, "step": 2, "responses": draft},
            headers=auth_headers(student),
        )
        assert locked.status_code == 409

        graded = client.post(
            f"/v1/admin/reviews/students/{student.id}/modules/2/grade",
            json={"status": "passed", "score": 85, "feedback": "Good"},
            headers=auth_headers(admin),
        )
        assert graded.status_code == 200
        assert graded.json()["score"] == 85

        progress = client.get("/v1/progress/me", headers=auth_headers(student))
        states = {m["module_id"]: m for m in progress.json()["modules"]}
        assert states[2]["completed"] is True
        assert states[3]["locked"] is False

    def test_nothing_saved_restores_null(
        self, client: TestClient, auth_headers, student
    ) -> None:
        response = client.get("/v1/activities/chapters/31", headers=auth_headers(student))

        assert response.status_code == 200
        assert response.json() is None

    def test_unknown_module_submit(self, client: TestClient, auth_headers, student) -> None:
        response = client.post(
            "/v1/activities/modules/no-such-module/submit",
            headers=auth_headers(student),
        )

        assert response.status_code == 404


class TestOverrides:
    def test_force_unlock_requires_confirmation(
        self, client: TestClient, auth_headers, student, admin
    ) -> None:
        path = f"/v1/admin/reviews/students/{student.id}/modules/2/force-unlock"

        refused = client.post(path, json={}, headers=auth_headers(admin))
        assert refused.status_code == 428

        accepted = client.post(path, json={"confirm": True}, headers=auth_headers(admin))
        assert accepted.status_code == 200
        assert accepted.json()["chapter_ids"] == [11]

    def test_reset_attempts_unknown_record(
        self, client: TestClient, auth_headers, student, admin
    ) -> None:
        response = client.post(
            f"/v1/admin/reviews/students/{student.id}/chapters/1/reset-attempts",
            json={"confirm": True},
            headers=auth_headers(admin),
        )

        assert response.status_code == 404


class TestStorageFailures:
    def test_write_failure_is_503(
        self, client: TestClient, auth_headers, student, store
    ) -> None:
        store.unavailable = True

        response = client.put(
            "/v1/activities/chapters/3",
            json={"module_id": 1, "step": 0, "responses": {"a": 1}},
            headers=auth_headers(student),
        )

        assert response.status_code == 503
        assert "Storage" in response.json()["message"]

    def test_gated_module_fails_closed(
        self, client: TestClient, auth_headers, student, store
    ) -> None:
        complete_intro(store, student)
        store.unavailable = True

        response = client.put(
            "/v1/activities/chapters/11",
            json={"module_id": 2, "step": 0, "responses": {}},
            headers=auth_headers(student),
        )

        assert response.status_code == 503

    def test_missing_message_service(
        self, client: TestClient, auth_headers, student
    ) -> None:
        response = client.post(
            "/v1/messages", json={"content": "Hello"}, headers=auth_headers(student)
        )

        assert response.status_code == 503
