"""
API integration tests using FastAPI TestClient with in-memory DB.
"""
import pytest
from fastapi.testclient import TestClient


def _exam_payload(module_id="module-1", title="Parcial 1"):
    return {
        "title": title,
        "module_id": module_id,
        "questions": [
            {
                "question_text": "¿Cuánto es 2 + 2?",
                "question_type": "multiple_choice",
                "options": [
                    {"option_text": "3", "is_correct": False},
                    {"option_text": "4", "is_correct": True},
                    {"option_text": "5", "is_correct": False},
                ],
            },
            {
                "question_text": "El cero es par",
                "question_type": "true_false",
                "options": [
                    {"option_text": "Verdadero", "is_correct": True},
                    {"option_text": "Falso", "is_correct": False},
                ],
            },
        ],
    }


@pytest.mark.integration
class TestHealthRoutes:
    """Health and root endpoints (no auth)."""

    def test_root_returns_healthy(self, api_client: TestClient):
        response = api_client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "LMS is Healthy"}

    def test_request_id_is_echoed(self, api_client: TestClient):
        response = api_client.get("/", headers={"x-request-id": "req-123"})
        assert response.headers.get("x-request-id") == "req-123"


@pytest.mark.integration
class TestAuthGate:
    def test_missing_token(self, api_client: TestClient, course):
        response = api_client.get("/lms/exams/available")
        assert response.status_code == 401

    def test_bad_token(self, api_client: TestClient, course):
        response = api_client.get("/lms/exams/available", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_cookie_token(self, api_client: TestClient, student_headers):
        token = student_headers["Authorization"].split(" ", 1)[1]
        api_client.cookies.set("access_token", token)
        response = api_client.get("/lms/exams/available")
        assert response.status_code == 200

    def test_student_cannot_author(self, api_client: TestClient, student_headers):
        response = api_client.post("/lms/exams", json=_exam_payload(), headers=student_headers)
        assert response.status_code == 403


@pytest.mark.integration
class TestExamAuthoringRoutes:
    def test_create_exam(self, api_client: TestClient, teacher_headers):
        response = api_client.post("/lms/exams", json=_exam_payload(), headers=teacher_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["module_id"] == "module-1"
        assert data["questions_count"] == 2
        assert [o["is_correct"] for o in data["questions"][0]["options"]] == [False, True, False]

    def test_second_exam_for_module_is_409(self, api_client: TestClient, teacher_headers):
        api_client.post("/lms/exams", json=_exam_payload(), headers=teacher_headers)
        response = api_client.post("/lms/exams", json=_exam_payload(title="Otro"), headers=teacher_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "This module already has an exam"

    def test_invalid_draft_lists_problems(self, api_client: TestClient, teacher_headers):
        payload = _exam_payload(title="  ")
        payload["questions"][0]["options"][0]["option_text"] = ""
        response = api_client.post("/lms/exams", json=payload, headers=teacher_headers)
        assert response.status_code == 422
        assert response.json()["detail"] == ["Title is required", "Question 1 has an empty option"]

    def test_two_correct_options_rejected(self, api_client: TestClient, teacher_headers):
        payload = _exam_payload()
        payload["questions"][0]["options"][0]["is_correct"] = True
        response = api_client.post("/lms/exams", json=payload, headers=teacher_headers)
        assert response.status_code == 422

    def test_unknown_module_is_404(self, api_client: TestClient, teacher_headers):
        response = api_client.post("/lms/exams", json=_exam_payload(module_id="nope"), headers=teacher_headers)
        assert response.status_code == 404

    def test_update_title_only_keeps_questions(self, api_client: TestClient, teacher_headers):
        exam_id = api_client.post("/lms/exams", json=_exam_payload(), headers=teacher_headers).json()["id"]
        response = api_client.put(f"/lms/exams/{exam_id}", json={"title": "Parcial final"}, headers=teacher_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Parcial final"
        assert data["questions_count"] == 2

    def test_update_questions(self, api_client: TestClient, teacher_headers):
        exam_id = api_client.post("/lms/exams", json=_exam_payload(), headers=teacher_headers).json()["id"]
        questions = _exam_payload()["questions"][1:]
        response = api_client.put(f"/lms/exams/{exam_id}", json={"questions": questions}, headers=teacher_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Parcial 1"
        assert [q["question_type"] for q in data["questions"]] == ["true_false"]

    def test_delete(self, api_client: TestClient, teacher_headers):
        exam_id = api_client.post("/lms/exams", json=_exam_payload(), headers=teacher_headers).json()["id"]
        assert api_client.delete(f"/lms/exams/{exam_id}", headers=teacher_headers).status_code == 200
        assert api_client.get(f"/lms/exams/{exam_id}", headers=teacher_headers).status_code == 404

    def test_other_teacher_cannot_write_exams(self, api_client: TestClient, db_session, auth_headers, teacher_headers):
        from api.models.models import User
        db_session.add(User(id="teacher-2", email="other@example.com", role="teacher"))
        db_session.commit()
        other = auth_headers("other@example.com")

        assert api_client.post("/lms/exams", json=_exam_payload(), headers=other).status_code == 403
        exam_id = api_client.post("/lms/exams", json=_exam_payload(), headers=teacher_headers).json()["id"]
        response = api_client.put(f"/lms/exams/{exam_id}", json={"title": "Mío"}, headers=other)
        assert response.status_code == 403
        assert response.json()["detail"] == "Not the teacher of this subject"
        assert api_client.delete(f"/lms/exams/{exam_id}", headers=other).status_code == 403
        assert api_client.get(f"/lms/exams/{exam_id}", headers=teacher_headers).json()["title"] == "Parcial 1"

    def test_admin_can_write_any_exam(self, api_client: TestClient, db_session, auth_headers, course):
        from api.models.models import User
        db_session.add(User(id="admin-1", email="admin@example.com", role="admin"))
        db_session.commit()
        admin = auth_headers("admin@example.com")
        exam_id = api_client.post("/lms/exams", json=_exam_payload(), headers=admin).json()["id"]
        assert api_client.delete(f"/lms/exams/{exam_id}", headers=admin).status_code == 200

    def test_teacher_listings(self, api_client: TestClient, teacher_headers):
        api_client.post("/lms/exams", json=_exam_payload(), headers=teacher_headers)
        api_client.post("/lms/exams", json=_exam_payload(module_id="module-2"), headers=teacher_headers)
        mine = api_client.get("/lms/exams", headers=teacher_headers).json()["exams"]
        by_subject = api_client.get("/lms/exams/by-subject/subject-1", headers=teacher_headers).json()["exams"]
        assert [e["module_id"] for e in mine] == ["module-1", "module-2"]
        assert len(by_subject) == 2


@pytest.mark.integration
class TestExamTakingRoutes:
    def test_student_never_receives_correct_flags(self, api_client: TestClient, db_session, exam_factory, student_headers):
        exam_factory(db_session)
        for path in ("/lms/exams/exam-1", "/lms/exams/by-module/module-1"):
            data = api_client.get(path, headers=student_headers).json()
            options = [o for q in data["questions"] for o in q["options"]]
            assert options and all("is_correct" not in o for o in options)
        available = api_client.get("/lms/exams/available", headers=student_headers).json()["exams"]
        assert [e["id"] for e in available] == ["exam-1"]
        assert all("is_correct" not in o for q in available[0]["questions"] for o in q["options"])

    def test_submit_three_of_four(self, api_client: TestClient, db_session, exam_factory, student_headers):
        exam_factory(db_session)
        answers = [{"question_id": f"exam-1-q{n}", "option_id": f"exam-1-q{n}-a"} for n in (1, 2, 3)]
        answers.append({"question_id": "exam-1-q4", "option_id": "exam-1-q4-b"})
        response = api_client.post("/lms/exams/exam-1/submit", json={"answers": answers}, headers=student_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 75
        assert data["passed"] is True
        assert data["correct_answers"] == 3
        assert data["total_questions"] == 4

        results = api_client.get("/lms/exams/results/me", headers=student_headers).json()["results"]
        assert len(results) == 1
        assert results[0]["exam"]["id"] == "exam-1"
        assert results[0]["score"] == 75

    def test_incomplete_submission_is_400(self, api_client: TestClient, db_session, exam_factory, student_headers):
        exam_factory(db_session)
        answers = [{"question_id": "exam-1-q1", "option_id": "exam-1-q1-a"}]
        response = api_client.post("/lms/exams/exam-1/submit", json={"answers": answers}, headers=student_headers)
        assert response.status_code == 400
        assert api_client.get("/lms/exams/results/me", headers=student_headers).json()["results"] == []

    def test_outsider_cannot_see_or_submit(self, api_client: TestClient, db_session, exam_factory, outsider_headers):
        exam_factory(db_session, correct=("a",))
        assert api_client.get("/lms/exams/exam-1", headers=outsider_headers).status_code == 404
        assert api_client.get("/lms/exams/by-module/module-1", headers=outsider_headers).status_code == 404
        answers = [{"question_id": "exam-1-q1", "option_id": "exam-1-q1-a"}]
        response = api_client.post("/lms/exams/exam-1/submit", json={"answers": answers}, headers=outsider_headers)
        assert response.status_code == 404

    def test_exam_in_unpublished_module_is_hidden(self, api_client: TestClient, db_session, exam_factory, student_headers):
        exam_factory(db_session, module_id="module-3", exam_id="exam-3")
        assert api_client.get("/lms/exams/exam-3", headers=student_headers).status_code == 404
        assert api_client.get("/lms/exams/available", headers=student_headers).json()["exams"] == []


@pytest.mark.integration
class TestProgressRoutes:
    def test_complete_twice_keeps_one_record(self, api_client: TestClient, student_headers):
        first = api_client.post("/lms/progress/chapters/ch-1-1/complete", headers=student_headers)
        second = api_client.post("/lms/progress/chapters/ch-1-1/complete", headers=student_headers)
        assert first.status_code == second.status_code == 200
        assert first.json()["created"] is True
        assert second.json()["created"] is False
        assert first.json()["id"] == second.json()["id"]

        progress = api_client.get("/lms/progress/subjects/subject-1", headers=student_headers).json()
        assert progress["completed_chapters"] == 1
        assert progress["total_chapters"] == 5
        assert progress["percentage"] == 20

    def test_unpublished_chapter_is_404(self, api_client: TestClient, student_headers):
        response = api_client.post("/lms/progress/chapters/ch-1-draft/complete", headers=student_headers)
        assert response.status_code == 404

    def test_completion_requires_enrollment(self, api_client: TestClient, db_session, outsider_headers):
        from api.models.models import ChapterProgress
        response = api_client.post("/lms/progress/chapters/ch-1-1/complete", headers=outsider_headers)
        assert response.status_code == 404
        assert db_session.query(ChapterProgress).count() == 0

    def test_multiple_subjects_omits_failures(self, api_client: TestClient, student_headers):
        response = api_client.get(
            "/lms/progress/subjects",
            params=[("ids", "subject-1"), ("ids", "missing")],
            headers=student_headers,
        )
        assert response.status_code == 200
        assert list(response.json()["progress"]) == ["subject-1"]

    def test_publishing_invalidates_cached_progress(self, api_client: TestClient, student_headers, teacher_headers):
        before = api_client.get("/lms/progress/subjects/subject-1", headers=student_headers).json()
        assert before["total_chapters"] == 5

        response = api_client.patch(
            "/lms/chapters/ch-1-draft/publish", json={"is_published": True}, headers=teacher_headers
        )
        assert response.status_code == 200
        assert response.json()["is_published"] is True

        after = api_client.get("/lms/progress/subjects/subject-1", headers=student_headers).json()
        assert after["total_chapters"] == 6


    def test_direct_structure_changes_are_read_immediately(self, api_client: TestClient, db_session, student_headers):
        from api.models.models import Chapter, Module
        api_client.post("/lms/progress/chapters/ch-1-1/complete", headers=student_headers)
        before = api_client.get("/lms/progress/subjects/subject-1", headers=student_headers).json()
        assert (before["total_chapters"], before["percentage"]) == (5, 20)

        db_session.add(Chapter(id="ch-2-3", module_id="module-2", title="Sistemas", order_index=3, is_published=True))
        db_session.query(Module).filter(Module.id == "module-3").update({"is_published": True})
        db_session.commit()

        progress = api_client.get("/lms/progress/subjects/subject-1", headers=student_headers).json()
        listed = api_client.get("/lms/subjects", headers=student_headers).json()["subjects"][0]["progress"]
        outline = api_client.get("/lms/subjects/subject-1/outline", headers=student_headers).json()
        assert progress["total_chapters"] == listed["total_chapters"] == 7
        assert progress["percentage"] == listed["percentage"] == 14
        assert outline["progress"]["total_chapters"] == 7


@pytest.mark.integration
class TestCourseViewerRoutes:
    def test_enrolled_subjects_with_progress(self, api_client: TestClient, student_headers, outsider_headers):
        subjects = api_client.get("/lms/subjects", headers=student_headers).json()["subjects"]
        assert [s["id"] for s in subjects] == ["subject-1"]
        assert subjects[0]["progress"]["percentage"] == 0
        assert api_client.get("/lms/subjects", headers=outsider_headers).json()["subjects"] == []

    def test_outline(self, api_client: TestClient, student_headers):
        data = api_client.get("/lms/subjects/subject-1/outline", headers=student_headers).json()
        assert data["current_chapter_id"] == "ch-1-1"
        assert [m["id"] for m in data["modules"]] == ["module-1", "module-2"]
        states = [c["state"] for m in data["modules"] for c in m["chapters"]]
        assert states == ["current", "available", "available", "available", "available"]
        assert data["view"] == {"selected_chapter_id": "ch-1-1", "expanded_module_ids": ["module-1"]}

    def test_outline_requires_enrollment(self, api_client: TestClient, outsider_headers):
        response = api_client.get("/lms/subjects/subject-1/outline", headers=outsider_headers)
        assert response.status_code == 404

    def test_content_ended_advances(self, api_client: TestClient, student_headers):
        response = api_client.post(
            "/lms/subjects/subject-1/chapters/ch-1-3/ended",
            json={"expanded_module_ids": ["module-1"]},
            headers=student_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["completed_now"] is True
        assert data["advanced"] is True
        assert data["view"]["selected_chapter_id"] == "ch-2-1"
        assert data["view"]["expanded_module_ids"] == ["module-1", "module-2"]
        assert data["progress"]["completed_chapters"] == 1

    def test_next_at_last_chapter_stays(self, api_client: TestClient, student_headers):
        response = api_client.post("/lms/subjects/subject-1/chapters/ch-2-2/next", json={}, headers=student_headers)
        data = response.json()
        assert data["advanced"] is False
        assert data["view"]["selected_chapter_id"] == "ch-2-2"

    def test_exam_available_flag(self, api_client: TestClient, db_session, exam_factory, student_headers):
        exam_factory(db_session, module_id="module-2", exam_id="exam-m2")
        data = api_client.get("/lms/subjects/subject-1/outline", headers=student_headers).json()
        assert [m["exam_available"] for m in data["modules"]] == [False, True]
        assert data["modules"][1]["exam_id"] == "exam-m2"

    def test_only_subject_teacher_publishes(self, api_client: TestClient, db_session, auth_headers, student_headers):
        from api.models.models import User
        db_session.add(User(id="teacher-2", email="other@example.com", role="teacher"))
        db_session.commit()
        response = api_client.patch(
            "/lms/chapters/ch-1-1/publish", json={"is_published": False}, headers=auth_headers("other@example.com")
        )
        assert response.status_code == 403
        response = api_client.patch("/lms/chapters/ch-1-1/publish", json={"is_published": False}, headers=student_headers)
        assert response.status_code == 403
