from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from assessments.models import Assignment, Attempt

from .factories import User, add_choice_question, add_text_question, make_exam, make_user


class ExamFlowAPITests(APITestCase):
    def setUp(self):
        self.teacher = make_user("teacher", role=User.Role.TEACHER)
        self.student = make_user("student")

    def create_exam_with_questions(self):
        self.client.force_authenticate(user=self.teacher)
        now = timezone.now()
        response = self.client.post("/api/exams/", {
            "title": "Capitals",
            "course_id": 3,
            "start_date": (now - timedelta(hours=1)).isoformat(),
            "end_date": (now + timedelta(hours=1)).isoformat(),
            "duration_minutes": 45,
            "passing_percentage": "60.00",
            "is_published": True,
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        exam_id = response.data["id"]

        choice = self.client.post(f"/api/exams/{exam_id}/questions/", {
            "text": "Capital of Italy?",
            "question_type": "multiple_choice",
            "points": "50",
            "options": [{"text": "Milan", "is_correct": False}, {"text": "Rome", "is_correct": True}],
        }, format="json")
        self.assertEqual(choice.status_code, status.HTTP_201_CREATED, choice.data)

        text = self.client.post(f"/api/exams/{exam_id}/questions/", {
            "text": "Capital of France?",
            "question_type": "short_answer",
            "points": "50",
            "correct_answer": "paris",
        }, format="json")
        self.assertEqual(text.status_code, status.HTTP_201_CREATED, text.data)
        return exam_id, choice.data, text.data

    def test_full_exam_flow(self):
        exam_id, choice, text = self.create_exam_with_questions()
        self.assertEqual(choice["order_number"], 0)
        self.assertEqual(text["order_number"], 1)
        rome = next(o for o in choice["options_data"] if o["text"] == "Rome")

        assigned = self.client.post(f"/api/exams/{exam_id}/assign/", {"student_ids": [self.student.pk]}, format="json")
        self.assertEqual(assigned.status_code, status.HTTP_201_CREATED, assigned.data)
        assignment_id = assigned.data[0]["id"]
        self.assertEqual(len(assigned.data[0]["questions"]), 2)

        self.client.force_authenticate(user=self.student)
        listing = self.client.get(reverse("student-assignments", args=[self.student.pk]), {"current": "true"})
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual([a["id"] for a in listing.data], [assignment_id])

        started = self.client.post(reverse("attempt-start", args=[assignment_id]), HTTP_USER_AGENT="Browser/1.0")
        self.assertEqual(started.status_code, status.HTTP_200_OK, started.data)
        attempt_id = started.data["id"]
        self.assertEqual(Decimal(started.data["max_score"]), Decimal("100"))
        # Answers stay hidden while the exam is taken
        self.assertNotIn("is_correct", started.data["questions"][0]["options"][0])
        self.assertEqual(Attempt.objects.get(pk=attempt_id).user_agent, "Browser/1.0")

        answer = self.client.post(
            reverse("attempt-response", args=[attempt_id, choice["id"]]), {"chosen_answer_id": rome["id"]}, format="json"
        )
        self.assertEqual(answer.status_code, status.HTTP_200_OK, answer.data)
        self.assertTrue(answer.data["is_correct"])

        self.client.post(
            reverse("attempt-response", args=[attempt_id, text["id"]]), {"text_response": "Paris"}, format="json"
        )

        completed = self.client.post(reverse("attempt-complete", args=[attempt_id]))
        self.assertEqual(completed.status_code, status.HTTP_200_OK, completed.data)
        self.assertEqual(completed.data["status"], "completed")
        self.assertEqual(Decimal(completed.data["percentage"]), Decimal("100"))
        self.assertTrue(completed.data["passed"])

        detail = self.client.get(reverse("attempt-detail", args=[attempt_id]))
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(len(detail.data["responses"]), 2)
        self.assertEqual(Assignment.objects.get(pk=assignment_id).status, Assignment.Status.COMPLETED)

    def test_engine_errors_render_kind_and_message(self):
        exam_id, _, _ = self.create_exam_with_questions()
        self.client.post(f"/api/exams/{exam_id}/assign/", {"student_ids": [self.student.pk]}, format="json")

        again = self.client.post(f"/api/exams/{exam_id}/assign/", {"student_ids": [self.student.pk]}, format="json")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(again.data["status"], "fail")
        self.assertEqual(again.data["kind"], "conflict")
        self.assertIn("already assigned", again.data["message"])

        missing = self.client.post("/api/exams/999999/assign/", {"student_ids": [self.student.pk]}, format="json")
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(missing.data["kind"], "not_found")

    def test_published_exam_cannot_be_unpublished(self):
        exam_id, _, _ = self.create_exam_with_questions()
        response = self.client.patch(f"/api/exams/{exam_id}/", {"is_published": False}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["kind"], "invalid_state")

    def test_students_cannot_author_exams(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get("/api/exams/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_teachers_cannot_take_exams(self):
        exam = make_exam(self.teacher)
        add_text_question(exam, 1, "x")
        assignment = Assignment.objects.create(exam=exam, student=self.student, assigned_by=self.teacher)
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(reverse("attempt-start", args=[assignment.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_students_only_see_their_own_assignments(self):
        other = make_user("other")
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse("student-assignments", args=[other.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.teacher)
        response = self.client.get(reverse("student-assignments", args=[other.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_attempt_detail_is_private(self):
        exam = make_exam(self.teacher)
        add_choice_question(exam, 5)
        assignment = Assignment.objects.create(exam=exam, student=self.student, assigned_by=self.teacher)
        attempt = Attempt.objects.create(
            assignment=assignment, student=self.student, exam=exam,
            started_at=timezone.now(), max_score=Decimal("5"),
        )
        self.client.force_authenticate(user=make_user("other"))
        response = self.client.get(reverse("attempt-detail", args=[attempt.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unauthenticated_requests_are_rejected(self):
        response = self.client.get("/api/exams/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TokenAPITests(APITestCase):
    def setUp(self):
        self.student = make_user("student")

    def test_login_with_email_returns_role(self):
        response = self.client.post(
            reverse("token-obtain"), {"email": "student@example.com", "password": "testpass123"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertIn("access", response.data)
        self.assertEqual(response.data["user"]["role"], "student")

    def test_token_authenticates_requests(self):
        token = self.client.post(
            reverse("token-obtain"), {"email": "student@example.com", "password": "testpass123"}, format="json"
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        response = self.client.get(reverse("user-profile"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["email"], "student@example.com")

    def test_wrong_password(self):
        response = self.client.post(
            reverse("token-obtain"), {"email": "student@example.com", "password": "nope"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
