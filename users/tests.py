from django.contrib.auth import authenticate
from django.test import TestCase

from .models import User


class EmailBackendTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="ada", email="ada@example.com", password="testpass123", role=User.Role.TEACHER
        )

    def test_login_with_email(self):
        self.assertEqual(authenticate(username="ada@example.com", password="testpass123"), self.user)

    def test_login_with_username(self):
        self.assertEqual(authenticate(username="ada", password="testpass123"), self.user)

    def test_wrong_password(self):
        self.assertIsNone(authenticate(username="ada@example.com", password="wrong"))

    def test_inactive_user_is_rejected(self):
        self.user.is_active = False
        self.user.save()
        self.assertIsNone(authenticate(username="ada", password="testpass123"))


class RoleTests(TestCase):
    def test_default_role_is_student(self):
        user = User.objects.create_user(username="sam", email="sam@example.com", password="x")
        self.assertTrue(user.is_student)
        self.assertFalse(user.is_teacher)

    def test_staff_counts_as_teacher(self):
        user = User.objects.create_user(username="root", email="root@example.com", password="x", is_staff=True)
        self.assertTrue(user.is_teacher)
