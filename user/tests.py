from decimal import Decimal

from django.contrib.auth.models import User
from django.test import Client, TestCase
from django.urls import reverse

from lending.services.ledger import loan_ledger
from lending.tests.helpers import make_borrower, make_lender

from .models import UserProfile


class AuthApiTests(TestCase):
    def register(self, **overrides):
        data = {
            "username": "alice",
            "password": "secret",
            "name": "Alice",
            "email": "alice@example.com",
            "role": "lender",
        }
        data.update(overrides)
        return self.client.post(reverse("user:register"), data, content_type="application/json")

    def test_register_lender_gets_starting_balance(self):
        response = self.register()
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["role"], "lender")
        self.assertEqual(data["wallet_balance"], 10000.0)
        self.assertEqual(data["description"], "New lender on LendLink.")
        self.assertEqual(data["interest_rate"], 5.0)

        me = self.client.get(reverse("user:me"))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["username"], "alice")

    def test_register_borrower_starts_empty(self):
        response = self.register(username="bob", role="borrower")
        self.assertEqual(response.json()["wallet_balance"], 0.0)
        self.assertNotIn("interest_rate", response.json())

    def test_register_validation(self):
        self.assertEqual(self.register(username="al").status_code, 400)
        self.assertEqual(self.register(password="abc").status_code, 400)
        self.assertEqual(self.register(email="not-an-email").status_code, 400)
        self.assertEqual(self.register(role="admin").status_code, 400)
        self.assertFalse(User.objects.exists())

    def test_duplicate_username(self):
        self.register()
        self.client.logout()
        self.assertEqual(self.register().status_code, 409)

    def test_login_and_logout(self):
        make_borrower("carol")
        response = self.client.post(
            reverse("user:login"),
            {"username": "carol", "password": "pass1234"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "borrower")

        self.client.post(reverse("user:logout"))
        self.assertEqual(self.client.get(reverse("user:me")).status_code, 401)

    def test_bad_login(self):
        make_borrower("carol")
        response = self.client.post(
            reverse("user:login"),
            {"username": "carol", "password": "wrong"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 401)


class CsrfTests(TestCase):
    def setUp(self):
        self.client = Client(enforce_csrf_checks=True)
        self.payload = {
            "username": "alice",
            "password": "secret",
            "name": "Alice",
            "email": "alice@example.com",
            "role": "borrower",
        }

    def test_post_without_token_is_forbidden(self):
        response = self.client.post(reverse("user:register"), self.payload, content_type="application/json")
        self.assertEqual(response.status_code, 403)
        self.assertFalse(User.objects.exists())

    def test_token_from_csrf_endpoint_unlocks_posts(self):
        response = self.client.get(reverse("user:csrf"))
        self.assertEqual(response.status_code, 200)
        token = self.client.cookies["csrftoken"].value
        self.assertTrue(response.json()["csrf_token"])

        response = self.client.post(
            reverse("user:register"),
            self.payload,
            content_type="application/json",
            HTTP_X_CSRFTOKEN=token,
        )
        self.assertEqual(response.status_code, 201)

        # login rotates the token
        token = self.client.cookies["csrftoken"].value
        response = self.client.patch(
            reverse("user:profile"),
            {"name": "Al"},
            content_type="application/json",
            HTTP_X_CSRFTOKEN=token,
        )
        self.assertEqual(response.status_code, 200)

    def test_me_sets_cookie(self):
        self.client.force_login(make_borrower("carol"))
        self.client.get(reverse("user:me"))
        self.assertIn("csrftoken", self.client.cookies)


class ProfileApiTests(TestCase):
    def setUp(self):
        self.lender = make_lender()
        self.client.force_login(self.lender)

    def patch(self, data):
        return self.client.patch(reverse("user:profile"), data, content_type="application/json")

    def test_lender_updates_terms(self):
        response = self.patch({"interest_rate": 7.5, "min_loan": 50, "max_loan": 800, "repayment_days": 14})
        self.assertEqual(response.status_code, 200)
        profile = UserProfile.objects.get(user=self.lender)
        self.assertEqual(profile.interest_rate, Decimal("7.50"))
        self.assertEqual(profile.max_loan, Decimal("800.00"))
        self.assertEqual(profile.repayment_days, 14)

    def test_rate_bounds(self):
        self.assertEqual(self.patch({"interest_rate": 0}).status_code, 400)
        self.assertEqual(self.patch({"interest_rate": 51}).status_code, 400)

    def test_min_cannot_exceed_max(self):
        self.assertEqual(self.patch({"min_loan": 6000}).status_code, 400)

    def test_non_string_email_is_validation_error(self):
        for email in (123, ["a@example.com"], {"x": 1}):
            response = self.patch({"email": email})
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["code"], "VALIDATION")
        self.assertEqual(self.patch({"email": " new@example.com "}).status_code, 200)
        self.assertEqual(User.objects.get(pk=self.lender.pk).email, "new@example.com")

    def test_repayment_days_must_be_a_whole_number(self):
        for days in (True, False, 30.7, "30.7", 0, -3, "abc", None):
            self.assertEqual(self.patch({"repayment_days": days}).status_code, 400)
        self.assertEqual(UserProfile.objects.get(user=self.lender).repayment_days, 30)

        self.assertEqual(self.patch({"repayment_days": 45.0}).status_code, 200)
        self.assertEqual(UserProfile.objects.get(user=self.lender).repayment_days, 45)
        self.assertEqual(self.patch({"repayment_days": "21"}).status_code, 200)
        self.assertEqual(UserProfile.objects.get(user=self.lender).repayment_days, 21)

    def test_sub_cent_terms_are_rejected(self):
        self.assertEqual(self.patch({"min_loan": "100.005"}).status_code, 400)
        self.assertEqual(self.patch({"interest_rate": "7.555"}).status_code, 400)

    def test_wallet_balance_is_not_editable(self):
        response = self.patch({"wallet_balance": 1_000_000})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(UserProfile.objects.get(user=self.lender).wallet_balance, Decimal("10000.00"))

    def test_borrower_has_no_terms(self):
        borrower = make_borrower()
        self.client.force_login(borrower)
        self.assertEqual(self.patch({"interest_rate": 10}).status_code, 400)
        self.assertEqual(self.patch({"name": "Bee"}).status_code, 200)

    def test_rate_edit_does_not_reprice_existing_loans(self):
        borrower = make_borrower()
        loan = loan_ledger.create_loan(self.lender.pk, borrower.pk, 1000, "Rent")
        self.patch({"interest_rate": 25})
        loan.refresh_from_db()
        self.assertEqual(loan.total_repayment, Decimal("1050.00"))


class LenderDirectoryTests(TestCase):
    def test_lists_only_lenders(self):
        make_lender("l1")
        make_lender("l2")
        make_borrower("b1")
        response = self.client.get(reverse("user:lender_list"))
        self.assertEqual(response.status_code, 200)
        usernames = {row["username"] for row in response.json()}
        self.assertEqual(usernames, {"l1", "l2"})
        self.assertNotIn("wallet_balance", response.json()[0])

    def test_detail(self):
        lender = make_lender("l1")
        borrower = make_borrower("b1")
        self.assertEqual(self.client.get(reverse("user:lender_detail", args=[lender.pk])).status_code, 200)
        self.assertEqual(self.client.get(reverse("user:lender_detail", args=[borrower.pk])).status_code, 404)
