"""
Views for the User app - accounts, sessions, profile and the lender directory
"""

import logging
import random
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from lending.exceptions import LedgerError
from lending.services import wallet
from lending.services.quote import to_money

from .decorators import api_login_required
from .models import UserProfile
from .utils import json_error, profile_payload, read_payload

logger = logging.getLogger(__name__)


# ========== AUTH ==========


@require_GET
@ensure_csrf_cookie
def csrf_view(request):
    """
    Hand out the CSRF cookie. Clients echo it back in the X-CSRFToken header
    on every POST/PATCH.
    """
    return JsonResponse({"csrf_token": get_token(request)})


@require_POST
def register_view(request):
    """Register a borrower or lender and log them in"""
    data = read_payload(request)
    username = str(data.get("username", "")).strip()
    password = str(data.get("password", ""))
    name = str(data.get("name", "")).strip()
    email = str(data.get("email", "")).strip()
    phone = str(data.get("phone", "") or "").strip()
    role = data.get("role")

    if len(username) < 3:
        return json_error("Username must be at least 3 characters", "VALIDATION")
    if len(password) < 4:
        return json_error("Password must be at least 4 characters", "VALIDATION")
    if not name:
        return json_error("Name is required", "VALIDATION")
    try:
        validate_email(email)
    except DjangoValidationError:
        return json_error("Invalid email", "VALIDATION")
    if role not in dict(UserProfile.ROLE_CHOICES):
        return json_error("Role must be lender or borrower", "VALIDATION")

    if User.objects.filter(username=username).exists():
        return json_error("Username already taken", "CONFLICT", status=409)

    conf = settings.LENDLINK
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=username, email=email, password=password
            )
            profile = UserProfile.objects.create(
                user=user,
                role=role,
                name=name,
                phone=phone,
                avatar_color=random.choice(conf["AVATAR_COLORS"]),
                description=conf["LENDER_DESCRIPTION"] if role == UserProfile.ROLE_LENDER else "",
            )
            if role == UserProfile.ROLE_LENDER and conf["LENDER_STARTING_BALANCE"]:
                profile = wallet.credit(user.pk, conf["LENDER_STARTING_BALANCE"])
    except IntegrityError:
        return json_error("Username already taken", "CONFLICT", status=409)

    login(request, user)
    logger.info("Registered %s %s", role, username)
    return JsonResponse(profile_payload(profile, private=True), status=201)


@require_POST
def login_view(request):
    data = read_payload(request)
    username = data.get("username")
    password = data.get("password")
    if not username or not password:
        return json_error("Invalid credentials", "VALIDATION")

    user = authenticate(request, username=username, password=password)
    if user is None:
        return json_error("Invalid username or password", "UNAUTHENTICATED", status=401)
    if not hasattr(user, "profile"):
        return json_error("User has no profile", "UNAUTHENTICATED", status=401)

    login(request, user)
    return JsonResponse(profile_payload(user.profile, private=True))


@require_POST
def logout_view(request):
    logout(request)
    return JsonResponse({"success": True, "message": "Logged out"})


@require_GET
@ensure_csrf_cookie
@api_login_required
def me_view(request):
    """Current user, always read fresh from the database"""
    try:
        profile = UserProfile.objects.select_related("user").get(user=request.user)
    except UserProfile.DoesNotExist:
        return json_error("User not found", "UNAUTHENTICATED", status=401)
    return JsonResponse(profile_payload(profile, private=True))


# ========== PROFILE ==========

LENDER_FIELDS = ("interest_rate", "min_loan", "max_loan", "repayment_days")


def _positive_int(value):
    """Positive whole number or None. Bools and fractional floats are refused."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


@require_http_methods(["POST", "PATCH"])
@api_login_required
def profile_view(request):
    """
    Edit profile and, for lenders, posted lending terms.

    Rate changes only apply to loans requested afterwards. The wallet balance
    is not editable here.
    """
    data = read_payload(request)
    if "wallet_balance" in data:
        return json_error("Wallet balance cannot be edited", "VALIDATION")

    with transaction.atomic():
        profile = UserProfile.objects.select_for_update().select_related("user").get(
            user=request.user
        )
        user = profile.user

        if "name" in data:
            name = str(data["name"]).strip()
            if not name:
                return json_error("Name is required", "VALIDATION")
            profile.name = name
        if "email" in data:
            email = data["email"]
            if not isinstance(email, str):
                return json_error("Invalid email", "VALIDATION")
            email = email.strip()
            try:
                validate_email(email)
            except DjangoValidationError:
                return json_error("Invalid email", "VALIDATION")
            user.email = email
        if "phone" in data:
            profile.phone = str(data["phone"] or "")
        if "description" in data:
            profile.description = str(data["description"] or "")

        lender_updates = [f for f in LENDER_FIELDS if f in data]
        if lender_updates and not profile.is_lender:
            return json_error("Only lenders have lending terms", "VALIDATION")

        try:
            if "interest_rate" in data:
                rate = to_money(data["interest_rate"])
                if not Decimal("0.1") <= rate <= Decimal("50"):
                    return json_error("Interest rate must be between 0.1 and 50", "VALIDATION")
                profile.interest_rate = rate
            if "min_loan" in data:
                profile.min_loan = to_money(data["min_loan"])
            if "max_loan" in data:
                profile.max_loan = to_money(data["max_loan"])
        except LedgerError as e:
            return json_error(e.message, e.code, status=e.status_code)

        if profile.min_loan <= 0 or profile.max_loan <= 0:
            return json_error("Loan limits must be positive", "VALIDATION")
        if profile.min_loan > profile.max_loan:
            return json_error("Minimum loan cannot exceed maximum loan", "VALIDATION")

        if "repayment_days" in data:
            days = _positive_int(data["repayment_days"])
            if days is None:
                return json_error("Repayment days must be a positive integer", "VALIDATION")
            profile.repayment_days = days

        user.save(update_fields=["email"])
        profile.save(
            update_fields=["name", "phone", "description", "interest_rate",
                           "min_loan", "max_loan", "repayment_days"]
        )

    return JsonResponse(profile_payload(profile, private=True))


# ========== LENDER DIRECTORY ==========


@require_GET
def lender_list(request):
    """Lenders, newest first"""
    lenders = (
        UserProfile.objects.filter(role=UserProfile.ROLE_LENDER)
        .select_related("user")
        .order_by("-created_at")
    )
    return JsonResponse([profile_payload(p) for p in lenders], safe=False)


@require_GET
def lender_detail(request, lender_id):
    try:
        profile = UserProfile.objects.select_related("user").get(
            user_id=lender_id, role=UserProfile.ROLE_LENDER
        )
    except UserProfile.DoesNotExist:
        return json_error("Lender not found", "NOT_FOUND", status=404)
    return JsonResponse(profile_payload(profile))
