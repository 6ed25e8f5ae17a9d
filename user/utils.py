import json

from django.http import JsonResponse, QueryDict


def read_payload(request) -> dict:
    """Request body as a dict. Accepts JSON or form-encoded bodies."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    if request.method in ("PATCH", "PUT"):
        return QueryDict(request.body).dict()
    return request.POST.dict()


def json_error(message, code, status=400, **extra):
    body = {"success": False, "error": message, "code": code}
    body.update(extra)
    return JsonResponse(body, status=status)


def money(value):
    """Decimals go over the wire as floats, like the mobile client expects."""
    return float(value) if value is not None else None


def profile_payload(profile, private=False) -> dict:
    user = profile.user
    data = {
        "id": user.pk,
        "username": user.username,
        "role": profile.role,
        "name": profile.name,
        "avatar_color": profile.avatar_color,
        "description": profile.description,
        "verified": profile.verified,
        "response_time": profile.response_time,
        "created_at": profile.created_at.isoformat(),
    }
    if profile.is_lender:
        data.update(
            {
                "interest_rate": money(profile.interest_rate),
                "min_loan": money(profile.min_loan),
                "max_loan": money(profile.max_loan),
                "repayment_days": profile.repayment_days,
                "total_loans_given": profile.total_loans_given,
                "total_amount_lent": money(profile.total_amount_lent),
            }
        )
    if private:
        data.update(
            {
                "email": user.email,
                "phone": profile.phone,
                "wallet_balance": money(profile.wallet_balance),
            }
        )
    return data
