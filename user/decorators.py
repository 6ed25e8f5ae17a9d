from functools import wraps

from django.http import JsonResponse


def api_login_required(view_func):
    """Reject anonymous callers with a JSON 401 instead of redirecting to a login page."""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse(
                {"success": False, "error": "Not authenticated", "code": "UNAUTHENTICATED"},
                status=401,
            )
        return view_func(request, *args, **kwargs)

    return wrapper


def role_required(*roles):
    """Ensure the logged-in user's profile has one of the required roles (e.g. 'lender')."""

    def decorator(view_func):
        @wraps(view_func)
        @api_login_required
        def wrapper(request, *args, **kwargs):
            profile = getattr(request.user, "profile", None)
            if profile is None or (roles and profile.role not in roles):
                return JsonResponse(
                    {"success": False, "error": "Not allowed for your role", "code": "FORBIDDEN"},
                    status=403,
                )
            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator
