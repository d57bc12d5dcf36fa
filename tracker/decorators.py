from functools import wraps

from django.http import JsonResponse
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication


def _resolve_user(request):
    """Session user first, then a bearer JWT if one was sent."""
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return user
    try:
        result = JWTAuthentication().authenticate(request)
    except AuthenticationFailed:
        return None
    if result is None:
        return None
    user, _token = result
    request.user = user
    return user


def role_required(*roles, headers=None):
    """
    Respond 401 when no authenticated user is attached to the request and
    403 when the user's role is outside ``roles``. Superusers always pass.
    ``headers`` are added to both refusals (CORS for browser callers).
    """

    def _refuse(message, status):
        response = JsonResponse({'error': message}, status=status)
        for header, value in (headers or {}).items():
            response[header] = value
        return response

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            user = _resolve_user(request)
            if not user:
                return _refuse('Unauthorized', 401)
            role_check = getattr(user, 'has_any_role', None)
            has_role = False
            if callable(role_check):
                has_role = role_check(*roles)
            elif getattr(user, 'role', None) in roles:
                has_role = True
            if user.is_superuser or has_role:
                return view_func(request, *args, **kwargs)
            return _refuse('Forbidden', 403)

        return _wrapped

    return decorator
