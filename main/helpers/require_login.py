from functools import wraps

from main.helpers.response import APIResponse
from main.services.auth_service import AuthService
from main.services.scope_service import ScopeService


def get_bearer_token(request):
    header = request.META.get('HTTP_AUTHORIZATION', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def authenticate_request(request):
    """Resolves the bearer token to an active user and attaches the caller scope."""
    token = get_bearer_token(request)
    if not token:
        return None

    user = AuthService.get_user_from_token(token)
    if user is None:
        return None

    request.kitapos_user = user
    request.caller_scope = ScopeService.for_user(user)
    return user


def user_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if authenticate_request(request) is None:
            return APIResponse.unauthorized()
        return view_func(request, *args, **kwargs)
    return wrapper
