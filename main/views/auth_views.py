from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..services.auth_service import AuthService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body, get_client_ip
from main.helpers.require_login import user_required, get_bearer_token


@csrf_exempt
@api_view(["POST"])
def login(request):
    data, error = parse_json_body(request)
    if error:
        return error

    result = AuthService.login(
        email=data.get('email'),
        password=data.get('password'),
        ip_address=get_client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT'),
    )

    if result['success']:
        return APIResponse.success(
            data={'token': result['token'], 'user': AuthService.serialize_user(result['user'])},
            message=result['message'],
        )

    return APIResponse.error(result['message'], 'invalid_credentials', 401)


@csrf_exempt
@api_view(["POST"])
@user_required
def logout(request):
    result = AuthService.logout(get_bearer_token(request))
    return APIResponse.success(message=result['message'])


@csrf_exempt
@api_view(["GET"])
@user_required
def me(request):
    scope = request.caller_scope
    return APIResponse.success(data={
        'user': AuthService.serialize_user(request.kitapos_user),
        'store_ids': sorted(scope.store_ids),
    })
