import json

from main.helpers.response import APIResponse


def parse_json_body(request):
    """Returns ``(data, None)`` or ``(None, error_response)``."""
    if not request.body:
        return {}, None
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, APIResponse.bad_request("Request body must be valid JSON")
    if not isinstance(data, dict):
        return None, APIResponse.bad_request("Request body must be a JSON object")
    return data, None


def get_client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')
