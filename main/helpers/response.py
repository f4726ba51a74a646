from django.http import JsonResponse


class APIResponse:
    """Uniform JSON envelopes shared by every endpoint."""

    @staticmethod
    def success(data=None, message="Success", status=200):
        body = {"success": True, "message": message}
        if data is not None:
            if isinstance(data, dict):
                body.update(data)
            else:
                body["data"] = data
        return JsonResponse(body, status=status)

    @staticmethod
    def created(data=None, message="Created"):
        return APIResponse.success(data=data, message=message, status=201)

    @staticmethod
    def error(message, code="error", status=400, details=None):
        body = {"success": False, "error": {"code": code, "message": message}}
        if details:
            body["error"]["details"] = details
        return JsonResponse(body, status=status)

    @staticmethod
    def bad_request(message="Bad request", details=None):
        return APIResponse.error(message, "bad_request", 400, details)

    @staticmethod
    def unauthorized(message="Authentication required"):
        return APIResponse.error(message, "unauthorized", 401)

    @staticmethod
    def not_found(message="Resource not found"):
        return APIResponse.error(message, "not_found", 404)
