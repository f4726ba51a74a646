from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..services.store_service import StoreService
from main.helpers.response import APIResponse
from main.helpers.require_login import user_required


@csrf_exempt
@api_view(["GET"])
@user_required
def list_stores(request):
    result = StoreService.list_for_scope(request.caller_scope)
    return APIResponse.success(data=result)
