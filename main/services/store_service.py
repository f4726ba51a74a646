from ..models import Store
from .scope_service import CallerScope


class StoreService:

    @classmethod
    def serialize(cls, store: Store):
        return {
            'id': store.id,
            'uuid': str(store.uuid),
            'name': store.name,
            'code': store.code,
            'address': store.address,
            'phone': store.phone,
            'is_active': store.is_active,
        }

    @classmethod
    def list_for_scope(cls, scope: CallerScope):
        stores = Store.objects.filter(id__in=scope.store_ids).order_by('name')
        return {'stores': [cls.serialize(s) for s in stores], 'count': len(scope.store_ids)}
