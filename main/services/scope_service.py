from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from ..models import Store, User


@dataclass(frozen=True)
class CallerScope:
    """The company, user and store set a request is allowed to touch."""

    company_id: int
    user_id: Optional[int]
    role: str
    store_ids: FrozenSet[int] = field(default_factory=frozenset)

    def has_store(self, store_id) -> bool:
        try:
            return int(store_id) in self.store_ids
        except (TypeError, ValueError):
            return False


class ScopeService:

    @classmethod
    def for_user(cls, user: User) -> CallerScope:
        stores = Store.objects.filter(company_id=user.company_id, is_active=True)
        if user.role == User.RoleChoices.CASHIER:
            stores = stores.filter(id=user.store_id)

        return CallerScope(
            company_id=user.company_id,
            user_id=user.id,
            role=user.role,
            store_ids=frozenset(stores.values_list('id', flat=True)),
        )

    @classmethod
    def can_manage(cls, scope: CallerScope) -> bool:
        return scope.role in (User.RoleChoices.OWNER, User.RoleChoices.MANAGER)
