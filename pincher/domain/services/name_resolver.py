from sqlalchemy.orm import Session

from pincher.data.repositories.account_repository import get_active_account_id_by_name
from pincher.data.repositories.category_repository import (
    get_category_id_by_name,
    get_group_id_by_name,
)
from pincher.data.repositories.payee_repository import get_payee_id_by_name
from pincher.domain.errors import ResolutionError
from pincher.domain.models import ResourceKind

_LOOKUPS = {
    ResourceKind.ACCOUNT: get_active_account_id_by_name,
    ResourceKind.PAYEE: get_payee_id_by_name,
    ResourceKind.CATEGORY: get_category_id_by_name,
    ResourceKind.GROUP: get_group_id_by_name,
}


def resolve(db: Session, budget_id: int, kind: ResourceKind, name: str) -> int:
    """Map a human-readable name to its identifier within one budget."""
    resource_id = _LOOKUPS[kind](db, budget_id, name) if name else None
    if resource_id is None:
        raise ResolutionError(f"could not find {kind.value} '{name}'")
    return resource_id
