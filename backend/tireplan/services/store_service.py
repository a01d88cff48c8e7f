"""Owner-side branch listing and renaming."""
from __future__ import annotations

from ..extensions import db
from ..models import Store, User
from .scope_service import require_visible_store, visible_stores


class StoreError(Exception):
    pass


def list_visible_stores(identity: User, active_only: bool = False) -> list[Store]:
    query = visible_stores(identity)
    if active_only:
        query = query.filter(Store.is_active.is_(True))
    return query.all()


def rename_store(identity: User, store_id: int, name: str) -> Store:
    if not name or not str(name).strip():
        raise StoreError("Branch name is required")
    store = require_visible_store(identity, store_id)
    store.name = str(name).strip()
    db.session.flush()
    return store
