# -----------------------------------------------------------------------------
# Favorites: per-user bookmarks of formula ids, resolved against the registry
# at read time (a favorite whose formula is gone is silently skipped).
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from typing import List

from .catalog import Catalog
from .errors import BadRequest
from .stores import FavoritesStore
from .types import FormulaDefinition

logger = logging.getLogger(__name__)


class FavoritesService:
    def __init__(self, catalog: Catalog, store: FavoritesStore):
        self.catalog = catalog
        self.store = store

    def add(self, user_id: str, formula_id: str | None) -> None:
        if not formula_id:
            raise BadRequest("Formel-ID erforderlich")
        self.catalog.get_by_id(formula_id)  # NotFound for unknown ids
        self.store.add(user_id, formula_id)
        logger.info("User %s favorited %s", user_id, formula_id)

    def remove(self, user_id: str, formula_id: str) -> None:
        self.store.remove(user_id, formula_id)
        logger.info("User %s removed favorite %s", user_id, formula_id)

    def list(self, user_id: str) -> List[FormulaDefinition]:
        ids = set(self.store.list_ids(user_id))
        return [f for f in self.catalog.formulas if f.id in ids]
