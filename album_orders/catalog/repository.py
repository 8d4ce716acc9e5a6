"""
Accès aux données du catalogue.
- CatalogSource: interface attendue par le service (4 accesseurs en lecture seule)
- SupabaseCatalogSource: tables 'materials', 'sizes', 'engraving_options', 'client_albums'
- StaticCatalogSource: catalogue figé (fixtures de tests, développement local)
"""
from typing import Any, Dict, Iterable, List, Optional, Protocol, Type, TypeVar
import logging

from pydantic import BaseModel, ValidationError

import album_orders.infra.supabase_client as supabase_client
from album_orders.catalog.models import Design, EngravingOption, Material, Size
from album_orders.errors import StorageUnavailable

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class CatalogSource(Protocol):
    def get_materials(self) -> List[Material]: ...
    def get_sizes(self) -> List[Size]: ...
    def get_engraving_options(self) -> List[EngravingOption]: ...
    def get_designs(self, client_album_id: str) -> List[Design]: ...


def parse_rows(model: Type[M], rows: Iterable[Dict[str, Any]]) -> List[M]:
    """
    Valide chaque ligne brute; une ligne invalide est ignorée (warning) plutôt
    que de faire échouer tout le chargement du catalogue.
    """
    parsed: List[M] = []
    for row in rows or []:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning("catalog: ligne %s ignorée id=%s: %s", model.__name__, (row or {}).get("id"), e.errors())
    return parsed


def parse_designs(raw_designs: Optional[List[Dict[str, Any]]]) -> List[Design]:
    # L'index d'un design est sa position dans l'album, sauf s'il est stocké explicitement
    rows = []
    for position, d in enumerate(raw_designs or []):
        if not isinstance(d, dict):
            continue
        row = dict(d)
        row.setdefault("index", position)
        rows.append(row)
    return parse_rows(Design, rows)


class SupabaseCatalogSource:
    def _select(self, table: str) -> List[Dict[str, Any]]:
        try:
            res = supabase_client.get_supabase().table(table).select("*").execute()
            return res.data or []
        except Exception:
            logger.exception("catalog.repository._select failed table=%s", table)
            raise StorageUnavailable()

    def get_materials(self) -> List[Material]:
        return parse_rows(Material, self._select("materials"))

    def get_sizes(self) -> List[Size]:
        return parse_rows(Size, self._select("sizes"))

    def get_engraving_options(self) -> List[EngravingOption]:
        return parse_rows(EngravingOption, self._select("engraving_options"))

    def get_designs(self, client_album_id: str) -> List[Design]:
        try:
            res = (
                supabase_client.get_supabase()
                .table("client_albums")
                .select("id, designs")
                .eq("id", str(client_album_id))
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("catalog.repository.get_designs failed client_album_id=%s", client_album_id)
            raise StorageUnavailable()
        rows = res.data or []
        if not rows:
            return []
        return parse_designs(rows[0].get("designs"))


class StaticCatalogSource:
    def __init__(
        self,
        materials: Iterable[Material] = (),
        sizes: Iterable[Size] = (),
        engraving_options: Iterable[EngravingOption] = (),
        designs_by_album: Optional[Dict[str, Iterable[Design]]] = None,
    ):
        self.materials = list(materials)
        self.sizes = list(sizes)
        self.engraving_options = list(engraving_options)
        self.designs_by_album = {str(k): list(v) for k, v in (designs_by_album or {}).items()}

    def get_materials(self) -> List[Material]:
        return list(self.materials)

    def get_sizes(self) -> List[Size]:
        return list(self.sizes)

    def get_engraving_options(self) -> List[EngravingOption]:
        return list(self.engraving_options)

    def get_designs(self, client_album_id: str) -> List[Design]:
        return list(self.designs_by_album.get(str(client_album_id), []))
