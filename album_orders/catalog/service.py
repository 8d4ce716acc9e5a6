"""Cas d'usage 'catalog': construit l'instantané du catalogue pour un album client."""
import logging

from album_orders.catalog.models import Catalog
from album_orders.catalog.repository import CatalogSource

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, source: CatalogSource):
        self.source = source

    def load_catalog(self, client_album_id: str) -> Catalog:
        """
        Matériaux/tailles/gravures: globaux. Designs: propres à l'album.
        Un catalogue vide est valide (la validation de sélection échouera en aval).
        """
        catalog = Catalog.build(
            materials=self.source.get_materials(),
            sizes=self.source.get_sizes(),
            engraving_options=self.source.get_engraving_options(),
            designs=self.source.get_designs(client_album_id),
        )
        if catalog.is_empty:
            logger.info("catalog vide pour client_album_id=%s", client_album_id)
        return catalog
