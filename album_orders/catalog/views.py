from fastapi import APIRouter, Depends

from album_orders.app_setup.dependencies import get_catalog_service
from album_orders.catalog.service import CatalogService

router = APIRouter(prefix="/api/v1/albums/{album_id}", tags=["Catalog API"])


# module album_orders.catalog.views
@router.get("/catalog")
def get_catalog(album_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    """
    Catalogue de l'album: matériaux (avec couleurs), tailles, gravures, designs.
    Les designs sont renvoyés en liste triée par index.
    """
    snapshot = catalog.load_catalog(album_id)
    return {
        "materials": [m.model_dump(mode="json") for m in snapshot.materials.values()],
        "sizes": [s.model_dump(mode="json") for s in snapshot.sizes.values()],
        "engraving_options": [e.model_dump(mode="json") for e in snapshot.engraving_options.values()],
        "designs": [snapshot.designs[i].model_dump(mode="json") for i in sorted(snapshot.designs)],
    }
