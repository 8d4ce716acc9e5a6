# module album_orders.catalog.validator
"""
Validation pure d'une sélection client contre le catalogue (aucun effet de bord).
Ordre des contrôles (le premier échec l'emporte):
  design -> material -> color -> size -> engraving
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict

from album_orders.catalog.models import Catalog, Color, Design, EngravingOption, Material, Size
from album_orders.errors import InvalidSelection


class Selection(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    design_index: int
    material_id: str
    color_id: Optional[str] = None
    size_id: str
    engraving_option_id: Optional[str] = None
    engraving_text: str = ""
    engraving_font: str = ""
    album_name: str = ""


class ResolvedSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    design: Design
    material: Material
    color: Optional[Color] = None
    size: Size
    engraving_option: Optional[EngravingOption] = None
    engraving_text: str = ""
    engraving_font: str = ""


def validate_selection(selection: Selection, catalog: Catalog) -> ResolvedSelection:
    design = catalog.designs.get(selection.design_index)
    if design is None:
        raise InvalidSelection("design")

    material = catalog.materials.get(selection.material_id)
    if material is None:
        raise InvalidSelection("material")

    color = None
    if selection.color_id:
        color = material.color(selection.color_id)
        if color is None:
            raise InvalidSelection("color")

    size = catalog.sizes.get(selection.size_id)
    if size is None or not material.allows_size(size.id):
        raise InvalidSelection("size")

    engraving_option = None
    if selection.engraving_option_id:
        if not material.allow_engraving:
            raise InvalidSelection("engraving_not_allowed")
        engraving_option = catalog.engraving_options.get(selection.engraving_option_id)
        if engraving_option is None:
            raise InvalidSelection("engraving")
        if not engraving_option.accepts(selection.engraving_text):
            raise InvalidSelection("engraving_too_long")

    return ResolvedSelection(
        design=design,
        material=material,
        color=color,
        size=size,
        engraving_option=engraving_option,
        # Sans option de gravure, texte et police ne sont pas conservés
        engraving_text=selection.engraving_text if engraving_option else "",
        engraving_font=selection.engraving_font if engraving_option else "",
    )
