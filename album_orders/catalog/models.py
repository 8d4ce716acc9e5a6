# module album_orders.catalog.models
"""
Entités du catalogue (lecture seule pour le cœur commande).
- Material / Color / Size / EngravingOption: options globales du photographe
- Design: propre à un album client (prix de base + crédits)
- Catalog: instantané indexé par id (map id -> entité), jamais par position
"""
import json
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TextureRegion(BaseModel):
    """Zone de la texture affichée en aperçu (x/y en %, zoom en facteur)."""
    model_config = ConfigDict(frozen=True)

    x: float = 50.0
    y: float = 50.0
    zoom: float = 1.0


class Color(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: Literal["solid", "texture"] = "solid"
    value: str = ""
    texture_image: Optional[str] = None
    texture_region: Optional[TextureRegion] = None
    preview_image: Optional[str] = None

    @field_validator("texture_region", mode="before")
    @classmethod
    def _decode_region(cls, v):
        # Anciennes données: région stockée en chaîne JSON, décodée une seule fois ici
        if isinstance(v, str):
            if not v.strip():
                return None
            try:
                v = json.loads(v)
            except ValueError:
                return None
        return v


class Material(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    upcharge: Decimal = Field(default=Decimal("0"), ge=0)
    allow_engraving: bool = False
    colors: Tuple[Color, ...] = ()
    restricted_sizes: FrozenSet[str] = frozenset()

    def color(self, color_id: str) -> Optional[Color]:
        for c in self.colors:
            if c.id == color_id:
                return c
        return None

    def allows_size(self, size_id: str) -> bool:
        return not self.restricted_sizes or size_id in self.restricted_sizes


class Size(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    dimensions: str = ""
    upcharge: Decimal = Field(default=Decimal("0"), ge=0)


class EngravingOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    upcharge: Decimal = Field(default=Decimal("0"), ge=0)
    character_limit: int = Field(default=0, ge=0)
    fonts: Tuple[str, ...] = ()

    def accepts(self, text: str) -> bool:
        return self.character_limit == 0 or len(text or "") <= self.character_limit


class Design(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    name: str
    base_price: Decimal = Field(default=Decimal("0"), ge=0)
    free_album_credits: int = Field(default=0, ge=0)
    dollar_credit: Decimal = Field(default=Decimal("0"), ge=0)
    pdf_id: Optional[str] = None


class Catalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    materials: Dict[str, Material] = Field(default_factory=dict)
    sizes: Dict[str, Size] = Field(default_factory=dict)
    engraving_options: Dict[str, EngravingOption] = Field(default_factory=dict)
    designs: Dict[int, Design] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        materials: Iterable[Material] = (),
        sizes: Iterable[Size] = (),
        engraving_options: Iterable[EngravingOption] = (),
        designs: Iterable[Design] = (),
    ) -> "Catalog":
        return cls(
            materials={m.id: m for m in materials},
            sizes={s.id: s for s in sizes},
            engraving_options={e.id: e for e in engraving_options},
            designs={d.index: d for d in designs},
        )

    @property
    def is_empty(self) -> bool:
        return not (self.materials or self.sizes or self.designs)
