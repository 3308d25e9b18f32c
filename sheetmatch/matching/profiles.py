"""
Profile keyword bags.

A profile names a known document family. For each semantic category it
recognises in a column's label/key (money, dates, quantities, descriptions...)
it supplies extra header keywords that earn the column a score boost.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from sheetmatch.matching.config import CERTIFICADO_PROFILE
from sheetmatch.text import normalize_text


@dataclass(frozen=True)
class KeywordBag:
    """``triggers`` are looked up in the column's label+key; ``keywords`` in the header."""
    triggers: Tuple[str, ...]
    keywords: Tuple[str, ...]


CERTIFICADO_BAGS: Tuple[KeywordBag, ...] = (
    KeywordBag(("nro", "numero"), ("nro", "numero", "certificado", "n°", "n")),
    KeywordBag(("fecha",), ("fecha", "certificacion", "emision", "date")),
    KeywordBag(("obra", "proyecto"), ("obra", "proyecto")),
    KeywordBag(("proveedor",), ("proveedor",)),
    KeywordBag(("encargado", "solicitante"), ("encargado", "solicitante", "pedido")),
    KeywordBag(("total", "monto", "importe"), ("total", "monto", "importe", "certificado", "acumulado")),
    KeywordBag(("cantidad",), ("cantidad", "cant")),
    KeywordBag(("unidad",), ("unidad", "u")),
    KeywordBag(("descripcion", "detalle", "material"), ("descripcion", "detalle", "material", "rubro")),
    KeywordBag(("precio",), ("precio", "unitario", "importe")),
)

PROFILE_BAGS: Dict[str, Tuple[KeywordBag, ...]] = {
    CERTIFICADO_PROFILE: CERTIFICADO_BAGS,
}


def profile_keywords(profile: str, label: str, field_key: str) -> List[str]:
    """Normalised boost keywords for a column, in bag order, without duplicates."""
    bags = PROFILE_BAGS.get(profile or "")
    if not bags:
        return []
    subject = normalize_text(f"{label} {field_key.replace('_', ' ')}")
    out: List[str] = []
    for bag in bags:
        if not any(t in subject for t in bag.triggers):
            continue
        for kw in bag.keywords:
            norm = normalize_text(kw)
            if norm and norm not in out:
                out.append(norm)
    return out
