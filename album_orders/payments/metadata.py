"""
Sérialisation/désérialisation des métadonnées Stripe d'un PaymentIntent
(album, cart token, ids de commandes, client).
"""
from typing import Any, Dict, Iterable, List, Optional

# Stripe: valeurs de métadonnées limitées à 500 caractères
MAX_VALUE_LENGTH = 500


# module album_orders.payments.metadata
def build_intent_metadata(
    *,
    client_album_id: str,
    cart_token: str,
    order_ids: Iterable[str],
    customer_name: str = "",
    customer_email: str = "",
    album_title: str = "",
) -> Dict[str, str]:
    meta = {
        "client_album_id": str(client_album_id),
        "cart_token": cart_token,
        "order_ids": ",".join(str(i) for i in order_ids),
        "customer_name": customer_name or "",
        "customer_email": customer_email or "",
        "album_title": album_title or "",
    }
    return {k: v[:MAX_VALUE_LENGTH] for k, v in meta.items()}


def extract_order_ids(metadata: Optional[Dict[str, Any]]) -> List[str]:
    """order_ids "a,b,c" -> ["a", "b", "c"]; tolérant aux valeurs absentes."""
    raw = (metadata or {}).get("order_ids") or ""
    return [part.strip() for part in str(raw).split(",") if part.strip()]


def event_object(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extrait event.data.object depuis un événement Stripe (webhook).
    Retourne {} si la structure est inattendue.
    """
    if not isinstance(event, dict):
        return {}
    obj = (event.get("data") or {}).get("object") or {}
    return obj if isinstance(obj, dict) else {}
