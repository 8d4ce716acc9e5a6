import logging
from typing import Optional

import bcrypt
from fastapi import Header, HTTPException

from album_orders import config
from album_orders.utils.validators import sanitize_key

logger = logging.getLogger(__name__)

CART_TOKEN_HEADER = "X-Cart-Token"
ADMIN_KEY_HEADER = "X-Admin-Key"


def hash_admin_secret(secret: str) -> str:
    # Génère un hash bcrypt avec salt auto (valeur de ADMIN_SECRET_HASH)
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_admin_secret(secret: str, hashed: str) -> bool:
    if not secret or not hashed:
        return False
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.error("ADMIN_SECRET_HASH invalide (hash bcrypt attendu)")
        return False


def require_cart_token(x_cart_token: Optional[str] = Header(default=None)) -> str:
    """
    Token de panier anonyme (généré et conservé côté navigateur).
    Seul contrôle d'appartenance: égalité stricte du token.
    """
    token = sanitize_key(x_cart_token or "")
    if not token:
        raise HTTPException(status_code=400, detail="Panier introuvable (en-tête X-Cart-Token manquant)")
    return token


def require_admin(x_admin_key: Optional[str] = Header(default=None)) -> bool:
    if not config.ADMIN_SECRET_HASH:
        raise HTTPException(status_code=503, detail="Accès photographe non configuré")
    if not check_admin_secret(x_admin_key or "", config.ADMIN_SECRET_HASH):
        raise HTTPException(status_code=403, detail="Accès interdit")
    return True
