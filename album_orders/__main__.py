"""
Point d'entrée principal.

Usage:
    python -m album_orders                    # lance uvicorn
    python -m album_orders hash-secret <code> # affiche le hash bcrypt pour ADMIN_SECRET_HASH

Variables d'environnement:
- PORT: port d'écoute (par défaut 8000)
- UVICORN_RELOAD: active le reload auto en dev ("1"/"true"/"yes")
- LOG_LEVEL: niveau de logs uvicorn (ex: "info", "debug")
"""
import os
import sys

import uvicorn

from album_orders.utils.security import hash_admin_secret

if __name__ == "__main__":
    if len(sys.argv) == 3 and sys.argv[1] == "hash-secret":
        print(hash_admin_secret(sys.argv[2]))
        sys.exit(0)
    port = int(os.environ.get("PORT", 8000))
    # Activer le reload uniquement si explicitement demandé (ex: en local)
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes")
    log_level = os.environ.get("LOG_LEVEL", "info")
    uvicorn.run(
        "album_orders.asgi:app",
        host="0.0.0.0",
        port=port,
        reload=reload_flag,
        log_level=log_level,
    )
