# album_orders.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du service de commandes d'albums.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe)
- Paramètres métier: devise, stockage des commandes, relances panier
- Sécurité: hash du code admin, CORS/hosts
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

# Supabase: URLs et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON_KEY = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stockage des commandes: "supabase" (production) ou "memory" (dev/tests)
ORDER_STORE = _clean_env(os.getenv("ORDER_STORE") or "supabase").lower()

# Stripe: clés publiques/privées et secret webhook
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
# Paiement exigé au checkout seulement si Stripe est activé ET configuré
STRIPE_ENABLED = _env_flag("STRIPE_ENABLED", "true") and bool(STRIPE_SECRET_KEY)
STRIPE_TIMEOUT_SECONDS = float(_clean_env(os.getenv("STRIPE_TIMEOUT_SECONDS") or "10"))
# Stripe limite le descripteur à 22 caractères
STRIPE_STATEMENT_DESCRIPTOR = _clean_env(os.getenv("STRIPE_STATEMENT_DESCRIPTOR") or "")[:22]

CURRENCY = (_clean_env(os.getenv("CURRENCY") or "usd")).lower()

# Relances panier: ancienneté minimale (jours) des articles 'submitted'
CART_REMINDER_DAYS = int(_clean_env(os.getenv("CART_REMINDER_DAYS") or "3") or 3)
if CART_REMINDER_DAYS < 1:
    CART_REMINDER_DAYS = 3

# Admin: hash bcrypt du code d'accès (éviter stockage en clair)
ADMIN_SECRET_HASH = _clean_env(os.getenv("ADMIN_SECRET_HASH", ""))

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000").rstrip("/")
# Page album côté client, utilisée pour la redirection après checkout
ALBUM_PAGE_PATH = os.getenv("ALBUM_PAGE_PATH", "/albums/{client_album_id}")
