from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from album_orders import config
from album_orders.utils.security import check_admin_secret, hash_admin_secret, require_admin, require_cart_token
from album_orders.utils.validators import sanitize_key, sanitize_phone


def _make_app():
    app = FastAPI()

    @app.get("/cart")
    def cart(token: str = Depends(require_cart_token)):
        return {"token": token}

    @app.get("/admin")
    def admin(ok: bool = Depends(require_admin)):
        return {"ok": ok}

    return app


def test_hash_and_check_admin_secret():
    hashed = hash_admin_secret("s3cret")
    assert hashed.startswith("$2")
    assert check_admin_secret("s3cret", hashed) is True
    assert check_admin_secret("wrong", hashed) is False
    assert check_admin_secret("", hashed) is False
    # Hash mal formé: refus sans exception
    assert check_admin_secret("s3cret", "not-a-bcrypt-hash") is False


def test_require_cart_token_header():
    client = TestClient(_make_app())
    r = client.get("/cart", headers={"X-Cart-Token": "Cart_ABC-123"})
    assert r.json() == {"token": "cart_abc-123"}
    assert client.get("/cart").status_code == 400
    # Caractères exotiques retirés: token vide -> 400
    assert client.get("/cart", headers={"X-Cart-Token": "<>!"}).status_code == 400


def test_require_admin(monkeypatch, admin_headers):
    client = TestClient(_make_app())
    assert client.get("/admin", headers=admin_headers).json() == {"ok": True}
    assert client.get("/admin", headers={"X-Admin-Key": "nope"}).status_code == 403
    assert client.get("/admin").status_code == 403


def test_require_admin_not_configured(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_SECRET_HASH", "")
    client = TestClient(_make_app())
    assert client.get("/admin", headers={"X-Admin-Key": "x"}).status_code == 503


def test_sanitizers():
    assert sanitize_key("  Tok<en>_1 ") == "token_1"
    assert sanitize_phone(" +1 (555) 010.2030 ext") == "+1 (555) 010.2030"
