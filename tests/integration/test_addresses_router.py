from conftest import ALBUM_ID, SHIPPING

ADDR_URL = f"/api/v1/albums/{ALBUM_ID}/addresses"


def test_save_list_delete(client, cart_headers):
    r = client.post(ADDR_URL, json=SHIPPING, headers=cart_headers)
    assert r.status_code == 201
    saved = r.json()
    assert saved["id"].startswith("addr_")

    # Adresse identique: pas de doublon
    assert client.post(ADDR_URL, json=SHIPPING, headers=cart_headers).json()["id"] == saved["id"]
    assert len(client.get(ADDR_URL, headers=cart_headers).json()["addresses"]) == 1

    assert client.delete(f"{ADDR_URL}/{saved['id']}", headers=cart_headers).json() == {"status": "ok"}
    assert client.get(ADDR_URL, headers=cart_headers).json()["addresses"] == []


def test_addresses_are_scoped_to_album(client, cart_headers):
    saved = client.post(ADDR_URL, json=SHIPPING, headers=cart_headers).json()
    other = "/api/v1/albums/alb-2/addresses"
    assert client.get(other, headers=cart_headers).json()["addresses"] == []
    assert client.delete(f"{other}/{saved['id']}", headers=cart_headers).status_code == 404


def test_incomplete_address_is_422(client, cart_headers):
    r = client.post(ADDR_URL, json={**SHIPPING, "zip": ""}, headers=cart_headers)
    assert r.status_code == 422


def test_token_required(client):
    assert client.get(ADDR_URL).status_code == 400
