import threading
import time

import pytest

from album_orders.addresses.service import AddressBook, InMemoryAddressRepository
from album_orders.cart.locks import KeyedLocks
from album_orders.errors import NotFound

from conftest import ALBUM_ID, make_shipping


class SlowAddressRepository(InMemoryAddressRepository):
    """Lecture lente: élargit la fenêtre entre la recherche du doublon et l'insertion."""

    def list(self, client_album_id):
        rows = super().list(client_album_id)
        time.sleep(0.01)
        return rows


def test_save_reuses_identical_address():
    book = AddressBook(InMemoryAddressRepository())
    first = book.save(ALBUM_ID, make_shipping())
    again = book.save(ALBUM_ID, make_shipping())
    other = book.save(ALBUM_ID, make_shipping(city="Paris"))
    assert again.id == first.id
    assert other.id != first.id
    assert [a.id for a in book.list(ALBUM_ID)] == [first.id, other.id]


def test_double_submit_stores_address_once():
    repository = SlowAddressRepository()
    book = AddressBook(repository, locks=KeyedLocks())
    saved, errors = [], []

    def _save():
        try:
            saved.append(book.save(ALBUM_ID, make_shipping()))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=_save) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
    assert len(repository.list(ALBUM_ID)) == 1
    assert {a.id for a in saved} == {repository.list(ALBUM_ID)[0].id}


def test_albums_do_not_share_addresses():
    book = AddressBook(InMemoryAddressRepository())
    saved = book.save(ALBUM_ID, make_shipping())
    assert book.list("alb-2") == []
    with pytest.raises(NotFound):
        book.delete("alb-2", saved.id)
    book.delete(ALBUM_ID, saved.id)
    assert book.list(ALBUM_ID) == []
