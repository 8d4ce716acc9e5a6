"""
Verrous par clé (threading) pour sérialiser les opérations d'un même panier.
- Les endpoints FastAPI synchrones tournent dans un threadpool: verrous threading.
- Registre à compteur de références: un verrou disparaît quand plus personne ne l'attend.
- Ordre d'acquisition imposé côté service: panier (token) puis crédits (album).
"""
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List
import threading


class KeyedLocks:
    def __init__(self):
        self._guard = threading.Lock()
        # clé -> [verrou, nombre de détenteurs/attentes]
        self._locks: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def cart_key(client_album_id: str, cart_token: str) -> tuple:
    return ("cart", str(client_album_id), cart_token)


def credit_key(client_album_id: str) -> tuple:
    return ("credits", str(client_album_id))
