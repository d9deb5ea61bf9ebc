"""
Locks exclusivos por producto para el proceso actual

Cada código de producto tiene su propio lock. Una factura toma los locks de
todos los códigos que referencia, en orden lexicográfico, y los mantiene hasta
terminar su transacción (commit o rollback). Dos facturas con conjuntos de
productos disjuntos nunca compiten entre sí.

En PostgreSQL el SELECT ... FOR UPDATE del ledger serializa además entre
procesos; este registro cubre los motores sin locks de fila (SQLite).
"""

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional
import logging
import threading

from billing.core.config import settings

logger = logging.getLogger(__name__)


class LockTimeout(Exception):
    """No se obtuvo el lock de un producto dentro del tiempo configurado"""

    def __init__(self, product_code: str, timeout: float):
        self.product_code = product_code
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for product {product_code}")


class ProductLockRegistry:
    """Registro de locks por código de producto"""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, code: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(code)
            if lock is None:
                lock = threading.Lock()
                self._locks[code] = lock
            return lock

    def is_locked(self, code: str) -> bool:
        return self._lock_for(code).locked()

    @contextmanager
    def hold(self, codes: Iterable[str], timeout: Optional[float] = None) -> Iterator[List[str]]:
        """
        Adquiere los locks de los códigos dados (sin duplicados, ordenados)

        Args:
            codes: códigos de producto referenciados
            timeout: segundos máximos de espera por cada lock; None usa el
                valor del registro y si éste también es None espera sin límite

        Raises:
            LockTimeout: si algún lock no se obtiene a tiempo; los ya tomados
                se liberan antes de propagar
        """
        ordered = sorted(set(codes))
        wait = self.timeout if timeout is None else timeout
        acquired: List[threading.Lock] = []
        try:
            for code in ordered:
                lock = self._lock_for(code)
                if not lock.acquire(timeout=-1 if wait is None else wait):
                    logger.warning(f"Lock timeout for product {code} after {wait}s")
                    raise LockTimeout(code, wait)
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()


# Singleton compartido por todos los hilos de la aplicación
product_locks = ProductLockRegistry(timeout=settings.PRODUCT_LOCK_TIMEOUT)
