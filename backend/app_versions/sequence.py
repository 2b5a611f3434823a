import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator

from . import store

logger = logging.getLogger(__name__)

_locks_guard = threading.Lock()
# entries drop out once no caller holds or waits on the lock
_app_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()


def _lock_for(app_id) -> threading.Lock:
    key = str(app_id)
    with _locks_guard:
        lock = _app_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _app_locks[key] = lock
        return lock


@contextmanager
def application_lock(app_id) -> Iterator[None]:
    """Serialize version creation for one application within this process.

    Held across the max-sequence read and the insert of the new row. The
    store also locks the app row in the same transaction so that other
    processes sharing the database queue up behind it.
    """
    lock = _lock_for(app_id)
    with lock:
        yield


def is_application_locked(app_id) -> bool:
    with _locks_guard:
        lock = _app_locks.get(str(app_id))
    return lock is not None and lock.locked()


def get_next_app_sequence(app_id, has_prior_version: bool) -> int:
    if not has_prior_version:
        return 0
    max_sequence = store.get_max_sequence(app_id)
    if max_sequence is None:
        logger.warning("App %s was expected to have a prior version but has none; allocating sequence 0", app_id)
        return 0
    return max_sequence + 1
