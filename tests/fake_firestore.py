"""In-memory stand-in for the slice of the Firestore client the app uses.

Test-only. Supports collection/document references, add/set/update/delete,
``where`` with ==, >=, >, <=, <, ``order_by``, ``stream`` and ``on_snapshot``.
Watches are notified synchronously after every write.
"""
import copy
import itertools
from datetime import datetime, timezone

from firebase_admin import firestore
from google.api_core import exceptions as gexc

_OPS = {
    "==": lambda a, b: a == b,
    ">=": lambda a, b: a >= b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    "<": lambda a, b: a < b,
}


def _resolve(data):
    now = datetime.now(timezone.utc)
    return {k: (now if v is firestore.SERVER_TIMESTAMP else copy.deepcopy(v)) for k, v in data.items()}


class FakeSnapshot:
    def __init__(self, doc_id, data, reference=None):
        self.id = doc_id
        self._data = copy.deepcopy(data)
        self.reference = reference

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeWatch:
    def __init__(self, store, query, callback):
        self.store = store
        self.query = query
        self.callback = callback
        self.active = True

    def fire(self):
        if self.active:
            self.callback(self.query.stream(), [], datetime.now(timezone.utc))

    def unsubscribe(self):
        self.active = False
        if self in self.store.watches:
            self.store.watches.remove(self)


class FakeQuery:
    def __init__(self, collection, filters=(), order=None, direction="ASCENDING"):
        self.collection = collection
        self.filters = list(filters)
        self.order = order
        self.direction = direction

    def where(self, field, op, value):
        return FakeQuery(self.collection, self.filters + [(field, op, value)], self.order, self.direction)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self.collection, self.filters, field, direction)

    def _matches(self, data):
        for field, op, value in self.filters:
            if field not in data or not _OPS[op](data[field], value):
                return False
        return True

    def stream(self):
        store = self.collection.store
        store.check_read()
        docs = [
            (doc_id, data)
            for doc_id, data in self.collection.docs.items()
            if self._matches(data)
        ]
        order = self.order
        if order is None:
            order = next((f for f, op, _ in self.filters if op != "=="), None)
        if order is not None:
            docs = [d for d in docs if order in d[1]]
            docs.sort(key=lambda d: d[1][order], reverse=self.direction == "DESCENDING")
        return [FakeSnapshot(doc_id, data, self.collection.document(doc_id)) for doc_id, data in docs]

    def on_snapshot(self, callback):
        self.collection.store.check_read()
        watch = FakeWatch(self.collection.store, self, callback)
        self.collection.store.watches.append(watch)
        watch.fire()
        return watch


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def get(self):
        store = self.collection.store
        store.check_read()
        snap = FakeSnapshot(self.id, self.collection.docs.get(self.id), self)
        if store.after_get is not None:
            hook, store.after_get = store.after_get, None
            hook(self)
        return snap

    def set(self, data, merge=False):
        store = self.collection.store
        store.check_write()
        current = self.collection.docs.get(self.id) if merge else None
        merged = dict(current or {})
        merged.update(_resolve(data))
        self.collection.docs[self.id] = merged
        store.notify()

    def update(self, data):
        store = self.collection.store
        store.check_write()
        if self.id not in self.collection.docs:
            raise gexc.NotFound(f"No document to update: {self.id}")
        self.collection.docs[self.id].update(_resolve(data))
        store.notify()

    def delete(self):
        store = self.collection.store
        store.check_write()
        self.collection.docs.pop(self.id, None)
        store.notify()


class FakeCollection(FakeQuery):
    def __init__(self, store, name):
        super().__init__(self)
        self.store = store
        self.name = name
        self.docs = {}

    def document(self, doc_id=None):
        return FakeDocumentRef(self, doc_id or self.store.new_id())

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return datetime.now(timezone.utc), ref


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.watches = []
        self.fail_reads = False
        self.fail_writes = False
        self.after_get = None
        self._ids = itertools.count(1)

    def new_id(self):
        return f"doc{next(self._ids):04d}"

    def collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]

    def check_read(self):
        if self.fail_reads:
            raise gexc.ServiceUnavailable("Firestore unavailable")

    def check_write(self):
        if self.fail_writes:
            raise gexc.ServiceUnavailable("Firestore unavailable")

    def notify(self):
        for watch in list(self.watches):
            watch.fire()
