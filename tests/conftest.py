"""
An in-memory stand in for the analyticsadmin discovery service.  It answers
the same chained calls the real one does, e.g.
service.properties().customDimensions().list(parent=...).execute(),
and raises real HttpErrors for anything scripted to fail.
"""
import json

import httplib2
import pytest
from googleapiclient.errors import HttpError

COLLECTIONS = {"properties", "customDimensions", "customMetrics",
               "calculatedMetrics", "channelGroups", "dataStreams"}

def http_error(status: int, message: str = "error") -> HttpError:
    content = json.dumps({"error": {"code": status, "message": message}}).encode("utf-8")
    return HttpError(httplib2.Response({"status": status}), content,
                     uri="https://analyticsadmin.googleapis.com/v1alpha/fake")


class FakeRequest():
    def __init__(self, fn) -> None:
        self._fn = fn

    def execute(self, num_retries: int = 0):
        return self._fn()


class FakeNode():
    def __init__(self, backend, path: tuple = ()) -> None:
        self._backend = backend
        self._path = path

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        if name in COLLECTIONS:
            return lambda: FakeNode(self._backend, self._path + (name,))
        def method(**kwargs):
            self._backend.calls.append((self._path[-1], name, kwargs))
            return FakeRequest(lambda: self._backend.handle(self._path[-1], name, kwargs))
        return method


class FakeAdminBackend():
    def __init__(self, page_size: int = 2) -> None:
        self.items = {}
        self.settings = {}
        self.calls = []
        self.failures = []
        self.page_size = page_size
        self._next_id = 1000

    def seed(self, collection: str, parent: str, *items: dict) -> None:
        self.items.setdefault((collection, parent), []).extend(dict(i) for i in items)

    def fail(self, method: str, status: int = 500, times: int = 1,
             collection: str|None = None, exc: Exception|None = None,
             message: str = "error", after: int = 0) -> None:
        """Script the next matching call(s) to raise, optionally letting `after` calls through first"""
        for _ in range(times):
            self.failures.append({"method": method, "collection": collection,
                                  "exc": exc or http_error(status, message), "after": after})

    def calls_to(self, method: str, collection: str|None = None) -> list[dict]:
        return [kw for c,m,kw in self.calls if m == method and (collection is None or c == collection)]

    def handle(self, collection: str, method: str, kwargs: dict):
        for i, f in enumerate(self.failures):
            if f["method"] == method and (f["collection"] is None or f["collection"] == collection):
                if f["after"] > 0:
                    f["after"] -= 1
                    break
                del self.failures[i]
                raise f["exc"]
        return getattr(self, "_" + method)(collection, **kwargs)

    def _new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def _find(self, collection: str, name: str):
        for (c, _), items in self.items.items():
            if c == collection:
                for item in items:
                    if item.get("name") == name:
                        return items, item
        raise http_error(404, f"{name} not found")

    def _list(self, collection, parent=None, filter=None, pageSize=None, pageToken=None):
        p = parent if parent else filter.split(":", 1)[1]
        items = self.items.get((collection, p), [])
        start = int(pageToken) if pageToken else 0
        page = items[start:start + self.page_size]
        response = {}
        if page:
            response[collection] = [dict(i) for i in page]
        if start + self.page_size < len(items):
            response["nextPageToken"] = str(start + self.page_size)
        return response

    def _create(self, collection, body, parent=None, calculatedMetricId=None):
        p = parent or body["parent"]
        item = dict(body)
        if collection == "calculatedMetrics":
            item["calculatedMetricId"] = calculatedMetricId
            item["name"] = f"{p}/calculatedMetrics/{calculatedMetricId}"
        elif collection == "properties":
            item["name"] = f"properties/{self._new_id()}"
        else:
            item["name"] = f"{p}/{collection}/{self._new_id()}"
        self.items.setdefault((collection, p), []).append(item)
        return dict(item)

    def _get(self, collection, name):
        return dict(self._find(collection, name)[1])

    def _patch(self, collection, name, updateMask, body):
        _, item = self._find(collection, name)
        for f in updateMask.split(","):
            if f in body:
                item[f] = body[f]
        return dict(item)

    def _delete(self, collection, name):
        items, item = self._find(collection, name)
        items.remove(item)
        return {}

    def _archive(self, collection, name, body):
        return self._delete(collection, name)

    def _getEnhancedMeasurementSettings(self, collection, name):
        return dict(self.settings.get(name, {"name": name}))

    def _updateEnhancedMeasurementSettings(self, collection, name, updateMask, body):
        s = self.settings.setdefault(name, {"name": name})
        for f in updateMask.split(","):
            if f in body:
                s[f] = body[f]
        return dict(s)


@pytest.fixture()
def backend() -> FakeAdminBackend:
    return FakeAdminBackend()

@pytest.fixture()
def service(backend: FakeAdminBackend) -> FakeNode:
    return FakeNode(backend)

@pytest.fixture()
def sleeps() -> list[float]:
    return []
