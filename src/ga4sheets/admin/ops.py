from collections.abc import Callable
from dataclasses import dataclass, field
import json
import logging

import google.auth.exceptions
import httplib2
from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from ..resources import field_mask, snake_case_keys, to_snake_case
from .resources import EnhancedMeasurementSettings
from .specs import ResourceSpec

logger = logging.getLogger(__name__)

@dataclass
class RemoteResult():
    """
    What every client call hands back instead of raising.  status 0 means
    the request never got an HTTP answer (timeout, connection refused).
    The discovery client doesn't surface 2xx codes so a success is 200.
    """
    ok: bool
    status: int = 200
    payload: dict|list|None = field(default=None)
    body: str = field(default="")

    def __bool__(self) -> bool:
        return self.ok

    @property
    def not_found(self) -> bool:
        return self.status == 404

    @property
    def rate_limited(self) -> bool:
        return self.status == 429

    @property
    def detail(self) -> str:
        if self.ok:
            return ""
        if self.status == 0:
            return f"Transport error: {self.body}"
        if self.not_found:
            return f"Not found (HTTP 404): {self.body}"
        return f"HTTP {self.status}: {self.body}"


def _error_body(e: HttpError) -> str:
    content = e.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return content or str(e)


class _AdminClientBase():
    def __init__(self, service: Resource) -> None:
        self._service = service

    def _resource(self, path: tuple[str,...]):
        """Walk e.g. ('properties', 'customDimensions') down the discovery service"""
        res = self._service
        for name in path:
            res = getattr(res, name)()
        return res

    def _execute(self, build_request: Callable[[], object]) -> RemoteResult:
        try:
            response = build_request().execute()
        except HttpError as e:
            return RemoteResult(False, e.resp.status, body=_error_body(e))
        except (httplib2.HttpLib2Error, OSError) as e:
            return RemoteResult(False, 0, body=str(e) or e.__class__.__name__)
        except google.auth.exceptions.GoogleAuthError as e:
            # a rejected token that can't be refreshed, the 401 never reaches us as an HttpError
            return RemoteResult(False, 401, body=str(e) or e.__class__.__name__)
        return RemoteResult(True, 200, payload=response if response is not None else {})


class CollectionClient(_AdminClientBase):
    """
    list/get/create/update/delete/archive for one kind of Admin API
    collection, driven by its ResourceSpec.
    https://developers.google.com/analytics/devguides/config/admin/v1/rest
    """
    def __init__(self, service: Resource, spec: ResourceSpec,
                 page_size: int = 200) -> None:
        super().__init__(service)
        self.spec = spec
        self.page_size = page_size

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{self.spec.kind}"

    def _collection(self):
        return self._resource(self.spec.collection)

    def list(self, parent: str, page_token: str|None = None) -> RemoteResult:
        """
        One page.  payload is {'items': [...], 'nextPageToken': str|None},
        the API leaves the collection key out entirely when it is empty.
        Properties are the odd one, they are listed with a filter on the
        account rather than a parent.
        """
        args = {"pageSize": self.page_size}
        if page_token:
            args["pageToken"] = page_token
        if self.spec.list_by_filter:
            args["filter"] = f"parent:{parent}"
        else:
            args["parent"] = parent
        result = self._execute(lambda: self._collection().list(**args))
        if result:
            response = result.payload or {}
            result.payload = {"items": list(response.get(self.spec.collection_name, [])),
                              "nextPageToken": response.get("nextPageToken", None)}
        return result

    def list_all(self, parent: str) -> RemoteResult:
        """
        Drain every page.  A failure on any page fails the whole listing,
        a partial list would make existing resources look absent.
        """
        items = []
        page_token = None
        pages = 0
        while True:
            result = self.list(parent, page_token)
            if not result:
                logger.error("listing %s under %s failed on page %d: %s",
                             self.spec.collection_name, parent, pages + 1, result.detail)
                return result
            pages += 1
            items.extend(result.payload["items"])
            page_token = result.payload["nextPageToken"]
            if not page_token:
                break
        logger.debug("listed %d %s under %s in %d page(s)", len(items),
                     self.spec.collection_name, parent, pages)
        return RemoteResult(True, 200, payload=items)

    def get(self, name: str) -> RemoteResult:
        return self._execute(lambda: self._collection().get(name=name))

    def create(self, parent: str, identifier: str, body: dict) -> RemoteResult:
        """
        Calculated metrics take their id in the query string, everything else
        carries it in the body.
        """
        body = dict(body)
        args = {}
        if self.spec.id_query_param:
            body.pop(self.spec.key_field, None)
            args[self.spec.id_query_param] = identifier
        elif identifier:
            body.setdefault(self.spec.key_field, identifier)
        if self.spec.parent_in_body:
            body["parent"] = parent
        else:
            args["parent"] = parent
        return self._execute(lambda: self._collection().create(body=body, **args))

    def update(self, name: str, body: dict, update_mask: str|None = None) -> RemoteResult:
        """PATCH, the mask defaults to whatever fields are in the body"""
        mask = update_mask if update_mask is not None else field_mask(body)
        return self._execute(lambda: self._collection().patch(name=name, updateMask=mask, body=body))

    def delete(self, name: str) -> RemoteResult:
        return self._execute(lambda: self._collection().delete(name=name))

    def archive(self, name: str) -> RemoteResult:
        """Custom dimensions and metrics can't be deleted, only archived"""
        return self._execute(lambda: self._collection().archive(name=name, body={}))

    def remove(self, name: str) -> RemoteResult:
        if self.spec.removal == "archive":
            return self.archive(name)
        if self.spec.removal == "delete":
            return self.delete(name)
        raise RuntimeError(f"{self.spec.kind} resources cannot be removed")


class EnhancedMeasurementClient(_AdminClientBase):
    """
    The enhanced measurement settings singleton under a web data stream.
    The field names on this endpoint have been seen accepted as camelCase
    in some places and snake_case in others so an update tries camelCase
    first and falls back to snake_case once.
    """
    _STREAMS = ("properties", "dataStreams")

    def __init__(self, service: Resource, spec: ResourceSpec|None = None) -> None:
        super().__init__(service)
        self.spec = spec

    @staticmethod
    def settings_name(stream_name: str) -> str:
        return f"{stream_name.rstrip('/')}/enhancedMeasurementSettings"

    def get_enhanced_measurement(self, stream_name: str) -> RemoteResult:
        name = self.settings_name(stream_name)
        return self._execute(lambda: self._resource(self._STREAMS).getEnhancedMeasurementSettings(name=name))

    def _patch(self, name: str, body: dict, mask: str) -> RemoteResult:
        return self._execute(lambda: self._resource(self._STREAMS).updateEnhancedMeasurementSettings(
            name=name, updateMask=mask, body=body))

    def update_enhanced_measurement(self, stream_name: str,
                                    settings: EnhancedMeasurementSettings|dict) -> RemoteResult:
        name = self.settings_name(stream_name)
        body = settings.trim() if isinstance(settings, EnhancedMeasurementSettings) else dict(settings)
        body.pop("name", None)
        mask = field_mask(body)
        first = self._patch(name, body, mask)
        if first:
            return first
        logger.info("camelCase enhanced measurement update on %s failed with %s, retrying as snake_case",
                    stream_name, first.detail)
        snake_body = snake_case_keys(body)
        snake_mask = ",".join(to_snake_case(k) for k in body)
        second = self._patch(name, snake_body, snake_mask)
        if second:
            return second
        combined = json.dumps({
            "camelCase": {"updateMask": mask, "body": body,
                          "status": first.status, "response": first.body},
            "snake_case": {"updateMask": snake_mask, "body": snake_body,
                           "status": second.status, "response": second.body}
        })
        logger.error("enhanced measurement update on %s failed both ways: %s", stream_name, combined)
        return RemoteResult(False, second.status, body=combined)


def make_client(service: Resource, spec: ResourceSpec,
                page_size: int = 200) -> CollectionClient|EnhancedMeasurementClient:
    if spec.singleton:
        return EnhancedMeasurementClient(service, spec)
    return CollectionClient(service, spec, page_size)
