import json

import google.auth.exceptions
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.http import HttpMockSequence, HttpRequest

from ga4sheets.admin.ops import CollectionClient, EnhancedMeasurementClient, make_client
from ga4sheets.admin.resources import EnhancedMeasurementSettings
from ga4sheets.admin.specs import (CALCULATED_METRICS, CUSTOM_DIMENSIONS, ENHANCED_MEASUREMENT,
                                   PROPERTIES)

PARENT = "properties/123"
STREAM = "properties/123/dataStreams/456"

def dims(service) -> CollectionClient:
    return CollectionClient(service, CUSTOM_DIMENSIONS, page_size=2)

def test_list_single_page(service, backend):
    backend.seed("customDimensions", PARENT, {"name": f"{PARENT}/customDimensions/1", "parameterName": "a"})
    result = dims(service).list(PARENT)
    assert(result)
    assert(result.payload["items"][0]["parameterName"] == "a")
    assert(result.payload["nextPageToken"] is None)
    assert(backend.calls_to("list")[0] == {"pageSize": 2, "parent": PARENT})

def test_list_empty_collection_key_missing(service):
    result = dims(service).list(PARENT)
    assert(result.payload == {"items": [], "nextPageToken": None})

def test_list_all_drains_pages(service, backend):
    backend.seed("customDimensions", PARENT,
                 *({"name": f"{PARENT}/customDimensions/{i}", "parameterName": f"p{i}"} for i in range(3)))
    result = dims(service).list_all(PARENT)
    assert(result)
    assert([i["parameterName"] for i in result.payload] == ["p0", "p1", "p2"])
    calls = backend.calls_to("list")
    assert(len(calls) == 2)
    assert("pageToken" not in calls[0])
    assert(calls[1]["pageToken"] == "2")

def test_list_all_fails_if_any_page_fails(service, backend):
    backend.seed("customDimensions", PARENT,
                 *({"name": f"{PARENT}/customDimensions/{i}", "parameterName": f"p{i}"} for i in range(3)))
    backend.fail("list", 503, after=1)
    result = dims(service).list_all(PARENT)
    assert(not result)
    assert(result.status == 503)
    assert(len(backend.calls_to("list")) == 2)

def test_properties_listed_by_filter(service, backend):
    backend.seed("properties", "accounts/9", {"name": "properties/1", "displayName": "Shop"})
    result = CollectionClient(service, PROPERTIES).list_all("accounts/9")
    assert(result.payload[0]["displayName"] == "Shop")
    assert(backend.calls_to("list")[0]["filter"] == "parent:accounts/9")

def test_create_identifier_in_body(service, backend):
    result = dims(service).create(PARENT, "p1", {"displayName": "P1", "scope": "EVENT"})
    assert(result)
    call = backend.calls_to("create")[0]
    assert(call["parent"] == PARENT)
    assert(call["body"]["parameterName"] == "p1")

def test_create_calculated_metric_identifier_in_query(service, backend):
    client = CollectionClient(service, CALCULATED_METRICS)
    result = client.create(PARENT, "revenuePerUser", {"calculatedMetricId": "revenuePerUser",
                                                      "formula": "{a}/{b}", "metricUnit": "CURRENCY"})
    assert(result)
    call = backend.calls_to("create")[0]
    assert(call["calculatedMetricId"] == "revenuePerUser")
    assert("calculatedMetricId" not in call["body"])
    assert(result.payload["name"] == f"{PARENT}/calculatedMetrics/revenuePerUser")

def test_create_property_parent_in_body(service, backend):
    CollectionClient(service, PROPERTIES).create("accounts/9", "Shop", {"displayName": "Shop",
                                                                      "timeZone": "UTC"})
    call = backend.calls_to("create")[0]
    assert("parent" not in call)
    assert(call["body"]["parent"] == "accounts/9")

def test_update_mask_from_body(service, backend):
    name = f"{PARENT}/customDimensions/1"
    backend.seed("customDimensions", PARENT, {"name": name, "parameterName": "a", "displayName": "A"})
    result = dims(service).update(name, {"displayName": "B", "description": "d"})
    assert(result)
    assert(backend.calls_to("patch")[0]["updateMask"] == "displayName,description")
    assert(result.payload["displayName"] == "B")

def test_remote_errors(service, backend):
    client = dims(service)
    missing = client.delete(f"{PARENT}/customDimensions/404")
    assert(not missing)
    assert(missing.not_found)
    assert(missing.detail.startswith("Not found"))

    backend.fail("create", 500, message="backend exploded")
    failed = client.create(PARENT, "p", {})
    assert(failed.status == 500)
    assert("backend exploded" in failed.body)
    assert(failed.detail.startswith("HTTP 500"))

    backend.fail("create", exc=TimeoutError("timed out"))
    timed_out = client.create(PARENT, "p", {})
    assert(not timed_out)
    assert(timed_out.status == 0)
    assert(timed_out.detail == "Transport error: timed out")

def test_unrefreshable_token_is_a_401_result():
    # a bare access token has nothing to refresh with, google-auth raises instead of handing back the 401
    http = HttpMockSequence([({"status": "401"}, b""), ({"status": "401"}, b"")])
    authed = AuthorizedHttp(Credentials(token="expired"), http=http)
    uri = f"https://analyticsadmin.googleapis.com/v1alpha/{PARENT}/customDimensions"
    client = CollectionClient(None, CUSTOM_DIMENSIONS)
    result = client._execute(lambda: HttpRequest(authed, lambda resp, content: content, uri))
    assert(not result)
    assert(result.status == 401)
    assert(result.detail.startswith("HTTP 401"))

def test_auth_errors_returned_not_raised(service, backend):
    backend.fail("list", exc=google.auth.exceptions.RefreshError("token expired"))
    result = dims(service).list_all(PARENT)
    assert(not result)
    assert(result.status == 401)
    assert("token expired" in result.body)

def test_remove_archives_dimensions(service, backend):
    name = f"{PARENT}/customDimensions/1"
    backend.seed("customDimensions", PARENT, {"name": name, "parameterName": "a"})
    assert(dims(service).remove(name))
    assert(backend.calls_to("archive")[0] == {"name": name, "body": {}})
    assert(not backend.calls_to("delete"))

def test_enhanced_measurement_camel_case_first(service, backend):
    client = EnhancedMeasurementClient(service)
    result = client.update_enhanced_measurement(STREAM, EnhancedMeasurementSettings(scrollsEnabled=False))
    assert(result)
    calls = backend.calls_to("updateEnhancedMeasurementSettings")
    assert(len(calls) == 1)
    assert(calls[0]["name"] == f"{STREAM}/enhancedMeasurementSettings")
    assert(calls[0]["updateMask"] == "scrollsEnabled")

def test_enhanced_measurement_snake_case_fallback(service, backend):
    backend.fail("updateEnhancedMeasurementSettings", 400)
    client = EnhancedMeasurementClient(service)
    result = client.update_enhanced_measurement(STREAM, {"streamEnabled": True, "siteSearchEnabled": False})
    assert(result)
    calls = backend.calls_to("updateEnhancedMeasurementSettings")
    assert(len(calls) == 2)
    assert(calls[0]["body"] == {"streamEnabled": True, "siteSearchEnabled": False})
    assert(calls[1]["updateMask"] == "stream_enabled,site_search_enabled")
    assert(calls[1]["body"] == {"stream_enabled": True, "site_search_enabled": False})

def test_enhanced_measurement_double_failure(service, backend):
    backend.fail("updateEnhancedMeasurementSettings", 400, message="camel rejected")
    backend.fail("updateEnhancedMeasurementSettings", 400, message="snake rejected")
    result = EnhancedMeasurementClient(service).update_enhanced_measurement(STREAM, {"streamEnabled": True})
    assert(not result)
    detail = json.loads(result.body)
    assert(detail["camelCase"]["body"] == {"streamEnabled": True})
    assert("camel rejected" in detail["camelCase"]["response"])
    assert(detail["snake_case"]["updateMask"] == "stream_enabled")
    assert("snake rejected" in detail["snake_case"]["response"])

def test_make_client(service):
    assert(isinstance(make_client(service, ENHANCED_MEASUREMENT), EnhancedMeasurementClient))
    assert(isinstance(make_client(service, CUSTOM_DIMENSIONS), CollectionClient))
