import pytest

from ga4sheets.admin.ops import CollectionClient
from ga4sheets.admin.specs import CHANNEL_GROUPS, CUSTOM_DIMENSIONS
from ga4sheets.errors import ExistenceLookupError
from ga4sheets.index import ExistenceIndex

PARENT = "properties/123"

def make_index(service, spec=CUSTOM_DIMENSIONS) -> ExistenceIndex:
    return ExistenceIndex(CollectionClient(service, spec, page_size=2), spec.index_keys)

def test_ensure_lists_once(service, backend):
    backend.seed("customDimensions", PARENT,
                 *({"name": f"{PARENT}/customDimensions/{i}", "parameterName": f"p{i}"} for i in range(3)))
    index = make_index(service)
    assert(PARENT not in index)
    ids = index.ensure(PARENT)
    # both pages drained before the parent counts as indexed
    assert(ids == {"p0", "p1", "p2"})
    assert(len(backend.calls_to("list")) == 2)
    assert(PARENT in index)
    assert(index.ensure(PARENT) is ids)
    assert(index.exists(PARENT, "p1"))
    assert(len(backend.calls_to("list")) == 2)
    assert(index.name_of(PARENT, "p2") == f"{PARENT}/customDimensions/2")

def test_mark_created_visible_without_relisting(service, backend):
    index = make_index(service)
    assert(not index.exists(PARENT, "fresh"))
    index.mark_created(PARENT, "fresh", {"name": f"{PARENT}/customDimensions/9", "parameterName": "fresh"})
    assert(index.exists(PARENT, "fresh"))
    assert(index.name_of(PARENT, "fresh") == f"{PARENT}/customDimensions/9")
    assert(len(backend.calls_to("list")) == 1)

def test_failed_listing_not_cached(service, backend):
    index = make_index(service)
    backend.fail("list", 403, message="no access")
    with pytest.raises(ExistenceLookupError) as e:
        index.ensure(PARENT)
    assert(e.value.status == 403)
    assert(PARENT not in index)
    assert(index.ensure(PARENT) == set())
    assert(len(backend.calls_to("list")) == 2)

def test_parents_are_separate(service, backend):
    backend.seed("customDimensions", PARENT, {"name": f"{PARENT}/customDimensions/1", "parameterName": "a"})
    index = make_index(service)
    assert(index.exists(PARENT, "a"))
    assert(not index.exists("properties/999", "a"))
    assert(len(index) == 2)

def test_mark_removed_drops_aliases(service, backend):
    name = f"{PARENT}/channelGroups/77"
    backend.seed("channelGroups", PARENT, {"name": name, "displayName": "Custom"})
    index = make_index(service, CHANNEL_GROUPS)
    assert(index.ensure(PARENT) == {"Custom", "77"})
    index.mark_removed(PARENT, "77")
    assert(index.ensure(PARENT) == set())
    assert(index.name_of(PARENT, "Custom") is None)

def test_listing_goes_through_call_wrapper(service, backend):
    wrapped = []
    def call(fn):
        wrapped.append(fn)
        return fn()
    index = ExistenceIndex(CollectionClient(service, CUSTOM_DIMENSIONS, page_size=2),
                           CUSTOM_DIMENSIONS.index_keys, call)
    index.ensure(PARENT)
    index.ensure(PARENT)
    assert(len(wrapped) == 1)
