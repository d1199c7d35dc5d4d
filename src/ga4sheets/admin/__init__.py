"""
Google Analytics 4 Admin API wrappers.  The REST surface used here is the
v1alpha discovery document since calculated metrics, channel groups and the
enhanced measurement settings only exist there.
"""
import re

ADMIN_API_NAME = "analyticsadmin"
ADMIN_API_VERSION = "v1alpha"

# parameter names, calculated metric ids
IDENTIFIER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

def property_path(value: str) -> str:
    """Accepts '123' or 'properties/123'"""
    return _path("properties", value)

def account_path(value: str) -> str:
    """Accepts '123' or 'accounts/123'"""
    return _path("accounts", value)

def stream_path(property_id: str, stream_id: str) -> str:
    """
    Stream IDs are only addressable under their property.  A full
    'properties/1/dataStreams/2' stream id is taken as is.
    """
    s = str(stream_id).strip().strip("/")
    if s.startswith("properties/"):
        return s
    return f"{property_path(property_id)}/{_path('dataStreams', s)}"

def _path(collection: str, value: str) -> str:
    v = str(value if value is not None else "").strip().strip("/")
    prefix = f"{collection}/"
    if v.startswith(prefix):
        v = v[len(prefix):]
    return f"{prefix}{v}" if v else ""
