"""
Static descriptors for each kind of resource the reconciler handles.  A
ResourceSpec says where the collection lives in the discovery service,
which input columns it takes, how a row turns into a resource body and
what identifies a row against what already exists remotely.
"""
from collections.abc import Callable
from dataclasses import dataclass, field, replace
import json

from ..errors import MissingFieldError, ValidationError
from ..report import Action
from ..resources import AdminResourceBase
from ..rows import Column, InputRecord
from . import IDENTIFIER_RE, account_path, property_path, stream_path
from .resources import (CalculatedMetric, ChannelGroup, CustomDimension, CustomMetric,
                        DataStream, EnhancedMeasurementSettings, Property, TriState)

@dataclass(frozen=True)
class ParsedRow():
    parent: str
    identifier: str
    values: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ResourceSpec():
    kind: str
    resource: type
    collection: tuple[str,...]
    key_field: str
    columns: tuple[Column,...]
    parent_of: Callable[[dict], str]
    parent_fields: tuple[str,...] = ("propertyId",)
    update_fields: tuple[str,...] = ()
    validators: tuple[Callable[[dict], None],...] = ()
    build: Callable[[dict], AdminResourceBase]|None = None
    # calculated metrics take their id as a query parameter on create
    id_query_param: str|None = None
    # a second way of naming a row, the server assigned id (channel groups)
    id_field: str|None = None
    list_by_filter: bool = False
    parent_in_body: bool = False
    removal: str|None = "delete"
    missing_required: Action = Action.SKIPPED
    singleton: bool = False

    def __str__(self) -> str:
        return self.kind

    @property
    def collection_name(self) -> str:
        return self.collection[-1]

    @property
    def headers(self) -> list[str]:
        return [c.header for c in self.columns]

    @property
    def removal_columns(self) -> tuple[Column,...]:
        """
        Removing only needs the parent and something to identify the
        resource.  With an id_field either the id or the key will do.
        """
        cols = []
        for c in self.columns:
            if c.field in self.parent_fields:
                cols.append(c)
            elif c.field == self.key_field:
                cols.append(replace(c, required=self.id_field is None))
            elif c.field == self.id_field:
                cols.append(c)
        return tuple(cols)

    def parse(self, record: InputRecord, columns: tuple[Column,...]|None = None) -> ParsedRow:
        """
        Empty required cells raise MissingFieldError, unparseable or
        invalid values raise ValidationError.
        """
        columns = columns if columns is not None else self.columns
        missing = [c.header for c in columns if c.required and not record.get(c.field)]
        if missing:
            raise MissingFieldError(missing)
        values = {}
        for c in columns:
            raw = record.get(c.field)
            if raw:
                try:
                    values[c.field] = c.parse(raw)
                except ValidationError as e:
                    raise ValidationError(c.header, e.reason) from e
        identifier = self.identifier_of(values)
        if not identifier:
            raise MissingFieldError([c.header for c in columns if c.field in (self.key_field, self.id_field)])
        parent = self.parent_of(values)
        for check in self.validators:
            check(values)
        return ParsedRow(parent, identifier, values)

    def identifier_of(self, values: dict) -> str:
        if self.id_field and values.get(self.id_field):
            return str(values[self.id_field])
        return str(values.get(self.key_field, "") or "")

    def build_resource(self, values: dict) -> AdminResourceBase:
        if self.build is not None:
            return self.build(values)
        return self.resource.from_dict(values)

    def create_body(self, resource: AdminResourceBase) -> dict:
        b = resource.trim()
        b.pop("name", None)
        return b

    def update_body(self, resource: AdminResourceBase) -> dict:
        """Only mutable fields, and only the ones the row filled in"""
        return {k: v for k,v in resource.trim().items() if k in self.update_fields}

    def index_keys(self, item: dict) -> list[str]:
        keys = [str(item.get(self.key_field, "") or "")]
        if self.id_field and item.get("name"):
            keys.append(str(item["name"]).split("/")[-1])
        return [k for k in keys if k]

    def export_row(self, item: dict, parent: str) -> list[str]:
        """Flatten a listed item into this kind's input columns"""
        row = []
        for c in self.columns:
            if c.field in self.parent_fields:
                v = parent.split("/")[-1] if c.field == self.parent_fields[0] else ""
            elif c.field == self.id_field:
                v = str(item.get("name", "")).split("/")[-1]
            elif c.field in item:
                v = item[c.field]
            else:
                v = (item.get("webStreamData") or {}).get(c.field, "")
            if isinstance(v, (list, dict)):
                v = json.dumps(v)
            elif isinstance(v, bool):
                v = "TRUE" if v else "FALSE"
            row.append("" if v is None else str(v))
        return row


def _checked_numeric(path: str, header: str) -> str:
    tail = path.split("/")[-1] if path else ""
    if not tail.isdigit():
        raise ValidationError(header, f"'{tail}' is not a numeric id")
    return path

def _property_parent(values: dict) -> str:
    return _checked_numeric(property_path(values.get("propertyId", "")), "Property ID")

def _account_parent(values: dict) -> str:
    return _checked_numeric(account_path(values.get("accountId", "")), "Account ID")

def _stream_parent(values: dict) -> str:
    prop = _property_parent(values)
    return _checked_numeric(stream_path(prop, values.get("streamId", "")), "Stream ID")

def _tristate(value: str) -> bool|None:
    return TriState.parse(value).value

def _csv_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]

def _grouping_rule(value: str) -> list[dict]:
    """A JSON list of rules, or an object carrying one under groupingRule"""
    try:
        rule = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValidationError("groupingRule", f"not valid JSON ({e.msg})") from e
    if isinstance(rule, dict) and "groupingRule" in rule:
        rule = rule["groupingRule"]
    if not isinstance(rule, list):
        raise ValidationError("groupingRule", "must be a JSON list of rule objects")
    return rule

def _identifier(field_name: str, header: str) -> Callable[[dict], None]:
    def check(values: dict) -> None:
        v = values.get(field_name)
        if v and not IDENTIFIER_RE.match(v):
            raise ValidationError(header, f"'{v}' must start with a letter and contain only letters, digits and underscores")
    return check

def _web_uri(values: dict) -> None:
    v = values.get("defaultUri")
    if v and not (v.startswith("https://") or v.startswith("http://")):
        raise ValidationError("Default URI", f"'{v}' must start with http:// or https://")

def _build_stream(values: dict) -> DataStream:
    return DataStream(displayName=values.get("displayName"),
                      webStreamData={"defaultUri": values["defaultUri"]} if values.get("defaultUri") else None)


PROPERTY_ID = Column("Property ID", "propertyId", True, ("propertyId", "property_id", "Property"))
DISPLAY_NAME = Column("Display Name", "displayName", True, ("displayName", "display_name"))
DESCRIPTION = Column("Description", "description")
PARAMETER_NAME = Column("Parameter Name", "parameterName", True, ("parameterName", "parameter_name", "Event Parameter"))

CUSTOM_DIMENSIONS = ResourceSpec(
    kind="custom_dimensions",
    resource=CustomDimension,
    collection=("properties", "customDimensions"),
    key_field="parameterName",
    columns=(PROPERTY_ID, PARAMETER_NAME, DISPLAY_NAME,
             Column("Scope", "scope", True, ("Dimension Scope",)),
             DESCRIPTION,
             Column("Disallow Ads Personalization", "disallowAdsPersonalization",
                    aliases=("disallowAdsPersonalization",), parse=_tristate)),
    parent_of=_property_parent,
    update_fields=("displayName", "description", "disallowAdsPersonalization"),
    validators=(_identifier("parameterName", "Parameter Name"),),
    removal="archive",
)

CUSTOM_METRICS = ResourceSpec(
    kind="custom_metrics",
    resource=CustomMetric,
    collection=("properties", "customMetrics"),
    key_field="parameterName",
    columns=(PROPERTY_ID, PARAMETER_NAME, DISPLAY_NAME,
             Column("Measurement Unit", "measurementUnit", True, ("measurementUnit", "Metric Unit", "Unit")),
             DESCRIPTION,
             Column("Restricted Metric Type", "restrictedMetricType",
                    aliases=("restrictedMetricType",), parse=_csv_list)),
    parent_of=_property_parent,
    update_fields=("displayName", "description", "measurementUnit", "restrictedMetricType"),
    validators=(_identifier("parameterName", "Parameter Name"),),
    removal="archive",
)

# A calculated metric row missing a required cell fails rather than skips
CALCULATED_METRICS = ResourceSpec(
    kind="calculated_metrics",
    resource=CalculatedMetric,
    collection=("properties", "calculatedMetrics"),
    key_field="calculatedMetricId",
    columns=(PROPERTY_ID,
             Column("Calculated Metric ID", "calculatedMetricId", True, ("calculatedMetricId", "Metric ID")),
             DISPLAY_NAME,
             Column("Formula", "formula", True),
             Column("Metric Unit", "metricUnit", True, ("metricUnit", "Unit")),
             DESCRIPTION),
    parent_of=_property_parent,
    update_fields=("displayName", "description", "formula", "metricUnit"),
    validators=(_identifier("calculatedMetricId", "Calculated Metric ID"),),
    id_query_param="calculatedMetricId",
    missing_required=Action.FAILED,
)

CHANNEL_GROUPS = ResourceSpec(
    kind="channel_groups",
    resource=ChannelGroup,
    collection=("properties", "channelGroups"),
    key_field="displayName",
    columns=(PROPERTY_ID,
             Column("Channel Group ID", "channelGroupId", aliases=("channelGroupId",)),
             DISPLAY_NAME,
             DESCRIPTION,
             Column("Grouping Rule", "groupingRule", True, ("groupingRule", "Grouping Rules"), _grouping_rule),
             Column("Primary", "primary", parse=_tristate)),
    parent_of=_property_parent,
    update_fields=("displayName", "description", "groupingRule", "primary"),
    id_field="channelGroupId",
)

DATA_STREAMS = ResourceSpec(
    kind="data_streams",
    resource=DataStream,
    collection=("properties", "dataStreams"),
    key_field="displayName",
    columns=(PROPERTY_ID, DISPLAY_NAME,
             Column("Default URI", "defaultUri", True, ("defaultUri", "URL", "Website URL"))),
    parent_of=_property_parent,
    update_fields=("displayName",),
    validators=(_web_uri,),
    build=_build_stream,
)

PROPERTIES = ResourceSpec(
    kind="properties",
    resource=Property,
    collection=("properties",),
    key_field="displayName",
    columns=(Column("Account ID", "accountId", True, ("accountId", "account_id", "Account")),
             DISPLAY_NAME,
             Column("Time Zone", "timeZone", True, ("timeZone", "time_zone")),
             Column("Currency Code", "currencyCode", aliases=("currencyCode", "Currency")),
             Column("Industry Category", "industryCategory", aliases=("industryCategory", "Industry")),
             Column("Property Type", "propertyType", aliases=("propertyType",))),
    parent_of=_account_parent,
    parent_fields=("accountId",),
    update_fields=("displayName", "timeZone", "currencyCode", "industryCategory"),
    list_by_filter=True,
    parent_in_body=True,
)

_TOGGLES = (("Stream Enabled", "streamEnabled"),
            ("Scrolls Enabled", "scrollsEnabled"),
            ("Outbound Clicks Enabled", "outboundClicksEnabled"),
            ("Site Search Enabled", "siteSearchEnabled"),
            ("Video Engagement Enabled", "videoEngagementEnabled"),
            ("File Downloads Enabled", "fileDownloadsEnabled"),
            ("Page Changes Enabled", "pageChangesEnabled"),
            ("Form Interactions Enabled", "formInteractionsEnabled"))

ENHANCED_MEASUREMENT = ResourceSpec(
    kind="enhanced_measurement",
    resource=EnhancedMeasurementSettings,
    collection=("properties", "dataStreams"),
    key_field="streamId",
    columns=(PROPERTY_ID,
             Column("Stream ID", "streamId", True, ("streamId", "Data Stream ID", "stream_id")),
             *(Column(h, f, aliases=(f,), parse=_tristate) for h,f in _TOGGLES),
             Column("Search Query Parameter", "searchQueryParameter", aliases=("searchQueryParameter",)),
             Column("URI Query Parameter", "uriQueryParameter", aliases=("uriQueryParameter",))),
    parent_of=_stream_parent,
    parent_fields=("propertyId", "streamId"),
    update_fields=tuple(f for _,f in _TOGGLES) + ("searchQueryParameter", "uriQueryParameter"),
    removal=None,
    singleton=True,
)

KINDS = {s.kind: s for s in (CUSTOM_DIMENSIONS, CUSTOM_METRICS, CALCULATED_METRICS,
                             CHANNEL_GROUPS, DATA_STREAMS, PROPERTIES, ENHANCED_MEASUREMENT)}

def get_spec(kind: str) -> ResourceSpec:
    k = str(kind).strip().lower().replace("-", "_").replace(" ", "_")
    spec = KINDS.get(k, None)
    if spec is None:
        raise KeyError(f"Unknown resource kind '{kind}', expected one of: {', '.join(KINDS)}")
    return spec
