"""
Dataclass representations of the Admin API resources that get reconciled.
Field names follow the REST JSON so trim() is directly usable as a request
body.  Output only fields (name, etc) are carried so list responses can be
loaded back in, they fall out of bodies because they are None on anything
built from a row.
Enum style fields are validated at construction, an unknown value is a
ValidationError rather than something the API has to bounce.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Self

from ..errors import ValidationError
from ..resources import AdminResourceBase

class AdminEnum():
    """
    An 'enum' in the Admin API is just a string so this is
    just to translate and validate input.
    """
    _VALID_DIMENSION_SCOPES = {
        "EVENT": "EVENT",
        "USER": "USER",
        "ITEM": "ITEM"
    }
    _VALID_METRIC_UNITS = {
        "STANDARD": "STANDARD",
        "CURRENCY": "CURRENCY",
        "FEET": "FEET",
        "METERS": "METERS",
        "KILOMETERS": "KILOMETERS",
        "MILES": "MILES",
        "MILLISECONDS": "MILLISECONDS",
        "SECONDS": "SECONDS",
        "MINUTES": "MINUTES",
        "HOURS": "HOURS",
        "METRIC_UNIT_UNSPECIFIED": "METRIC_UNIT_UNSPECIFIED",
        "UNSPECIFIED": "METRIC_UNIT_UNSPECIFIED"
    }
    _VALID_RESTRICTED_METRIC_TYPES = {
        "COST": "COST_DATA",
        "COST_DATA": "COST_DATA",
        "REVENUE": "REVENUE_DATA",
        "REVENUE_DATA": "REVENUE_DATA"
    }
    _VALID_PROPERTY_TYPES = {
        "ORDINARY": "PROPERTY_TYPE_ORDINARY",
        "PROPERTY_TYPE_ORDINARY": "PROPERTY_TYPE_ORDINARY",
        "SUBPROPERTY": "PROPERTY_TYPE_SUBPROPERTY",
        "PROPERTY_TYPE_SUBPROPERTY": "PROPERTY_TYPE_SUBPROPERTY",
        "ROLLUP": "PROPERTY_TYPE_ROLLUP",
        "PROPERTY_TYPE_ROLLUP": "PROPERTY_TYPE_ROLLUP"
    }

    @staticmethod
    def _lookup(table: dict[str,str], value: str) -> str:
        return table.get(str(value).strip().upper().replace(" ", "_"), "")

    @classmethod
    def dimensionScope(cls, scope: str) -> str:
        """https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.customDimensions#DimensionScope"""
        return cls._lookup(cls._VALID_DIMENSION_SCOPES, scope)

    @classmethod
    def metricUnit(cls, unit: str) -> str:
        """https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.customMetrics#MeasurementUnit"""
        return cls._lookup(cls._VALID_METRIC_UNITS, unit)

    @classmethod
    def restrictedMetricType(cls, value: str) -> str:
        """https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.customMetrics#RestrictedMetricType"""
        return cls._lookup(cls._VALID_RESTRICTED_METRIC_TYPES, value)

    @classmethod
    def propertyType(cls, value: str) -> str:
        """https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties#PropertyType"""
        return cls._lookup(cls._VALID_PROPERTY_TYPES, value)

    @classmethod
    def metric_units(cls) -> list[str]:
        return sorted(set(cls._VALID_METRIC_UNITS.values()))


_TRUTHY = ("true", "yes", "y", "1", "on", "enable", "enabled")
_FALSY = ("false", "no", "n", "0", "off", "disable", "disabled")

class TriState(Enum):
    """
    Enable/disable style cells.  An empty cell means leave it alone, which
    is not the same thing as an explicit false.
    """
    UNSET = None
    TRUE = True
    FALSE = False

    @classmethod
    def parse(cls, value) -> Self:
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        v = "" if value is None else str(value).strip().lower()
        if not v:
            return cls.UNSET
        if v in _TRUTHY:
            return cls.TRUE
        if v in _FALSY:
            return cls.FALSE
        raise ValidationError("flag", f"'{value}' is not a yes/no value")

    def __bool__(self) -> bool:
        return self is not TriState.UNSET


@dataclass
class CustomDimension(AdminResourceBase):
    """
    https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.customDimensions#CustomDimension
    parameterName and scope are immutable once created.
    """
    name: str|None = field(default=None)
    parameterName: str|None = field(default=None)
    displayName: str|None = field(default=None)
    description: str|None = field(default=None)
    scope: str|None = field(default=None)
    disallowAdsPersonalization: bool|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.scope:
            s = AdminEnum.dimensionScope(self.scope)
            if not s:
                raise ValidationError("scope", f"'{self.scope}' is not one of EVENT, USER, ITEM")
            self.scope = s

    def __str__(self) -> str:
        return f"{self.parameterName}:{self.displayName}<{self.scope}>"


@dataclass
class CustomMetric(AdminResourceBase):
    """
    https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.customMetrics#CustomMetric
    Only EVENT scope exists for custom metrics.
    """
    name: str|None = field(default=None)
    parameterName: str|None = field(default=None)
    displayName: str|None = field(default=None)
    description: str|None = field(default=None)
    measurementUnit: str|None = field(default=None)
    scope: str|None = field(default="EVENT")
    restrictedMetricType: List[str]|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.measurementUnit:
            u = AdminEnum.metricUnit(self.measurementUnit)
            if not u:
                raise ValidationError("measurementUnit", f"'{self.measurementUnit}' is not one of {', '.join(AdminEnum.metric_units())}")
            self.measurementUnit = u
        if self.restrictedMetricType:
            vals = [self.restrictedMetricType] if isinstance(self.restrictedMetricType, str) else self.restrictedMetricType
            types = []
            for v in vals:
                t = AdminEnum.restrictedMetricType(v)
                if not t:
                    raise ValidationError("restrictedMetricType", f"'{v}' is not COST_DATA or REVENUE_DATA")
                types.append(t)
            self.restrictedMetricType = types

    def __str__(self) -> str:
        return f"{self.parameterName}:{self.displayName}<{self.measurementUnit}>"


@dataclass
class CalculatedMetric(AdminResourceBase):
    """
    https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.calculatedMetrics#CalculatedMetric
    calculatedMetricId is output only in the resource, on create it goes
    in the query string.
    """
    name: str|None = field(default=None)
    calculatedMetricId: str|None = field(default=None)
    displayName: str|None = field(default=None)
    description: str|None = field(default=None)
    formula: str|None = field(default=None)
    metricUnit: str|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.metricUnit:
            u = AdminEnum.metricUnit(self.metricUnit)
            if not u:
                raise ValidationError("metricUnit", f"'{self.metricUnit}' is not one of {', '.join(AdminEnum.metric_units())}")
            self.metricUnit = u

    def __str__(self) -> str:
        return f"{self.calculatedMetricId}:{self.formula}"


@dataclass
class ChannelGroup(AdminResourceBase):
    """
    https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.channelGroups#ChannelGroup
    groupingRule is passed through as the raw list of rule dicts.
    """
    name: str|None = field(default=None)
    displayName: str|None = field(default=None)
    description: str|None = field(default=None)
    groupingRule: List[dict]|None = field(default=None)
    primary: bool|None = field(default=None)
    systemDefined: bool|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.groupingRule is not None:
            if not isinstance(self.groupingRule, list) or not all(isinstance(r, dict) for r in self.groupingRule):
                raise ValidationError("groupingRule", "must be a JSON list of rule objects")


@dataclass
class DataStream(AdminResourceBase):
    """
    https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.dataStreams#DataStream
    Only web streams can be created from a row, app streams need the
    store ids which this doesn't deal with.
    """
    name: str|None = field(default=None)
    type: str|None = field(default="WEB_DATA_STREAM")
    displayName: str|None = field(default=None)
    webStreamData: dict|None = field(default=None)


@dataclass
class Property(AdminResourceBase):
    """
    https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties#Property
    parent is the account, 'accounts/123'.
    """
    name: str|None = field(default=None)
    parent: str|None = field(default=None)
    displayName: str|None = field(default=None)
    timeZone: str|None = field(default=None)
    currencyCode: str|None = field(default=None)
    industryCategory: str|None = field(default=None)
    propertyType: str|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.currencyCode:
            c = str(self.currencyCode).strip().upper()
            if len(c) != 3 or not c.isalpha():
                raise ValidationError("currencyCode", f"'{self.currencyCode}' is not an ISO 4217 code")
            self.currencyCode = c
        if self.industryCategory:
            self.industryCategory = str(self.industryCategory).strip().upper().replace(" ", "_")
        if self.propertyType:
            t = AdminEnum.propertyType(self.propertyType)
            if not t:
                raise ValidationError("propertyType", f"'{self.propertyType}' is not a valid property type")
            self.propertyType = t


@dataclass
class EnhancedMeasurementSettings(AdminResourceBase):
    """
    https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1alpha/properties.dataStreams/getEnhancedMeasurementSettings
    A singleton under a web stream.  The toggles are TriState on the way
    in, only the ones explicitly set end up in the body.
    """
    name: str|None = field(default=None)
    streamEnabled: bool|None = field(default=None)
    scrollsEnabled: bool|None = field(default=None)
    outboundClicksEnabled: bool|None = field(default=None)
    siteSearchEnabled: bool|None = field(default=None)
    videoEngagementEnabled: bool|None = field(default=None)
    fileDownloadsEnabled: bool|None = field(default=None)
    pageChangesEnabled: bool|None = field(default=None)
    formInteractionsEnabled: bool|None = field(default=None)
    searchQueryParameter: str|None = field(default=None)
    uriQueryParameter: str|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        for f in ("streamEnabled", "scrollsEnabled", "outboundClicksEnabled",
                  "siteSearchEnabled", "videoEngagementEnabled", "fileDownloadsEnabled",
                  "pageChangesEnabled", "formInteractionsEnabled"):
            v = getattr(self, f)
            if isinstance(v, TriState):
                setattr(self, f, v.value)
