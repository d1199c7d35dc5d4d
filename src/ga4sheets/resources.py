from dataclasses import asdict,fields,is_dataclass
import re

class AdminResourceBase():
    """
    Intended to be subclassed by a dataclass but isnt actually a dataclass.
    The Admin API wants camelCase JSON bodies so the dataclass field names
    are kept in the same camelCase as the REST representation, that way
    asdict() is already most of the way to a request body.
    """
    def to_base(self) -> dict:
        """
        Default just return the dict representation of the object as needed by
        the discovery client.  Something more complicated can override.
        Call fixup() first to ensure all fields are in correct format.
        """
        self.fixup()
        return asdict(self)

    def trim(self) -> dict:
        """
        Return a 'trimmed' dict of the resource.  That is, removing any top level attributes
        that are empty or None.  For empty needs to be a string, or container. For None
        needs to be a value like int or bool where 'not' could be a valid value.
        Create and patch bodies only want filled-in fields, and the update mask
        is derived from whatever survives the trim.
        """
        b = self.to_base()
        if b:
            vals = dict(b.items())
            for k,v in vals.items():
                if v is None or (type(v) not in [int,bool,float] and not v):
                    del b[k]
        return b

    def fixup(self) -> None:
        """
        notify a subclass to do any field adjustments
        """
        pass

    @classmethod
    def from_dict(cls, values: dict):
        """
        Build from parsed row values or an API response, dropping any keys
        this dataclass doesn't carry (propertyId, output only fields).
        """
        known = {f.name for f in fields(cls)} if is_dataclass(cls) else set()
        return cls(**{k: v for k,v in dict(values).items() if k in known})


_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")

def to_snake_case(name: str) -> str:
    """streamEnabled -> stream_enabled, already snake names pass through"""
    return _CAMEL_BOUNDARY_RE.sub(r"_\1", str(name)).lower()

def snake_case_keys(body: dict) -> dict:
    """
    Shallow key conversion of a request body.  Nested values are left alone,
    the settings bodies this is used for are flat.
    """
    return {to_snake_case(k): v for k,v in body.items()}

def field_mask(body: dict) -> str:
    """The updateMask for a PATCH is just the fields actually being sent"""
    return ",".join(body.keys())
