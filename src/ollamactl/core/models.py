"""
Model data for ollamactl

Typed views of the server's model descriptions, listings and create requests.
"""

import ntpath
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from ..utils.helpers import format_float, parse_timestamp


@dataclass(frozen=True)
class StringValue:
    """Metadata string"""
    value: str

    def format(self) -> str:
        return self.value


@dataclass(frozen=True)
class NumberValue:
    """Metadata number; the server encodes every number as a float"""
    value: float

    def format(self) -> str:
        return format_float(self.value)


@dataclass(frozen=True)
class BoolValue:
    """Metadata boolean"""
    value: bool

    def format(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class OtherValue:
    """Anything else (arrays, nulls); shown by type only"""
    type_name: str

    def format(self) -> str:
        return self.type_name


MetadataValue = Union[StringValue, NumberValue, BoolValue, OtherValue]


def to_metadata_value(raw: Any) -> MetadataValue:
    """Wrap a decoded JSON value in its metadata variant"""
    # bool first: bool is a subclass of int
    if isinstance(raw, bool):
        return BoolValue(raw)
    if isinstance(raw, (int, float)):
        return NumberValue(float(raw))
    if isinstance(raw, str):
        return StringValue(raw)
    if isinstance(raw, (list, tuple)):
        return OtherValue("[]" + _element_type(raw))
    if raw is None:
        return OtherValue("<nil>")
    return OtherValue(type(raw).__name__)


def _element_type(items) -> str:
    kinds = {type(item).__name__ for item in items}
    return kinds.pop() if len(kinds) == 1 else "any"


def to_metadata(raw: Optional[Dict[str, Any]]) -> Dict[str, MetadataValue]:
    return {key: to_metadata_value(value) for key, value in (raw or {}).items()}


@dataclass(frozen=True)
class ModelDetails:
    """Summary details reported for a model"""
    family: str = ""
    parameter_size: str = ""
    quantization_level: str = ""
    format: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ModelDetails":
        data = data or {}
        return cls(
            family=data.get("family") or "",
            parameter_size=data.get("parameter_size") or "",
            quantization_level=data.get("quantization_level") or "",
            format=data.get("format") or "",
        )


@dataclass(frozen=True)
class Tensor:
    """A single weight tensor"""
    name: str
    type: str
    shape: Tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tensor":
        return cls(
            name=data.get("name", ""),
            type=data.get("type", ""),
            shape=tuple(int(dim) for dim in data.get("shape") or ()),
        )


@dataclass(frozen=True)
class ModelDescription:
    """Everything `show` knows about a model"""
    details: ModelDetails = field(default_factory=ModelDetails)
    model_info: Dict[str, MetadataValue] = field(default_factory=dict)
    projector_info: Dict[str, MetadataValue] = field(default_factory=dict)
    parameters: str = ""
    tensors: Tuple[Tensor, ...] = ()
    system: str = ""
    license: str = ""
    capabilities: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelDescription":
        """Build from an /api/show response body"""
        return cls(
            details=ModelDetails.from_dict(data.get("details")),
            model_info=to_metadata(data.get("model_info")),
            projector_info=to_metadata(data.get("projector_info")),
            parameters=data.get("parameters") or "",
            tensors=tuple(Tensor.from_dict(t) for t in data.get("tensors") or ()),
            system=data.get("system") or "",
            license=data.get("license") or "",
            capabilities=tuple(str(c).lower() for c in data.get("capabilities") or ()),
        )


@dataclass(frozen=True)
class ListedModel:
    """One entry of the local model listing"""
    name: str
    digest: str
    size: int
    modified_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListedModel":
        return cls(
            name=data.get("name") or data.get("model", ""),
            digest=data.get("digest", ""),
            size=int(data.get("size") or 0),
            modified_at=parse_timestamp(data.get("modified_at")),
        )


@dataclass
class Message:
    """Chat message carried into a created model"""
    role: str
    content: str


@dataclass
class RunOptions:
    """State of an interactive session that can be saved as a new model (see new_create_request)"""
    model: str
    parent_model: str = ""
    prompt: str = ""
    system: str = ""
    messages: List[Message] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    word_wrap: bool = True


@dataclass
class CreateRequest:
    """Body of an /api/create request"""
    model: str
    from_: str = ""
    system: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    messages: List[Message] = field(default_factory=list)
    license: List[str] = field(default_factory=list)
    template: str = ""

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"model": self.model, "stream": True}
        if self.from_:
            body["from"] = self.from_
        if self.system:
            body["system"] = self.system
        if self.template:
            body["template"] = self.template
        if self.parameters:
            body["parameters"] = self.parameters
        if self.messages:
            body["messages"] = [{"role": m.role, "content": m.content} for m in self.messages]
        if self.license:
            body["license"] = self.license
        return body


def _looks_like_path(name: str) -> bool:
    if name.startswith("/") or name.startswith("."):
        return True
    drive, _ = ntpath.splitdrive(name)
    return bool(drive)


def new_create_request(name: str, opts: RunOptions) -> CreateRequest:
    """Build the request that saves a session as model `name`

    The parent model is used as the base unless it is empty or a file path,
    in which case the running model is used.

    The CLI has no interactive session of its own, so no command calls this;
    it is exported for callers that drive a chat session themselves.
    """
    parent = opts.parent_model
    base = parent if parent and not _looks_like_path(parent) else opts.model

    request = CreateRequest(model=name, from_=base)
    if opts.system:
        request.system = opts.system
    if opts.options:
        request.parameters = dict(opts.options)
    if opts.messages:
        request.messages = list(opts.messages)
    return request
