"""Terraform state snapshot models (format version 4)."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tfreconcile.utils.errors import MissingIdentifyingAttribute

SUPPORTED_FORMAT_VERSION = 4

MANAGED_MODE = "managed"
DATA_MODE = "data"


class _SnapshotModel(BaseModel):
    """Immutable model base. Unknown fields are dropped on decode."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class OutputRecord(_SnapshotModel):
    """A root module output value."""

    value: Any = Field(None, description="Output value as stored in state")
    type: Any = Field(None, description="Terraform type expression")
    sensitive: bool = Field(False, description="Whether the output is sensitive")


class CheckResultObject(_SnapshotModel):
    """Result of a single object within a check block."""

    object_addr: str = ""
    status: str = ""
    failure_messages: List[str] = Field(default_factory=list)

    @field_validator("failure_messages", mode="before")
    @classmethod
    def null_failure_messages_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class CheckResult(_SnapshotModel):
    """Result of a single check block."""

    object_kind: str = ""
    config_addr: str = ""
    status: str = ""
    objects: List[CheckResultObject] = Field(default_factory=list)

    @field_validator("objects", mode="before")
    @classmethod
    def null_objects_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class InstanceRecord(_SnapshotModel):
    """A single instance of a resource."""

    index_key: Optional[Any] = Field(None, description="count/for_each key")
    attributes: Optional[Any] = Field(
        None, description="Attribute document; shape varies per resource kind"
    )
    attributes_flat: Optional[Dict[str, str]] = Field(
        None, description="Legacy flatmap attributes"
    )
    schema_version: int = 0
    dependencies: List[str] = Field(default_factory=list)
    status: str = ""
    deposed: str = ""
    create_before_destroy: bool = False

    @field_validator("dependencies", mode="before")
    @classmethod
    def null_dependencies_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def attribute_document(self) -> Any:
        """Return the attribute document, falling back to the flat map."""
        if self.attributes is not None:
            return self.attributes
        if self.attributes_flat:
            return dict(self.attributes_flat)
        return {}


class ResourceRecord(_SnapshotModel):
    """A resource block and all of its instances."""

    kind: str = Field(..., alias="type", description="Resource type, e.g. aws_s3_bucket")
    name: str = Field(..., description="Resource name in configuration")
    module: str = Field("", description="Module address, empty for the root module")
    mode: str = Field(MANAGED_MODE, description="managed or data")
    each: str = ""
    provider: str = ""
    instances: List[InstanceRecord] = Field(default_factory=list)

    @field_validator("instances", mode="before")
    @classmethod
    def null_instances_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class StateSnapshot(_SnapshotModel):
    """A decoded state file."""

    format_version: int = Field(SUPPORTED_FORMAT_VERSION, alias="version")
    tool_version: str = Field("", alias="terraform_version")
    serial: int = 0
    lineage: str = ""
    resources: List[ResourceRecord] = Field(default_factory=list)
    outputs: Dict[str, OutputRecord] = Field(default_factory=dict)
    check_results: List[CheckResult] = Field(default_factory=list)

    @field_validator("resources", "check_results", mode="before")
    @classmethod
    def null_lists_as_empty(cls, value: Any) -> Any:
        # Terraform writes null rather than [] for empty collections
        return [] if value is None else value

    @field_validator("outputs", mode="before")
    @classmethod
    def null_outputs_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def instance_count(self) -> int:
        """Total number of resource instances in the snapshot."""
        return sum(len(resource.instances) for resource in self.resources)

    def iter_instances(self) -> Iterator[Tuple[ResourceRecord, InstanceRecord]]:
        """Yield (resource, instance) pairs in document order."""
        for resource in self.resources:
            for instance in resource.instances:
                yield resource, instance


class AttributeView:
    """Read-only, on-demand access to an instance's attribute document.

    Nothing is interpreted until a verifier asks for a specific field.
    """

    __slots__ = ("_document", "resource_type")

    def __init__(self, document: Any, resource_type: str = ""):
        self._document = document
        self.resource_type = resource_type

    @property
    def is_valid(self) -> bool:
        """True when the document is a JSON object."""
        return isinstance(self._document, Mapping)

    def raw(self, name: str) -> Any:
        if not self.is_valid:
            return None
        return self._document.get(name)

    def get_str(self, name: str) -> str:
        """Return a string attribute, or "" when absent or not a string."""
        value = self.raw(name)
        return value if isinstance(value, str) else ""

    def get_text(self, name: str) -> str:
        """Return any scalar attribute rendered as text, "" when absent."""
        value = self.raw(name)
        if value is None or isinstance(value, (dict, list)):
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def first_str(self, *names: str) -> str:
        for name in names:
            value = self.get_str(name)
            if value:
                return value
        return ""

    def require(self, *names: str) -> Union[str, Tuple[str, ...]]:
        """Return the named attributes, all of which must be non-empty.

        Raises:
            MissingIdentifyingAttribute: If any of them is missing or empty
        """
        values = tuple(self.get_text(name) for name in names)
        if not all(values):
            raise MissingIdentifyingAttribute(self.resource_type, list(names))
        return values[0] if len(values) == 1 else values

    def require_any(self, *names: str) -> Dict[str, str]:
        """Return the named attributes; at least one must be non-empty.

        Raises:
            MissingIdentifyingAttribute: If every one of them is missing
        """
        values = {name: self.get_str(name) for name in names}
        if not any(values.values()):
            raise MissingIdentifyingAttribute(self.resource_type, list(names))
        return values

    def __repr__(self) -> str:
        return f"AttributeView({self.resource_type!r})"


@dataclass(frozen=True)
class WorkItem:
    """One declared resource instance awaiting classification."""

    address: str
    resource_type: str
    mode: str
    declared_id: str = ""
    embedded_identifier: str = ""
    attributes: AttributeView = field(
        default_factory=lambda: AttributeView({}), compare=False, repr=False
    )

    @property
    def is_data(self) -> bool:
        return self.mode == DATA_MODE
