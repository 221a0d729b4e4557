# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Node templates as seen by the converter.

These are plain, read-only value objects built either from the raw YAML of a
service template's ``node_templates`` section or from a node template parsed
by ``toscaparser``.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .logs import getLogger

logger = getLogger("toscaconv")


@dataclass(frozen=True)
class ScalarValue:
    value: str


@dataclass(frozen=True)
class OtherValue:
    """A property value the converter can't map, e.g. a list, map or function call."""

    value: Any


PropertyValue = Union[ScalarValue, OtherValue]


@dataclass(frozen=True)
class ImplementationArtifact:
    artifact_ref: Optional[str]


@dataclass(frozen=True)
class Operation:
    implementation_artifact: Optional[ImplementationArtifact] = None


@dataclass(frozen=True)
class Interface:
    operations: Dict[str, Operation] = field(default_factory=dict)


@dataclass(frozen=True)
class NodeTemplate:
    type: str
    name: Optional[str] = None
    properties: Dict[str, PropertyValue] = field(default_factory=dict)
    interfaces: Dict[str, Interface] = field(default_factory=dict)

    @classmethod
    def from_tpl(cls, tpl: Mapping, name: Optional[str] = None) -> "NodeTemplate":
        """
        Build a node template from its YAML representation, for example:

        .. code-block:: YAML

            type: my.Foo
            metadata:
              name: Foo Server
            properties:
              mem_size: 2048
            interfaces:
              standard:
                create: scripts/install.sh

        The display name is taken from ``name`` or, if not given, from ``metadata.name``.
        """
        if name is None:
            metadata = tpl.get("metadata") or {}
            name = metadata.get("name")
        properties = tpl.get("properties") or {}
        interfaces = tpl.get("interfaces") or {}
        return cls(
            type=str(tpl.get("type") or ""),
            name=name,
            properties={k: to_property_value(v) for k, v in properties.items()},
            interfaces={k: to_interface(v) for k, v in interfaces.items()},
        )

    @classmethod
    def from_toscaparser(cls, nodetemplate) -> "NodeTemplate":
        """Build from a ``toscaparser.nodetemplate.NodeTemplate``."""
        return cls.from_tpl(nodetemplate.entity_tpl)


def _scalar_str(value: Union[str, int, float, bool]) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_property_value(value: Any) -> PropertyValue:
    if isinstance(value, (ScalarValue, OtherValue)):
        return value
    if isinstance(value, (str, int, float, bool)):
        return ScalarValue(_scalar_str(value))
    if isinstance(value, Mapping) and len(value) == 1 and "value" in value:
        inner = value["value"]
        if isinstance(inner, (str, int, float, bool)):
            return ScalarValue(_scalar_str(inner))
    return OtherValue(value)


def to_operation(value: Any) -> Operation:
    # the shapes TOSCA allows for an operation:
    #   create: script.sh
    #   create: {implementation: script.sh}
    #   create: {implementation: {primary: script.sh}}
    if isinstance(value, Operation):
        return value
    implementation = value
    if isinstance(value, Mapping):
        implementation = value.get("implementation")
    if isinstance(implementation, Mapping) and "primary" in implementation:
        implementation = implementation["primary"]
    if implementation is None:
        return Operation()
    if isinstance(implementation, str):
        return Operation(ImplementationArtifact(implementation))
    # e.g. an inline artifact definition
    if isinstance(implementation, Mapping) and "file" in implementation:
        return Operation(ImplementationArtifact(implementation["file"]))
    logger.debug("unrecognized operation implementation: %s", implementation)
    return Operation(ImplementationArtifact(None))


def to_interface(value: Any) -> Interface:
    if isinstance(value, Interface):
        return value
    value = value or {}
    if isinstance(value.get("operations"), Mapping):
        # TOSCA 1.3 syntax
        value = value["operations"]
    operations = {}
    for name, op in value.items():
        if name in ("type", "inputs", "description", "notifications"):
            continue
        operations[name] = to_operation(op)
    return Interface(operations)
