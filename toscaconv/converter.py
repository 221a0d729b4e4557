# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Converts TOSCA node templates to entity specifications.

The implementation of a node is resolved in order from the catalog, then by
treating the node type as a Python class name and finally falls back to a
vanilla software process whose lifecycle is driven by the shell scripts
referenced by the operations of the node's standard lifecycle interface.
"""
from collections import OrderedDict
import functools
from typing import Callable, Dict, Iterable, Mapping, Optional, Union

from .catalog import (
    Catalog,
    CatalogLookup,
    looks_like_versioned_id,
    split_versioned_id,
)
from .entityspec import (
    COMMAND_KEYS,
    CUSTOMIZE_COMMAND,
    INSTALL_COMMAND,
    LAUNCH_COMMAND,
    MIN_CORES,
    MIN_DISK,
    MIN_RAM,
    OS_FAMILY,
    OS_VERSION_REGEX,
    PROVISIONING_PROPERTIES,
    STOP_COMMAND,
    TOSCA_NODE_TYPE,
    EntitySpec,
    Implementation,
    OsFamily,
)
from .logs import NodeLogger, getLogger, node_logger
from .model import NodeTemplate, Operation, PropertyValue, ScalarValue
from .resources import PackageResourceResolver, ResourceLoader
from .util import (
    ConfigurationError,
    ResourceNotFoundError,
    UnsupportedLifecycleError,
    lookup_class,
    register_short_names,
)
from .yamlloader import YamlConfig

logger = getLogger("toscaconv")

NOOP_COMMAND = "true"

STANDARD_INTERFACE = "tosca.interfaces.node.lifecycle.Standard"
STANDARD_INTERFACE_ALIAS = "standard"
# recognized so it isn't reported as unmapped but its operations are not applied
STANDARD_INTERFACE_IGNORED_ALIAS = "Standard"

# operation name -> command config key, applied in this order
LIFECYCLE_OPERATIONS = (
    ("create", INSTALL_COMMAND),
    ("configure", CUSTOMIZE_COMMAND),
    ("start", LAUNCH_COMMAND),
    ("stop", STOP_COMMAND),
)

ClassResolver = Callable[[str], Optional[type]]


def resolve(
    properties: Dict[str, PropertyValue], *keys: str, log: Optional[NodeLogger] = None
) -> Optional[str]:
    """
    Remove ``keys`` from ``properties`` and return the first scalar value found.
    """
    for key in keys:
        value = properties.pop(key, None)
        if value is None:
            continue
        if isinstance(value, ScalarValue):
            return value.value
        (log or logger).warning("Ignoring unsupported property value %s", value)
    return None


def _coerce_int(value: str) -> int:
    return int(value.strip())


class NodeConverter:
    def __init__(
        self,
        catalog: Optional[CatalogLookup] = None,
        resource_loader: Optional[ResourceLoader] = None,
        class_resolver: Optional[ClassResolver] = None,
        noop_command: str = NOOP_COMMAND,
        class_packages: Iterable[str] = (),
    ):
        self.catalog = catalog
        self.resource_loader = resource_loader or ResourceLoader()
        self.class_resolver = class_resolver or functools.partial(
            lookup_class, packages=tuple(class_packages)
        )
        self.noop_command = noop_command

    @classmethod
    def from_settings(
        cls,
        settings: YamlConfig,
        resource_loader: Optional[ResourceLoader] = None,
        catalog_path: Optional[str] = None,
    ) -> "NodeConverter":
        register_short_names(settings.get("short_names") or {})
        catalog_path = catalog_path or settings.get("catalog")
        catalog = Catalog.load(catalog_path) if catalog_path else None
        catalog_pattern = settings.get("catalog_pattern")
        if catalog_pattern:
            resolver = PackageResourceResolver(
                settings.get("resource_package") or "toscaconv"
            )
            scanned = Catalog.scan(resolver, catalog_pattern)
            if catalog is None:
                catalog = scanned
            else:
                catalog.update(scanned)
        if resource_loader is None:
            resource_loader = ResourceLoader(
                settings.get("base_dir"), settings.get("resource_package")
            )
        return cls(
            catalog,
            resource_loader,
            noop_command=settings.get("noop_command") or NOOP_COMMAND,
            class_packages=settings.get("class_packages") or (),
        )

    def create_spec(self, node_template: NodeTemplate, node_id: str) -> EntitySpec:
        if node_template is None:
            raise ConfigurationError("TOSCA node template is missing")
        if not node_id or not node_id.strip():
            raise ConfigurationError("TOSCA node ID is missing")
        log = node_logger(node_id)

        spec = EntitySpec.create(self.resolve_implementation(node_template.type, log))

        if node_template.name and node_template.name.strip():
            spec.display_name = node_template.name
        else:
            spec.display_name = node_id
        spec.configure(TOSCA_NODE_TYPE, node_template.type)

        # working copy, properties are removed as they are consumed
        properties = dict(node_template.properties)
        spec.configure(
            PROVISIONING_PROPERTIES, self._provisioning_properties(properties, log)
        )

        for key, value in properties.items():
            if isinstance(value, ScalarValue):
                spec.configure(key, value.value)
            else:
                log.warning(
                    "Ignoring unsupported value for property %s on %s: %s",
                    key,
                    node_id,
                    value,
                )

        if spec.is_vanilla:
            # commands a vanilla catalog entry already provides are kept
            for key in COMMAND_KEYS:
                current = spec.get_config(key)
                if current is None or not str(current).strip():
                    spec.configure(key, self.noop_command)

        operations = self.get_interface_operations(node_template, node_id)
        if operations:
            if not spec.is_vanilla:
                raise UnsupportedLifecycleError(
                    f"{spec.implementation.type_name} does not support the interface operations "
                    f"defined by node template {node_id} ({node_template.type})"
                )
            for op_name, command_key in LIFECYCLE_OPERATIONS:
                self.apply_lifecycle(operations, op_name, spec, command_key, log)
            if operations:
                log.warning(
                    "Could not translate some operations for %s: %s",
                    node_id,
                    list(operations),
                )
        return spec

    def resolve_implementation(
        self, node_type: str, log: Optional[NodeLogger] = None
    ) -> Implementation:
        log = log or logger
        entry = self._find_catalog_entry(node_type)
        if entry is not None:
            log.info("Found catalog item that matches node type: %s", node_type)
            return Implementation.from_catalog(entry)

        klass = self.class_resolver(node_type) if node_type else None
        if klass is not None:
            log.info("Found class that matches node type: %s", node_type)
            return Implementation.from_class(klass)

        log.info(
            "Cannot find any catalog item nor class that matches node type: %s. "
            "Defaulting to a vanilla software process",
            node_type,
        )
        return Implementation.vanilla()

    def _find_catalog_entry(self, node_type: str):
        if self.catalog is None or not node_type:
            return None
        if looks_like_versioned_id(node_type):
            type_id, version = split_versioned_id(node_type)
            return self.catalog.find(type_id, version)
        return self.catalog.find(node_type)

    def _provisioning_properties(
        self, properties: Dict[str, PropertyValue], log: NodeLogger
    ) -> dict:
        prov: dict = {}

        def put(key, value, coerce=None):
            if value is None:
                return
            if coerce:
                try:
                    value = coerce(value)
                except ValueError as e:
                    log.warning("Ignoring invalid value for %s: %s", key, e)
                    return
            prov[key] = value

        put(MIN_RAM, resolve(properties, "mem_size", log=log))
        put(MIN_DISK, resolve(properties, "disk_size", log=log))
        put(MIN_CORES, resolve(properties, "num_cpus", log=log), _coerce_int)
        put(OS_FAMILY, resolve(properties, "os_distribution", log=log), OsFamily.coerce)
        put(OS_VERSION_REGEX, resolve(properties, "os_version", log=log))
        # "os_arch" and "os_type" have no provisioning counterpart, they pass through as config
        return prov

    def get_interface_operations(
        self, node_template: NodeTemplate, node_id: str
    ) -> Dict[str, Operation]:
        """
        Returns a copy of the operations declared by the node's standard lifecycle interface.
        """
        operations: Dict[str, Operation] = OrderedDict()
        if not node_template.interfaces:
            return operations

        log = node_logger(node_id)
        interfaces = dict(node_template.interfaces)
        interface = interfaces.pop(STANDARD_INTERFACE, None)
        if interface is None:
            interface = interfaces.pop(STANDARD_INTERFACE_ALIAS, None)
        if interface is None and interfaces.pop(STANDARD_INTERFACE_IGNORED_ALIAS, None):
            log.debug(
                "Ignoring operations of the %s interface on %s",
                STANDARD_INTERFACE_IGNORED_ALIAS,
                node_id,
            )

        if interface is not None:
            operations.update(interface.operations)

        if interfaces:
            log.warning(
                "Could not translate some interfaces for %s: %s", node_id, list(interfaces)
            )
        return operations

    def apply_lifecycle(
        self,
        operations: Dict[str, Operation],
        op_name: str,
        spec: EntitySpec,
        command_key: str,
        log: Optional[NodeLogger] = None,
    ) -> None:
        log = log or logger
        op = operations.pop(op_name, None)
        if op is None:
            return
        artifact = op.implementation_artifact
        if artifact is None:
            log.warning(
                "Unsupported operation implementation for %s: no implementation", op_name
            )
            return
        ref = artifact.artifact_ref
        if not ref or not ref.strip():
            log.warning(
                "Unsupported operation implementation for %s: %s has no ref",
                op_name,
                artifact,
            )
            return
        try:
            script = self.resource_loader.load_as_text(ref)
        except ResourceNotFoundError as e:
            log.warning("Skipping operation %s: %s", op_name, e)
            return

        current = spec.get_config(command_key)
        current = "" if current is None else str(current)
        if not current.strip() or current.strip() == self.noop_command:
            spec.configure(command_key, script)
        else:
            spec.configure(command_key, current + "\n" + script)

    def convert_topology(
        self, node_templates: Mapping[str, NodeTemplate]
    ) -> Dict[str, EntitySpec]:
        return OrderedDict(
            (node_id, self.create_spec(node_template, node_id))
            for node_id, node_template in node_templates.items()
        )


def load_node_templates(source: Union[str, Mapping]) -> Dict[str, NodeTemplate]:
    """
    Read the node templates from a TOSCA service template,
    given either as a file path or an already parsed document.
    """
    if isinstance(source, str):
        doc = YamlConfig(path=source).config
    else:
        doc = source
    topology = doc.get("topology_template") or {}
    node_templates = topology.get("node_templates") or {}
    return OrderedDict(
        (name, NodeTemplate.from_tpl(tpl or {})) for name, tpl in node_templates.items()
    )


def create_spec(
    node_template: NodeTemplate,
    node_id: str,
    catalog: Optional[CatalogLookup] = None,
    resource_loader: Optional[ResourceLoader] = None,
) -> EntitySpec:
    return NodeConverter(catalog, resource_loader).create_spec(node_template, node_id)
