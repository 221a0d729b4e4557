# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
The deployment specification produced for a node template.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .catalog import CatalogEntry

VANILLA_SOFTWARE_PROCESS = "org.apache.brooklyn.entity.software.base.VanillaSoftwareProcess"

# well-known configuration keys
TOSCA_NODE_TYPE = "tosca.node.type"
PROVISIONING_PROPERTIES = "provisioning.properties"
INSTALL_COMMAND = "install.command"
CUSTOMIZE_COMMAND = "customize.command"
LAUNCH_COMMAND = "launch.command"
STOP_COMMAND = "stop.command"
CHECK_RUNNING_COMMAND = "checkRunning.command"

COMMAND_KEYS = (
    INSTALL_COMMAND,
    CUSTOMIZE_COMMAND,
    LAUNCH_COMMAND,
    STOP_COMMAND,
    CHECK_RUNNING_COMMAND,
)

# provisioning properties
MIN_RAM = "minRam"
MIN_DISK = "minDisk"
MIN_CORES = "minCores"
OS_FAMILY = "osFamily"
OS_VERSION_REGEX = "osVersionRegex"


class OsFamily(enum.Enum):
    UNRECOGNIZED = "unrecognized"
    AIX = "aix"
    ARCH = "arch"
    CENTOS = "centos"
    DARWIN = "darwin"
    DEBIAN = "debian"
    ESX = "esx"
    FEDORA = "fedora"
    FREEBSD = "freebsd"
    GENTOO = "gentoo"
    HPUX = "hpux"
    LINUX = "linux"
    COREOS = "coreos"
    AMZN_LINUX = "amzn-linux"
    MANDRIVA = "mandriva"
    NETBSD = "netbsd"
    OEL = "oel"
    OPENBSD = "openbsd"
    RHEL = "rhel"
    SCIENTIFIC = "scientific"
    CLOUD_LINUX = "cloudlinux"
    SOLARIS = "solaris"
    SUSE = "suse"
    TURBOLINUX = "turbolinux"
    UBUNTU = "ubuntu"
    WINDOWS = "windows"

    @classmethod
    def coerce(cls, value: str) -> "OsFamily":
        """Accepts either the name or the value, in any case, e.g. "Ubuntu", "AMZN_LINUX" or "amzn-linux"."""
        normalized = value.strip().lower()
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        raise ValueError(f'"{value}" is not a known OS family')


class ImplementationKind(enum.Enum):
    catalog = "catalog"
    native = "class"
    vanilla = "vanilla"


@dataclass(frozen=True)
class Implementation:
    """
    What will implement the entity: a catalog item, a Python class or the generic
    vanilla software process that runs shell commands for its lifecycle.
    """

    kind: ImplementationKind
    type_name: str
    catalog_entry: Optional[CatalogEntry] = None
    klass: Optional[type] = None

    @classmethod
    def from_catalog(cls, entry: CatalogEntry) -> "Implementation":
        return cls(ImplementationKind.catalog, entry.type, catalog_entry=entry)

    @classmethod
    def from_class(cls, klass: type) -> "Implementation":
        return cls(
            ImplementationKind.native,
            f"{klass.__module__}.{klass.__qualname__}",
            klass=klass,
        )

    @classmethod
    def vanilla(cls) -> "Implementation":
        return cls(ImplementationKind.vanilla, VANILLA_SOFTWARE_PROCESS)

    @property
    def is_vanilla(self) -> bool:
        # catalog items may themselves be vanilla software processes
        return (
            self.kind is ImplementationKind.vanilla
            or self.type_name == VANILLA_SOFTWARE_PROCESS
        )


def _to_plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    return value


@dataclass
class EntitySpec:
    implementation: Implementation
    display_name: str = ""
    config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, implementation: Implementation) -> "EntitySpec":
        spec = cls(implementation)
        entry = implementation.catalog_entry
        if entry:
            spec.config.update(entry.config)
        return spec

    @property
    def is_vanilla(self) -> bool:
        return self.implementation.is_vanilla

    def configure(self, key: str, value: Any) -> "EntitySpec":
        self.config[key] = value
        return self

    def get_config(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def to_dict(self) -> dict:
        tpl: Dict[str, Any] = dict(type=self.implementation.type_name)
        if self.display_name:
            tpl["name"] = self.display_name
        tpl["brooklyn.config"] = _to_plain(self.config)
        return tpl
