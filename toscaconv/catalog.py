# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
A registry of pre-built entity specifications, keyed by type id and version.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from toscaparser.utils.validateutils import TOSCAVersionProperty
from typing_extensions import Protocol

from .logs import getLogger
from .util import CatalogError
from .yamlloader import YamlConfig

logger = getLogger("toscaconv")

VERSION_DELIMITER = ":"


def looks_like_versioned_id(versioned_id: Optional[str]) -> bool:
    """
    True if ``versioned_id`` has the shape ``name:version``.
    URLs (``http://...``) and ids with more than one colon don't count.
    """
    if not versioned_id:
        return False
    if versioned_id.count(VERSION_DELIMITER) != 1:
        return False
    name, sep, version = versioned_id.partition(VERSION_DELIMITER)
    if not name or not version or version.startswith("/"):
        return False
    return version[0].isdigit()


def split_versioned_id(versioned_id: str) -> Tuple[str, str]:
    name, sep, version = versioned_id.partition(VERSION_DELIMITER)
    return name, version


def version_key(version: str) -> tuple:
    match = TOSCAVersionProperty.VERSION_RE.match(version)
    if not match:
        # unparsable versions sort before everything else
        return (0, (), version)
    parts = tuple(
        int(match.group(g) or 0) for g in ("major_version", "minor_version", "fix_version")
    )
    qualifier = match.group("qualifier")
    # a release sorts after its qualified pre-releases (e.g. 1.0.0.SNAPSHOT)
    return (
        1,
        parts,
        (1,) if qualifier is None else (0, qualifier),
        int(match.group("build_version") or 0),
    )


@dataclass
class CatalogEntry:
    id: str
    version: str
    type: str
    config: Dict[str, object] = field(default_factory=dict)

    @property
    def versioned_id(self) -> str:
        return f"{self.id}{VERSION_DELIMITER}{self.version}"


class CatalogLookup(Protocol):
    def find(self, type_id: str, version: Optional[str] = None) -> Optional[CatalogEntry]:
        ...


CATALOG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "catalog": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "version": {"type": ["string", "number"]},
                    "type": {"type": "string"},
                    "config": {"type": "object"},
                },
                "required": ["id", "version", "type"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["catalog"],
}


class Catalog:
    """In-memory `CatalogLookup`."""

    def __init__(self, entries: Optional[List[CatalogEntry]] = None):
        self._entries: Dict[str, Dict[str, CatalogEntry]] = {}
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: CatalogEntry) -> None:
        versions = self._entries.setdefault(entry.id, {})
        if entry.version in versions:
            raise CatalogError(f"catalog item {entry.versioned_id} already exists")
        versions[entry.version] = entry

    def find(self, type_id: str, version: Optional[str] = None) -> Optional[CatalogEntry]:
        """
        Return the entry matching ``type_id`` and ``version`` exactly or,
        if ``version`` is omitted, the entry with the highest version.
        """
        versions = self._entries.get(type_id)
        if not versions:
            return None
        if version is not None:
            return versions.get(version)
        return versions[max(versions, key=version_key)]

    def __len__(self) -> int:
        return sum(len(versions) for versions in self._entries.values())

    def __iter__(self):
        for versions in self._entries.values():
            yield from versions.values()

    @classmethod
    def from_config(cls, config: YamlConfig) -> "Catalog":
        entries = []
        for item in config.config.get("catalog") or []:
            entries.append(
                CatalogEntry(
                    id=str(item["id"]),
                    version=str(item["version"]),
                    type=str(item["type"]),
                    config=dict(item.get("config") or {}),
                )
            )
        return cls(entries)

    @classmethod
    def load(cls, path: str) -> "Catalog":
        config = YamlConfig(path=path, schema=CATALOG_SCHEMA)
        catalog = cls.from_config(config)
        logger.verbose("loaded %s catalog items from %s", len(catalog), path)
        return catalog

    @classmethod
    def scan(cls, resolver, location_pattern: str) -> "Catalog":
        """
        Load every catalog document ``resolver`` lists for ``location_pattern``,
        e.g. ``classpath*:catalog/**/*.yaml``.
        """
        catalog = cls()
        for resource in resolver.list(location_pattern):
            if isinstance(resource, str):
                config = YamlConfig(path=resource, schema=CATALOG_SCHEMA)
            else:
                config = YamlConfig(
                    resource.read_text(encoding="utf-8"), schema=CATALOG_SCHEMA
                )
            catalog.update(cls.from_config(config))
        logger.verbose(
            "loaded %s catalog items matching %s", len(catalog), location_pattern
        )
        return catalog

    def update(self, other: "Catalog") -> None:
        for entry in other:
            self.add(entry)
