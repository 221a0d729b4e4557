# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Locating the files referenced by a service template: lifecycle scripts and bundled package data.
"""
import fnmatch
import glob
import os.path
import ssl
import urllib.error
import urllib.request
from importlib import resources
from typing import Callable, List, Optional
from urllib.parse import unquote, urlsplit

import certifi

from .logs import getLogger
from .util import ResourceNotFoundError

logger = getLogger("toscaconv")

CLASSPATH_PREFIX = "classpath:"
CLASSPATH_ALL_PREFIX = "classpath*:"


def urlopen(url):
    return urllib.request.urlopen(
        url, context=ssl.create_default_context(cafile=certifi.where())
    )


def _package_root(package: Optional[str]):
    if not package:
        raise ResourceNotFoundError("no resource package configured")
    try:
        return resources.files(package)
    except (ImportError, TypeError):
        raise ResourceNotFoundError(f'resource package "{package}" not found', True)


class ResourceLoader:
    """
    Dereferences artifact references to their contents.

    Relative paths are resolved against ``base_dir`` (usually the directory containing the
    service template), ``classpath:`` references against the ``package``'s data files.
    ``file:`` and ``http(s):`` URLs are also supported.
    """

    def __init__(self, base_dir: Optional[str] = None, package: Optional[str] = None):
        self.base_dir = os.path.abspath(base_dir or ".")
        self.package = package

    def load_as_text(self, artifact_ref: str) -> str:
        if not artifact_ref or not artifact_ref.strip():
            raise ResourceNotFoundError("empty artifact reference")
        if artifact_ref.startswith(CLASSPATH_PREFIX):
            return self._load_package_resource(artifact_ref[len(CLASSPATH_PREFIX) :])

        url = urlsplit(artifact_ref)
        if url.scheme in ("http", "https") and url.netloc:
            logger.trace("attempting to load url: %s", artifact_ref)
            try:
                with urlopen(artifact_ref) as f:
                    return f.read().decode("utf-8")
            except (urllib.error.URLError, OSError, UnicodeDecodeError):
                raise ResourceNotFoundError(f"could not retrieve {artifact_ref}", True)
        elif url.scheme == "file":
            path = unquote(url.path)
        else:
            path = os.path.join(self.base_dir, artifact_ref)
        return self._read_file(path)

    def _read_file(self, path: str) -> str:
        logger.trace("attempting to load file: %s", path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError):
            raise ResourceNotFoundError(f"could not read {path}", True)

    def _load_package_resource(self, path: str) -> str:
        path = path.lstrip("/")
        resource = _package_root(self.package).joinpath(path)
        logger.trace("attempting to load resource %s from %s", path, self.package)
        try:
            return resource.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            raise ResourceNotFoundError(
                f'could not read resource "{path}" from package {self.package}', True
            )


def glob_resources(location_pattern: str) -> List[str]:
    return sorted(glob.glob(location_pattern, recursive=True))


class PackageResourceResolver:
    """
    Lists the resources bundled with a Python package that match a ``classpath*:`` pattern,
    for example ``classpath*:normative-types/**/*.yaml``.

    Patterns without that prefix are handed to ``fallback`` (by default a recursive filesystem glob).
    """

    def __init__(
        self,
        package: str,
        fallback: Optional[Callable[[str], List]] = None,
    ):
        self.package = package
        self.fallback = fallback or glob_resources

    def list(self, location_pattern: str) -> List:
        if not location_pattern.startswith(CLASSPATH_ALL_PREFIX):
            logger.debug(
                "package resolver does not know pattern (%s); passing to fallback",
                location_pattern,
            )
            return self.fallback(location_pattern)

        pattern = location_pattern[len(CLASSPATH_ALL_PREFIX) :]
        path, sep, file = pattern.rpartition("/")
        path = path + sep
        if path.endswith("**/"):
            path = path[: -len("**/")]
        if not file:
            file = "*"
        path = path.strip("/")

        root = _package_root(self.package)
        start = root.joinpath(path) if path else root
        result = []
        if start.is_dir():
            self._walk(start, path, file, result)
        logger.debug(
            "package resolver found %s match(es) for %s (%s %s): %s",
            len(result),
            location_pattern,
            path,
            file,
            [name for name, resource in result],
        )
        return [resource for name, resource in sorted(result, key=lambda r: r[0])]

    def _walk(self, directory, prefix: str, file_pattern: str, result: list) -> None:
        for child in directory.iterdir():
            name = f"{prefix}/{child.name}" if prefix else child.name
            if child.is_dir():
                if child.name != "__pycache__":
                    self._walk(child, name, file_pattern, result)
            elif fnmatch.fnmatch(child.name, file_pattern):
                result.append((name, child))
