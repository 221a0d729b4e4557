# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
import importlib
import os
import os.path
import sys
import traceback
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Tuple, Union

import jsonschema.exceptions
from jsonschema import Draft7Validator

from .logs import getLogger

logger = getLogger("toscaconv")


class ToscaConvError(Exception):
    def __init__(
        self, message: object, saveStack: bool = False, log: bool = False
    ) -> None:
        stackInfo = None
        if saveStack:
            (etype, value, traceback) = sys.exc_info()
            if value:
                message = str(message) + ": " + str(value)
                stackInfo = (etype, value, traceback)
        super().__init__(message)
        self.stackInfo = stackInfo
        if log:
            logger.error(message, exc_info=True)

    def get_stack_trace(self) -> str:
        if not self.stackInfo:
            return ""
        return "".join(traceback.format_exception(*self.stackInfo))


class ConfigurationError(ToscaConvError):
    """The inputs of a conversion are missing or malformed."""


class UnsupportedLifecycleError(ToscaConvError):
    """Lifecycle operations were declared for an implementation that manages its own lifecycle."""


class ResourceNotFoundError(ToscaConvError):
    pass


class CatalogError(ToscaConvError):
    pass


class BadDocumentError(ToscaConvError):
    pass


class SchemaError(BadDocumentError):
    def __init__(self, message: object, errors: Optional[List[Exception]] = None):
        super().__init__(message)
        self.errors = errors or []


_ClassRegistry: dict = {}
_shortNameRegistry: dict = {}


def register_short_names(shortNames: Union[Mapping, Iterable]) -> None:
    _shortNameRegistry.update(shortNames)


def register_class(
    className: str, factory: object, short_name: Optional[str] = None, replace: bool = True
) -> None:
    if short_name:
        _shortNameRegistry[short_name] = className
    if not replace and className in _ClassRegistry:
        if _ClassRegistry[className] is not factory:
            raise ToscaConvError(f"class already registered for {className}")
    _ClassRegistry[className] = factory


def load_class(klass: str) -> object:
    prefix, sep, suffix = klass.rpartition(".")
    module = importlib.import_module(prefix)
    return getattr(module, suffix, None)


def _is_class_path(className: str) -> bool:
    parts = className.split(".")
    return len(parts) > 1 and all(part.isidentifier() for part in parts)


def _in_packages(className: str, packages: Iterable[str]) -> bool:
    return any(
        className == package or className.startswith(package + ".")
        for package in packages
    )


def lookup_class(kind: str, packages: Iterable[str] = ()) -> Optional[type]:
    """
    Resolve ``kind`` to a class, either from the registry or through a registered short name.
    Any other dotted path is only imported if it lives in one of ``packages``.
    Returns None if it can't be found.
    """
    if kind in _ClassRegistry:
        return _ClassRegistry[kind]
    elif kind in _shortNameRegistry:
        className = _shortNameRegistry[kind]
        importable = True
    else:
        className = kind
        importable = _in_packages(className, packages)
    if className in _ClassRegistry:
        return _ClassRegistry[className]
    if not importable or not _is_class_path(className):
        return None
    try:
        klass = load_class(className)
    except (ImportError, ValueError, TypeError):
        klass = None

    if not isinstance(klass, type):
        return None
    register_class(className, klass)
    return klass


def find_schema_errors(
    obj: Any, schema: Mapping
) -> Optional[Tuple[str, List[object]]]:
    Draft7Validator.check_schema(schema)
    validator = Draft7Validator(schema)
    errors = list(validator.iter_errors(obj))
    error = jsonschema.exceptions.best_match(errors)
    if not error:
        return None
    message = "%s in %s" % (
        error.message,
        "/".join([str(p) for p in error.absolute_path]),
    )
    return message, errors


def get_base_dir(path: str) -> str:
    if os.path.exists(path):
        isdir = os.path.isdir(path)
    else:
        isdir = not os.path.splitext(path)[1]
    if isdir:
        return path
    else:
        return os.path.normpath(os.path.dirname(path))
