# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
import io
import os
import os.path
import sys
from typing import Optional, cast

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from .logs import getLogger
from .util import BadDocumentError, SchemaError, find_schema_errors, get_base_dir

logger = getLogger("toscaconv")


def make_yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True  # type:ignore[assignment]
    yaml.default_flow_style = False
    return yaml


yaml = make_yaml()


def load_yaml(stream, path=None):
    if path and isinstance(stream, str):
        stream = io.StringIO(stream)
        stream.name = path
    return yaml.load(stream)


def dump_yaml(doc, out=sys.stdout) -> None:
    yaml.dump(doc, out)


SETTINGS_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "catalog": {"type": "string"},
        "base_dir": {"type": "string"},
        "resource_package": {"type": "string"},
        "catalog_pattern": {"type": "string"},
        "noop_command": {"type": "string"},
        "class_packages": {"type": "array", "items": {"type": "string"}},
        "short_names": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
    },
    "additionalProperties": False,
}


class YamlConfig:
    """
    A YAML document loaded from a string, a dict or a file path,
    optionally validated against a JSON schema.
    """

    def __init__(self, config=None, path=None, validate=True, schema=None):
        try:
            self.path = None
            self.schema = schema
            if path:
                self.path = os.path.abspath(path)
                err_msg = f"Unable to load yaml config at {self.path}"
                if os.path.isfile(self.path):
                    with open(self.path, "r") as f:
                        config = f.read()
                # otherwise use default config
            else:
                err_msg = "Unable to parse yaml config"

            if isinstance(config, str):
                self.config: dict = load_yaml(config, self.path)
            elif isinstance(config, dict):
                self.config = CommentedMap(config.items())
            elif config is None:
                self.config = CommentedMap()
            else:
                self.config = cast(dict, config)
            if not isinstance(self.config, dict):
                raise BadDocumentError(
                    f'{err_msg}: invalid YAML document with contents: "{self.config}"'
                )

            errors = schema and find_schema_errors(self.config, schema)
            if errors and validate:
                (message, schemaErrors) = errors
                raise SchemaError(
                    err_msg + ": JSON Schema validation failed: " + message,
                    schemaErrors,  # type: ignore
                )
        except BadDocumentError:
            raise
        except Exception:
            raise BadDocumentError(err_msg, saveStack=True)

    def get_base_dir(self) -> str:
        if self.path:
            return get_base_dir(self.path)
        else:
            return "."

    def get(self, key: str, default=None):
        return self.config.get(key, default)


def load_settings(path: Optional[str]) -> YamlConfig:
    """Load the settings file, relative paths inside it are resolved against its directory."""
    if path and not os.path.isfile(path):
        logger.debug("settings file %s not found, using defaults", path)
    settings = YamlConfig(path=path, schema=SETTINGS_SCHEMA)
    base_dir = settings.get_base_dir()
    for key in ("catalog", "base_dir"):
        value = settings.config.get(key)
        if value:
            settings.config[key] = os.path.normpath(os.path.join(base_dir, value))
    return settings
