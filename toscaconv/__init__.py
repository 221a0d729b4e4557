# SPDX-License-Identifier: MIT
# Copyright (c) 2020 Adam Souzis
import os
from toscaconv import logs


# We need to initialize logging before any logger is created
logs.initialize_logging()


def __version__() -> str:
    # a function because this is expensive
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("toscaconv")
    except PackageNotFoundError:
        return "0.0.0"


class DefaultNames:
    ServiceTemplate = "service-template.yaml"
    Catalog = "catalog.yaml"
    LocalConfig = "toscaconv.yaml"


def get_settings_path(path=None):
    # an explicit path overrides TOSCACONV_CONFIG
    if path is None:
        path = os.getenv("TOSCACONV_CONFIG") or DefaultNames.LocalConfig
    return os.path.abspath(os.path.expanduser(path)) if path else None
