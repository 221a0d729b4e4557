# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
import logging
import logging.config
from enum import IntEnum
import os
from typing import Any, MutableMapping, Tuple, cast

from rich.console import Console


class Levels(IntEnum):
    CRITICAL = logging.CRITICAL
    ERROR = logging.ERROR
    WARNING = logging.WARNING
    INFO = logging.INFO
    VERBOSE = 15
    DEBUG = logging.DEBUG
    TRACE = 5


DEFAULT_FILE_FORMAT = "[%(asctime)s] %(name)s:%(levelname)s: %(node_prefix)s%(message)s"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {"node": {"()": "toscaconv.logs.NodeContextFilter"}},
    "handlers": {
        "console": {
            "class": "toscaconv.logs.ColorHandler",
            "level": logging.INFO,
            "filters": ["node"],
        },
    },
    "root": {"level": Levels.TRACE, "handlers": ["console"]},
}


class LogExtraLevels:
    def trace(self, msg: str, *args: object, **kwargs: Any) -> None:
        self.log(Levels.TRACE.value, msg, *args, **kwargs)  # type: ignore

    def verbose(self, msg: str, *args: object, **kwargs: Any) -> None:
        self.log(Levels.VERBOSE.value, msg, *args, **kwargs)  # type: ignore


class ToscaConvLogger(logging.Logger, LogExtraLevels):
    pass


def getLogger(name: str) -> ToscaConvLogger:
    return cast(ToscaConvLogger, logging.getLogger(name))


class NodeLogger(logging.LoggerAdapter, LogExtraLevels):
    """
    Tags every record with the id of the node template being converted.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = dict(self.extra or {}, **(kwargs.get("extra") or {}))
        return msg, kwargs


def node_logger(node_id: str, name: str = "toscaconv") -> NodeLogger:
    return NodeLogger(getLogger(name), dict(node=node_id))


class NodeContextFilter(logging.Filter):
    """Sets ``node_prefix`` so format strings can refer to it."""

    def filter(self, record: logging.LogRecord) -> bool:
        node = getattr(record, "node", None)
        record.node_prefix = f"{node}: " if node else ""
        return True


class ColorHandler(logging.StreamHandler):
    # https://rich.readthedocs.io/en/stable/appendix/colors.html
    RICH_STYLE_LEVEL = {
        Levels.CRITICAL: "white on bright_red",
        Levels.ERROR: "white on red",
        Levels.WARNING: "white on dark_orange",  # #ff8700
        Levels.INFO: "white on blue",
        Levels.VERBOSE: "white on bright_blue",
        Levels.DEBUG: "white on black",
        Levels.TRACE: "white on bright_black",
    }

    def emit(self, record: logging.LogRecord) -> None:
        message = self.format(record)
        try:
            level = Levels[record.levelname]
        except KeyError:
            level = Levels.INFO
        try:
            console = Console(
                file=self.stream,
                soft_wrap=True,
                force_terminal=os.environ.get("PY_COLORS") != "0",
            )
            console.print(
                f"[{self.RICH_STYLE_LEVEL[level]}] {level.name.center(8)}[/]", end=""
            )
            console.print(f" {record.name.upper()}", end="")
            node = getattr(record, "node", None)
            if node:
                console.print(f" [bold]{node}[/]", end="")
            console.print(f" {message}", markup=False)
        except Exception:
            self.handleError(record)


def initialize_logging() -> None:
    logging.setLoggerClass(ToscaConvLogger)
    logging.captureWarnings(True)
    logging.addLevelName(Levels.TRACE.value, Levels.TRACE.name)
    logging.addLevelName(Levels.VERBOSE.value, Levels.VERBOSE.name)
    if os.getenv("TOSCACONV_LOGGING"):
        LOGGING["handlers"]["console"]["level"] = Levels[  # type: ignore
            os.getenv("TOSCACONV_LOGGING").upper()  # type: ignore
        ]
    logging.config.dictConfig(LOGGING)
    if os.getenv("TOSCACONV_LOG_FORMAT"):
        formatter = logging.Formatter(os.getenv("TOSCACONV_LOG_FORMAT"))
        logging.getLogger().handlers[0].setFormatter(formatter)


def set_console_log_level(log_level: int) -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "incremental": True,
            "handlers": {"console": {"level": log_level}},
        }
    )


def add_log_file(filename: str, console_level: Levels = Levels.INFO) -> logging.Handler:
    dir = os.path.dirname(filename)
    if dir and not os.path.isdir(dir):
        os.makedirs(dir)

    handler = logging.FileHandler(filename)
    fmt = os.getenv("TOSCACONV_LOG_FORMAT") or DEFAULT_FILE_FORMAT
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(NodeContextFilter())
    handler.setLevel(min(console_level, Levels.DEBUG))
    logging.getLogger().addHandler(handler)
    return handler
