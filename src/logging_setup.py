"""Logging setup driven by the ``logging`` section of config.json.

Secrets named under ``redact.patterns`` are looked up in the environment and
masked in every formatted record, so API keys and the reference hash never
reach the log file.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Iterable, List, Mapping, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_PATH = "logs/chatrecs.log"


class RedactingFormatter(logging.Formatter):
    def __init__(
        self,
        secrets: Iterable[str],
        fmt: str = LOG_FORMAT,
        datefmt: Optional[str] = DATE_FORMAT,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first so a secret that contains another is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def secret_values(redact: Mapping, environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Values of the environment variables listed for redaction."""

    if not redact.get("enabled", False):
        return []
    env = os.environ if environ is None else environ
    return [env[name] for name in redact.get("patterns", []) if env.get(name)]


def _file_handler(file_cfg: Mapping, project_root: str) -> RotatingFileHandler:
    path = file_cfg.get("path", DEFAULT_LOG_PATH)
    if not os.path.isabs(path):
        path = os.path.join(project_root, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def build_handlers(config: Mapping, project_root: str) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if config.get("console", False):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_file_handler(file_cfg, project_root))

    formatter = RedactingFormatter(secret_values(config.get("redact", {})))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(config: Optional[Mapping], project_root: str) -> bool:
    """Install handlers on the root logger; False when logging stays off."""

    config = config or {}
    if not config.get("enabled", False):
        return False

    handlers = build_handlers(config, project_root)
    if not handlers:
        return False

    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, handlers=handlers)
    return True
