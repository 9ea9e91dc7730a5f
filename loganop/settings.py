"""Operator-wide settings read from the process environment."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ENV_KEY = "LOGAN_ENV"
CONFIGMAP_KEY = "CONFIGMAP_NAME"
MUTATION_DEFAULTER_KEY = "MUTATION_DEFAULTER"
MAX_HISTORY_KEY = "MAX_HISTORY"
BIZ_ENVS_KEY = "BIZ_ENVS"

DEFAULT_ENV = "test"
DEFAULT_CONFIGMAP = "logan-app-operator-config"
DEFAULT_MAX_HISTORY = 10
CONFIG_FILENAME = "config.yaml"

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _default_concurrency() -> int:
    return (os.cpu_count() or 1) * 2


@dataclass(frozen=True)
class OperatorSettings:
    """Settings that control how the operator runs."""

    env: str = DEFAULT_ENV
    configmap: str = DEFAULT_CONFIGMAP
    mutation_defaulter: bool = False
    max_history: int = DEFAULT_MAX_HISTORY
    biz_envs: frozenset[str] = frozenset()
    max_concurrent_reconciles: int = field(default_factory=_default_concurrency)


def parse_bool(value: str) -> bool:
    """Parse a boolean word such as "1", "t", "TRUE" or "false"."""
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


def _parse_int(value: str) -> int:
    if not _INTEGER.fullmatch(value):
        raise ValueError(f"invalid integer value: {value!r}")
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"integer value out of range: {value!r}")
    return number


def load_settings(environ: Optional[Mapping[str, str]] = None) -> OperatorSettings:
    """Build the settings from an environment mapping (the process environment by default)."""
    if environ is None:
        environ = os.environ

    env = environ.get(ENV_KEY, "")
    if not env:
        logger.info("%s not set or empty, using default %r", ENV_KEY, DEFAULT_ENV)
        env = DEFAULT_ENV

    configmap = environ.get(CONFIGMAP_KEY, "")
    if not configmap:
        logger.info("%s not set or empty, using default %r", CONFIGMAP_KEY, DEFAULT_CONFIGMAP)
        configmap = DEFAULT_CONFIGMAP

    mutation_defaulter = False
    raw_mutation = environ.get(MUTATION_DEFAULTER_KEY)
    if raw_mutation is None:
        logger.info("%s not set, using default False", MUTATION_DEFAULTER_KEY)
    else:
        try:
            mutation_defaulter = parse_bool(raw_mutation)
        except ValueError:
            logger.error("%s parse error, using default False", MUTATION_DEFAULTER_KEY)

    max_history = DEFAULT_MAX_HISTORY
    raw_history = environ.get(MAX_HISTORY_KEY)
    if raw_history is None:
        logger.info("%s not set, using default %d", MAX_HISTORY_KEY, DEFAULT_MAX_HISTORY)
    else:
        try:
            max_history = _parse_int(raw_history)
        except ValueError:
            logger.error("%s parse error, using default %d", MAX_HISTORY_KEY, DEFAULT_MAX_HISTORY)

    raw_biz = environ.get(BIZ_ENVS_KEY)
    if raw_biz is None:
        logger.info("%s not set, using default ''", BIZ_ENVS_KEY)
        biz_envs: frozenset[str] = frozenset()
    else:
        biz_envs = frozenset(raw_biz.split(","))

    return OperatorSettings(
        env=env,
        configmap=configmap,
        mutation_defaulter=mutation_defaulter,
        max_history=max_history,
        biz_envs=biz_envs,
        max_concurrent_reconciles=_default_concurrency(),
    )


@lru_cache(maxsize=None)
def get_settings() -> OperatorSettings:
    """Return the settings of this process, read once from the environment."""
    return load_settings(os.environ)