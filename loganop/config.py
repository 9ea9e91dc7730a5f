"""Operator configuration: per boot type defaults, sidecars and profiles."""

from __future__ import annotations

import copy
import io
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import IO, Any, Optional, Union

import yaml

from .merge import merge_override
from .quantity import parse_quantity
from .settings import get_settings

logger = logging.getLogger(__name__)

BOOT_JAVA = "java"
BOOT_PHP = "php"
BOOT_PYTHON = "python"
BOOT_NODEJS = "nodejs"
BOOT_WEB = "web"
BOOT_TYPES = (BOOT_JAVA, BOOT_PHP, BOOT_PYTHON, BOOT_NODEJS, BOOT_WEB)

OPERATOR_APP_KEY = "app"
DEFAULT_PORT = 8080
DEFAULT_REPLICAS = 1
DEFAULT_HEALTH = "/health"
DEFAULT_PROMETHEUS_SCRAPE = True
BOOT_PROFILE_ANNOTATION_KEY = "logan/profile"
REGISTRY_PLACEHOLDER = "${REGISTRY}"

_REPLACED_WHOLE = ("settings", "podSpec", "container")


class ConfigError(ValueError):
    """The operator configuration cannot be read."""


@dataclass
class SettingsConfig:
    registry: str = ""
    app_health_port: int = 0
    prometheus_scrape: Optional[bool] = None


@dataclass
class SidecarService:
    name: str
    port: int


@dataclass
class AppSpec:
    type: str = ""
    port: int = 0
    replicas: int = 0
    health: str = ""
    env: list[dict[str, Any]] = field(default_factory=list)
    resources: dict[str, Any] = field(default_factory=dict)
    node_selector: dict[str, str] = field(default_factory=dict)
    sub_domain: str = ""
    pod_spec: Optional[dict[str, Any]] = None
    container: Optional[dict[str, Any]] = None
    settings: Optional[SettingsConfig] = None


@dataclass
class OperatorConfig:
    """One boot type's or profile's section of the configuration file, as read."""

    settings: Optional[SettingsConfig] = None
    o_envs: dict[str, dict[str, dict[str, Any]]] = field(default_factory=dict)
    app: dict[str, Any] = field(default_factory=dict)
    sidecar_containers: Optional[list[dict[str, Any]]] = None
    sidecar_services: Optional[list[SidecarService]] = None


@dataclass
class BootConfig:
    """The resolved configuration for one boot type or profile."""

    app_spec: AppSpec
    sidecar_containers: Optional[list[dict[str, Any]]] = None
    sidecar_services: Optional[list[SidecarService]] = None


@dataclass
class LoganConfig:
    java: BootConfig
    php: BootConfig
    python: BootConfig
    nodejs: BootConfig
    web: BootConfig
    profiles: dict[str, BootConfig] = field(default_factory=dict)

    def for_type(self, boot_type: str) -> BootConfig:
        """Return the configuration of a boot type; KeyError for an unknown type."""
        if boot_type not in BOOT_TYPES:
            raise KeyError(boot_type)
        return getattr(self, boot_type)

    def profile(self, name: str) -> Optional[BootConfig]:
        """Return the configuration of a named profile, or None if there is none."""
        return self.profiles.get(name)


def _mapping(value: Any, where: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where}: expected a mapping")
    return {str(key): item for key, item in value.items()}


def _optional_mapping(value: Any, where: str) -> Optional[dict]:
    return None if value is None else _mapping(value, where)


def _int(value: Any, where: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{where}: expected an integer")
    return value


def _str(value: Any, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{where}: expected a string")
    return value


def _container_list(value: Any, where: str) -> Optional[list[dict]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ConfigError(f"{where}: expected a list")
    return [_mapping(item, f"{where}[{index}]") for index, item in enumerate(value)]


def _env_list(value: Any, where: str) -> list[dict]:
    entries = _container_list(value, where) or []
    for index, entry in enumerate(entries):
        _str(entry.get("name"), f"{where}[{index}].name")
    return entries


def _str_map(value: Any, where: str) -> dict[str, str]:
    return {key: _str(item, f"{where}.{key}") for key, item in _mapping(value, where).items()}


def _resources(value: Any, where: str) -> dict[str, Any]:
    resources = _mapping(value, where)
    for section in ("limits", "requests"):
        if section not in resources:
            continue
        quantities = {}
        for name, amount in _mapping(resources[section], f"{where}.{section}").items():
            try:
                parse_quantity(amount)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"{where}.{section}.{name}: {exc}") from exc
            quantities[name] = str(amount)
        resources[section] = quantities
    return resources


def _parse_settings(value: Any, where: str) -> Optional[SettingsConfig]:
    if value is None:
        return None
    raw = _mapping(value, where)
    scrape = raw.get("prometheusScrape")
    if scrape is not None and not isinstance(scrape, bool):
        raise ConfigError(f"{where}.prometheusScrape: expected a boolean")
    return SettingsConfig(
        registry=_str(raw.get("registry"), f"{where}.registry"),
        app_health_port=_int(raw.get("appHealthPort"), f"{where}.appHealthPort"),
        prometheus_scrape=scrape,
    )


def _parse_operator(value: Any, where: str) -> OperatorConfig:
    raw = _mapping(value, where)
    o_envs = {
        name: {
            env: _mapping(spec, f"{where}.oEnvs.{name}.{env}")
            for env, spec in _mapping(per_env, f"{where}.oEnvs.{name}").items()
        }
        for name, per_env in _mapping(raw.get("oEnvs"), f"{where}.oEnvs").items()
    }
    services = raw.get("sidecarServices")
    sidecar_services = None
    if services is not None:
        sidecar_services = [
            SidecarService(
                name=_str(item.get("name"), f"{where}.sidecarServices[{index}].name"),
                port=_int(item.get("port"), f"{where}.sidecarServices[{index}].port"),
            )
            for index, item in enumerate(_container_list(services, f"{where}.sidecarServices") or [])
        ]
    return OperatorConfig(
        settings=_parse_settings(raw.get("settings"), f"{where}.settings"),
        o_envs=o_envs,
        app=_mapping(raw.get("app"), f"{where}.app"),
        sidecar_containers=_container_list(raw.get("sideCarContainers"), f"{where}.sideCarContainers"),
        sidecar_services=sidecar_services,
    )


def _build_app_spec(app: dict, settings: SettingsConfig, where: str) -> AppSpec:
    return AppSpec(
        type=_str(app.get("type"), f"{where}.type"),
        port=_int(app.get("port"), f"{where}.port"),
        replicas=_int(app.get("replicas"), f"{where}.replicas"),
        health=_str(app.get("health"), f"{where}.health"),
        env=_env_list(app.get("env"), f"{where}.env"),
        resources=_resources(app.get("resources"), f"{where}.resources"),
        node_selector=_str_map(app.get("nodeSelector"), f"{where}.nodeSelector"),
        sub_domain=_str(app.get("subDomain"), f"{where}.subDomain"),
        pod_spec=_optional_mapping(app.get("podSpec"), f"{where}.podSpec"),
        container=_optional_mapping(app.get("container"), f"{where}.container"),
        settings=settings,
    )


def _prepare_containers(
    containers: list[dict],
    operator: OperatorConfig,
    env: str,
    app_spec: AppSpec,
    where: str,
) -> None:
    for index, container in enumerate(containers):
        name = _str(container.get("name"), f"{where}[{index}].name")
        if "image" in container:
            container["image"] = decode_image_name(
                _str(container["image"], f"{where}[{index}].image"), app_spec
            )
        env_spec = operator.o_envs.get(name, {}).get(env)
        if env_spec is None:
            continue
        holder = {"env": _env_list(container.get("env"), f"{where}[{index}].env")}
        merge_override(holder, {"env": _env_list(env_spec.get("env"), f"oEnvs.{name}.{env}.env")})
        if holder["env"] or "env" in container:
            container["env"] = holder["env"]


def _resolve(operator: OperatorConfig, key: str, env: str) -> BootConfig:
    where = f"{key}.app"
    app = copy.deepcopy(operator.app)
    env_app = copy.deepcopy(operator.o_envs.get(OPERATOR_APP_KEY, {}).get(env, {}))

    if _int(app.get("port"), f"{where}.port") <= 0:
        app["port"] = DEFAULT_PORT
    if _int(app.get("replicas"), f"{where}.replicas") <= 0:
        app["replicas"] = DEFAULT_REPLICAS
    if not _str(app.get("health"), f"{where}.health"):
        app["health"] = DEFAULT_HEALTH

    app_settings = _parse_settings(app.get("settings"), f"{where}.settings") or SettingsConfig()

    # Settings, pod spec and container given for the environment replace the app's whole.
    env_settings = _parse_settings(env_app.get("settings"), f"{key}.oEnvs.app.{env}.settings")
    if env_settings is not None:
        app_settings = replace(env_settings)
    for name in ("podSpec", "container"):
        if env_app.get(name) is not None:
            app[name] = env_app[name]
    merge_override(app, {k: v for k, v in env_app.items() if k not in _REPLACED_WHOLE})

    global_settings = replace(operator.settings) if operator.settings is not None else None
    if env_settings is not None and global_settings is not None:
        if env_settings.registry:
            global_settings.registry = env_settings.registry
        if env_settings.app_health_port > 0:
            global_settings.app_health_port = env_settings.app_health_port
        if env_settings.prometheus_scrape is not None:
            global_settings.prometheus_scrape = env_settings.prometheus_scrape

    if global_settings is not None:
        if global_settings.registry:
            app_settings.registry = global_settings.registry
        if global_settings.app_health_port > 0:
            app_settings.app_health_port = global_settings.app_health_port
        if global_settings.prometheus_scrape is not None:
            app_settings.prometheus_scrape = global_settings.prometheus_scrape

    if app_settings.prometheus_scrape is None:
        app_settings.prometheus_scrape = DEFAULT_PROMETHEUS_SCRAPE

    app_spec = _build_app_spec(app, app_settings, where)

    if app_spec.pod_spec is not None:
        init_containers = _container_list(
            app_spec.pod_spec.get("initContainers"), f"{where}.podSpec.initContainers"
        )
        if init_containers is not None:
            _prepare_containers(init_containers, operator, env, app_spec, f"{where}.podSpec.initContainers")
            app_spec.pod_spec["initContainers"] = init_containers

    sidecars = copy.deepcopy(operator.sidecar_containers)
    if sidecars is not None:
        _prepare_containers(sidecars, operator, env, app_spec, f"{key}.sideCarContainers")

    return BootConfig(
        app_spec=app_spec,
        sidecar_containers=sidecars,
        sidecar_services=copy.deepcopy(operator.sidecar_services),
    )


def load_config(stream: IO, env: Optional[str] = None) -> LoganConfig:
    """Read the configuration (YAML or JSON) from a stream and resolve it for ``env``."""
    if env is None:
        env = get_settings().env
    try:
        data = next(yaml.safe_load_all(stream.read()), None)
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse configuration: {exc}") from exc
    raw = _mapping(data, "configuration")

    operators = {key: _parse_operator(value, key) for key, value in raw.items()}
    for boot_type in BOOT_TYPES:
        operators.setdefault(boot_type, OperatorConfig())

    resolved = {key: _resolve(operator, key, env) for key, operator in operators.items()}
    return LoganConfig(
        java=resolved[BOOT_JAVA],
        php=resolved[BOOT_PHP],
        python=resolved[BOOT_PYTHON],
        nodejs=resolved[BOOT_NODEJS],
        web=resolved[BOOT_WEB],
        profiles={key: value for key, value in resolved.items() if key not in BOOT_TYPES},
    )


def load_config_from_string(content: str, env: Optional[str] = None) -> LoganConfig:
    """Read the configuration from a string; an empty string gives the defaults."""
    return load_config(io.StringIO(content), env)


def load_config_file(path: Union[str, "os.PathLike[str]"], env: Optional[str] = None) -> LoganConfig:
    """Read the configuration from a file."""
    try:
        with open(path, encoding="utf-8") as handle:
            return load_config(handle, env)
    except OSError as exc:
        raise ConfigError(f"cannot open config file {path}: {exc}") from exc


def decode_image_name(image: str, app_spec: AppSpec) -> str:
    """Put the configured registry in place of ${REGISTRY} in an image name."""
    registry = app_spec.settings.registry if app_spec.settings is not None else ""
    if registry:
        return image.replace(REGISTRY_PLACEHOLDER, registry)
    return image