"""Boot resources and the helpers that derive names, labels and values from them."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from .config import (
    BOOT_PROFILE_ANNOTATION_KEY,
    BOOT_TYPES,
    AppSpec,
    BootConfig,
    ConfigError,
    LoganConfig,
)
from .settings import get_settings, parse_bool

logger = logging.getLogger(__name__)

HTTP_PORT_NAME = "http"


@dataclass
class PersistentVolumeClaimMount:
    """A persistent volume claim to mount into the app container."""

    name: str
    mount_path: str = ""
    read_only: bool = False


@dataclass
class BootSpec:
    image: str = ""
    version: str = ""
    port: int = 0
    replicas: Optional[int] = None
    health: Optional[str] = None
    readiness: Optional[str] = None
    env: list[dict[str, Any]] = field(default_factory=list)
    resources: dict[str, Any] = field(default_factory=dict)
    node_selector: dict[str, str] = field(default_factory=dict)
    command: list[str] = field(default_factory=list)
    pvc: list[PersistentVolumeClaimMount] = field(default_factory=list)
    prometheus: str = ""
    node_port: str = ""
    session_affinity: str = ""
    sub_domain: str = ""


@dataclass
class Boot:
    name: str
    namespace: str = ""
    boot_type: str = ""
    app_key: str = ""
    kind: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    spec: BootSpec = field(default_factory=BootSpec)


def _env(env: Optional[str]) -> str:
    return get_settings().env if env is None else env


def deploy_labels(boot: Boot) -> dict[str, str]:
    """Labels for the boot's deployment."""
    return {"app": "havok", "havok/type": boot.name}


def deploy_name(boot: Boot) -> str:
    """Name of the boot's deployment."""
    return boot.name


def app_container_health_port(boot: Boot, app_spec: AppSpec) -> int:
    """Port probed for health: the configured health port, else the boot's port."""
    settings = app_spec.settings
    if settings is not None and settings.app_health_port > 0:
        return settings.app_health_port
    return boot.spec.port


def app_container_image_name(boot: Boot, app_spec: AppSpec) -> str:
    """Full image name of the app container, with the registry when one is set."""
    image = f"{boot.spec.image}:{boot.spec.version}"
    registry = app_spec.settings.registry if app_spec.settings is not None else ""
    return f"{registry}/{image}" if registry else image


def side_car_service_name(boot: Boot, port: Mapping[str, Any]) -> str:
    """Name of the service for a sidecar's container port."""
    return f"{boot.name}-{port.get('name', '')}"


def node_port_service_name(boot: Boot) -> str:
    """Name of the boot's node port service."""
    return f"{boot.name}-external"


def service_labels(boot: Boot, env: Optional[str] = None) -> dict[str, str]:
    """Labels for the services created for a boot."""
    return {"app": boot.name, "logan/env": _env(env)}


def allow_prometheus_scrape(boot: Boot, app_spec: AppSpec) -> bool:
    """Whether Prometheus may scrape the boot: its own setting, else the configured one."""
    if boot.spec.prometheus:
        try:
            return parse_bool(boot.spec.prometheus)
        except ValueError:
            return False
    settings = app_spec.settings
    return bool(settings is not None and settings.prometheus_scrape)


def transfer_service_names(services: Iterable[Mapping[str, Any]]) -> str:
    """Comma separated names of the given service objects."""
    return ",".join(service["metadata"]["name"] for service in services)


def decode(boot: Boot, origin: str, env: Optional[str] = None) -> tuple[str, bool]:
    """Replace ${APP}, ${ENV} and ${PORT} in ``origin``; return the text and whether any was found."""
    result = origin
    replaced = False
    if "${APP}" in origin:
        result = origin.replace("${APP}", boot.name)
        replaced = True
    if "${ENV}" in origin:
        result = result.replace("${ENV}", _env(env))
        replaced = True
    if "${PORT}" in origin:
        result = result.replace("${PORT}", str(boot.spec.port))
        replaced = True
    return result, replaced


def decode_envs(boot: Boot, env_vars: Optional[list[dict[str, Any]]], env: Optional[str] = None) -> bool:
    """Decode the values of the env vars in place; return whether any changed."""
    updated = False
    for env_var in env_vars or ():
        value, replaced = decode(boot, env_var.get("value") or "", env)
        if value or "value" in env_var:
            env_var["value"] = value
        updated = updated or replaced
    return updated


def decode_volumes(boot: Boot, volumes: Optional[list[dict[str, Any]]], env: Optional[str] = None) -> bool:
    """Decode volume names and claim names in place; return whether any changed."""
    updated = False
    for volume in volumes or ():
        claim = volume.get("persistentVolumeClaim")
        if claim is not None:
            claim["claimName"], replaced = decode(boot, claim.get("claimName") or "", env)
            updated = updated or replaced
        volume["name"], replaced = decode(boot, volume.get("name") or "", env)
        updated = updated or replaced
    return updated


def decode_volume_mounts(
    boot: Boot, volume_mounts: Optional[list[dict[str, Any]]], env: Optional[str] = None
) -> bool:
    """Decode volume mount names in place; return whether any changed."""
    updated = False
    for mount in volume_mounts or ():
        mount["name"], replaced = decode(boot, mount.get("name") or "", env)
        updated = updated or replaced
    return updated


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _ordered(entry: Mapping[str, Any], order: tuple[str, ...], omit_empty: tuple[str, ...]) -> dict[str, Any]:
    result = {key: entry[key] for key in order if key in entry}
    result.update((key, value) for key, value in entry.items() if key not in result)
    for key in omit_empty:
        if key in result and not result[key]:
            del result[key]
    return result


def _load_list(text: str) -> Optional[list]:
    data = json.loads(text)
    if data is not None and not isinstance(data, list):
        raise ValueError("expected a JSON array")
    return data


def marshal_env_vars(envs: Optional[list[dict[str, Any]]]) -> str:
    """Encode env vars as compact JSON; None encodes as null."""
    if envs is None:
        return "null"
    return _dumps([_ordered(e, ("name", "value", "valueFrom"), ("value", "valueFrom")) for e in envs])


def decode_env_vars(text: str) -> Optional[list[dict[str, Any]]]:
    """Decode env vars from JSON; ValueError if the text is not valid."""
    data = _load_list(text)
    if data is None:
        return None
    return [_ordered(e, ("name", "value", "valueFrom"), ("value", "valueFrom")) for e in data]


def env_vars_eq(first: Optional[list[dict[str, Any]]], second: Optional[list[dict[str, Any]]]) -> bool:
    """Whether two env var lists are equal; None only equals None."""
    if (first is None) != (second is None):
        return False
    return list(first or ()) == list(second or ())


def _pvc_to_dict(pvc: PersistentVolumeClaimMount) -> dict[str, Any]:
    data: dict[str, Any] = {"name": pvc.name}
    if pvc.read_only:
        data["readOnly"] = True
    data["mountPath"] = pvc.mount_path
    return data


def _pvc_from_dict(data: Mapping[str, Any]) -> PersistentVolumeClaimMount:
    if not isinstance(data, Mapping) or not isinstance(data.get("name"), str):
        raise ValueError("persistent volume claim mount needs a name")
    return PersistentVolumeClaimMount(
        name=data["name"],
        mount_path=data.get("mountPath") or "",
        read_only=bool(data.get("readOnly", False)),
    )


def marshal_pvc_vars(pvcs: Optional[list[PersistentVolumeClaimMount]]) -> str:
    """Encode claim mounts as compact JSON; None encodes as null."""
    if pvcs is None:
        return "null"
    return _dumps([_pvc_to_dict(pvc) for pvc in pvcs])


def decode_pvc_vars(text: str) -> Optional[list[PersistentVolumeClaimMount]]:
    """Decode claim mounts from JSON; ValueError if the text is not valid."""
    data = _load_list(text)
    if data is None:
        return None
    return [_pvc_from_dict(item) for item in data]


def pvc_vars_eq(
    first: Optional[list[PersistentVolumeClaimMount]], second: Optional[list[PersistentVolumeClaimMount]]
) -> bool:
    """Whether two claim mount lists are equal; None only equals None."""
    if (first is None) != (second is None):
        return False
    return list(first or ()) == list(second or ())


_MOUNT_ORDER = ("name", "readOnly", "mountPath", "subPath", "mountPropagation", "subPathExpr")
_MOUNT_OMIT = ("readOnly", "subPath", "mountPropagation", "subPathExpr")


def marshal_volume_mount_vars(volume_mounts: Optional[list[dict[str, Any]]]) -> str:
    """Encode volume mounts as compact JSON; None encodes as null."""
    if volume_mounts is None:
        return "null"
    return _dumps([_ordered(m, _MOUNT_ORDER, _MOUNT_OMIT) for m in volume_mounts])


def decode_volume_mount_vars(text: str) -> Optional[list[dict[str, Any]]]:
    """Decode volume mounts from JSON; ValueError if the text is not valid."""
    data = _load_list(text)
    if data is None:
        return None
    return [_ordered(m, _MOUNT_ORDER, _MOUNT_OMIT) for m in data]


def volume_mount_vars_eq(
    first: Optional[list[dict[str, Any]]], second: Optional[list[dict[str, Any]]]
) -> bool:
    """Whether two volume mount lists are equal; None only equals None."""
    if (first is None) != (second is None):
        return False
    return list(first or ()) == list(second or ())


def get_config_spec(boot: Boot, config: LoganConfig) -> Optional[AppSpec]:
    """The configured app spec for the boot's type, or None for an unknown type."""
    if boot.boot_type not in BOOT_TYPES:
        return None
    return config.for_type(boot.boot_type).app_spec


def get_profile_boot_config(boot: Boot, config: LoganConfig) -> Optional[BootConfig]:
    """The profile configuration named by the boot's profile annotation, or None without one.

    Raises ConfigError when the annotation names a boot type or a profile that does not exist.
    """
    if BOOT_PROFILE_ANNOTATION_KEY not in boot.annotations:
        return None
    profile = boot.annotations[BOOT_PROFILE_ANNOTATION_KEY]
    if profile in BOOT_TYPES:
        raise ConfigError(f"boot using profile, but profile [{profile}] is not allow")
    profile_config = config.profile(profile)
    if profile_config is None:
        raise ConfigError(f"Boot using profile, but profile [{profile}] config is empty: ")
    logger.info("Boot using profile: %s", profile)
    return profile_config


def convert_volume_mount(pvcs: Optional[list[PersistentVolumeClaimMount]]) -> Optional[list[dict[str, Any]]]:
    """Volume mounts for the claim mounts, or None when there are none."""
    if not pvcs:
        return None
    mounts = []
    for pvc in pvcs:
        mount: dict[str, Any] = {"name": pvc.name}
        if pvc.read_only:
            mount["readOnly"] = True
        mount["mountPath"] = pvc.mount_path
        mounts.append(mount)
    return mounts


def convert_volume(pvcs: Optional[list[PersistentVolumeClaimMount]]) -> Optional[list[dict[str, Any]]]:
    """Pod volumes backed by the claims, or None when there are none."""
    if not pvcs:
        return None
    volumes = []
    for pvc in pvcs:
        claim: dict[str, Any] = {"claimName": pvc.name}
        if pvc.read_only:
            claim["readOnly"] = True
        volumes.append({"name": pvc.name, "persistentVolumeClaim": claim})
    return volumes


def current_timestamp() -> str:
    """The current UTC time as a quoted JSON timestamp, as used for creation times."""
    return datetime.now(timezone.utc).strftime('"%Y-%m-%dT%H:%M:%SZ"')