"""Builds the app container of a boot from its spec and the operator configuration."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .boot import (
    HTTP_PORT_NAME,
    Boot,
    app_container_health_port,
    app_container_image_name,
    convert_volume_mount,
    decode_volume_mounts,
)
from .config import BOOT_PYTHON, BootConfig
from .merge import merge_override

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "app"
DEFAULT_IMAGE_PULL_POLICY = "Always"
DEFAULT_FAILURE_THRESHOLD = 10
PYTHON_FAILURE_THRESHOLD = 15
LIVENESS_INITIAL_DELAY = 120
READINESS_INITIAL_DELAY = 60
PROBE_PERIOD_SECONDS = 10
PROBE_SUCCESS_THRESHOLD = 1
PROBE_TIMEOUT_SECONDS = 5


@dataclass
class BootHandler:
    """Works on one boot with the configuration resolved for it."""

    boot: Boot
    config: BootConfig
    env: Optional[str] = None

    def update_annotation(self, annotations: Mapping[str, str]) -> bool:
        """Set the given annotations on the boot; return whether any value changed."""
        current = self.boot.annotations
        updated = False
        for key, value in annotations.items():
            if current.get(key) != value or key not in current:
                current[key] = value
                updated = True
        return updated

    def new_app_container(self) -> dict[str, Any]:
        """Return a new app container for the boot."""
        boot = self.boot
        app_spec = self.config.app_spec
        container: dict[str, Any] = {
            "image": app_container_image_name(boot, app_spec),
            "name": DEFAULT_APP_NAME,
            "ports": [{"containerPort": boot.spec.port, "name": HTTP_PORT_NAME}],
            "env": copy.deepcopy(boot.spec.env),
            "imagePullPolicy": DEFAULT_IMAGE_PULL_POLICY,
            "resources": copy.deepcopy(boot.spec.resources),
        }

        # An empty health path disables both probes.
        if boot.spec.health:
            liveness, readiness = self.get_health_probe()
            container["livenessProbe"] = liveness
            container["readinessProbe"] = readiness

        if boot.spec.command:
            container["command"] = list(boot.spec.command)

        if app_spec.container is not None:
            try:
                merge_override(container, copy.deepcopy(app_spec.container))
            except TypeError:
                logger.exception("Merge error, type=container")

        mounts = convert_volume_mount(boot.spec.pvc)
        if mounts:
            volume_mounts = list(container.get("volumeMounts") or [])
            volume_mounts.extend(mounts)
            decode_volume_mounts(boot, volume_mounts, self.env)
            container["volumeMounts"] = volume_mounts

        return container

    def get_health_probe(self) -> tuple[dict[str, Any], dict[str, Any]]:
        """Return the liveness and readiness probes of the app container."""
        boot = self.boot
        if boot.spec.health is None:
            raise ValueError(f"boot {boot.name} has no health path")
        port = app_container_health_port(boot, self.config.app_spec)
        threshold = PYTHON_FAILURE_THRESHOLD if boot.boot_type == BOOT_PYTHON else DEFAULT_FAILURE_THRESHOLD

        readiness_path = boot.spec.readiness or boot.spec.health
        liveness = _probe(boot.spec.health, port, threshold, LIVENESS_INITIAL_DELAY)
        readiness = _probe(readiness_path, port, threshold, READINESS_INITIAL_DELAY)
        return liveness, readiness


def _probe(path: str, port: int, failure_threshold: int, initial_delay: int) -> dict[str, Any]:
    return {
        "failureThreshold": failure_threshold,
        "httpGet": {"path": path, "port": port, "scheme": "HTTP"},
        "initialDelaySeconds": initial_delay,
        "periodSeconds": PROBE_PERIOD_SECONDS,
        "successThreshold": PROBE_SUCCESS_THRESHOLD,
        "timeoutSeconds": PROBE_TIMEOUT_SECONDS,
    }