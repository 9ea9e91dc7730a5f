"""Boot revisions: snapshots of a boot's spec and the changes between them."""

from __future__ import annotations

import copy
import difflib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

import yaml

from .boot import Boot, BootSpec
from .config import BOOT_PROFILE_ANNOTATION_KEY
from .settings import get_settings

_DIFF_DELETE = -1
_DIFF_EQUAL = 0
_DIFF_INSERT = 1


class RevisionPhase(str, Enum):
    RUNNING = "Running"
    ACTIVE = "Active"
    COMPLETE = "Complete"
    CANCEL = "Cancelled"


@dataclass
class BootRevision:
    name: str
    namespace: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    spec: BootSpec = field(default_factory=BootSpec)
    boot_type: str = ""
    app_key: str = ""


def clean_env(
    envs: Optional[Iterable[Mapping[str, Any]]], biz_envs: Optional[Iterable[str]] = None
) -> list[dict[str, Any]]:
    """Return copies of the env vars whose names are not business envs."""
    skipped = frozenset(get_settings().biz_envs if biz_envs is None else biz_envs)
    return [copy.deepcopy(dict(env)) for env in envs or () if env.get("name") not in skipped]


def init_boot_revision(boot: Boot, biz_envs: Optional[Iterable[str]] = None) -> BootRevision:
    """Build a revision of the boot, with no replicas and without business envs."""
    annotations: dict[str, str] = {}
    if BOOT_PROFILE_ANNOTATION_KEY in boot.annotations:
        annotations[BOOT_PROFILE_ANNOTATION_KEY] = boot.annotations[BOOT_PROFILE_ANNOTATION_KEY]
    spec = copy.deepcopy(boot.spec)
    spec.replicas = 0
    spec.env = clean_env(spec.env, biz_envs)
    return BootRevision(
        name=boot.name,
        namespace=boot.namespace,
        annotations=annotations,
        spec=spec,
        boot_type=boot.boot_type,
        app_key=boot.app_key,
    )


def _spec_to_dict(spec: BootSpec) -> dict[str, Any]:
    data: dict[str, Any] = {
        "image": spec.image,
        "version": spec.version,
        "port": spec.port,
        "env": spec.env,
        "resources": spec.resources,
    }
    optional = {
        "replicas": spec.replicas,
        "health": spec.health,
        "readiness": spec.readiness,
        "nodeSelector": spec.node_selector or None,
        "command": spec.command or None,
        "pvc": [
            {"name": p.name, "mountPath": p.mount_path, **({"readOnly": True} if p.read_only else {})}
            for p in spec.pvc
        ] or None,
        "prometheus": spec.prometheus or None,
        "nodePort": spec.node_port or None,
        "sessionAffinity": spec.session_affinity or None,
        "subDomain": spec.sub_domain or None,
    }
    data.update((key, value) for key, value in optional.items() if value is not None)
    return data


def _revision_yaml(revision: BootRevision) -> str:
    data = {
        "spec": _spec_to_dict(revision.spec),
        "bootType": revision.boot_type,
        "appKey": revision.app_key,
    }
    return yaml.safe_dump(data, sort_keys=True, default_flow_style=False, allow_unicode=True)


def _diff(old: str, new: str) -> list[dict[str, Any]]:
    matcher = difflib.SequenceMatcher(None, old, new, autojunk=False)
    diffs: list[dict[str, Any]] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            diffs.append({"Type": _DIFF_EQUAL, "Text": old[i1:i2]})
            continue
        if i2 > i1:
            diffs.append({"Type": _DIFF_DELETE, "Text": old[i1:i2]})
        if j2 > j1:
            diffs.append({"Type": _DIFF_INSERT, "Text": new[j1:j2]})
    return diffs


def revision_diff(current: BootRevision, latest: BootRevision) -> str:
    """Return the changes from ``latest`` to ``current`` as a JSON list of {Type, Text}."""
    diffs = _diff(_revision_yaml(latest), _revision_yaml(current))
    return json.dumps(diffs, separators=(",", ":"), ensure_ascii=False)


def update_revision_annotation(revision: BootRevision, annotations: Mapping[str, str]) -> bool:
    """Set the given annotations on the revision; return whether any value changed."""
    updated = False
    for key, value in annotations.items():
        value = value.value if isinstance(value, Enum) else value
        if key not in revision.annotations or revision.annotations[key] != value:
            revision.annotations[key] = value
            updated = True
    return updated