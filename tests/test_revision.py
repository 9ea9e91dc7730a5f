import json

from loganop.boot import Boot, BootSpec
from loganop.revision import (
    BootRevision,
    RevisionPhase,
    clean_env,
    init_boot_revision,
    revision_diff,
    update_revision_annotation,
)


def make_boot(image="logan/app", annotations=None):
    spec = BootSpec(
        image=image,
        version="1.0",
        port=8080,
        replicas=3,
        health="/health",
        env=[{"name": "KEEP", "value": "1"}, {"name": "BIZ", "value": "2"}],
    )
    return Boot(name="demo", namespace="ns", boot_type="java", app_key="javaBoot",
                annotations=annotations or {}, spec=spec)


def test_clean_env_removes_business_envs():
    envs = [{"name": "KEEP", "value": "1"}, {"name": "BIZ", "value": "2"}]
    assert clean_env(envs, {"BIZ"}) == [{"name": "KEEP", "value": "1"}]


def test_clean_env_of_none_is_empty():
    assert clean_env(None, {"BIZ"}) == []


def test_init_boot_revision():
    boot = make_boot(annotations={"logan/profile": "gray", "other": "x"})
    revision = init_boot_revision(boot, {"BIZ"})
    assert revision.name == "demo"
    assert revision.namespace == "ns"
    assert revision.boot_type == "java"
    assert revision.app_key == "javaBoot"
    assert revision.spec.replicas == 0
    assert revision.spec.env == [{"name": "KEEP", "value": "1"}]
    assert revision.annotations == {"logan/profile": "gray"}


def test_init_boot_revision_leaves_boot_alone():
    boot = make_boot()
    revision = init_boot_revision(boot, {"BIZ"})
    assert boot.spec.replicas == 3
    assert len(boot.spec.env) == 2
    assert revision.annotations == {}


def test_revision_diff_identical_is_all_equal():
    revision = init_boot_revision(make_boot(), set())
    diffs = json.loads(revision_diff(revision, revision))
    assert diffs
    assert all(item["Type"] == 0 for item in diffs)


def test_revision_diff_reconstructs_both_sides():
    latest = init_boot_revision(make_boot(image="old-image"), set())
    current = init_boot_revision(make_boot(image="new-image"), set())
    diffs = json.loads(revision_diff(current, latest))
    old_text = "".join(item["Text"] for item in diffs if item["Type"] in (0, -1))
    new_text = "".join(item["Text"] for item in diffs if item["Type"] in (0, 1))
    assert "old-image" in old_text and "new-image" not in old_text
    assert "new-image" in new_text and "old-image" not in new_text
    assert any(item["Type"] != 0 for item in diffs)


def test_revision_diff_ignores_metadata():
    first = init_boot_revision(make_boot(), set())
    second = init_boot_revision(make_boot(), set())
    second.name = "renamed"
    second.annotations = {"k": "v"}
    diffs = json.loads(revision_diff(first, second))
    assert all(item["Type"] == 0 for item in diffs)


def test_update_revision_annotation():
    revision = BootRevision(name="demo")
    key = "app.logancloud.com/revision-phase"
    assert update_revision_annotation(revision, {key: RevisionPhase.RUNNING.value}) is True
    assert revision.annotations[key] == "Running"
    assert update_revision_annotation(revision, {key: "Running"}) is False
    assert update_revision_annotation(revision, {key: RevisionPhase.ACTIVE}) is True
    assert revision.annotations[key] == "Active"