import json
from datetime import datetime, timezone

import pytest

from loganop.boot import (
    Boot,
    BootSpec,
    PersistentVolumeClaimMount,
    allow_prometheus_scrape,
    app_container_health_port,
    app_container_image_name,
    convert_volume,
    convert_volume_mount,
    current_timestamp,
    decode,
    decode_env_vars,
    decode_envs,
    decode_pvc_vars,
    decode_volume_mount_vars,
    decode_volume_mounts,
    decode_volumes,
    deploy_labels,
    deploy_name,
    env_vars_eq,
    get_config_spec,
    get_profile_boot_config,
    marshal_env_vars,
    marshal_pvc_vars,
    marshal_volume_mount_vars,
    node_port_service_name,
    pvc_vars_eq,
    service_labels,
    side_car_service_name,
    transfer_service_names,
    volume_mount_vars_eq,
)
from loganop.config import AppSpec, ConfigError, SettingsConfig, load_config_from_string


@pytest.fixture
def boot():
    return Boot(
        name="demo",
        namespace="logan",
        boot_type="java",
        spec=BootSpec(image="logan/demo", version="1.0", port=8080),
    )


def test_names_and_labels(boot):
    assert deploy_name(boot) == "demo"
    assert deploy_labels(boot) == {"app": "havok", "havok/type": "demo"}
    assert node_port_service_name(boot) == "demo-external"
    assert side_car_service_name(boot, {"name": "http", "containerPort": 5678}) == "demo-http"
    assert service_labels(boot, "dev") == {"app": "demo", "logan/env": "dev"}


def test_image_name_with_and_without_registry(boot):
    with_registry = AppSpec(settings=SettingsConfig(registry="registry.logan.local"))
    assert app_container_image_name(boot, with_registry) == "registry.logan.local/logan/demo:1.0"
    assert app_container_image_name(boot, AppSpec(settings=SettingsConfig())) == "logan/demo:1.0"


def test_health_port(boot):
    assert app_container_health_port(boot, AppSpec(settings=SettingsConfig())) == 8080
    assert app_container_health_port(boot, AppSpec(settings=SettingsConfig(app_health_port=5678))) == 5678


def test_allow_prometheus_scrape(boot):
    app_spec = AppSpec(settings=SettingsConfig(prometheus_scrape=True))
    assert allow_prometheus_scrape(boot, app_spec) is True
    boot.spec.prometheus = "false"
    assert allow_prometheus_scrape(boot, app_spec) is False
    boot.spec.prometheus = "not-a-bool"
    assert allow_prometheus_scrape(boot, app_spec) is False


def test_transfer_service_names():
    services = [{"metadata": {"name": "demo"}}, {"metadata": {"name": "demo-http"}}]
    assert transfer_service_names(services) == "demo,demo-http"
    assert transfer_service_names([]) == ""


def test_decode_replaces_placeholders(boot):
    assert decode(boot, "${APP}-${ENV}:${PORT}", "test") == ("demo-test:8080", True)
    assert decode(boot, "plain", "test") == ("plain", False)
    assert decode(boot, "-Denv=${ENV}", "dev") == ("-Denv=dev", True)


def test_decode_envs_in_place(boot):
    envs = [{"name": "A", "value": "${APP}"}, {"name": "B", "value": "fixed"}]
    assert decode_envs(boot, envs, "test") is True
    assert envs == [{"name": "A", "value": "demo"}, {"name": "B", "value": "fixed"}]
    assert decode_envs(boot, envs, "test") is False


def test_decode_volumes_and_mounts(boot):
    volumes = [{"name": "${APP}-data", "persistentVolumeClaim": {"claimName": "${APP}-claim"}}]
    assert decode_volumes(boot, volumes, "test") is True
    assert volumes[0]["name"] == "demo-data"
    assert volumes[0]["persistentVolumeClaim"]["claimName"] == "demo-claim"

    mounts = [{"name": "${APP}-data", "mountPath": "/data"}]
    assert decode_volume_mounts(boot, mounts, "test") is True
    assert mounts == [{"name": "demo-data", "mountPath": "/data"}]


def test_env_vars_round_trip():
    envs = [{"name": "A", "value": "1"}, {"name": "B"}]
    text = marshal_env_vars(envs)
    assert json.loads(text) == envs
    assert env_vars_eq(decode_env_vars(text), envs)
    assert marshal_env_vars(None) == "null"
    assert decode_env_vars("null") is None


def test_env_vars_eq_none_and_empty_differ():
    assert env_vars_eq(None, None)
    assert not env_vars_eq(None, [])
    assert not env_vars_eq([{"name": "A", "value": "1"}], [{"name": "A", "value": "2"}])


def test_decode_env_vars_rejects_bad_json():
    with pytest.raises(ValueError):
        decode_env_vars("{not json")


def test_pvc_round_trip():
    pvcs = [PersistentVolumeClaimMount("data", "/data", True), PersistentVolumeClaimMount("logs", "/logs")]
    decoded = decode_pvc_vars(marshal_pvc_vars(pvcs))
    assert pvc_vars_eq(decoded, pvcs)
    assert not pvc_vars_eq(None, pvcs)
    assert not pvc_vars_eq(pvcs[:1], pvcs)


def test_volume_mounts_round_trip():
    mounts = convert_volume_mount([PersistentVolumeClaimMount("data", "/data", True)])
    decoded = decode_volume_mount_vars(marshal_volume_mount_vars(mounts))
    assert volume_mount_vars_eq(decoded, mounts)
    assert not volume_mount_vars_eq(None, [])


def test_convert_volume_and_mount():
    pvcs = [PersistentVolumeClaimMount("data", "/data")]
    assert convert_volume_mount(pvcs) == [{"name": "data", "mountPath": "/data"}]
    assert convert_volume(pvcs) == [{"name": "data", "persistentVolumeClaim": {"claimName": "data"}}]
    assert convert_volume_mount([]) is None
    assert convert_volume(None) is None


def test_get_config_spec(boot):
    config = load_config_from_string("java:\n  app:\n    port: 8083\n", env="test")
    assert get_config_spec(boot, config).port == 8083
    boot.boot_type = "unknown"
    assert get_config_spec(boot, config) is None


def test_profile_config(boot):
    config = load_config_from_string("myprofile:\n  app:\n    port: 9090\n", env="test")
    assert get_profile_boot_config(boot, config) is None

    boot.annotations["logan/profile"] = "myprofile"
    assert get_profile_boot_config(boot, config).app_spec.port == 9090

    boot.annotations["logan/profile"] = "java"
    with pytest.raises(ConfigError):
        get_profile_boot_config(boot, config)

    boot.annotations["logan/profile"] = "missing"
    with pytest.raises(ConfigError):
        get_profile_boot_config(boot, config)


def test_current_timestamp_is_json_utc_now():
    before = datetime.now(timezone.utc).replace(microsecond=0)
    text = current_timestamp()
    after = datetime.now(timezone.utc)

    value = json.loads(text)
    assert text == json.dumps(value)
    parsed = datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    assert before <= parsed <= after