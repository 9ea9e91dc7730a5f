# loganop

`loganop` holds the decision-making core of an operator that runs
application "boots" (Java, PHP, Python, Node.js and web services) on
Kubernetes. It reads the operator's YAML configuration, fills in defaults,
builds the application container of a boot, and keeps revisions and
reconcile metrics. Cluster objects are plain dictionaries in the usual
Kubernetes JSON shape (`env`, `volumeMounts`, `livenessProbe`, ...).

## Modules

- **`loganop.settings`**: `OperatorSettings` holds the running environment
  (`LOGAN_ENV`, default `test`), the config map name (`CONFIGMAP_NAME`,
  default `logan-app-operator-config`), the mutation defaulter switch
  (`MUTATION_DEFAULTER`, default off), the revision history limit
  (`MAX_HISTORY`, default 10), the business environment variable names
  (`BIZ_ENVS`, comma separated) and the number of concurrent reconciles
  (twice the CPU count). `load_settings(environ)` builds them from a
  mapping; an empty or missing environment or config map name, or an
  unparsable switch or limit, falls back to the default. `get_settings()`
  reads the process environment once and caches the result. `parse_bool`
  accepts `1`, `t`, `T`, `true`, `True`, `TRUE` and their false counterparts
  and raises `ValueError` on anything else.
- **`loganop.quantity`**: `parse_quantity` returns the exact `Decimal` value
  of quantities such as `"2"`, `"500m"`, `"512Mi"`, `"2Gi"` or `"1e3"`;
  `quantity_value` rounds it up to an integer; `compare_quantities` returns
  -1, 0 or 1.
- **`loganop.merge`**: `merge_override(dst, src)` merges `src` into `dst` in
  place. Non-empty values of `src` win (booleans always count as set),
  nested mappings are merged key by key, lists of entries that all have a
  `name` are merged by name (the order of `dst` is kept and new names are
  appended), and other lists are replaced.
- **`loganop.config`**: `load_config`, `load_config_from_string` and
  `load_config_file` parse the configuration (YAML or JSON) and return a
  `LoganConfig`. Defaults are applied (port 8080, one replica, `/health`,
  Prometheus scraping on); the `oEnvs.app.<env>` section of the chosen
  environment is merged over the `app` section; `oEnvs.<container>.<env>`
  env entries are merged into sidecar and init containers; and
  `${REGISTRY}` in their images is replaced by the configured registry.
  Malformed input raises `ConfigError`. `decode_image_name` performs the
  registry substitution on its own.
- **`loganop.boot`**: the `Boot`, `BootSpec` and `PersistentVolumeClaimMount`
  data classes, and helpers for deployment and service names and labels,
  image names, health ports, Prometheus scraping, `${APP}` / `${ENV}` /
  `${PORT}` substitution (`decode`, `decode_envs`, `decode_volumes`,
  `decode_volume_mounts`), compact JSON round trips and equality checks for
  env vars, claim mounts and volume mounts, conversion of claim mounts to
  volume mounts and volumes, config and profile lookup
  (`get_config_spec`, `get_profile_boot_config`) and `current_timestamp`.
- **`loganop.handler`**: `BootHandler(boot, config, env)` builds the app
  container (`new_app_container`) with its liveness and readiness probes
  (`get_health_probe`; Python boots get a failure threshold of 15, others
  10) and sets annotations on the boot (`update_annotation`).
- **`loganop.revision`**: `BootRevision`, `RevisionPhase`,
  `init_boot_revision` (zero replicas, business env vars removed, the
  profile annotation kept), `clean_env`, `revision_diff` (a JSON list of
  `{"Type": -1|0|1, "Text": ...}` character-level changes between the YAML
  of two revisions) and `update_revision_annotation`.
- **`loganop.metrics`**: `ReconcileMetrics` counts errors per kind, `Stage`,
  sub stage and boot, and records reconcile durations per kind;
  `error_count` and `observations` read them back. The module-level
  `update_reconcile_time`, `update_reconcile_errors` and
  `update_main_stage_errors` write to a process-wide instance returned by
  `default_metrics()`.

## Loading a configuration

```python
from loganop.config import load_config_from_string, decode_image_name

text = """
java:
  settings:
    registry: "registry.logan.local"
  oEnvs:
    app:
      test:
        port: 8082
        replicas: 2
        health: /health2
  app:
    port: 8083
    env:
      - name: SPRING_PROFILES_ACTIVE
        value: "${ENV}"
"""

config = load_config_from_string(text, "test")
java = config.for_type("java")

print(java.app_spec.port)      # 8082
print(java.app_spec.replicas)  # 2

print(decode_image_name("${REGISTRY}/team/app:1.0", java.app_spec))
# registry.logan.local/team/app:1.0
```

When `env` is not given, the environment from `get_settings()` is used.
Every top-level key other than `java`, `php`, `python`, `nodejs` and `web`
becomes a named profile, found with `config.profile(name)` or, for a boot
carrying the `logan/profile` annotation, with
`loganop.boot.get_profile_boot_config(boot, config)`.

## Building an app container

```python
from loganop.boot import Boot, BootSpec
from loganop.handler import BootHandler

boot = Boot(name="demo", boot_type="java",
            spec=BootSpec(image="team/demo", version="1.0", port=8080, health="/health"))
handler = BootHandler(boot, config.for_type("java"), env="test")
container = handler.new_app_container()
print(container["image"])  # registry.logan.local/team/demo:1.0
```

## Settings from the environment

```python
from loganop.settings import load_settings

settings = load_settings({"LOGAN_ENV": "dev", "MAX_HISTORY": "20", "BIZ_ENVS": "A,B"})
print(settings.env, settings.max_history, sorted(settings.biz_envs))  # dev 20 ['A', 'B']
```

## Recording reconcile metrics

```python
from loganop.metrics import ReconcileMetrics, Stage

metrics = ReconcileMetrics()
metrics.update_reconcile_time("JavaBoot", 0.42)
metrics.update_reconcile_errors("JavaBoot", Stage.CREATE, Stage.CREATE_DEPLOYMENT, "demo")
print(metrics.error_count("JavaBoot", "reconcile_create", "create_deployment", "demo"))  # 1
```

## What it does not do

`loganop` does not connect to a Kubernetes cluster, watch resources or run a
reconcile loop, and it has no command-line entry point or admission
webhook. It does not build whole deployment or service objects. Metrics are
kept in memory only and are not exported to a Prometheus endpoint.

## Running the tests

Install the `test` extra and run `pytest` in the project directory.