from datetime import timedelta

from loganop import metrics
from loganop.metrics import ReconcileMetrics, Stage


def test_stage_values_match_metric_labels():
    m = ReconcileMetrics()
    m.update_reconcile_errors("JavaBoot", Stage.CREATE, Stage.CREATE_DEPLOYMENT, "demo")
    m.update_reconcile_errors("JavaBoot", Stage.UPDATE, Stage.LIST_SERVICES, "demo")
    m.update_reconcile_errors("JavaBoot", Stage.UPDATE_BOOT_META, Stage.UPDATE_BOOT_META_SUB, "demo")
    assert m.error_count("JavaBoot", "reconcile_create", "create_deployment", "demo") == 1
    assert m.error_count("JavaBoot", "reconcile_update", "list_service", "demo") == 1
    assert m.error_count("JavaBoot", "reconcile_update_boot_meta", "update_boot_meta", "demo") == 1


def test_errors_are_counted_per_label_set():
    m = ReconcileMetrics()
    m.update_reconcile_errors("JavaBoot", Stage.CREATE, Stage.CREATE_DEPLOYMENT, "demo")
    m.update_reconcile_errors("JavaBoot", Stage.CREATE, Stage.CREATE_DEPLOYMENT, "demo")
    m.update_reconcile_errors("JavaBoot", Stage.CREATE, Stage.CREATE_SERVICE, "demo")
    assert m.error_count("JavaBoot", Stage.CREATE, Stage.CREATE_DEPLOYMENT, "demo") == 2
    assert m.error_count("JavaBoot", Stage.CREATE, Stage.CREATE_SERVICE, "demo") == 1
    assert m.error_count("PhpBoot", Stage.CREATE, Stage.CREATE_SERVICE, "demo") == 0


def test_stage_enum_and_plain_string_are_the_same_label():
    m = ReconcileMetrics()
    m.update_reconcile_errors("JavaBoot", "reconcile_update", "get_service", "demo")
    assert m.error_count("JavaBoot", Stage.UPDATE, Stage.GET_SERVICE, "demo") == 1


def test_main_stage_errors_use_empty_sub_stage():
    m = ReconcileMetrics()
    m.update_main_stage_errors("JavaBoot", Stage.GET_BOOT, "demo")
    assert m.error_count("JavaBoot", Stage.GET_BOOT, "", "demo") == 1
    assert m.error_count("JavaBoot", Stage.GET_BOOT, Stage.GET_DEPLOYMENT, "demo") == 0


def test_reconcile_time_observations():
    m = ReconcileMetrics()
    m.update_reconcile_time("JavaBoot", 0.5)
    m.update_reconcile_time("JavaBoot", timedelta(seconds=2))
    assert m.observations("JavaBoot") == (0.5, 2.0)
    assert m.observations("PhpBoot") == ()


def test_module_functions_use_shared_metrics():
    shared = metrics.default_metrics()
    before = shared.error_count("WebBoot", Stage.UPDATE, Stage.LIST_PODS, "shared-demo")
    metrics.update_reconcile_errors("WebBoot", Stage.UPDATE, Stage.LIST_PODS, "shared-demo")
    assert shared.error_count("WebBoot", Stage.UPDATE, Stage.LIST_PODS, "shared-demo") == before + 1

    main_before = shared.error_count("WebBoot", Stage.UPDATE, "", "shared-demo")
    metrics.update_main_stage_errors("WebBoot", Stage.UPDATE, "shared-demo")
    assert shared.error_count("WebBoot", Stage.UPDATE, "", "shared-demo") == main_before + 1

    count = len(shared.observations("WebBoot"))
    metrics.update_reconcile_time("WebBoot", 1.5)
    assert shared.observations("WebBoot")[-1] == 1.5
    assert len(shared.observations("WebBoot")) == count + 1