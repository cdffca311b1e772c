"""Tests for the label-based Sweeper."""

from __future__ import annotations

SELECTOR = {"app.kubernetes.io/name": "bugs-loader"}


def _seed(backend, *indices, app="bugs-loader"):
    from loadspine.runtimes import ConfigResourceSpec, ExecutionUnitSpec

    for index in indices:
        name = f"{app}-{index}"
        labels = {"app.kubernetes.io/name": app, "app.kubernetes.io/instance": str(index)}
        backend.create_config(ConfigResourceSpec(name=name, labels=labels, data={}))
        backend.create_unit(
            ExecutionUnitSpec(name=name, config_name=name, image="img", command=["true"], labels=labels)
        )


class TestSweeper:
    """Cleanup by label."""

    def test_deletes_everything_labeled(self, backend):
        from loadspine.load.sweeper import Sweeper

        _seed(backend, 0, 1, 2)
        result = Sweeper(backend, SELECTOR).sweep()
        assert result.units_deleted == ["bugs-loader-0", "bugs-loader-1", "bugs-loader-2"]
        assert result.configs_deleted == ["bugs-loader-0", "bugs-loader-1", "bugs-loader-2"]
        assert result.success is True
        assert backend.units == {}
        assert backend.configs == {}

    def test_units_deleted_before_configs(self, backend):
        from loadspine.load.sweeper import Sweeper

        _seed(backend, 0)
        backend.events.clear()
        Sweeper(backend, SELECTOR).sweep()
        assert backend.events == [("delete_unit", "bugs-loader-0"), ("delete_config", "bugs-loader-0")]

    def test_leaves_other_apps_alone(self, backend):
        from loadspine.load.sweeper import Sweeper

        _seed(backend, 0)
        _seed(backend, 0, app="other")
        Sweeper(backend, SELECTOR).sweep()
        assert set(backend.units) == {"other-0"}
        assert set(backend.configs) == {"other-0"}

    def test_reclaims_orphan_config(self, backend):
        from loadspine.load.sweeper import Sweeper
        from loadspine.runtimes import ConfigResourceSpec

        backend.create_config(
            ConfigResourceSpec(name="bugs-loader-9", labels=dict(SELECTOR), data={})
        )
        result = Sweeper(backend, SELECTOR).sweep()
        assert result.configs_deleted == ["bugs-loader-9"]
        assert result.units_deleted == []

    def test_idempotent(self, backend):
        from loadspine.load.sweeper import Sweeper

        _seed(backend, 0, 1)
        sweeper = Sweeper(backend, SELECTOR)
        sweeper.sweep()
        second = sweeper.sweep()
        assert second.deleted_count == 0
        assert second.success is True

    def test_nothing_to_sweep(self, backend):
        from loadspine.load.sweeper import Sweeper

        result = Sweeper(backend, SELECTOR).sweep()
        assert result.deleted_count == 0
        assert result.selector == SELECTOR

    def test_delete_failure_continues(self, backend):
        from loadspine.load.sweeper import Sweeper

        _seed(backend, 0, 1, 2)
        backend.inject.fail_delete.add("bugs-loader-1")
        result = Sweeper(backend, SELECTOR).sweep()
        assert result.units_deleted == ["bugs-loader-0", "bugs-loader-2"]
        assert result.configs_deleted == ["bugs-loader-0", "bugs-loader-2"]
        assert len(result.errors) == 2
        assert result.success is False

    def test_list_failure_recorded(self, backend):
        from loadspine.load.sweeper import Sweeper

        _seed(backend, 0)
        backend.inject.fail_list = True
        result = Sweeper(backend, SELECTOR).sweep()
        assert len(result.errors) == 2
        assert result.errors[0].startswith("list job")
        assert result.errors[1].startswith("list configmap")

    def test_already_absent_is_not_an_error(self):
        from unittest.mock import MagicMock

        from loadspine.load.sweeper import Sweeper

        backend = MagicMock()
        backend.list_units.return_value = ["bugs-loader-0"]
        backend.list_configs.return_value = ["bugs-loader-0"]
        backend.delete_unit.return_value = False
        backend.delete_config.return_value = True
        result = Sweeper(backend, SELECTOR).sweep()
        assert result.already_absent == ["bugs-loader-0"]
        assert result.configs_deleted == ["bugs-loader-0"]
        assert result.success is True
