"""Tests for LoadConfig."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest


class TestLoadConfig:
    """Defaults and derived values."""

    def test_defaults(self):
        from loadspine.load.config import DispatchMode, LoadConfig

        config = LoadConfig()
        assert config.source == Path("bugs.yaml")
        assert config.concurrency == 1
        assert config.namespace == "vulnerability-assessment-tool-core"
        assert config.image == "ichbinfrog/patchanalyzer:v0.0.1"
        assert config.dispatch_mode == DispatchMode.SEQUENTIAL
        assert config.skip_on_error is False
        assert config.dry_run is False
        assert config.active_deadline_seconds == 100

    def test_run_id_auto_generated(self):
        from loadspine.load.config import LoadConfig

        c1 = LoadConfig()
        c2 = LoadConfig()
        assert c1.run_id != c2.run_id
        assert len(c1.run_id) == 12

    def test_frozen(self):
        from pydantic import ValidationError

        from loadspine.load.config import LoadConfig

        config = LoadConfig()
        with pytest.raises(ValidationError):
            config.concurrency = 4

    def test_concurrency_not_range_checked(self):
        from loadspine.load.config import LoadConfig

        assert LoadConfig(concurrency=0).concurrency == 0

    def test_labels(self):
        from loadspine.load.config import LoadConfig

        config = LoadConfig()
        assert config.run_selector == {"app.kubernetes.io/name": "bugs-loader"}
        assert config.chunk_labels(4) == {
            "app.kubernetes.io/name": "bugs-loader",
            "app.kubernetes.io/instance": "4",
        }

    def test_effective_wait_timeout(self):
        from loadspine.load.config import LoadConfig

        assert LoadConfig().effective_wait_timeout == 130.0
        assert LoadConfig(wait_timeout_seconds=5).effective_wait_timeout == 5.0

    def test_effective_max_in_flight(self):
        from loadspine.load.config import LoadConfig

        assert LoadConfig(concurrency=4).effective_max_in_flight == 4
        assert LoadConfig(concurrency=4, max_in_flight=2).effective_max_in_flight == 2
        assert LoadConfig(concurrency=0).effective_max_in_flight == 1


class TestLoadConfigFromEnv:
    """Environment overrides."""

    @patch.dict(
        os.environ,
        {
            "LOADSPINE_SOURCE": "/data/bugs.yaml",
            "LOADSPINE_CONCURRENCY": "5",
            "LOADSPINE_DISPATCH_MODE": "bounded",
            "LOADSPINE_RELEASE": "feynman",
            "LOADSPINE_NAMESPACE": "vulas",
            "LOADSPINE_SKIP": "true",
            "LOADSPINE_DRY_RUN": "1",
            "LOADSPINE_WAIT_TIMEOUT_SECONDS": "12.5",
        },
    )
    def test_from_env(self):
        from loadspine.load.config import DispatchMode, LoadConfig

        config = LoadConfig.from_env()
        assert config.source == Path("/data/bugs.yaml")
        assert config.concurrency == 5
        assert config.dispatch_mode == DispatchMode.BOUNDED
        assert config.release == "feynman"
        assert config.namespace == "vulas"
        assert config.skip_on_error is True
        assert config.dry_run is True
        assert config.wait_timeout_seconds == 12.5

    @patch.dict(os.environ, {"LOADSPINE_CONCURRENCY": "5", "LOADSPINE_DRY_RUN": "no"})
    def test_overrides_win(self):
        from loadspine.load.config import LoadConfig

        config = LoadConfig.from_env(concurrency=2)
        assert config.concurrency == 2
        assert config.dry_run is False
