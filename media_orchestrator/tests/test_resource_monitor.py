"""Tests for the resource monitor."""

import time
from unittest.mock import Mock

from ..application.services.resource_monitor import ResourceMonitor, process_rss_mb
from ..application.services.task_registry import TaskRegistry
from ..domain.value_objects.config import OrchestratorConfig


def make_monitor(usage, registry=None, **config):
    sampler = Mock(return_value=usage)
    return ResourceMonitor(OrchestratorConfig(**config), registry, sampler=sampler)


class TestResourceMonitor:
    """Test memory limits and cleanup."""
    
    def test_process_rss_is_positive(self):
        usage = process_rss_mb()
        assert usage is None or usage > 0
    
    def test_below_limits(self):
        monitor = make_monitor(100.0, hard_limit_mb=512)
        assert monitor.sample_usage_mb() == 100.0
        assert not monitor.is_over_soft_limit()
        assert not monitor.is_over_hard_limit()
        assert monitor.warning_message is None
    
    def test_soft_limit_warning(self):
        monitor = make_monitor(450.0, hard_limit_mb=512)
        monitor.sample_usage_mb()
        assert monitor.is_over_soft_limit()
        assert not monitor.is_over_hard_limit()
        assert "450" in monitor.warning_message
    
    def test_hard_limit(self):
        monitor = make_monitor(600.0, hard_limit_mb=512)
        monitor.sample_usage_mb()
        assert monitor.is_over_hard_limit()
    
    def test_unknown_usage_is_never_over(self):
        monitor = make_monitor(None, hard_limit_mb=1)
        assert monitor.sample_usage_mb() is None
        assert not monitor.is_over_soft_limit()
        assert not monitor.is_over_hard_limit()
    
    def test_sampler_exception_means_unknown(self):
        monitor = ResourceMonitor(OrchestratorConfig(), sampler=Mock(side_effect=RuntimeError("boom")))
        assert monitor.sample_usage_mb() is None
    
    def test_hard_limit_breach_sweeps_registry(self):
        registry = TaskRegistry()
        finished = registry.register()
        registry.mark_terminal(finished.id)
        monitor = make_monitor(600.0, registry=registry, hard_limit_mb=512)
        monitor.sample_usage_mb()
        assert finished.id not in registry
    
    def test_background_sampling(self):
        sampler = Mock(return_value=10.0)
        monitor = ResourceMonitor(OrchestratorConfig(sample_interval_seconds=0.01), sampler=sampler)
        with monitor:
            time.sleep(0.1)
        assert sampler.call_count >= 3
        calls = sampler.call_count
        time.sleep(0.05)
        assert sampler.call_count == calls
