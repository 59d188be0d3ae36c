"""Tests for the task registry."""

import threading
from concurrent.futures import Future

import pytest

from ..application.services.task_registry import CancellationToken, OperationHandle, TaskRegistry


class TestCancellationToken:
    
    def test_cancel(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.cancel()
        assert token.is_cancelled
    
    def test_wait_returns_early_when_cancelled(self):
        token = CancellationToken()
        threading.Timer(0.05, token.cancel).start()
        assert token.wait(5.0) is True
    
    def test_wait_times_out(self):
        assert CancellationToken().wait(0.01) is False


class TestTaskRegistry:
    """Test operation registration, cancellation and sweep."""
    
    def test_register_unique_ids(self):
        registry = TaskRegistry()
        first, second = registry.register(), registry.register()
        assert first.id != second.id
        assert first.id in registry
        assert len(registry) == 2
        assert registry.get(first.id) is first
    
    def test_cancel_signals_token(self):
        registry = TaskRegistry()
        handle = registry.register()
        assert registry.cancel(handle.id) is True
        assert handle.is_cancelled
    
    def test_cancel_is_idempotent(self):
        registry = TaskRegistry()
        handle = registry.register()
        registry.cancel(handle.id)
        registry.cancel(handle.id)
        assert handle.is_cancelled
        assert registry.active_count == 1
    
    def test_cancel_unknown_id_is_noop(self):
        assert TaskRegistry().cancel("missing") is False
    
    def test_cancel_after_terminal_is_noop(self):
        registry = TaskRegistry()
        handle = registry.register()
        registry.mark_terminal(handle.id)
        assert registry.cancel(handle.id) is False
    
    def test_sweep_removes_only_terminal_entries(self):
        registry = TaskRegistry()
        running = registry.register()
        cancelled_running = registry.register()
        finished = registry.register()
        registry.cancel(cancelled_running.id)
        registry.mark_terminal(finished.id)
        
        assert registry.sweep() == 1
        assert finished.id not in registry
        assert running.id in registry
        assert cancelled_running.id in registry
    
    def test_cancel_all(self):
        registry = TaskRegistry()
        handles = [registry.register() for _ in range(3)]
        registry.mark_terminal(handles[0].id)
        assert registry.cancel_all() == 2
        assert all(h.is_cancelled for h in handles)
    
    def test_concurrent_register_and_cancel(self):
        registry = TaskRegistry()
        handles = []
        lock = threading.Lock()
        
        def worker():
            for _ in range(100):
                handle = registry.register()
                registry.cancel(handle.id)
                registry.mark_terminal(handle.id)
                with lock:
                    handles.append(handle)
        
        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        
        assert len(handles) == 400
        assert registry.sweep() == 400
        assert len(registry) == 0


class TestOperationHandle:
    
    def test_result_requires_submission(self):
        with pytest.raises(RuntimeError):
            OperationHandle(id="x").result()
    
    def test_result_from_future(self):
        future = Future()
        future.set_result("done")
        handle = OperationHandle(id="x", future=future)
        assert handle.done
        assert handle.result() == "done"
