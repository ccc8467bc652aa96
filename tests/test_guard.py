import time
from unittest.mock import patch

from apscheduler.schedulers.background import BackgroundScheduler

from core.guard import JOB_ID, SpeedGuard
from core.models import AlertKind
from fakes import ScriptedMonitor, make_sample


def _kinds_and_values(context):
    return [(a.kind, a.value) for a in context.alerts.recent(limit=100)]


class TestRunCycle:

    def test_records_sample_every_cycle(self, context, monitor):
        guard = SpeedGuard(context, monitor)
        monitor.push(make_sample(30.0), make_sample(40.0))

        assert guard.run_cycle()
        assert guard.run_cycle()
        assert [s.cpu_percent for s in context.history.recent(10)] == [30.0, 40.0]
        assert len(context.alerts) == 0

    def test_threshold_scenario(self, context, monitor):
        guard = SpeedGuard(context, monitor)
        context.controller.start_one()
        monitor.push(make_sample(70.0), make_sample(92.0), make_sample(97.0))

        guard.run_cycle()
        guard.run_cycle()
        assert context.controller.active_count() == 1
        guard.run_cycle()

        assert _kinds_and_values(context) == [
            (AlertKind.CPU, 92.0),
            (AlertKind.CPU, 97.0),
            (AlertKind.EMERGENCY, None),
        ]
        assert context.controller.active_count() == 0

    def test_critical_cpu_gives_exactly_one_emergency(self, context, monitor, executor):
        guard = SpeedGuard(context, monitor)
        context.controller.start_one()
        context.controller.start_one()
        monitor.push(make_sample(99.0, memory=95.0, temperature=96.0))

        guard.run_cycle()

        assert context.alerts.count(AlertKind.EMERGENCY) == 1
        assert context.controller.active_count() == 0
        assert all(p.terminate_calls == 1 for p in executor.launched)
        kinds = [a.kind for a in context.alerts.recent(limit=100)]
        assert kinds == [AlertKind.CPU, AlertKind.MEMORY, AlertKind.TEMPERATURE, AlertKind.EMERGENCY]

    def test_critical_temperature_throttles(self, context, monitor):
        guard = SpeedGuard(context, monitor)
        context.controller.start_one()
        monitor.push(make_sample(20.0, temperature=91.0))

        guard.run_cycle()

        assert context.alerts.count(AlertKind.TEMPERATURE) == 1
        assert context.alerts.count(AlertKind.EMERGENCY) == 1
        assert context.controller.active_count() == 0

    def test_memory_never_throttles(self, context, monitor):
        guard = SpeedGuard(context, monitor)
        context.controller.start_one()
        monitor.push(make_sample(20.0, memory=99.0))

        guard.run_cycle()

        assert context.alerts.count(AlertKind.MEMORY) == 1
        assert context.alerts.count(AlertKind.EMERGENCY) == 0
        assert context.controller.active_count() == 1

    def test_emergency_recorded_even_without_workers(self, context, monitor):
        guard = SpeedGuard(context, monitor)
        monitor.push(make_sample(98.0))

        guard.run_cycle()

        emergency = context.alerts.recent(limit=100)[-1]
        assert emergency.kind == AlertKind.EMERGENCY
        assert '0 stress processes' in emergency.message

    def test_user_cancel_records_no_emergency(self, context):
        context.controller.start_one()
        context.controller.cancel_all()
        assert context.alerts.count(AlertKind.EMERGENCY) == 0

    def test_failed_cycle_does_not_stop_the_next(self, context, monitor):
        guard = SpeedGuard(context, monitor)
        monitor.push(RuntimeError("sensor glitch"), make_sample(33.0))

        assert guard.run_cycle() is False
        assert guard.run_cycle() is True
        assert [s.cpu_percent for s in context.history.recent(10)] == [33.0]

    def test_unexpected_error_after_sampling_is_contained(self, context, monitor):
        guard = SpeedGuard(context, monitor)
        monitor.push(make_sample(97.0), make_sample(10.0))

        with patch.object(context.controller, 'cancel_all', side_effect=OSError("kill failed")):
            assert guard.run_cycle() is False

        assert guard.run_cycle() is True
        assert len(context.history) == 2


class TestToggle:

    def test_disabled_guard_skips_cycle(self, guard, monitor, context):
        assert guard.toggle() is False
        calls = monitor.calls

        assert guard.run_cycle() is False
        assert monitor.calls == calls
        assert not context.is_enabled

    def test_toggle_twice_restores_state(self, guard):
        original = guard.is_enabled
        guard.toggle()
        guard.toggle()
        assert guard.is_enabled == original

    def test_toggle_pauses_and_resumes_job(self, guard):
        guard.start()
        assert guard.is_running

        guard.toggle()
        assert not guard.is_running
        assert guard.scheduler.get_job(JOB_ID).next_run_time is None

        guard.toggle()
        assert guard.is_running

    def test_disable_keeps_running_workers(self, guard, context):
        context.controller.start_one()
        guard.toggle()
        assert context.controller.active_count() == 1

    def test_enable_starts_loop_when_not_running(self, guard):
        guard.toggle()
        assert not guard.scheduler.running

        guard.toggle()
        assert guard.scheduler.running
        assert guard.is_running


class TestLifecycle:

    def test_start_is_idempotent(self, guard):
        guard.start()
        guard.start()
        assert len(guard.scheduler.get_jobs()) == 1

    def test_shutdown_cancels_load_and_stops_loop(self, guard, context, monitor):
        guard.start()
        context.controller.start_one()

        guard.shutdown()

        assert not guard.scheduler.running
        assert context.controller.active_count() == 0
        assert context.alerts.count(AlertKind.EMERGENCY) == 0
        calls = monitor.calls
        assert guard.run_cycle() is False
        assert monitor.calls == calls

    def test_shutdown_is_idempotent_and_blocks_restart(self, guard):
        guard.start()
        guard.shutdown()
        guard.shutdown()
        guard.start()
        assert not guard.scheduler.running

    def test_scheduler_keeps_cycling_after_failure(self, context):
        monitor = ScriptedMonitor([RuntimeError("first read fails"), make_sample(25.0)])
        guard = SpeedGuard(context, monitor, interval_seconds=0.05,
                           scheduler=BackgroundScheduler(daemon=True))
        try:
            guard.start()
            deadline = time.monotonic() + 5
            while monitor.calls < 3 and time.monotonic() < deadline:
                time.sleep(0.02)
        finally:
            guard.shutdown()

        assert monitor.calls >= 3
        assert len(context.history) >= 2
