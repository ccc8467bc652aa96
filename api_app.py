import atexit
import datetime
import logging
import platform
import signal
import sys

from flask import Flask, jsonify
from flask_cors import CORS

from core.context import build_context
from core.error_handling import LoadControlError, configure_logging
from core.executor_base import get_executor
from core.guard import SpeedGuard
import config

logger = logging.getLogger(__name__)


# Platform Monitor Factory
def get_monitor():
    system = platform.system()
    if system in ('Linux', 'Darwin'):
        from platforms.linux.monitor_linux import LinuxMonitor
        return LinuxMonitor()
    else:
        raise NotImplementedError(f"Unsupported platform: {system}")


def get_configured_executor():
    # Dev always uses the portable python burner
    env = getattr(config, 'ENVIRONMENT', 'prod')
    if env == 'dev':
        return get_executor('python')
    return get_executor(getattr(config, 'LOAD_BACKEND', 'auto'))


def create_app(speed_guard: SpeedGuard, monitor) -> Flask:
    app = Flask(__name__)
    CORS(app)

    context = speed_guard.context

    @app.route('/api/system_info')
    def system_info():
        try:
            sample = monitor.get_sample()
            info = {
                'timestamp': sample.timestamp.isoformat(),
                'cpu_percent': round(sample.cpu_percent, 2),
                'memory_percent': round(sample.memory_percent, 2),
                'temperature': sample.temperature_celsius,
            }
            info.update(monitor.get_host_details())
            info['active_stress_processes'] = context.controller.active_count()
            info['speed_guard_active'] = speed_guard.is_enabled
            return jsonify(info)
        except Exception as e:
            logger.error(f"Error getting system info: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/cpu_history')
    def get_cpu_history():
        limit = getattr(config, 'HISTORY_RESPONSE_LIMIT', 50)
        return jsonify([s.to_dict() for s in context.history.recent(limit)])

    @app.route('/api/alerts')
    def get_alerts():
        window = datetime.timedelta(hours=getattr(config, 'ALERT_WINDOW_HOURS', 24))
        limit = getattr(config, 'ALERT_RESPONSE_LIMIT', 20)
        return jsonify([a.to_dict() for a in context.alerts.recent(window, limit)])

    @app.route('/api/increase_load')
    def increase_load():
        try:
            worker = context.controller.start_one()
        except LoadControlError as e:
            logger.info(f"Load increase refused: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"Error increasing load: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

        return jsonify({
            'status': 'success',
            'message': f'CPU load increased (Process: {worker.identifier})',
            'pid': worker.identifier,
            'active_processes': context.controller.active_count()
        })

    @app.route('/api/cancel_load')
    def cancel_load():
        try:
            cancelled = context.controller.cancel_all()
        except Exception as e:
            logger.error(f"Error cancelling load: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500
        return jsonify({
            'status': 'success',
            'message': f'Cancelled {cancelled} stress processes',
            'cancelled': cancelled
        })

    @app.route('/api/speed_guard/toggle')
    def toggle_speed_guard():
        active = speed_guard.toggle()
        message = "Speed Guard activated" if active else "Speed Guard deactivated"
        return jsonify({'status': 'success', 'message': message, 'active': active})

    @app.route('/api/health')
    def api_health():
        return jsonify({
            'status': 'ok',
            'speed_guard_active': speed_guard.is_enabled,
            'scheduler_running': speed_guard.is_running
        })

    return app


def install_shutdown_handlers(speed_guard: SpeedGuard):
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        speed_guard.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)
    atexit.register(speed_guard.shutdown)


def main():
    configure_logging(getattr(config, 'LOG_FILE', None), getattr(config, 'LOG_LEVEL', 'INFO'))

    monitor = get_monitor()
    executor = get_configured_executor()
    context = build_context(config, executor)
    speed_guard = SpeedGuard(
        context,
        monitor,
        interval_seconds=getattr(config, 'GUARD_INTERVAL_SECONDS', 2.0)
    )
    app = create_app(speed_guard, monitor)

    install_shutdown_handlers(speed_guard)
    speed_guard.start()

    logger.info(f"Starting CPU Control application on {platform.system()} "
                f"with {type(executor).__name__} (max {context.controller.max_workers} workers)")
    try:
        app.run(host=getattr(config, 'HOST', '0.0.0.0'), port=getattr(config, 'PORT', 8080),
                debug=False, threaded=True)
    except Exception as e:
        logger.error(f"Failed to start application: {e}")
        speed_guard.shutdown()
        raise


if __name__ == '__main__':
    main()
