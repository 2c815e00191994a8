from cipherquiz import socketio


_started_apps = set()


def start_time_sweeper(app) -> bool:
    """Periodically enforce room time limits in a background task.

    - No-ops in TESTING mode
    - Starts at most one sweeper per app
    - Interval comes from TIME_CHECK_INTERVAL_SEC; 0 disables
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return False
    interval = int(app.config.get('TIME_CHECK_INTERVAL_SEC', 5) or 0)
    if interval <= 0 or id(app) in _started_apps:
        return False
    _started_apps.add(id(app))
    app.logger.info(f"[sweeper-start] interval={interval}s")

    def _worker():
        while True:
            socketio.sleep(interval)
            with app.app_context():
                engine = app.extensions['cipherquiz']
                try:
                    expired = engine.check_all_times()
                except Exception:
                    # keep the loop alive; the next tick retries
                    app.logger.exception("[sweeper-error] time check failed")
                    continue
                if expired:
                    app.logger.debug(f"[sweeper] expired rooms={expired}")

    socketio.start_background_task(_worker)
    return True
