from django.apps import AppConfig
from django.conf import settings
import logging

# Define TRACE level (5 is below DEBUG which is 10)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Add trace method to the Logger class
def trace(self, message, *args, **kwargs):
    """Log a message with TRACE level (more detailed than DEBUG)"""
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)

# Add the trace method to the Logger class
logging.Logger.trace = trace

class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'

    broadcaster = None

    def ready(self):
        from core.events import build_broadcaster

        self._validate_event_configuration()

        # One broadcaster per process, handed to views through their URLconf
        self.broadcaster = build_broadcaster(settings)
        self.broadcaster.start()

        from matchstream.app_initialization import should_skip_initialization
        if not should_skip_initialization():
            self._register_shutdown_handler()
            self._emit_startup_event()

    def _validate_event_configuration(self):
        """Validate that all events are properly configured in level sets."""
        from core.events import validate_event_configuration
        try:
            validate_event_configuration()
        except ValueError as e:
            # Configuration error - log as error but don't crash the app
            logging.getLogger(__name__).error(f"Event configuration error: {e}")

    def _emit_startup_event(self):
        """Publish system.startup when the application starts."""
        from version import VERSION
        self.broadcaster.publish('system.startup', {'version': VERSION})

    def _register_shutdown_handler(self):
        """Publish system.shutdown and release the broadcaster on exit."""
        import atexit

        broadcaster = self.broadcaster

        def shutdown():
            broadcaster.publish('system.shutdown')
            broadcaster.stop()

        atexit.register(shutdown)
