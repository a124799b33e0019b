from pagetail.config import CONFIG
from pagetail.logging_config import setup_logging

# Only set up logging if not explicitly disabled
if CONFIG.PAGETAIL_SETUP_LOGGING:
	logger = setup_logging()
else:
	import logging

	logger = logging.getLogger('pagetail')

# Monkeypatch BaseSubprocessTransport.__del__ to handle closed event loops gracefully
from asyncio import base_subprocess

_original_del = base_subprocess.BaseSubprocessTransport.__del__


def _patched_del(self):
	"""Skip transport cleanup once the loop is closed.

	The browser subprocess is reaped by the atexit hook after asyncio.run() has
	already closed the loop, which otherwise prints RuntimeError: Event loop is closed.
	"""
	try:
		if hasattr(self, '_loop') and self._loop and self._loop.is_closed():
			return
		_original_del(self)
	except RuntimeError as e:
		if 'Event loop is closed' not in str(e):
			raise


base_subprocess.BaseSubprocessTransport.__del__ = _patched_del


_LAZY_EXPORTS = {
	'TailSession': ('pagetail.session', 'TailSession'),
	'ConsoleRelay': ('pagetail.relay', 'ConsoleRelay'),
	'format_console_event': ('pagetail.relay', 'format_console_event'),
	'BrowserProfile': ('pagetail.browser', 'BrowserProfile'),
	'ChromeLauncher': ('pagetail.browser', 'ChromeLauncher'),
	'ChromeProcess': ('pagetail.browser', 'ChromeProcess'),
	'DevToolsConnection': ('pagetail.browser', 'DevToolsConnection'),
	'PagetailError': ('pagetail.exceptions', 'PagetailError'),
	'BrowserLaunchError': ('pagetail.exceptions', 'BrowserLaunchError'),
	'BrowserConnectError': ('pagetail.exceptions', 'BrowserConnectError'),
}


def __getattr__(name: str):
	entry = _LAZY_EXPORTS.get(name)
	if not entry:
		raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
	module_path, attr_name = entry
	from importlib import import_module

	attr = getattr(import_module(module_path), attr_name)
	globals()[name] = attr
	return attr


__all__ = list(_LAZY_EXPORTS.keys())
