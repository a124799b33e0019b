from __future__ import annotations

import asyncio
import atexit
import logging
import signal
from collections.abc import Awaitable, Callable
from typing import Any

from pagetail.browser.connection import DevToolsConnection
from pagetail.browser.launcher import ChromeLauncher, ChromeProcess
from pagetail.browser.profile import BrowserProfile
from pagetail.config import CONFIG
from pagetail.relay import ConsoleRelay
from pagetail.utils import _log_pretty_url

logger = logging.getLogger(__name__)

Connector = Callable[..., Awaitable[Any]]


class TailSession:
	"""
	Launch a browser, attach to it over CDP, navigate once, and relay page events until stopped.

	Lifecycle: launch -> connect -> enable domains -> subscribe -> navigate -> idle -> shutdown.
	shutdown() is the only cleanup routine: it closes the control connection, then kills the
	browser, and runs at most once whatever ended the session (signal, browser exit, error).
	An atexit hook covers interpreter exits that bypass it.
	"""

	def __init__(
		self,
		url: str | None = None,
		profile: BrowserProfile | None = None,
		launcher: ChromeLauncher | None = None,
		connector: Connector | None = None,
		relay: ConsoleRelay | None = None,
		handle_signals: bool = True,
	):
		self.url = url or CONFIG.PAGETAIL_TARGET_URL
		self.profile = profile or BrowserProfile()
		self.launcher = launcher or ChromeLauncher(self.profile)
		self.connector = connector or DevToolsConnection.open
		self.relay = relay or ConsoleRelay()
		self.handle_signals = handle_signals

		self.chrome: ChromeProcess | None = None
		self.connection: DevToolsConnection | None = None
		self.exit_code: int | None = None

		self._stop_event: asyncio.Event | None = None
		self._main_task: asyncio.Task | None = None
		self._watch_task: asyncio.Task | None = None
		self._ready = False
		self._shutdown_started = False
		self._installed_signals: dict[int, tuple[bool, Any]] = {}

	def __repr__(self) -> str:
		return f'TailSession({_log_pretty_url(self.url)}, chrome={self.chrome!r}, ready={self._ready})'

	async def start(self) -> None:
		self.chrome = await self.launcher.launch()
		atexit.register(self.chrome.kill_sync)

		# the port only exists once launch() has returned
		self.connection = await self.connector(self.chrome.port, timeout=self.profile.startup_timeout)
		await self.connection.enable_domains()

		self.connection.on('Page.loadEventFired', self.relay.on_load_event_fired)
		self.connection.on('Runtime.consoleAPICalled', self.relay.on_console_api_called)

		self.relay.navigating(self.url)
		await self.connection.navigate(self.url)

		self._watch_task = asyncio.create_task(self._watch_browser(), name='pagetail-browser-watch')
		self._ready = True

	async def run(self) -> int:
		"""Run until a stop is requested, always shutting down before returning the exit status."""
		self._stop_event = asyncio.Event()
		self._main_task = asyncio.current_task()
		if self.handle_signals:
			self._install_signal_handlers()
		try:
			await self.start()
			await self._stop_event.wait()
		except asyncio.CancelledError:
			if self.exit_code is None:
				raise
			# cancelled by request_stop() while still starting up
			if self._main_task is not None:
				self._main_task.uncancel()
			logger.info('🛑 Startup interrupted')
		finally:
			await self.shutdown()
			if self.handle_signals:
				self._remove_signal_handlers()
		return self.exit_code or 0

	def request_stop(self, exit_code: int = 0, reason: str = '') -> None:
		if self.exit_code is None:
			self.exit_code = exit_code
		if self._stop_event is None or self._stop_event.is_set():
			return
		logger.info(f'🛑 Stopping {reason}'.rstrip())
		self._stop_event.set()
		if not self._ready and not self._shutdown_started and self._main_task is not None and not self._main_task.done():
			self._main_task.cancel()

	async def shutdown(self) -> None:
		if self._shutdown_started:
			return
		self._shutdown_started = True

		if self._watch_task is not None and not self._watch_task.done():
			self._watch_task.cancel()

		if self.connection is not None:
			try:
				await self.connection.close()
			except Exception as e:
				logger.warning(f'⚠️ Error closing DevTools connection: {type(e).__name__}: {e}')

		if self.chrome is not None:
			try:
				await self.chrome.kill(_hint='(shutdown)')
			except Exception as e:
				# leave the atexit hook registered as a second chance
				logger.warning(f'⚠️ Error killing browser_pid={self.chrome.pid}: {type(e).__name__}: {e}')
			else:
				atexit.unregister(self.chrome.kill_sync)

	async def _watch_browser(self) -> None:
		assert self.chrome is not None
		returncode = await self.chrome.wait()
		if not self._shutdown_started:
			logger.warning(f'⚠️ Browser browser_pid={self.chrome.pid} exited on its own with code {returncode}')
			self.request_stop(0, '(browser exited)')

	def _on_signal(self, reason: str) -> None:
		if self._stop_event is not None and self._stop_event.is_set():
			# repeated signal while shutting down: stop waiting for a graceful exit
			if self.chrome is not None and not self.chrome.killed:
				self.chrome.force_kill(_hint=reason)
			return
		self.request_stop(0, reason)

	def _install_signal_handlers(self) -> None:
		loop = asyncio.get_running_loop()
		for sig in (signal.SIGINT, signal.SIGTERM):
			reason = f'({sig.name} received)'
			try:
				loop.add_signal_handler(sig, self._on_signal, reason)
				self._installed_signals[sig] = (True, None)
			except (NotImplementedError, RuntimeError):
				# e.g. the Windows proactor loop
				self._installed_signals[sig] = (False, signal.getsignal(sig))
				signal.signal(sig, lambda signum, frame, reason=reason: loop.call_soon_threadsafe(self._on_signal, reason))

	def _remove_signal_handlers(self) -> None:
		loop = asyncio.get_running_loop()
		for sig, (on_loop, previous) in self._installed_signals.items():
			if on_loop:
				loop.remove_signal_handler(sig)
			else:
				signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
		self._installed_signals.clear()
