"""
Launch a Chromium-based browser as a subprocess with the DevTools endpoint on an OS-assigned port.

The browser is started with --remote-debugging-port=0 and prints
`DevTools listening on ws://127.0.0.1:<port>/devtools/browser/<id>` to stderr
once the endpoint is up; that line is the only source of the port.
"""

import asyncio
import logging
import os
import re
import shutil
import tempfile
from collections import deque
from contextlib import suppress
from pathlib import Path
from urllib.parse import urlparse

import psutil
from playwright.async_api import async_playwright

from pagetail.browser.profile import BrowserProfile
from pagetail.exceptions import BrowserLaunchError
from pagetail.utils import _log_pretty_path

logger = logging.getLogger(__name__)

DEVTOOLS_LISTENING_RE = re.compile(r'DevTools listening on (ws://\S+)')

CHROME_EXECUTABLE_CANDIDATES = [
	# Windows
	'C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe',
	'C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe',
	# macOS
	'/Applications/Google Chrome.app/Contents/MacOS/Google Chrome',
	'/Applications/Chromium.app/Contents/MacOS/Chromium',
	# Linux
	'/usr/bin/google-chrome',
	'/opt/google/chrome/chrome',
	'/usr/bin/chromium-browser',
	'/usr/bin/chromium',
]

CHROME_EXECUTABLE_NAMES = ['google-chrome', 'google-chrome-stable', 'chromium', 'chromium-browser', 'chrome']

KILL_GRACE_SECONDS = 5.0


async def find_chrome_executable(profile: BrowserProfile) -> str:
	"""Resolve the browser binary: explicit path, well-known locations, $PATH, then playwright's bundled chromium."""
	if profile.executable_path:
		path = Path(profile.executable_path).expanduser()
		if not path.exists():
			raise BrowserLaunchError(f'Browser executable not found at {_log_pretty_path(path)}')
		return str(path)

	for candidate in CHROME_EXECUTABLE_CANDIDATES:
		if os.path.exists(candidate):
			return candidate

	for name in CHROME_EXECUTABLE_NAMES:
		found = shutil.which(name)
		if found:
			return found

	try:
		async with async_playwright() as playwright:
			bundled = playwright.chromium.executable_path
	except Exception as e:
		raise BrowserLaunchError(f'No browser executable found and playwright is unusable: {type(e).__name__}: {e}') from e

	if bundled and os.path.exists(bundled):
		return bundled
	raise BrowserLaunchError('No Chrome/Chromium executable found, set CHROME_PATH or run `playwright install chromium`')


class ChromeProcess:
	"""A running browser subprocess and the DevTools endpoint it reported."""

	def __init__(
		self,
		process: asyncio.subprocess.Process,
		ws_url: str,
		user_data_dir: str | Path | None = None,
		owns_user_data_dir: bool = False,
		kill_timeout: float = KILL_GRACE_SECONDS,
	):
		self.process = process
		self.pid = process.pid
		self.ws_url = ws_url
		self.port = urlparse(ws_url).port
		self.user_data_dir = user_data_dir
		self.owns_user_data_dir = owns_user_data_dir
		self.kill_timeout = kill_timeout
		self._killed = False
		self._stderr_task: asyncio.Task | None = None
		try:
			# psutil handles refuse to signal a recycled pid
			self._proc: psutil.Process | None = psutil.Process(self.pid)
		except psutil.NoSuchProcess:
			self._proc = None

	def __repr__(self) -> str:
		return f'ChromeProcess(pid={self.pid}, port={self.port}, killed={self.killed})'

	@property
	def killed(self) -> bool:
		return self._killed or self.process.returncode is not None

	def is_running(self) -> bool:
		return not self.killed

	async def wait(self) -> int:
		return await self.process.wait()

	def start_stderr_drain(self) -> None:
		"""Keep reading stderr so the browser never blocks on a full pipe."""
		if self._stderr_task is None and self.process.stderr is not None:
			self._stderr_task = asyncio.create_task(self._drain_stderr(), name=f'chrome-stderr-{self.pid}')

	async def _drain_stderr(self) -> None:
		assert self.process.stderr is not None
		while True:
			line = await self.process.stderr.readline()
			if not line:
				return
			logger.debug(f'[chrome:{self.pid}] {line.decode("utf-8", errors="replace").rstrip()}')

	def _children(self) -> list[psutil.Process]:
		if self._proc is None:
			return []
		try:
			return self._proc.children(recursive=True)
		except (psutil.NoSuchProcess, psutil.AccessDenied):
			return []

	@staticmethod
	def _kill_children(children: list[psutil.Process], _hint: str = '') -> None:
		for child in children:
			try:
				child.kill()
				logger.debug(f'☠️ Force-killed browser helper subprocess pid={child.pid} {_hint}')
			except (psutil.NoSuchProcess, psutil.AccessDenied):
				pass

	def _cleanup(self) -> None:
		self._killed = True
		if self._stderr_task is not None and not self._stderr_task.done():
			with suppress(RuntimeError):  # loop already closed
				self._stderr_task.cancel()
		if self.owns_user_data_dir and self.user_data_dir:
			shutil.rmtree(self.user_data_dir, ignore_errors=True)

	async def kill(self, _hint: str = '') -> None:
		"""Terminate the browser and its helper processes, then wait for it to exit. Safe to call repeatedly."""
		if self._killed:
			return
		try:
			if self.process.returncode is None:
				logger.info(f' ↳ Killing browser_pid={self.pid} {_hint}')
				children = self._children()
				with suppress(ProcessLookupError):
					self.process.terminate()
				try:
					await asyncio.wait_for(self.process.wait(), timeout=self.kill_timeout)
				except TimeoutError:
					logger.warning(f'⏱️ Browser did not exit within {self.kill_timeout}s, force killing browser_pid={self.pid}')
					with suppress(ProcessLookupError):
						self.process.kill()
					await self.process.wait()
				self._kill_children(children, _hint)
		finally:
			self._cleanup()

	def force_kill(self, _hint: str = '') -> None:
		"""SIGKILL the browser and its helpers without waiting, a pending kill() then returns as soon as it is reaped."""
		if self.killed:
			return
		logger.warning(f'☠️ Force-killing browser_pid={self.pid} {_hint}')
		children = self._children()
		with suppress(ProcessLookupError):
			self.process.kill()
		self._kill_children(children, _hint)

	def kill_sync(self, _hint: str = '(process exit)') -> None:
		"""Blocking variant of kill() for atexit hooks, where no event loop is available."""
		if self._killed:
			return
		try:
			if self.process.returncode is None and self._proc is not None:
				children = self._children()
				try:
					self._proc.terminate()
					self._proc.wait(timeout=self.kill_timeout)
					logger.debug(f'🍂 Killed browser subprocess gracefully browser_pid={self.pid} {_hint}')
				except psutil.TimeoutExpired:
					self._proc.kill()
					logger.debug(f'☠️ Force-killed hung browser subprocess browser_pid={self.pid} {_hint}')
				except (psutil.NoSuchProcess, psutil.AccessDenied, ChildProcessError):
					pass
				self._kill_children(children, _hint)
		finally:
			self._cleanup()


class ChromeLauncher:
	"""Starts a browser subprocess for a BrowserProfile and waits for it to report its DevTools port."""

	def __init__(self, profile: BrowserProfile | None = None):
		self.profile = profile or BrowserProfile()

	async def launch(self) -> ChromeProcess:
		executable = await find_chrome_executable(self.profile)

		owns_user_data_dir = self.profile.user_data_dir is None
		user_data_dir = self.profile.user_data_dir or tempfile.mkdtemp(prefix='pagetail-profile-')
		cmd = [executable, *self.profile.get_args(user_data_dir)]

		logger.info(f' ↳ Spawning browser subprocess {_log_pretty_path(executable)} with user_data_dir= {_log_pretty_path(user_data_dir)}')
		try:
			process = await asyncio.create_subprocess_exec(
				*cmd,
				stdin=asyncio.subprocess.DEVNULL,
				stdout=asyncio.subprocess.DEVNULL,
				stderr=asyncio.subprocess.PIPE,
			)
		except OSError as e:
			if owns_user_data_dir:
				shutil.rmtree(user_data_dir, ignore_errors=True)
			raise BrowserLaunchError(f'Failed to start {_log_pretty_path(executable)}: {type(e).__name__}: {e}') from e

		try:
			ws_url = await self._read_devtools_url(process)
		except BaseException:
			if process.returncode is None:
				with suppress(ProcessLookupError):
					process.kill()
				await process.wait()
			if owns_user_data_dir:
				shutil.rmtree(user_data_dir, ignore_errors=True)
			raise

		chrome = ChromeProcess(process, ws_url, user_data_dir=user_data_dir, owns_user_data_dir=owns_user_data_dir)
		chrome.start_stderr_drain()
		logger.info(f'🌎 Browser browser_pid={chrome.pid} listening on DevTools port {chrome.port}')
		return chrome

	async def _read_devtools_url(self, process: asyncio.subprocess.Process) -> str:
		assert process.stderr is not None
		tail: deque[str] = deque(maxlen=20)
		timeout = self.profile.startup_timeout
		try:
			async with asyncio.timeout(timeout):
				while True:
					line = await process.stderr.readline()
					if not line:
						returncode = await process.wait()
						output = '\n'.join(tail) or 'No error output'
						raise BrowserLaunchError(
							f'Browser exited with code {returncode} before reporting a DevTools port: {output[-500:]}'
						)
					text = line.decode('utf-8', errors='replace').rstrip()
					match = DEVTOOLS_LISTENING_RE.search(text)
					if match:
						return match.group(1)
					tail.append(text)
					logger.debug(f'[chrome:{process.pid}] {text}')
		except TimeoutError as e:
			raise BrowserLaunchError(f'Browser did not report a DevTools port within {timeout}s') from e
