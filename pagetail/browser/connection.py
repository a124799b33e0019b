import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx
from playwright.async_api import Browser, CDPSession, Page, Playwright, async_playwright

from pagetail.exceptions import BrowserConnectError
from pagetail.utils import _log_pretty_url

logger = logging.getLogger(__name__)

CDP_HOST = '127.0.0.1'
ENABLED_DOMAINS = ('Runtime', 'Page')


async def wait_for_devtools(
	port: int,
	timeout: float = 30.0,
	poll_interval: float = 0.5,
	transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
	"""Poll /json/version until the DevTools HTTP endpoint answers, return its payload."""
	url = f'http://{CDP_HOST}:{port}/json/version'
	loop = asyncio.get_running_loop()
	deadline = loop.time() + timeout
	attempt = 0

	async with httpx.AsyncClient(transport=transport) as client:
		while True:
			attempt += 1
			try:
				response = await client.get(url, timeout=1.0)
				if response.status_code == 200:
					return response.json()
			except (httpx.ConnectError, httpx.TimeoutException):
				if attempt == 1:
					logger.debug(f'⏳ Waiting for DevTools port {port} to become available...')
			if loop.time() >= deadline:
				raise BrowserConnectError(f'DevTools port {port} did not become available after {timeout}s')
			await asyncio.sleep(poll_interval)


class DevToolsConnection:
	"""Control connection to one page of the browser: a playwright CDP session plus the objects keeping it alive."""

	def __init__(
		self,
		session: CDPSession,
		page: Page | None = None,
		browser: Browser | None = None,
		playwright: Playwright | None = None,
	):
		self.session = session
		self.page = page
		self.browser = browser
		self.playwright = playwright
		self._closed = False

	@classmethod
	async def open(cls, port: int, timeout: float = 30.0) -> 'DevToolsConnection':
		"""Connect to the browser listening on `port` and attach a CDP session to its first page."""
		playwright = None
		browser = None
		try:
			version = await wait_for_devtools(port, timeout=timeout)
			logger.debug(f'DevTools endpoint {version.get("Browser", "?")} protocol={version.get("Protocol-Version", "?")}')

			playwright = await async_playwright().start()
			cdp_url = f'http://{CDP_HOST}:{port}'
			logger.info(f'🌎 Connecting to browser via CDP {cdp_url}')
			browser = await playwright.chromium.connect_over_cdp(cdp_url)

			context = browser.contexts[0] if browser.contexts else await browser.new_context()
			page = context.pages[0] if context.pages else await context.new_page()
			session = await context.new_cdp_session(page)
		except BrowserConnectError:
			await cls._release(browser, playwright)
			raise
		except Exception as e:
			await cls._release(browser, playwright)
			raise BrowserConnectError(f'Failed to open CDP session on port {port}: {type(e).__name__}: {e}') from e
		except BaseException:
			# cancelled mid-connect (stop requested during startup), nobody else holds these yet
			await cls._release(browser, playwright)
			raise

		return cls(session, page=page, browser=browser, playwright=playwright)

	@staticmethod
	async def _release(browser: Browser | None, playwright: Playwright | None) -> None:
		if browser is not None:
			try:
				await browser.close()
			except Exception as e:
				logger.debug(f'Error disconnecting from browser: {type(e).__name__}: {e}')
		if playwright is not None:
			try:
				await playwright.stop()
			except Exception as e:
				logger.debug(f'Error stopping playwright: {type(e).__name__}: {e}')

	@property
	def closed(self) -> bool:
		return self._closed

	async def enable_domains(self) -> None:
		"""Enable Runtime and Page concurrently, events from both are only delivered after this returns."""
		await asyncio.gather(*(self.session.send(f'{domain}.enable') for domain in ENABLED_DOMAINS))
		logger.debug(f'Enabled CDP domains: {", ".join(ENABLED_DOMAINS)}')

	def on(self, event: str, callback: Callable[[dict[str, Any]], Any]) -> None:
		self.session.on(event, callback)

	async def navigate(self, url: str) -> dict[str, Any]:
		result = await self.session.send('Page.navigate', {'url': url})
		error_text = (result or {}).get('errorText')
		if error_text:
			logger.warning(f'⚠️ Navigation to {_log_pretty_url(url)} failed: {error_text}')
		return result or {}

	async def close(self) -> None:
		"""Detach the CDP session and disconnect from the browser (the browser process keeps running)."""
		if self._closed:
			return
		self._closed = True
		try:
			await asyncio.wait_for(self.session.detach(), timeout=1.0)
		except Exception as e:
			logger.debug(f'Error detaching CDP session: {type(e).__name__}: {e}')
		await self._release(self.browser, self.playwright)
		self.browser = None
		self.playwright = None
