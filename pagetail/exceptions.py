class PagetailError(Exception):
	"""Base class for errors raised by pagetail."""


class BrowserLaunchError(PagetailError):
	"""The browser executable could not be found, failed to start, or never reported a debugging port."""


class BrowserConnectError(PagetailError):
	"""The DevTools endpoint could not be reached or the CDP session could not be opened."""
