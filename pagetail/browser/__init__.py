from pagetail.browser.connection import DevToolsConnection, wait_for_devtools
from pagetail.browser.launcher import ChromeLauncher, ChromeProcess, find_chrome_executable
from pagetail.browser.profile import BrowserProfile

__all__ = [
	'BrowserProfile',
	'ChromeLauncher',
	'ChromeProcess',
	'DevToolsConnection',
	'find_chrome_executable',
	'wait_for_devtools',
]
