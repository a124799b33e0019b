"""
Command line entry point.

Usage:
	pagetail
	python -m pagetail

Takes no arguments: launches a browser, opens PAGETAIL_TARGET_URL
(http://localhost:8080/wp-admin/ by default) and prints its console output
until Ctrl+C or SIGTERM.
"""

import asyncio
import logging
import sys

from pagetail.exceptions import PagetailError
from pagetail.session import TailSession

logger = logging.getLogger('pagetail')


def main() -> None:
	try:
		exit_code = asyncio.run(TailSession().run())
	except PagetailError as e:
		logger.error(f'❌ {e}')
		exit_code = 1
	except Exception as e:
		logger.exception(f'❌ Unexpected error: {type(e).__name__}: {e}')
		exit_code = 1
	sys.exit(exit_code)


if __name__ == '__main__':
	main()
