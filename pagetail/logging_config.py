import locale
import logging
import sys
import time
from datetime import datetime, timezone

from pagetail.config import CONFIG

_PROCESS_START_MONOTONIC = time.monotonic()


def uptime_seconds() -> float:
	"""Seconds since the package was first imported, on the monotonic clock."""
	return time.monotonic() - _PROCESS_START_MONOTONIC


def now_utc_iso() -> str:
	"""ISO-8601 UTC timestamp with milliseconds, e.g. 2025-08-25T12:34:56.789Z"""
	return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class SafeStreamHandler(logging.StreamHandler):
	"""A stream handler that survives consoles which can't encode every character.

	Retries writes with 'replace' on UnicodeEncodeError instead of letting the
	logging error escape into the event loop.
	"""

	def emit(self, record):  # type: ignore[override]
		try:
			msg = self.format(record)
			stream = self.stream
			try:
				stream.write(msg + self.terminator)
			except UnicodeEncodeError:
				enc = getattr(stream, 'encoding', None) or locale.getpreferredencoding(False) or 'utf-8'
				stream.write(msg.encode(enc, errors='replace').decode(enc, errors='replace') + self.terminator)
			self.flush()
		except Exception:
			self.handleError(record)


class PagetailFormatter(logging.Formatter):
	def format(self, record):
		record.utc = now_utc_iso()
		record.uptime = f'{uptime_seconds():.3f}s'
		return super().format(record)


_LEVELS = {
	'debug': logging.DEBUG,
	'info': logging.INFO,
	'warning': logging.WARNING,
	'error': logging.ERROR,
}

THIRD_PARTY_LOGGERS = [
	'asyncio',
	'playwright',
	'httpx',
	'httpcore',
	'psutil',
]


def setup_logging(stream=None, log_level=None, force_setup=False):
	"""Setup logging configuration for pagetail.

	Args:
		stream: Output stream for logs (default: sys.stderr). stdout carries the relayed page output.
		log_level: Override log level (default: uses CONFIG.PAGETAIL_LOGGING_LEVEL)
		force_setup: Force reconfiguration even if handlers already exist
	"""
	logger = logging.getLogger('pagetail')
	if logger.handlers and not force_setup:
		return logger

	level = _LEVELS.get((log_level or CONFIG.PAGETAIL_LOGGING_LEVEL).lower(), logging.INFO)

	console = SafeStreamHandler(stream or sys.stderr)
	console.setFormatter(PagetailFormatter('%(levelname)-8s [%(name)s] %(utc)s (+%(uptime)s) %(message)s'))

	logger.handlers = [console]
	logger.setLevel(level)
	logger.propagate = False

	for logger_name in THIRD_PARTY_LOGGERS:
		third_party = logging.getLogger(logger_name)
		third_party.setLevel(logging.ERROR)
		third_party.propagate = False

	logger.debug(f'Logging initialized at {now_utc_iso()} with level {logging.getLevelName(level)}')
	return logger
