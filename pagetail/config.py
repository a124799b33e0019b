"""Environment-driven configuration for pagetail.

Values are read from the environment on every access so tests (and `.env`
files loaded after import) can change them at runtime.
"""

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_TARGET_URL = 'http://localhost:8080/wp-admin/'


def _env_bool(name: str, default: bool) -> bool:
	value = os.getenv(name)
	if value is None:
		return default
	return value.strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_float(name: str, default: float) -> float:
	value = os.getenv(name)
	if value is None or not value.strip():
		return default
	try:
		return float(value)
	except ValueError:
		return default


class _Config:
	@property
	def PAGETAIL_TARGET_URL(self) -> str:
		return os.getenv('PAGETAIL_TARGET_URL') or DEFAULT_TARGET_URL

	@property
	def PAGETAIL_LOGGING_LEVEL(self) -> str:
		return os.getenv('PAGETAIL_LOGGING_LEVEL', 'info').strip().lower()

	@property
	def PAGETAIL_SETUP_LOGGING(self) -> bool:
		return _env_bool('PAGETAIL_SETUP_LOGGING', True)

	@property
	def PAGETAIL_HEADLESS(self) -> bool:
		return _env_bool('PAGETAIL_HEADLESS', False)

	@property
	def PAGETAIL_STARTUP_TIMEOUT(self) -> float:
		return _env_float('PAGETAIL_STARTUP_TIMEOUT', 30.0)

	@property
	def CHROME_PATH(self) -> str | None:
		return os.getenv('CHROME_PATH') or None


CONFIG = _Config()
