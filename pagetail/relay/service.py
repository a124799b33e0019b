"""
Turn CDP page events into terminal lines.

Three line shapes are written, one per event:
	PAGE: load event fired
	PAGE: navigating to <url>
	<TYPE>: <arg> <arg> ...
"""

import logging
import math
import sys
from decimal import Decimal
from typing import Any, TextIO

from pydantic import ValidationError

from pagetail.relay.views import ConsoleAPICalledEvent, RemoteObject

logger = logging.getLogger(__name__)

LOAD_EVENT_LINE = 'PAGE: load event fired'


def _js_number(value: float) -> str:
	"""Number::toString: shortest round-trip digits, exponent form outside [1e-6, 1e21)."""
	if math.isnan(value):
		return 'NaN'
	if math.isinf(value):
		return 'Infinity' if value > 0 else '-Infinity'
	if value == 0:
		return '0'
	sign = '-' if value < 0 else ''
	_, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
	digits = ''.join(map(str, digit_tuple))
	k = len(digits)
	n = exponent + k  # value == 0.<digits> * 10**n
	if k <= n <= 21:
		return sign + digits + '0' * (n - k)
	if 0 < n <= 21:
		return sign + digits[:n] + '.' + digits[n:]
	if -6 < n <= 0:
		return sign + '0.' + '0' * -n + digits
	e = n - 1
	mantissa = digits if k == 1 else f'{digits[0]}.{digits[1:]}'
	return f'{sign}{mantissa}e{"+" if e >= 0 else "-"}{abs(e)}'


def _js_string(value: Any) -> str:
	"""String conversion the way Array.prototype.join renders elements."""
	if value is None:
		return ''
	if isinstance(value, bool):
		return 'true' if value else 'false'
	if isinstance(value, float):
		return _js_number(value)
	if isinstance(value, dict):
		return '[object Object]'
	if isinstance(value, list):
		return ','.join(_js_string(item) for item in value)
	return str(value)


def render_remote_object(arg: RemoteObject | dict[str, Any]) -> str:
	"""The literal value when the object carries one, otherwise its description."""
	if not isinstance(arg, RemoteObject):
		arg = RemoteObject.model_validate(arg)
	if arg.has_value:
		return _js_string(arg.value)
	return _js_string(arg.description)


def format_console_event(params: ConsoleAPICalledEvent | dict[str, Any]) -> str:
	if not isinstance(params, ConsoleAPICalledEvent):
		params = ConsoleAPICalledEvent.model_validate(params)
	texts = [render_remote_object(arg) for arg in params.args]
	return f'{params.type.upper()}: {" ".join(texts)}'


class ConsoleRelay:
	"""Writes relayed page events to a text stream, stdout unless told otherwise."""

	def __init__(self, stream: TextIO | None = None):
		self._stream = stream

	@property
	def stream(self) -> TextIO:
		# resolved per write so a swapped sys.stdout is honoured
		return self._stream or sys.stdout

	def emit(self, line: str) -> None:
		print(line, file=self.stream, flush=True)

	def navigating(self, url: str) -> None:
		self.emit(f'PAGE: navigating to {url}')

	def on_load_event_fired(self, params: dict[str, Any] | None = None) -> None:
		self.emit(LOAD_EVENT_LINE)

	def on_console_api_called(self, params: dict[str, Any]) -> None:
		try:
			line = format_console_event(params)
		except ValidationError as e:
			logger.warning(f'⚠️ Dropping malformed Runtime.consoleAPICalled event: {e.error_count()} validation error(s)')
			logger.debug(f'Malformed event params: {params!r}')
			return
		self.emit(line)
