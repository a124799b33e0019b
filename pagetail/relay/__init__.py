from pagetail.relay.service import LOAD_EVENT_LINE, ConsoleRelay, format_console_event, render_remote_object
from pagetail.relay.views import ConsoleAPICalledEvent, RemoteObject

__all__ = [
	'LOAD_EVENT_LINE',
	'ConsoleAPICalledEvent',
	'ConsoleRelay',
	'RemoteObject',
	'format_console_event',
	'render_remote_object',
]
