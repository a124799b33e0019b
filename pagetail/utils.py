from pathlib import Path


def _log_pretty_path(path: str | Path | None) -> str:
	"""Pretty-print a path for logs, shorten the home dir to ~ and quote paths containing spaces"""
	if not path:
		return ''
	pretty = str(path).replace(str(Path.home()), '~')
	if ' ' in pretty:
		return f'"{pretty}"'
	return pretty


def _log_pretty_url(s: str, max_len: int | None = 60) -> str:
	"""Truncate/pretty-print a URL for logs, dropping the https:// and www. prefixes"""
	s = s.replace('https://', '').replace('http://', '').replace('www.', '')
	if max_len is not None and len(s) > max_len:
		return s[:max_len] + '…'
	return s
