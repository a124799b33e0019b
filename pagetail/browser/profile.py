from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from pagetail.config import CONFIG

# Flags the node chrome-launcher passes by default: keep a throwaway profile quiet and fast
CHROME_DEFAULT_ARGS = [
	'--disable-features=Translate,OptimizationHints,MediaRouter,DialMediaRouteProvider,CalculateNativeWinOcclusion,InterestFeedContentSuggestions,CertificateTransparencyComponentUpdater,AutofillServerCommunication,PrivacySandboxSettings4',
	'--disable-component-extensions-with-background-pages',
	'--disable-background-networking',
	'--disable-component-update',
	'--disable-client-side-phishing-detection',
	'--disable-sync',
	'--metrics-recording-only',
	'--disable-default-apps',
	'--mute-audio',
	'--no-default-browser-check',
	'--no-first-run',
	'--disable-backgrounding-occluded-windows',
	'--disable-renderer-backgrounding',
	'--disable-background-timer-throttling',
	'--disable-ipc-flooding-protection',
	'--password-store=basic',
	'--use-mock-keychain',
	'--force-fieldtrials=*BackgroundTracing/default/',
	'--disable-hang-monitor',
	'--disable-prompt-on-repost',
	'--disable-domain-reliability',
]

CHROME_HEADLESS_ARGS = [
	'--headless=new',
]

# Always replaced by the launcher's own values
_MANAGED_ARG_PREFIXES = ('--remote-debugging-port=', '--remote-debugging-pipe', '--user-data-dir=')


class BrowserProfile(BaseModel):
	"""Launch configuration for the browser subprocess."""

	model_config = ConfigDict(extra='forbid', validate_assignment=True)

	executable_path: str | Path | None = Field(
		default_factory=lambda: CONFIG.CHROME_PATH,
		description='Browser binary to launch, defaults to $CHROME_PATH then auto-detection',
	)
	headless: bool = Field(default_factory=lambda: CONFIG.PAGETAIL_HEADLESS)
	args: list[str] = Field(default_factory=list, description='Extra command line flags appended after the defaults')
	user_data_dir: str | Path | None = Field(
		default=None,
		description='Profile directory, None creates a temporary one that is deleted on shutdown',
	)
	startup_timeout: float = Field(
		default_factory=lambda: CONFIG.PAGETAIL_STARTUP_TIMEOUT,
		gt=0,
		description='Seconds to wait for the browser to report its DevTools port',
	)
	start_url: str = 'about:blank'

	def get_args(self, user_data_dir: str | Path | None = None) -> list[str]:
		"""Full argument list (without the executable) for launching the browser."""
		user_data_dir = user_data_dir or self.user_data_dir

		args = list(CHROME_DEFAULT_ARGS)
		if self.headless:
			args.extend(CHROME_HEADLESS_ARGS)
		args.extend(arg for arg in self.args if not arg.startswith(_MANAGED_ARG_PREFIXES))

		# port 0 lets the OS pick a free port, the browser reports it on stderr
		args.append('--remote-debugging-port=0')
		if user_data_dir:
			args.append(f'--user-data-dir={user_data_dir}')

		deduped = list(dict.fromkeys(args))
		deduped.append(self.start_url)
		return deduped
