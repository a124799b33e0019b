import asyncio
import os
import stat
import sys

import pytest

from pagetail.browser.launcher import ChromeLauncher, ChromeProcess
from pagetail.browser.profile import BrowserProfile
from pagetail.exceptions import BrowserLaunchError

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake browser relies on a shebang script")


def _fake_browser(tmp_path, body: str):
    """Write an executable script that stands in for the browser binary."""
    path = tmp_path / "fake-chrome"
    path.write_text(f"#!{sys.executable}\nimport sys, time\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


ANNOUNCES_PORT = """
sys.stderr.write("[0101/000000.000000:WARNING:fake] noise before the endpoint is up\\n")
sys.stderr.write("DevTools listening on ws://127.0.0.1:45678/devtools/browser/0b5e6f1c\\n")
sys.stderr.flush()
time.sleep(60)
"""


@pytest.mark.asyncio
async def test_launch_reads_port_from_devtools_banner(tmp_path):
    profile = BrowserProfile(executable_path=_fake_browser(tmp_path, ANNOUNCES_PORT), startup_timeout=10)
    chrome = await ChromeLauncher(profile).launch()
    try:
        assert chrome.port == 45678
        assert chrome.ws_url == "ws://127.0.0.1:45678/devtools/browser/0b5e6f1c"
        assert chrome.is_running()
        assert chrome.owns_user_data_dir
        assert os.path.isdir(chrome.user_data_dir)
    finally:
        await chrome.kill()

    assert chrome.killed
    assert chrome.process.returncode is not None
    assert not os.path.exists(chrome.user_data_dir)


@pytest.mark.asyncio
async def test_launch_keeps_caller_supplied_user_data_dir(tmp_path):
    data_dir = tmp_path / "profile"
    data_dir.mkdir()
    profile = BrowserProfile(
        executable_path=_fake_browser(tmp_path, ANNOUNCES_PORT),
        user_data_dir=data_dir,
        startup_timeout=10,
    )
    chrome = await ChromeLauncher(profile).launch()
    await chrome.kill()

    assert not chrome.owns_user_data_dir
    assert data_dir.is_dir()


@pytest.mark.asyncio
async def test_launch_fails_when_browser_exits_early(tmp_path):
    body = 'sys.stderr.write("Missing X server or $DISPLAY\\n"); sys.exit(3)'
    profile = BrowserProfile(executable_path=_fake_browser(tmp_path, body), startup_timeout=10)

    with pytest.raises(BrowserLaunchError) as exc_info:
        await ChromeLauncher(profile).launch()

    assert "code 3" in str(exc_info.value)
    assert "Missing X server" in str(exc_info.value)


@pytest.mark.asyncio
async def test_launch_times_out_without_banner(tmp_path):
    profile = BrowserProfile(executable_path=_fake_browser(tmp_path, "time.sleep(60)"), startup_timeout=0.5)

    with pytest.raises(BrowserLaunchError, match="did not report a DevTools port"):
        await ChromeLauncher(profile).launch()


@pytest.mark.asyncio
async def test_launch_fails_for_missing_executable(tmp_path):
    profile = BrowserProfile(executable_path=tmp_path / "no-such-chrome")

    with pytest.raises(BrowserLaunchError, match="not found"):
        await ChromeLauncher(profile).launch()


async def _sleeper() -> asyncio.subprocess.Process:
    return await asyncio.create_subprocess_exec(sys.executable, "-c", "import time; time.sleep(60)")


@pytest.mark.asyncio
async def test_kill_is_idempotent():
    chrome = ChromeProcess(await _sleeper(), "ws://127.0.0.1:9333/devtools/browser/x")

    await chrome.kill()
    assert chrome.killed
    assert chrome.process.returncode is not None

    # exit handler firing after an explicit kill must be a no-op
    await chrome.kill()
    chrome.kill_sync()
    chrome.kill_sync()


@pytest.mark.asyncio
async def test_kill_sync_then_kill():
    chrome = ChromeProcess(await _sleeper(), "ws://127.0.0.1:9333/devtools/browser/x")

    chrome.kill_sync()
    assert chrome.killed

    await asyncio.wait_for(chrome.kill(), timeout=5)


@pytest.mark.asyncio
async def test_kill_after_process_already_exited(tmp_path):
    process = await asyncio.create_subprocess_exec(sys.executable, "-c", "pass")
    await process.wait()
    data_dir = tmp_path / "tmp-profile"
    data_dir.mkdir()

    chrome = ChromeProcess(process, "ws://127.0.0.1:9333/devtools/browser/x", user_data_dir=data_dir, owns_user_data_dir=True)
    assert chrome.killed
    await chrome.kill()
    chrome.kill_sync()

    assert not data_dir.exists()


@pytest.mark.asyncio
async def test_force_kill_cuts_graceful_kill_short():
    ignores_sigterm = (
        "import signal, sys, time\n"
        "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
        "sys.stdout.write('ready\\n'); sys.stdout.flush()\n"
        "time.sleep(60)\n"
    )
    process = await asyncio.create_subprocess_exec(sys.executable, "-c", ignores_sigterm, stdout=asyncio.subprocess.PIPE)
    await asyncio.wait_for(process.stdout.readline(), timeout=10)
    chrome = ChromeProcess(process, "ws://127.0.0.1:9333/devtools/browser/x", kill_timeout=30)

    graceful = asyncio.create_task(chrome.kill())
    await asyncio.sleep(0.2)
    assert not graceful.done()

    chrome.force_kill()
    await asyncio.wait_for(graceful, timeout=5)

    assert chrome.killed
    chrome.force_kill()
