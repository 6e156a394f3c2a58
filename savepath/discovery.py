"""Discovery of Legendary save paths.

Legendary only computes the save path of a game when syncing its saves,
and asks for confirmation before storing it. Running a sync with both
upload and download disabled and answering that prompt makes it write
the path to installed.json without touching any save.

The prompt texts below are the only contract with Legendary's output;
they have to follow its wording.
"""

import codecs
import os
import signal
import subprocess
import threading
from enum import Enum
from typing import Dict, List, Optional

from savepath import settings
from savepath.exceptions import MissingExecutableError
from savepath.util import system
from savepath.util.log import logger

CONFIRMATION_MARKER = "Is this correct?"
UNRESOLVED_MARKER = "Path contains unprocessed variables"

# Seconds left to the tool to exit after being asked to
TERMINATE_GRACE_PERIOD = 5


class DiscoveryResult(Enum):
    """Outcome of a save path discovery; only CONFIRMED is truthy"""

    CONFIRMED = "confirmed"
    UNRESOLVABLE = "unresolvable"
    NO_CONFIRMATION = "no-confirmation"
    TIMEOUT = "timeout"
    NOT_AVAILABLE = "not-available"

    def __bool__(self):
        return self is DiscoveryResult.CONFIRMED


def contains_marker(output: str, marker: str, previous_length: int) -> bool:
    """Look for a marker in the output received since `previous_length`,
    including one that straddles the previous chunk."""
    return output.find(marker, max(0, previous_length - len(marker) + 1)) != -1


class LegendarySavePathDiscovery:
    """Runs `legendary sync-saves` without syncing anything and accepts the
    save path it proposes."""

    def __init__(
        self,
        legendary_path: Optional[str] = None,
        timeout: Optional[float] = None,
        config_dir: Optional[str] = None,
    ):
        self.legendary_path = legendary_path or settings.LEGENDARY_PATH
        self.config_dir = config_dir or settings.LEGENDARY_CONFIG_DIR
        self.timeout = timeout if timeout is not None else settings.DISCOVERY_TIMEOUT
        self.output = ""
        self._timed_out = threading.Event()

    def get_executable(self) -> str:
        if self.legendary_path:
            if not system.path_exists(self.legendary_path):
                raise MissingExecutableError("Legendary not found at %s" % self.legendary_path)
            return self.legendary_path
        return system.find_required_executable("legendary")

    @staticmethod
    def get_command(executable: str, appid: str) -> List[str]:
        return [executable, "sync-saves", appid, "--skip-upload", "--skip-download"]

    def get_env(self, env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Return the environment of the tool. Legendary stores the computed
        path in the installed.json of its config folder."""
        tool_env = {"LEGENDARY_CONFIG_PATH": self.config_dir}
        tool_env.update(env or {})
        return system.get_child_environment(tool_env)

    def run(self, appid: str, env: Optional[Dict[str, str]] = None) -> DiscoveryResult:
        """Compute the save path of a game. On success, Legendary has stored it."""
        try:
            executable = self.get_executable()
        except MissingExecutableError as ex:
            logger.error("%s, can't compute the save path of %s", ex.message, appid)
            return DiscoveryResult.NOT_AVAILABLE

        command = self.get_command(executable, appid)
        logger.info("Computing default save path for %s", appid)
        logger.debug("Executing %s", " ".join(command))
        self.output = ""
        self._timed_out.clear()
        try:
            process = subprocess.Popen(  # pylint: disable=consider-using-with
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=self.get_env(env),
                start_new_session=True,
            )
        except OSError as ex:
            logger.error("Could not run command %s: %s", command, ex)
            return DiscoveryResult.NOT_AVAILABLE

        timer = threading.Timer(self.timeout, self.on_timeout, args=(process,))
        timer.daemon = True
        with process:
            timer.start()
            try:
                result = self.watch_output(process)
            except BaseException:
                self.terminate(process)
                raise
            finally:
                timer.cancel()
                self.stop(process)

        if self._timed_out.is_set() and result is not DiscoveryResult.CONFIRMED:
            logger.error("Legendary did not propose a save path for %s within %s seconds", appid, self.timeout)
            return DiscoveryResult.TIMEOUT
        if result is DiscoveryResult.UNRESOLVABLE:
            logger.error("Legendary was unable to compute the default save path of %s", appid)
        elif result is DiscoveryResult.NO_CONFIRMATION:
            logger.error("Unable to compute default save path for %s", appid)
        return result

    def watch_output(self, process: subprocess.Popen) -> DiscoveryResult:
        """Read the tool's output until it exits, answering its prompts"""
        result = DiscoveryResult.NO_CONFIRMATION
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        fileno = process.stdout.fileno()
        while True:
            chunk = os.read(fileno, 4096)
            if not chunk:
                break
            text = decoder.decode(chunk)
            if not text:
                continue
            logger.debug(text.rstrip())
            previous_length = len(self.output)
            self.output += text
            if result is not DiscoveryResult.CONFIRMED and contains_marker(
                self.output, CONFIRMATION_MARKER, previous_length
            ):
                if not self.confirm(process):
                    break
                result = DiscoveryResult.CONFIRMED
            elif contains_marker(self.output, UNRESOLVED_MARKER, previous_length):
                self.terminate(process)
                return DiscoveryResult.UNRESOLVABLE
        return result

    @staticmethod
    def confirm(process: subprocess.Popen) -> bool:
        """Accept the proposed path. Stdin is closed afterwards so that any
        further question gets an end of file instead of blocking."""
        try:
            process.stdin.write(b"y\n")
            process.stdin.flush()
            process.stdin.close()
        except (BrokenPipeError, ValueError):
            logger.warning("Legendary exited before the save path could be confirmed")
            return False
        return True

    def on_timeout(self, process: subprocess.Popen):
        self._timed_out.set()
        logger.warning("Save path discovery timed out, killing Legendary")
        self.kill_process_group(process, signal.SIGKILL)

    @staticmethod
    def kill_process_group(process: subprocess.Popen, signum: int):
        try:
            os.killpg(process.pid, signum)
        except ProcessLookupError:
            pass
        except OSError as ex:
            logger.error("Could not kill process %s: %s", process.pid, ex)

    def terminate(self, process: subprocess.Popen):
        self.kill_process_group(process, signal.SIGTERM)

    def stop(self, process: subprocess.Popen):
        """Wait for the tool to exit, killing it if it doesn't"""
        try:
            process.wait(timeout=TERMINATE_GRACE_PERIOD)
        except subprocess.TimeoutExpired:
            logger.warning("Legendary did not exit, killing it")
            self.kill_process_group(process, signal.SIGKILL)
            process.wait()
