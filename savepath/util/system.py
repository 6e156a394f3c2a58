"""System utilities"""

import os
import shutil
import subprocess
from gettext import gettext as _
from typing import Dict, List, Optional

from gi.repository import GLib  # type: ignore

from savepath.exceptions import MissingExecutableError
from savepath.util.log import logger


def get_environment():
    """Return a safe to use copy of the system's environment.
    Values starting with BASH_FUNC can cause issues when written in a text file."""
    return {key: value for key, value in os.environ.items() if not key.startswith("BASH_FUNC")}


def get_child_environment(env: Optional[Dict[str, str]] = None, quiet: bool = False) -> Dict[str, str]:
    """Return the system environment updated with `env`, dropping None values"""
    existing_env = get_environment()
    if env:
        if not quiet:
            logger.debug(" ".join("{}={}".format(k, v) for k, v in env.items()))
        existing_env.update({k: v for k, v in env.items() if v is not None})
    return existing_env


def execute(
    command: List[str],
    env: Optional[Dict[str, str]] = None,
    quiet: bool = False,
    timeout: Optional[float] = None,
) -> str:
    """
    Execute a system command and return its standard output; standard error is discarded.

    Params:
        command (list): A list containing an executable and its parameters
        env (dict): Dict of values to add to the current environment
        quiet (bool): Do not display log messages
        timeout (int): Number of seconds the program is allowed to run, disabled by default

    Returns:
        str: stdout output
    """
    if not command:
        logger.error("No executable provided!")
        return ""
    if os.path.isabs(command[0]) and not path_exists(command[0]):
        logger.error("No executable found in %s", command)
        return ""

    if not quiet:
        logger.debug("Executing %s", " ".join([str(i) for i in command]))

    existing_env = get_child_environment(env, quiet=quiet)

    try:
        with subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            env=existing_env,
            errors="replace",
        ) as command_process:
            try:
                stdout, _stderr = command_process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                command_process.kill()
                command_process.communicate()
                logger.error("Command %s timed out after %s seconds", command, timeout)
                return ""
    except (OSError, TypeError) as ex:
        logger.error("Could not run command %s (env: %s): %s", command, env, ex)
        return ""

    return stdout.strip()


def find_executable(exec_name: str) -> Optional[str]:
    """Return the absolute path of an executable, or None if
    it could not be found."""
    return shutil.which(exec_name) if exec_name else None


def find_required_executable(exec_name: str) -> str:
    """Return the absolute path of an executable, but raises a
    MissingExecutableError if it could not be found."""
    exe = find_executable(exec_name)
    if not exe:
        raise MissingExecutableError(_("The executable '%s' could not be found") % exec_name)
    return exe


def path_exists(path: str) -> bool:
    """Wrapper around os.path.exists that doesn't crash with empty values.
    Broken symlinks are reported as missing."""
    if not path:
        return False
    if path.startswith("~"):
        path = os.path.expanduser(path)
    if os.path.exists(path):
        return True
    if os.path.islink(path):
        logger.warning("%s is a broken link", path)
    return False


def get_shell_path(path: str) -> str:
    """Expand ~ and $VAR / ${VAR} references the way a POSIX shell would,
    and return the result as an absolute path."""
    return os.path.abspath(os.path.expandvars(os.path.expanduser(path)))


def resolve_symlinks(path: str) -> str:
    """Return the canonical path of an existing file, with every symlink resolved.

    Raises OSError if the path does not exist or a link can't be followed."""
    return os.path.realpath(path, strict=True)


def get_documents_dir() -> str:
    """Return the user's documents folder, as configured in XDG user dirs"""
    documents_dir = GLib.get_user_special_dir(GLib.UserDirectory.DIRECTORY_DOCUMENTS)
    return documents_dir or os.path.join(os.path.expanduser("~"), "Documents")
