"""
Command execution utilities.

This module provides functions for executing system commands, preparing command
lines with setup scripts and placeholders, and checking for external tools.
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

BUILD_PLACEHOLDERS = ("source", "target", "output", "workspace")


def run_command(
    command: Union[str, Sequence[str]],
    cwd: Path,
    shell: bool = False,
    executable_shell: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, str, str]:
    """Execute a command and capture its output with robust error handling.

    Args:
        command: The command string (or argument list) to execute.
        cwd: Working directory path for command execution.
        shell: Whether to use shell for execution (default: False).
        executable_shell: Specific shell executable path (e.g., '/bin/bash').
        timeout: Seconds to wait before giving up, None to wait forever.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 for execution errors and timeouts.

    Note:
        Uses UTF-8 encoding with error replacement for robust text handling.
    """
    if isinstance(command, str) and not shell:
        args: Union[str, Sequence[str]] = shlex.split(command)
    else:
        args = command
    display = command if isinstance(command, str) else shlex.join(command)

    logger.debug(f"Executing command: '{display}' in '{cwd}'")
    try:
        process = subprocess.run(
            args,
            cwd=cwd,
            shell=shell,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            executable=executable_shell,
            timeout=timeout,
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        program = args[0] if isinstance(args, (list, tuple)) and args else display
        logger.error(f"Command not found: {program}: {type(e).__name__}: {e}")
        return -1, "", f"Error: Command not found '{program}'"
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: '{display[:80]}'")
        return -1, "", f"Error: Command timed out after {timeout}s"
    except Exception as e:
        logger.error(
            f"Unexpected error while running command '{display[:50]}...': {type(e).__name__}: {e}",
            exc_info=True,
        )
        return -1, "", f"An unexpected error occurred: {e}"


def prepare_command_with_setup(
    main_command: str, setup_command: Optional[str]
) -> Tuple[str, Optional[str]]:
    """Combine a main command with an optional setup command.

    Args:
        main_command: The primary command to execute.
        setup_command: Optional setup command to run first
            (e.g., "source env.sh" or "pod install").

    Returns:
        Tuple of (final_command_string, shell_executable).
        shell_executable is the required shell path or None for default shell.

    Examples:
        >>> prepare_command_with_setup("make", "source env.sh")
        ('source env.sh && make', '/bin/bash')
        >>> prepare_command_with_setup("make", None)
        ('make', None)
    """
    if not setup_command:
        return main_command, None

    final_command = f"{setup_command} && {main_command}"
    # 'source' is a bash builtin; plain sh only knows '.'
    if setup_command.lstrip().startswith("source ") or " /bin/bash" in setup_command:
        executable = "/bin/bash"
    else:
        executable = None
    return final_command, executable


def prepare_build_command(
    template: str,
    setup_command: Optional[str] = None,
    **placeholders: str,
) -> Tuple[str, Optional[str]]:
    """Prepare the complete build command for one job invocation.

    Substitutes the ``{source}``, ``{target}``, ``{output}`` and
    ``{workspace}`` placeholders with shell-quoted values and prepends the
    setup command. Braces that
    are not one of those placeholders are left untouched so that shell
    constructs like ``${HOME}`` or ``awk '{print $1}'`` survive.

    Args:
        template: Build command template.
        setup_command: Optional setup command to run before building.
        **placeholders: Values for the placeholders.

    Returns:
        Tuple of (final_command_string, shell_executable).

    Raises:
        ValueError: If an unknown placeholder name is passed.
    """
    unknown = set(placeholders) - set(BUILD_PLACEHOLDERS)
    if unknown:
        raise ValueError(f"Unknown build command placeholders: {sorted(unknown)}")

    command = template
    for name, value in placeholders.items():
        command = command.replace("{" + name + "}", shlex.quote(str(value)))

    return prepare_command_with_setup(command, setup_command)


def substitute(template: str, values: Dict[str, str]) -> str:
    """Replace ``{name}`` markers in ``template`` with shell-quoted values."""
    result = template
    for name, value in values.items():
        result = result.replace("{" + name + "}", shlex.quote(str(value)))
    return result
