"""
Build execution management.

This module runs a job's external tool, capturing combined stdout and stderr
into the run's build log, with timeout, retry and shutdown handling.
"""

import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from ..models.runtime import BuildResult
from ..system import run_command, terminate_process_tree
from ..validation import ErrorSeverity, handle_subprocess_error, simple_retry

logger = logging.getLogger(__name__)

# Seconds between checks of the timeout and the shutdown flag.
BUILD_WAIT_POLL_INTERVAL = 0.2
# Exit code reported when the process could not be started at all.
START_FAILURE_EXIT_CODE = 127
NOT_AVAILABLE = "Not available"


class BuildExecutor:
    """
    Runs one build command and supervises it.

    A non-zero exit code is a normal outcome and is returned in the
    BuildResult; only a failure to write the log raises.
    """

    def __init__(
        self,
        command: str,
        cwd: Path,
        log_path: Path,
        timeout_seconds: Optional[float] = None,
        max_attempts: int = 1,
        retry_delay_seconds: float = 0.0,
        executable: Optional[str] = None,
        shutdown_event: Optional[threading.Event] = None,
        graceful_shutdown_timeout: float = 5.0,
        append: bool = False,
    ):
        """
        Initialize the build executor.

        Args:
            command: Full shell command line
            cwd: Working directory for the command
            log_path: File receiving stdout and stderr
            timeout_seconds: Kill the process tree after this many seconds
            max_attempts: Total attempts for a failing command
            retry_delay_seconds: Delay between attempts
            executable: Shell executable, None for the default shell
            shutdown_event: Set by the signal handler to abort the build
            graceful_shutdown_timeout: SIGTERM grace period before SIGKILL
            append: Append to an existing log instead of truncating it
        """
        self.command = command
        self.cwd = cwd
        self.log_path = log_path
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self.retry_delay_seconds = retry_delay_seconds
        self.executable = executable
        self.shutdown_event = shutdown_event or threading.Event()
        self.graceful_shutdown_timeout = graceful_shutdown_timeout
        self.append = append
        self.process: Optional[subprocess.Popen] = None
        self._attempts = 0

    def run(self) -> BuildResult:
        """
        Run the command, retrying failed attempts.

        Returns:
            BuildResult of the last attempt, with the attempt count
        """
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.append:
            self.log_path.write_text("", encoding="utf-8")
        self._attempts = 0
        start = time.monotonic()

        result = simple_retry(
            self._run_once,
            max_attempts=self.max_attempts,
            delay=self.retry_delay_seconds,
            context=f"build command '{self.command[:60]}'",
            retry_on=(),
            should_retry=lambda r: not r.succeeded and not self.shutdown_event.is_set(),
        )
        result.attempts = self._attempts
        result.duration_seconds = time.monotonic() - start
        logger.info(
            f"Build finished with exit code {result.exit_code} after "
            f"{result.attempts} attempt(s) in {result.duration_seconds:.1f}s"
        )
        return result

    def _run_once(self) -> BuildResult:
        self._attempts += 1
        attempt = self._attempts
        start = time.monotonic()
        timed_out = False

        with open(self.log_path, "a", encoding="utf-8", errors="replace") as log_file:
            if self.max_attempts > 1:
                log_file.write(f"--- attempt {attempt} of {self.max_attempts}: {self.command}\n")
                log_file.flush()
            try:
                self.process = subprocess.Popen(
                    self.command,
                    cwd=self.cwd,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    shell=True,
                    executable=self.executable,
                )
            except OSError as e:
                handle_subprocess_error(
                    e, self.command, severity=ErrorSeverity.ERROR, reraise=False, logger=logger
                )
                log_file.write(f"Failed to start command: {e}\n")
                return BuildResult(
                    command=self.command,
                    exit_code=START_FAILURE_EXIT_CODE,
                    duration_seconds=time.monotonic() - start,
                    log_path=self.log_path,
                    attempts=attempt,
                )

            logger.info(f"Build process started with PID {self.process.pid} in {self.cwd}")
            exit_code = self._wait(start)
            if exit_code is None:
                timed_out = not self.shutdown_event.is_set()
                reason = "Shutdown requested" if not timed_out else f"Timeout of {self.timeout_seconds}s reached"
                logger.warning(f"{reason}, terminating build process tree")
                terminate_process_tree(self.process.pid, "build process", self.graceful_shutdown_timeout)
                exit_code = self.process.wait()
                log_file.write(f"\n{reason}; build terminated with exit code {exit_code}\n")

        self.process = None
        return BuildResult(
            command=self.command,
            exit_code=exit_code,
            duration_seconds=time.monotonic() - start,
            log_path=self.log_path,
            attempts=attempt,
            timed_out=timed_out,
        )

    def _wait(self, start: float) -> Optional[int]:
        """Wait for the process; None means it must be terminated."""
        while True:
            if self.shutdown_event.is_set():
                return None
            if self.timeout_seconds is not None and time.monotonic() - start > self.timeout_seconds:
                return None
            try:
                return self.process.wait(timeout=BUILD_WAIT_POLL_INTERVAL)
            except subprocess.TimeoutExpired:
                continue


def run_clean_command(clean_command: str, cwd: Path, log_path: Path) -> int:
    """
    Run a job's clean command, appending its output to ``log_path``.

    Returns:
        The command's exit code (failures are logged, not raised)
    """
    logger.info(f"Running clean command: {clean_command}")
    code, stdout, stderr = run_command(clean_command, cwd=cwd, shell=True)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "a", encoding="utf-8") as f:
        f.write("--- Clean Command Log ---\n")
        f.write(f"Command: {clean_command}\n")
        f.write(f"Exit Code: {code}\n")
        f.write(stdout)
        f.write(stderr)
    if code != 0:
        logger.warning(f"Clean command exited with code {code}")
    return code


def capture_environment(commands: List[str], cwd: Path) -> Dict[str, str]:
    """
    Record tool versions by running each command and keeping its first line.

    Args:
        commands: Commands such as ``swift --version``
        cwd: Working directory

    Returns:
        Mapping of command to first output line, or "Not available"
    """
    environment = {}
    for command in commands:
        code, stdout, stderr = run_command(command, cwd=cwd, shell=True, timeout=60)
        output = stdout.strip() or stderr.strip()
        if code != 0 or not output:
            environment[command] = NOT_AVAILABLE
        else:
            environment[command] = output.splitlines()[0].strip()
    return environment
