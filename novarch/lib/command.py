from __future__ import annotations

import codecs
import logging
import os
import shlex
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from .env import Context

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

# Substrings (lowercase) that pacman/paru/curl print for transient transfer problems.
DEFAULT_RETRYABLE_PATTERNS: tuple[str, ...] = (
    "failed retrieving file",
    "failed to download",
    "download failed",
    "connection timed out",
    "connection refused",
    "could not resolve host",
    "temporary failure in name resolution",
    "network is unreachable",
    "curl error",
    "timeout",
    "ssl connect error",
    "ssl_connect",
    "certificate problem",
    "tls handshake",
    "failed to retrieve",
    "could not connect",
    "no route to host",
    "http error 404",
    "http error 502",
    "http error 503",
)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandAborted(RuntimeError):
    """The user declined to retry a failed command."""

    def __init__(self, result: CmdResult):
        super().__init__(f"Aborted after failure ({result.returncode}): {_fmt_argv(result.argv)}")
        self.result = result


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _tee_stderr(fd: int, chunks: List[str]) -> None:
    # pacman asks its [Y/n] questions on stderr, so forward while the child runs.
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    with os.fdopen(fd, "rb", buffering=0) as pipe:
        while True:
            data = pipe.read(4096)
            text = decoder.decode(data, final=not data)
            if text:
                chunks.append(text)
                sys.stderr.write(text)
                sys.stderr.flush()
            if not data:
                return


def run_cmd(
    argv: Sequence[str],
    *,
    capture_stdout: bool = False,
    env: Mapping[str, str] | None = None,
    input_text: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - stdout goes straight to the terminal unless capture_stdout is set.
    - stderr is shown live and also kept for failure classification.
    - stdin is inherited unless input_text is given, so prompts can be answered.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    read_fd, write_fd = os.pipe()
    try:
        p = subprocess.Popen(
            argv_list,
            text=True,
            stdin=subprocess.PIPE if input_text is not None else None,
            stdout=subprocess.PIPE if capture_stdout else None,
            stderr=write_fd,
            env=dict(os.environ, **(env or {})),
        )
    except BaseException:
        os.close(read_fd)
        raise
    finally:
        os.close(write_fd)

    chunks: List[str] = []
    reader = threading.Thread(target=_tee_stderr, args=(read_fd, chunks), daemon=True)
    reader.start()
    stdout, _ = p.communicate(input=input_text)
    reader.join()

    stderr = "".join(chunks)
    if stderr:
        logger.debug("STDERR %s", stderr.strip())

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=stdout or "", stderr=stderr)


@dataclass(frozen=True)
class ErrorClassifier:
    """Decides whether a failed command is worth retrying automatically."""

    patterns: tuple[str, ...] = DEFAULT_RETRYABLE_PATTERNS

    def with_extra(self, extra: Iterable[str]) -> "ErrorClassifier":
        merged = list(self.patterns)
        for p in extra:
            p = str(p).strip().lower()
            if p and p not in merged:
                merged.append(p)
        return ErrorClassifier(patterns=tuple(merged))

    def is_retryable(self, error_text: str) -> bool:
        lowered = error_text.lower()
        return any(p in lowered for p in self.patterns)


class CommandRunner:
    """Executes external commands with bounded retry.

    Network/transfer failures are retried automatically with a linear backoff
    (attempt * backoff_unit seconds). Anything else, including exhausting the
    automatic attempts, asks ``confirm_retry`` whether to run it again;
    declining raises CommandAborted.
    """

    def __init__(
        self,
        context: Context,
        *,
        confirm_retry: Confirm,
        classifier: Optional[ErrorClassifier] = None,
        max_attempts: int = 3,
        backoff_unit: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
        dry_run: bool = False,
        execute: Callable[..., CmdResult] = run_cmd,
    ) -> None:
        self.context = context
        self.classifier = classifier or ErrorClassifier()
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_unit = float(backoff_unit)
        self.dry_run = dry_run
        self._confirm_retry = confirm_retry
        self._sleep = sleep
        self._execute = execute

    def elevated(self, argv: Sequence[str], sudo: bool) -> list[str]:
        if sudo and not self.context.is_root:
            return ["sudo", *argv]
        return list(argv)

    def _attempt(self, argv: list[str], *, capture: bool, input_text: Optional[str]) -> CmdResult:
        try:
            return self._execute(
                argv,
                capture_stdout=capture,
                input_text=input_text,
                dry_run=self.dry_run,
            )
        except FileNotFoundError as e:
            return CmdResult(argv=argv, returncode=127, stdout="", stderr=str(e))

    def run(
        self,
        argv: Sequence[str],
        *,
        sudo: bool = False,
        capture: bool = False,
        input_text: Optional[str] = None,
    ) -> CmdResult:
        full = self.elevated(argv, sudo)
        attempt = 0

        while True:
            attempt += 1
            result = self._attempt(full, capture=capture, input_text=input_text)
            if result.ok:
                return result

            if self.classifier.is_retryable(result.stderr):
                if attempt < self.max_attempts:
                    delay = attempt * self.backoff_unit
                    logger.warning(
                        "Network/download error (attempt %d/%d), retrying in %.0fs: %s",
                        attempt,
                        self.max_attempts,
                        delay,
                        _fmt_argv(full),
                    )
                    self._sleep(delay)
                    continue
                logger.error("Giving up after %d attempts due to network errors: %s", attempt, _fmt_argv(full))
            else:
                logger.error("Command failed with exit code %d: %s", result.returncode, _fmt_argv(full))

            if self._confirm_retry(f"Command failed: {_fmt_argv(full)}. Retry?"):
                attempt = 0
                continue
            raise CommandAborted(result)

    def probe(self, argv: Sequence[str], *, env: Mapping[str, str] | None = None) -> CmdResult:
        """Single captured, unelevated run for read-only queries."""
        argv_list = list(argv)
        logger.debug("PROBE %s", _fmt_argv(argv_list))
        try:
            p = subprocess.run(
                argv_list,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=dict(os.environ, **(env or {})),
            )
        except FileNotFoundError as e:
            return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))
        return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)
