"""journalctl subprocess: yields one JSON line per journal entry."""

import logging
import subprocess

logger = logging.getLogger(__name__)

BASE_ARGS = ("--all", "--output=json")


class JournalReadError(Exception):
    pass


class JournalReader:
    """Runs journalctl and iterates over its stdout.

    journalctl's stderr is inherited, so its diagnostics reach the
    operator unmodified.
    """

    def __init__(self, journal_args=(), binary: str = "journalctl"):
        self._command = [binary, *BASE_ARGS, *journal_args]
        self._proc: subprocess.Popen | None = None

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def start(self):
        """Spawn journalctl. Raises OSError if it cannot be executed."""
        self._proc = subprocess.Popen(
            self._command,
            stdout=subprocess.PIPE,
            stderr=None,
            encoding="utf-8",
            errors="replace",
        )
        logger.info("Started %s (pid %d)", " ".join(self._command), self._proc.pid)

    def __iter__(self):
        if self._proc is None:
            self.start()
        try:
            for line in self._proc.stdout:
                line = line.rstrip("\n")
                if line:
                    yield line
        except (OSError, ValueError) as exc:
            self.kill()
            raise JournalReadError(f"reading from journalctl failed: {exc}") from exc

    def terminate(self):
        """Ask journalctl to exit; the iterator then ends at EOF."""
        if self._proc is not None and self._proc.poll() is None:
            self._proc.terminate()

    def kill(self):
        if self._proc is not None and self._proc.poll() is None:
            self._proc.kill()
            self._proc.wait()

    def wait(self) -> int:
        """Wait for journalctl to exit and return its status."""
        if self._proc is None:
            return 0
        if self._proc.stdout:
            self._proc.stdout.close()
        return self._proc.wait()
