"""Runs the hive-dump tool and streams its output into capture files.

Both pipes are drained by dedicated reader threads while the main thread
waits for the child, so a tool that writes more than a pipe buffer's worth
of output never blocks on a full pipe.
"""

from __future__ import annotations

import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional

from hivemeta.core.errors import ToolExecutionError, ToolTimeoutError
from hivemeta.core.models import CaptureTarget
from hivemeta.infra.logging_utils import LOGGER

CHUNK_SIZE = 65536
KILL_GRACE_SECONDS = 5


@dataclass
class InvocationResult:
    exit_code: int
    capture_path: Path
    stdout_bytes: int
    stderr_bytes: int
    elapsed_seconds: float

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class _PipeDrain(threading.Thread):
    def __init__(self, pipe: BinaryIO, sink: BinaryIO, label: str) -> None:
        super().__init__(name=f"hivemeta-drain-{label}", daemon=True)
        self.pipe = pipe
        self.sink = sink
        self.total = 0
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            for chunk in iter(lambda: self.pipe.read1(CHUNK_SIZE), b""):
                self.total += len(chunk)
                if self.error is not None:
                    # keep draining so the child cannot stall on a full pipe
                    continue
                try:
                    _write_all(self.sink, chunk)
                except OSError as exc:
                    self.error = exc
        except (OSError, ValueError) as exc:
            self.error = exc
        finally:
            self.pipe.close()


def _write_all(sink: BinaryIO, data: bytes) -> None:
    # Unbuffered append handles may accept fewer bytes than offered.
    view = memoryview(data)
    while view:
        written = sink.write(view)
        if written is None:
            written = 0
        view = view[written:]


class ToolInvoker:
    def __init__(self, tool_path: Path, error_file: Path, timeout: Optional[float] = None) -> None:
        self.tool_path = tool_path
        self.error_file = error_file
        self.timeout = timeout

    def build_command(self, profile: str, hive_path: Path) -> List[str]:
        return [str(self.tool_path), "-f", profile, "-r", str(hive_path)]

    def run(self, profile: str, hive_path: Path, target: CaptureTarget) -> InvocationResult:
        capture_path = target.path
        try:
            capture_path.parent.mkdir(parents=True, exist_ok=True)
            capture_path.touch(exist_ok=True)
        except OSError as exc:
            raise ToolExecutionError(f"Cannot create capture file {capture_path}: {exc}") from exc

        cmd = self.build_command(profile, hive_path)
        LOGGER.debug("Launching hive-dump tool", extra={"extra_data": {"command": cmd, "capture": str(capture_path)}})
        start = time.monotonic()
        try:
            # buffering=0 so every chunk is a single O_APPEND write
            with open(capture_path, "ab", buffering=0) as out_sink, open(self.error_file, "ab", buffering=0) as err_sink:
                proc = self._spawn(cmd)
                drains = [
                    _PipeDrain(proc.stdout, out_sink, "stdout"),  # type: ignore[arg-type]
                    _PipeDrain(proc.stderr, err_sink, "stderr"),  # type: ignore[arg-type]
                ]
                for drain in drains:
                    drain.start()
                exit_code = self._wait(proc, cmd, drains)
                for drain in drains:
                    drain.join()
        except OSError as exc:
            raise ToolExecutionError(f"Cannot capture output of {cmd[0]}: {exc}") from exc

        for drain in drains:
            if drain.error is not None:
                raise ToolExecutionError(f"Streaming {drain.name} of {cmd[0]} failed: {drain.error}") from drain.error

        return InvocationResult(
            exit_code=exit_code,
            capture_path=capture_path,
            stdout_bytes=drains[0].total,
            stderr_bytes=drains[1].total,
            elapsed_seconds=round(time.monotonic() - start, 3),
        )

    def _spawn(self, cmd: List[str]) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ToolExecutionError(f"Binary not found: {cmd[0]}") from exc
        except PermissionError as exc:
            raise ToolExecutionError(f"Permission denied: {cmd[0]}") from exc
        except OSError as exc:
            raise ToolExecutionError(f"OS error executing {cmd[0]}: {exc}") from exc

    def _wait(self, proc: subprocess.Popen, cmd: List[str], drains: List[_PipeDrain]) -> int:
        if self.timeout is None:
            return proc.wait()
        try:
            return proc.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.wait(timeout=KILL_GRACE_SECONDS)
            for drain in drains:
                drain.join(timeout=KILL_GRACE_SECONDS)
            raise ToolTimeoutError(f"{cmd[0]} did not exit within {self.timeout}s") from exc
