"""Deploy Executor - runs the external deploy command for a target."""

import asyncio
import os
import signal
import tempfile
import time
from pathlib import Path
from typing import BinaryIO, Dict, List, TYPE_CHECKING

from constants import (
    ENV_DEPLOY_TARGET,
    ENV_DEPLOY_VERSION,
    OUTPUT_TAIL_CHARS,
    TARGET_PLACEHOLDER,
    VERSION_PLACEHOLDER,
)
from core.logging import get_logger
from models.targets import TargetConfig
from .exceptions import DeployActionFailed
from .state import ExecutionResult

if TYPE_CHECKING:
    from core.config import Settings

logger = get_logger(__name__)


def write_version_marker(path: Path, version: str) -> None:
    """Atomically replace the marker file contents with `version`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(f"{version}\n", encoding="utf-8")
    os.replace(tmp, path)


def output_tail(raw: bytes) -> str:
    text = raw.decode("utf-8", errors="replace").strip()
    if len(text) > OUTPUT_TAIL_CHARS:
        text = "..." + text[-OUTPUT_TAIL_CHARS:]
    return text


def read_output_tail(log: BinaryIO) -> str:
    """Read the end of a captured output file as text."""
    size = log.seek(0, os.SEEK_END)
    log.seek(max(0, size - OUTPUT_TAIL_CHARS * 4))
    return output_tail(log.read())


class DeployExecutor:
    """Runs one deploy command to completion.

    The command runs in its own session so a timeout or shutdown kills the
    whole process group, including children spawned by shell scripts.
    """

    def __init__(self, settings: "Settings"):
        self._default_timeout = settings.deploy_timeout

    @staticmethod
    def build_command(target: TargetConfig, version: str) -> List[str]:
        """Substitute {target} and {version} placeholders in the argv."""
        return [
            arg.replace(TARGET_PLACEHOLDER, target.name).replace(VERSION_PLACEHOLDER, version)
            for arg in target.command
        ]

    @staticmethod
    def build_env(target: TargetConfig, version: str) -> Dict[str, str]:
        env = os.environ.copy()
        env.update(target.env)
        env[ENV_DEPLOY_TARGET] = target.name
        env[ENV_DEPLOY_VERSION] = version
        return env

    async def run(self, target: TargetConfig, version: str) -> ExecutionResult:
        """Run the deploy command for (target, version).

        The run ends when the command itself exits. Output goes to an unlinked
        temporary file, so background processes the command leaves behind
        (a restarted service, for example) neither hold the run open nor get
        killed.

        Raises:
            DeployActionFailed: On spawn failure, non-zero exit or timeout
        """
        argv = self.build_command(target, version)
        timeout = target.timeout or self._default_timeout
        start_time = time.time()

        with tempfile.TemporaryFile() as log:
            try:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=log,
                    stderr=asyncio.subprocess.STDOUT,
                    cwd=target.working_dir,
                    env=self.build_env(target, version),
                    start_new_session=True,
                )
            except OSError as e:
                raise DeployActionFailed(target.name, version, f"failed to start {argv[0]}: {e}") from e

            logger.debug("Deploy command started", target=target.name, version=version,
                         pid=process.pid, argv=argv)

            try:
                await asyncio.wait_for(process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                await self._kill(process)
                output = await asyncio.to_thread(read_output_tail, log)
                raise DeployActionFailed(target.name, version, f"timed out after {timeout}s",
                                         exit_code=process.returncode, output=output)
            except asyncio.CancelledError:
                await self._kill(process)
                raise

            output = await asyncio.to_thread(read_output_tail, log)

        if process.returncode != 0:
            raise DeployActionFailed(target.name, version,
                                     f"exited with code {process.returncode}",
                                     exit_code=process.returncode, output=output)

        await self._write_marker(target, version)
        return ExecutionResult(exit_code=0, output=output, duration=time.time() - start_time)

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        await process.wait()
        logger.warning("Deploy command killed", pid=process.pid)

    async def _write_marker(self, target: TargetConfig, version: str) -> None:
        """Write the last-deployed version marker; informational only."""
        if not target.version_file:
            return
        try:
            await asyncio.to_thread(write_version_marker, Path(target.version_file), version)
        except OSError as e:
            logger.warning("Failed to write version marker", target=target.name,
                           path=target.version_file, error=str(e))
