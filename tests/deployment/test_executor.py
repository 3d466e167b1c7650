"""Deploy executor against real subprocesses."""

import os
import signal
import sys
import time

import pytest

from models.targets import TargetConfig
from services.deployment import DeployActionFailed, DeployExecutor


def python_target(code: str, *args: str, **kwargs) -> TargetConfig:
    return TargetConfig(
        name=kwargs.pop("name", "staging"),
        secret="s3cret",
        command=[sys.executable, "-c", code, *args],
        **kwargs,
    )


@pytest.fixture
def executor(settings) -> DeployExecutor:
    return DeployExecutor(settings)


def test_build_command_substitutes_placeholders():
    target = TargetConfig(name="release", secret="x",
                          command=["deploy.sh", "--env={target}", "{version}", "{other}"])

    argv = DeployExecutor.build_command(target, "v1.2.3")

    assert argv == ["deploy.sh", "--env=release", "v1.2.3", "{other}"]


def test_build_env_exports_target_and_version(monkeypatch):
    monkeypatch.setenv("INHERITED", "yes")
    target = TargetConfig(name="release", secret="x", command=["deploy.sh"],
                          env={"CHANNEL": "stable"})

    env = DeployExecutor.build_env(target, "v2")

    assert env["DEPLOY_TARGET"] == "release"
    assert env["DEPLOY_VERSION"] == "v2"
    assert env["CHANNEL"] == "stable"
    assert env["INHERITED"] == "yes"


async def test_successful_run_captures_output(executor):
    target = python_target(
        "import os, sys; print(os.environ['DEPLOY_TARGET'], os.environ['DEPLOY_VERSION'], sys.argv[1])",
        "{version}",
    )

    result = await executor.run(target, "main")

    assert result.exit_code == 0
    assert result.output == "staging main main"
    assert result.duration >= 0


async def test_stderr_is_captured_with_stdout(executor):
    target = python_target("import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)")

    result = await executor.run(target, "v1")

    assert "out" in result.output
    assert "err" in result.output


async def test_runs_in_working_dir(executor, tmp_path):
    target = python_target("import os; print(os.getcwd())", working_dir=str(tmp_path))

    result = await executor.run(target, "v1")

    assert result.output == str(tmp_path.resolve())


async def test_non_zero_exit_raises(executor):
    target = python_target("import sys; print('migration failed'); sys.exit(3)")

    with pytest.raises(DeployActionFailed) as exc_info:
        await executor.run(target, "v1")

    err = exc_info.value
    assert err.target == "staging"
    assert err.version == "v1"
    assert err.exit_code == 3
    assert err.cause == "exited with code 3"
    assert "migration failed" in err.output


async def test_missing_command_raises(executor, tmp_path):
    target = TargetConfig(name="staging", secret="x", command=[str(tmp_path / "nope.sh")])

    with pytest.raises(DeployActionFailed) as exc_info:
        await executor.run(target, "v1")

    assert "failed to start" in exc_info.value.cause


async def test_timeout_kills_command(executor):
    target = python_target("import time; time.sleep(30)", timeout=1.0)

    start = time.monotonic()
    with pytest.raises(DeployActionFailed) as exc_info:
        await executor.run(target, "v1")

    assert "timed out" in exc_info.value.cause
    assert time.monotonic() - start < 10


async def test_version_marker_written_on_success(executor, tmp_path):
    marker = tmp_path / "state" / "staging.version"
    target = python_target("pass", version_file=str(marker))

    await executor.run(target, "v9")

    assert marker.read_text() == "v9\n"
    assert not (marker.parent / ".staging.version.tmp").exists()


async def test_version_marker_untouched_on_failure(executor, tmp_path):
    marker = tmp_path / "staging.version"
    marker.write_text("v1\n")
    target = python_target("import sys; sys.exit(1)", version_file=str(marker))

    with pytest.raises(DeployActionFailed):
        await executor.run(target, "v2")

    assert marker.read_text() == "v1\n"


async def test_output_tail_is_truncated(executor):
    target = python_target("print('x' * 10000)")

    result = await executor.run(target, "v1")

    assert result.output.startswith("...")
    assert len(result.output) == 4003


async def test_background_child_does_not_hold_run_open(executor):
    # The command restarts a long-lived service and exits 0 straight away
    target = python_target(
        "import subprocess, sys; "
        "p = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)']); "
        "print('restarted', p.pid)",
        timeout=5.0,
    )

    start = time.monotonic()
    result = await executor.run(target, "v1")

    assert time.monotonic() - start < 5.0
    assert result.exit_code == 0
    word, pid = result.output.split()
    assert word == "restarted"
    try:
        # Still alive: a successful run never kills the process group
        os.kill(int(pid), 0)
    finally:
        os.kill(int(pid), signal.SIGKILL)
