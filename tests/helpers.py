"""Test doubles and constants shared by the test suite."""

import asyncio
from typing import Dict, List, Set, Tuple

from models.targets import TargetConfig
from services.deployment import DeployActionFailed, ExecutionResult

STAGING_SECRET = "staging-secret-0123456789"
RELEASE_SECRET = "release-secret-9876543210"
ADMIN_TOKEN = "admin-token-abcdefghijklmnop"


class FakeExecutor:
    """Records deploy calls instead of spawning commands.

    `hold(target)` makes runs of that target block until `release(target)`,
    which is how tests keep a target in the Running state.
    """

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []
        self.fail_versions: Set[str] = set()
        self._gates: Dict[str, asyncio.Event] = {}

    def hold(self, target: str) -> None:
        self._gates[target] = asyncio.Event()

    def release(self, target: str) -> None:
        self._gates.pop(target).set()

    def versions(self, target: str) -> List[str]:
        return [version for name, version in self.calls if name == target]

    async def wait_started(self, target: str, count: int = 1) -> None:
        async def poll():
            while len(self.versions(target)) < count:
                await asyncio.sleep(0.001)
        await asyncio.wait_for(poll(), timeout=2.0)

    async def run(self, target: TargetConfig, version: str) -> ExecutionResult:
        self.calls.append((target.name, version))
        gate = self._gates.get(target.name)
        if gate is not None:
            await gate.wait()
        if version in self.fail_versions:
            raise DeployActionFailed(target.name, version, "exited with code 1",
                                     exit_code=1, output="boom")
        return ExecutionResult(exit_code=0, output=f"deployed {version}", duration=0.0)

