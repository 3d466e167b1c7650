"""Target registry - static target configuration loaded at startup."""

import yaml
from pathlib import Path
from typing import Dict, Iterator, List, Optional, TYPE_CHECKING
from pydantic import ValidationError

from core.logging import get_logger
from models.targets import TargetConfig, TargetsFile
from services.deployment.exceptions import TargetConfigError

if TYPE_CHECKING:
    from core.config import Settings

logger = get_logger(__name__)


class TargetRegistry:
    """Immutable name -> TargetConfig mapping."""

    def __init__(self, targets: List[TargetConfig]):
        self._targets: Dict[str, TargetConfig] = {t.name: t for t in targets}

    @classmethod
    def from_file(cls, path: str) -> "TargetRegistry":
        """Load and validate the targets YAML file.

        Raises:
            TargetConfigError: If the file is missing, unparsable or invalid
        """
        file_path = Path(path)
        try:
            raw = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise TargetConfigError(f"Cannot read targets file {file_path}: {e}") from e
        except yaml.YAMLError as e:
            raise TargetConfigError(f"Invalid YAML in {file_path}: {e}") from e

        try:
            parsed = TargetsFile.model_validate(raw or {})
        except ValidationError as e:
            raise TargetConfigError(f"Invalid targets file {file_path}: {e}") from e

        logger.info("Targets loaded", path=str(file_path),
                    targets=[t.name for t in parsed.targets])
        return cls(parsed.targets)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TargetRegistry":
        return cls.from_file(settings.targets_file)

    def get(self, name: str) -> Optional[TargetConfig]:
        return self._targets.get(name)

    def names(self) -> List[str]:
        return list(self._targets.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __iter__(self) -> Iterator[TargetConfig]:
        return iter(self._targets.values())

    def __len__(self) -> int:
        return len(self._targets)
