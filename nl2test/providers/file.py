import logging
import os
from typing import Dict, List

import yaml

from nl2test.providers.base import InstructionProvider, normalize_case

LOGGER = logging.getLogger(__name__)


class FileProvider(InstructionProvider):
    """Cases from a YAML list (strings or mappings) or a text file with one prompt per line."""

    def __init__(self, path: str):
        self.path = path

    def get_cases(self) -> List[Dict[str, str]]:
        ext = os.path.splitext(self.path)[1].lower()
        with open(self.path, "r", encoding="utf-8") as f:
            if ext in (".yaml", ".yml"):
                data = yaml.safe_load(f) or []
                if not isinstance(data, list):
                    raise ValueError(f"{self.path}: YAML file must contain a list of entries")
            else:
                data = [line.strip() for line in f if line.strip() and not line.startswith("#")]

        cases = []
        for index, item in enumerate(data, start=1):
            case = normalize_case(item if isinstance(item, dict) else {"prompt": item}, index)
            if case:
                cases.append(case)
            else:
                LOGGER.warning("Skipping entry %d of %s: no prompt", index, self.path)
        return cases
