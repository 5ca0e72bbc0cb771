from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class InstructionProvider(ABC):
    @abstractmethod
    def get_cases(self) -> List[Dict[str, str]]:
        """
        Returns a list of plain-English test cases.
        Each case has at least 'prompt' and optionally 'id' and 'base_url'.
        Example: [{"id": "1", "prompt": "login with username Sam and password sammy"}]
        """
        pass


def normalize_case(item: Dict, index: int) -> Optional[Dict[str, str]]:
    prompt = item.get("prompt") or item.get("description") or item.get("title")
    if not prompt:
        return None
    case = {"id": str(item.get("id", index)), "prompt": str(prompt)}
    base_url = item.get("base_url") or item.get("baseUrl")
    if base_url:
        case["base_url"] = str(base_url)
    return case


class CLIProvider(InstructionProvider):
    def __init__(self, prompt: str, base_url: Optional[str] = None):
        self.prompt = prompt
        self.base_url = base_url

    def get_cases(self) -> List[Dict[str, str]]:
        if not self.prompt:
            return []
        return [normalize_case({"id": "cli", "prompt": self.prompt, "base_url": self.base_url}, 0)]
