import json
import logging
import urllib.request
from typing import Dict, List
from urllib.error import URLError

from nl2test.providers.base import InstructionProvider, normalize_case

LOGGER = logging.getLogger(__name__)


class APIProvider(InstructionProvider):
    def __init__(self, api_url: str, timeout: float = 30.0):
        self.api_url = api_url
        self.timeout = timeout

    def get_cases(self) -> List[Dict[str, str]]:
        LOGGER.info("Fetching cases from %s", self.api_url)
        try:
            with urllib.request.urlopen(self.api_url, timeout=self.timeout) as response:
                if response.status != 200:
                    LOGGER.warning("HTTP Error %s: %s", response.status, self.api_url)
                    return []
                data = json.loads(response.read().decode("utf-8"))
        except (URLError, ValueError) as e:
            LOGGER.warning("Error fetching from API: %s", e)
            return []

        if not isinstance(data, list):
            LOGGER.warning("API response is not a list of cases")
            return []
        cases = [normalize_case(item, i) for i, item in enumerate(data) if isinstance(item, dict)]
        return [case for case in cases if case]
