import glob
import json
import logging
import os
from typing import Dict, List, Optional, Tuple

from nl2test.compiler.locators import css_string
from nl2test.models.dsl import Locator, TestStep

LOGGER = logging.getLogger(__name__)

CONFIDENT_SCORE = 10

# Field kinds and the attribute fragments that identify them
SYNONYMS = {
    "username": ("username", "user", "login", "userid", "user_name"),
    "password": ("password", "pass", "pwd", "secret"),
    "email": ("email", "e-mail", "mail", "email_address"),
    "name": ("name", "full_name", "fullname", "first_name", "last_name"),
    "phone": ("phone", "telephone", "mobile", "cell"),
    "address": ("address", "street", "location"),
    "city": ("city", "town"),
    "zip": ("zip", "postal", "zipcode", "postcode"),
    "country": ("country", "nation"),
    "state": ("state", "province", "region"),
}


def generate_smart_locator(el: Dict) -> Locator:
    """Most stable locator an analyzed element supports."""
    if el.get("data-testid"):
        return Locator.css(f'[data-testid={css_string(el["data-testid"])}]')
    if el.get("id"):
        return Locator(type="id", value=el["id"])
    if el.get("label"):
        return Locator.label(el["label"])
    if el.get("role") and el.get("name") and el.get("role") not in ("input", "textarea"):
        return Locator.by_role(el["role"], el["name"])
    if el.get("placeholder"):
        return Locator.css(f'[placeholder={css_string(el["placeholder"])}]')
    if el.get("class"):
        return Locator.css("." + ".".join(el["class"].split()))
    return Locator.css(f'{el.get("tag", "*")}[name={css_string(el.get("name", ""))}]')


def score_element(target: str, el: Dict) -> int:
    target = target.lower()
    score = 0
    for key, exact, partial in (("name", 10, 5), ("label", 10, 5), ("placeholder", 8, 4)):
        value = (el.get(key) or "").lower()
        if not value:
            continue
        if target == value:
            score += exact
        elif target in value or (value in target and len(value) > 1):
            score += partial
    if target in (el.get("role") or "").lower():
        score += 2
    return score


def match_field(target: str, elements: List[Dict]) -> Tuple[Optional[Dict], int]:
    best, best_score = None, 0
    for el in elements:
        score = score_element(target, el)
        if score > best_score:
            best, best_score = el, score
    return best, best_score


def _searchable(el: Dict) -> str:
    return " ".join((el.get(key) or "").lower() for key in ("name", "id", "label", "placeholder"))


def match_by_keywords(target: str, elements: List[Dict]) -> Optional[Dict]:
    target = target.lower().strip()
    for keywords in SYNONYMS.values():
        if not any(keyword in target for keyword in keywords):
            continue
        for el in elements:
            if el.get("tag") in ("input", "textarea") and any(k in _searchable(el) for k in keywords):
                return el
    return None


class PageCatalog:
    """Element definitions of analyzed pages, loaded from `<pages_dir>/*.json`."""

    def __init__(self, pages_dir: str):
        self.pages: Dict[str, List[Dict]] = {}
        if not os.path.isdir(pages_dir):
            LOGGER.warning("Pages directory '%s' not found", pages_dir)
            return

        json_files = sorted(glob.glob(os.path.join(pages_dir, "*.json")))
        LOGGER.info("Loading %d page definitions from %s", len(json_files), pages_dir)
        for file_path in json_files:
            page_name = os.path.splitext(os.path.basename(file_path))[0]
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                LOGGER.warning("Error loading %s: %s", file_path, e)
                continue
            self.pages[page_name] = data.get("elements", [])

    @property
    def elements(self) -> List[Dict]:
        flat = []
        for elements in self.pages.values():
            flat.extend(elements)
        return flat

    def find(self, target: str, page: Optional[str] = None) -> Optional[Locator]:
        if page and page in self.pages:
            el, score = match_field(target, self.pages[page])
            if score >= CONFIDENT_SCORE:
                return generate_smart_locator(el)
        el, score = match_field(target, self.elements)
        if score >= CONFIDENT_SCORE:
            return generate_smart_locator(el)
        el = match_by_keywords(target, self.elements)
        if el:
            return generate_smart_locator(el)
        LOGGER.debug("No confident match for '%s' (best score %d)", target, score)
        return None

    def refine_step(self, step: TestStep, page: Optional[str] = None) -> TestStep:
        """Swap a fill step's label locator for the analyzed element's own locator.

        Only fill targets are refined; click and assert targets carry names the
        instruction spelled out and are kept verbatim.
        """
        if step.action != "fill" or step.locator is None or step.locator.type != "label":
            return step
        found = self.find(step.locator.value or "", page)
        if found is None:
            return step
        LOGGER.info("Resolved '%s' -> %s", step.locator.value, found.model_dump(exclude_none=True))
        return step.model_copy(update={"locator": found})
