import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page, sync_playwright

LOGGER = logging.getLogger(__name__)

INPUTS = "input:not([type='hidden']):not([type='submit']):not([type='button'])"


class PageAnalyzer:
    """Collects the interactive elements of a loaded page into catalog JSON."""

    def __init__(self, page: Page):
        self.page = page

    def analyze(self) -> Dict[str, Any]:
        return {
            "url": self.page.url,
            "title": self.page.title(),
            "elements": self.extract_elements(),
        }

    def extract_elements(self) -> List[Dict[str, Any]]:
        elements = []
        for btn in self.page.get_by_role("button").all():
            if self._is_valid_element(btn):
                elements.append(self._extract_element_data(btn, "button"))

        for inp in self.page.locator(INPUTS).all():
            if self._is_valid_element(inp):
                data = self._extract_element_data(inp, "input")
                data["type"] = inp.get_attribute("type") or "text"
                elements.append(data)

        for link in self.page.locator("a[href]").all():
            if self._is_valid_element(link) and (link.text_content() or "").strip():
                elements.append(self._extract_element_data(link, "link"))

        for area in self.page.locator("textarea").all():
            if self._is_valid_element(area):
                elements.append(self._extract_element_data(area, "textarea"))

        return deduplicate(elements)

    def _is_valid_element(self, locator: Locator) -> bool:
        try:
            if locator.get_attribute("data-crawler-ignore"):
                return False
            return locator.is_visible() and locator.is_enabled()
        except PlaywrightError as e:
            LOGGER.debug("Skipping element: %s", e)
            return False

    def _label_for(self, locator: Locator, id_attr: str) -> str:
        label = locator.get_attribute("aria-label") or ""
        if not label and id_attr:
            found = self.page.locator(f"label[for='{id_attr}']")
            if found.count():
                label = found.first.text_content() or ""
        return " ".join(label.split())

    def _extract_element_data(self, locator: Locator, tag_type: str) -> Dict[str, Any]:
        text = (locator.text_content() or "").strip()[:50]
        testid = locator.get_attribute("data-testid") or ""
        name_attr = locator.get_attribute("name") or ""
        id_attr = locator.get_attribute("id") or ""
        placeholder = locator.get_attribute("placeholder") or ""
        label = self._label_for(locator, id_attr) if tag_type in ("input", "textarea") else ""

        return {
            "id": id_attr,
            "name": text or label or placeholder or name_attr or id_attr or testid or "Unnamed Element",
            "tag": tag_type,
            "text": text,
            "label": label,
            "role": locator.get_attribute("role") or tag_type,
            "data-testid": testid,
            "class": locator.get_attribute("class") or "",
            "placeholder": placeholder,
        }


def deduplicate(elements: List[Dict]) -> List[Dict]:
    seen = set()
    unique = []
    for el in elements:
        sig = (el["tag"], el["name"], el["data-testid"], el["role"])
        if sig not in seen:
            seen.add(sig)
            unique.append(el)
    return unique


def page_name(url: str, custom_name: Optional[str] = None) -> str:
    if custom_name:
        return custom_name
    path = url.split("://", 1)[-1].split("?", 1)[0].rstrip("/")
    tail = path.split("/")[-1] if "/" in path else "index"
    return re.sub(r"[^A-Za-z0-9_-]", "_", tail) or "index"


def analyze_urls(urls: List, output_dir: str = "pages", headless: bool = True, timeout: int = 30000) -> List[str]:
    """Visit each url and write `<output_dir>/<page>.json`; returns the written paths."""
    os.makedirs(output_dir, exist_ok=True)
    written = []
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=headless)
        page = browser.new_page()
        page.set_default_timeout(timeout)
        for item in urls:
            url, name = (item, None) if isinstance(item, str) else (item.get("url"), item.get("name"))
            try:
                LOGGER.info("Analyzing %s", url)
                page.goto(url)
                page.wait_for_load_state("networkidle")
                analysis = PageAnalyzer(page).analyze()
            except PlaywrightError as e:
                LOGGER.warning("Error processing %s: %s", url, e)
                continue
            path = os.path.join(output_dir, f"{page_name(url, name)}.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump(analysis, f, indent=2, ensure_ascii=False)
            written.append(path)
        browser.close()
    return written
