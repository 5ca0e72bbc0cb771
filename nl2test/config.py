import os
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv

from nl2test.compiler.compiler import RenderOptions
from nl2test.data.manager import TestDataManager
from nl2test.executor.executor import ExecutionOptions
from nl2test.resolver.catalog import PageCatalog
from nl2test.resolver.resolver import ResolverTables, StepResolver, Strictness

load_dotenv()

STRICTNESS = os.getenv("NL2TEST_STRICTNESS", "strict")
FRAMEWORK = os.getenv("NL2TEST_FRAMEWORK", "playwright")
LANGUAGE = os.getenv("NL2TEST_LANGUAGE", "typescript")
TIMEOUT = int(os.getenv("NL2TEST_TIMEOUT", "30000"))
BASE_URL = os.getenv("NL2TEST_BASE_URL", "")
HEADLESS = os.getenv("NL2TEST_HEADLESS", "true").lower() not in ("0", "false", "no")
PAGES_DIR = os.getenv("NL2TEST_PAGES_DIR", "pages")


def load_yaml(path: str) -> Dict:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def load_tables(path: Optional[str]) -> ResolverTables:
    r"""Resolver tables, optionally overridden from YAML:

    paths:
      - ['\bcheckout\b', '/checkout']
    buttons:
      - {pattern: '\bpay\b', result: 'Pay now'}
    error_cue: '\b(?:error|declined)\b'
    """
    if not path:
        return ResolverTables()
    return ResolverTables.from_mapping(load_yaml(path))


def build_resolver(
    strictness: Optional[str] = None,
    tables_path: Optional[str] = None,
    data_manager: Optional[TestDataManager] = None,
    pages_dir: Optional[str] = None,
) -> StepResolver:
    catalog = PageCatalog(pages_dir) if pages_dir else None
    return StepResolver(
        tables=load_tables(tables_path),
        strictness=Strictness(strictness or STRICTNESS),
        test_data=data_manager.credentials() if data_manager else None,
        catalog=catalog,
    )


def render_options(framework: Optional[str] = None, language: Optional[str] = None, **kwargs) -> RenderOptions:
    return RenderOptions(
        framework=framework or FRAMEWORK,
        language=language or LANGUAGE,
        timeout=kwargs.pop("timeout", None) or TIMEOUT,
        **kwargs,
    )


def execution_options(**kwargs) -> ExecutionOptions:
    kwargs.setdefault("timeout", TIMEOUT)
    kwargs.setdefault("headless", HEADLESS)
    return ExecutionOptions(**kwargs)
