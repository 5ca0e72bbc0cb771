import logging
import re
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

LOGGER = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")


class TestDataSet(BaseModel):
    name: str
    description: Optional[str] = None
    data: Dict[str, str] = Field(default_factory=dict)
    is_valid: bool = Field(True, description="Whether the set holds valid or negative-test data")

    __test__ = False


class TestDataConfig(BaseModel):
    base_url: str = ""
    datasets: List[TestDataSet] = Field(default_factory=list)
    global_variables: Dict[str, str] = Field(default_factory=dict)

    __test__ = False


class DataValidation(BaseModel):
    is_valid: bool
    missing_fields: List[str] = Field(default_factory=list)


class TestDataManager:
    """Named data sets and global variables substituted into `{{KEY}}` placeholders."""

    __test__ = False

    def __init__(self, config: TestDataConfig):
        self.config = config

    @classmethod
    def from_yaml(cls, path: str) -> "TestDataManager":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: test data must be a mapping")
        return cls(TestDataConfig.model_validate(data))

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def set_base_url(self, url: str):
        self.config.base_url = url

    def add_dataset(self, dataset: TestDataSet):
        self.config.datasets.append(dataset)

    def get_test_data(self, name: str) -> Optional[TestDataSet]:
        lowered = name.lower()
        for dataset in self.config.datasets:
            if dataset.name == name or lowered in (dataset.description or "").lower():
                return dataset
        return None

    def get_valid_data(self) -> Dict[str, str]:
        return next((ds.data for ds in self.config.datasets if ds.is_valid), {})

    def get_invalid_data(self) -> Dict[str, str]:
        return next((ds.data for ds in self.config.datasets if not ds.is_valid), {})

    def replace_placeholders(self, text: str, data_type: str = "valid") -> str:
        data = self.get_valid_data() if data_type == "valid" else self.get_invalid_data()
        # globals first, so a data set cannot shadow them
        for source in (self.config.global_variables, data):
            for key, value in source.items():
                text = text.replace("{{" + key.upper() + "}}", value)
        return text

    def validate_test_data(self, text: str) -> DataValidation:
        known = {}
        known.update(self.get_valid_data())
        known.update(self.get_invalid_data())
        known.update(self.config.global_variables)
        missing = [
            name for name in PLACEHOLDER.findall(text)
            if name.lower() not in known and name.upper() not in known
        ]
        return DataValidation(is_valid=not missing, missing_fields=missing)

    def credentials(self, data_type: str = "valid") -> Dict[str, str]:
        """Field values keyed without their `test_` / `invalid_` prefix."""
        data = self.get_valid_data() if data_type == "valid" else self.get_invalid_data()
        result = {}
        for key, value in data.items():
            field = re.sub(r"^(?:test|invalid)_", "", key.lower())
            if value and not PLACEHOLDER.search(value):
                result[field] = value
        return result


def create_default_manager(base_url: str) -> TestDataManager:
    fields = ("username", "password", "email", "name", "phone", "address", "city", "zip", "country", "state")
    valid = {f"test_{field}": f"your_{field}_here" for field in fields}
    valid["test_email"] = "your_email@example.com"
    invalid = {
        "invalid_username": "invalid_user",
        "invalid_password": "wrong_password",
        "invalid_email": "invalid.email",
        "invalid_phone": "123",
        "invalid_zip": "00000",
    }
    return TestDataManager(TestDataConfig(
        base_url=base_url,
        datasets=[
            TestDataSet(name="valid_user_data", description="Valid user credentials and information", data=valid),
            TestDataSet(
                name="invalid_user_data",
                description="Invalid user credentials for negative testing",
                data=invalid,
                is_valid=False,
            ),
        ],
        global_variables={"base_url": base_url},
    ))


def create_test_data_template(fields: List[str]) -> TestDataConfig:
    valid, invalid = {}, {}
    for field in fields:
        normalized = re.sub(r"[^a-z0-9]", "_", field.lower())
        valid[f"test_{normalized}"] = "{{REPLACE_WITH_YOUR_" + normalized.upper() + "}}"
        invalid[f"invalid_{normalized}"] = "{{REPLACE_WITH_INVALID_" + normalized.upper() + "}}"
    return TestDataConfig(
        base_url="{{REPLACE_WITH_YOUR_BASE_URL}}",
        datasets=[
            TestDataSet(name="valid_data", description="Valid test data", data=valid),
            TestDataSet(name="invalid_data", description="Invalid test data for negative testing", data=invalid, is_valid=False),
        ],
    )


def dump_template(config: TestDataConfig) -> str:
    return yaml.safe_dump(config.model_dump(), sort_keys=False)
