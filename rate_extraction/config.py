"""
Extraction settings.

Settings are described by ConfigSetting entries (text value plus a data type),
layered from built-in defaults, an optional JSON file and environment
variables named RATE_EXTRACTOR_<KEY>, then materialized into an
ExtractionConfig used by the extraction pipeline.
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Dict, Any, Union, Literal, Mapping

from .exceptions import ConfigurationError


ENV_PREFIX = 'RATE_EXTRACTOR_'

logger = logging.getLogger(__name__)


@dataclass
class ConfigSetting:
    """
    Represents a configuration setting.

    Attributes:
        key: Configuration setting name
        value: Configuration value stored as text
        data_type: Type hint for value parsing ('string', 'number', 'boolean', 'json')
        description: Human-readable description of the setting
        category: Grouping for related settings
    """
    key: str
    value: str
    data_type: Literal['string', 'number', 'boolean', 'json'] = 'string'
    description: Optional[str] = None
    category: str = 'general'

    def __post_init__(self):
        """Validate configuration data after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Validate the setting.

        Raises:
            ConfigurationError: If validation fails
        """
        if not self.key or not isinstance(self.key, str) or not self.key.strip():
            raise ConfigurationError("Configuration key must be a non-empty string")

        if not isinstance(self.value, str):
            raise ConfigurationError(f"Configuration value for '{self.key}' must be a string")

        if self.data_type not in ('string', 'number', 'boolean', 'json'):
            raise ConfigurationError("Data type must be one of: string, number, boolean, json")

        if self.value:
            try:
                self.get_typed_value()
            except (ValueError, json.JSONDecodeError) as e:
                raise ConfigurationError(
                    f"Value '{self.value}' is not valid for '{self.key}' ({self.data_type}): {e}"
                ) from e

    def get_typed_value(self) -> Union[str, float, bool, Dict, list]:
        """
        Get the configuration value converted to its proper type.

        Returns:
            The value converted according to data_type

        Raises:
            ValueError: If value cannot be converted to the specified type
        """
        if self.data_type == 'string':
            return self.value
        elif self.data_type == 'number':
            return float(self.value)
        elif self.data_type == 'boolean':
            if self.value.lower() in ('true', '1', 'yes', 'on'):
                return True
            elif self.value.lower() in ('false', '0', 'no', 'off'):
                return False
            else:
                raise ValueError(f"Cannot convert '{self.value}' to boolean")
        elif self.data_type == 'json':
            return json.loads(self.value)
        else:
            raise ValueError(f"Unknown data type: {self.data_type}")

    def with_value(self, value: Any) -> 'ConfigSetting':
        """Return a copy of this setting holding a new value."""
        if isinstance(value, bool):
            text = 'true' if value else 'false'
        elif self.data_type == 'json' and not isinstance(value, str):
            text = json.dumps(value)
        else:
            text = str(value)
        return ConfigSetting(
            key=self.key,
            value=text,
            data_type=self.data_type,
            description=self.description,
            category=self.category
        )


DEFAULT_SETTINGS = {
    'line_tolerance': ConfigSetting(
        key='line_tolerance',
        value='2',
        data_type='number',
        description='Vertical distance within which tokens share a text line',
        category='geometry'
    ),
    'amount_tolerance_narrow': ConfigSetting(
        key='amount_tolerance_narrow',
        value='6',
        data_type='number',
        description='First-pass vertical band for amounts right of a date',
        category='geometry'
    ),
    'amount_tolerance_wide': ConfigSetting(
        key='amount_tolerance_wide',
        value='12',
        data_type='number',
        description='Fallback vertical band for amounts right of a date',
        category='geometry'
    ),
    'date_window_max': ConfigSetting(
        key='date_window_max',
        value='6',
        data_type='number',
        description='Maximum adjacent tokens joined to rebuild a date',
        category='matching'
    ),
    'amount_window_max': ConfigSetting(
        key='amount_window_max',
        value='5',
        data_type='number',
        description='Maximum adjacent tokens joined to rebuild an amount',
        category='matching'
    ),
    'expected_installments': ConfigSetting(
        key='expected_installments',
        value='10',
        data_type='number',
        description='Installments expected in a complete schedule',
        category='schedule'
    ),
    'min_expected': ConfigSetting(
        key='min_expected',
        value='10',
        data_type='number',
        description='Rows below which the text layer result triggers OCR',
        category='schedule'
    ),
    'repair_enabled': ConfigSetting(
        key='repair_enabled',
        value='true',
        data_type='boolean',
        description='Infer a single missing installment when one row is lost',
        category='schedule'
    ),
    'ocr_enabled': ConfigSetting(
        key='ocr_enabled',
        value='true',
        data_type='boolean',
        description='Fall back to OCR when the text layer is missing or incomplete',
        category='ocr'
    ),
    'ocr_language': ConfigSetting(
        key='ocr_language',
        value='ita+eng',
        data_type='string',
        description='Tesseract language codes',
        category='ocr'
    ),
    'render_scale': ConfigSetting(
        key='render_scale',
        value='1.5',
        data_type='number',
        description='Page render scale used before OCR',
        category='ocr'
    ),
    'jpeg_quality': ConfigSetting(
        key='jpeg_quality',
        value='80',
        data_type='number',
        description='JPEG quality for rasterized pages',
        category='ocr'
    ),
    'max_ocr_pages': ConfigSetting(
        key='max_ocr_pages',
        value='0',
        data_type='number',
        description='Maximum pages to OCR (0 means all pages)',
        category='ocr'
    ),
    'probe_pages': ConfigSetting(
        key='probe_pages',
        value='2',
        data_type='number',
        description='Pages inspected when probing for a text layer',
        category='probe'
    ),
    'probe_min_chars': ConfigSetting(
        key='probe_min_chars',
        value='10',
        data_type='number',
        description='Characters a page must exceed to count as having text',
        category='probe'
    ),
    'normalize_endpoint': ConfigSetting(
        key='normalize_endpoint',
        value='',
        data_type='string',
        description='URL of the remote OCR normalization service (empty disables it)',
        category='normalize'
    ),
    'normalize_timeout': ConfigSetting(
        key='normalize_timeout',
        value='120',
        data_type='number',
        description='Timeout in seconds for the normalization request',
        category='normalize'
    ),
}


@dataclass
class ExtractionConfig:
    """Typed view of the extraction settings."""
    line_tolerance: float = 2.0
    amount_tolerance_narrow: float = 6.0
    amount_tolerance_wide: float = 12.0
    date_window_max: int = 6
    amount_window_max: int = 5
    expected_installments: int = 10
    min_expected: int = 10
    repair_enabled: bool = True
    ocr_enabled: bool = True
    ocr_language: str = 'ita+eng'
    render_scale: float = 1.5
    jpeg_quality: int = 80
    max_ocr_pages: int = 0
    probe_pages: int = 2
    probe_min_chars: int = 10
    normalize_endpoint: str = ''
    normalize_timeout: float = 120.0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigurationError: If a value is out of range
        """
        for name in ('line_tolerance', 'amount_tolerance_narrow', 'amount_tolerance_wide',
                     'render_scale', 'normalize_timeout'):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        for name in ('date_window_max', 'amount_window_max', 'expected_installments',
                     'probe_pages'):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1")
        if self.amount_tolerance_wide < self.amount_tolerance_narrow:
            raise ConfigurationError("amount_tolerance_wide must not be smaller than amount_tolerance_narrow")
        if not 1 <= self.jpeg_quality <= 100:
            raise ConfigurationError("jpeg_quality must be between 1 and 100")
        if self.max_ocr_pages < 0 or self.probe_min_chars < 0 or self.min_expected < 0:
            raise ConfigurationError("max_ocr_pages, probe_min_chars and min_expected must not be negative")

    @classmethod
    def from_settings(cls, settings: Mapping[str, ConfigSetting]) -> 'ExtractionConfig':
        """Build a config from a mapping of settings, casting numbers to field types."""
        values = {}
        for f in fields(cls):
            setting = settings.get(f.name)
            if setting is None:
                continue
            try:
                typed = setting.get_typed_value()
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {f.name}: {e}") from e
            if f.type in (int, 'int'):
                if float(typed) != int(float(typed)):
                    raise ConfigurationError(f"{f.name} must be a whole number, got {setting.value}")
                typed = int(float(typed))
            elif f.type in (float, 'float'):
                typed = float(typed)
            values[f.name] = typed
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_config(config_file: Optional[Union[str, Path]] = None,
                env: Optional[Mapping[str, str]] = None) -> ExtractionConfig:
    """
    Load extraction settings.

    Values are layered: defaults, then the JSON object in ``config_file``,
    then ``RATE_EXTRACTOR_<KEY>`` environment variables.

    Args:
        config_file: Optional path to a JSON file of key/value pairs
        env: Environment mapping (defaults to os.environ)

    Returns:
        ExtractionConfig

    Raises:
        ConfigurationError: If the file is unreadable or a value is invalid
    """
    settings = dict(DEFAULT_SETTINGS)
    env = os.environ if env is None else env

    if config_file:
        path = Path(config_file)
        try:
            with open(path, 'r', encoding='utf-8') as fh:
                overrides = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
        if not isinstance(overrides, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
        for key, value in overrides.items():
            if key not in settings:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            settings[key] = settings[key].with_value(value)
        logger.debug(f"Loaded {len(overrides)} settings from {path}")

    for key, setting in list(settings.items()):
        env_value = env.get(f"{ENV_PREFIX}{key.upper()}")
        if env_value is not None:
            settings[key] = setting.with_value(env_value)
            logger.debug(f"Setting {key} overridden from environment")

    return ExtractionConfig.from_settings(settings)
