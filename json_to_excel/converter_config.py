#!/usr/bin/env python3
"""
Converter settings.

Values come from a ``.env`` file (one directory above this script, then this
directory, then the working directory) or exported environment variables:

    JSON_TO_EXCEL_DATA_FIELD=data
    JSON_TO_EXCEL_WORKERS=4
    JSON_TO_EXCEL_CLEAN_DIR=CleanJson
    JSON_TO_EXCEL_SHEET_NAME=JSON Data

Command line flags override anything read here.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

from record_resolver import DEFAULT_DATA_FIELD

DEFAULT_WORKERS = 4
DEFAULT_CLEAN_DIR = 'CleanJson'
DEFAULT_SHEET_NAME = 'JSON Data'

# Excel rejects these in sheet titles
_INVALID_SHEET_CHARS = set('[]:*?/\\')


class ConfigError(ValueError):
    """Invalid converter setting."""
    pass


@dataclass(frozen=True)
class ConverterConfig:
    data_field: str = DEFAULT_DATA_FIELD
    workers: int = DEFAULT_WORKERS
    clean_dir_name: str = DEFAULT_CLEAN_DIR
    sheet_name: str = DEFAULT_SHEET_NAME

    @staticmethod
    def load_from_env() -> 'ConverterConfig':
        here = Path(__file__).resolve()
        for candidate in (here.parent.parent / '.env', here.parent / '.env'):
            if candidate.exists():
                load_dotenv(candidate)
                break
        else:
            load_dotenv()

        workers = os.getenv('JSON_TO_EXCEL_WORKERS', str(DEFAULT_WORKERS))
        try:
            workers = int(workers)
        except ValueError:
            raise ConfigError(f'JSON_TO_EXCEL_WORKERS must be an integer, got "{workers}"')

        return ConverterConfig(
            data_field=os.getenv('JSON_TO_EXCEL_DATA_FIELD', DEFAULT_DATA_FIELD),
            workers=workers,
            clean_dir_name=os.getenv('JSON_TO_EXCEL_CLEAN_DIR', DEFAULT_CLEAN_DIR),
            sheet_name=os.getenv('JSON_TO_EXCEL_SHEET_NAME', DEFAULT_SHEET_NAME),
        ).validated()

    def with_overrides(self, **overrides) -> 'ConverterConfig':
        """Copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validated()

    def validated(self) -> 'ConverterConfig':
        if not self.data_field.strip():
            raise ConfigError('The data field name cannot be empty')
        if self.workers < 1:
            raise ConfigError(f'Workers must be at least 1, got {self.workers}')
        if not self.clean_dir_name.strip():
            raise ConfigError('The CleanJson directory name cannot be empty')
        if not self.sheet_name or len(self.sheet_name) > 31:
            raise ConfigError('Sheet name must have between 1 and 31 characters')
        if _INVALID_SHEET_CHARS & set(self.sheet_name):
            raise ConfigError(f'Sheet name contains invalid characters: {self.sheet_name}')
        return self
