"""
Utils package: table schemas, Dutch parsing and formatting, debouncing, storage setup.
Re-exports all public names for `from utils import ...`.
"""

from .schema import JOB_COLUMNS, TABLES

from .parsing import (
    html_to_markdown,
    iban_checksum_valid,
    is_valid_dutch_iban,
    join_list,
    normalize_iban,
    normalize_postal_code,
    parse_bool,
    parse_date,
    parse_datetime,
    parse_float,
    parse_int,
    parse_location,
    split_list,
)

from .formatting import (
    DUTCH_MONTHS,
    format_distance,
    format_dutch_currency,
    format_dutch_date,
    format_dutch_number,
    format_hourly_rate,
    format_percentage,
    format_short_date,
    format_time,
    time_ago,
)

from .debounce import Debouncer

from .storage import (
    DEFAULT_DB_PATH,
    get_existing_job_keys,
    setup_database,
)

__all__ = [
    'JOB_COLUMNS',
    'TABLES',
    'html_to_markdown',
    'iban_checksum_valid',
    'is_valid_dutch_iban',
    'join_list',
    'normalize_iban',
    'normalize_postal_code',
    'parse_bool',
    'parse_date',
    'parse_datetime',
    'parse_float',
    'parse_int',
    'parse_location',
    'split_list',
    'DUTCH_MONTHS',
    'format_distance',
    'format_dutch_currency',
    'format_dutch_date',
    'format_dutch_number',
    'format_hourly_rate',
    'format_percentage',
    'format_short_date',
    'format_time',
    'time_ago',
    'Debouncer',
    'DEFAULT_DB_PATH',
    'get_existing_job_keys',
    'setup_database',
]
