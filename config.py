import copy
import os

import yaml

# Configuration file name
CONFIG_FILE = 'securyflex_settings.yaml'

# Default settings. Tax values are the 2024 Dutch figures.
DEFAULT_SETTINGS = {
    'search': {
        'debounce_ms': 300,
        'cache_minutes': 5,
        'default_max_distance_km': 50.0,
        'default_hourly_rate_range': [0.0, 100.0],
        'job_sources': ['static'],
        'job_feed_url': '',
    },
    'profile': {
        'auto_save_seconds': 2.0,
    },
    'tax': {
        'tax_year': 2024,
        'brackets': [
            {'min_income': 0, 'max_income': 37149, 'rate': 0.3693},
            {'min_income': 37150, 'max_income': 75518, 'rate': 0.3693},
            {'min_income': 75519, 'max_income': None, 'rate': 0.495},
        ],
        'zelfstandigenaftrek': 6070.0,
        'startersaftrek': 2123.0,
        'startup_years': 3,
        'aftrek_phaseout_threshold': 60000.0,
        'aftrek_phaseout_rate': 0.05,
        'mkb_winstvrijstelling_rate': 0.14,
        'minimum_wage_hourly': 12.83,
        'vakantiegeld_rate': 0.0833,
        'pension_contribution_rate': 0.15,
    },
    'btw': {
        'kor_threshold': 20000.0,
        'standard_rate': 0.21,
        'reduced_rate': 0.09,
        'company_btw_number': 'NL123456789B01',
        'company_kvk_number': '12345678',
        'company_name': 'SecuryFlex B.V.',
        'company_address': 'Coolsingel 1, 3011AD Rotterdam',
    },
    'certificates': {
        'alert_schedule_days': [90, 60, 30, 7, 1],
        'renewal_courses': {},
    },
    'notifications': {
        'quiet_hours_start': '22:00',
        'quiet_hours_end': '08:00',
        'max_job_alert_distance_km': 25.0,
    },
    'payments': {
        'sepa_max_amount': 15000.0,
        'bulk_max_total': 100000.0,
        'bulk_max_count': 500,
        'ideal_min_amount': 0.01,
        'ideal_max_amount': 50000.0,
        'request_timeout_sec': 15,
    },
    'muted_companies': [],
    'preferred_job_types': [],
}


def _deduplicate_list(items):
    """Remove duplicates from a list while preserving order."""
    seen = set()
    result = []
    for item in items:
        item_lower = str(item).lower().strip()
        if item_lower and item_lower not in seen:
            seen.add(item_lower)
            result.append(item)
    return result


def _deduplicate_settings(settings):
    """Remove duplicates from the free-form list settings."""
    for field in ('muted_companies', 'preferred_job_types'):
        if field in settings and isinstance(settings[field], list):
            settings[field] = _deduplicate_list(settings[field])

    search = settings.get('search')
    if isinstance(search, dict) and isinstance(search.get('job_sources'), list):
        search['job_sources'] = _deduplicate_list(search['job_sources'])

    return settings


def _merge_defaults(settings, defaults):
    """Fill in missing keys (one level of nesting) from defaults."""
    for key, value in defaults.items():
        if key not in settings:
            settings[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(settings[key], dict):
            for sub_key, sub_value in value.items():
                if sub_key not in settings[key]:
                    settings[key][sub_key] = copy.deepcopy(sub_value)
    return settings


def _get_app_settings(path=None):
    """Returns the application settings from YAML merged over the defaults."""
    settings_path = path or CONFIG_FILE
    default_settings = copy.deepcopy(DEFAULT_SETTINGS)

    if os.path.exists(settings_path):
        try:
            with open(settings_path, 'r', encoding='utf-8') as f:
                content = f.read()
            settings = yaml.safe_load(content)
            if settings and isinstance(settings, dict):
                settings = _merge_defaults(settings, default_settings)
                return _deduplicate_settings(settings)
        except yaml.YAMLError as e:
            print(f"Error parsing {settings_path} (invalid YAML): {e}")
            return default_settings
        except OSError as e:
            print(f"Error reading {settings_path}: {e}")
            return default_settings

    return default_settings


def _save_app_settings(settings, path=None):
    """Saves the application settings to YAML."""
    settings = _deduplicate_settings(settings)

    settings_path = path or CONFIG_FILE
    with open(settings_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(settings, f, sort_keys=False, default_flow_style=False, allow_unicode=True)
