import re
from datetime import date, datetime

import html2text

_POSTAL_CODE_RE = re.compile(r'\b(\d{4})\s?([A-Za-z]{2})\b')
_DUTCH_IBAN_RE = re.compile(r'^NL\d{2}[A-Z]{4}\d{10}$')


def html_to_markdown(html_text: str) -> str:
    """Convert HTML to Markdown"""
    h = html2text.HTML2Text()
    h.ignore_links = False
    h.body_width = 0  # Don't wrap text
    return h.handle(html_text)


def parse_location(raw_location: str) -> tuple[str, str]:
    """
    Split a listing location into (area, postal code).
    Example: "Rotterdam Zuid, 3083AA" -> ("Rotterdam Zuid", "3083AA")
    """
    if not raw_location:
        return '', ''

    match = _POSTAL_CODE_RE.search(raw_location)
    if not match:
        return raw_location.strip(), ''

    postal_code = normalize_postal_code(match.group(0))
    area = (raw_location[:match.start()] + raw_location[match.end():]).strip(' ,')
    return area, postal_code


def normalize_postal_code(value: str) -> str:
    """'3083 aa' -> '3083AA'. Returns '' when the value is not a Dutch postal code."""
    match = _POSTAL_CODE_RE.search(value or '')
    if not match:
        return ''
    return f"{match.group(1)}{match.group(2).upper()}"


def normalize_iban(iban: str) -> str:
    return (iban or '').replace(' ', '').upper()


def iban_checksum_valid(iban: str) -> bool:
    """ISO 13616 mod-97 check on a normalized IBAN."""
    value = normalize_iban(iban)
    if len(value) < 5 or not value.isalnum():
        return False
    rearranged = value[4:] + value[:4]
    digits = ''.join(str(int(ch, 36)) for ch in rearranged)
    return int(digits) % 97 == 1


def is_valid_dutch_iban(iban: str) -> bool:
    value = normalize_iban(iban)
    return bool(_DUTCH_IBAN_RE.match(value)) and iban_checksum_valid(value)


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or '').strip().upper() in ('TRUE', '1', 'YES', 'JA')


def parse_float(value, default: float = 0.0) -> float:
    """Parse numbers from storage or user input; accepts a Dutch decimal comma."""
    if value is None or value == '':
        return default
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace('€', '').replace(' ', '')
    if ',' in text and '.' in text:
        text = text.replace('.', '').replace(',', '.')
    elif ',' in text:
        text = text.replace(',', '.')
    try:
        return float(text)
    except ValueError:
        return default


def parse_int(value, default: int = 0) -> int:
    return int(parse_float(value, float(default)))


def parse_date(value) -> date | None:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def parse_datetime(value) -> datetime | None:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


def split_list(value: str) -> list[str]:
    """Stored list columns are ';'-joined."""
    return [part.strip() for part in (value or '').split(';') if part.strip()]


def join_list(items) -> str:
    return ';'.join(str(item).strip() for item in items or [] if str(item).strip())
