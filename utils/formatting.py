"""Dutch display formatting: currency, percentages, dates, distances, relative time."""

from datetime import date, datetime

DUTCH_MONTHS = [
    'januari', 'februari', 'maart', 'april', 'mei', 'juni',
    'juli', 'augustus', 'september', 'oktober', 'november', 'december'
]

DUTCH_WEEKDAYS = ['maandag', 'dinsdag', 'woensdag', 'donderdag', 'vrijdag', 'zaterdag', 'zondag']


def _swap_separators(text: str) -> str:
    """'1,234.56' -> '1.234,56'"""
    return text.replace(',', '_').replace('.', ',').replace('_', '.')


def format_dutch_number(value: float, decimals: int = 2) -> str:
    return _swap_separators(f"{value:,.{decimals}f}")


def format_dutch_currency(amount: float | None) -> str:
    """
    Format an amount the way nl_NL shows euros.
    Example: 1234.5 -> "€ 1.234,50", -12 -> "€ -12,00"
    """
    amount = float(amount or 0.0)
    formatted = format_dutch_number(abs(amount), 2)
    sign = '-' if amount < 0 and round(abs(amount), 2) != 0 else ''
    return f"€ {sign}{formatted}"


def format_hourly_rate(rate: float) -> str:
    return f"{format_dutch_currency(rate)}/uur"


def format_percentage(rate: float, decimals: int = 0) -> str:
    """Format a fraction as a percentage: 0.21 -> "21%", 0.3693 (decimals=2) -> "36,93%"."""
    value = rate * 100
    if decimals == 0:
        return f"{round(value):.0f}%"
    return f"{format_dutch_number(value, decimals)}%"


def format_distance(km: float) -> str:
    return f"{format_dutch_number(km, 1)} km"


def format_dutch_date(value: date | datetime | None) -> str:
    """date(2024, 3, 5) -> "5 maart 2024"."""
    if value is None:
        return ''
    return f"{value.day} {DUTCH_MONTHS[value.month - 1]} {value.year}"


def format_short_date(value: date | datetime | None) -> str:
    """date(2024, 3, 5) -> "05-03-2024"."""
    if value is None:
        return ''
    return value.strftime('%d-%m-%Y')


def format_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def time_ago(moment: datetime, now: datetime) -> str:
    """Dutch relative time label for notification lists."""
    seconds = (now - moment).total_seconds()
    if seconds < 60:
        return 'Zojuist'
    minutes = int(seconds // 60)
    if minutes < 60:
        return f"{minutes} minuut geleden" if minutes == 1 else f"{minutes} minuten geleden"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} uur geleden"
    days = hours // 24
    if days < 7:
        return f"{days} dag geleden" if days == 1 else f"{days} dagen geleden"
    return format_dutch_date(moment)
