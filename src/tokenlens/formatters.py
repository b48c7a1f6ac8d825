import math

_MS_PER_MINUTE = 60 * 1000
_MS_PER_HOUR = 60 * _MS_PER_MINUTE


def _finite(value: "float | int | None") -> "bool":
    return value is not None and math.isfinite(value)


def round_half_up(value: "float") -> "int":
    """
    rounds .5 away from zero for positive values, unlike the
    builtin round() which rounds half to even.
    """
    return math.floor(value + 0.5)


def format_number(num: "float | int | None") -> "str":
    """
    compact token count: 1.2M, 7.5K or the plain grouped value.
    """
    if not _finite(num):
        return "0"
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    if float(num).is_integer():
        return f"{int(num):,}"
    return f"{num:,.3f}".rstrip("0").rstrip(".")


def format_currency(amount: "float | None", digits: "int" = 2) -> "str":
    if not _finite(amount):
        amount = 0.0
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.{digits}f}"


def format_percentage(percentage: "float | None", digits: "int" = 1) -> "str":
    if not _finite(percentage):
        return "N/A"
    return f"{percentage:.{digits}f}%"


def format_duration_ms(milliseconds: "float | None") -> "str":
    """
    renders a millisecond span as "3h 12m", or "12m" under an hour.
    """
    if not _finite(milliseconds) or milliseconds < 0:
        return "0m"
    hours = int(milliseconds // _MS_PER_HOUR)
    minutes = int((milliseconds % _MS_PER_HOUR) // _MS_PER_MINUTE)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_trend_percent(percent: "float | None") -> "str":
    if not _finite(percent):
        return "0%"
    text = f"{percent:g}%"
    return f"+{text}" if percent > 0 else text


def progress_bar(
    percentage: "float | None",
    width: "int" = 20,
    filled: "str" = "█",
    empty: "str" = "░",
) -> "str":
    """
    text progress bar as used by the terminal readout.
    """
    if not _finite(percentage):
        percentage = 0.0
    percentage = max(0.0, min(100.0, percentage))
    count = round_half_up(percentage / 100 * width)
    return filled * count + empty * (width - count)


def pluralize(count: "int", unit: "str") -> "str":
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"
