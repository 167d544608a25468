"""
Rendering of rules as Telegram HTML messages.
"""

import html
from typing import Optional

from travel_rules.rules.schemas import Language, Rule, Severity

SEVERITY_DISPLAY = {
    Severity.CRITICAL: ("🔴", "Критично", "Critical"),
    Severity.HIGH: ("🟠", "Высокий", "High"),
    Severity.MEDIUM: ("🟡", "Средний", "Medium"),
    Severity.LOW: ("🟢", "Низкий", "Low"),
}

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£"}


def _labels(language: Language) -> dict:
    if Language(language) is Language.RU:
        return {
            "severity": "Серьезность",
            "details": "ℹ️ Подробности:",
            "fine": "Штраф",
            "sources": "Источники",
        }
    return {
        "severity": "Severity",
        "details": "ℹ️ Details:",
        "fine": "Fine",
        "sources": "Sources",
    }


def severity_emoji(severity: Severity) -> str:
    """Colored circle for a severity level."""
    return SEVERITY_DISPLAY[Severity(severity)][0]


def severity_label(severity: Severity, language: Language = Language.EN) -> str:
    """Severity name in the given language."""
    _, ru, en = SEVERITY_DISPLAY[Severity(severity)]
    return ru if Language(language) is Language.RU else en


def _amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def format_fine(
    fine_min: Optional[float],
    fine_max: Optional[float],
    fine_currency: Optional[str],
    language: Language = Language.EN,
) -> Optional[str]:
    """
    Format a fine range, e.g. "Fine: €80 - €335".

    Returns:
        The formatted range, or None unless min, max and currency are all set
    """
    if fine_min is None or fine_max is None or not fine_currency:
        return None

    symbol = CURRENCY_SYMBOLS.get(fine_currency, fine_currency)
    label = _labels(language)["fine"]
    return f"{label}: {symbol}{_amount(fine_min)} - {symbol}{_amount(fine_max)}"


def format_rule_detailed(rule: Rule, language: Language = Language.EN) -> str:
    """
    Format a rule for the detail view.

    Layout: title, severity, description, details as a bullet list, fine and
    numbered source links. Rule text is HTML-escaped.

    Args:
        rule: Rule to render
        language: Language to render in

    Returns:
        Telegram HTML message
    """
    content = rule.content.for_language(language)
    labels = _labels(language)
    escape = html.escape

    text = f"{severity_emoji(rule.severity)} <b>{escape(content.title)}</b>\n\n"
    text += f"📊 {labels['severity']}: {severity_label(rule.severity, language)}\n\n"
    text += f"📝 {escape(content.description)}\n\n"

    detail_lines = [line.strip() for line in content.details.split("\n") if line.strip()]
    if detail_lines:
        text += f"<b>{labels['details']}</b>\n"
        for line in detail_lines:
            text += f"• {escape(line)}\n"
        text += "\n"

    fine = format_fine(rule.fine_min, rule.fine_max, rule.fine_currency, language)
    if fine:
        label, _, amount = fine.partition(": ")
        text += f"💰 <b>{label}:</b> {amount}\n\n"

    if rule.sources:
        text += f"📚 <b>{labels['sources']}:</b>\n"
        for index, source in enumerate(rule.sources, start=1):
            url = escape(source.url, quote=True)
            text += f'{index}. <a href="{url}">{escape(source.title)}</a>\n'

    return text


def format_rule_summary(rule: Rule, language: Language = Language.EN) -> str:
    """One line for result lists: severity emoji and bold title."""
    title = rule.content.for_language(language).title
    return f"{severity_emoji(rule.severity)} <b>{html.escape(title)}</b>"
