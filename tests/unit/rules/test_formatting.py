"""
Unit tests for rule rendering.
"""

from travel_rules.rules.formatting import (
    format_fine,
    format_rule_detailed,
    format_rule_summary,
    severity_emoji,
    severity_label,
)
from travel_rules.rules.schemas import (
    Language,
    LocalizedContent,
    Rule,
    RuleContent,
    RuleSource,
    Severity,
)


def make_rule(**overrides) -> Rule:
    """Build a fully populated rule."""
    values = dict(
        id="IT_TRANSPORT_001",
        country_code="IT",
        category="transport",
        severity=Severity.HIGH,
        content=RuleContent(
            en=LocalizedContent(
                title="ZTL zones",
                description="Entering a limited traffic zone without a permit is fined.",
                details="Cameras record plates\n\n  Rental cars are not exempt  ",
            ),
            ru=LocalizedContent(
                title="Зоны ZTL",
                description="Въезд без разрешения штрафуется.",
                details="",
            ),
        ),
        fine_min=80,
        fine_max=335,
        fine_currency="EUR",
        sources=[
            RuleSource(type="law", url="https://example.it/a?x=1&y=2", title="Codice"),
            RuleSource(type="link", url="https://example.it/b", title="Comune"),
        ],
    )
    values.update(overrides)
    return Rule(**values)


class TestSeverityDisplay:
    """Tests for severity emoji and labels."""

    def test_emoji(self):
        """Test each level has its colored circle."""
        assert severity_emoji(Severity.CRITICAL) == "🔴"
        assert severity_emoji(Severity.HIGH) == "🟠"
        assert severity_emoji(Severity.MEDIUM) == "🟡"
        assert severity_emoji("low") == "🟢"

    def test_labels(self):
        """Test labels in both languages."""
        assert severity_label(Severity.CRITICAL) == "Critical"
        assert severity_label(Severity.CRITICAL, Language.RU) == "Критично"
        assert severity_label(Severity.LOW, "ru") == "Низкий"


class TestFormatFine:
    """Tests for format_fine."""

    def test_euro_symbol(self):
        """Test EUR is shown as the euro sign."""
        assert format_fine(80, 335, "EUR") == "Fine: €80 - €335"

    def test_russian(self):
        """Test the Russian label."""
        assert format_fine(80, 335, "EUR", Language.RU) == "Штраф: €80 - €335"

    def test_other_currency_code(self):
        """Test unknown currencies keep their code."""
        assert format_fine(1000, 5000.5, "THB") == "Fine: THB1000 - THB5000.5"

    def test_zero_minimum(self):
        """Test a zero minimum is still a fine."""
        assert format_fine(0, 100, "EUR") == "Fine: €0 - €100"

    def test_incomplete(self):
        """Test partial fine data yields None."""
        assert format_fine(None, 100, "EUR") is None
        assert format_fine(10, None, "EUR") is None
        assert format_fine(10, 100, None) is None


class TestFormatRuleDetailed:
    """Tests for format_rule_detailed."""

    def test_english_layout(self):
        """Test the full English message."""
        text = format_rule_detailed(make_rule(), Language.EN)

        assert text.startswith("🟠 <b>ZTL zones</b>\n\n")
        assert "📊 Severity: High\n\n" in text
        assert "📝 Entering a limited traffic zone" in text
        assert "<b>ℹ️ Details:</b>\n• Cameras record plates\n• Rental cars are not exempt\n" in text
        assert "💰 <b>Fine:</b> €80 - €335" in text
        assert "📚 <b>Sources:</b>\n" in text
        assert '1. <a href="https://example.it/a?x=1&amp;y=2">Codice</a>' in text
        assert '2. <a href="https://example.it/b">Comune</a>' in text

    def test_russian_layout(self):
        """Test Russian labels and content."""
        text = format_rule_detailed(make_rule(), Language.RU)

        assert "<b>Зоны ZTL</b>" in text
        assert "📊 Серьезность: Высокий" in text
        assert "💰 <b>Штраф:</b> €80 - €335" in text
        assert "Источники" in text
        # Russian details are empty
        assert "Подробности" not in text

    def test_optional_sections_omitted(self):
        """Test fine and sources are skipped when absent."""
        text = format_rule_detailed(
            make_rule(fine_min=None, fine_max=None, fine_currency=None, sources=[])
        )

        assert "💰" not in text
        assert "📚" not in text

    def test_user_text_escaped(self):
        """Test rule text cannot inject markup."""
        rule = make_rule(
            content=RuleContent(
                en=LocalizedContent(
                    title="<script>alert(1)</script>",
                    description="Smoking < 18 & vaping",
                )
            )
        )

        text = format_rule_detailed(rule)

        assert "&lt;script&gt;" in text
        assert "<script>" not in text
        assert "Smoking &lt; 18 &amp; vaping" in text


def test_format_rule_summary():
    """Test one-line summaries."""
    assert format_rule_summary(make_rule()) == "🟠 <b>ZTL zones</b>"
    assert format_rule_summary(make_rule(), Language.RU) == "🟠 <b>Зоны ZTL</b>"
