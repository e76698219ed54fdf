"""
Tests for newsdesk.enricher.fallback

Pure unit tests, no I/O.
"""
import pytest

from newsdesk.enricher.fallback import (
    PLACEHOLDER_HEADLINE,
    context_category,
    extract_sectors,
    extract_tickers,
    fallback_enrichment,
    synthesize_summary,
)

LONG_TEXT = " ".join(["Reliance Industries expanded its retail footprint across India."] * 8)
MEDIUM_TEXT = (
    "Tata Consultancy Services signed a multi-year agreement with a UK lender "
    "covering cloud migration and cybersecurity work."
)


# ── Tickers ──────────────────────────────────────────────────────────────────

class TestExtractTickers:
    def test_company_names(self):
        text = "Infosys and HDFC Bank lead gains while Tata Steel slips"
        assert extract_tickers(text) == ("INFY", "HDFCBANK", "TATASTEEL")

    def test_bare_symbols_case_insensitive(self):
        assert extract_tickers("Shares of tcs and Wipro rose") == ("TCS", "WIPRO")

    def test_short_names(self):
        assert extract_tickers("SBI and L&T announce results") == ("SBIN", "LT")

    def test_no_partial_word_matches(self):
        # "LT" inside "RESULT", "ITC" inside "SWITCH"
        assert extract_tickers("RESULT of the SWITCH announced") == ()

    def test_deduplicated(self):
        assert extract_tickers("Reliance Industries: RELIANCE shares, reliance retail") == ("RELIANCE",)

    def test_capped(self):
        text = "TCS INFY WIPRO HCLTECH TECHM ITC SBIN AXISBANK MARUTI"
        result = extract_tickers(text)
        assert len(result) == 6
        assert result == ("TCS", "INFY", "WIPRO", "HCLTECH", "TECHM", "ITC")

    def test_custom_cap(self):
        assert extract_tickers("TCS INFY WIPRO", cap=2) == ("TCS", "INFY")
        assert extract_tickers("TCS INFY WIPRO", cap=0) == ()

    def test_empty(self):
        assert extract_tickers("") == ()


# ── Sectors ──────────────────────────────────────────────────────────────────

class TestExtractSectors:
    def test_keywords(self):
        text = "Steel makers and private banks gain as crude oil falls"
        assert extract_sectors(text) == ("Banking", "Energy", "Metals")

    def test_short_keywords_need_word_boundaries(self):
        # "ev" in "revenue", "gas" in "vegas"
        assert extract_sectors("Revenue up in Vegas") == ()
        assert extract_sectors("EV sales double") == ("Automotive",)

    def test_no_cap(self):
        text = "bank oil pharma vehicle fmcg telecom steel software"
        assert len(extract_sectors(text)) == 8


# ── Summary ──────────────────────────────────────────────────────────────────

class TestSynthesizeSummary:
    def test_long_description_truncated_at_word_boundary(self):
        summary = synthesize_summary("Reliance expands", LONG_TEXT)

        assert summary.endswith("...")
        assert len(summary) <= 300
        body = summary[:-3]
        assert LONG_TEXT.startswith(body)
        assert LONG_TEXT[len(body)] in " ."

    def test_medium_description_gets_context_sentence(self):
        summary = synthesize_summary("TCS bags UK contract", MEDIUM_TEXT)

        assert summary.startswith(MEDIUM_TEXT)
        assert summary.endswith("The move could reshape the company's business outlook.")

    def test_short_description_references_title(self):
        summary = synthesize_summary("Nifty ends flat", "Nifty ends flat")
        assert "Nifty ends flat" in summary
        assert len(summary) > len("Nifty ends flat")

    def test_short_distinct_description_is_kept(self):
        summary = synthesize_summary("Rupee gains", "Rupee up 10 paise")
        assert summary.startswith("Rupee up 10 paise.")
        assert "Rupee gains" in summary

    def test_empty_inputs_still_produce_text(self):
        assert synthesize_summary("", "")

    @pytest.mark.parametrize(
        "title, category",
        [
            ("LIC IPO subscribed 3 times", "ipo"),
            ("Infosys Q3 results beat estimates", "earnings"),
            ("Adani Ports acquires Australian terminal", "corporate"),
            ("RBI keeps repo rate unchanged", "policy"),
            ("Nifty rallies 200 points", "performance"),
            ("Monsoon arrives early in Kerala", "general"),
        ],
    )
    def test_context_category(self, title, category):
        assert context_category(title) == category


# ── fallback_enrichment() ────────────────────────────────────────────────────

class TestFallbackEnrichment:
    def test_result_shape(self):
        result = fallback_enrichment("TCS bags UK contract", MEDIUM_TEXT)

        assert result.headline == "TCS bags UK contract"
        assert result.tickers == ("TCS",)
        assert "IT Services" in result.sectors
        assert result.tags == ()
        assert result.is_ai is False

    def test_blank_title_gets_placeholder(self):
        result = fallback_enrichment("  ", "")
        assert result.headline == PLACEHOLDER_HEADLINE
        assert result.summary

    def test_markup_is_cleaned(self):
        result = fallback_enrichment("<b>Sensex</b> &amp; Nifty", "<p>Markets up</p>")
        assert result.headline == "Sensex & Nifty"
        assert "<" not in result.summary

    @pytest.mark.parametrize(
        "title, description",
        [
            ("", ""),
            ("TCS INFY WIPRO HCLTECH TECHM ITC SBIN", "AXISBANK MARUTI TITAN LT"),
            ("Short", "x"),
            ("Long", LONG_TEXT),
        ],
    )
    def test_never_empty_and_capped(self, title, description):
        result = fallback_enrichment(title, description)
        assert result.headline
        assert result.summary
        assert len(result.tickers) <= 6
