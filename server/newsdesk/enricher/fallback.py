"""
Rule-Based Enrichment

Deterministic enrichment used whenever the model is unavailable, in
cooldown, or returns something unusable. Everything here is pure and never
raises: tickers come from a company-name dictionary plus bare NSE symbols,
sectors from a keyword dictionary, and the summary is synthesized from the
cleaned description.
"""
from __future__ import annotations

import re

from newsdesk.feeds.sanitizer import clean
from newsdesk.models.news import EnrichmentResult

DEFAULT_TICKER_CAP = 6
PLACEHOLDER_HEADLINE = "Market Update"

LONG_SUMMARY_CHARS = 300
SHORT_SUMMARY_CHARS = 80
ELLIPSIS = "..."

# ---------------------------------------------------------------------------
# Ticker dictionaries
# ---------------------------------------------------------------------------

NIFTY_TICKERS: tuple[str, ...] = (
    "RELIANCE", "TCS", "HDFCBANK", "INFY", "HINDUNILVR", "ICICIBANK", "SBIN",
    "BHARTIARTL", "ITC", "KOTAKBANK", "LT", "ASIANPAINT", "AXISBANK", "MARUTI",
    "SUNPHARMA", "TITAN", "ULTRACEMCO", "WIPRO", "NESTLEIND", "POWERGRID",
    "BAJFINANCE", "HCLTECH", "DRREDDY", "TATAMOTORS", "ADANIPORTS",
    "INDUSINDBK", "BAJAJFINSV", "TECHM", "JSWSTEEL", "TATASTEEL",
)

# Matched as plain substrings of the lower-cased text.
COMPANY_NAMES: dict[str, str] = {
    "reliance industries": "RELIANCE",
    "reliance": "RELIANCE",
    "tata consultancy": "TCS",
    "hdfc bank": "HDFCBANK",
    "infosys": "INFY",
    "hindustan unilever": "HINDUNILVR",
    "icici bank": "ICICIBANK",
    "state bank of india": "SBIN",
    "bharti airtel": "BHARTIARTL",
    "airtel": "BHARTIARTL",
    "kotak mahindra": "KOTAKBANK",
    "larsen & toubro": "LT",
    "larsen and toubro": "LT",
    "asian paints": "ASIANPAINT",
    "axis bank": "AXISBANK",
    "maruti": "MARUTI",
    "sun pharma": "SUNPHARMA",
    "titan company": "TITAN",
    "ultratech": "ULTRACEMCO",
    "wipro": "WIPRO",
    "nestle india": "NESTLEIND",
    "power grid": "POWERGRID",
    "bajaj finance": "BAJFINANCE",
    "hcl tech": "HCLTECH",
    "dr reddy": "DRREDDY",
    "dr. reddy": "DRREDDY",
    "tata motors": "TATAMOTORS",
    "adani ports": "ADANIPORTS",
    "indusind": "INDUSINDBK",
    "bajaj finserv": "BAJAJFINSV",
    "tech mahindra": "TECHM",
    "jsw steel": "JSWSTEEL",
    "tata steel": "TATASTEEL",
}

# Common short forms, matched as whole words like the bare symbols.
SHORT_NAMES: dict[str, str] = {
    "SBI": "SBIN",
    "L&T": "LT",
    "HUL": "HINDUNILVR",
    "RIL": "RELIANCE",
}

_SYMBOL_PATTERN = re.compile(
    r"(?<![\w&])("
    + "|".join(re.escape(s) for s in sorted((*NIFTY_TICKERS, *SHORT_NAMES), key=len, reverse=True))
    + r")(?![\w&])",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Sector dictionary
# ---------------------------------------------------------------------------

SECTOR_KEYWORDS: dict[str, tuple[str, ...]] = {
    "IT Services": ("software", "technology", "it services", "infotech", "tech ", "digital", "cloud"),
    "Banking": ("bank", "financial services", "lender", "hdfc", "icici", "sbi"),
    "Energy": ("oil", "gas", "refining", "refinery", "petrochemical", "energy", "power"),
    "Pharma": ("pharma", "drug", "medicine", "fda", "healthcare"),
    "Automotive": ("auto", "car ", "cars", "vehicle", "motor", "ev", "electric vehicle"),
    "FMCG": ("consumer goods", "fmcg", "retail", "consumer"),
    "Telecom": ("telecom", "mobile", "5g", "spectrum", "communication"),
    "Metals": ("steel", "aluminium", "aluminum", "metal", "mining", "copper"),
}

# Keywords this short only count as whole words ("ev" inside "revenue" does not).
_SHORT_KEYWORD_CHARS = 3


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    if len(keyword) <= _SHORT_KEYWORD_CHARS:
        return re.compile(rf"\b{re.escape(keyword)}\b")
    return re.compile(re.escape(keyword))


_SECTOR_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    sector: tuple(_keyword_pattern(k) for k in keywords)
    for sector, keywords in SECTOR_KEYWORDS.items()
}

# ---------------------------------------------------------------------------
# Summary continuations, checked in order against the title
# ---------------------------------------------------------------------------

_CONTEXT_RULES: tuple[tuple[str, re.Pattern[str], str], ...] = (
    (
        "ipo",
        re.compile(r"\b(ipo|listing|public offer|subscribed|subscription|grey market)\b", re.I),
        "The offering is being closely watched by retail and institutional investors.",
    ),
    (
        "earnings",
        re.compile(r"\b(results?|earnings|profit|revenue|quarter|q[1-4]|dividend)\b", re.I),
        "Investors will weigh the numbers against street estimates.",
    ),
    (
        "corporate",
        re.compile(r"\b(acquisition|acquires?|merger|deal|stake|contract|order|partnership|buyback)\b", re.I),
        "The move could reshape the company's business outlook.",
    ),
    (
        "policy",
        re.compile(r"\b(rbi|sebi|policy|repo|government|budget|regulation|tax|gst)\b", re.I),
        "Market participants are assessing the implications for the wider economy.",
    ),
    (
        "performance",
        re.compile(r"\b(shares?|stocks?|rally|rallies|surges?|gains?|falls?|drops?|jumps?|slips?|nifty|sensex)\b", re.I),
        "Traders are watching whether the move holds in coming sessions.",
    ),
)
_GENERAL_CONTEXT = "The development is being tracked for its impact on Indian markets."


def extract_tickers(text: str, cap: int = DEFAULT_TICKER_CAP) -> tuple[str, ...]:
    """
    Find NSE tickers mentioned in text, ordered by first mention.

    Company names match as case-insensitive substrings, bare symbols and
    short names as whole words. At most `cap` tickers are returned.
    """
    if not text or cap <= 0:
        return ()

    lowered = text.lower()
    first_seen: dict[str, int] = {}

    def note(ticker: str, pos: int) -> None:
        if ticker not in first_seen or pos < first_seen[ticker]:
            first_seen[ticker] = pos

    for name, ticker in COMPANY_NAMES.items():
        pos = lowered.find(name)
        if pos >= 0:
            note(ticker, pos)

    for match in _SYMBOL_PATTERN.finditer(text):
        symbol = match.group(1).upper()
        note(SHORT_NAMES.get(symbol, symbol), match.start())

    ordered = sorted(first_seen, key=lambda t: first_seen[t])
    return tuple(ordered[:cap])


def extract_sectors(text: str) -> tuple[str, ...]:
    """Sectors whose keywords appear in text, in dictionary order."""
    if not text:
        return ()
    lowered = text.lower()
    return tuple(
        sector
        for sector, patterns in _SECTOR_PATTERNS.items()
        if any(p.search(lowered) for p in patterns)
    )


def context_category(title: str) -> str:
    """Classify a title into ipo/earnings/corporate/policy/performance/general."""
    for category, pattern, _ in _CONTEXT_RULES:
        if pattern.search(title or ""):
            return category
    return "general"


def _context_sentence(title: str) -> str:
    for _, pattern, sentence in _CONTEXT_RULES:
        if pattern.search(title or ""):
            return sentence
    return _GENERAL_CONTEXT


def _truncate_at_word(text: str, limit: int) -> str:
    cut = text[: limit - len(ELLIPSIS)]
    space = cut.rfind(" ")
    if space > 0:
        cut = cut[:space]
    return cut.rstrip(" ,;:-") + ELLIPSIS


def synthesize_summary(title: str, description: str) -> str:
    """
    Build a summary from the cleaned description.

    - longer than 300 chars: truncated at a word boundary with "..."
    - 80 to 300 chars: kept verbatim plus a sentence chosen from the title
    - shorter: a generic sentence referencing the title
    """
    title = clean(title)
    text = clean(description)

    if len(text) > LONG_SUMMARY_CHARS:
        return _truncate_at_word(text, LONG_SUMMARY_CHARS)

    if len(text) >= SHORT_SUMMARY_CHARS:
        if text[-1] not in ".!?":
            text += "."
        return f"{text} {_context_sentence(title)}"

    subject = title or text
    if not subject:
        return "Latest update from Indian financial markets."
    if text and text != title:
        lead = text if text[-1] in ".!?" else text + "."
        return f"{lead} Read the full story for more on {subject}."
    return f"Latest update on {subject}. {_context_sentence(title)}"


def fallback_enrichment(
    title: str,
    description: str,
    *,
    ticker_cap: int = DEFAULT_TICKER_CAP,
) -> EnrichmentResult:
    """Enrich an item without the model. Never raises, never returns empty text."""
    headline = clean(title) or PLACEHOLDER_HEADLINE
    combined = f"{title} {description}"
    return EnrichmentResult(
        headline=headline,
        summary=synthesize_summary(title, description),
        tickers=extract_tickers(clean(combined), ticker_cap),
        sectors=extract_sectors(clean(combined)),
        tags=(),
        is_ai=False,
    )
