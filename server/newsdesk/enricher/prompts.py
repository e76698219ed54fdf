"""
Groq Prompt Templates

Versioned prompts for article enrichment. Bump PROMPT_VERSION whenever the
wording or the requested schema changes.
"""
from __future__ import annotations

PROMPT_VERSION = "v1"

MAX_HEADLINE_CHARS = 80
SUMMARY_WORDS = 60

# ---------------------------------------------------------------------------
# System prompt: sets the role and constrains output format
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = (
    "You are a financial news analysis expert specializing in Indian stock "
    "markets. Provide accurate, neutral analysis focusing on NSE/BSE listed "
    "companies and Indian financial context.\n"
    "\n"
    "Rules:\n"
    "- ONLY output valid JSON. No markdown, no commentary.\n"
    "- Use exactly this schema:\n"
    '  {"headline": "<string>", "summary": "<string>", '
    '"tickers": [<string>], "sectors": [<string>], "tags": [<string>]}\n'
    "- Use NSE symbols for tickers. Leave a list empty rather than guess."
)

# ---------------------------------------------------------------------------
# User prompt, filled per article
# ---------------------------------------------------------------------------


def build_user_prompt(title: str, description: str) -> str:
    """Build the user-turn message for one article."""
    body = description.strip()
    if len(body) > 1500:
        body = body[:1500] + "…"

    return "\n".join(
        [
            "Analyze the following Indian financial news article.",
            "",
            f"Title: {title.strip()}",
            f"Description: {body}",
            "",
            "Provide:",
            f"1. A compelling, concise headline (max {MAX_HEADLINE_CHARS} characters)",
            f"2. A neutral, easy-to-read summary (about {SUMMARY_WORDS} words)",
            '3. Relevant Indian stock tickers, e.g. ["RELIANCE", "TCS", "HDFCBANK"]',
            '4. Relevant sectors, e.g. ["IT Services", "Banking", "Energy", "Pharma"]',
            '5. Key topic tags, e.g. ["Earnings", "Merger", "RBI Policy", "Contract Win"]',
            "",
            "Focus on Indian market context: NSE/BSE stocks, RBI policy, Indian sectors.",
        ]
    )
