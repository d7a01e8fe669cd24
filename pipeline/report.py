"""
Plain-text rendering of analysis results: the exported report, the
short clipboard summary, and the scam-type category used to label
history entries.
"""

from datetime import datetime
from typing import Optional

from pipeline.schemas import AnalysisResult

# Ordered: the first rule whose keyword appears in the scam type wins.
_CATEGORY_RULES = (
    ("youtube", ("youtube", "video platform")),
    ("spear-phishing", ("spear", "target")),
    ("ponzi", ("ponzi", "pyramid", "scheme")),
    ("impersonation", ("impersonat", "fake profile", "identity")),
    ("malware", ("malware", "virus", "trojan", "apk")),
    ("ransomware", ("ransom", "lock")),
    ("phishing", ("phish",)),
    ("investment", ("invest", "crypto", "pig", "money")),
    ("tech-support", ("tech", "support")),
    ("sextortion", ("sex", "blackmail")),
    ("giveaway", ("giveaway", "lottery", "free")),
    ("romance", ("romance", "love", "date")),
    ("shopping", ("shop", "store", "purchase")),
    ("job", ("job", "employ", "work")),
    ("banking", ("bank", "card")),
    ("benign", ("safe", "benign")),
)


def categorize_scam_type(scam_type: Optional[str]) -> str:
    lowered = (scam_type or "").lower()
    for category, keywords in _CATEGORY_RULES:
        if any(k in lowered for k in keywords):
            return category
    return "other"


def clipboard_summary(result: AnalysisResult) -> str:
    return f"Verdict: {result.verdict}\nSummary: {result.summary}"


def _score(value: float) -> str:
    return f"{value:g}"


def render_report(result: AnalysisResult, generated_at: Optional[datetime] = None) -> str:
    generated_at = generated_at or datetime.now()
    rule = "---------------------"
    lines = [
        "SHADOW SCAN REPORT",
        "=====================",
        f"Date: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        f"VERDICT: {result.verdict}",
        f"RISK LEVEL: {result.risk_level.value}",
        f"SCAM PROBABILITY: {_score(result.scam_likelihood)}%",
        f"VIBE SCORE: {_score(result.vibe_score)}/100",
        "",
        "THREAT INTELLIGENCE",
        rule,
        f"Type: {result.scam_type or 'N/A'}",
        f"Goal: {result.sender_intent or 'N/A'}",
        "",
        "ANALYSIS CONTEXT",
        rule,
        f"Content: {result.content_analysis or 'N/A'}",
        f"Reasoning: {result.thought_process or 'N/A'}",
    ]
    if result.transcription:
        lines += ["", "TRANSCRIPTION", rule, result.transcription]
    lines += [
        "",
        rule,
        "EXECUTIVE SUMMARY",
        rule,
        result.summary,
        "",
        rule,
        "ADVICE",
        rule,
        result.advice,
        "",
        "=====================",
        "Generated by Shadow Scan AI",
    ]
    return "\n".join(lines)
