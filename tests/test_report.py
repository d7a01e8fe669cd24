"""
Tests for report rendering and scam-type categorization.
"""

import os
import sys
from datetime import datetime

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pipeline.report import categorize_scam_type, clipboard_summary, render_report
from scan_test_utils import make_result


class TestCategorize:
    @pytest.mark.parametrize("scam_type,category", [
        ("YouTube Scam", "youtube"),
        ("Spear Phishing", "spear-phishing"),
        ("Ponzi Scheme", "ponzi"),
        ("CEO Impersonation", "impersonation"),
        ("Malicious APK", "malware"),
        ("Ransomware", "ransomware"),
        ("Phishing", "phishing"),
        ("Pig Butchering", "investment"),
        ("Crypto Investment Scam", "investment"),
        ("Tech Support Fraud", "tech-support"),
        ("Sextortion", "sextortion"),
        ("Lottery Win", "giveaway"),
        ("Romance Scam", "romance"),
        ("Fake Online Store", "shopping"),
        ("Job Offer Scam", "job"),
        ("Bank Card Fraud", "banking"),
        ("Benign", "benign"),
        ("N/A", "other"),
        ("", "other"),
        (None, "other"),
    ])
    def test_rules(self, scam_type, category):
        assert categorize_scam_type(scam_type) == category

    def test_first_matching_rule_wins(self):
        # "scheme" (ponzi) is checked before "crypto" (investment)
        assert categorize_scam_type("Crypto Pyramid Scheme") == "ponzi"


class TestRenderReport:
    def test_sections(self):
        result = make_result()
        report = render_report(result, datetime(2024, 5, 1, 12, 30, 0))
        lines = report.split("\n")

        assert lines[0] == "SHADOW SCAN REPORT"
        assert "Date: 2024-05-01 12:30:00" in lines
        assert "VERDICT: High Risk Scam" in lines
        assert "RISK LEVEL: HIGH" in lines
        assert "SCAM PROBABILITY: 92%" in lines
        assert "VIBE SCORE: 8/100" in lines
        assert "Type: Phishing" in lines
        assert "Goal: Click a malicious link" in lines
        assert "Content: SMS Delivery Notice" in lines
        assert result.summary in lines
        assert result.advice in lines
        assert "TRANSCRIPTION" not in lines
        assert lines[-1] == "Generated by Shadow Scan AI"

    def test_transcription_section(self):
        report = render_report(make_result(transcription="Hello, this is your bank."), datetime(2024, 1, 1))
        assert "TRANSCRIPTION\n---------------------\nHello, this is your bank." in report

    def test_missing_context_shows_placeholder(self):
        result = make_result(contentAnalysis=None, thoughtProcess=None)
        report = render_report(result, datetime(2024, 1, 1))
        assert "Content: N/A" in report
        assert "Reasoning: N/A" in report

    def test_fractional_scores(self):
        report = render_report(make_result(scamLikelihood=12.5), datetime(2024, 1, 1))
        assert "SCAM PROBABILITY: 12.5%" in report


class TestClipboard:
    def test_summary(self):
        result = make_result(verdict="Likely Safe", summary="Nothing suspicious.")
        assert clipboard_summary(result) == "Verdict: Likely Safe\nSummary: Nothing suspicious."
