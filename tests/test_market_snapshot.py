import unittest
from datetime import datetime, timezone

from services.alpha_vantage.alpha_vantage_service import MoverEntry, Quote
from services.alpha_vantage.market_snapshot import build_summary_text

AS_OF = datetime(2026, 3, 2, 15, 30, 0, tzinfo=timezone.utc)


class BuildSummaryTextTests(unittest.TestCase):
    def setUp(self):
        self.quotes = [
            Quote("SPY", 512.344, 2.1, 0.4117),
            Quote("DIA", 390.0, -1.5, -0.3831),
        ]
        self.gainers = [MoverEntry("ABCD", 1.2345, "45.2%", "100")]
        self.losers = [MoverEntry("WXYZ", 3.5, "-20.1%", "200")]
        self.active = [
            MoverEntry("A1", 10, "1.0%", "5000"),
            MoverEntry("A2", 20, "-2.0%", "4000"),
            MoverEntry("A3", 30, "3.0%", "3000"),
            MoverEntry("A4", 40, "4.0%", "2000"),
        ]

    def _build(self):
        return build_summary_text(self.quotes, self.gainers, self.losers, self.active, as_of=AS_OF)

    def test_sections_and_formatting(self):
        text = self._build()
        self.assertTrue(text.startswith("Current Market Data (2026-03-02 15:30:00 UTC):"))
        self.assertIn("Major Market ETFs:\nSPY: $512.34 (+0.41%)\nDIA: $390.00 (-0.38%)", text)
        self.assertIn("Top 5 Gainers Today:\nABCD: $1.23 (+45.2%)", text)
        self.assertIn("Top 5 Losers Today:\nWXYZ: $3.50 (-20.1%)", text)
        self.assertIn("A1: $10.00 (1.0%) - Vol: 5000", text)

    def test_most_active_limited_to_three(self):
        text = self._build()
        self.assertIn("A3: $30.00", text)
        self.assertNotIn("A4", text)

    def test_deterministic(self):
        self.assertEqual(self._build(), self._build())

    def test_missing_quotes_leave_section_empty(self):
        self.quotes = []
        text = self._build()
        self.assertIn("Major Market ETFs:\n\nTop 5 Gainers Today:", text)

    def test_gainer_with_explicit_sign_not_doubled(self):
        self.gainers = [MoverEntry("ABCD", 1.0, "+3.0%")]
        self.assertIn("ABCD: $1.00 (+3.0%)", self._build())


if __name__ == "__main__":
    unittest.main()
