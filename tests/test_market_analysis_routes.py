import unittest

from fastapi.testclient import TestClient

from config.settings import DashboardSettings
from main import app
from schemas.market_analysis import AnalysisResult
from services.market_analysis_service import (
    AnalysisSource,
    MarketAnalysisService,
    get_market_analysis_service,
    runtime_error_result,
)


class _StubService:
    def __init__(self, result: AnalysisResult, source: AnalysisSource):
        self.result = result
        self.source = source

    async def get_analysis_with_source(self):
        return self.result, self.source


class MarketAnalysisRouteTests(unittest.TestCase):
    def tearDown(self):
        app.dependency_overrides.clear()

    def _get(self, service):
        app.dependency_overrides[get_market_analysis_service] = lambda: service
        with TestClient(app) as client:
            return client.get("/api/market-analysis")

    def test_success_omits_error_field(self):
        ok = AnalysisResult(summary="📊 Mixed", opportunities=["a", "b", "c"], riskLevel="Medium")
        resp = self._get(_StubService(ok, AnalysisSource.FRESH))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"summary": "📊 Mixed", "opportunities": ["a", "b", "c"], "riskLevel": "Medium"})
        self.assertEqual(resp.headers["X-Analysis-Source"], "fresh")

    def test_runtime_error_is_still_200(self):
        resp = self._get(_StubService(runtime_error_result("boom"), AnalysisSource.RUNTIME_ERROR))
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["error"], "boom")
        self.assertEqual(body["riskLevel"], "Medium")
        self.assertEqual(resp.headers["X-Analysis-Source"], "runtime_error")

    def test_missing_keys_end_to_end(self):
        svc = MarketAnalysisService(DashboardSettings(alpha_vantage_api_key="", gemini_api_key=""))
        resp = self._get(svc)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["summary"], "⚠️ API keys not configured")
        self.assertIn("ALPHA_VANTAGE_API_KEY", body["error"])
        self.assertEqual(resp.headers["X-Analysis-Source"], "config_error")


if __name__ == "__main__":
    unittest.main()
