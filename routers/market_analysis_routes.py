# routers/market_analysis_routes.py
from fastapi import APIRouter, Depends, Response

from schemas.market_analysis import AnalysisResult
from services.market_analysis_service import MarketAnalysisService, get_market_analysis_service

router = APIRouter()

ANALYSIS_SOURCE_HEADER = "X-Analysis-Source"


@router.get(
    "/market-analysis",
    response_model=AnalysisResult,
    response_model_exclude_none=True,
)
async def get_market_analysis(
    response: Response,
    service: MarketAnalysisService = Depends(get_market_analysis_service),
):
    # Always 200: callers check `error`, not the status code.
    result, source = await service.get_analysis_with_source()
    response.headers[ANALYSIS_SOURCE_HEADER] = source.value
    return result
