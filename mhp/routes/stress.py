"""
Server-side stress scoring for one day over the submitted day window.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from mhp.auth.verify import proxy_secret_dependency
from mhp.errors import InsightsValidationError
from mhp.features.stress import compute_stress_for_day, index_days, stress_color_for_score
from mhp.middleware.rate_limit_dependencies import rate_limit_stress
from mhp.models.api.insights_request import StressRequest
from mhp.models.api.insights_response import StressResponse, StressRowResponse, StressSummary
from mhp.routes.insights import describe_validation_error, read_json_body

router = APIRouter()


@router.post(
    "/stress",
    response_model=StressResponse,
    dependencies=[Depends(rate_limit_stress), Depends(proxy_secret_dependency)],
)
async def score_stress(request: Request):
    body = await read_json_body(request)
    if not isinstance(body, dict):
        raise InsightsValidationError("Request body must be a JSON object")

    try:
        payload = StressRequest.model_validate(body)
    except ValidationError as e:
        raise InsightsValidationError(describe_validation_error(e)) from e

    result = compute_stress_for_day(index_days(payload.days), payload.dayKey)

    return StressResponse(
        stress=StressSummary(
            dayKey=result.day_key,
            score=result.score,
            label=result.label,
            color=stress_color_for_score(result.score),
            rows=[StressRowResponse(label=row.label, value=row.value) for row in result.rows],
            missingValues=result.missing_values,
            missingBaselines=result.missing_baselines,
        )
    )
