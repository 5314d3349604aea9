"""
API routes for eligibility checking and rule expression evaluation
"""
import logging
from fastapi import APIRouter, HTTPException

from ..models.profile import EligibilityCheckRequest, ExpressionEvaluationRequest
from ..models.result import CategorizedResults, EvaluationOutcome
from ..services.eligibility_service import eligibility_service
from ..services.evaluator import RuleEvaluationError
from ..utils.validators import validate_user_profile_data, validate_rule_packages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


@router.post("/check", response_model=CategorizedResults)
async def check_eligibility(request: EligibilityCheckRequest):
    """
    Check a user profile against the supplied rule packages
    """
    try:
        # Validate user profile data
        validation_errors = validate_user_profile_data(request.profile.to_context())
        validation_errors.extend(validate_rule_packages(request.rule_packages))
        if validation_errors:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid eligibility request: {'; '.join(validation_errors)}"
            )

        return await eligibility_service.check_eligibility(
            profile=request.profile,
            packages=request.rule_packages,
            include_not_qualified=request.include_not_qualified
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid eligibility request: {str(e)}")
    except Exception as e:
        logger.error(f"Error checking eligibility: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to check eligibility"
        )


@router.post("/evaluate", response_model=EvaluationOutcome)
async def evaluate_expression(request: ExpressionEvaluationRequest):
    """
    Evaluate a single rule expression against a context
    """
    options = request.options.model_dump(exclude_none=True) if request.options else None
    try:
        return await eligibility_service.evaluate_expression(
            request.expression,
            request.context,
            options
        )
    except RuleEvaluationError as e:
        raise HTTPException(status_code=422, detail=e.details.model_dump())
    except Exception as e:
        logger.error(f"Error evaluating expression: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to evaluate expression"
        )
