"""Personalization 도메인 라우터

앱 백엔드가 호출하는 추천/피드백 API 엔드포인트입니다.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from app.core.dependencies import verify_internal_api_key
from app.core.schemas import APIResponse, create_response
from app.domains.personalization.dependencies import get_orchestrator
from app.domains.personalization.schemas import (
    FeedbackAcceptedResponse,
    InterestAnalytics,
    PersonalizationDirective,
    SuggestionListResponse,
    SuggestionRequest,
)
from app.domains.personalization.service import SuggestionOrchestrator

router = APIRouter(dependencies=[Depends(verify_internal_api_key)])


@router.post(
    "/suggestions",
    response_model=APIResponse[SuggestionListResponse],
)
async def request_suggestions(
    request: SuggestionRequest,
    orchestrator: SuggestionOrchestrator = Depends(get_orchestrator),
):
    """개인화 추천 요청

    백엔드 실패 시에도 200과 빈 목록을 반환합니다.
    """
    suggestions = await orchestrator.request_suggestions(
        user_id=request.user_id,
        context=request.context,
        timeout=request.timeout_seconds,
    )
    return create_response(
        data=SuggestionListResponse(
            user_id=request.user_id,
            suggestions=suggestions,
            personalized=any(s.applied_bonus > 0 for s in suggestions),
        ),
        message="추천 목록을 생성했습니다.",
    )


@router.post(
    "/feedback",
    response_model=APIResponse[FeedbackAcceptedResponse],
    status_code=202,
)
async def record_feedback(
    payload: dict[str, Any] = Body(...),
    orchestrator: SuggestionOrchestrator = Depends(get_orchestrator),
):
    """피드백 접수 (반영은 백그라운드 처리)"""
    event = orchestrator.submit_feedback(payload)
    return create_response(
        data=FeedbackAcceptedResponse(
            user_id=event.user_id,
            action=event.action,
            content_type=event.content_type,
        ),
        message="피드백이 접수되었습니다.",
    )


@router.get(
    "/users/{user_id}/context",
    response_model=APIResponse[PersonalizationDirective],
)
async def get_personalization_context(
    user_id: str,
    orchestrator: SuggestionOrchestrator = Depends(get_orchestrator),
):
    """사용자 개인화 디렉티브 조회"""
    directive = await orchestrator.get_personalization_context(user_id)
    return create_response(
        data=directive,
        message="개인화 컨텍스트를 조회했습니다.",
    )


@router.get(
    "/users/{user_id}/analytics",
    response_model=APIResponse[InterestAnalytics],
)
async def get_interest_analytics(
    user_id: str,
    orchestrator: SuggestionOrchestrator = Depends(get_orchestrator),
):
    """사용자 관심사 분석 조회"""
    analytics = await orchestrator.get_interest_analytics(user_id)
    return create_response(
        data=analytics,
        message="관심사 분석을 조회했습니다.",
    )


@router.delete("/users/{user_id}", status_code=204)
async def purge_user(
    user_id: str,
    orchestrator: SuggestionOrchestrator = Depends(get_orchestrator),
):
    """사용자 관심사 삭제 (계정 삭제)"""
    await orchestrator.purge_user(user_id)
    return None
