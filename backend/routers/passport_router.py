from typing import Optional

from fastapi import APIRouter, Body, Depends, Request

from schemas.passport_schemas import (
    AnswerSchema,
    CheckContradictionsSchema,
    CreateSessionSchema,
    DecideDepthSchema,
    ExperienceSchema,
    ExtractEntitiesSchema,
    MemorySchema,
    SubmitIdeaSchema,
)
from services.conversation_service import ConversationService
from models.passport import UserExperience

router = APIRouter(tags=["Passport"])
ai_router = APIRouter(tags=["AI"])


def get_conversation_service(request: Request) -> ConversationService:
    return request.app.state.conversation_service


@router.post("/sessions")
async def post_session(
    payload: Optional[CreateSessionSchema] = Body(default=None),
    service: ConversationService = Depends(get_conversation_service),
):
    result = await service.create_session(payload.session_id if payload else None)
    return {"success": True, "message": "Session created", "result": result}


@router.get("/sessions/{session_id}")
async def get_passport(session_id: str, service: ConversationService = Depends(get_conversation_service)):
    result = await service.get_passport(session_id)
    return {"success": True, "message": "Session fetched", "result": result}


@router.post("/sessions/{session_id}/idea")
async def post_idea(
    session_id: str,
    payload: SubmitIdeaSchema,
    service: ConversationService = Depends(get_conversation_service),
):
    result = await service.submit_idea(session_id, payload.idea)
    return {"success": True, "message": "Idea saved", "result": result}


@router.post("/sessions/{session_id}/experience")
async def post_experience(
    session_id: str,
    payload: ExperienceSchema,
    service: ConversationService = Depends(get_conversation_service),
):
    experience = UserExperience(**payload.model_dump())
    result = await service.save_experience(session_id, experience)
    return {"success": True, "message": "Experience saved", "result": result}


@router.get("/sessions/{session_id}/experience")
async def get_experience(session_id: str, service: ConversationService = Depends(get_conversation_service)):
    result = await service.get_experience(session_id)
    return {"success": True, "message": "Experience fetched", "result": result}


@router.post("/sessions/{session_id}/begin")
async def post_begin(session_id: str, service: ConversationService = Depends(get_conversation_service)):
    turn = await service.begin(session_id)
    return {"success": True, "message": "Conversation started", "result": turn.to_dict()}


@router.post("/sessions/{session_id}/answer")
async def post_answer(
    session_id: str,
    payload: AnswerSchema,
    service: ConversationService = Depends(get_conversation_service),
):
    turn = await service.submit_answer(session_id, payload.answer)
    message = "Clarification requested" if turn.clarification else "Answer processed"
    return {"success": True, "message": message, "result": turn.to_dict()}


@router.get("/sessions/{session_id}/history")
async def get_history(session_id: str, service: ConversationService = Depends(get_conversation_service)):
    history = await service.get_history(session_id)
    return {"success": True, "message": "Chat history fetched", "result": history}


@router.get("/sessions/{session_id}/memory")
async def get_memory(session_id: str, service: ConversationService = Depends(get_conversation_service)):
    memory = await service.get_memory(session_id)
    return {"success": True, "message": "Memory fetched", "result": memory}


@router.put("/sessions/{session_id}/memory")
async def put_memory(
    session_id: str,
    payload: MemorySchema,
    service: ConversationService = Depends(get_conversation_service),
):
    memory = await service.save_memory(session_id, payload.memory)
    return {"success": True, "message": "Memory saved", "result": memory}


@ai_router.post("/decide-depth")
async def post_decide_depth(payload: DecideDepthSchema, service: ConversationService = Depends(get_conversation_service)):
    decision = service.decide_depth(
        payload.field_key,
        payload.startup_knowledge,
        payload.previous_quality,
        payload.previous_answers,
    )
    return {"success": True, "message": "Depth decided", "result": decision.to_dict()}


@ai_router.post("/extract-entities")
async def post_extract_entities(
    payload: ExtractEntitiesSchema,
    service: ConversationService = Depends(get_conversation_service),
):
    entities = await service.extract_entities(payload.answer, payload.field_key, payload.idea_context)
    return {"success": True, "message": "Entities extracted", "result": entities.model_dump()}


@ai_router.post("/check-contradictions")
async def post_check_contradictions(
    payload: CheckContradictionsSchema,
    service: ConversationService = Depends(get_conversation_service),
):
    result = await service.check_contradictions(payload.memory_summary, payload.current_answer, payload.current_field)
    return {"success": True, "message": "Contradictions checked", "result": result.model_dump()}
