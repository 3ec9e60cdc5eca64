from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import BaseModel

from ..backends import BackendAdapter, BackendError
from ..deps import get_backend, get_settings
from ..prompts import CompositePrompt, lesson_prompt, quiz_prompt
from ..settings import Settings
from ..sse import sse_response

router = APIRouter(prefix="/api", tags=["generate"])


class GenerateRequest(BaseModel):
	# Field names follow the browser client; either text field is accepted on both routes.
	userInput: Optional[str] = None
	lessonContent: Optional[str] = None
	model: Optional[str] = None
	stream: Optional[bool] = None


def _first_text(*values: Optional[str]) -> Optional[str]:
	for value in values:
		if value is not None and value.strip():
			return value
	return None


async def _relay(
	prompt: CompositePrompt,
	field: str,
	req: GenerateRequest,
	request: Request,
	backend: BackendAdapter,
	settings: Settings,
):
	model = (req.model or "").strip() or None
	stream = settings.stream_responses if req.stream is None else req.stream
	if stream:
		# Failures raised here happen before any header is sent
		try:
			fragments = backend.stream(prompt, model=model)
		except BackendError as e:
			raise HTTPException(status_code=500, detail=str(e))
		return sse_response(fragments, request)
	try:
		text = await backend.complete(prompt, model=model)
	except BackendError as e:
		raise HTTPException(status_code=500, detail=str(e))
	return {field: text}


@router.post("/generateLesson")
async def generate_lesson(
	request: Request,
	req: Optional[GenerateRequest] = Body(None),
	backend: BackendAdapter = Depends(get_backend),
	settings: Settings = Depends(get_settings),
):
	# A missing or empty body counts as a request without text
	req = req or GenerateRequest()
	text = _first_text(req.userInput, req.lessonContent)
	if text is None:
		raise HTTPException(status_code=400, detail="User input is required")
	return await _relay(lesson_prompt(text), "lesson", req, request, backend, settings)


@router.post("/generateQuizzes")
async def generate_quizzes(
	request: Request,
	req: Optional[GenerateRequest] = Body(None),
	backend: BackendAdapter = Depends(get_backend),
	settings: Settings = Depends(get_settings),
):
	# A missing or empty body counts as a request without text
	req = req or GenerateRequest()
	text = _first_text(req.lessonContent, req.userInput)
	if text is None:
		raise HTTPException(status_code=400, detail="Lesson content is required")
	return await _relay(quiz_prompt(text), "quizzes", req, request, backend, settings)
