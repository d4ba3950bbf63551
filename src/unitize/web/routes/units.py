"""Course catalog endpoints."""

from fastapi import APIRouter

from unitize.core import catalog
from unitize.web.responses import respond
from unitize.web.schemas import Envelope

router = APIRouter(prefix="/api/units", tags=["units"])


@router.get("", response_model=Envelope)
async def list_courses() -> Envelope:
    """List all courses (without units)."""
    return respond(catalog.get_all_courses())


@router.get("/{course_id}", response_model=Envelope)
async def get_course(course_id: str) -> Envelope:
    return respond(catalog.get_course(course_id))


@router.get("/{course_id}/{unit_id}", response_model=Envelope)
async def get_unit(course_id: str, unit_id: str) -> Envelope:
    return respond(catalog.get_unit(course_id, unit_id))


@router.get("/{course_id}/{unit_id}/{topic_id}", response_model=Envelope)
async def get_topic(course_id: str, unit_id: str, topic_id: str) -> Envelope:
    """Get a topic with its questions."""
    return respond(catalog.get_topic(course_id, unit_id, topic_id))


@router.get("/{course_id}/{unit_id}/{topic_id}/{question_id}", response_model=Envelope)
async def get_question(course_id: str, unit_id: str, topic_id: str, question_id: str) -> Envelope:
    return respond(catalog.get_question(course_id, unit_id, topic_id, question_id))
