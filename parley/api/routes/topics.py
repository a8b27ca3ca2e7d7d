"""
parley.api.routes.topics — Topic endpoints
===========================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, StrictInt
from sqlalchemy import Engine

from parley.api.deps import JWT_SECRET, get_engine, require_right
from parley.services import lifecycle_service, topic_service
from parley.services.token_service import ArchiveTokenError
from parley.services.topic_service import TopicNotFoundError

router = APIRouter(prefix="/topics", tags=["topics"])


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------
class TopicCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    private: bool = False
    voting_allowed: bool = True
    archivable: bool = True


class TopicUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    private: bool | None = None
    voting_allowed: bool | None = None
    archivable: bool | None = None


class PasscodeCheck(BaseModel):
    passcode: StrictInt | None = None


class ArchiveRequest(BaseModel):
    token: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------
@router.get("")
def user_topics(
    user: dict = Depends(require_right("userTopics")),
    engine: Engine = Depends(get_engine),
):
    """The caller's topics, ranked by activity."""
    return [s.to_dict() for s in topic_service.list_user_topics(engine, user["id"])]


@router.get("/public")
def public_topics(
    _user: dict = Depends(require_right("publicTopics")),
    engine: Engine = Depends(get_engine),
):
    """Every live topic, ranked by activity."""
    return [s.to_dict() for s in topic_service.list_all_topics(engine)]


@router.get("/{topic_id}")
def get_topic(
    topic_id: int,
    _user: dict = Depends(require_right("publicTopics")),
    engine: Engine = Depends(get_engine),
):
    topic = topic_service.find_by_id(engine, topic_id)
    if topic is None:
        raise HTTPException(404, "Topic not found")
    return topic


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_topic(
    body: TopicCreate,
    user: dict = Depends(require_right("createTopic")),
    engine: Engine = Depends(get_engine),
):
    try:
        return topic_service.create_topic(
            engine,
            user["id"],
            name=body.name,
            private=body.private,
            voting_allowed=body.voting_allowed,
            archivable=body.archivable,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))


@router.patch("/{topic_id}")
def update_topic(
    topic_id: int,
    body: TopicUpdate,
    user: dict = Depends(require_right("createTopic")),
    engine: Engine = Depends(get_engine),
):
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(400, "No fields to update")

    try:
        return topic_service.update_topic(engine, topic_id, updates, owner_id=user["id"])
    except TopicNotFoundError as exc:
        raise HTTPException(404, str(exc))
    except PermissionError as exc:
        raise HTTPException(403, str(exc))
    except ValueError as exc:
        raise HTTPException(400, str(exc))


@router.post("/{topic_id}/verify-passcode")
def verify_passcode(
    topic_id: int,
    body: PasscodeCheck,
    _user: dict = Depends(require_right("publicTopics")),
    engine: Engine = Depends(get_engine),
):
    try:
        valid = topic_service.verify_passcode(engine, topic_id, body.passcode)
    except TopicNotFoundError as exc:
        raise HTTPException(404, str(exc))
    return {"valid": valid}


@router.post("/{topic_id}/archive", status_code=204)
def archive_topic(
    topic_id: int,
    body: ArchiveRequest,
    engine: Engine = Depends(get_engine),
):
    """Archive a topic from the link in the archive prompt email."""
    try:
        lifecycle_service.archive_topic(engine, body.token, topic_id, secret=JWT_SECRET)
    except ArchiveTokenError as exc:
        raise HTTPException(401, str(exc))
    except TopicNotFoundError as exc:
        raise HTTPException(404, str(exc))
