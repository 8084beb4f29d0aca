import json
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from syllabus_sync.api.dependencies import get_db, get_extraction_invoker
from syllabus_sync.db.base import Base
from syllabus_sync.main import app
from syllabus_sync.services.document_ingress import ExtractionRequest
from syllabus_sync.services.extraction_client import ExtractionChunk


class ScriptedInvoker:
    """Stands in for the extraction model, replaying one scripted reply per attempt.

    A reply is either raw text or an exception to raise. In streaming mode each
    reply may come with a list of partial objects yielded before the final text.
    """

    def __init__(self, replies, streaming=False, partials=None):
        self.replies = list(replies)
        self.streaming = streaming
        self.partials = list(partials or [])
        self.instructions = []

    def _next_reply(self, instruction):
        self.instructions.append(instruction)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def calls(self):
        return len(self.instructions)

    async def generate(self, request, instruction):
        return self._next_reply(instruction)

    async def stream(self, request, instruction):
        reply = self._next_reply(instruction)
        for partial in self.partials.pop(0) if self.partials else []:
            yield ExtractionChunk(partial=partial)
        yield ExtractionChunk(raw_text=reply)


def syllabus_json(course="CS 405", assignments=None):
    if assignments is None:
        assignments = [{"name": "HW1", "due_date": "2026-02-15", "due_time": None}]
    return json.dumps({"course": course, "assignments": assignments})


def parse_sse(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


@pytest.fixture
def text_request() -> ExtractionRequest:
    return ExtractionRequest(content=b"CS 405 syllabus", media_type="text/plain", filename="syllabus.txt")


@pytest.fixture
def db_session() -> Iterator[Session]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def invoker() -> ScriptedInvoker:
    return ScriptedInvoker([syllabus_json()])


@pytest.fixture
def client(db_session, invoker) -> Iterator[TestClient]:
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_extraction_invoker] = lambda: invoker
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
