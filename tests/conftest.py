import pytest

from src.core.intent.detector import IntentDetector
from src.core.intent.models import DetectionResult
from src.core.pending.pre_session import PreSessionLog
from src.core.pending.store import PendingStateStore
from src.core.responses import ResponseGenerator
from src.core.router import ChatRouter
from src.core.sessions.store import InMemorySessionStore
from src.core.witnessing.responder import PersonMention, WitnessingResult
from src.handlers.context import HandlerContext, RouterServices
from src.handlers.models import ActiveSession
from src.handlers.registry import HandlerRegistry
from tests.fakes import USER_ID, FakeResponder, RecordingInvitations, RecordingNotifier


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def pending_store():
    return PendingStateStore()


@pytest.fixture
def pre_session_log():
    return PreSessionLog()


@pytest.fixture
def responder():
    return FakeResponder()


@pytest.fixture
def invitations():
    return RecordingInvitations()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def services(session_store, pending_store, pre_session_log, responder, invitations, notifier):
    return RouterServices(
        session_store=session_store,
        pending_store=pending_store,
        pre_session_log=pre_session_log,
        responder=responder,
        response_generator=ResponseGenerator(),
        invitations=invitations,
        notifier=notifier,
    )


@pytest.fixture
def make_context(services):
    """Build a :class:`HandlerContext` for direct handler tests."""

    def _make(
        intent: str = "UNKNOWN",
        message: str = "hello",
        active_session: ActiveSession | None = None,
        request_context: dict | None = None,
        **result_fields,
    ) -> HandlerContext:
        return HandlerContext(
            user_id=USER_ID,
            message=message,
            intent=DetectionResult(intent=intent, **result_fields),
            services=services,
            active_session=active_session,
            user_name="Alex",
            request_context=request_context or {},
        )

    return _make


@pytest.fixture
def make_router(services):
    """Build an initialised :class:`ChatRouter` around a given fake model."""

    def _make(llm=None, session_search=None) -> ChatRouter:
        registry = HandlerRegistry()
        router = ChatRouter(
            registry,
            IntentDetector(llm, registry),
            services,
            session_search=session_search,
        )
        router.initialize()
        return router

    return _make


@pytest.fixture
def mention_result():
    return WitnessingResult(
        response="It sounds like things with Jordan have been weighing on you.",
        person_mention=PersonMention(name="Jordan", relationship="partner"),
        topic="chores",
        suggest_session=True,
    )
