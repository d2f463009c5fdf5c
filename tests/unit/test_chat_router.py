"""End-to-end tests for the chat router."""
import pytest

from src.core.intent.models import Confidence, SemanticMatch
from src.core.router import HANDLER_ERROR_MESSAGE, ROUTER_FALLBACK_MESSAGE
from src.handlers.base import IntentDetectionPlugin, IntentHandler
from src.handlers.builtin.help_handler import GETTING_STARTED_HELP_MESSAGE
from src.handlers.models import ActionType, HandlerMetadata, IntentHandlerResult, PluginMetadata
from src.utils.tasks import drain_background_tasks
from tests.fakes import USER_ID, FailingSearch, FakeLLM, make_session


class ExplodingHandler(IntentHandler):
    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(id="exploding", name="Exploding", supported_intents=["HELP"], priority=500)

    def can_handle(self, context) -> bool:
        return True

    async def handle(self, context) -> IntentHandlerResult:
        raise RuntimeError("handler bug")


class AsyncCheckHandler(IntentHandler):
    def __init__(self, accept: bool):
        self.accept = accept

    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(id="async-check", name="Async", supported_intents=["HELP"], priority=400)

    async def can_handle(self, context) -> bool:
        return self.accept

    async def handle(self, context) -> IntentHandlerResult:
        return IntentHandlerResult(action_type="ASYNC", message="async handler ran")


class BrokenCheckHandler(AsyncCheckHandler):
    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(id="broken-check", name="Broken", supported_intents=["HELP"], priority=450)

    def can_handle(self, context) -> bool:
        raise ValueError("bad predicate")


class SilentHandler(IntentHandler):
    """Returns an empty reply without a pass-through."""

    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(id="silent", name="Silent", supported_intents=["HELP"], priority=300)

    def can_handle(self, context) -> bool:
        return True

    async def handle(self, context) -> IntentHandlerResult:
        return IntentHandlerResult(action_type="SILENT", message="")


class HintsDownPlugin(IntentDetectionPlugin):
    @property
    def metadata(self) -> PluginMetadata:
        return PluginMetadata(id="hints-down")

    def get_detection_hints(self):
        raise RuntimeError("hint source down")


class RecordingSearch:
    def __init__(self):
        self.queries = []

    async def find_relevant_sessions(self, user_id, query):
        self.queries.append(query)
        return [SemanticMatch(session_id="s-old", partner_name="Kai", similarity=0.9)]


class TestProcessMessage:
    @pytest.mark.asyncio
    async def test_help_without_model(self, make_router):
        router = make_router()
        response = await router.process_message(USER_ID, "help")

        assert response.intent.intent == "HELP"
        assert response.intent.confidence == Confidence.LOW
        assert response.handler_id == "help"
        assert response.assistant_message.content == GETTING_STARTED_HELP_MESSAGE
        assert response.assistant_message.role == "assistant"
        assert response.user_message.content == "help"
        assert response.pass_through is None

    @pytest.mark.asyncio
    async def test_unknown_without_session_is_witnessed(self, make_router, responder):
        response = await make_router(FakeLLM(structured=None)).process_message(USER_ID, "hello")

        assert response.handler_id == "witnessing"
        assert response.assistant_message.content == "That sounds really hard."
        assert responder.calls

    @pytest.mark.asyncio
    async def test_active_session_passes_through(self, make_router, session_store):
        session_store.add(make_session("s-1", "Mia"))
        llm = FakeLLM(structured={"intent": "CONTINUE_CONVERSATION", "confidence": "high"})

        response = await make_router(llm).process_message(
            USER_ID, "I felt dismissed", current_session_id="s-1"
        )

        assert response.handler_id == "conversation"
        assert response.pass_through.session_id == "s-1"
        assert response.assistant_message is None
        assert response.user_message.session_id == "s-1"
        assert "currently in a session with Mia" in llm.calls[0]["system"]

    @pytest.mark.asyncio
    async def test_unknown_active_session_id_is_ignored(self, make_router):
        response = await make_router().process_message(
            USER_ID, "help", current_session_id="not-mine"
        )
        assert response.assistant_message.content == GETTING_STARTED_HELP_MESSAGE

    @pytest.mark.asyncio
    async def test_switch_notifies_session_change(self, make_router, session_store, notifier):
        session_store.add(make_session("s-7", "Sarah"))
        llm = FakeLLM(structured={"intent": "SWITCH_SESSION", "person": {"firstName": "Sarah"}})

        response = await make_router(llm).process_message(USER_ID, "take me to Sarah")
        await drain_background_tasks()

        assert response.action_type == ActionType.SWITCH_SESSION
        assert response.session_change.session_id == "s-7"
        assert response.assistant_message.session_id == "s-7"
        assert notifier.changes == [(USER_ID, "switched", "s-7")]

    @pytest.mark.asyncio
    async def test_pending_creation_continues_across_turns(self, make_router, pending_store, session_store):
        router = make_router(FakeLLM(structured={
            "intent": "CREATE_SESSION",
            "person": {"firstName": "Robin"},
        }))
        first = await router.process_message(USER_ID, "I want to talk to Robin", user_name="Alex")
        assert first.handler_id == "session-creation"

        router.detector.llm = FakeLLM(structured={"intent": "UNKNOWN"})
        second = await router.process_message(USER_ID, "robin@example.com")
        assert second.handler_id == "session-creation"
        assert second.action_type == ActionType.CONFIRM_SESSION

        third = await router.process_message(USER_ID, "yes")
        await drain_background_tasks()
        assert third.action_type == ActionType.SESSION_CREATED
        assert len(await session_store.list_open_sessions(USER_ID)) == 1

    @pytest.mark.asyncio
    async def test_pending_creation_does_not_capture_session_chat(self, make_router, pending_store, session_store):
        session_store.add(make_session("s-bob", "Bob"))
        pending_store.start_creation(USER_ID, "Sarah")
        llm = FakeLLM(structured={"intent": "CONTINUE_CONVERSATION", "confidence": "high"})

        response = await make_router(llm).process_message(
            USER_ID, "he still hasn't apologised", current_session_id="s-bob"
        )

        assert response.handler_id == "conversation"
        assert response.pass_through.session_id == "s-bob"
        assert pending_store.get_creation(USER_ID) is not None

    @pytest.mark.asyncio
    async def test_search_failure_treated_as_no_matches(self, make_router):
        router = make_router(FakeLLM(structured={"intent": "HELP"}), session_search=FailingSearch())
        response = await router.process_message(USER_ID, "help me")
        assert response.handler_id == "help"

    @pytest.mark.asyncio
    async def test_semantic_matches_reach_prompt(self, make_router):
        search = RecordingSearch()
        llm = FakeLLM(structured={"intent": "HELP"})
        await make_router(llm, session_search=search).process_message(USER_ID, "about Kai")
        assert search.queries == ["about Kai"]
        assert "partner=Kai" in llm.calls[0]["system"]

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_degraded_reply(self, make_router):
        router = make_router()
        router.registry.register(ExplodingHandler())

        response = await router.process_message(USER_ID, "help")

        assert response.handler_id == "exploding"
        assert response.action_type == ActionType.ERROR
        assert response.assistant_message.content == HANDLER_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_async_predicate_awaited(self, make_router):
        router = make_router()
        router.registry.register(AsyncCheckHandler(accept=True))
        response = await router.process_message(USER_ID, "help")
        assert response.handler_id == "async-check"

        router.registry.register(AsyncCheckHandler(accept=False))
        response = await router.process_message(USER_ID, "help")
        assert response.handler_id == "help"

    @pytest.mark.asyncio
    async def test_failing_predicate_skipped(self, make_router):
        router = make_router()
        router.registry.register(BrokenCheckHandler(accept=True))
        response = await router.process_message(USER_ID, "help")
        assert response.handler_id == "help"

    @pytest.mark.asyncio
    async def test_failing_plugin_hints_do_not_abort_message(self, make_router):
        router = make_router(FakeLLM(structured={"intent": "HELP", "confidence": "high"}))
        router.registry.register_plugin(HintsDownPlugin())

        response = await router.process_message(USER_ID, "how does this work?")

        assert response.handler_id == "help"
        assert response.assistant_message.content == GETTING_STARTED_HELP_MESSAGE

    @pytest.mark.asyncio
    async def test_no_applicable_handler_uses_router_fallback(self, make_router):
        router = make_router()
        router.registry.unregister("help")

        response = await router.process_message(USER_ID, "help")

        assert response.handler_id is None
        assert response.action_type == ActionType.FALLBACK
        assert response.assistant_message.content == ROUTER_FALLBACK_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_reply_without_pass_through_is_replaced(self, make_router):
        router = make_router()
        router.registry.register(SilentHandler())
        response = await router.process_message(USER_ID, "help")
        assert response.assistant_message.content == ROUTER_FALLBACK_MESSAGE

    def test_initialize_is_idempotent(self, make_router):
        router = make_router()
        router.initialize()
        router.initialize()
        assert len(router.registry) == 6


class TestChatContext:
    @pytest.mark.asyncio
    async def test_context_lists_sessions_and_pending(self, make_router, session_store, pending_store):
        for i in range(7):
            session_store.add(make_session(f"s-{i}", f"P{i}"))
        pending_store.start_creation(USER_ID, "Sarah")

        context = await make_router().get_chat_context(USER_ID)

        assert len(context.sessions) == 5
        assert context.has_pending_creation is True
        assert context.pending_creation.person_name == "Sarah"

    @pytest.mark.asyncio
    async def test_cancel_pending(self, make_router, pending_store):
        router = make_router()
        pending_store.start_creation(USER_ID, "Sarah")

        assert await router.cancel_pending(USER_ID) is True
        assert pending_store.get(USER_ID) is None
        assert await router.cancel_pending(USER_ID) is False
