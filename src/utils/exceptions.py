class ChatRouterError(Exception):
    """Base exception for the chat router."""


class HandlerNotFoundError(ChatRouterError):
    def __init__(self, handler_id: str):
        self.handler_id = handler_id
        super().__init__(f"Handler not found: {handler_id}")


class LLMError(ChatRouterError):
    def __init__(self, provider: str, detail: str):
        self.provider = provider
        super().__init__(f"LLM error ({provider}): {detail}")


class WitnessingError(ChatRouterError):
    pass
