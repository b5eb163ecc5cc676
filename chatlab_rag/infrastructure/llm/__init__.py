from .openai_compatible_chat_client import OpenAICompatibleChatClient

__all__ = ["OpenAICompatibleChatClient"]
