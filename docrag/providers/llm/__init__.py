from docrag.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
