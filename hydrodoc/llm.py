"""Text-completion collaborator backed by a LangChain chat model."""

from langchain_anthropic import ChatAnthropic
from langchain_google_genai import ChatGoogleGenerativeAI

from hydrodoc.config import get_config
from hydrodoc.utils.parsing import ainvoke_with_retry


def create_chat_model(config: dict | None = None):
    """Instantiate the chat model named by llm_provider / llm_model."""
    config = config or get_config()
    provider = config.get("llm_provider", "anthropic")
    model_name = config["llm_model"]
    temperature = config.get("llm_temperature", 0)

    if provider == "anthropic":
        return ChatAnthropic(model=model_name, temperature=temperature)
    if provider == "google":
        return ChatGoogleGenerativeAI(model=model_name, temperature=temperature)
    raise ValueError(f"Unknown llm_provider '{provider}'. Must be one of: anthropic, google")


class ChatModelClient:
    """Adapts a chat model to the pipeline's completion interface.

    complete() takes role-tagged messages and returns the reply text. Any
    exception left after retries propagates and fails the calling stage.
    """

    def __init__(self, llm):
        self.llm = llm

    async def complete(self, messages: list[dict]) -> str:
        response = await ainvoke_with_retry(self.llm, messages)
        content = response.content
        if isinstance(content, list):
            # Some providers return content blocks instead of a plain string.
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return content
