import os

from dotenv import load_dotenv
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

load_dotenv()

DEFAULT_MODEL = "gpt-5"
SYSTEM_PROMPT = (
    "You are a strict, deterministic doc linter. "
    "Return ONLY valid JSON that matches the requested schema."
)

_OPENAI_PREFIXES = ("gpt-", "o1", "o3", "o4")


def get_llm(model_name: str, temperature: float = 1.0) -> BaseChatModel:
    """
    Returns a LangChain chat model for the given model name.

    Args:
        model_name (str): e.g. "gpt-5", "o4-mini", "gemini-2.5-flash".
        temperature (float): Sampling temperature. Some OpenAI reasoning
                             models only accept the default of 1.0.

    Returns:
        BaseChatModel: An instance of a LangChain chat model. Retries are
        disabled at this layer; the engine owns the retry policy.

    Raises:
        ValueError: If the model is unsupported or its API key is missing.
    """
    if model_name.startswith(_OPENAI_PREFIXES):
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables.")
        return ChatOpenAI(
            model=model_name,
            temperature=temperature,
            api_key=api_key,
            max_retries=0,
            model_kwargs={"response_format": {"type": "json_object"}},
        )
    elif model_name.startswith("gemini-"):
        api_key = os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ValueError("GOOGLE_API_KEY not found in environment variables.")
        return ChatGoogleGenerativeAI(
            model=model_name,
            temperature=temperature,
            google_api_key=api_key,
            max_retries=0,
        )
    else:
        raise ValueError(f"Unsupported model name: {model_name}")


class LangChainTransport:
    """Adapts a LangChain chat model to the engine's `await transport(prompt) -> str` contract."""

    def __init__(self, llm: BaseChatModel, system_prompt: str = SYSTEM_PROMPT):
        self.llm = llm
        self.system_prompt = system_prompt

    async def __call__(self, prompt_text: str) -> str:
        response = await self.llm.ainvoke([
            SystemMessage(content=self.system_prompt),
            HumanMessage(content=prompt_text),
        ])
        content = response.content
        if isinstance(content, list):
            # Gemini may return content parts
            content = "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)
        return content
