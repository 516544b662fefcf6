"""
LLM Client for the Analysis Engine

Thin wrapper around the Gemini chat model used for causal analysis:
- Model, temperature, token limit, timeout and retries from settings.yaml
- API key from the environment (or a .env file)
- Token usage tracking
"""

import os
import logging
from typing import Optional, List, Dict, Union
from enum import Enum

from dotenv import load_dotenv
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.messages import BaseMessage, HumanMessage, AIMessage
from langchain_core.language_models import BaseChatModel

from ..config_loader import config

logger = logging.getLogger(__name__)

load_dotenv()


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    GOOGLE = "google"


class LLMClient:
    """
    LLM client for log analysis requests.

    The client holds no per-request state apart from token counters, so one
    instance can serve many analyses.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None
    ):
        """
        Initialize LLM client.

        Args:
            provider: LLM provider ('google'). Defaults to config.
            model: Model name. Defaults to config.
            temperature: Sampling temperature (0-1). Defaults to config.
            max_tokens: Max output tokens. Defaults to config.
            api_key: API key. Defaults to the environment variable named in config.
        """
        self.provider = provider or config.get('analysis.llm.provider', 'google')
        self.model = model or config.get('analysis.llm.model', 'gemini-2.5-flash')
        self.temperature = temperature if temperature is not None else config.get('analysis.llm.temperature', 0.2)
        self.max_tokens = max_tokens or config.get('analysis.llm.max_tokens', 8192)
        self.timeout = config.get('analysis.llm.timeout', 120)
        self.max_retries = config.get('analysis.llm.max_retries', 2)

        api_key_env = config.get('analysis.llm.api_key_env', 'GEMINI_API_KEY')
        self.api_key = api_key or os.getenv(api_key_env)

        if not self.api_key:
            raise ValueError(f"Gemini API key is required (set {api_key_env})")

        self.llm = self._create_llm()

        self.total_input_tokens = 0
        self.total_output_tokens = 0

        logger.info(
            f"LLM Client initialized: {self.provider}/{self.model} "
            f"(temp={self.temperature}, max_tokens={self.max_tokens})"
        )

    def _create_llm(self) -> BaseChatModel:
        """Create LLM instance based on provider."""
        if self.provider == LLMProvider.GOOGLE:
            return ChatGoogleGenerativeAI(
                model=self.model,
                google_api_key=self.api_key,
                temperature=self.temperature,
                max_output_tokens=self.max_tokens,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        raise ValueError(f"Unsupported provider: {self.provider}")

    def invoke(self, messages: Union[str, List[BaseMessage]]) -> AIMessage:
        """
        Invoke LLM with messages (non-streaming).

        Args:
            messages: String prompt or list of LangChain messages

        Returns:
            AIMessage response
        """
        if isinstance(messages, str):
            messages = [HumanMessage(content=messages)]

        try:
            response = self.llm.invoke(messages)

            usage = getattr(response, 'usage_metadata', None)
            if usage:
                self.total_input_tokens += usage.get('input_tokens', 0)
                self.total_output_tokens += usage.get('output_tokens', 0)

            return response

        except Exception as e:
            logger.error(f"LLM invocation failed: {e}", exc_info=True)
            raise

    def get_token_usage(self) -> Dict[str, int]:
        """
        Get cumulative token usage.

        Returns:
            Dict with input_tokens, output_tokens, total_tokens
        """
        return {
            "input_tokens": self.total_input_tokens,
            "output_tokens": self.total_output_tokens,
            "total_tokens": self.total_input_tokens + self.total_output_tokens
        }

    def reset_usage(self):
        """Reset token usage counters."""
        self.total_input_tokens = 0
        self.total_output_tokens = 0

    def __repr__(self) -> str:
        return f"LLMClient(provider={self.provider}, model={self.model}, temp={self.temperature})"


def get_llm_client(model: Optional[str] = None) -> LLMClient:
    """
    Get an LLM client configured from settings.yaml.

    Args:
        model: Optional model override

    Returns:
        Configured LLMClient instance
    """
    return LLMClient(model=model)
