from dataclasses import dataclass
from loguru import logger
from openai import AzureOpenAI, OpenAIError
from ..core.config import settings
from ..core.errors import UpstreamServiceError


@dataclass(frozen=True)
class SamplingConfig:
    """Low temperature, short output: leans deterministic without forcing it"""
    temperature: float = 0.3
    max_tokens: int = 200
    top_p: float = 0.95

    @classmethod
    def from_settings(cls) -> "SamplingConfig":
        return cls(
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            top_p=settings.llm_top_p,
        )


class AzureOpenAITextGenerator:
    """Chat-completions client for an Azure OpenAI deployment"""

    def __init__(
        self,
        endpoint: str | None = None,
        api_key: str | None = None,
        deployment: str | None = None,
        api_version: str | None = None,
        client: AzureOpenAI | None = None,
    ):
        self.deployment = deployment or settings.llm_deployment
        self._client = client
        self._endpoint = endpoint or settings.llm_base_url
        self._api_key = api_key or settings.llm_api_key
        self._api_version = api_version or settings.llm_api_version

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self._endpoint and self._api_key)

    def _get_client(self) -> AzureOpenAI:
        if self._client is None:
            if not self.configured:
                raise UpstreamServiceError(
                    "Text generation is not configured",
                    details="Set LLM_BASE_URL and LLM_API_KEY to enable classification",
                    service="llm",
                )
            self._client = AzureOpenAI(
                azure_endpoint=self._endpoint,
                api_key=self._api_key,
                api_version=self._api_version,
            )
        return self._client

    def complete(self, prompt: str, sampling: SamplingConfig, system_prompt: str | None = None) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.deployment,
                messages=messages,
                temperature=sampling.temperature,
                max_tokens=sampling.max_tokens,
                top_p=sampling.top_p,
            )
        except OpenAIError as e:
            logger.error(f"Azure OpenAI completion failed: {str(e)}")
            raise UpstreamServiceError("Text generation failed", details=str(e), service="llm") from e

        content = response.choices[0].message.content if response.choices else None
        logger.debug("Azure OpenAI response received", deployment=self.deployment, chars=len(content or ""))
        return content or ""
