# llm/gemini_provider.py
"""
LLMProvider 针对 Google Gemini (云端) 的具体实现。
"""
import logging
from datetime import date
from typing import Sequence

from google import genai
from google.genai import types
from google.genai.errors import APIError

from errors import (
    ConfigurationError,
    InvalidCredentialError,
    ProviderError,
    QuotaExceededError,
)
from llm.prompt_builder import build_prompt
from llm.provider_abc import LLMProvider, register_provider
from models import Commit

logger = logging.getLogger(__name__)


def classify_gemini_error(error: Exception) -> ProviderError:
    """把 API 错误区分为 配额用尽 / 密钥无效 / 其他，便于给出提示"""
    code = getattr(error, "code", None)
    status = str(getattr(error, "status", "") or "")
    text = str(error)

    if code == 429 or "RESOURCE_EXHAUSTED" in status or "quota" in text.lower():
        return QuotaExceededError(
            "Google Gemini quota exceeded. Try again later or switch to Ollama for unlimited usage."
        )
    if code in (401, 403) or "API_KEY" in text or "API key" in text:
        return InvalidCredentialError(
            "Invalid Google Gemini API key. Run: eod-summary setup"
        )
    return ProviderError(f"Gemini API error: {text}")


@register_provider("gemini")
class GeminiProvider(LLMProvider):
    """
    Gemini 策略实现 (genai.Client 模式)。
    """

    @property
    def api_key(self) -> str:
        return self.user_config.get("gemini_api_key") or self.global_config.GEMINI_API_KEY

    @property
    def model_name(self) -> str:
        return self.user_config.get("gemini_model") or self.global_config.DEFAULT_MODEL_GEMINI

    @property
    def model_path(self) -> str:
        """接口需要 models/ 前缀，已带前缀的配置原样使用"""
        name = self.model_name
        return name if name.startswith("models/") else f"models/{name}"

    def preflight(self) -> None:
        if not self.api_key:
            logger.error("❌ Gemini API Key 未设置。")
            raise ConfigurationError(
                "Gemini API key not configured. Run: eod-summary setup "
                "(or set GEMINI_API_KEY in your .env file)"
            )

    def _create_client(self) -> "genai.Client":
        # HttpOptions.timeout 单位为毫秒
        return genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=self.request_timeout * 1000),
        )

    def generate(self, commits: Sequence[Commit], summary_type: str, day: date) -> str:
        self.preflight()
        prompt = build_prompt(commits, summary_type, day)
        client = self._create_client()

        logger.info(f"🤖 [GeminiProvider] 正在请求模型 {self.model_name} ...")
        try:
            response = client.models.generate_content(
                model=self.model_path, contents=prompt
            )
        except APIError as e:
            logger.error(f"❌ [GeminiProvider 错误] 生成内容失败: {e}")
            raise classify_gemini_error(e) from e

        if not response or not response.text:
            raise ProviderError("Gemini API returned an empty response")
        return response.text
