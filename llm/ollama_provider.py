# llm/ollama_provider.py
"""
Ollama 本地大模型策略实现。
- 预检: 通过原生 /api/tags 确认服务已启动、模型已安装
- 生成: 通过 OpenAI 兼容接口 (/v1) 调用，带超时，不做 SDK 重试
"""
import logging
from datetime import date
from typing import Any, Dict, Sequence

import openai
import requests
from openai import OpenAI

from errors import (
    ConfigurationError,
    EndpointUnreachableError,
    ModelNotFoundError,
    ProviderError,
)
from llm.prompt_builder import build_prompt
from llm.provider_abc import LLMProvider, register_provider
from models import Commit

logger = logging.getLogger(__name__)


def _model_installed(wanted: str, installed: Sequence[str]) -> bool:
    base = wanted.split(":")[0]
    return any(name == wanted or name.split(":")[0] == base for name in installed)


def check_ollama_connection(url: str, model: str, timeout: int = 5) -> Dict[str, Any]:
    """
    检查 Ollama 服务是否可达，以及模型是否已安装。
    不抛出异常，结果以字典返回 (供 setup 向导展示)。
    """
    try:
        resp = requests.get(f"{url.rstrip('/')}/api/tags", timeout=timeout)
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as e:
        return {"available": False, "error": str(e), "url": url}

    entries = payload.get("models") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        return {"available": False, "error": "unexpected /api/tags response", "url": url}
    models = [m.get("name", "") for m in entries if isinstance(m, dict)]

    return {
        "available": True,
        "has_model": _model_installed(model, models),
        "models": models,
        "url": url,
    }


@register_provider("ollama")
class OllamaProvider(LLMProvider):
    """
    通过 OpenAI 兼容接口连接本地 Ollama 服务。
    """

    @property
    def base_url(self) -> str:
        url = self.user_config.get("ollama_url") or self.global_config.DEFAULT_OLLAMA_URL
        return url.rstrip("/")

    @property
    def model_name(self) -> str:
        return self.user_config.get("ollama_model") or self.global_config.DEFAULT_MODEL_OLLAMA

    def preflight(self) -> None:
        status = check_ollama_connection(
            self.base_url, self.model_name, self.global_config.OLLAMA_PING_TIMEOUT
        )
        if not status["available"]:
            raise EndpointUnreachableError(
                f"Ollama is not running at {self.base_url}. Start it with: ollama serve"
            )
        if not status["has_model"]:
            raise ConfigurationError(
                f"Model '{self.model_name}' not found. "
                f"Install it with: ollama pull {self.model_name}"
            )
        logger.info(f"✅ Ollama 服务可用 (模型: {self.model_name}, 地址: {self.base_url})")

    def _create_client(self) -> OpenAI:
        return OpenAI(
            base_url=f"{self.base_url}/v1",
            api_key="ollama",  # Ollama 不需要真实 Key，但库要求必填
            timeout=self.request_timeout,
            max_retries=0,
        )

    def generate(self, commits: Sequence[Commit], summary_type: str, day: date) -> str:
        prompt = build_prompt(commits, summary_type, day)
        client = self._create_client()

        logger.info(f"🤖 [Ollama] 正在请求模型 {self.model_name} ...")
        try:
            response = client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.3,
                top_p=0.9,
                max_tokens=1000,
            )
        except openai.NotFoundError as e:
            raise ModelNotFoundError(
                f"Model '{self.model_name}' not found. "
                f"Install it with: ollama pull {self.model_name}"
            ) from e
        except openai.APIConnectionError as e:
            # APITimeoutError 也是 APIConnectionError 的子类
            raise EndpointUnreachableError(
                f"Ollama is not reachable at {self.base_url}: {e}"
            ) from e
        except openai.APIError as e:
            raise ProviderError(f"Ollama error: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise ProviderError("Invalid response from Ollama")
        return response.choices[0].message.content.strip()
