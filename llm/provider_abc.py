# llm/provider_abc.py
"""
所有摘要供应商 (gemini / ollama / template) 的抽象基类与注册表。
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, Optional, Sequence, Type

from config import GlobalConfig
from models import Commit

# 全局注册表，存储 "provider_id" -> Provider Class 的映射
PROVIDER_REGISTRY: Dict[str, Type["LLMProvider"]] = {}


def register_provider(provider_id: str):
    """
    类装饰器：用于将具体的 Provider 实现类注册到全局注册表中。

    使用示例:
        @register_provider("gemini")
        class GeminiProvider(LLMProvider):
            ...
    """

    def decorator(cls):
        if provider_id in PROVIDER_REGISTRY:
            raise ValueError(
                f"Provider id '{provider_id}' 已经被注册过 ({PROVIDER_REGISTRY[provider_id].__name__})"
            )
        cls.provider_id = provider_id
        PROVIDER_REGISTRY[provider_id] = cls
        return cls

    return decorator


class LLMProvider(ABC):
    """
    摘要供应商的抽象接口：只有 generate 一个能力。
    """

    provider_id: str = ""

    def __init__(
        self, user_config: Dict[str, Any], global_config: Optional[GlobalConfig] = None
    ):
        self.user_config = user_config
        self.global_config = global_config or GlobalConfig()

    @property
    def model_name(self) -> str:
        return ""

    @property
    def request_timeout(self) -> int:
        return int(
            self.user_config.get("request_timeout")
            or self.global_config.DEFAULT_REQUEST_TIMEOUT
        )

    def preflight(self) -> None:
        """
        在任何生成请求之前检查配置。
        配置问题抛出 ConfigurationError；服务不可达抛出 EndpointUnreachableError。
        """
        pass

    @abstractmethod
    def generate(self, commits: Sequence[Commit], summary_type: str, day: date) -> str:
        """根据提交生成摘要正文，失败时抛出异常 (由 SummaryService 负责降级)"""
        pass
