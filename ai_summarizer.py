# ai_summarizer.py
import importlib
import logging
import os
import re
from datetime import date
from typing import Any, Dict, Sequence

from config import GlobalConfig
from context import RunContext
from errors import ConfigurationError, EndpointUnreachableError
from models import Commit, SummaryMetadata, SummaryResult

# 导入 Registry 和基类
from llm.provider_abc import LLMProvider, PROVIDER_REGISTRY

logger = logging.getLogger(__name__)

TEMPLATE_PROVIDER_ID = "template"


# --- 动态加载器 ---
def load_providers_dynamically(script_base_path: str):
    """
    扫描 llm/ 目录下的所有 .py 文件并导入它们。
    这将触发 @register_provider 装饰器，将类注册到 PROVIDER_REGISTRY 中。
    """
    llm_dir = os.path.join(script_base_path, "llm")
    if not os.path.exists(llm_dir):
        logger.warning(f"⚠️ 未找到 llm 目录: {llm_dir}")
        return

    for filename in sorted(os.listdir(llm_dir)):
        if (
            filename.endswith(".py")
            and filename != "__init__.py"
            and filename != "provider_abc.py"
        ):
            module_name = f"llm.{filename[:-3]}"
            try:
                importlib.import_module(module_name)
            except ImportError as e:
                logger.error(f"❌ 动态加载模块 {module_name} 失败: {e}")


def get_llm_provider(
    provider_id: str, user_config: Dict[str, Any], global_config: GlobalConfig
) -> LLMProvider:
    """
    工厂函数：基于 Registry Pattern 实现。
    """
    load_providers_dynamically(global_config.SCRIPT_BASE_PATH)

    if provider_id not in PROVIDER_REGISTRY:
        logger.error(f"❌ 未知的摘要供应商: '{provider_id}'")
        logger.error(f"   可用供应商: {sorted(PROVIDER_REGISTRY.keys())}")
        raise ConfigurationError(f"Unsupported AI provider: {provider_id}")

    provider_class = PROVIDER_REGISTRY[provider_id]
    return provider_class(user_config, global_config)


_FENCE_START_RE = re.compile(r"^```(markdown|md)?\s*\n", re.IGNORECASE)


def clean_ai_output(summary: str) -> str:
    """
    去除 LLM 可能输出的 markdown 代码块包裹标记 (```markdown ... ```)
    """
    cleaned = summary.strip()
    if _FENCE_START_RE.match(cleaned):
        cleaned = _FENCE_START_RE.sub("", cleaned, count=1)
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
    cleaned = cleaned.strip()
    if cleaned != summary.strip():
        logger.debug("🧹 已去除 AI 回复中的 Markdown 代码块包裹。")
    return cleaned


def build_summary_result(
    commits: Sequence[Commit],
    summary_type: str,
    day: date,
    content: str,
    provider: LLMProvider,
) -> SummaryResult:
    """content 与 metadata 使用同一组 commits"""
    return SummaryResult(
        summary_type=summary_type,
        date=day,
        content=content,
        provider=provider.provider_id,
        metadata=SummaryMetadata.from_commits(
            commits, provider.provider_id, provider.model_name
        ),
    )


def generate_with_fallback(
    provider: LLMProvider,
    fallback: LLMProvider,
    commits: Sequence[Commit],
    summary_type: str,
    day: date,
) -> SummaryResult:
    """
    先用 provider 生成；生成过程中的任何异常都降级为 fallback (模板)。
    """
    if provider.provider_id != fallback.provider_id:
        try:
            content = clean_ai_output(provider.generate(commits, summary_type, day))
            return build_summary_result(commits, summary_type, day, content, provider)
        except Exception as e:
            logger.warning(f"⚠️ [{provider.provider_id}] AI 生成失败: {e}")
            logger.warning("   将回退到模板摘要...")

    content = fallback.generate(commits, summary_type, day)
    return build_summary_result(commits, summary_type, day, content, fallback)


class SummaryService:
    """
    封装摘要生成：选择供应商 -> 预检 -> 生成 (失败时降级为模板)。
    """

    def __init__(self, context: RunContext):
        self.context = context
        self.global_config = context.global_config
        self.user_config = context.user_config

    @property
    def provider_id(self) -> str:
        if self.context.no_ai:
            return TEMPLATE_PROVIDER_ID
        return (
            self.user_config.get("ai_provider") or self.global_config.DEFAULT_LLM
        ).lower()

    def generate(
        self, commits: Sequence[Commit], summary_type: str, day: date
    ) -> SummaryResult:
        """
        返回一个 SummaryResult。
        只有预检阶段的 ConfigurationError 会抛出给调用方 (发生在任何生成请求之前)。
        """
        fallback = get_llm_provider(
            TEMPLATE_PROVIDER_ID, self.user_config, self.global_config
        )
        provider = get_llm_provider(self.provider_id, self.user_config, self.global_config)

        if provider.provider_id != TEMPLATE_PROVIDER_ID:
            try:
                provider.preflight()
            except EndpointUnreachableError as e:
                logger.warning(f"⚠️ {e}")
                logger.warning("   AI 服务不可用，将使用模板摘要...")
                provider = fallback

        logger.info(
            f"🤖 正在生成 '{summary_type}' 摘要 (Provider: {provider.provider_id})..."
        )
        result = generate_with_fallback(provider, fallback, commits, summary_type, day)
        logger.info(f"✅ 摘要生成完成 (Provider: {result.provider})")
        return result
