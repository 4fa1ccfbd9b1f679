# config_manager.py
"""
配置管理器
- 负责用户级配置文件 (~/.eod-summary/config.json) 的读写
- 读取时与默认值做浅合并；文件不存在时用默认值创建
- 包含一个交互式向导 (run_interactive_setup_wizard)
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from config import GlobalConfig
from errors import ConfigurationError
from llm.ollama_provider import check_ollama_connection

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_config_path() -> str:
    """配置文件路径 (可用 EOD_SUMMARY_CONFIG 环境变量覆盖)"""
    return os.getenv("EOD_SUMMARY_CONFIG") or GlobalConfig().get_config_path()


def get_default_config() -> Dict[str, Any]:
    cfg = GlobalConfig()
    return {
        "ai_provider": cfg.DEFAULT_LLM,
        "ollama_url": cfg.DEFAULT_OLLAMA_URL,
        "ollama_model": cfg.DEFAULT_MODEL_OLLAMA,
        "gemini_api_key": None,
        "gemini_model": cfg.DEFAULT_MODEL_GEMINI,
        "default_summary_type": "quick",
        "default_output_format": "markdown",
        "include_stats": True,
        "request_timeout": cfg.DEFAULT_REQUEST_TIMEOUT,
        "max_retries": 0,
        "exclude_patterns": list(cfg.DEFAULT_EXCLUDE_PATTERNS),
        "timezone_offset": None,
        "created_at": _now_iso(),
        "version": cfg.APP_VERSION,
    }


def save_config(config_data: Dict[str, Any], config_path: Optional[str] = None) -> str:
    """保存配置 (更新 updated_at)，失败时抛出 ConfigurationError"""
    config_path = config_path or get_config_path()
    config_data["updated_at"] = _now_iso()
    try:
        os.makedirs(os.path.dirname(os.path.abspath(config_path)), exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config_data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise ConfigurationError(f"Failed to save configuration: {e}") from e
    logger.debug(f"✅ 配置已保存至 {config_path}")
    return config_path


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    加载配置：
    - 文件不存在: 用默认值创建并返回
    - 文件损坏: 警告并返回默认值
    - 正常: 默认值与已保存配置浅合并
    """
    config_path = config_path or get_config_path()
    defaults = get_default_config()

    if not os.path.exists(config_path):
        try:
            save_config(defaults, config_path)
            logger.info(f"ℹ️ 已创建默认配置: {config_path}")
        except ConfigurationError as e:
            logger.warning(f"⚠️ 无法创建默认配置，将使用默认值: {e}")
        return defaults

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            stored = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"⚠️ 加载配置 {config_path} 失败，将使用默认值: {e}")
        return defaults

    if not isinstance(stored, dict):
        logger.warning(f"⚠️ 配置 {config_path} 格式异常，将使用默认值")
        return defaults
    return {**defaults, **stored}


def update_config(
    updates: Dict[str, Any], config_path: Optional[str] = None
) -> Dict[str, Any]:
    new_config = {**load_config(config_path), **updates}
    save_config(new_config, config_path)
    return new_config


def mask_secret(value: Optional[str], visible: int = 8) -> Optional[str]:
    if not value:
        return value
    return f"{value[:visible]}***"


def get_masked_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    masked = dict(load_config(config_path))
    masked["gemini_api_key"] = mask_secret(masked.get("gemini_api_key"))
    return masked


def _input_with_default(prompt: str, default: Optional[str]) -> str:
    """辅助函数：获取带默认值的用户输入"""
    default = default or ""
    return input(f"{prompt} [{default}]: ").strip() or default


def _choose(prompt: str, choices: Sequence[str], default: str) -> str:
    """只接受 choices 中的值，输入非法时重新提示"""
    if default not in choices:
        default = choices[0]
    while True:
        value = _input_with_default(f"{prompt} ({', '.join(choices)})", default).lower()
        if value in choices:
            return value
        print(f"  ⚠️ 无效选项: {value}")


def run_interactive_setup_wizard(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    运行交互式配置向导，返回保存后的配置。
    """
    cfg = GlobalConfig()
    current = load_config(config_path)

    print("\n--- 🔧 EOD Summary 配置向导 ---")
    print(f"  当前供应商: {current.get('ai_provider') or '未设置'}")
    print(f"  默认摘要类型: {current.get('default_summary_type')}")
    print(f"  默认输出格式: {current.get('default_output_format')}")

    # 1. 选择供应商
    print("\n--- 1. AI 供应商 ---")
    print("  ollama   - 本地模型 (免费、离线、私有)")
    print("  gemini   - Google Gemini 云端模型")
    print("  template - 不使用 AI，仅模板格式化")
    updated = dict(current)
    updated["ai_provider"] = _choose(
        "  选择供应商", cfg.PROVIDERS, current.get("ai_provider") or cfg.DEFAULT_LLM
    )

    # 2. 供应商参数
    if updated["ai_provider"] == "gemini":
        print("\n  获取 API Key: https://aistudio.google.com/app/apikey")
        api_key = ""
        while not api_key:
            api_key = _input_with_default(
                "  Gemini API Key", current.get("gemini_api_key")
            )
            if not api_key:
                print("  ⚠️ API Key 不能为空")
        updated["gemini_api_key"] = api_key
        updated["gemini_model"] = _input_with_default(
            "  Gemini 模型", current.get("gemini_model") or cfg.DEFAULT_MODEL_GEMINI
        )
    elif updated["ai_provider"] == "ollama":
        updated["ollama_url"] = _input_with_default(
            "  Ollama 地址", current.get("ollama_url") or cfg.DEFAULT_OLLAMA_URL
        )
        updated["ollama_model"] = _input_with_default(
            "  Ollama 模型", current.get("ollama_model") or cfg.DEFAULT_MODEL_OLLAMA
        )
        status = check_ollama_connection(
            updated["ollama_url"], updated["ollama_model"], cfg.OLLAMA_PING_TIMEOUT
        )
        if not status["available"]:
            print("  ⚠️ 无法连接 Ollama，请先运行: ollama serve")
        elif not status["has_model"]:
            print(f"  ⚠️ 模型未安装，请运行: ollama pull {updated['ollama_model']}")
        else:
            print("  ✅ Ollama 连接正常")

    # 3. 默认值
    print("\n--- 2. 默认值 ---")
    updated["default_summary_type"] = _choose(
        "  默认摘要类型", cfg.SUMMARY_TYPES, current.get("default_summary_type", "quick")
    )
    updated["default_output_format"] = _choose(
        "  默认输出格式",
        cfg.OUTPUT_FORMATS,
        current.get("default_output_format", "markdown"),
    )

    path = save_config(updated, config_path)
    logger.info(f"✅ 配置已保存至 {path}")

    print("\n--- ✅ 配置完成！ ---")
    print("  eod-summary                  # 生成今天的摘要")
    print("  eod-summary -d 15-12-2024    # 指定日期")
    print("  eod-summary -t detailed      # 详细摘要")
    print("  eod-summary -o report.md     # 保存到文件")
    return updated
