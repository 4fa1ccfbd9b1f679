# context.py
"""
运行时配置的数据模型
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from config import GlobalConfig


@dataclass
class RunContext:
    """
    封装一次运行所需的所有参数与配置。
    这是从 CLI 传递到 Orchestrator 的唯一对象，用户配置在这里显式传递，
    而不是作为全局单例读取。
    """

    # --- 核心路径 ---
    repo_path: str

    # --- 摘要参数 (原始输入，由 Orchestrator 校验) ---
    date_input: str
    summary_type: str
    output_format: str
    output_path: Optional[str] = None

    # --- 标志 ---
    include_all_authors: bool = False
    no_ai: bool = False

    # --- 用户配置 (config.json 与默认值合并后的结果) ---
    user_config: Dict[str, Any] = field(default_factory=dict)

    # --- 全局配置 ---
    global_config: GlobalConfig = field(default_factory=GlobalConfig)
