# config.py
"""
全局配置 (进程级常量)
用户级偏好 (供应商、API Key、默认摘要类型等) 由 config_manager 持久化到
~/.eod-summary/config.json，这里只放不随用户变化的常量与 .env 读取。
"""
import logging
import os
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- 脚本基础路径 ---
SCRIPT_BASE_PATH = os.path.abspath(os.path.dirname(__file__))
env_path = os.path.join(SCRIPT_BASE_PATH, ".env")
if os.path.exists(env_path):
    load_dotenv(env_path)
else:
    load_dotenv()


class GlobalConfig:
    """
    EOD 摘要生成器的全局应用配置。
    """

    # --- 路径配置 ---
    SCRIPT_BASE_PATH: str = SCRIPT_BASE_PATH
    CONFIG_DIR_NAME: str = ".eod-summary"
    CONFIG_FILE_NAME: str = "config.json"
    APP_VERSION: str = "1.0.0"

    # --- 枚举值 ---
    SUMMARY_TYPES = ("quick", "detailed", "bullets", "eod")
    OUTPUT_FORMATS = ("markdown", "json", "plain", "html")
    PROVIDERS = ("ollama", "gemini", "template")

    # --- Git 命令格式 ---
    # %x1f / %x1e 作为字段与记录分隔符，避免提交信息里的 | 干扰解析
    GIT_LOG_PRETTY = "--pretty=format:%H%x1f%an%x1f%ae%x1f%aI%x1f%s%x1e"
    GIT_COMMAND_TIMEOUT: int = 30

    # --- 智能过滤: 自动化提交 ---
    # 匹配在消息开头 (允许 chore: / build(deps): 这类前缀)
    AUTOMATED_COMMIT_PATTERNS: list[str] = [
        r"bump(?:s|ed|ing)?\b.*\bversion\b",
        r"bump(?:s|ed)? \S+ from \S+ to \S+",
        r"update(?:s|d)? (?:all )?dependenc(?:y|ies)\b",
        r"bot:",
        r"automated\b",
        r"auto-generated\b",
    ]

    # --- 默认排除的文件 (用户可在 config.json 中覆盖) ---
    DEFAULT_EXCLUDE_PATTERNS: list[str] = [
        "node_modules/**",
        "*.lock",
        "dist/**",
        "build/**",
        ".git/**",
        "vendor/**",
        "*.min.js",
        "*.min.css",
    ]

    # =================================================================
    # --- AI 供应商配置 ---
    # =================================================================

    # 1. 环境变量 (.env) 中的 API 密钥，仅在 config.json 未设置时使用
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

    # 2. 供应商的默认模型与地址
    DEFAULT_LLM: str = os.getenv("DEFAULT_LLM", "ollama").lower()
    DEFAULT_MODEL_GEMINI: str = "gemini-2.0-flash-lite"
    DEFAULT_OLLAMA_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    DEFAULT_MODEL_OLLAMA: str = os.getenv("OLLAMA_MODEL", "codellama:7b")

    # 3. 超时 (秒)
    DEFAULT_REQUEST_TIMEOUT: int = 60
    OLLAMA_PING_TIMEOUT: int = 5

    def get_config_path(self) -> str:
        return os.path.join(
            os.path.expanduser("~"), self.CONFIG_DIR_NAME, self.CONFIG_FILE_NAME
        )
