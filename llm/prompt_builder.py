# llm/prompt_builder.py
"""
提示词构建：纯文本模板，与具体供应商无关。
"""
import functools
import logging
import os
from datetime import date
from typing import Dict, Optional, Sequence

from models import Commit, CommitStats
from utils import format_date

logger = logging.getLogger(__name__)

PROMPT_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "prompts")


def load_prompts_from_dir(prompt_dir: str) -> Dict[str, str]:
    """递归加载所有 .txt 模板，key 为相对路径 (不含扩展名)"""
    prompts = {}
    for root, _, files in os.walk(prompt_dir):
        for filename in files:
            if filename.endswith(".txt"):
                file_path = os.path.join(root, filename)
                relative_path = os.path.relpath(file_path, prompt_dir)
                key = os.path.splitext(relative_path)[0].replace(os.path.sep, "/")
                with open(file_path, "r", encoding="utf-8") as f:
                    prompts[key] = f.read()
    if not prompts:
        logger.warning(f"⚠️ 在 {prompt_dir} 中未找到 .txt 提示词。")
    return prompts


@functools.lru_cache(maxsize=None)
def get_prompt_templates() -> Dict[str, str]:
    return load_prompts_from_dir(PROMPT_DIR)


def format_commits_for_prompt(commits: Sequence[Commit]) -> str:
    blocks = []
    for index, commit in enumerate(commits, start=1):
        files = ", ".join(
            f"{f.path} (+{f.insertions}/-{f.deletions})" for f in commit.files
        )
        blocks.append(
            f"{index}. Commit: {commit.hash}\n"
            f"   Message: {commit.message}\n"
            f"   Files: {files or 'No file details'}\n"
            f"   Changes: {commit.summary}"
        )
    return "\n\n".join(blocks)


def build_base_context(commits: Sequence[Commit], day: date) -> str:
    stats = CommitStats.from_commits(commits)
    return (
        f"Date: {format_date(day)}\n"
        f"Number of commits: {stats.commit_count}\n"
        f"Total files changed: {stats.total_files}\n"
        f"Total lines added: {stats.total_insertions}\n"
        f"Total lines removed: {stats.total_deletions}\n"
        "\n"
        "COMMITS DATA:\n"
        f"{format_commits_for_prompt(commits)}\n"
    )


def build_prompt(
    commits: Sequence[Commit],
    summary_type: str,
    day: date,
    templates: Optional[Dict[str, str]] = None,
) -> str:
    """按摘要类型选择模板，未知类型回退到 quick"""
    templates = templates if templates is not None else get_prompt_templates()
    template = templates.get(summary_type) or templates["quick"]
    return template.format(context=build_base_context(commits, day))
