# llm/template_provider.py
"""
模板摘要：不调用任何网络服务，仅根据提交数据生成内容。
这是最终的降级方案，对合法输入不会失败。
"""
import re
from datetime import date
from typing import List, Sequence

from llm.provider_abc import LLMProvider, register_provider
from models import Commit, CommitStats

_TYPE_PREFIX_RE = re.compile(
    r"^(feat|fix|chore|docs|refactor|style|test|perf)(\([^)]*\))?:\s*", re.IGNORECASE
)
TEMPLATE_NOTE = (
    "*Note: This is a template-based summary. Configure AI for more detailed analysis.*"
)


def summarize_message(message: str, limit: int = 120) -> str:
    """去掉 feat:/fix: 等前缀，并截断到 limit 个字符"""
    if not message:
        return "No message"
    cleaned = _TYPE_PREFIX_RE.sub("", message).strip()
    if len(cleaned) > limit:
        return cleaned[: limit - 3] + "..."
    return cleaned


def _main_files(stats: CommitStats, limit: int = 5) -> str:
    return ", ".join(stats.file_names[:limit]) or "None"


def _stats_line(stats: CommitStats, sep: str = " | ") -> str:
    return sep.join(
        [
            f"{stats.commit_count} commits",
            f"{stats.total_files} files",
            f"+{stats.total_insertions}/-{stats.total_deletions} lines",
        ]
    )


@register_provider("template")
class TemplateProvider(LLMProvider):
    """
    确定性模板策略实现。
    """

    @property
    def model_name(self) -> str:
        return "fallback"

    def generate(self, commits: Sequence[Commit], summary_type: str, day: date) -> str:
        stats = CommitStats.from_commits(commits)
        if summary_type == "detailed":
            return self._detailed(commits, stats)
        if summary_type == "bullets":
            return self._bullets(commits, stats)
        if summary_type == "eod":
            return self._eod(commits)
        return self._quick(commits, stats)

    def _quick(self, commits: Sequence[Commit], stats: CommitStats) -> str:
        commit_lines: List[str] = []
        for index, commit in enumerate(commits, start=1):
            line = f"- {index}. {summarize_message(commit.message)}"
            files = ", ".join(commit.file_names[:3])
            if files:
                line += f"\n  Files: {files}"
            line += f"\n  Commit: {commit.hash}\n  Changes: {commit.summary}"
            commit_lines.append(line)

        plural = "" if stats.commit_count == 1 else "s"
        return (
            f"**Key Work**: {stats.commit_count} commit{plural} completed\n"
            f"**Files**: {_main_files(stats)}\n"
            f"**Stats**: {_stats_line(stats, sep=', ')}\n"
            "\n---\n\n"
            "### Commits\n" + "\n".join(commit_lines)
        )

    def _detailed(self, commits: Sequence[Commit], stats: CommitStats) -> str:
        accomplishments = "\n".join(f"• {c.message}" for c in commits[:3])
        more = (
            f" and {stats.total_files - 5} more" if stats.total_files > 5 else ""
        )
        return (
            "## Key Accomplishments\n"
            f"{accomplishments}\n"
            "\n## Files Modified\n"
            f"{_main_files(stats)}{more}\n"
            "\n## Statistics\n"
            f"- **Commits**: {stats.commit_count}\n"
            f"- **Files Changed**: {stats.total_files}\n"
            f"- **Lines Added**: +{stats.total_insertions}\n"
            f"- **Lines Removed**: -{stats.total_deletions}\n"
            f"\n{TEMPLATE_NOTE}"
        )

    def _bullets(self, commits: Sequence[Commit], stats: CommitStats) -> str:
        lines = [f"• {c.message}" for c in commits]
        lines.append(f"• Files modified: {_main_files(stats)}")
        lines.append(f"• Statistics: {_stats_line(stats)}")
        return "\n".join(lines)

    def _eod(self, commits: Sequence[Commit]) -> str:
        highlights = "\n".join(f"- {summarize_message(c.message)}" for c in commits[:5])
        commit_lines = "\n".join(
            f"- {c.hash} — {summarize_message(c.message)}" for c in commits
        )
        return f"**EOD Update**\n\n{highlights}\n\n---\n\n### Commits\n{commit_lines}"
