# models.py
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class FileChange:
    """单个文件的变更统计"""

    path: str
    insertions: int = 0
    deletions: int = 0
    binary: bool = False


@dataclass(frozen=True)
class Commit:
    """Git提交数据模型 (只由 Commit Source 构建)"""

    hash: str
    message: str
    author: str
    email: str
    date: datetime
    files: Tuple[FileChange, ...] = ()
    insertions: int = 0
    deletions: int = 0
    summary: str = ""

    @property
    def file_names(self) -> List[str]:
        return [f.path for f in self.files]


@dataclass(frozen=True)
class CommitDetails:
    """单个提交的 diff 统计结果"""

    files: Tuple[FileChange, ...]
    insertions: int
    deletions: int
    summary: str

    @classmethod
    def from_files(cls, files: Sequence[FileChange]) -> "CommitDetails":
        insertions = sum(f.insertions for f in files)
        deletions = sum(f.deletions for f in files)
        return cls(
            files=tuple(files),
            insertions=insertions,
            deletions=deletions,
            summary=f"{len(files)} files changed, {insertions} insertions(+), "
            f"{deletions} deletions(-)",
        )

    @classmethod
    def unavailable(cls) -> "CommitDetails":
        return cls(files=(), insertions=0, deletions=0, summary="Details unavailable")


@dataclass(frozen=True)
class DetailsResult:
    """
    一次 diff 统计的结果：要么是 details，要么是 error。
    由调用方统一 unwrap，单个提交失败不会影响整批。
    """

    commit_hash: str
    details: Optional[CommitDetails] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.details is not None

    def unwrap_or(self, default: CommitDetails) -> CommitDetails:
        return self.details if self.ok else default


@dataclass(frozen=True)
class CommitStats:
    """提交集合的汇总统计 (提示词、模板与 metadata 共用同一份)"""

    commit_count: int
    file_names: Tuple[str, ...]
    total_insertions: int
    total_deletions: int

    @property
    def total_files(self) -> int:
        return len(self.file_names)

    @classmethod
    def from_commits(cls, commits: Sequence[Commit]) -> "CommitStats":
        # 保持首次出现的顺序，便于模板取"主要文件"
        names: Dict[str, None] = {}
        for commit in commits:
            for change in commit.files:
                names.setdefault(change.path, None)
        return cls(
            commit_count=len(commits),
            file_names=tuple(names),
            total_insertions=sum(c.insertions for c in commits),
            total_deletions=sum(c.deletions for c in commits),
        )


@dataclass
class SummaryMetadata:
    commits_analyzed: int
    total_files: int
    total_insertions: int
    total_deletions: int
    ai_provider: str
    model: str

    @classmethod
    def from_commits(
        cls, commits: Sequence[Commit], provider: str, model: str
    ) -> "SummaryMetadata":
        stats = CommitStats.from_commits(commits)
        return cls(
            commits_analyzed=stats.commit_count,
            total_files=stats.total_files,
            total_insertions=stats.total_insertions,
            total_deletions=stats.total_deletions,
            ai_provider=provider,
            model=model,
        )


@dataclass
class SummaryResult:
    """一次摘要生成的完整结果"""

    summary_type: str
    date: date
    content: str
    provider: str
    metadata: SummaryMetadata = field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.summary_type,
            "date": self.date.isoformat(),
            "content": self.content,
            "provider": self.provider,
            "metadata": {
                "commits_analyzed": self.metadata.commits_analyzed,
                "total_files": self.metadata.total_files,
                "total_insertions": self.metadata.total_insertions,
                "total_deletions": self.metadata.total_deletions,
                "ai_provider": self.metadata.ai_provider,
                "model": self.metadata.model,
            },
        }
