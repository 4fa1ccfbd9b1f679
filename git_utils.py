# git_utils.py
import fnmatch
import logging
import re
import subprocess
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from config import GlobalConfig
from errors import ConfigurationError, RepositoryError
from models import Commit, CommitDetails, DetailsResult, FileChange

logger = logging.getLogger(__name__)

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"

# 可选的 conventional commit 前缀，例如 "chore: " / "build(deps): "
_CONVENTIONAL_PREFIX = r"^(?:[a-z]+(?:\([^)]*\))?!?:\s*)?"
_OFFSET_RE = re.compile(r"^[+-]\d{2}:\d{2}$")


def run_git_command(
    args: List[str],
    repo_path: str,
    context: str = "执行Git命令",
    timeout: int = GlobalConfig.GIT_COMMAND_TIMEOUT,
) -> str:
    """
    统一的Git命令执行函数
    - 在 repo_path 下执行，失败时抛出 RepositoryError (保留原始异常)
    """
    cmd = ["git", *args]
    logger.debug(f"在 {repo_path} 中执行命令: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=timeout,
            cwd=repo_path,
        )
    except subprocess.TimeoutExpired as e:
        raise RepositoryError(f"{context}超时") from e
    except OSError as e:
        raise RepositoryError(f"{context}出错: {e}") from e

    if result.returncode != 0:
        raise RepositoryError(f"{context}失败: {result.stderr.strip()}")
    logger.debug(f"{context}成功，输出 {len(result.stdout.splitlines())} 行")
    return result.stdout


def is_git_repository(repo_path: str) -> bool:
    """检查指定路径是否位于 Git 工作区内"""
    try:
        output = run_git_command(
            ["rev-parse", "--is-inside-work-tree"], repo_path, "检查Git仓库"
        )
    except RepositoryError:
        return False
    return output.strip() == "true"


def get_current_user_email(repo_path: str) -> str:
    """读取 git config user.email，未配置时抛出 ConfigurationError"""
    try:
        email = run_git_command(
            ["config", "user.email"], repo_path, "读取Git用户邮箱"
        ).strip()
    except RepositoryError:
        # 未设置时 git config 以状态码 1 退出
        email = ""
    if not email:
        raise ConfigurationError(
            "Git user email not configured. Please set it with: "
            'git config user.email "your-email@example.com"'
        )
    return email


def resolve_utc_offset(day: date, timezone_offset: Optional[str] = None) -> str:
    """
    返回 "+HH:MM" 形式的时区偏移。
    未配置时使用本机在当天的本地偏移。
    """
    if timezone_offset:
        if not _OFFSET_RE.match(timezone_offset):
            raise ConfigurationError(
                f"Invalid timezone_offset '{timezone_offset}', expected +HH:MM"
            )
        return timezone_offset
    local = datetime(day.year, day.month, day.day, 12).astimezone().strftime("%z")
    return f"{local[:3]}:{local[3:]}"


def build_time_window(day: date, offset: str) -> Tuple[str, str]:
    """当天 00:00:00 ~ 23:59:59 (闭区间)"""
    day_str = day.strftime("%Y-%m-%d")
    return f"{day_str}T00:00:00{offset}", f"{day_str}T23:59:59{offset}"


def get_git_log(
    repo_path: str, since: str, until: str, author_email: Optional[str] = None
) -> str:
    """获取时间窗口内 (所有分支、不含 merge) 的提交记录"""
    args = ["log", f"--since={since}", f"--until={until}", "--no-merges", "--all"]
    if author_email:
        args.append(f"--author={author_email}")
    args.append(GlobalConfig.GIT_LOG_PRETTY)
    return run_git_command(args, repo_path, "获取Git提交历史")


def parse_git_log(log_output: str) -> List[Dict[str, str]]:
    """解析 git log 输出为字段字典列表，保持 git 返回的顺序"""
    records = []
    if not log_output or not log_output.strip():
        logger.info("ℹ️ Git日志输出为空")
        return records
    for raw in log_output.split(RECORD_SEP):
        raw = raw.strip("\r\n")
        if not raw.strip():
            continue
        parts = raw.split(FIELD_SEP)
        if len(parts) < 5:
            logger.warning(f"⚠️ 提交格式异常: {raw!r}")
            continue
        records.append(
            {
                "hash": parts[0].strip(),
                "author": parts[1],
                "email": parts[2],
                "date": parts[3].strip(),
                "message": FIELD_SEP.join(parts[4:]).strip(),
            }
        )
    logger.debug(f"成功解析 {len(records)} 个提交")
    return records


def parse_numstat(
    output: str, exclude_patterns: Optional[Sequence[str]] = None
) -> List[FileChange]:
    """解析 git diff --numstat 输出，跳过匹配排除规则的文件"""
    patterns = exclude_patterns or []
    changes: List[FileChange] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) < 3:
            continue
        added, deleted = parts[0].strip(), parts[1].strip()
        path = "\t".join(parts[2:]).strip()

        if any(fnmatch.fnmatch(path, pattern) for pattern in patterns):
            logger.debug(f"智能过滤: 已跳过文件 {path}")
            continue

        binary = added == "-" and deleted == "-"
        changes.append(
            FileChange(
                path=path,
                insertions=int(added) if added.isdigit() else 0,
                deletions=int(deleted) if deleted.isdigit() else 0,
                binary=binary,
            )
        )
    return changes


def get_commit_details(
    repo_path: str, commit_hash: str, exclude_patterns: Optional[Sequence[str]] = None
) -> DetailsResult:
    """
    获取单个提交相对第一个父提交的文件统计。
    根提交或任何失败都返回带 error 的结果，而不是抛出异常。
    """
    try:
        output = run_git_command(
            ["diff", "--numstat", f"{commit_hash}^", commit_hash],
            repo_path,
            f"获取 {commit_hash[:7]} 的统计",
        )
        files = parse_numstat(output, exclude_patterns)
    except (RepositoryError, ValueError) as e:
        return DetailsResult(commit_hash=commit_hash, error=e)
    return DetailsResult(commit_hash=commit_hash, details=CommitDetails.from_files(files))


def _compile_automated_patterns(patterns: Iterable[str]) -> List[re.Pattern]:
    return [re.compile(_CONVENTIONAL_PREFIX + p, re.IGNORECASE) for p in patterns]


def is_relevant_commit(commit: Commit, automated_patterns: List[re.Pattern]) -> bool:
    message = commit.message or ""
    if "merge" in message.lower():
        return False
    if "[bot]" in message.lower() or "[bot]" in (commit.author or "").lower():
        return False
    return not any(p.search(message) for p in automated_patterns)


def filter_relevant_commits(
    commits: Sequence[Commit], patterns: Optional[Iterable[str]] = None
) -> List[Commit]:
    """去掉 merge 提交和自动化提交 (版本号、依赖更新、机器人)"""
    compiled = _compile_automated_patterns(
        GlobalConfig.AUTOMATED_COMMIT_PATTERNS if patterns is None else patterns
    )
    relevant = [c for c in commits if is_relevant_commit(c, compiled)]
    skipped = len(commits) - len(relevant)
    if skipped:
        logger.info(f"智能过滤: 已跳过 {skipped} 个 merge/自动化提交")
    return relevant


def get_commits_by_date(
    repo_path: str,
    day: date,
    include_all_authors: bool = False,
    exclude_patterns: Optional[Sequence[str]] = None,
    timezone_offset: Optional[str] = None,
) -> List[Commit]:
    """
    获取指定日期的提交，并补充每个提交的文件统计。
    """
    author_email = None if include_all_authors else get_current_user_email(repo_path)
    offset = resolve_utc_offset(day, timezone_offset)
    since, until = build_time_window(day, offset)
    logger.info(
        f"📅 获取提交记录: {since} ~ {until} "
        f"(作者: {author_email or '全部'})"
    )

    records = parse_git_log(get_git_log(repo_path, since, until, author_email))

    commits: List[Commit] = []
    for record in records:
        try:
            committed_at = datetime.fromisoformat(record["date"])
        except ValueError:
            logger.warning(f"⚠️ 无法解析提交时间: {record['date']} ({record['hash']})")
            continue

        # 逐个获取，避免同时启动大量 git 进程
        result = get_commit_details(repo_path, record["hash"], exclude_patterns)
        if not result.ok:
            logger.warning(
                f"⚠️ 无法获取提交 {record['hash'][:7]} 的详情: {result.error}"
            )
        details = result.unwrap_or(CommitDetails.unavailable())

        commits.append(
            Commit(
                hash=record["hash"][:7],
                message=record["message"],
                author=record["author"],
                email=record["email"],
                date=committed_at,
                files=details.files,
                insertions=details.insertions,
                deletions=details.deletions,
                summary=details.summary,
            )
        )

    return filter_relevant_commits(commits)
