# data_sources/local_git.py
import logging
import os
from datetime import date
from typing import List

from .base import DataSource
from context import RunContext
from errors import RepositoryError
from models import Commit
import git_utils

logger = logging.getLogger(__name__)


class LocalGitDataSource(DataSource):
    """
    本地 Git 数据源实现。
    通过调用 git 命令行工具分析本地仓库 (只读)。
    """

    def __init__(self, context: RunContext):
        self.context = context
        self.repo_path = context.repo_path

    def validate(self) -> None:
        if not os.path.isdir(self.repo_path):
            raise RepositoryError(f"Path does not exist: {self.repo_path}")
        if not git_utils.is_git_repository(self.repo_path):
            raise RepositoryError(
                "Not a Git repository. Please run this command from within a Git repository."
            )
        logger.debug(f"✅ [DataSource] Git 仓库校验通过: {self.repo_path}")

    def get_commits(self, day: date, include_all_authors: bool = False) -> List[Commit]:
        user_config = self.context.user_config
        commits = git_utils.get_commits_by_date(
            self.repo_path,
            day,
            include_all_authors=include_all_authors,
            exclude_patterns=user_config.get("exclude_patterns"),
            timezone_offset=user_config.get("timezone_offset"),
        )
        logger.info(f"✅ [DataSource] 获取到 {len(commits)} 个相关提交")
        return commits
