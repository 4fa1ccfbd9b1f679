# data_sources/base.py
from abc import ABC, abstractmethod
from datetime import date
from typing import List

from models import Commit


class DataSource(ABC):
    """
    数据源抽象基类
    定义了获取某一天提交记录的标准接口，Orchestrator 只依赖这个接口。
    """

    @abstractmethod
    def validate(self) -> None:
        """
        验证数据源是否可用，不可用时抛出 RepositoryError。
        """
        pass

    @abstractmethod
    def get_commits(self, day: date, include_all_authors: bool = False) -> List[Commit]:
        """
        获取指定日期的相关提交 (已过滤 merge/自动化提交)。
        没有提交时返回空列表，而不是抛出异常。
        """
        pass
