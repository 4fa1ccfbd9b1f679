# orchestrator.py
"""
业务逻辑编排器
校验输入 -> 获取提交 -> 生成摘要 (含降级) -> 格式化 -> 输出
"""
import logging
from typing import Optional

from context import RunContext
from ai_summarizer import SummaryService
from data_sources.base import DataSource
from data_sources.local_git import LocalGitDataSource
from errors import (
    ConfigurationError,
    InvalidDateError,
    OutputWriteError,
    RepositoryError,
)
import report_builder
import utils

logger = logging.getLogger(__name__)


class SummaryOrchestrator:
    """
    负责执行摘要生成的核心业务流程。
    """

    def __init__(self, context: RunContext, data_source: Optional[DataSource] = None):
        self.context = context
        self.global_config = context.global_config
        self.data_source = data_source or LocalGitDataSource(context)

    def validate_summary_type(self, summary_type: str) -> str:
        valid_types = self.global_config.SUMMARY_TYPES
        if summary_type not in valid_types:
            raise ValueError(
                f"Invalid summary type: {summary_type}. "
                f"Valid types: {', '.join(valid_types)}"
            )
        return summary_type

    def run(self) -> int:
        """
        执行核心业务流程，返回进程退出码。
        """
        try:
            return self._run()
        except InvalidDateError as e:
            logger.error(f"❌ 日期无效: {e}")
        except ValueError as e:
            logger.error(f"❌ 参数无效: {e}")
        except RepositoryError as e:
            logger.error(f"❌ Git 仓库访问失败: {e}")
        except ConfigurationError as e:
            logger.error(f"❌ 配置错误: {e}")
        except OutputWriteError as e:
            logger.error(f"❌ 输出失败: {e} (原因: {e.__cause__})")
        return 1

    def _run(self) -> int:
        # --- 0. 校验输入 ---
        day = utils.validate_date(self.context.date_input)
        summary_type = self.validate_summary_type(self.context.summary_type)

        # --- 1. 验证数据源 ---
        self.data_source.validate()

        # --- 2. 获取 Git 数据 ---
        logger.info(f"🔍 正在分析 {utils.format_date(day)} 的 Git 历史...")
        commits = self.data_source.get_commits(day, self.context.include_all_authors)

        if not commits:
            logger.warning(f"⚠️ 未找到 {utils.format_date(day)} 的提交记录")
            logger.info("   提示:")
            logger.info("   - 请确认当天有提交")
            logger.info("   - 检查 Git 邮箱是否配置: git config user.email")
            logger.info("   - 使用 --all 包含所有作者的提交")
            return 0

        logger.info(f"✅ 找到 {len(commits)} 个提交，正在生成摘要...")

        # --- 3. 生成摘要 ---
        result = SummaryService(self.context).generate(commits, summary_type, day)

        # --- 4. 格式化 ---
        output = report_builder.format_output(
            result,
            self.context.output_format,
            include_stats=self.context.user_config.get("include_stats", True),
        )

        # --- 5. 输出 ---
        if self.context.output_path:
            size = report_builder.save_to_file(output, self.context.output_path)
            logger.info(f"✅ 摘要已保存至 {self.context.output_path} ({size} bytes)")
        else:
            logger.info("✅ 摘要生成成功！")
            print("\n" + output)
        return 0
