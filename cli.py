# cli.py
"""
命令行界面 (Interface) 层
- generate (默认): 生成指定日期的摘要
- setup: 交互式配置
- config: 查看当前配置 (API Key 部分隐藏)
"""
import argparse
import json
import logging
import os
from typing import List, Optional

import config_manager
from config import GlobalConfig
from context import RunContext
from errors import ConfigurationError
from orchestrator import SummaryOrchestrator

logger = logging.getLogger(__name__)


def _add_generate_arguments(parser: argparse.ArgumentParser, default=None):
    parser.add_argument(
        "-d",
        "--date",
        type=str,
        default=default,
        help="摘要日期 (DD-MM-YYYY, today, yesterday)。\n(默认: today)",
    )
    parser.add_argument(
        "-t",
        "--type",
        dest="summary_type",
        type=str,
        default=default,
        help="摘要类型: quick, detailed, bullets, eod。\n"
        "(默认: 使用 config.json 中的 default_summary_type)",
    )
    parser.add_argument(
        "-o", "--output", type=str, default=default, help="输出文件路径 (可选)"
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="output_format",
        type=str,
        choices=GlobalConfig.OUTPUT_FORMATS,
        default=default,
        help="输出格式: markdown, json, plain, html。\n"
        "(默认: 使用 config.json 中的 default_output_format)",
    )
    parser.add_argument(
        "-r",
        "--repo-path",
        type=str,
        default=default,
        help="Git 仓库路径 (默认: 当前目录)",
    )
    parser.add_argument(
        "--all",
        dest="include_all_authors",
        action="store_true",
        default=default,
        help="包含所有作者的提交 (默认: 只统计自己的)",
    )
    parser.add_argument(
        "--no-ai",
        action="store_true",
        default=default,
        help="禁用 AI，仅使用模板摘要",
    )


def setup_parser() -> argparse.ArgumentParser:
    """
    负责所有 argparse 的定义。
    """
    parser = argparse.ArgumentParser(
        prog="eod-summary",
        description="根据 Git 提交生成每日工作总结 (EOD Summary)",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    _add_generate_arguments(parser)

    subparsers = parser.add_subparsers(dest="command")
    gen_parser = subparsers.add_parser(
        "generate",
        aliases=["gen"],
        help="生成指定日期的摘要 (默认命令)",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    # 子命令不设默认值，避免覆盖子命令之前已解析的参数
    _add_generate_arguments(gen_parser, default=argparse.SUPPRESS)
    subparsers.add_parser("setup", help="配置 AI 供应商与默认值")
    subparsers.add_parser("config", help="查看当前配置")
    return parser


def build_run_context(args: argparse.Namespace) -> RunContext:
    """合并命令行参数与用户配置"""
    user_config = config_manager.load_config()
    return RunContext(
        repo_path=os.path.abspath(args.repo_path or os.getcwd()),
        date_input=args.date or "today",
        summary_type=(
            args.summary_type or user_config.get("default_summary_type") or "quick"
        ).lower(),
        output_format=args.output_format
        or user_config.get("default_output_format")
        or "markdown",
        output_path=args.output,
        include_all_authors=bool(args.include_all_authors),
        no_ai=bool(args.no_ai),
        user_config=user_config,
        global_config=GlobalConfig(),
    )


def run_cli(argv: Optional[List[str]] = None) -> int:
    """
    主入口点，返回进程退出码。
    """
    parser = setup_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "setup":
        try:
            config_manager.run_interactive_setup_wizard()
        except ConfigurationError as e:
            logger.error(f"❌ 配置失败: {e}")
            return 1
        return 0

    if args.command == "config":
        print("Current Configuration:")
        print(json.dumps(config_manager.get_masked_config(), indent=2, ensure_ascii=False))
        return 0

    context = build_run_context(args)
    logger.debug(
        f"🚀 [仓库]: {context.repo_path} [日期]: {context.date_input} "
        f"[类型]: {context.summary_type} [格式]: {context.output_format}"
    )
    return SummaryOrchestrator(context).run()

