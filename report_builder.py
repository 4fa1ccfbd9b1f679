# report_builder.py
"""
报告生成器 - 负责把 SummaryResult 渲染为 markdown / json / plain / html，
并保存到文件。markdown 与 html 使用 Jinja2 模板。
"""
import json
import logging
import os
import stat
import tempfile
from datetime import date, datetime

import markdown
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import GlobalConfig
from errors import OutputWriteError
from models import SummaryResult

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(GlobalConfig.SCRIPT_BASE_PATH, "templates")


def _get_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(["html", "xml", "html.j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def format_long_date(day: date) -> str:
    """例如: Monday, June 10, 2024"""
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


def _template_context(result: SummaryResult, include_stats: bool) -> dict:
    return {
        "title": f"EOD Summary - {format_long_date(result.date)}",
        "result": result,
        "metadata": result.metadata,
        "include_stats": include_stats,
        "generation_time": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    }


def format_as_markdown(result: SummaryResult, include_stats: bool = True) -> str:
    template = _get_environment().get_template("summary.md.j2")
    return template.render(**_template_context(result, include_stats))


def format_as_html(result: SummaryResult, include_stats: bool = True) -> str:
    content_html = markdown.markdown(
        result.content, extensions=["fenced_code", "tables", "sane_lists", "nl2br"]
    )
    template = _get_environment().get_template("report.html.j2")
    return template.render(
        content_html=content_html, **_template_context(result, include_stats)
    )


def format_output(
    result: SummaryResult, output_format: str = "markdown", include_stats: bool = True
) -> str:
    """
    按格式渲染摘要，未知格式按 markdown 处理。
    """
    output_format = (output_format or "markdown").lower()
    if output_format == "json":
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    if output_format == "plain":
        return result.content
    if output_format == "html":
        return format_as_html(result, include_stats)
    return format_as_markdown(result, include_stats)


def _target_mode(full_path: str) -> int:
    """已存在的文件保留原权限，新文件按 umask 计算"""
    try:
        return stat.S_IMODE(os.stat(full_path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def save_to_file(text: str, path: str) -> int:
    """
    保存报告到文件 (整体覆盖)，返回写入的字节数。
    先写入同目录下的临时文件，再原子替换目标文件。
    """
    full_path = os.path.abspath(path)
    directory = os.path.dirname(full_path)
    data = text.encode("utf-8")
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "wb", dir=directory, prefix=".eod-", suffix=".tmp", delete=False
        ) as f:
            tmp_path = f.name
            f.write(data)
        os.chmod(tmp_path, _target_mode(full_path))
        os.replace(tmp_path, full_path)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        logger.error(f"❌ 保存报告失败 ({full_path}): {e}")
        raise OutputWriteError(f"Failed to save file {full_path}: {e}") from e

    logger.info(f"✅ 报告已保存: {full_path} ({len(data)} bytes)")
    return len(data)
