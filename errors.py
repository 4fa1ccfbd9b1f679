# errors.py
"""
错误分类

- 致命错误 (RepositoryError / ConfigurationError / OutputWriteError):
  由 Orchestrator 捕获，输出提示并以非零状态码退出。
- 可恢复错误 (ProviderError 及其子类):
  由 SummaryService 捕获，并降级为模板摘要。
"""


class EODSummaryError(Exception):
    """所有业务异常的基类"""


class RepositoryError(EODSummaryError):
    """不是 Git 仓库，或 git log / diff 查询失败"""


class ConfigurationError(EODSummaryError):
    """配置缺失 (作者邮箱、API Key、本地模型未安装等)，在任何网络调用之前抛出"""


class ProviderError(EODSummaryError):
    """LLM 供应商在生成过程中失败"""


class QuotaExceededError(ProviderError):
    pass


class InvalidCredentialError(ProviderError):
    pass


class EndpointUnreachableError(ProviderError):
    """本地推理服务未启动或请求超时"""


class ModelNotFoundError(ProviderError):
    pass


class InvalidDateError(ValueError):
    pass


class FutureDateError(InvalidDateError):
    pass


class OutputWriteError(IOError):
    """写入报告文件失败，原始异常保存在 __cause__ 中"""
