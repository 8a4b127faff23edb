"""elasticmcp 异常定义模块.

所有异常均继承自 ElasticMcpError。需要透传给调用方的异常携带一个
稳定的错误码（ErrorKind），由 OperationDispatcher 统一封装为响应信封。
"""

from enum import Enum


class ErrorKind(Enum):
    """对外暴露的错误码枚举.

    Attributes:
        CONFIG_INVALID: 任何配置来源都无法解析出有效的集群
        CLUSTER_NOT_FOUND: 请求的集群不在注册表中
        NO_CLUSTERS_AVAILABLE: 所有已配置集群均未通过存活探测
        UNKNOWN_OPERATION: 操作名不在操作目录中
        INVALID_ARGUMENTS: 参数未通过校验
        BACKEND_FAILURE: 后端调用本身失败
    """

    CONFIG_INVALID = "config_invalid"
    CLUSTER_NOT_FOUND = "cluster_not_found"
    NO_CLUSTERS_AVAILABLE = "no_clusters_available"
    UNKNOWN_OPERATION = "unknown_operation"
    INVALID_ARGUMENTS = "invalid_arguments"
    BACKEND_FAILURE = "backend_failure"


class ElasticMcpError(Exception):
    """elasticmcp 基础异常类."""

    kind: ErrorKind = ErrorKind.BACKEND_FAILURE


class ConfigInvalidError(ElasticMcpError):
    """没有任何有效的集群配置."""

    kind = ErrorKind.CONFIG_INVALID


class ClusterNotFoundError(ElasticMcpError):
    """请求的集群不存在.

    Attributes:
        name: 请求的集群名称
        available: 当前可用的集群名称列表
    """

    kind = ErrorKind.CLUSTER_NOT_FOUND

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = list(available)
        super().__init__(
            f"集群 '{name}' 不存在，可用集群: {', '.join(self.available)}"
        )


class NoClustersAvailableError(ElasticMcpError):
    """所有已配置的集群均不可用."""

    kind = ErrorKind.NO_CLUSTERS_AVAILABLE


class UnknownOperationError(ElasticMcpError):
    """操作名不在操作目录中."""

    kind = ErrorKind.UNKNOWN_OPERATION


class InvalidArgumentsError(ElasticMcpError):
    """参数校验失败.

    Attributes:
        field: 出错的参数名（无法定位到单个参数时为 None）
    """

    kind = ErrorKind.INVALID_ARGUMENTS

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class BackendFailureError(ElasticMcpError):
    """后端调用失败."""

    kind = ErrorKind.BACKEND_FAILURE
