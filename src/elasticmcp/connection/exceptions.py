"""后端连接异常定义模块."""

from ..exceptions import ElasticMcpError, ErrorKind


class ConnectionConfigError(ElasticMcpError):
    """连接配置校验异常.

    当单个集群的连接参数不合法时抛出，例如 hosts 为空、URL 格式错误、
    超时时间为负数等。ConfigResolver 捕获该异常后丢弃对应条目。
    """

    kind = ErrorKind.CONFIG_INVALID


class BackendConnectionError(ElasticMcpError):
    """后端客户端创建失败.

    例如配置了当前传输层无法使用的认证方式。
    """

    pass
