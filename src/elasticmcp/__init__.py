"""elasticmcp - 通过 MCP 协议访问多个 Elasticsearch 集群.

把一个或多个 Elasticsearch 集群以带参数声明的命名操作形式暴露给 AI Agent。

主要功能:
    - ConfigResolver: 把多种格式的环境变量配置解析为规范化的多集群配置
    - ClusterRegistry: 集群名到后端连接的注册表，容忍部分集群不可达
    - OperationDispatcher: 按操作名分发请求，统一集群选择与错误封装

使用示例:
    import os
    from elasticmcp import ClusterRegistry, LazyRegistry, OperationDispatcher, resolve_config

    registry = LazyRegistry(lambda: ClusterRegistry.build(resolve_config(os.environ)))
    dispatcher = OperationDispatcher(registry.get)
    envelope = dispatcher.dispatch("es_search", {"index": "logs", "q": "error"})
"""

__version__ = "0.1.0"

from elasticmcp.config import ConfigResolver, resolve_config
from elasticmcp.connection import (
    BackendConnection,
    CanonicalConfig,
    ClusterConfig,
)
from elasticmcp.dispatch import CATALOG, OperationDispatcher
from elasticmcp.exceptions import (
    BackendFailureError,
    ClusterNotFoundError,
    ConfigInvalidError,
    ElasticMcpError,
    ErrorKind,
    InvalidArgumentsError,
    NoClustersAvailableError,
    UnknownOperationError,
)
from elasticmcp.registry import ClusterRegistry, LazyRegistry

__all__ = [
    # 版本
    "__version__",
    # 配置
    "ConfigResolver",
    "resolve_config",
    "ClusterConfig",
    "CanonicalConfig",
    # 连接与注册表
    "BackendConnection",
    "ClusterRegistry",
    "LazyRegistry",
    # 分发
    "OperationDispatcher",
    "CATALOG",
    # 异常
    "ErrorKind",
    "ElasticMcpError",
    "ConfigInvalidError",
    "ClusterNotFoundError",
    "NoClustersAvailableError",
    "UnknownOperationError",
    "InvalidArgumentsError",
    "BackendFailureError",
]
