"""后端连接模块 - 单个集群的连接描述与客户端句柄.

主要组件:
    - ClusterConfig: 集群配置模型（认证、TLS、超时、索引命名策略）
    - CanonicalConfig: 规范化的多集群配置
    - BackendConnection: 包装 Elasticsearch 客户端的后端连接

使用示例:
    from elasticmcp.connection import BackendConnection, ClusterConfig

    conn = BackendConnection(ClusterConfig(name="local", hosts=("http://localhost:9200",)))
    conn.probe()
"""

from .exceptions import BackendConnectionError, ConnectionConfigError
from .models import (
    AuthConfig,
    CanonicalConfig,
    ClusterConfig,
    IndexPolicy,
    TimeoutConfig,
    TlsConfig,
)
from .tool import BackendConnection

__all__ = [
    # 连接
    "BackendConnection",
    # 模型
    "AuthConfig",
    "TlsConfig",
    "TimeoutConfig",
    "IndexPolicy",
    "ClusterConfig",
    "CanonicalConfig",
    # 异常
    "ConnectionConfigError",
    "BackendConnectionError",
]
