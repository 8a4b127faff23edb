"""测试辅助工具."""

from unittest.mock import MagicMock

from elasticmcp.connection.models import CanonicalConfig, ClusterConfig
from elasticmcp.connection.tool import BackendConnection


def make_canonical(*names: str, default: str | None = None) -> CanonicalConfig:
    """按给定顺序构造规范化配置."""
    clusters = {
        name: ClusterConfig(name=name, hosts=(f"http://{name}:9200",)) for name in names
    }
    return CanonicalConfig(clusters=clusters, default_cluster=default)


class FakeConnectionFactory:
    """模拟 BackendConnection 构造函数.

    Attributes:
        unreachable: 存活探测失败的集群名
        broken: 构造时抛出异常的集群名
        created: 按创建顺序记录的连接
    """

    def __init__(self, unreachable=(), broken=()) -> None:
        self.unreachable = set(unreachable)
        self.broken = set(broken)
        self.created: dict[str, MagicMock] = {}

    def __call__(self, config: ClusterConfig) -> MagicMock:
        if config.name in self.broken:
            raise ValueError(f"cannot create client for {config.name}")
        connection = MagicMock(spec=BackendConnection)
        connection.name = config.name
        connection.config = config
        connection.probe.return_value = config.name not in self.unreachable
        self.created[config.name] = connection
        return connection
