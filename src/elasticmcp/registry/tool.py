"""集群注册表工具模块.

提供:
    - ClusterRegistry: 集群名到 BackendConnection 的只读映射，构建时容忍部分集群不可达
    - LazyRegistry: 惰性、单次构建的注册表访问器，并发首次访问时只构建一次

使用示例:
    import os
    from elasticmcp.config import resolve_config
    from elasticmcp.registry import ClusterRegistry, LazyRegistry

    lazy = LazyRegistry(lambda: ClusterRegistry.build(resolve_config(os.environ)))
    conn = lazy.get().resolve("prod")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator

from ..connection.models import CanonicalConfig, ClusterConfig
from ..connection.tool import BackendConnection
from ..exceptions import (
    ClusterNotFoundError,
    ConfigInvalidError,
    NoClustersAvailableError,
)

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[ClusterConfig], BackendConnection]


class ClusterRegistry:
    """集群注册表.

    保存所有构建成功且通过存活探测的后端连接，按声明顺序排列。
    构建完成后只读，可被多个并发请求同时读取。

    Attributes:
        default_name: 解析后的默认集群名；配置的默认集群未存活时为 None

    Examples:
        >>> registry = ClusterRegistry.build(config)
        >>> registry.list_names()
        ['east', 'west']
        >>> registry.resolve().name
        'east'
    """

    def __init__(
        self,
        connections: dict[str, BackendConnection],
        default_name: str | None = None,
    ) -> None:
        if not connections:
            raise NoClustersAvailableError("没有可用的集群")
        self._connections = dict(connections)
        self.default_name = default_name if default_name in self._connections else None

    @classmethod
    def build(
        cls,
        config: CanonicalConfig,
        connection_factory: ConnectionFactory = BackendConnection,
    ) -> ClusterRegistry:
        """根据规范化配置构建注册表.

        按声明顺序为每个集群创建连接并做一次存活探测。单个集群创建失败或
        探测失败只记录警告并跳过，不影响其余集群。

        Args:
            config: 规范化配置
            connection_factory: 连接构造函数，默认 BackendConnection

        Returns:
            集群注册表

        Raises:
            ConfigInvalidError: 配置中没有任何集群时抛出
            NoClustersAvailableError: 所有集群均不可用时抛出
        """
        if not config.clusters:
            raise ConfigInvalidError(
                "未配置任何集群，请设置 ES_URL、ES_CLUSTER_NAME 或 ES_CLUSTERS"
            )

        connections: dict[str, BackendConnection] = {}
        failed: list[str] = []
        for name, cluster_config in config.clusters.items():
            try:
                connection = connection_factory(cluster_config)
            except Exception as e:
                logger.warning(f"集群 '{name}' 客户端创建失败，已跳过: {e}")
                failed.append(name)
                continue

            if not connection.probe():
                logger.warning(
                    f"集群 '{name}' ({cluster_config.endpoint}) 不可达，已跳过"
                )
                failed.append(name)
                _close_quietly(connection)
                continue

            logger.info(f"集群 '{name}' ({cluster_config.endpoint}) 连接成功")
            connections[name] = connection

        if not connections:
            raise NoClustersAvailableError(
                f"所有已配置的集群均不可用: {', '.join(failed)}"
            )

        default_name = config.default_cluster
        if default_name is not None and default_name not in connections:
            logger.warning(f"默认集群 '{default_name}' 不可用，将使用第一个可用集群")
            default_name = None

        registry = cls(connections, default_name)
        logger.info(
            f"集群注册表构建完成: 可用 {len(connections)} 个，"
            f"跳过 {len(failed)} 个，默认集群 '{registry.resolve().name}'"
        )
        return registry

    def resolve(self, name: str | None = None) -> BackendConnection:
        """按名称解析后端连接.

        Args:
            name: 集群名称；为 None 时返回默认集群，未设置默认集群时返回
                第一个可用集群

        Returns:
            后端连接

        Raises:
            ClusterNotFoundError: 指定名称的集群不存在时抛出，错误信息中列出可用集群
        """
        if name is None:
            if self.default_name is not None:
                return self._connections[self.default_name]
            return next(iter(self._connections.values()))

        try:
            return self._connections[name]
        except KeyError:
            raise ClusterNotFoundError(name, self.list_names()) from None

    def list_names(self) -> list[str]:
        """按构建顺序返回可用集群名称."""
        return list(self._connections)

    def close_all(self) -> None:
        """关闭所有连接.

        单个连接关闭失败只记录日志，继续关闭其余连接。
        """
        for name, connection in self._connections.items():
            try:
                connection.close()
                logger.info(f"集群 '{name}' 连接已关闭")
            except Exception as e:
                logger.error(f"关闭集群 '{name}' 连接失败: {e}")

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, name: object) -> bool:
        return name in self._connections

    def __iter__(self) -> Iterator[str]:
        return iter(self._connections)

    def __enter__(self) -> ClusterRegistry:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_all()


def _close_quietly(connection: BackendConnection) -> None:
    try:
        connection.close()
    except Exception as e:
        logger.debug(f"关闭不可达集群 '{connection.name}' 的连接失败: {e}")


class LazyRegistry:
    """惰性注册表访问器.

    首次调用 get() 时构建注册表并缓存，之后直接返回缓存实例。
    并发的首次调用只会有一个执行构建，其余调用等待并得到同一个注册表。
    构建失败不会被缓存，下一次调用会重新尝试。

    Args:
        loader: 无参构建函数，返回 ClusterRegistry
    """

    def __init__(self, loader: Callable[[], ClusterRegistry]) -> None:
        self._loader = loader
        self._registry: ClusterRegistry | None = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def is_built(self) -> bool:
        return self._registry is not None

    def get(self) -> ClusterRegistry:
        """获取注册表，必要时构建.

        Raises:
            NoClustersAvailableError: 注册表已关闭时抛出
        """
        registry = self._registry
        if registry is not None:
            return registry

        with self._lock:
            if self._closed:
                raise NoClustersAvailableError("集群注册表已关闭")
            if self._registry is None:
                logger.info("开始构建集群注册表")
                self._registry = self._loader()
            return self._registry

    def close(self) -> None:
        """关闭已构建的注册表.

        关闭后 get() 不再构建新的注册表。
        """
        with self._lock:
            self._closed = True
            registry, self._registry = self._registry, None
        if registry is not None:
            registry.close_all()

    def __call__(self) -> ClusterRegistry:
        return self.get()
