"""操作分发工具模块.

提供 OperationDispatcher 类：查找操作、校验参数、选择集群、调用后端，
并把结果或错误统一封装为响应信封。

使用示例:
    from elasticmcp.dispatch import OperationDispatcher

    dispatcher = OperationDispatcher(lazy_registry.get)
    envelope = dispatcher.dispatch("es_search", {"index": "logs", "cluster": "east"})
"""

import logging
from collections.abc import Callable
from typing import Any

from ..exceptions import (
    BackendFailureError,
    ElasticMcpError,
    UnknownOperationError,
)
from ..registry.tool import ClusterRegistry
from .catalog import CATALOG
from .models import Operation, OperationCatalog, error_envelope, ok_envelope

logger = logging.getLogger(__name__)


def backend_message(error: Exception) -> str:
    """提取后端异常的原始信息."""
    return str(error) or type(error).__name__


class OperationDispatcher:
    """操作分发器.

    所有操作共享同一套集群选择和错误分类逻辑：

    1. 操作名不在目录中 -> UNKNOWN_OPERATION，不访问注册表
    2. 参数校验失败 -> INVALID_ARGUMENTS，不访问注册表
    3. 注册表构建失败 -> CONFIG_INVALID / NO_CLUSTERS_AVAILABLE
    4. 集群不存在 -> CLUSTER_NOT_FOUND
    5. 后端调用失败 -> BACKEND_FAILURE，原样透传后端错误信息

    分发不会修改注册表，首次调用可能触发注册表的惰性构建。

    Args:
        registry: 返回 ClusterRegistry 的无参函数，通常是 LazyRegistry.get
        catalog: 操作目录，默认 CATALOG
    """

    def __init__(
        self,
        registry: Callable[[], ClusterRegistry],
        catalog: OperationCatalog = CATALOG,
    ) -> None:
        self._registry = registry
        self.catalog = catalog

    def get_operation(self, name: str) -> Operation:
        """按名称查找操作.

        Raises:
            UnknownOperationError: 操作不存在时抛出
        """
        operation = self.catalog.get(name) if isinstance(name, str) else None
        if operation is None:
            raise UnknownOperationError(f"未知操作: {name}")
        return operation

    def execute(self, name: str, arguments: Any = None) -> Any:
        """执行操作并返回原始结果.

        Raises:
            ElasticMcpError: 任一阶段失败时抛出对应子类，后端异常包装为
                BackendFailureError
        """
        operation = self.get_operation(name)
        cluster, kwargs = operation.bind(arguments)

        registry = self._registry()
        if operation.uses_registry:
            return operation.handler(registry, kwargs)

        connection = registry.resolve(cluster)
        logger.debug(f"操作 {name} 分发到集群 '{connection.name}'")
        try:
            return operation.handler(connection, kwargs)
        except ElasticMcpError:
            raise
        except Exception as e:
            raise BackendFailureError(backend_message(e)) from e

    def dispatch(self, name: str, arguments: Any = None) -> dict[str, Any]:
        """执行操作并返回响应信封.

        不会抛出异常，所有失败都以 {"status": "error", ...} 返回。

        Args:
            name: 操作名
            arguments: 参数对象

        Returns:
            成功时为 {"status": "ok", "result": ...}，
            失败时为 {"status": "error", "code": ..., "message": ...}
        """
        try:
            result = self.execute(name, arguments)
        except ElasticMcpError as e:
            logger.warning(f"操作 {name} 失败 [{e.kind.value}]: {e}")
            return error_envelope(e.kind, str(e))
        except Exception as e:
            # 注册表构建函数抛出的非预期异常
            logger.exception(f"操作 {name} 发生未预期的异常: {e}")
            return error_envelope(BackendFailureError.kind, backend_message(e))
        return ok_envelope(result)
