"""操作分发模块.

主要组件:
    - OperationDispatcher: 按操作名分发请求并封装响应信封
    - CATALOG: 静态操作目录
    - Operation / FieldSpec: 操作与参数声明

使用示例:
    from elasticmcp.dispatch import OperationDispatcher

    dispatcher = OperationDispatcher(lazy_registry.get)
    dispatcher.dispatch("es_cluster_health", {})
"""

from .catalog import CATALOG, OPERATION_PREFIX
from .models import (
    CLUSTER_FIELD,
    FieldSpec,
    Operation,
    OperationCatalog,
    error_envelope,
    ok_envelope,
)
from .tool import OperationDispatcher

__all__ = [
    "OperationDispatcher",
    "CATALOG",
    "OPERATION_PREFIX",
    "CLUSTER_FIELD",
    "FieldSpec",
    "Operation",
    "OperationCatalog",
    "ok_envelope",
    "error_envelope",
]
