"""配置解析模块 - 将环境变量解析为规范化的多集群配置.

使用示例:
    import os
    from elasticmcp.config import resolve_config

    config = resolve_config(os.environ)
"""

from .constants import DEFAULT_CLUSTER_NAME, EnvVars
from .resolver import (
    DEFAULT_RULES,
    ConfigResolver,
    build_cluster_config,
    bulk_clusters_rule,
    legacy_cluster_rule,
    named_cluster_rule,
    resolve_config,
)

__all__ = [
    "ConfigResolver",
    "resolve_config",
    "build_cluster_config",
    "named_cluster_rule",
    "bulk_clusters_rule",
    "legacy_cluster_rule",
    "DEFAULT_RULES",
    "DEFAULT_CLUSTER_NAME",
    "EnvVars",
]
