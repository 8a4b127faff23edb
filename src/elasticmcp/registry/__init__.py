"""集群注册表模块.

主要组件:
    - ClusterRegistry: 集群名到后端连接的只读映射
    - LazyRegistry: 惰性单次构建的注册表访问器
"""

from .tool import ClusterRegistry, LazyRegistry

__all__ = [
    "ClusterRegistry",
    "LazyRegistry",
]
