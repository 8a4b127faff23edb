"""操作目录定义模块.

静态声明所有对外暴露的操作及其参数。每个操作的处理函数调用
BackendConnection 上的同名方法，集群选择与错误封装统一由
OperationDispatcher 完成。
"""

from typing import Any

from ..exceptions import InvalidArgumentsError
from .models import FieldSpec, Operation, OperationCatalog

# 工具名前缀
OPERATION_PREFIX = "es_"

# 单次搜索允许返回的最大文档数
MAX_RESULT_SIZE = 10000

_REFRESH_VALUES = (True, False, "true", "false", "wait_for")


def _call(method: str):
    """生成调用 BackendConnection 方法的处理函数."""

    def handler(connection: Any, kwargs: dict[str, Any]) -> Any:
        return getattr(connection, method)(**kwargs)

    handler.__name__ = method
    return handler


def _list_clusters(registry: Any, kwargs: dict[str, Any]) -> dict[str, Any]:
    return {
        "clusters": registry.list_names(),
        "default": registry.resolve().name,
    }


def _check_update(kwargs: dict[str, Any]) -> None:
    if "doc" not in kwargs and "script" not in kwargs:
        raise InvalidArgumentsError("必须提供 'doc' 或 'script' 之一", field="doc")


def _check_bulk(kwargs: dict[str, Any]) -> None:
    operations = kwargs["operations"]
    if not operations:
        raise InvalidArgumentsError("'operations' 不能为空", field="operations")
    for position, item in enumerate(operations):
        if not isinstance(item, dict):
            raise InvalidArgumentsError(
                f"'operations' 第 {position} 项必须是对象", field="operations"
            )


def _check_delete_index(kwargs: dict[str, Any]) -> None:
    parts = [part.strip() for part in kwargs["index"].split(",")]
    if any(part == "_all" or (part and not part.strip("*")) for part in parts):
        raise InvalidArgumentsError(
            f"不允许删除全部索引: '{kwargs['index']}'", field="index"
        )


def _index_field(required: bool = False, description: str = "索引名称") -> FieldSpec:
    return FieldSpec("index", ("string",), required=required, description=description)


def _refresh_field() -> FieldSpec:
    return FieldSpec(
        "refresh",
        ("boolean", "string"),
        description="刷新策略: true、false 或 'wait_for'",
        enum=_REFRESH_VALUES,
    )


_ID = FieldSpec("id", ("string",), required=True, description="文档 ID")
_ROUTING = FieldSpec("routing", ("string",), description="路由值")
_QUERY = FieldSpec("query", ("object",), description="查询 DSL")
_SEARCH_INDEX = FieldSpec(
    "index",
    ("string", "array"),
    description="索引名称或索引列表，省略时使用集群默认索引",
)
_SOURCE = FieldSpec(
    "_source",
    ("boolean", "string", "array", "object"),
    param="source",
    description="返回字段过滤",
)
_METADATA = FieldSpec("metadata", ("object",), description="附加元数据")


def _op(name: str, description: str, method: str, *fields: FieldSpec, **extra: Any) -> Operation:
    return Operation(
        name=f"{OPERATION_PREFIX}{name}",
        description=description,
        handler=_call(method),
        fields=fields,
        **extra,
    )


CATALOG = OperationCatalog.of(
    # 内省
    Operation(
        name=f"{OPERATION_PREFIX}list_clusters",
        description="列出当前可用的集群名称（按配置顺序）以及默认集群",
        handler=_list_clusters,
        cluster_selector=False,
        uses_registry=True,
    ),
    # 搜索与查询
    _op(
        "search",
        "使用查询 DSL 或简单查询字符串搜索文档",
        "search",
        _SEARCH_INDEX,
        _QUERY,
        FieldSpec("q", ("string",), description="简单查询字符串（查询 DSL 的替代）"),
        FieldSpec(
            "size",
            ("integer",),
            description="返回的文档数",
            minimum=0,
            maximum=MAX_RESULT_SIZE,
            default=10,
        ),
        FieldSpec(
            "from", ("integer",), param="from_", description="分页偏移量", minimum=0, default=0
        ),
        FieldSpec("sort", ("string", "array", "object"), description="排序规则"),
        _SOURCE,
        FieldSpec("highlight", ("object",), description="高亮配置"),
        FieldSpec("aggregations", ("object",), description="聚合配置"),
    ),
    _op(
        "aggregate",
        "对数据执行聚合分析",
        "aggregate",
        FieldSpec("index", ("string", "array"), required=True, description="索引名称"),
        FieldSpec("aggregations", ("object",), required=True, description="聚合配置"),
        FieldSpec("query", ("object",), description="聚合前的过滤查询"),
        FieldSpec(
            "size",
            ("integer",),
            description="同时返回的文档数",
            minimum=0,
            maximum=MAX_RESULT_SIZE,
            default=0,
        ),
    ),
    _op("count", "统计匹配查询的文档数", "count", _SEARCH_INDEX, _QUERY),
    # 文档管理
    _op(
        "index_document",
        "写入单个文档",
        "index_document",
        _index_field(required=True),
        FieldSpec("document", ("object",), required=True, description="文档内容"),
        FieldSpec("id", ("string",), description="文档 ID，省略时自动生成"),
        _refresh_field(),
        _ROUTING,
        FieldSpec("pipeline", ("string",), description="ingest pipeline"),
    ),
    _op(
        "bulk_index",
        "批量写入、更新或删除文档（bulk API 的操作行与文档行交替排列）",
        "bulk",
        FieldSpec(
            "operations", ("array",), required=True, description="bulk 操作行与文档行"
        ),
        _index_field(description="操作行未指定 _index 时使用的默认索引"),
        _refresh_field(),
        FieldSpec("pipeline", ("string",), description="ingest pipeline"),
        check=_check_bulk,
    ),
    _op(
        "get_document",
        "按 ID 获取文档",
        "get_document",
        _index_field(required=True),
        _ID,
        _SOURCE,
        _ROUTING,
    ),
    _op(
        "update_document",
        "局部更新文档（doc 或 script）",
        "update_document",
        _index_field(required=True),
        _ID,
        FieldSpec("doc", ("object",), description="局部更新的字段"),
        FieldSpec("script", ("object", "string"), description="更新脚本"),
        FieldSpec("upsert", ("object",), description="文档不存在时写入的内容"),
        FieldSpec("doc_as_upsert", ("boolean",), description="文档不存在时以 doc 写入"),
        _refresh_field(),
        FieldSpec(
            "retry_on_conflict", ("integer",), description="版本冲突重试次数", minimum=0
        ),
        check=_check_update,
    ),
    _op(
        "delete_document",
        "按 ID 删除文档",
        "delete_document",
        _index_field(required=True),
        _ID,
        _refresh_field(),
        _ROUTING,
    ),
    # 索引管理
    _op(
        "list_indices",
        "列出索引及其健康状态、文档数和存储大小",
        "list_indices",
        _index_field(description="索引名称或通配模式"),
        FieldSpec(
            "health", ("string",), description="按健康状态过滤", enum=("green", "yellow", "red")
        ),
        FieldSpec("sort", ("string",), description="排序列，例如 'index' 或 'docs.count:desc'"),
    ),
    _op(
        "create_index",
        "创建索引",
        "create_index",
        _index_field(required=True),
        FieldSpec("settings", ("object",), description="索引设置"),
        FieldSpec("mappings", ("object",), description="索引映射"),
        FieldSpec("aliases", ("object",), description="索引别名"),
    ),
    _op(
        "delete_index",
        "删除索引",
        "delete_index",
        _index_field(required=True),
        check=_check_delete_index,
    ),
    _op("index_exists", "检查索引是否存在", "index_exists", _index_field(required=True)),
    _op("refresh_index", "刷新索引使最近的写入可被搜索", "refresh_index", _index_field()),
    _op("get_mapping", "获取索引映射", "get_mapping", _index_field()),
    _op(
        "put_mapping",
        "更新索引映射",
        "put_mapping",
        _index_field(required=True),
        FieldSpec("mappings", ("object",), required=True, description="映射定义"),
    ),
    _op("index_stats", "获取索引统计信息", "index_stats", _index_field()),
    # 集群管理
    _op(
        "cluster_health",
        "获取集群健康状态",
        "cluster_health",
        _index_field(description="只检查指定索引"),
        FieldSpec(
            "level",
            ("string",),
            description="详细程度",
            enum=("cluster", "indices", "shards"),
            default="cluster",
        ),
        FieldSpec(
            "wait_for_status",
            ("string",),
            description="等待集群达到指定状态",
            enum=("green", "yellow", "red"),
        ),
        FieldSpec("timeout", ("string",), description="等待超时，例如 '30s'"),
    ),
    _op("cluster_stats", "获取集群统计信息（节点、索引、资源使用）", "cluster_stats"),
    _op("cluster_info", "获取集群基本信息（版本、构建信息）", "info"),
    # 安全管理
    _op(
        "get_user",
        "获取用户信息，省略 username 时返回全部用户",
        "get_user",
        FieldSpec("username", ("string", "array"), description="用户名"),
    ),
    _op(
        "put_user",
        "创建或更新用户",
        "put_user",
        FieldSpec("username", ("string",), required=True, description="用户名"),
        FieldSpec("password", ("string",), description="密码"),
        FieldSpec("roles", ("array",), description="角色列表"),
        FieldSpec("full_name", ("string",), description="全名"),
        FieldSpec("email", ("string",), description="邮箱"),
        _METADATA,
        FieldSpec("enabled", ("boolean",), description="是否启用"),
    ),
    _op(
        "delete_user",
        "删除用户",
        "delete_user",
        FieldSpec("username", ("string",), required=True, description="用户名"),
    ),
    _op(
        "get_role",
        "获取角色，省略 name 时返回全部角色",
        "get_role",
        FieldSpec("name", ("string", "array"), description="角色名"),
    ),
    _op(
        "put_role",
        "创建或更新角色",
        "put_role",
        FieldSpec("name", ("string",), required=True, description="角色名"),
        # cluster 是集群选择参数，集群权限改用 cluster_privileges
        FieldSpec(
            "cluster_privileges", ("array",), param="cluster", description="集群权限列表"
        ),
        FieldSpec("indices", ("array",), description="索引权限列表"),
        FieldSpec("applications", ("array",), description="应用权限列表"),
        FieldSpec("run_as", ("array",), description="可模拟的用户列表"),
        _METADATA,
    ),
    _op(
        "delete_role",
        "删除角色",
        "delete_role",
        FieldSpec("name", ("string",), required=True, description="角色名"),
    ),
    _op(
        "get_role_mapping",
        "获取角色映射，省略 name 时返回全部映射",
        "get_role_mapping",
        FieldSpec("name", ("string", "array"), description="角色映射名"),
    ),
    _op(
        "put_role_mapping",
        "创建或更新角色映射",
        "put_role_mapping",
        FieldSpec("name", ("string",), required=True, description="角色映射名"),
        FieldSpec("roles", ("array",), description="映射到的角色"),
        FieldSpec("rules", ("object",), description="匹配规则"),
        FieldSpec("enabled", ("boolean",), description="是否启用"),
        _METADATA,
    ),
    _op(
        "delete_role_mapping",
        "删除角色映射",
        "delete_role_mapping",
        FieldSpec("name", ("string",), required=True, description="角色映射名"),
    ),
)
