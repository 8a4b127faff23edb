"""FieldSpec、Operation 与操作目录单元测试."""

import pytest

from elasticmcp.connection.tool import BackendConnection
from elasticmcp.dispatch.catalog import CATALOG, OPERATION_PREFIX
from elasticmcp.dispatch.models import (
    CLUSTER_FIELD,
    FieldSpec,
    Operation,
    OperationCatalog,
    error_envelope,
    ok_envelope,
)
from elasticmcp.exceptions import ErrorKind, InvalidArgumentsError


def _noop(connection, kwargs):
    return kwargs


class TestFieldSpec:
    """FieldSpec 测试."""

    def test_unknown_type_raises(self) -> None:
        """测试非法类型声明."""
        with pytest.raises(ValueError):
            FieldSpec("x", ("date",))

    def test_type_mismatch(self) -> None:
        """测试类型不匹配."""
        spec = FieldSpec("size", ("integer",))
        with pytest.raises(InvalidArgumentsError) as exc_info:
            spec.validate("10")
        assert exc_info.value.field == "size"

    def test_bool_is_not_integer(self) -> None:
        """测试布尔值不被视为整数."""
        with pytest.raises(InvalidArgumentsError):
            FieldSpec("size", ("integer",)).validate(True)

    def test_union_type(self) -> None:
        """测试多类型参数."""
        spec = FieldSpec("index", ("string", "array"))
        spec.validate("logs")
        spec.validate(["logs", "metrics"])

    def test_enum(self) -> None:
        """测试枚举值校验."""
        spec = FieldSpec("level", ("string",), enum=("cluster", "indices"))
        spec.validate("indices")
        with pytest.raises(InvalidArgumentsError, match="可选值"):
            spec.validate("nodes")

    def test_range(self) -> None:
        """测试取值范围校验."""
        spec = FieldSpec("size", ("integer",), minimum=0, maximum=100)
        spec.validate(0)
        spec.validate(100)
        with pytest.raises(InvalidArgumentsError):
            spec.validate(-1)
        with pytest.raises(InvalidArgumentsError):
            spec.validate(101)

    def test_required_blank_string(self) -> None:
        """测试必需字符串参数不能为空白."""
        with pytest.raises(InvalidArgumentsError, match="不能为空"):
            FieldSpec("index", ("string",), required=True).validate("  ")

    def test_json_schema(self) -> None:
        """测试生成 JSON Schema."""
        spec = FieldSpec(
            "size", ("integer",), description="数量", minimum=0, maximum=10, default=5
        )
        assert spec.json_schema() == {
            "type": "integer",
            "description": "数量",
            "minimum": 0,
            "maximum": 10,
            "default": 5,
        }
        assert FieldSpec("index", ("string", "array")).json_schema() == {
            "type": ["string", "array"]
        }


class TestOperation:
    """Operation 测试."""

    @pytest.fixture
    def operation(self) -> Operation:
        return Operation(
            name="es_demo",
            description="demo",
            handler=_noop,
            fields=(
                FieldSpec("index", ("string",), required=True),
                FieldSpec("from", ("integer",), param="from_"),
            ),
        )

    def test_bind_splits_cluster(self, operation) -> None:
        """测试拆分集群选择参数."""
        cluster, kwargs = operation.bind({"index": "logs", "cluster": "east"})
        assert cluster == "east"
        assert kwargs == {"index": "logs"}

    def test_bind_renames_param(self, operation) -> None:
        """测试参数名映射."""
        _, kwargs = operation.bind({"index": "logs", "from": 20})
        assert kwargs == {"index": "logs", "from_": 20}

    def test_bind_none_treated_as_absent(self, operation) -> None:
        """测试值为 None 的可选参数视为未传."""
        cluster, kwargs = operation.bind({"index": "logs", "from": None, "cluster": None})
        assert cluster is None
        assert kwargs == {"index": "logs"}

    def test_bind_missing_required(self, operation) -> None:
        """测试缺少必需参数."""
        with pytest.raises(InvalidArgumentsError, match="index") as exc_info:
            operation.bind({})
        assert exc_info.value.field == "index"

    def test_bind_unknown_argument(self, operation) -> None:
        """测试未知参数."""
        with pytest.raises(InvalidArgumentsError, match="bogus"):
            operation.bind({"index": "logs", "bogus": 1})

    def test_bind_non_object(self, operation) -> None:
        """测试参数不是对象."""
        with pytest.raises(InvalidArgumentsError, match="对象"):
            operation.bind(["logs"])

    def test_bind_cluster_type_checked(self, operation) -> None:
        """测试集群名类型校验."""
        with pytest.raises(InvalidArgumentsError):
            operation.bind({"index": "logs", "cluster": 1})

    def test_no_cluster_selector(self) -> None:
        """测试不接受 cluster 参数的操作."""
        operation = Operation("es_meta", "meta", _noop, cluster_selector=False)
        with pytest.raises(InvalidArgumentsError, match=CLUSTER_FIELD):
            operation.bind({"cluster": "east"})
        assert "properties" in operation.input_schema()
        assert operation.input_schema()["properties"] == {}

    def test_check_invoked(self) -> None:
        """测试交叉校验函数."""

        def check(kwargs):
            raise InvalidArgumentsError("rejected")

        operation = Operation("es_demo", "demo", _noop, check=check)
        with pytest.raises(InvalidArgumentsError, match="rejected"):
            operation.bind({})

    def test_reserved_field_rejected(self) -> None:
        """测试不能声明 cluster 参数."""
        with pytest.raises(ValueError):
            Operation("es_demo", "demo", _noop, fields=(FieldSpec("cluster", ("string",)),))

    def test_duplicate_field_rejected(self) -> None:
        """测试重复参数声明."""
        spec = FieldSpec("index", ("string",))
        with pytest.raises(ValueError):
            Operation("es_demo", "demo", _noop, fields=(spec, spec))

    def test_input_schema(self, operation) -> None:
        """测试参数 Schema."""
        schema = operation.input_schema()
        assert schema["type"] == "object"
        assert schema["required"] == ["index"]
        assert schema["additionalProperties"] is False
        assert set(schema["properties"]) == {"index", "from", "cluster"}


class TestEnvelope:
    """响应信封测试."""

    def test_ok(self) -> None:
        assert ok_envelope({"a": 1}) == {"status": "ok", "result": {"a": 1}}

    def test_error(self) -> None:
        assert error_envelope(ErrorKind.CLUSTER_NOT_FOUND, "missing") == {
            "status": "error",
            "code": "cluster_not_found",
            "message": "missing",
        }


class TestCatalog:
    """操作目录测试."""

    def test_duplicate_name_rejected(self) -> None:
        """测试重复操作名."""
        operation = Operation("es_demo", "demo", _noop)
        with pytest.raises(ValueError, match="es_demo"):
            OperationCatalog.of(operation, operation)

    def test_names_prefixed(self) -> None:
        """测试所有操作名带统一前缀."""
        assert all(name.startswith(OPERATION_PREFIX) for name in CATALOG.names())

    def test_expected_operations(self) -> None:
        """测试包含核心操作."""
        for name in (
            "es_list_clusters",
            "es_search",
            "es_aggregate",
            "es_count",
            "es_index_document",
            "es_bulk_index",
            "es_get_document",
            "es_update_document",
            "es_delete_document",
            "es_list_indices",
            "es_create_index",
            "es_delete_index",
            "es_get_mapping",
            "es_put_mapping",
            "es_cluster_health",
            "es_cluster_info",
            "es_put_role",
        ):
            assert name in CATALOG

    def test_handlers_target_connection_methods(self) -> None:
        """测试每个处理函数都对应 BackendConnection 上的方法."""
        for operation in CATALOG:
            if operation.uses_registry:
                continue
            assert hasattr(BackendConnection, operation.handler.__name__), operation.name

    def test_every_operation_accepts_cluster(self) -> None:
        """测试除内省操作外都接受 cluster 参数."""
        for operation in CATALOG:
            properties = operation.input_schema()["properties"]
            assert (CLUSTER_FIELD in properties) is operation.cluster_selector

    def test_put_role_cluster_privileges(self) -> None:
        """测试集群权限参数映射到 cluster."""
        cluster, kwargs = CATALOG.get("es_put_role").bind(
            {"name": "reader", "cluster_privileges": ["monitor"], "cluster": "east"}
        )
        assert cluster == "east"
        assert kwargs == {"name": "reader", "cluster": ["monitor"]}

    def test_search_size_limit(self) -> None:
        """测试搜索 size 上限."""
        with pytest.raises(InvalidArgumentsError, match="size"):
            CATALOG.get("es_search").bind({"size": 10001})
