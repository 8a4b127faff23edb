"""OperationDispatcher 单元测试."""

from unittest.mock import MagicMock

import pytest

from elasticmcp.dispatch.tool import OperationDispatcher, backend_message
from elasticmcp.exceptions import (
    ConfigInvalidError,
    ErrorKind,
    NoClustersAvailableError,
    UnknownOperationError,
)
from elasticmcp.registry.tool import ClusterRegistry
from tests.helpers import FakeConnectionFactory, make_canonical


@pytest.fixture
def factory() -> FakeConnectionFactory:
    return FakeConnectionFactory(unreachable={"west"})


@pytest.fixture
def registry(factory) -> ClusterRegistry:
    return ClusterRegistry.build(
        make_canonical("east", "west", "central", default="central"), factory
    )


@pytest.fixture
def loader(registry) -> MagicMock:
    return MagicMock(return_value=registry)


@pytest.fixture
def dispatcher(loader) -> OperationDispatcher:
    return OperationDispatcher(loader)


def _assert_error(envelope, kind: ErrorKind) -> str:
    assert envelope["status"] == "error"
    assert envelope["code"] == kind.value
    assert envelope["message"]
    return envelope["message"]


class TestRouting:
    """集群选择测试."""

    def test_routes_to_named_cluster(self, dispatcher, factory) -> None:
        """测试按 cluster 参数分发."""
        factory.created["east"].search.return_value = {"hits": []}
        envelope = dispatcher.dispatch("es_search", {"index": "logs", "cluster": "east"})
        assert envelope == {"status": "ok", "result": {"hits": []}}
        factory.created["east"].search.assert_called_once_with(index="logs")
        factory.created["central"].search.assert_not_called()

    def test_routes_to_default_cluster(self, dispatcher, factory) -> None:
        """测试省略 cluster 时使用默认集群."""
        factory.created["central"].count.return_value = {"count": 3}
        envelope = dispatcher.dispatch("es_count", {"index": "logs"})
        assert envelope["result"] == {"count": 3}
        factory.created["central"].count.assert_called_once_with(index="logs")

    def test_unreachable_cluster_not_found(self, dispatcher) -> None:
        """测试不可达的集群不可寻址，错误信息列出可用集群."""
        envelope = dispatcher.dispatch("es_search", {"cluster": "west"})
        message = _assert_error(envelope, ErrorKind.CLUSTER_NOT_FOUND)
        assert "east" in message
        assert "central" in message

    def test_param_renaming(self, dispatcher, factory) -> None:
        """测试 from 与 _source 参数映射."""
        dispatcher.dispatch("es_search", {"from": 10, "_source": ["a"], "size": 5})
        factory.created["central"].search.assert_called_once_with(
            from_=10, source=["a"], size=5
        )

    def test_list_clusters(self, dispatcher) -> None:
        """测试列出集群."""
        envelope = dispatcher.dispatch("es_list_clusters", {})
        assert envelope == {
            "status": "ok",
            "result": {"clusters": ["east", "central"], "default": "central"},
        }

    def test_dispatch_does_not_mutate_registry(self, dispatcher, registry) -> None:
        """测试分发不修改注册表."""
        before = registry.list_names()
        dispatcher.dispatch("es_search", {"cluster": "nope"})
        dispatcher.dispatch("es_cluster_info", {})
        assert registry.list_names() == before


class TestErrors:
    """错误分类测试."""

    def test_unknown_operation_skips_registry(self, dispatcher, loader) -> None:
        """测试未知操作不访问注册表."""
        envelope = dispatcher.dispatch("es_reindex", {})
        _assert_error(envelope, ErrorKind.UNKNOWN_OPERATION)
        loader.assert_not_called()

    def test_missing_argument_skips_registry(self, dispatcher, loader) -> None:
        """测试参数校验失败时不访问注册表."""
        envelope = dispatcher.dispatch("es_get_document", {"index": "logs"})
        message = _assert_error(envelope, ErrorKind.INVALID_ARGUMENTS)
        assert "id" in message
        loader.assert_not_called()

    def test_update_requires_doc_or_script(self, dispatcher) -> None:
        """测试更新文档必须提供 doc 或 script."""
        envelope = dispatcher.dispatch("es_update_document", {"index": "logs", "id": "1"})
        _assert_error(envelope, ErrorKind.INVALID_ARGUMENTS)

    def test_bulk_rejects_empty_operations(self, dispatcher) -> None:
        """测试批量操作不能为空."""
        envelope = dispatcher.dispatch("es_bulk_index", {"operations": []})
        _assert_error(envelope, ErrorKind.INVALID_ARGUMENTS)

    def test_bulk_rejects_non_object_items(self, dispatcher) -> None:
        """测试批量操作的每一项必须是对象."""
        envelope = dispatcher.dispatch("es_bulk_index", {"operations": [{"index": {}}, "x"]})
        _assert_error(envelope, ErrorKind.INVALID_ARGUMENTS)

    @pytest.mark.parametrize("index", ["*", "_all", "**", "*,logs", "logs,_all", " * "])
    def test_delete_all_indices_rejected(self, dispatcher, factory, index) -> None:
        """测试禁止删除全部索引."""
        envelope = dispatcher.dispatch("es_delete_index", {"index": index})
        _assert_error(envelope, ErrorKind.INVALID_ARGUMENTS)
        factory.created["central"].delete_index.assert_not_called()

    def test_delete_index_pattern_allowed(self, dispatcher, factory) -> None:
        """测试带前缀的通配模式可以删除."""
        factory.created["central"].delete_index.return_value = {"acknowledged": True}
        envelope = dispatcher.dispatch("es_delete_index", {"index": "logs-*"})
        assert envelope["status"] == "ok"
        factory.created["central"].delete_index.assert_called_once_with(index="logs-*")

    def test_backend_failure_message_verbatim(self, dispatcher, factory) -> None:
        """测试后端异常信息原样透传."""
        factory.created["east"].get_document.side_effect = RuntimeError(
            "index_not_found_exception: no such index [logs]"
        )
        envelope = dispatcher.dispatch(
            "es_get_document", {"index": "logs", "id": "1", "cluster": "east"}
        )
        message = _assert_error(envelope, ErrorKind.BACKEND_FAILURE)
        assert message == "index_not_found_exception: no such index [logs]"

    def test_registry_config_invalid(self) -> None:
        """测试注册表构建时配置无效."""
        dispatcher = OperationDispatcher(MagicMock(side_effect=ConfigInvalidError("没有集群")))
        envelope = dispatcher.dispatch("es_cluster_health", {})
        _assert_error(envelope, ErrorKind.CONFIG_INVALID)

    def test_registry_no_clusters_available(self) -> None:
        """测试所有集群均不可用."""
        dispatcher = OperationDispatcher(
            MagicMock(side_effect=NoClustersAvailableError("east, west 不可用"))
        )
        envelope = dispatcher.dispatch("es_list_clusters", {})
        _assert_error(envelope, ErrorKind.NO_CLUSTERS_AVAILABLE)

    def test_unexpected_loader_error(self) -> None:
        """测试注册表构建函数抛出非预期异常."""
        dispatcher = OperationDispatcher(MagicMock(side_effect=OSError("disk")))
        envelope = dispatcher.dispatch("es_cluster_info", {})
        assert _assert_error(envelope, ErrorKind.BACKEND_FAILURE) == "disk"

    def test_execute_raises(self, dispatcher) -> None:
        """测试 execute 直接抛出异常."""
        with pytest.raises(UnknownOperationError):
            dispatcher.execute("es_reindex")


class TestBackendMessage:
    """backend_message 测试."""

    def test_uses_str(self) -> None:
        assert backend_message(ValueError("boom")) == "boom"

    def test_empty_falls_back_to_type(self) -> None:
        assert backend_message(TimeoutError()) == "TimeoutError"
